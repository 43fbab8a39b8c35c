"""
Database RPC methods
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db, verify_api_key
from repositories.transactions import TransactionRepository
from schemas.api import ClearResult, RPCResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/rpc/database",
    tags=["Database"],
    dependencies=[Depends(verify_api_key)]
)


@router.post("/clear", response_model=RPCResponse[ClearResult])
async def clear(request: Request, db: AsyncSession = Depends(get_db)):
    """Delete every transaction. Vehicles are kept."""
    request_id = getattr(request.state, "request_id", "-")
    deleted = await TransactionRepository(db).delete_all()
    logger.warning(f"[{request_id}] Database__Clear removed {deleted} transactions")
    return RPCResponse(result=ClearResult(deleted=deleted))
