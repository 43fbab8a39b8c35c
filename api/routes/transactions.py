"""
Transaction RPC methods: getList, import, enrich, enrichAll
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from api.dependencies import get_db, get_mapon_client, verify_api_key
from core.exceptions import TransactionNotFoundError
from enrichment.engine import EnrichmentEngine
from enrichment.telematics_client import MaponClient
from ingestion.csv_import import TransactionImporter
from repositories.transactions import DEFAULT_ORDER, TransactionRepository
from repositories.vehicles import VehicleRepository
from schemas.api import (
    EnrichAllRequest,
    EnrichAllResult,
    EnrichRequest,
    EnrichResult,
    ImportRequest,
    ImportResult,
    RPCResponse,
    TransactionListRequest,
    TransactionListResult,
)
from schemas.transaction import TransactionResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/rpc/transaction",
    tags=["Transactions"],
    dependencies=[Depends(verify_api_key)]
)

ENRICHED_MESSAGE = "Transaction enriched successfully."
ALREADY_ENRICHED_MESSAGE = "Transaction already enriched."


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


@router.post("/getList", response_model=RPCResponse[TransactionListResult])
async def get_list(
    params: TransactionListRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Paginated transactions, optionally for one vehicle"""
    logger.info(
        f"[{_request_id(request)}] Transaction__GetList vehicle={params.vehicle_number} "
        f"limit={params.limit} offset={params.offset}"
    )
    repository = TransactionRepository(db)
    items = await repository.get_all(
        vehicle_number=params.vehicle_number,
        order_by=params.order_by or DEFAULT_ORDER,
        limit=params.limit,
        offset=params.offset,
    )
    total = await repository.count(vehicle_number=params.vehicle_number)

    return RPCResponse(result=TransactionListResult(
        items=[TransactionResponse.from_model(t) for t in items],
        total=total,
        limit=params.limit,
        offset=params.offset,
    ))


@router.post("/import", response_model=RPCResponse[ImportResult])
async def import_transactions(
    params: ImportRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """Import a fuel card CSV export"""
    logger.info(f"[{_request_id(request)}] Transaction__Import {len(params.csv_data)} bytes")
    importer = TransactionImporter(TransactionRepository(db), VehicleRepository(db))
    result = await importer.import_csv(params.csv_data)
    return RPCResponse(result=result)


@router.post("/enrich", response_model=RPCResponse[EnrichResult])
async def enrich(
    params: EnrichRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    client: MaponClient = Depends(get_mapon_client)
):
    """Enrich one transaction with GPS position and odometer"""
    logger.info(f"[{_request_id(request)}] Transaction__Enrich id={params.id}")
    repository = TransactionRepository(db)
    transaction = await repository.get(params.id)
    if transaction is None:
        raise TransactionNotFoundError(
            f"Transaction {params.id} not found",
            context={"transaction_id": params.id}
        )

    engine = EnrichmentEngine(client, repository)
    transaction = await engine.enrich_one(transaction)

    if engine.outcome.skipped:
        success, message = True, ALREADY_ENRICHED_MESSAGE
    elif engine.outcome.completed:
        success, message = True, ENRICHED_MESSAGE
    else:
        success, message = False, engine.latest_message

    return RPCResponse(result=EnrichResult(
        success=success,
        message=message,
        transaction=TransactionResponse.from_model(transaction),
    ))


@router.post("/enrichAll", response_model=RPCResponse[EnrichAllResult])
async def enrich_all(
    params: EnrichAllRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    client: MaponClient = Depends(get_mapon_client)
):
    """
    Enrich up to `limit` transactions.

    Without `status` the newest transactions of any status are processed;
    completed ones count as skipped.
    """
    logger.info(
        f"[{_request_id(request)}] Transaction__EnrichAll limit={params.limit} status={params.status}"
    )
    repository = TransactionRepository(db)
    if params.status is None:
        transactions = await repository.get_all(limit=params.limit)
    else:
        transactions = await repository.get_by_status(params.status, limit=params.limit)

    engine = EnrichmentEngine(client, repository)
    summary = await engine.enrich_batch(transactions)

    return RPCResponse(result=EnrichAllResult(**summary, message=engine.latest_message))
