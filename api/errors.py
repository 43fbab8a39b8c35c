"""
Map service exceptions onto the {"error": "<message>"} RPC envelope
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from core.exceptions import (
    CSVImportError,
    FuelServiceError,
    StorageError,
    TransactionNotFoundError,
)
import logging

logger = logging.getLogger(__name__)


class UnauthorizedError(FuelServiceError):
    """Missing or wrong internal API key"""
    pass


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _validation_message(exc: RequestValidationError) -> str:
    """First validation problem as 'field: message'"""
    errors = exc.errors()
    if not errors:
        return "Invalid parameters"
    first = errors[0]
    location = [str(p) for p in first.get("loc", ()) if p != "body"]
    message = str(first.get("msg", "invalid value"))
    # pydantic prefixes messages raised from validators
    message = message.removeprefix("Value error, ")
    return f"{'.'.join(location)}: {message}" if location else message


def register_exception_handlers(app: FastAPI) -> None:
    """Install the RPC error envelope on the application"""

    @app.exception_handler(RequestValidationError)
    async def handle_validation(request: Request, exc: RequestValidationError):
        return _error(400, _validation_message(exc))

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError):
        return _error(400, str(exc))

    @app.exception_handler(UnauthorizedError)
    async def handle_unauthorized(request: Request, exc: UnauthorizedError):
        return _error(401, exc.message)

    @app.exception_handler(TransactionNotFoundError)
    async def handle_not_found(request: Request, exc: TransactionNotFoundError):
        return _error(404, exc.message)

    @app.exception_handler(CSVImportError)
    async def handle_csv_error(request: Request, exc: CSVImportError):
        return _error(400, exc.message)

    @app.exception_handler(StorageError)
    async def handle_storage_error(request: Request, exc: StorageError):
        request_id = getattr(request.state, "request_id", "-")
        logger.error(f"[{request_id}] Storage failure: {exc}")
        return _error(500, exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", "-")
        logger.exception(f"[{request_id}] Unhandled error: {exc}")
        return _error(500, "Internal server error")
