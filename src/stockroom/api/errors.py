"""HTTP error mapping for stockroom domain exceptions.

Every domain error leaves the API as ``{"error": <messages>, "kind": <name>}``
so clients can branch on ``kind`` without parsing messages.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from stockroom.errors import (
    AlreadyFinalized,
    InsufficientStock,
    InsufficientValidStock,
    InventoryLocked,
    PermissionDenied,
    TransientError,
)

logger = structlog.get_logger(__name__)

# Most specific first; Starlette resolves handlers along the exception MRO.
STATUS_BY_ERROR = {
    InsufficientStock: 409,
    InsufficientValidStock: 409,
    InventoryLocked: 409,
    AlreadyFinalized: 409,
    PermissionDenied: 403,
    ObjectNotFoundError: 404,
    ValidationError: 422,
    InvalidOperationError: 409,
    TransientError: 503,
}


def error_body(exc):
    messages = getattr(exc, "messages", None)
    return {"error": messages or str(exc), "kind": type(exc).__name__}


def _handler_for(status_code):
    async def handle_error(request: Request, exc: Exception) -> JSONResponse:
        logger.info(
            "Request refused",
            path=request.url.path,
            kind=type(exc).__name__,
            status_code=status_code,
        )
        return JSONResponse(status_code=status_code, content=error_body(exc))

    return handle_error


def register_error_handlers(app: FastAPI):
    """Install Protean's default handlers, then the stockroom status mapping."""
    register_exception_handlers(app)
    for error_class, status_code in STATUS_BY_ERROR.items():
        app.add_exception_handler(error_class, _handler_for(status_code))
