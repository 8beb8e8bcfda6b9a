"""Error taxonomy for the marketplace core and its FastAPI handlers.

Every error carries a machine-readable ``category`` and a human-readable
``message``; handlers render them as::

    {"error": {"category": "...", "message": "...", "details": {...}}}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """Base exception for marketplace errors."""

    category = "internal_error"
    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        return {
            "error": {
                "category": self.category,
                "message": self.message,
                "details": self.details,
            }
        }


class NotFoundError(MarketplaceError):
    """A referenced product, user or rating does not exist."""

    category = "not_found"
    status_code = 404

    def __init__(self, kind: str, identifier: str):
        super().__init__(
            message=f"{kind} '{identifier}' not found",
            details={"kind": kind, "id": identifier},
        )


class InvalidInputError(MarketplaceError):
    """Malformed identifiers, missing fields, bad pagination, unknown actions."""

    category = "validation_error"
    status_code = 400


class UnauthenticatedError(MarketplaceError):
    category = "unauthenticated"
    status_code = 401

    def __init__(self, message: str = "User authentication required"):
        super().__init__(message)


class ForbiddenError(MarketplaceError):
    category = "forbidden"
    status_code = 403


class ConflictError(MarketplaceError):
    category = "conflict"
    status_code = 409


class UpstreamUnavailableError(MarketplaceError):
    """The recommendation service failed or timed out.

    Raised by the gateway only; the aggregator absorbs it and falls back to
    random sampling, so it never reaches a client.
    """

    category = "upstream_unavailable"
    status_code = 503

    def __init__(self, source: str, error: str):
        super().__init__(
            message=f"Recommendation source '{source}' unavailable: {error}",
            details={"source": source, "error": error},
        )


class PersistenceError(MarketplaceError):
    category = "persistence_error"
    status_code = 500

    def __init__(self, error: Exception):
        super().__init__(
            message="Storage operation failed",
            details={"error_type": type(error).__name__},
        )


async def _marketplace_error_handler(request: Request, exc: MarketplaceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s", request.method, request.url.path, exc.category, exc.message)
    else:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.category, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    err = InvalidInputError("Invalid request parameters", details={"fields": fields})
    logger.info("%s %s -> validation_error fields=%s", request.method, request.url.path, fields)
    return JSONResponse(status_code=err.status_code, content=err.to_payload())


async def _persistence_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("%s %s -> mongo failure: %s", request.method, request.url.path, exc, exc_info=exc)
    err = PersistenceError(exc)
    return JSONResponse(status_code=err.status_code, content=err.to_payload())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketplaceError, _marketplace_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(PyMongoError, _persistence_error_handler)
