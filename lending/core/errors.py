"""Domain exceptions and the JSON error envelope used by the API."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("lending.errors")


class LendingError(Exception):
    """Base class for failures scoped to a single requested operation."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "lending_error"

    def __init__(self, message: str, *, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(LendingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class OutOfStockError(LendingError):
    status_code = status.HTTP_409_CONFLICT
    code = "out_of_stock"


class ValidationError(LendingError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"


class StoreError(LendingError):
    """The database rejected or failed a statement."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "store_error"


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def lending_exception_handler(request: Request, exc: LendingError):
    logger.warning(
        "operation.rejected",
        extra={"extra_data": {"code": exc.code, "path": request.url.path, "reason": exc.message}},
    )
    return ErrorEnvelope(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        code="validation_error",
        message="Validation failed",
        details={"errors": jsonable_encoder(exc.errors())},
    )
