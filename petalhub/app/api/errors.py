"""HTTP mapping of the order-core errors."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from petalhub.services.errors import (
    Forbidden,
    InsufficientStock,
    InvalidArgument,
    InvalidState,
    NotFound,
    PetalHubError,
    StoreTimeout,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[PetalHubError], int] = {
    InvalidArgument: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    InvalidState: status.HTTP_409_CONFLICT,
    Forbidden: status.HTTP_403_FORBIDDEN,
    InsufficientStock: status.HTTP_409_CONFLICT,
    StoreTimeout: status.HTTP_504_GATEWAY_TIMEOUT,
}


def status_for(exc: PetalHubError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return status.HTTP_400_BAD_REQUEST


async def core_error_handler(request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, PetalHubError):
        return await unhandled_error_handler(request, exc)

    code = status_for(exc)
    logger.warning("%s %s -> %s %s: %s", request.method, request.url.path, code, exc.code, exc)
    content = {"detail": str(exc), "error": exc.code}
    if isinstance(exc, InsufficientStock):
        content["product_id"] = exc.product_id
        content["available"] = exc.available
        content["required"] = exc.required
    return JSONResponse(status_code=code, content=content)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error", "error": "internal"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PetalHubError, core_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
