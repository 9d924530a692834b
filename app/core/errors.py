"""
app/core/errors.py

Purpose: Exception to JSON rendering

- Every error leaves the API as {error, code, details}
- Auth failures are logged without the offending credential
- Validation details drop the rejected input so tokens and card data are
  never echoed back
"""

from typing import Any, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import AlventuraError, AuthError
from app.core.logging import get_logger
from app.schemas.response import ErrorResponse

logger = get_logger(__name__)


def error_response(status_code: int, error: str, code: str, details: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, code=code, details=details).model_dump(),
    )


def _validation_details(exc: RequestValidationError) -> List[dict]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in jsonable_encoder(exc.errors())
    ]


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """

    @app.exception_handler(AlventuraError)
    async def alventura_exception_handler(request: Request, exc: AlventuraError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        elif isinstance(exc, AuthError):
            logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return error_response(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """404, 405 and friends."""
        return error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Malformed caller input is a 400, not FastAPI's default 422.
        """
        details = _validation_details(exc)
        logger.debug(f"Rejected {request.method} {request.url.path}: {len(details)} validation errors")
        return error_response(400, "Input validation failed", "VALIDATION_ERROR", details)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {exc}",
            exc_info=True
        )

        message = "An internal error occurred. Please try again later." if settings.is_production else str(exc)
        return error_response(500, message, "INTERNAL_ERROR")
