"""Global error handlers. Every failure is a JSON body with an ``error`` field."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mukando.chain.errors import ChainError, ChainErrorCode

logger = structlog.get_logger()

_CHAIN_ERROR_STATUS = {
    ChainErrorCode.NOT_CONFIGURED: 503,
}


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed input is a client error."""
        return JSONResponse(
            status_code=400,
            content={"error": _describe_validation_error(exc)},
        )

    @app.exception_handler(ChainError)
    async def chain_exception_handler(request: Request, exc: ChainError) -> JSONResponse:
        """Chain read failures carry their stable code to the client."""
        logger.warning(
            "chain_error",
            path=request.url.path,
            method=request.method,
            code=exc.code.value,
            error=exc.message,
        )
        return JSONResponse(
            status_code=_CHAIN_ERROR_STATUS.get(exc.code, 502),
            content={"error": exc.message, "code": exc.code.value},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions, always as JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
        )
