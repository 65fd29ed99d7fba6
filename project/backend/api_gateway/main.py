"""
FastAPI application.

App factory, lifespan, CORS, error handlers, and health check.

Serve with `uvicorn api_gateway.main:app` (or `--factory api_gateway.main:create_app`).
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config import Settings, get_settings
from shared.errors import (
    ConfigError,
    JobCancelledError,
    JobNotFoundError,
    JobStateError,
    PipelineError,
    RetryableError,
    ValidationError,
)
from shared.logging import get_logger
from api_gateway.context import PipelineContext, build_context
from api_gateway.routes import jobs, uploads

logger = get_logger(__name__)

API_PREFIX = "/api/v1"

# Most specific first
ERROR_STATUS_CODES = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (JobNotFoundError, status.HTTP_404_NOT_FOUND),
    (JobStateError, status.HTTP_409_CONFLICT),
    (JobCancelledError, status.HTTP_409_CONFLICT),
    (ConfigError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (RetryableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)

HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, "code": code})


def status_for_error(error: PipelineError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def register_exception_handlers(app: FastAPI) -> None:
    """Every error reaches the caller as {"error": ..., "code": ...}."""

    @app.exception_handler(PipelineError)
    async def pipeline_error_handler(request: Request, exc: PipelineError):
        status_code = status_for_error(exc)
        if status_code >= 500:
            logger.error(
                f"Request failed: {exc.message}",
                exc_info=exc,
                extra={"job_id": exc.job_id, "path": request.url.path, "code": exc.code}
            )
        else:
            logger.warning(
                f"Request rejected: {exc.message}",
                extra={"job_id": exc.job_id, "path": request.url.path, "code": exc.code}
            )
        return error_response(status_code, exc.message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
        return error_response(status.HTTP_400_BAD_REQUEST, message, ValidationError.code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        response = error_response(exc.status_code, str(exc.detail), HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR"))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        # Details stay in the logs
        logger.error(
            "Unhandled error",
            exc_info=exc,
            extra={"path": request.url.path, "error_type": type(exc).__name__}
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR")


def create_app(settings: Optional[Settings] = None, ctx: Optional[PipelineContext] = None) -> FastAPI:
    """
    Create the API application.

    Args:
        settings: Settings to use (process settings by default)
        ctx: Prebuilt pipeline context; built from settings on startup when omitted
    """
    settings = settings or (ctx.settings if ctx else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_context = ctx is None
        app.state.ctx = ctx or build_context(settings)
        logger.info(
            "API gateway started",
            extra={
                "environment": settings.environment,
                "job_store": settings.job_store_backend,
                "storyboard_llm": app.state.ctx.llm.available,
                "video": app.state.ctx.video.available,
                "lipsync": app.state.ctx.lipsync.available,
            }
        )
        try:
            yield
        finally:
            if owns_context:
                await app.state.ctx.close()

    app = FastAPI(title="VeoSync API", version="1.0.0", lifespan=lifespan)
    if ctx is not None:
        app.state.ctx = ctx

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url] if settings.frontend_url else ["*"],
        allow_credentials=bool(settings.frontend_url),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    app.include_router(jobs.router, prefix=API_PREFIX, tags=["jobs"])
    app.include_router(uploads.router, prefix=API_PREFIX, tags=["uploads"])

    @app.get("/health")
    async def health(request: Request):
        store_ok = await request.app.state.ctx.store.health_check()
        return {"status": "healthy" if store_ok else "degraded", "job_store": store_ok}

    return app


_app: Optional[FastAPI] = None


def __getattr__(name: str):
    """
    Serve `app` for `uvicorn api_gateway.main:app`.

    Built on first access so importing this module never reads the environment.
    """
    global _app
    if name == "app":
        if _app is None:
            _app = create_app()
        return _app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
