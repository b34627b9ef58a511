# src/error_shield/main.py
"""FastAPI application factory and entry point."""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from error_shield.api import register_exception_handlers, router
from error_shield.config import Settings, get_settings
from error_shield.core.diagnostics import DiagnosticLogger, DiagnosticSink, LoggingDiagnosticSink
from error_shield.core.logging import (
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    ResponseLoggingMiddleware,
    setup_logging,
    stop_queue_logging,
)
from error_shield.core.masking import ErrorMasker, ErrorMaskingMiddleware
from error_shield.utils.logging import get_project_version

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    sink: DiagnosticSink | None = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the application.

    Middleware, outermost first (composed once, here):
        CORS -> RequestID -> RequestLogging -> ResponseLogging -> ErrorMasking -> routes

    Args:
        settings: defaults to get_settings().
        sink: diagnostic sink for the masking stage; a LoggingDiagnosticSink by default.
        configure_logging: install the logging config at startup and stop the queue
            listeners at shutdown. Tests that own logging pass False.
    """
    settings = settings or get_settings()
    sink = sink if sink is not None else LoggingDiagnosticSink()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_logging(settings)
        logger.info("startup", extra={"env": settings.ENV})

        yield

        logger.info("shutdown")
        sink.close()
        if configure_logging:
            stop_queue_logging()

    app = FastAPI(
        title="Error Shield API",
        description="Demo API whose error responses go through a masking policy",
        version=get_project_version(),
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.diagnostic_sink = sink

    app.include_router(router)
    register_exception_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    masker = ErrorMasker(
        DiagnosticLogger(sink),
        strip_passthrough_details=settings.STRIP_PASSTHROUGH_DETAILS,
    )

    # Starlette wraps in reverse order: the last middleware added is the outermost.
    app.add_middleware(ErrorMaskingMiddleware, masker=masker)
    if settings.ENABLE_RESPONSE_LOGGING:
        app.add_middleware(ResponseLoggingMiddleware)
    if settings.ENABLE_REQUEST_LOGGING:
        app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    return app


def main() -> None:
    import uvicorn

    settings = get_settings()
    # log_config=None keeps uvicorn from replacing the dictConfig installed at startup
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
