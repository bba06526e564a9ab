"""
Caesar Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn app.main:app).

Application Architecture:
    ┌───────────────────────────────────────────────────────┐
    │                     FastAPI App                       │
    │                                                       │
    │  Middleware:  [Request ID] → [Logging]                │
    │                                                       │
    │  Routes:                                              │
    │   POST /api/chat ──▶ ChatDispatcher ──▶ handler       │
    │   OPTIONS /api/chat (CORS preflight)                  │
    │   GET /health                                         │
    │                                                       │
    │  Outbound:                                            │
    │   ReceiptService ──▶ Gemini (3 keys)                  │
    │   FolderService / search ──▶ Apps Script storage      │
    │                                                       │
    │  Exception Handlers:                                  │
    │   InvalidActionError → 400                            │
    └───────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging setup, configuration check (logged, non-fatal)
    Shutdown: log only; nothing is pooled between requests
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app import __version__
from app.config import Settings, settings
from app.exceptions import InvalidActionError
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import chat, health
from app.services.dispatcher import build_dispatcher

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the whole process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Output: stdout (captured by the container / platform log collector)
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every request at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("grpc").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("Caesar Backend %s starting up...", __version__)

    # Missing keys only break the actions that need them; keep serving
    try:
        config.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    logger.info("Gemini model: %s", config.gemini_model)
    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Caesar Backend shutting down...")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions that escape routes to HTTP responses.

    Only InvalidActionError reaches this layer: handler failures become
    envelopes inside the handlers, and everything else is turned into a 500
    by the chat route itself.
    """

    @app.exception_handler(InvalidActionError)
    async def handle_invalid_action(request: Request, exc: InvalidActionError):
        rid = request_id_var.get("")
        logger.warning("[%s] Invalid action: %r", rid, exc.action)
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": exc.message},
            headers=chat.CORS_HEADERS,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(config: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Settings to build the app from. Defaults to the module-level
                singleton; tests pass their own.
    """
    config = config or settings

    app = FastAPI(
        title="Caesar API",
        description=(
            "Receipt assistant backend: extracts receipts from photos with Google Gemini, "
            "suggests folder names, answers questions about stored receipts, and relays "
            "folder storage to a spreadsheet-backed Apps Script service."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.dispatcher = build_dispatcher(config)

    # Middleware executes in reverse order of addition:
    # RequestID runs first, then Logging.
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(chat.router)
    app.include_router(health.router)

    return app


app = create_app()
