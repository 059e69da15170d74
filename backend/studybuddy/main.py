"""
StudyBuddy Backend — FastAPI Application Factory
===================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn studybuddy.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────────┐ ┌──────┐ ┌──────┐     │
    │  │ Req ID   │→│  Logging    │→│ GZip │→│ CORS │     │
    │  └──────────┘ └─────────────┘ └──────┘ └──────┘     │
    │                                                     │
    │  Routes:                                            │
    │  ┌───────────────┐ ┌────────────┐ ┌──────────────┐  │
    │  │POST /api/ai/..│ │ POST /chat │ │ GET /health  │  │
    │  └───────────────┘ └────────────┘ └──────────────┘  │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ RequestError→400 │ Upstream→502 │ Circuit→503│   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (log problems, keep serving)
    3. Build the LLM provider and the AssistantService (unless injected)

    Shutdown:
    1. Log shutdown complete
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from studybuddy import __version__
from studybuddy.config import Settings, settings as default_settings
from studybuddy.exceptions import (
    CircuitBreakerOpenError,
    RequestError,
    StudyBuddyError,
    UpstreamInvocationError,
)
from studybuddy.middleware.logging import RequestLoggingMiddleware
from studybuddy.middleware.request_id import RequestIDMiddleware, request_id_var
from studybuddy.routes import assist, health
from studybuddy.services.assistant_service import AssistantService
from studybuddy.services.llm_factory import build_llm_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    When:    Called once during app startup, before any other initialization.
    Format:  %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # Per-request DEBUG/INFO chatter from HTTP and SDK internals
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(exc: StudyBuddyError, rid: str, message: Optional[str] = None) -> dict:
    return {
        "error": exc.code,
        "message": message or exc.message,
        "details": exc.context or None,
        "request_id": rid,
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exception types to HTTP status codes and response formats.

    Handler hierarchy (most specific class wins):
        RequestError            → 400 Bad Request
        CircuitBreakerOpenError → 503 Service Unavailable (Retry-After)
        UpstreamInvocationError → 502 Bad Gateway (provider message in details)
        StudyBuddyError (base)  → 500 Internal Server Error
        Exception (fallback)    → 500 Internal Server Error, no internals exposed
    """

    @app.exception_handler(RequestError)
    async def handle_request_error(request: Request, exc: RequestError):
        """Caller sent something we cannot act on — say what is missing."""
        rid = request_id_var.get("")
        logger.warning("[%s] %s: %s", rid, exc.code, exc.message)
        return JSONResponse(status_code=400, content=_error_body(exc, rid))

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        rid = request_id_var.get("")
        logger.warning("[%s] Circuit breaker open: %s", rid, exc.message)
        return JSONResponse(
            status_code=503,
            content=_error_body(exc, rid),
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(UpstreamInvocationError)
    async def handle_upstream_error(request: Request, exc: UpstreamInvocationError):
        """Model call failed — surface the provider's message for diagnostics."""
        rid = request_id_var.get("")
        logger.error(
            "[%s] Upstream error: %s | %s", rid, exc.message, exc.upstream_message
        )
        return JSONResponse(status_code=502, content=_error_body(exc, rid))

    @app.exception_handler(StudyBuddyError)
    async def handle_app_error(request: Request, exc: StudyBuddyError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=500, content=_error_body(exc, rid))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all. Stack trace is logged server-side only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    assistant_service: Optional[AssistantService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Configuration; defaults to the environment-loaded singleton.
        assistant_service: Pre-built service (tests inject one around a fake
            LLMService). When None, the lifespan builds one from settings.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # ── Startup ───────────────────────────────────────────────────────
        setup_logging(settings.log_level)
        logger.info("=" * 60)
        logger.info("StudyBuddy Backend starting up...")

        try:
            settings.validate_required_for_production()
        except ValueError as e:
            # Keep serving: health checks still work and model calls report 502
            logger.error("Configuration error: %s", str(e))

        if getattr(app.state, "assistant_service", None) is None:
            app.state.assistant_service = AssistantService(
                llm=build_llm_service(settings),
                settings=settings,
            )

        logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
        logger.info("=" * 60)

        yield

        # ── Shutdown ──────────────────────────────────────────────────────
        logger.info("StudyBuddy Backend shutting down...")
        logger.info("Shutdown complete.")

    app = FastAPI(
        title="StudyBuddy API",
        description=(
            "Lecture study companion: unprompted slide explanations (AUTO_MODE) and "
            "question answering grounded in slides and notes (CHAT_MODE)."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.assistant_service = assistant_service

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition (last added = first run)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(assist.router)
    app.include_router(health.router)

    return app


# uvicorn expects `studybuddy.main:app` to be importable
app = create_app()
