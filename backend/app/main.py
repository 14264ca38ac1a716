"""
╔══════════════════════════════════════════════════╗
║      Newsdesk Editorial Core                     ║
║ Multi-tenant article composition, AI rewriting   ║
║ and reader engagement tracking                   ║
║                                                  ║
║    Built with: FastAPI + Gemini + PostgreSQL     ║
╚══════════════════════════════════════════════════╝
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.envelope import envelope_for_error, error_envelope
from app.api.routes.articles import router as articles_router
from app.api.routes.prompts import router as prompts_router
from app.api.routes.reads import router as reads_router
from app.core.config import Settings, get_settings
from app.core.correlation import bind_request_context, clear_request_context
from app.core.database import build_engine, build_session_factory, init_db
from app.core.errors import NewsdeskError
from app.core.logging import get_logger, setup_logging
from app.schemas import HealthResponse
from app.services.ai_gateway import AIGateway
from app.services.cache_service import cache_service
from app.services.prompt_service import PromptService

APP_VERSION = "1.0.0"
logger = get_logger("main")

_start_time = time.time()
_QUIET_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup & shutdown lifecycle."""

        # ── Startup ──
        setup_logging(debug=settings.app_debug)
        logger.info("app_starting", app=settings.app_name, env=settings.app_env)

        engine = getattr(app.state, "engine", None)
        owns_engine = engine is None
        if owns_engine:
            engine = build_engine(settings.database_url, echo=False)
            app.state.engine = engine
            app.state.session_factory = build_session_factory(engine)
            await init_db(engine, settings.app_env)
            logger.info("database_initialized")

        await cache_service.connect()

        if getattr(app.state, "ai_gateway", None) is None:
            app.state.ai_gateway = AIGateway(settings)
        if getattr(app.state, "prompt_service", None) is None:
            app.state.prompt_service = PromptService(cache_service, settings.prompt_cache_ttl_seconds)

        logger.info("app_ready", providers=app.state.ai_gateway.configured_providers(), port=settings.app_port)

        yield

        # ── Shutdown ──
        await cache_service.disconnect()
        if owns_engine:
            await engine.dispose()
        logger.info("app_shutdown")

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Multi-tenant newsroom backend core.\n\n"
            "- Structured and AI-assisted article composition (print, web, short)\n"
            "- AI processing status per base article\n"
            "- Per-user read progress and engagement aggregates\n"
        ),
        version=APP_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings

    # ── CORS Middleware ──

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Request Logging Middleware ──

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming requests with timing."""
        request_id, correlation_id = bind_request_context(request.headers)
        start = time.time()
        response = None
        try:
            response = await call_next(request)
            return response
        finally:
            elapsed = round((time.time() - start) * 1000, 2)
            status_code = 500
            if response is not None:
                response.headers["x-request-id"] = request_id
                response.headers["x-correlation-id"] = correlation_id
                status_code = response.status_code
            if request.url.path not in _QUIET_PATHS:
                logger.info(
                    "http_request",
                    method=request.method,
                    path=request.url.path,
                    status=status_code,
                    elapsed_ms=elapsed,
                )
            clear_request_context()

    # ── Exception Handlers ──

    @app.exception_handler(NewsdeskError)
    async def newsdesk_exception_handler(request: Request, exc: NewsdeskError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log("newsdesk_error", path=request.url.path, code=exc.code, error=exc.message)
        return envelope_for_error(exc, path=request.url.path)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(
            "http_exception",
            path=request.url.path,
            status_code=exc.status_code,
            detail=str(exc.detail),
        )
        response = error_envelope(
            code="http_error",
            message=str(exc.detail) if isinstance(exc.detail, str) else "Request failed",
            status_code=exc.status_code,
            details=exc.detail,
            meta={"path": request.url.path},
        )
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning("validation_error", path=request.url.path, errors=exc.errors())
        return error_envelope(
            code="VALIDATION_ERROR",
            message="Validation failed",
            status_code=422,
            details=exc.errors(),
            meta={"path": request.url.path},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return error_envelope(
            code="internal_error",
            message="Internal server error",
            status_code=500,
            meta={"path": request.url.path},
        )

    # ── Register Routers ──

    app.include_router(articles_router, prefix="/api/v1")
    app.include_router(reads_router, prefix="/api/v1")
    app.include_router(prompts_router, prefix="/api/v1")

    # ── Health Check ──

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check(request: Request):
        """System health check endpoint."""
        database = "connected"
        try:
            async with request.app.state.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("health_database_unreachable", error=str(exc))
            database = "disconnected"

        gateway = getattr(request.app.state, "ai_gateway", None)
        return HealthResponse(
            status="ok" if database == "connected" else "degraded",
            version=APP_VERSION,
            database=database,
            redis="connected" if cache_service.connected else "disconnected",
            ai_providers=gateway.configured_providers() if gateway else [],
            uptime_seconds=round(time.time() - _start_time, 2),
        )

    return app


app = create_app()
