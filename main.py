"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan context manager runs on startup / shutdown and owns the
     Database handle (connect on startup, close on shutdown).
  3. Routers are registered with their URL prefixes.
  4. Exception handlers render domain errors and normalise unexpected ones.

Run with:
    uvicorn main:app --reload              # development
    uvicorn main:app --workers 4           # production (no --reload)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chat_backend.api.routes import chats, messages, users
from chat_backend.core.config import settings
from chat_backend.core.exceptions import ConversationError
from chat_backend.core.logging import configure_logging, get_logger
from chat_backend.db.session import Database
from chat_backend.services.mlflow_service import setup_mlflow

logger = get_logger(__name__)


def create_application(
    database: Optional[Database] = None,
    create_tables: bool = False,
) -> FastAPI:
    database = database or Database(settings.DATABASE_URL, echo=settings.DEBUG)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """
        Startup:
          - Configure structured logging
          - Connect the database (and create tables when asked to)
          - Initialise MLflow tracking if configured

        Shutdown:
          - Dispose the async engine (graceful connection pool drain)
        """
        configure_logging()
        logger.info(
            "Starting up",
            app=settings.APP_NAME,
            env=settings.APP_ENV,
            debug=settings.DEBUG,
        )
        database.connect()
        if create_tables:
            await database.create_all()
        setup_mlflow()
        app.state.db = database
        yield
        logger.info("Shutting down, disposing DB engine")
        await database.close()

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Chat backend for registered users and guests, with persisted "
            "history and AI replies."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(chats.router)
    app.include_router(messages.router)
    app.include_router(users.router)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(ConversationError)
    async def conversation_error_handler(
        request: Request, exc: ConversationError
    ) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "Request failed",
            path=request.url.path,
            kind=exc.kind,
            step=exc.step,
            status_code=exc.status_code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()
