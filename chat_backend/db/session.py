"""
db/session.py
-------------
Async SQLAlchemy engine and session factory, owned by a Database handle.

Design decisions:
  - The engine is created by Database.connect() (called from the app
    lifespan) and disposed by Database.close(); nothing is created at
    import time.
  - AsyncEngine with asyncpg driver for non-blocking I/O in production;
    tests hand in an in-memory aiosqlite URL.
  - pool_pre_ping=True: validates connections before checkout to handle
    stale connections after DB restarts or idle timeouts.
  - expire_on_commit=False: the send workflow commits after every write
    and keeps using the committed objects afterwards.
"""

from typing import AsyncIterator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from chat_backend.core.logging import get_logger
from chat_backend.db.base import Base

logger = get_logger(__name__)


class Database:

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._engine

    def connect(self) -> None:
        if self._engine is not None:
            return

        if self.url.startswith("sqlite"):
            # A single shared connection keeps ":memory:" databases alive
            engine_kwargs = {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        else:
            engine_kwargs = {
                "pool_size": 10,
                "max_overflow": 20,
                "pool_pre_ping": True,
                "pool_recycle": 3600,  # Recycle connections every hour
            }

        self._engine = create_async_engine(self.url, echo=self.echo, **engine_kwargs)
        self._sessionmaker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created", driver=self._engine.url.drivername)

    async def create_all(self) -> None:
        """Create every table registered on Base.metadata."""
        # Import models so metadata is populated
        import chat_backend.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    def session(self) -> AsyncSession:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._sessionmaker()

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        logger.info("Database engine disposed")


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency that yields a database session from the Database
    handle stored on app.state by the lifespan hook.

    Services commit each write themselves; anything still pending when
    the request fails is rolled back here.

    Usage:
        @router.get("/example")
        async def handler(db: AsyncSession = Depends(get_db)):
            ...
    """
    database: Database = request.app.state.db
    async with database.session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
