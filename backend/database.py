"""
Database engine and session management for the Darzi backend.

Uses SQLAlchemy async engine with aiosqlite for non-blocking DB operations
inside FastAPI. Tables are auto-created on server startup via init_db().
"""
import functools
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""
    pass


# ── Engine ──────────────────────────────────────────────────────────

def async_database_url(raw_url: str) -> str:
    """Convert sqlite:///... → sqlite+aiosqlite:///... for the async driver."""
    if raw_url.startswith("sqlite:///"):
        return raw_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return raw_url


_async_url = async_database_url(settings.database_url)

_connect_args = {}
if _async_url.startswith("sqlite"):
    # Busy timeout: a writer waiting on another order's commit gives up after this
    _connect_args["timeout"] = settings.store_timeout_seconds

engine = create_async_engine(
    _async_url,
    echo=False,
    future=True,
    connect_args=_connect_args,
)

async_session = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# ── Helpers ─────────────────────────────────────────────────────────

async def init_db() -> None:
    """Create all tables. Called once on server startup."""
    # Import models so Base.metadata knows about them
    import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created (or already exist)")


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields an async session."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def translate_storage_errors(func):
    """
    Re-raise backing-store failures from a service coroutine as StorageError.

    Domain errors pass through untouched. Lock timeouts and lost connections
    arrive here as OperationalError, which is a SQLAlchemyError.
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        from domain.errors import StorageError

        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error(f"Storage failure in {func.__name__}: {exc}", exc_info=True)
            raise StorageError(
                f"Storage failure during {func.__name__}",
                details={"reason": exc.__class__.__name__},
            ) from exc

    return wrapper


@translate_storage_errors
async def commit(db: AsyncSession) -> None:
    """Commit the request's unit of work; lock timeouts at COMMIT surface as StorageError."""
    await db.commit()
