import asyncio
import logging
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from app.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Hosting platforms inject DATABASE_URL as postgresql://, switch to the asyncpg driver
_db_url = settings.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

_engine_kwargs = {
    "echo": settings.app_env == "development",
    "pool_pre_ping": True,
}
if not _db_url.startswith("sqlite"):
    _engine_kwargs.update(pool_size=10, max_overflow=20)

engine = create_async_engine(_db_url, **_engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


_schema_lock = asyncio.Lock()
_schema_ready = False


async def init_db():
    """Create all tables and backfill missing columns (idempotent, runs once per process)."""
    global _schema_ready
    if _schema_ready:
        return

    async with _schema_lock:
        if _schema_ready:
            return

        async with engine.begin() as conn:
            from app.models import challenge  # noqa: F401
            from app.models import evidence  # noqa: F401
            from app.models import session  # noqa: F401
            await conn.run_sync(Base.metadata.create_all)

            # Older databases predate ip_address / updated_at on evidence
            if conn.dialect.name == "postgresql":
                await conn.execute(
                    text("ALTER TABLE evidence ADD COLUMN IF NOT EXISTS ip_address VARCHAR(64)")
                )
                await conn.execute(
                    text(
                        "ALTER TABLE evidence ADD COLUMN IF NOT EXISTS updated_at "
                        "TIMESTAMPTZ NOT NULL DEFAULT NOW()"
                    )
                )

        _schema_ready = True
        logger.info("Database schema ready")


async def get_db():
    await init_db()
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
