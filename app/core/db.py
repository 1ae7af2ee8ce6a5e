# app/core/db.py
from collections.abc import AsyncGenerator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.core.config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str) -> AsyncEngine:
    # sqlite (tests / dev local) sin pool: cada sesión abre su conexión
    if make_url(url).get_backend_name() == "sqlite":
        return create_async_engine(url, poolclass=NullPool)
    return create_async_engine(url, echo=False, pool_pre_ping=True, pool_recycle=3600)


def make_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, expire_on_commit=False, class_=AsyncSession)


async def create_tables(bind: AsyncEngine) -> None:
    """Crea las tablas sin alembic (solo para sqlite en tests)."""
    import app.models  # noqa: F401  registra los modelos en Base.metadata

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


engine = make_engine(settings.async_database_url)
SessionLocal = make_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with SessionLocal() as session:
        yield session
