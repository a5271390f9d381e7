from collections.abc import AsyncGenerator
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings


class Base(DeclarativeBase):
    pass


def new_id() -> str:
    """Default primary key for reference tables (UUID rendered as text)."""
    return str(uuid.uuid4())


engine = create_async_engine(settings.database_url, echo=settings.database_echo)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


def import_models():
    """Import every model module so its table is registered on Base.metadata."""
    from . import product, store, users  # noqa: F401
    from .inventory import stock  # noqa: F401


async def create_db_and_tables():
    import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session
