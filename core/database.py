"""
Warehouse engine and session management with SQLAlchemy async
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from core.config import Settings
import logging

logger = logging.getLogger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async warehouse engine from settings"""
    settings.require("DATABASE_URL")
    logger.debug("Creating warehouse engine")
    return create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        poolclass=NullPool,  # one short-lived process per run
        future=True
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """Create a session factory bound to the engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False
    )
