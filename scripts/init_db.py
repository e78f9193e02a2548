import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import load_settings
from core.database import create_engine
from core.logging import setup_logging
from ingestion.loaders.warehouse import WarehouseSink
# Import all models to ensure they are registered
import models  # noqa: F401

logger = logging.getLogger(__name__)


async def init_database():
    settings = load_settings()
    setup_logging(settings.LOG_LEVEL)
    logger.info("Connecting to warehouse...")

    warehouse = WarehouseSink(create_engine(settings))
    try:
        logger.info("Creating tables...")
        await warehouse.create_tables()
        logger.info("Tables created successfully.")
    finally:
        await warehouse.dispose()

if __name__ == "__main__":
    asyncio.run(init_database())
