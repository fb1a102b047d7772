import logging
from hotel_approvals.core.database import engine
from hotel_approvals.models import *  # Import all models
from hotel_approvals.models.base import Base

logger = logging.getLogger(__name__)

async def create_tables():
    """Create all database tables"""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database tables created successfully")

    except Exception as e:
        logger.error(f"Error creating tables: {str(e)}")
        raise

async def close_db():
    """Dispose of pooled connections"""
    await engine.dispose()
    logger.info("Database connections closed")
