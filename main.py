from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from hotel_approvals import __version__
from hotel_approvals.core.config import settings
from hotel_approvals.core.database import engine
from hotel_approvals.core.logging_config import setup_logging
from hotel_approvals.api.v1.api import api_router
from hotel_approvals.db.init_db import close_db, create_tables
from hotel_approvals.middleware.logging import LoggingMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"Starting Hotel Approvals API ({settings.ENVIRONMENT})")
    if settings.AUTO_CREATE_TABLES:
        await create_tables()
    yield
    await close_db()


# Create FastAPI app
app_config = {
    "title": "Hotel Operations Approval Workflow",
    "description": "Multi-step approval requests for documents, trainings, SOPs and HR requests",
    "version": __version__,
    "lifespan": lifespan,
}

app = FastAPI(**app_config)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=settings.ALLOWED_METHODS,
    allow_headers=settings.ALLOWED_HEADERS,
)
app.add_middleware(LoggingMiddleware)

# Include routers
app.include_router(api_router, prefix="/api/v1")

@app.get("/")
async def root():
    return {
        "message": "Hotel Operations Approval Workflow",
        "status": "active",
        "version": __version__,
        "docs": "/docs"
    }

@app.get("/health")
async def health_check():
    database = "connected"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check could not reach the database: {e}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {
            "database": database,
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
