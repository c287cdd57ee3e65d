"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, migration
from core.config import settings
from core.logging import setup_logging
from migration.scheduler import MigrationScheduler
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Sensor Sync Backend API",
    description="Incremental migration of raw sensor readings into the station database",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Initialize Scheduler
app.state.scheduler = MigrationScheduler()


# Include routers
app.include_router(health.router)
app.include_router(migration.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Sensor Sync Backend API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if settings.IS_SERVERLESS:
        logger.info("Serverless mode - migration scheduler not started")
        return

    # Start Scheduler
    app.state.scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Sensor Sync Backend API")
    app.state.scheduler.shutdown()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Sensor Sync Backend API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "trigger": "/migration/trigger",
            "status": "/migration/status",
            "sync": "/migration/sync/{name}"
        }
    }
