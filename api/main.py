"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, ingestion
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.database import async_session_maker, engine
from core.logging import setup_logging
from ingestion.bootstrap import build_ingestion_service
from ingestion.scheduler import IngestionScheduler
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Bulk Ingestion Service API",
    description="Streams remote JSON arrays into the unified data store",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(ingestion.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Bulk Ingestion Service API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    service = build_ingestion_service(settings, session_factory=async_session_maker)
    app.state.ingestion_service = service
    app.state.scheduler = IngestionScheduler(service, settings.INGESTION_INTERVAL_MINUTES)
    app.state.scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Bulk Ingestion Service API")
    app.state.scheduler.stop()
    await app.state.ingestion_service.aclose()
    await engine.dispose()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Bulk Ingestion Service API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "sources": "/ingestion/sources",
            "run": "/ingestion/run",
            "reports": "/ingestion/reports"
        }
    }
