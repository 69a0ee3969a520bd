"""
FastAPI application initialization
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from api.routes import health, pipeline as pipeline_routes
from api.middleware import RequestContextMiddleware
from api.dependencies import get_pipeline_runner
from core.config import settings
from core.exceptions import PipelineException
from core.logging import setup_logging
from pipeline.scheduler import PipelineScheduler
from schemas.api import ErrorResponse
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Contactflow Pipeline API",
    description="Contact ETL service: extract from an upstream REST source, validate, upsert by email",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(pipeline_routes.router)

scheduler: Optional[PipelineScheduler] = None


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are 400, with the validation errors as detail"""
    body = ErrorResponse(error="Malformed request", detail=jsonable_encoder(exc.errors()))
    return JSONResponse(status_code=400, content=jsonable_encoder(body))


@app.exception_handler(PipelineException)
async def pipeline_exception_handler(request: Request, exc: PipelineException):
    """Pipeline errors that escaped a stage are reported, never as a bare trace"""
    logger.error(f"Unhandled pipeline error: {exc}", extra={"error_context": exc.to_dict()})
    body = ErrorResponse(error=exc.__class__.__name__, detail=exc.message)
    return JSONResponse(status_code=500, content=jsonable_encoder(body))


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    global scheduler

    setup_logging()
    logger.info("Starting Contactflow Pipeline API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if settings.SCHEDULED_SOURCES:
        scheduler = PipelineScheduler(get_pipeline_runner())
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Contactflow Pipeline API")
    if scheduler is not None:
        scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Contactflow Pipeline API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "run": "/pipeline/run",
            "runs": "/pipeline/runs",
            "errors": "/pipeline/errors"
        }
    }
