"""Patient Screening Service — FastAPI entry point.

Backend for the eligibility screening wizard: dataset and criteria upload,
criteria review, evaluation, and dashboard summaries.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from screening.config.settings import get_settings
from screening.config.logging_config import setup_logging, get_logger
from screening.api.routes import screening

settings = get_settings()
setup_logging(log_level=settings.log_level, log_file=settings.log_file)
logger = get_logger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Sessions live in memory only; nothing to initialize beyond logging."""
    logger.info("Starting Patient Screening Service", env=settings.app_env)
    yield
    logger.info("Shutting down Patient Screening Service")


app = FastAPI(
    title="Patient Screening Service",
    description="Criteria review, eligibility evaluation, and screening dashboards",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept", "X-Requested-With"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_id = str(uuid.uuid4())[:8]
    logger.error("Unhandled exception", error_id=error_id, error=str(exc), path=request.url.path, exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "error_id": error_id})


# Routes
app.include_router(screening.router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": VERSION,
        "platform": "patient-screening",
        "components": {"sessions": True},
    }


@app.get("/")
async def root():
    return {
        "name": "Patient Screening Service",
        "version": VERSION,
        "description": "Criteria review, eligibility evaluation, and screening dashboards",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "screening.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_env == "development",
    )
