"""
FastAPI application entry point.

This module initializes the FastAPI application, configures middleware,
and registers the API routers.
"""
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .core.config import settings
from .core.logging_config import configure_logging
from .api.routers import imports

# Ensure logging is configured before the application starts serving requests.
configure_logging(settings.log_level)


app = FastAPI(
    title="Dataset Importer API",
    version=__version__,
    description="CSV preview, column mapping suggestions and chunked dataset imports",
)

# Comma-separated list, e.g. "http://localhost:5173,http://localhost:3000"
allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(imports.router)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "message": "Dataset Importer API",
        "version": __version__
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "service": "dataset-importer-api"
    }
