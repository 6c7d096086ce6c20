"""
Main FastAPI application entry point for the catalog search bridge.
"""

import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import uvicorn

from searchbridge.core.config import settings, configure_logging, get_engine_connection
from searchbridge.core.database import create_tables
from searchbridge.core.exceptions import (
    search_bridge_exception_handler,
    validation_exception_handler,
    generic_exception_handler,
)
from searchbridge.core.middleware import LoggingMiddleware
from searchbridge.core.rate_limit import limiter
from searchbridge.api.routes import api_router
from searchbridge.services.engine_client import EngineClient
from searchbridge.utils.exceptions import SearchBridgeException


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    configure_logging()
    logger.info("Starting catalog search bridge")

    os.makedirs("./data", exist_ok=True)
    await create_tables()

    connection = get_engine_connection()
    app.state.engine_client = EngineClient(connection)
    logger.info(f"Search engine at {connection.base_url} (prefix '{connection.collection_prefix}')")

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application")
    await app.state.engine_client.aclose()


# Create FastAPI app
app = FastAPI(
    title="Catalog Search Bridge API",
    description="Typo-tolerant catalog search, suggestions and engine administration",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add rate limiter to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add custom middleware
app.add_middleware(LoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add exception handlers
app.add_exception_handler(SearchBridgeException, search_bridge_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include API routes
app.include_router(api_router, prefix="/api/v1")


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=1 if settings.DEBUG else settings.WORKERS
    )
