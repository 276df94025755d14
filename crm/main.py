"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crm.api.middleware import IdempotencyMiddleware, RequestContextMiddleware
from crm.api.routes import api_router
from crm.core.auth import ensure_secure_secret
from crm.infrastructure.redis import redis_client
from crm.logging_config import setup_logging
from crm.settings import settings

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    ensure_secure_secret()
    await redis_client.connect()
    logger.info("Application started", extra={"environment": settings.environment})
    yield
    # Shutdown
    await redis_client.disconnect()


# Create FastAPI app
app = FastAPI(
    title="Certification CRM API",
    description="Customer status tracking with approval-gated deletion",
    version="0.1.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added last so it runs first and the request ID covers everything below it
app.add_middleware(IdempotencyMiddleware)
app.add_middleware(RequestContextMiddleware)

# Include API routes
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Certification CRM API",
        "version": "0.1.0",
        "docs": "/docs",
    }
