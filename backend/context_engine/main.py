"""
FastAPI application entry point for the Conversation Context Engine.

Serves the context detector, the feedback learner and link conversion
attribution under /api/v1, with tracing, correlation ids and health checks.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging

from . import __version__
from .core.config import get_settings
from .core.observability import (
    setup_observability,
    instrument_fastapi,
    correlation_id_middleware
)
from .api import context, feedback, links
from .api.dependencies import close_store, get_store

SERVICE_TITLE = "Conversation Context Engine API"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the data store and tracing on startup; release the store on shutdown.

    A misconfigured store (unknown backend, missing Cosmos endpoint) fails
    startup instead of the first request.
    """
    settings = get_settings()

    logging.info(f"🚀 Starting {SERVICE_TITLE} ({settings.environment})")

    setup_observability(settings.applicationinsights_connection_string)

    store = get_store()
    logging.info(f"✅ Data store ready: {type(store).__name__} (backend={settings.store_backend})")

    yield

    await close_store()
    logging.info(f"👋 {SERVICE_TITLE} stopped")


app = FastAPI(
    title=SERVICE_TITLE,
    description="Detects the service a customer is interested in and learns from attendant feedback on AI replies",
    version=__version__,
    lifespan=lifespan
)

settings = get_settings()

# Prompt blocks and feedback samples are text-heavy; compress above 1KB
app.add_middleware(
    GZipMiddleware,
    minimum_size=1024,
    compresslevel=6
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Binds X-Correlation-ID for logs and spans
app.middleware("http")(correlation_id_middleware)

instrument_fastapi(app)


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness check: service name, version, environment and store backend."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "service": SERVICE_TITLE,
            "version": __version__,
            "environment": settings.environment,
            "store_backend": settings.store_backend,
        }
    )


@app.get("/", tags=["Root"])
async def root():
    """Entry points of the API."""
    return {
        "message": SERVICE_TITLE,
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "endpoints": [
            "/api/v1/customers/{customer_id}/context",
            "/api/v1/customers/{customer_id}/feedback-history",
            "/api/v1/companies/{company_id}/feedback-context",
            "/api/v1/companies/{company_id}/feedback-stats",
            "/api/v1/companies/{company_id}/prompt-context",
            "/api/v1/companies/{company_id}/link-conversions",
            "/api/v1/links/{link_id}/conversion-stats",
        ],
    }


# Conversation context, feedback learning, link conversion
app.include_router(context.router, prefix="/api/v1")
app.include_router(feedback.router, prefix="/api/v1")
app.include_router(links.router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "context_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level="info"
    )
