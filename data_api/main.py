"""
Data API main application.
Entry point for the FastAPI server.
"""

from fastapi import FastAPI

from data_api.core.cors import configure_cors
from data_api.core.lifespan import lifespan
from data_api.core.middlewares import register_middlewares
from kernel.config.settings import settings


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Audited data access API",
    version="0.1.0",
    lifespan=lifespan,
)

# Middlewares run in reverse order of registration: request logging wraps CORS
configure_cors(app)
register_middlewares(app)


# =============================================================================
# Health Check
# =============================================================================


@app.get("/api/health")
def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "data-api",
        "environment": settings.environment,
    }
