"""FastAPI application for the recommendation service.

Run with: uvicorn basketrec.api.main:app --reload --port 8000
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from basketrec import __version__
from basketrec.api.routes import router
from basketrec.config import Settings, load_settings
from basketrec.data.database import init_database

# API version
API_VERSION = __version__


class AppState:
    """Application state holder."""

    def __init__(self):
        self.settings: Settings | None = None


# Global app state
app_state = AppState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Loads settings and creates the database schema on startup.
    """
    logger.info("=" * 50)
    logger.info("Starting basketrec API")
    logger.info("=" * 50)

    settings = load_settings()
    init_database(settings.db_path)
    app_state.settings = settings
    logger.info(f"SQLite database ready: {settings.db_path}")

    logger.info("basketrec API ready")

    yield

    logger.info("Shutting down basketrec API")
    app_state.settings = None
    logger.info("basketrec API stopped")


# Create FastAPI app
app = FastAPI(
    title="Product Recommendation API",
    description="""
## Co-purchase Recommendations for a Retail Store

Mines completed sales with a two-pass Apriori (product pairs) and keeps a
table of "customers who bought X also bought Y" recommendations.

### Features:
- **Analysis runs** over a date range, optionally restricted to a category
- **Specific diagnostics** when a run finds nothing, with parameter suggestions
- **Recommendation management**: list, activate/deactivate, delete
- **Analysis log** of every frequent itemset and rule found
    """,
    version=API_VERSION,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routes
app.include_router(router, prefix="/api/v1")


# Root endpoint
@app.get("/", tags=["Root"])
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "service": "Product Recommendation API",
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/api/v1/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "basketrec.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
