import logging

from fastapi import FastAPI
from contextlib import asynccontextmanager
from app.api.routes import router
from app.core.config import settings
from app.core.logging import configure_logging
from app.fetch.http_fetcher import HttpFetcher
from app.services.proxy import ProxyService
from app.storage import db as log_db

log = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Opens the shared outbound connection pool on startup, closes it on shutdown.
    """
    # Startup
    configure_logging(settings.LOG_LEVEL, json=settings.LOG_JSON)
    log.info("Initializing HTML Rewriting Proxy...")
    log_db.init_db()
    log.info("Request log database initialized at %s", log_db.DATABASE_PATH)

    fetcher = HttpFetcher(headers=settings.outbound_headers())
    await fetcher.start()
    app.state.proxy_service = ProxyService(fetcher, max_hops=settings.MAX_REDIRECTS)

    yield

    # Shutdown
    log.info("Shutting down HTML Rewriting Proxy...")
    await fetcher.stop()

app = FastAPI(
    title="HTML Rewriting Proxy",
    description="Fetches pages on the caller's behalf and relinks them through /proxy",
    version="1.0.0",
    lifespan=lifespan
)

# Include API routes
app.include_router(router)

@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "service": "HTML Rewriting Proxy",
        "version": "1.0.0",
        "endpoints": {
            "proxy": "GET /proxy?url=<percent-encoded URL>",
            "health": "GET /health",
            "log_stats": "GET /logs/stats",
            "recent_logs": "GET /logs/recent"
        }
    }
