"""
Revu Annotations Backend - FastAPI Application Entry Point
"""

import logging
from contextlib import asynccontextmanager

import aiohttp
from fastapi import FastAPI

from routers import config, reviews
from services.config_manager import ConfigManager
from services.identity_cache import ReviewerIdentityCache

logger = logging.getLogger("revu")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown logic"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("[Backend] Starting Revu Annotations Backend...")
    ConfigManager.get_instance()
    logger.info("[Backend] ConfigManager initialized")

    # One HTTP session and one identity cache for the whole process
    app.state.http_session = aiohttp.ClientSession()
    app.state.identity_cache = ReviewerIdentityCache()

    yield

    logger.info("[Backend] Shutting down Revu Annotations Backend...")
    await app.state.http_session.close()


app = FastAPI(
    title="Revu Annotations Backend",
    description="Keeps line-level review annotations in sync with pull request diffs",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(reviews.router, prefix="/api/reviews", tags=["reviews"])
app.include_router(config.router, prefix="/api/config", tags=["config"])


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "revu-annotations-backend"}


if __name__ == "__main__":
    import uvicorn

    server = ConfigManager.get_instance().get("server", {})
    uvicorn.run(app, host=server.get("host", "0.0.0.0"), port=server.get("port", 8000))
