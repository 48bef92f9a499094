"""
GEO Analyzer Service - Main Application

A FastAPI backend with distributed task processing that scrapes a website
with Playwright and measures how ready it is for generative search:
business profile, web performance, E-E-A-T trust signals, visibility in AI
assistant answers and a prioritized action agenda.
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables
load_dotenv()

from api.routes import router
from config import settings
from core.browser import close_browser_manager
from core.cache import close_redis_client

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 GEO Analyzer API starting")
    yield
    await close_browser_manager()
    await close_redis_client()
    logger.info("🛑 GEO Analyzer API stopped")


# Initialize FastAPI app
app = FastAPI(title="GEO Analyzer Service", lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include all routes from api/routes.py
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, timeout_keep_alive=60, workers=2)
