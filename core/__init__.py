# Core package - Infrastructure components
from .browser import BrowserManager, get_browser_manager, close_browser_manager
from .cache import RedisClient, get_redis_client, close_redis_client
from .celery import celery_app
from .store import JobStore

__all__ = [
    # Browser
    "BrowserManager",
    "get_browser_manager",
    "close_browser_manager",
    # Redis/Cache
    "RedisClient",
    "get_redis_client",
    "close_redis_client",
    # Job store
    "JobStore",
    # Celery
    "celery_app",
]
