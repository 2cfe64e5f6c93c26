"""
Site Speed - Main FastAPI Application
Serves the cached page load speed, refreshing it in the background
"""
import logging
import threading
from typing import Optional

from fastapi import Depends, FastAPI

from app.cache import RefreshCoordinator, SqlCacheStore, ThreadScheduler
from app.schemas import HealthStatus, SiteSpeedStatus
from app.speed_probe import SiteSpeedProducer
from config.settings import settings

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger("main")

# Version tracking
APP_VERSION = "v1.3.0"
APP_NAME = "Site Speed"

app = FastAPI(
    title=APP_NAME,
    description="Site name and cached page load speed with lazy background refresh",
    version=APP_VERSION
)

_coordinator: Optional[RefreshCoordinator] = None
_coordinator_lock = threading.Lock()


def get_coordinator() -> RefreshCoordinator:
    """
    Get or create the application's refresh coordinator.

    Creation is locked: sync dependencies run in a threadpool, and there
    must be exactly one scheduler per process.
    """
    global _coordinator
    if _coordinator is None:
        with _coordinator_lock:
            if _coordinator is None:
                _coordinator = RefreshCoordinator(
                    store=SqlCacheStore(settings.cache_database_url),
                    scheduler=ThreadScheduler(),
                    producer=SiteSpeedProducer(settings.site_name, settings.site_url),
                    policy=settings.freshness_policy(),
                )
                logger.info(f"Coordinator ready for {settings.site_url} (ttl={settings.cache_ttl_seconds}s)")
    return _coordinator


@app.get("/health", response_model=HealthStatus)
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "cache_key": settings.cache_key}


@app.get("/status", response_model=SiteSpeedStatus)
def site_speed_status(coordinator: RefreshCoordinator = Depends(get_coordinator)):
    """
    Site name and last measured speed.

    Returns status "pending" until the first measurement is stored.
    """
    return coordinator.read(settings.cache_key).to_dict()


@app.get("/cache/stats")
def cache_stats(coordinator: RefreshCoordinator = Depends(get_coordinator)):
    """Get cache statistics."""
    return coordinator.get_stats()
