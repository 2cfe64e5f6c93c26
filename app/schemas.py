"""
Pydantic schemas for the cached site speed value and API responses
"""
from pydantic import BaseModel
from typing import Optional


# ===== CACHED VALUE =====

class SiteSpeed(BaseModel):
    """Measured page load speed. speed_ms is None until a measurement succeeds"""
    site_name: str
    speed_ms: Optional[float] = None


# ===== RESPONSES =====

class SiteSpeedStatus(SiteSpeed):
    """Response of the status endpoint"""
    status: str
    last_error: Optional[str] = None


class HealthStatus(BaseModel):
    """Health check response"""
    status: str
    cache_key: str
