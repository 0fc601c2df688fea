"""Health check API schemas."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health (liveness)."""

    status: str = Field(default="ok", description="Service status")


class CacheHealthResponse(BaseModel):
    """Response for GET /health/cache."""

    status: str = Field(default="ok", description="ok, or degraded after fallback")
    backend: str = Field(..., description="Backend serving requests (redis or memory)")
    degraded: bool = Field(..., description="True once Redis failed and the in-process map took over")
    hits: int = Field(default=0, description="Cache hits since start or last clear")
    misses: int = Field(default=0, description="Cache misses since start or last clear")
    keys: int | None = Field(default=None, description="Keys in the active store; null if it could not be counted")
