"""Health check."""

from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    ffmpeg_available: bool
    ffmpeg_path: Optional[str] = None


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """
    Service status plus whether the FFmpeg binary can be located.

    Always 200: a missing binary is reported, not treated as downtime.
    """
    engine = request.app.state.batch_service.engine
    path = engine.find_ffmpeg() if hasattr(engine, "find_ffmpeg") else None
    return HealthResponse(status="ok", ffmpeg_available=engine.available, ffmpeg_path=path)
