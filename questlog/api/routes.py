from fastapi import APIRouter
from pydantic import BaseModel

from questlog.core.config import settings

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    version: str
    anthropic_configured: bool


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Check API health and configuration status."""
    return HealthResponse(
        status="healthy",
        version="0.1.0",
        anthropic_configured=bool(settings.anthropic_api_key),
    )
