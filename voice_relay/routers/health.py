"""
routers/health.py
Docker / load balancer health probe.
"""

from fastapi import APIRouter, Depends

from voice_relay.core.config import Settings, get_settings
from voice_relay.models.response import HealthResponse
from voice_relay.routers.config import get_config_gateway
from voice_relay.services.config_gateway import ConfigGateway

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(
    settings: Settings = Depends(get_settings),
    gateway: ConfigGateway = Depends(get_config_gateway),
):
    present = gateway.presence()
    return HealthResponse(
        status="ok",
        version=settings.APP_VERSION,
        speech_configured=present["SPEECH_KEY"] and present["SPEECH_REGION"],
        upstream_configured=present["GPT_ENDPOINT"] and present["GPT_KEY"],
    )
