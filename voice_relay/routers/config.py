"""
routers/config.py
Speech configuration for the browser-side Azure Speech SDK.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from voice_relay.core.config import Settings, get_settings
from voice_relay.core.errors import ConfigurationMissing
from voice_relay.core.logger import get_logger
from voice_relay.models.response import ErrorResponse, PublicConfig, SpeechConfig
from voice_relay.services.config_gateway import ConfigGateway

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["config"])


def get_config_gateway(settings: Settings = Depends(get_settings)) -> ConfigGateway:
    return ConfigGateway(settings)


@router.get("/config", response_model=PublicConfig)
async def public_config(gateway: ConfigGateway = Depends(get_config_gateway)):
    return gateway.public_config()


@router.get(
    "/speech-config",
    response_model=SpeechConfig,
    response_model_by_alias=True,
    responses={500: {"model": ErrorResponse}},
)
async def speech_config(gateway: ConfigGateway = Depends(get_config_gateway)):
    try:
        return gateway.get_speech_config()
    except ConfigurationMissing as e:
        logger.error(f"Speech config error: {e} ({', '.join(e.missing)})")
        return JSONResponse(status_code=500, content={"error": str(e)})
