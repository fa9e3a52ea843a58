"""
services/config_gateway.py

Read-only view over the settings snapshot.
Hands out speech and upstream config, or raises ConfigurationMissing.
Secrets are only ever logged as present/missing.
"""

from voice_relay.core.config import Settings
from voice_relay.core.errors import ConfigurationMissing
from voice_relay.core.logger import get_logger, mask
from voice_relay.models.response import PublicConfig, SpeechConfig, UpstreamConfig

logger = get_logger(__name__)


class ConfigGateway:
    def __init__(self, settings: Settings):
        self._settings = settings

    def _require(self, **values: str) -> None:
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ConfigurationMissing(missing)

    def get_speech_config(self) -> SpeechConfig:
        s = self._settings
        try:
            self._require(SPEECH_KEY=s.SPEECH_KEY, SPEECH_REGION=s.SPEECH_REGION)
        except ConfigurationMissing as e:
            raise ConfigurationMissing(e.missing, "Speech service configuration is missing.") from None

        config = SpeechConfig(
            key=s.SPEECH_KEY,
            region=s.SPEECH_REGION,
            language=s.SPEECH_LANGUAGE,
            voice_name=s.SPEECH_VOICE_NAME,
        )
        logger.info(
            f"Speech config: key={mask(config.key)} region={config.region} "
            f"language={config.language} voice={config.voice_name}"
        )
        return config

    def get_upstream_config(self) -> UpstreamConfig:
        s = self._settings
        self._require(GPT_ENDPOINT=s.GPT_ENDPOINT, GPT_KEY=s.GPT_KEY)
        return UpstreamConfig(
            endpoint=s.GPT_ENDPOINT,
            key=s.GPT_KEY,
            deployment=s.GPT_DEPLOYMENT,
            api_version=s.GPT_API_VERSION,
            max_tokens=s.GPT_MAX_TOKENS,
        )

    def public_config(self) -> PublicConfig:
        s = self._settings
        config = PublicConfig(
            SPEECH_KEY=s.SPEECH_KEY or None,
            SPEECH_REGION=s.SPEECH_REGION or None,
            voice=s.VOICE or None,
        )
        logger.info(
            f"Sending config: SPEECH_KEY={mask(config.SPEECH_KEY)} "
            f"SPEECH_REGION={config.SPEECH_REGION} voice={config.voice}"
        )
        return config

    def presence(self) -> dict[str, bool]:
        s = self._settings
        return {
            "SPEECH_KEY": bool(s.SPEECH_KEY),
            "SPEECH_REGION": bool(s.SPEECH_REGION),
            "voice": bool(s.VOICE),
            "GPT_ENDPOINT": bool(s.GPT_ENDPOINT),
            "GPT_KEY": bool(s.GPT_KEY),
        }
