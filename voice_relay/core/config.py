"""
core/config.py
All environment variables and settings in one place.
Azure Speech (browser-side TTS/STT) + Azure OpenAI chat deployment.
"""

from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

# repo root: .env and frontend/ live next to the package, wherever uvicorn starts
BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,          # snapshot: loaded once, never mutated
        extra="ignore",
    )

    # ─── App ───────────────────────────────────────────────
    APP_NAME: str = "AZ-900 Voice Study Relay"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    ALLOWED_ORIGINS: list[str] = ["*"]
    FRONTEND_DIR: str = "frontend"

    # ─── Azure Speech ──────────────────────────────────────
    SPEECH_KEY: str = ""
    SPEECH_REGION: str = ""
    VOICE: str = ""                          # env: voice
    SPEECH_LANGUAGE: str = "ko-KR"
    SPEECH_VOICE_NAME: str = "ko-KR-SunHiNeural"

    # ─── Azure OpenAI ──────────────────────────────────────
    GPT_ENDPOINT: str = ""                   # env: gpt_endpoint
    GPT_KEY: str = ""                        # env: gpt_key
    GPT_DEPLOYMENT: str = "gpt-4"
    GPT_API_VERSION: str = "2023-05-15"
    GPT_MAX_TOKENS: int = 800

    @property
    def frontend_path(self) -> Path:
        path = Path(self.FRONTEND_DIR)
        return path if path.is_absolute() else BASE_DIR / path


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
