"""
models/response.py
All outgoing response schemas.
The browser reads these to configure the Azure Speech SDK.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class PublicConfig(BaseModel):
    """GET /api/config — raw values, field names kept as the frontend expects."""
    SPEECH_KEY: Optional[str] = None
    SPEECH_REGION: Optional[str] = None
    voice: Optional[str] = None


class SpeechConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., alias="speechKey")
    region: str = Field(..., alias="speechRegion")
    language: str
    voice_name: str = Field(..., alias="voiceName")


class UpstreamConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    endpoint: str
    key: str
    deployment: str = "gpt-4"
    api_version: str = "2023-05-15"
    max_tokens: int = 800


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    speech_configured: bool
    upstream_configured: bool
