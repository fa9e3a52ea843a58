"""
models/request.py
All incoming request schemas.
"""

from pydantic import BaseModel, Field


class GptRequest(BaseModel):
    text: str = Field(..., description="Recognized speech text to send to the model")
