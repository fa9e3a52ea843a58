"""
routers/stream.py

POST /api/gpt — Server-Sent Events relay of the Azure OpenAI chat stream.
The browser reads it with fetch() + ReadableStream.

Events:
  data: {"content":"Azure"}       ← one per non-empty delta, in order
  data: [DONE]                    ← upstream finished (absent if it just hung up)

Anything that fails before the stream opens → 500 {"error": "Internal server error"}.
"""

from typing import Optional

import httpx
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.types import Receive, Scope, Send

from voice_relay.core.errors import ConfigurationMissing, UpstreamTransportFailure
from voice_relay.core.logger import get_logger
from voice_relay.models.request import GptRequest
from voice_relay.models.response import ErrorResponse
from voice_relay.routers.config import get_config_gateway
from voice_relay.services.config_gateway import ConfigGateway
from voice_relay.services.relay_service import CompletionRelay

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["stream"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # disable nginx buffering
}


class RelayResponse(StreamingResponse):
    """Closes the relay stream however the response ends, even before the first chunk."""

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.body_iterator.aclose()


def get_upstream_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Default network transport; overridden in tests with a mock upstream."""
    return None


def _internal_error() -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


@router.post("/gpt", responses={500: {"model": ErrorResponse}})
async def gpt(
    req: GptRequest,
    gateway: ConfigGateway = Depends(get_config_gateway),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_upstream_transport),
):
    """
    SSE streaming endpoint.
    Content-Type: text/event-stream
    """
    try:
        relay = CompletionRelay(gateway.get_upstream_config(), transport=transport)
        events = await relay.start(req.text)
    except ConfigurationMissing as e:
        logger.error(f"GPT config error: {e}")
        return _internal_error()
    except UpstreamTransportFailure as e:
        logger.error(f"GPT upstream error: {e}")
        return _internal_error()

    return RelayResponse(events, media_type="text/event-stream", headers=SSE_HEADERS)
