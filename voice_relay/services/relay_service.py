"""
services/relay_service.py

Completion relay: one prompt in, one streaming Azure OpenAI request out,
text deltas forwarded to the caller as SSE events in arrival order.

Two phases per call:
  1. start()  : validate input, open the upstream stream. Failures here raise,
                nothing has been sent to the caller yet.
  2. events   : read raw upstream bytes, reassemble lines, re-emit
                `data: {"content": ...}` events, `data: [DONE]` on the sentinel.
                Failures here can only close the stream.

Lifecycle:  IDLE → VALIDATING → STREAMING → COMPLETED | ABORTED
"""

import asyncio
import enum
from contextlib import AsyncExitStack
from typing import AsyncIterator, Iterable, Iterator, Optional

import anyio
import httpx
import openai
from openai import AsyncAPIResponse, AsyncAzureOpenAI

from voice_relay.core.errors import MalformedUpstreamFrame, UpstreamTransportFailure
from voice_relay.core.logger import get_logger, mask
from voice_relay.models.response import UpstreamConfig
from voice_relay.services.prompts import SYSTEM_PROMPT
from voice_relay.services.sse import (
    DONE_EVENT,
    DONE_SENTINEL,
    SSELineDecoder,
    extract_delta_content,
    format_event,
    parse_data_line,
)

logger = get_logger(__name__)


class RelayState(str, enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"


class CompletionRelay:
    """Single-use: one instance per inbound request."""

    def __init__(
        self,
        upstream: UpstreamConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        self.upstream = upstream
        self.state = RelayState.IDLE
        self.forwarded = 0
        self._transport = transport
        self._system_prompt = system_prompt

    def _set_state(self, state: RelayState) -> None:
        logger.debug(f"Relay {self.state.value} → {state.value}")
        self.state = state

    def _client(self) -> AsyncAzureOpenAI:
        http_client = httpx.AsyncClient(transport=self._transport) if self._transport else None
        return AsyncAzureOpenAI(
            azure_endpoint=self.upstream.endpoint,
            api_key=self.upstream.key,
            api_version=self.upstream.api_version,
            max_retries=0,            # every upstream call is attempted once
            http_client=http_client,
        )

    def build_messages(self, text: str) -> list[dict]:
        return [
            {"role": "system", "content": self._system_prompt},
            {"role": "user", "content": text},
        ]

    # ── Phase 1: open ────────────────────────────────────────────────────────

    async def start(self, text: Optional[str]) -> "RelayStream":
        """Open the upstream stream. Returns the outbound event iterator."""
        self._set_state(RelayState.VALIDATING)
        if text is None:
            self._set_state(RelayState.ABORTED)
            raise ValueError("text is required")

        logger.info(
            f"GPT request: endpoint={self.upstream.endpoint} key={mask(self.upstream.key)} "
            f"deployment={self.upstream.deployment} text='{text[:80]}'"
        )

        stack = AsyncExitStack()
        try:
            client = await stack.enter_async_context(self._client())
            response = await stack.enter_async_context(
                client.chat.completions.with_streaming_response.create(
                    model=self.upstream.deployment,
                    messages=self.build_messages(text),
                    max_tokens=self.upstream.max_tokens,
                    stream=True,
                )
            )
        except openai.APIStatusError as e:
            await stack.aclose()
            self._set_state(RelayState.ABORTED)
            raise UpstreamTransportFailure(
                f"Upstream returned HTTP {e.status_code}", status_code=e.status_code
            ) from e
        except openai.APIConnectionError as e:
            await stack.aclose()
            self._set_state(RelayState.ABORTED)
            raise UpstreamTransportFailure(f"Upstream unreachable: {e}") from e
        except BaseException:
            await stack.aclose()
            self._set_state(RelayState.ABORTED)
            raise

        self._set_state(RelayState.STREAMING)
        return RelayStream(self, response, stack)

    # ── Phase 2: stream ──────────────────────────────────────────────────────

    def _abort(self, reason: str) -> None:
        if self.state is RelayState.STREAMING:
            self._set_state(RelayState.ABORTED)
            logger.warning(f"{reason} after {self.forwarded} deltas, closing upstream")

    def _complete(self, done: bool) -> None:
        self._set_state(RelayState.COMPLETED)
        logger.info(f"Relay completed: {self.forwarded} deltas, done_sentinel={done}")

    def _translate(self, lines: Iterable[str]) -> Iterator[str]:
        for line in lines:
            payload = parse_data_line(line)
            if payload is None:
                continue
            if payload == DONE_SENTINEL:
                yield DONE_EVENT
                return
            try:
                content = extract_delta_content(payload)
            except MalformedUpstreamFrame as e:
                logger.warning(f"Skipping chunk: {e}")
                continue
            if content:
                yield format_event(content)

    async def _events(self, response: AsyncAPIResponse) -> AsyncIterator[str]:
        decoder = SSELineDecoder()
        try:
            async for chunk in response.iter_bytes():
                for event in self._translate(decoder.feed(chunk)):
                    if event == DONE_EVENT:
                        self._complete(done=True)
                        yield event
                        return
                    self.forwarded += 1
                    yield event

            # EOF: a last line without trailing newline is still a line
            for event in self._translate(decoder.flush()):
                if event == DONE_EVENT:
                    self._complete(done=True)
                    yield event
                    return
                self.forwarded += 1
                yield event

            self._complete(done=False)

        except httpx.HTTPError as e:
            self._set_state(RelayState.ABORTED)
            logger.error(f"Upstream failed mid-stream after {self.forwarded} deltas: {type(e).__name__}: {e}")
        except (asyncio.CancelledError, GeneratorExit):
            self._abort("Client went away")
            raise


class RelayStream:
    """
    Outbound event iterator that owns the upstream connection.

    The upstream is released when iteration ends for any reason, and also
    by aclose() when iteration never started.
    """

    def __init__(self, relay: CompletionRelay, response: AsyncAPIResponse, stack: AsyncExitStack):
        self._relay = relay
        self._events = relay._events(response)
        self._stack = stack
        self._closed = False

    def __aiter__(self) -> "RelayStream":
        return self

    async def __anext__(self) -> str:
        try:
            return await self._events.__anext__()
        except BaseException:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        with anyio.CancelScope(shield=True):
            await self._events.aclose()
            await self._stack.aclose()
        self._relay._abort("Stream closed")
