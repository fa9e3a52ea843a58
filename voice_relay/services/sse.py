"""
services/sse.py

Server-Sent Events framing for the completion relay.

Upstream bytes arrive in arbitrary chunks: a line (or a multi-byte UTF-8
character) may straddle two reads. SSELineDecoder keeps the unfinished tail
of each read and prepends it to the next one, so every line comes out whole.
"""

import codecs
import json
from typing import Optional

from voice_relay.core.errors import MalformedUpstreamFrame

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
DONE_EVENT = f"{DATA_PREFIX}{DONE_SENTINEL}\n\n"


class SSELineDecoder:
    """Bytes in, complete text lines out."""

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return [line.rstrip("\r") for line in lines]

    def flush(self) -> list[str]:
        """Drain whatever is left once the upstream hits EOF."""
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return [tail.rstrip("\r")] if tail else []


def parse_data_line(line: str) -> Optional[str]:
    """Payload of a `data: ` line, None for anything else (keep-alives, comments...)."""
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):]


def extract_delta_content(payload: str) -> Optional[str]:
    """
    choices[0].delta.content of a chat-completion chunk.
    Returns None when the chunk carries no text (role-only delta,
    Azure prompt_filter_results with empty choices, finish chunk).
    """
    try:
        record = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedUpstreamFrame(payload, f"invalid JSON: {e.msg}") from e

    if not isinstance(record, dict):
        raise MalformedUpstreamFrame(payload, "not a JSON object")

    choices = record.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None

    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return None

    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


def format_event(content: str) -> str:
    return f"{DATA_PREFIX}{json.dumps({'content': content}, ensure_ascii=False)}\n\n"
