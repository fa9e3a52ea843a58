"""
core/errors.py
Failure taxonomy for the relay.

Anything raised before a response is committed becomes a JSON error body;
once the event stream has started the only signal left is closing it.
"""


class RelayError(Exception):
    """Base class for expected relay failures."""


class ConfigurationMissing(RelayError):
    """A required setting is absent or empty."""

    def __init__(self, missing: list[str], message: str | None = None):
        self.missing = missing
        super().__init__(message or f"Missing configuration: {', '.join(missing)}")


class UpstreamTransportFailure(RelayError):
    """Network or HTTP-status failure talking to the chat provider."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class MalformedUpstreamFrame(RelayError):
    """A `data:` payload that is not a JSON object. Logged and skipped."""

    def __init__(self, payload: str, reason: str):
        self.payload = payload
        self.reason = reason
        super().__init__(f"Malformed upstream frame ({reason}): {payload[:80]!r}")
