"""
tests/test_api.py
HTTP surface: config endpoints, the /api/gpt event stream, static entry page.
"""

import anyio
import httpx
import pytest

from voice_relay.models.response import UpstreamConfig
from voice_relay.routers.stream import RelayResponse
from voice_relay.services.relay_service import CompletionRelay, RelayState

from tests.fakes import (
    BASE_SETTINGS,
    DONE,
    ENDPOINT,
    GPT_KEY,
    SPEECH_KEY,
    FakeUpstream,
    delta,
    parse_events,
)


# ── /api/config ─────────────────────────────────────────────────────────────

def test_public_config_returns_configured_values(client_factory):
    res = client_factory().get("/api/config")
    assert res.status_code == 200
    assert res.json() == {
        "SPEECH_KEY": BASE_SETTINGS["SPEECH_KEY"],
        "SPEECH_REGION": BASE_SETTINGS["SPEECH_REGION"],
        "voice": BASE_SETTINGS["VOICE"],
    }


# ── /api/speech-config ──────────────────────────────────────────────────────

def test_speech_config(client_factory):
    res = client_factory().get("/api/speech-config")
    assert res.status_code == 200
    assert res.json() == {
        "speechKey": SPEECH_KEY,
        "speechRegion": "koreacentral",
        "language": "ko-KR",
        "voiceName": "ko-KR-SunHiNeural",
    }


@pytest.mark.parametrize("overrides,expected_status", [
    ({}, 200),
    ({"SPEECH_KEY": ""}, 500),
    ({"SPEECH_REGION": ""}, 500),
    ({"SPEECH_KEY": "", "SPEECH_REGION": ""}, 500),
    ({"VOICE": "", "GPT_KEY": ""}, 200),
])
def test_speech_config_fails_only_without_key_or_region(client_factory, overrides, expected_status):
    res = client_factory(**overrides).get("/api/speech-config")
    assert res.status_code == expected_status
    if expected_status == 500:
        assert "error" in res.json()


# ── /api/gpt ────────────────────────────────────────────────────────────────

def test_gpt_streams_scenario(client_factory):
    upstream = FakeUpstream([delta("Azure"), delta(" basics"), DONE])
    res = client_factory(upstream).post("/api/gpt", json={"text": "what is Azure AZ-900"})

    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/event-stream")
    assert res.headers["cache-control"] == "no-cache"
    assert res.headers["connection"] == "keep-alive"
    assert parse_events(res.text) == ['{"content": "Azure"}', '{"content": " basics"}', "[DONE]"]


def test_gpt_malformed_frame_does_not_break_stream(client_factory):
    upstream = FakeUpstream([delta("A"), b"data: not-json\n\n", delta("B"), DONE])
    res = client_factory(upstream).post("/api/gpt", json={"text": "hi"})
    assert parse_events(res.text) == ['{"content": "A"}', '{"content": "B"}', "[DONE]"]


def test_gpt_without_done_ends_without_sentinel(client_factory):
    upstream = FakeUpstream([delta("A"), delta("B")])
    res = client_factory(upstream).post("/api/gpt", json={"text": "hi"})
    assert res.status_code == 200
    assert parse_events(res.text) == ['{"content": "A"}', '{"content": "B"}']


def test_gpt_mid_stream_failure_just_closes(client_factory):
    upstream = FakeUpstream([delta("A")], error=httpx.ReadError("reset"))
    res = client_factory(upstream).post("/api/gpt", json={"text": "hi"})
    assert res.status_code == 200
    assert parse_events(res.text) == ['{"content": "A"}']


@pytest.mark.parametrize("missing", ["GPT_KEY", "GPT_ENDPOINT"])
def test_gpt_missing_upstream_config_is_500(client_factory, missing):
    upstream = FakeUpstream([delta("never"), DONE])
    res = client_factory(upstream, **{missing: ""}).post("/api/gpt", json={"text": "hi"})

    assert res.status_code == 500
    assert res.json() == {"error": "Internal server error"}
    assert "data:" not in res.text
    assert upstream.requests == []


@pytest.mark.parametrize("upstream", [
    FakeUpstream(status_code=401),
    FakeUpstream(connect_error=httpx.ConnectError("refused")),
])
def test_gpt_upstream_failure_before_stream_is_500(client_factory, upstream):
    res = client_factory(upstream).post("/api/gpt", json={"text": "hi"})
    assert res.status_code == 500
    assert res.json() == {"error": "Internal server error"}


@pytest.mark.parametrize("body", [{}, {"text": None}])
def test_gpt_requires_text(client_factory, body):
    upstream = FakeUpstream([DONE])
    res = client_factory(upstream).post("/api/gpt", json=body)
    assert res.status_code == 422
    assert res.json()["error"] == "Invalid request"
    assert upstream.requests == []


def test_gpt_accepts_empty_text(client_factory):
    upstream = FakeUpstream([DONE])
    res = client_factory(upstream).post("/api/gpt", json={"text": ""})
    assert res.status_code == 200
    assert upstream.last_body["messages"][1] == {"role": "user", "content": ""}


def test_secrets_never_logged(client_factory, caplog):
    upstream = FakeUpstream([delta("A"), DONE])
    client = client_factory(upstream)
    client.get("/api/config")
    client.get("/api/speech-config")
    client.post("/api/gpt", json={"text": "hi"})

    assert GPT_KEY not in caplog.text
    assert SPEECH_KEY not in caplog.text


# ── health / frontend ───────────────────────────────────────────────────────

def test_health_reports_presence_only(client_factory):
    res = client_factory(GPT_KEY="").get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["speech_configured"] is True
    assert body["upstream_configured"] is False
    assert SPEECH_KEY not in res.text


def test_index_served_from_frontend_dir(client_factory, tmp_path):
    (tmp_path / "index.html").write_text("<h1>AZ-900</h1>", encoding="utf-8")
    res = client_factory(FRONTEND_DIR=str(tmp_path)).get("/")
    assert res.status_code == 200
    assert "AZ-900" in res.text


def test_index_missing_is_404(client_factory, tmp_path):
    res = client_factory(FRONTEND_DIR=str(tmp_path)).get("/")
    assert res.status_code == 404
    assert res.json()["error"] == "Entry page not found"


def test_gpt_releases_upstream_after_response(client_factory):
    upstream = FakeUpstream([delta("A"), DONE])
    client_factory(upstream).post("/api/gpt", json={"text": "hi"})
    assert upstream.closed


def test_relay_response_releases_upstream_when_client_is_gone():
    upstream = FakeUpstream([delta("A"), DONE])
    relay = CompletionRelay(UpstreamConfig(endpoint=ENDPOINT, key=GPT_KEY), transport=upstream.transport())

    async def send_to_vanished_client():
        events = await relay.start("hi")
        response = RelayResponse(events, media_type="text/event-stream")

        async def receive():
            await anyio.sleep_forever()

        async def send(message):
            raise OSError("client disconnected")

        with pytest.raises(Exception):
            await response({"type": "http", "asgi": {"spec_version": "2.4"}}, receive, send)

    anyio.run(send_to_vanished_client)

    assert upstream.closed
    assert relay.state is RelayState.ABORTED
