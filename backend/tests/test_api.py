# ------------------------------------------------------------
# Module: tests/test_api.py
# Purpose: HTTP contract of the OpenAI-compatible and operational endpoints.
# ------------------------------------------------------------
from __future__ import annotations

import json

from fastapi.testclient import TestClient

from webui_proxy.core.errors import Busy, SurfaceError
from webui_proxy.main import create_app
from webui_proxy.session.controller import Session
from webui_proxy.surface.protocols import InjectionStrategy, SegmentState

from conftest import FakeSurface, fast_settings


def _chat(client, content="Capital of France?", **body):
    payload = {"model": "gemini-webui", "messages": [{"role": "user", "content": content}]}
    payload.update(body)
    return client.post("/v1/chat/completions", json=payload)


def _sse_payloads(text: str) -> list:
    frames = [line[len("data: "):] for line in text.splitlines() if line.startswith("data: ")]
    return [f if f == "[DONE]" else json.loads(f) for f in frames]


def _assert_error(response, status: int, code: str) -> None:
    assert response.status_code == status
    err = response.json()["error"]
    assert err["code"] == code
    assert err["type"] == "proxy_error"
    assert isinstance(err["message"], str)


def _fail_reads_after_first(surface, error):
    read = surface.read_segment
    calls = []

    async def read_segment(index):
        calls.append(index)
        if len(calls) > 1:
            raise error
        return await read(index)

    surface.read_segment = read_segment


def test_non_stream_returns_chat_completion(client, surface):
    response = _chat(client, stream=False)

    assert response.status_code == 200
    body = response.json()
    assert body["object"] == "chat.completion"
    assert body["model"] == "gemini-webui"
    assert body["choices"][0]["message"] == {"role": "assistant", "content": "Hello from the page"}
    assert body["choices"][0]["finish_reason"] == "stop"
    assert surface.typed == ["Capital of France?"]


def test_stream_is_default_and_ends_with_done(client):
    response = _chat(client)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    payloads = _sse_payloads(response.text)
    assert payloads[-1] == "[DONE]"
    chunks = payloads[:-1]
    assert all(c["object"] == "chat.completion.chunk" for c in chunks)
    assert len({c["id"] for c in chunks}) == 1
    assert chunks[-1]["choices"][0]["finish_reason"] == "stop"
    text = "".join(c["choices"][0]["delta"].get("content", "") for c in chunks)
    assert text == "Hello from the page"


def test_stream_relays_growing_reply_as_deltas():
    surface = FakeSurface(reply=["Hello wor", "Hello world, how", "Hello world, how are you"])
    with TestClient(create_app(fast_settings(), surface=surface, session=Session(500))) as client:
        response = _chat(client, stream=True)

    chunks = _sse_payloads(response.text)[:-1]
    deltas = [c["choices"][0]["delta"]["content"] for c in chunks if c["choices"][0]["delta"]]
    assert deltas == ["Hello wor", "ld, how", " are you"]


def test_gate_is_free_after_each_turn(client, app):
    assert _chat(client, stream=False).status_code == 200
    assert not app.state.session.busy

    app.state.surface.reply = ["Second answer"]
    assert _chat(client, stream=True).status_code == 200
    assert not app.state.session.busy


def test_surface_error_mid_stream_ends_without_done():
    surface = FakeSurface(reply=[SegmentState("Partial answer so far", spinning=True)])
    _fail_reads_after_first(surface, SurfaceError("page went away"))
    app = create_app(fast_settings(), surface=surface, session=Session(500))
    with TestClient(app) as client:
        response = _chat(client, stream=True)

    assert response.status_code == 200
    payloads = _sse_payloads(response.text)
    assert "[DONE]" not in payloads
    assert payloads[0]["choices"][0]["delta"]["content"] == "Partial answer so far"
    assert all(p["choices"][0]["finish_reason"] != "stop" for p in payloads)
    assert not app.state.session.busy


def test_unexpected_error_mid_stream_ends_without_done():
    surface = FakeSurface(reply=[SegmentState("Partial answer so far", spinning=True)])
    _fail_reads_after_first(surface, RuntimeError("page crashed"))
    app = create_app(fast_settings(), surface=surface, session=Session(500))
    with TestClient(app) as client:
        response = _chat(client, stream=True)

    assert response.status_code == 200
    payloads = _sse_payloads(response.text)
    assert len(payloads) == 1
    assert payloads[0]["choices"][0]["delta"]["content"] == "Partial answer so far"
    assert not app.state.session.busy


def test_messages_are_joined_into_one_prompt(client, surface):
    messages = [
        {"role": "system", "content": "Answer briefly."},
        {"role": "user", "content": [{"type": "text", "text": "Capital of France?"}]},
    ]
    response = client.post("/v1/chat/completions", json={"messages": messages, "stream": False})

    assert response.status_code == 200
    assert surface.typed == ["Answer briefly.\n\n---\n\nCapital of France?"]


def test_model_defaults_to_configured_id(client):
    response = client.post(
        "/v1/chat/completions",
        json={"messages": [{"role": "user", "content": "hi there"}], "stream": False},
    )
    assert response.json()["model"] == "gemini-webui"


def test_empty_prompt_is_400(client, surface):
    _assert_error(_chat(client, content="   "), 400, "empty_prompt")
    assert surface.commits == 0


def test_busy_is_429(client, app, monkeypatch):
    def admit(*args, **kwargs):
        raise Busy("busy: single-flight in progress")

    monkeypatch.setattr(app.state.session, "admit", admit)

    _assert_error(_chat(client), 429, "busy")


def test_unverified_injection_is_502_submission_failed():
    async def does_nothing(text):
        return True

    surface = FakeSurface(send_ready=False, strategies=[InjectionStrategy("noop", does_nothing)])
    app = create_app(fast_settings(), surface=surface, session=Session(500))
    with TestClient(app) as client:
        _assert_error(_chat(client, stream=False), 502, "submission_failed")
    assert not app.state.session.busy


def test_commit_without_reply_is_502_submit_not_started():
    surface = FakeSurface(reply=None, send_ready=False)
    with TestClient(create_app(fast_settings(), surface=surface, session=Session(500))) as client:
        _assert_error(_chat(client), 502, "submit_not_started")
    assert surface.commits == 2


def test_placeholder_only_reply_is_502_no_text_captured_when_streaming():
    surface = FakeSurface(reply=["Gemini is typing…"])
    with TestClient(create_app(fast_settings(), surface=surface, session=Session(500))) as client:
        _assert_error(_chat(client, stream=True), 502, "no_text_captured")


def test_placeholder_only_reply_is_502_no_text_captured():
    surface = FakeSurface(reply=["…"])
    with TestClient(create_app(fast_settings(), surface=surface, session=Session(500))) as client:
        _assert_error(_chat(client, stream=False), 502, "no_text_captured")


def test_unexpected_surface_failure_is_502_proxy_error():
    surface = FakeSurface(reply=["unused"])

    async def broken_count():
        raise RuntimeError("page crashed")

    surface.segment_count = broken_count
    with TestClient(create_app(fast_settings(), surface=surface, session=Session(500))) as client:
        _assert_error(_chat(client, stream=False), 502, "proxy_error")


def test_missing_surface_is_503():
    with TestClient(create_app(fast_settings(), surface=None, session=Session(500))) as client:
        _assert_error(_chat(client), 503, "surface_unavailable")


def test_models_lists_configured_model(client):
    response = client.get("/v1/models")

    assert response.status_code == 200
    body = response.json()
    assert body["object"] == "list"
    assert [m["id"] for m in body["data"]] == ["gemini-webui"]
    assert body["data"][0]["owned_by"] == "local"


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_status_reports_gate_and_url(client):
    body = client.get("/status").json()

    assert body["ok"] is True
    assert body["busy"] is False
    assert body["url"] == "https://chat.example/app"
    assert isinstance(body["ts"], int)


def test_reset_reloads_page_and_frees_gate(client, app, surface):
    response = client.post("/reset")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "reset": True, "url": "https://chat.example/app"}
    assert surface.resets == 1
    assert not app.state.session.busy


def test_reset_holds_gate_while_page_reloads(client, app, surface):
    busy_during_reload = []

    async def reload():
        busy_during_reload.append(app.state.session.busy)
        surface.resets += 1

    surface.reset = reload

    assert client.post("/reset").status_code == 200
    assert busy_during_reload == [True]
    assert not app.state.session.busy


def test_reset_failure_is_500(client, surface):
    async def broken_reset():
        raise RuntimeError("navigation failed")

    surface.reset = broken_reset

    response = client.post("/reset")
    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "reset failed"}


def test_debug_routes_hidden_by_default(client):
    assert client.get("/debug/probe").status_code == 404


def test_debug_routes_when_internals_exposed():
    surface = FakeSurface(reply=None)
    surface.put(0, "Earlier answer")
    surface.put(1, "Gemini is typing", spinning=True)
    app = create_app(fast_settings(EXPOSE_INTERNALS=True), surface=surface, session=Session(500))
    with TestClient(app) as client:
        assert client.get("/debug/probe").json()["segments"] == 2

        segments = client.get("/debug/segments").json()
        assert segments["count"] == 2
        assert segments["items"][0]["preview"] == "Earlier answer"
        assert segments["items"][1]["spinning"] is True

        peek = client.get("/debug/peek").json()
        assert peek["raw"] == "Gemini is typing"
        assert peek["text"] == ""

        typed = client.post("/debug/type-test", json={"text": "just typing"}).json()
        assert typed["ok"] is True
        assert typed["strategy"] == "fake_type"
        assert typed["input"] == "just typing"
        assert typed["send_ready"] is True

    assert surface.commits == 0
    assert not app.state.session.busy


def test_correlation_id_header_is_accepted(client):
    response = client.post(
        "/v1/chat/completions",
        json={"messages": [{"role": "user", "content": "hello"}], "stream": False},
        headers={"x-correlation-id": "abc123"},
    )
    assert response.status_code == 200
