# ------------------------------------------------------------
# Module: tests/test_send_prompt.py
# Purpose: Prompt templates and response handling of the send_prompt CLI.
# ------------------------------------------------------------
from __future__ import annotations

from types import SimpleNamespace

from ops.tools.send_prompt import build_prompt, send


class _FakeCompletions:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return self.result


def _client(result):
    completions = _FakeCompletions(result)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


def test_templates_embed_their_arguments():
    assert "write a poem" in build_prompt("code-task", "write a poem")
    switch = build_prompt("switch", mode="architect", reason="plan first")
    assert "<mode_slug>architect</mode_slug>" in switch
    assert "<reason>plan first</reason>" in switch
    assert "Task: capital of France" in build_prompt("ask-xml", "capital of France")


def test_unknown_template_falls_back_to_code_task():
    assert build_prompt("nope", "do it") == build_prompt("code-task", "do it")


def test_send_non_stream_returns_message_content():
    message = SimpleNamespace(content="Paris")
    client, completions = _client(SimpleNamespace(choices=[SimpleNamespace(message=message)]))

    assert send(client, "gemini-webui", "Capital?", stream=False) == "Paris"
    assert completions.calls[0]["messages"] == [{"role": "user", "content": "Capital?"}]
    assert completions.calls[0]["stream"] is False


def test_send_stream_joins_deltas(capsys):
    chunks = [_chunk("Par"), _chunk(None), SimpleNamespace(choices=[]), _chunk("is")]
    client, _ = _client(iter(chunks))

    assert send(client, "gemini-webui", "Capital?", stream=True) == "Paris"
    assert "Paris" in capsys.readouterr().out
