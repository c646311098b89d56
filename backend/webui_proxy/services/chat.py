# ------------------------------------------------------------
# Module: webui_proxy/services/chat.py
# Purpose: Orchestrate one chat turn: admit → submit → capture → release.
# ------------------------------------------------------------

"""Turn orchestration between the HTTP layer and the session driver.

Responsibilities
----------------
- Flatten OpenAI chat messages into the single prompt the surface accepts.
- Admit the turn, submit the prompt, and thread the baseline to capture.
- Guarantee the admission handle is released on success, error, and
  cancellation (client disconnect).

Notes
-----
- The surface keeps its own conversation; every message of the request is
  sent as one prompt, separated by `PROMPT_SEPARATOR`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from webui_proxy.core.errors import EmptyPrompt
from webui_proxy.driver.capture import CaptureEngine
from webui_proxy.driver.submission import SubmissionDriver
from webui_proxy.session.controller import Session, TurnHandle
from webui_proxy.utils.logging_extras import log_adapter

logger = logging.getLogger(__name__)

PROMPT_SEPARATOR = "\n\n---\n\n"


def message_text(message: Mapping[str, Any] | None) -> str:
    """Text of one message: a plain string, or the `text` parts of a content array."""
    if not message:
        return ""
    content = message.get("content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, Mapping) and part.get("type") == "text":
                parts.append(part.get("text") or "")
        return "\n".join(p for p in parts if p)
    return ""


def prompt_from_messages(messages: Sequence[Mapping[str, Any]]) -> str:
    """Join every non-empty message text into one prompt; raise `EmptyPrompt` if none."""
    texts = [message_text(m) for m in messages or []]
    prompt = PROMPT_SEPARATOR.join(t for t in texts if t).strip()
    if not prompt:
        raise EmptyPrompt("empty prompt")
    return prompt


def wants_stream(stream: bool | None) -> bool:
    """Streaming is the default when the client does not say."""
    return True if stream is None else bool(stream)


async def open_turn(
    session: Session, driver: SubmissionDriver, prompt: str, *, cid: str | None = None
) -> TurnHandle:
    """Admit and submit one prompt; the returned handle carries the baseline.

    Raises `Busy`, `SubmissionFailed` or `SubmissionNotStarted`; the handle is
    released before any of the submission errors propagate.
    """
    handle = session.admit(prompt, cid=cid)
    try:
        baseline = await driver.submit(prompt, cid=handle.turn.cid)
    except BaseException:
        handle.release("submit_error")
        raise
    handle.set_baseline(baseline)
    return handle


async def stream_reply(handle: TurnHandle, engine: CaptureEngine) -> AsyncIterator[str]:
    """Yield reply deltas for an open turn; always releases the handle.

    Closing the generator early (client gone) abandons the capture and frees
    the gate; the page keeps generating on its own.
    """
    lad = log_adapter(logger, handle.turn.cid)
    outcome = "error"
    deltas = engine.capture_stream(handle.turn.baseline or 0, cid=handle.turn.cid)
    try:
        async for delta in deltas:
            if not handle.active:
                # Watchdog already freed the gate; a newer turn may own the surface.
                lad.warning("turn.stream_expired")
                outcome = "expired"
                return
            yield delta
        outcome = "done"
    except GeneratorExit:
        outcome = "disconnect"
        raise
    finally:
        try:
            await deltas.aclose()
        finally:
            handle.release(outcome)


async def final_reply(handle: TurnHandle, engine: CaptureEngine) -> str:
    """Aggregate reply for an open turn; always releases the handle."""
    outcome = "error"
    try:
        text = await engine.capture_final(handle.turn.baseline or 0, cid=handle.turn.cid)
        outcome = "done"
        return text
    finally:
        handle.release(outcome)
