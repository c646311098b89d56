# ------------------------------------------------------------
# Module: tests/conftest.py
# Purpose: In-memory surface, virtual clock and app fixtures for the proxy tests.
# ------------------------------------------------------------
from __future__ import annotations

import asyncio
from typing import Any

import pytest
from fastapi.testclient import TestClient

from webui_proxy.core.config import Settings
from webui_proxy.main import create_app
from webui_proxy.session.controller import Session
from webui_proxy.surface.protocols import InjectionStrategy, SegmentState


class VirtualClock:
    """Monotonic clock in seconds; `sleep` advances it and fires due events."""

    def __init__(self) -> None:
        self.now = 0.0
        self._events: list[tuple[float, Any]] = []

    def __call__(self) -> float:
        return self.now

    def at(self, when: float, action) -> None:
        self._events.append((when, action))
        self._events.sort(key=lambda ev: ev[0])

    async def sleep(self, seconds: float) -> None:
        self.now += seconds
        while self._events and self._events[0][0] <= self.now + 1e-9:
            _, action = self._events.pop(0)
            action()
        await asyncio.sleep(0)


class ScriptedSegment:
    """Reply segment that shows its frames one read at a time, then holds the last."""

    def __init__(self, *frames: str | SegmentState):
        self.frames = [f if isinstance(f, SegmentState) else SegmentState(f) for f in frames]

    def read(self) -> SegmentState:
        state = self.frames[0]
        if len(self.frames) > 1:
            self.frames.pop(0)
        return state


class FakeSurface:
    """In-memory chat page.

    - `segments` holds `SegmentState` or `ScriptedSegment` items.
    - The default injection strategy types straight into `input_text`.
    - `commit()` appends `reply` (if any) as a new segment and empties the input.
    - `send_ready=None` means the send control is enabled whenever the input has text.
    """

    def __init__(
        self,
        *,
        segments: list | None = None,
        reply: list[str | SegmentState] | None = None,
        strategies: list[InjectionStrategy] | None = None,
        send_ready: bool | None = None,
    ):
        self.segments: list = list(segments or [])
        self.reply = reply
        self.send_ready = send_ready
        self.generating = False
        self.input_text = ""
        self.commits = 0
        self.clears = 0
        self.resets = 0
        self.typed: list[str] = []
        self.read_indices: list[int] = []
        self.url = "https://chat.example/app"
        self._strategies = strategies

    # Surface protocol -------------------------------------------------
    async def segment_count(self) -> int:
        return len(self.segments)

    async def read_segment(self, index: int) -> SegmentState | None:
        if index < 0 or index >= len(self.segments):
            return None
        self.read_indices.append(index)
        seg = self.segments[index]
        return seg.read() if isinstance(seg, ScriptedSegment) else seg

    async def is_commit_actionable(self) -> bool:
        if self.send_ready is not None:
            return self.send_ready
        return bool(self.input_text.strip())

    async def is_generating(self) -> bool:
        return self.generating

    async def read_input(self) -> str:
        return self.input_text

    async def clear_input(self) -> None:
        self.clears += 1
        self.input_text = ""

    def injection_strategies(self) -> list[InjectionStrategy]:
        if self._strategies is not None:
            return self._strategies
        return [InjectionStrategy("fake_type", self.type_text)]

    async def type_text(self, text: str) -> bool:
        self.typed.append(text)
        self.input_text = text
        return True

    async def commit(self) -> None:
        self.commits += 1
        self.input_text = ""
        if self.reply is not None:
            self.segments.append(ScriptedSegment(*self.reply))
            self.reply = None

    async def reset(self) -> None:
        self.resets += 1
        self.segments = []

    def current_url(self) -> str | None:
        return self.url

    async def probe(self) -> dict[str, Any]:
        return {"url": self.url, "input": True, "segments": len(self.segments)}

    # Helpers -----------------------------------------------------------
    def put(self, index: int, text: str, spinning: bool = False) -> None:
        state = SegmentState(text, spinning)
        if index < len(self.segments):
            self.segments[index] = state
        else:
            self.segments.append(state)


def fast_settings(**overrides) -> Settings:
    """Settings with millisecond-scale waits for real-time API tests."""
    values = dict(
        LAUNCH_SURFACE=False,
        MUTE_ALL_LOGS=True,
        IDLE_WAIT_MS=0,
        AFTER_INPUT_SETTLE_MS=0,
        VERIFY_MS=50,
        COMMIT_WAIT_MS=50,
        COMMIT_RETRY_WAIT_MS=50,
        POLL_INTERVAL_MS=5,
        STABLE_MS=30,
        MAX_ANSWER_MS=300,
        WATCHDOG_MARGIN_MS=200,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def settings() -> Settings:
    """Production timing defaults, driven by the virtual clock."""
    return Settings(LAUNCH_SURFACE=False, MUTE_ALL_LOGS=True)


@pytest.fixture
def surface() -> FakeSurface:
    return FakeSurface(reply=["Hello from the page"])


@pytest.fixture
def app(surface):
    return create_app(fast_settings(), surface=surface, session=Session(500))


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
