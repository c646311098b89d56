# ------------------------------------------------------------
# Module: webui_proxy/driver/capture.py
# Purpose: Turn a mutating reply segment into monotonic text deltas.
# ------------------------------------------------------------

"""Answer capture engine.

Polls the newest reply segment beyond a turn's baseline, filters placeholder
noise, and yields append-only deltas until the reply is judged complete.

State machine: Idle → Polling → Stable (done) | TimedOut (partial or error).

Responsibilities
----------------
- Never read segments at or below the baseline (stale replies of past turns).
- Never retract or rewrite emitted text; a shrinking/diverging read is skipped.
- Declare completion by stability (no change for `STABLE_MS`, no spinner) or
  the short-reply shortcut (first text ≤ 5 chars, no spinner).
- After the loop, emit whatever rendered after the stability window closed.

Notes
-----
- A pause longer than `STABLE_MS` in a slow reply ends the turn early; the
  surface offers no signal to tell it apart from a finished reply.
- Timeout with some text is a success (partial reply); with none it raises
  `NoTextCaptured`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass

from webui_proxy.core.config import Settings
from webui_proxy.core.config import settings as _settings
from webui_proxy.core.errors import NoTextCaptured
from webui_proxy.driver.noise import clean_text
from webui_proxy.surface.protocols import SegmentState, Surface
from webui_proxy.utils.logging_extras import log_adapter
from webui_proxy.utils.timing import ms_to_s

logger = logging.getLogger(__name__)

# Replies this short ("OK", "好的") end on first sight unless the spinner is up.
SHORT_REPLY_MAX_CHARS = 5


@dataclass
class CaptureState:
    """Per-turn capture progress (owned by one engine run)."""

    emitted_text: str = ""
    # Last filtered text observed, emitted or not; any change restarts the stability window.
    last_seen: str = ""
    last_change_at: float = 0.0
    finalized: bool = False

    def advance(self, filtered: str, now: float) -> str:
        """Return the delta for `filtered` and record it; "" when nothing new.

        Only strict prefix-extensions of the emitted text produce a delta, but a
        rewrite or shrink still counts as a change for stability.
        """
        if filtered != self.last_seen:
            self.last_seen = filtered
            self.last_change_at = now
        if not filtered or filtered == self.emitted_text:
            return ""
        if not filtered.startswith(self.emitted_text):
            return ""
        delta = filtered[len(self.emitted_text):]
        self.emitted_text = filtered
        return delta


class CaptureEngine:
    """Capture one reply from `surface`.

    Parameters
    ----------
    surface
        The interactive surface.
    settings
        `MAX_ANSWER_MS`, `STABLE_MS`, `POLL_INTERVAL_MS`.
    clock, sleep
        Injectable time source (seconds) and sleeper for virtual-time tests.
    """

    def __init__(
        self,
        surface: Surface,
        settings: Settings = _settings,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.surface = surface
        self.settings = settings
        self.clock = clock
        self.sleep = sleep

    async def read_latest(self, baseline: int) -> SegmentState | None:
        """Newest segment beyond `baseline`, or None if the reply has not rendered."""
        count = await self.surface.segment_count()
        if count <= baseline:
            return None
        return await self.surface.read_segment(count - 1)

    async def capture_stream(self, baseline: int, *, cid: str | None = None) -> AsyncIterator[str]:
        """Yield text deltas of the reply that follows `baseline`.

        Raises `NoTextCaptured` if the timeout passes without any text.
        """
        lad = log_adapter(logger, cid)
        state = CaptureState()
        t0 = self.clock()
        max_s = ms_to_s(self.settings.MAX_ANSWER_MS)
        stable_s = ms_to_s(self.settings.STABLE_MS)
        poll_s = ms_to_s(self.settings.POLL_INTERVAL_MS)
        reason = "timeout"
        lad.info("capture.start", extra={"baseline": baseline})

        while self.clock() - t0 < max_s:
            seg = await self.read_latest(baseline)
            spinning = bool(seg and seg.spinning)
            now = self.clock()
            first = not state.emitted_text
            delta = state.advance(clean_text(seg.text if seg else ""), now)
            if delta:
                if first:
                    lad.info("capture.first_text", extra={"wait_ms": int((now - t0) * 1000)})
                yield delta
                if first and len(state.emitted_text) <= SHORT_REPLY_MAX_CHARS and not spinning:
                    reason = "short_reply"
                    break
            if state.emitted_text and not spinning and now - state.last_change_at >= stable_s:
                reason = "stable"
                break
            await self.sleep(poll_s)

        # Rendering may have caught up right at the stability boundary.
        seg = await self.read_latest(baseline)
        tail = state.advance(clean_text(seg.text if seg else ""), self.clock())
        if tail:
            yield tail

        state.finalized = True
        dur_ms = int((self.clock() - t0) * 1000)
        if not state.emitted_text:
            lad.error("capture.no_text", extra={"baseline": baseline, "dur_ms": dur_ms})
            raise NoTextCaptured("no reply text appeared before timeout")
        lad.info(
            "capture.done",
            extra={"reason": reason, "chars": len(state.emitted_text), "dur_ms": dur_ms},
        )

    async def capture_final(self, baseline: int, *, cid: str | None = None) -> str:
        """Aggregate form of `capture_stream`."""
        parts = [delta async for delta in self.capture_stream(baseline, cid=cid)]
        return "".join(parts)
