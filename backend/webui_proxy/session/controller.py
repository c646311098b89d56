# ------------------------------------------------------------
# Module: webui_proxy/session/controller.py
# Purpose: Single-flight admission gate with watchdog-based forced release.
# ------------------------------------------------------------

"""Session controller for the one shared chat surface.

Responsibilities
----------------
- Admit at most one turn at a time; reject (never queue) the rest with `Busy`.
- Arm a watchdog per turn that frees the gate even if the turn is stuck.
- Give each turn a handle whose `release()` takes effect exactly once.

Notes
-----
- `admit()` has no await between check and set; on a single event loop that
  makes admission atomic.
- A handle expired by the watchdog can no longer touch the gate, so a late
  release from an abandoned turn never frees a newer turn's slot.
- Disconnect is treated like cancellation: the surface interaction is
  abandoned (the page has no cancel primitive) and the gate is released.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from webui_proxy.core.errors import Busy
from webui_proxy.utils.logging_extras import log_adapter, new_cid
from webui_proxy.utils.timing import ms_to_s

logger = logging.getLogger(__name__)


@dataclass
class Turn:
    """One submit-then-capture cycle."""

    prompt: str
    cid: str
    started_at: float = field(default_factory=time.time)
    baseline: int | None = None


class TurnHandle:
    """Admission ticket for one turn; release it exactly once."""

    def __init__(self, session: Session, turn: Turn):
        self.session = session
        self.turn = turn
        self.released = False
        self.expired = False
        self._watchdog: asyncio.TimerHandle | None = None

    @property
    def active(self) -> bool:
        return not (self.released or self.expired)

    def set_baseline(self, baseline: int) -> None:
        self.turn.baseline = baseline
        if self.session.current is self:
            self.session.active_baseline = baseline

    def release(self, reason: str = "done") -> None:
        """Disarm the watchdog and free the gate; later calls are no-ops."""
        if self.released:
            return
        self.released = True
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None
        self.session._clear(self, reason)

    def _expire(self) -> None:
        self._watchdog = None
        if self.released:
            return
        self.expired = True
        log_adapter(logger, self.turn.cid).warning(
            "turn.watchdog_fired",
            extra={"age_ms": int((time.time() - self.turn.started_at) * 1000)},
        )
        self.session._clear(self, "watchdog")


class Session:
    """Process-wide single-flight gate.

    Parameters
    ----------
    watchdog_ms
        Hard upper bound for one turn (`MAX_ANSWER_MS` + margin).
    """

    def __init__(self, watchdog_ms: int):
        self.watchdog_ms = watchdog_ms
        self.current: TurnHandle | None = None
        self.active_baseline: int | None = None

    @property
    def busy(self) -> bool:
        return self.current is not None

    def admit(self, prompt: str = "", *, cid: str | None = None) -> TurnHandle:
        """Admit a new turn or raise `Busy`.

        Must be called from the event loop thread (the watchdog is a loop timer).
        """
        turn = Turn(prompt=prompt, cid=cid or new_cid())
        lad = log_adapter(logger, turn.cid)
        if self.current is not None:
            lad.info("turn.rejected_busy", extra={"active_cid": self.current.turn.cid})
            raise Busy("busy: single-flight in progress")

        handle = TurnHandle(self, turn)
        self.current = handle
        self.active_baseline = None
        loop = asyncio.get_running_loop()
        handle._watchdog = loop.call_later(ms_to_s(self.watchdog_ms), handle._expire)
        lad.info("turn.admit", extra={"prompt_len": len(prompt), "watchdog_ms": self.watchdog_ms})
        return handle

    def force_release(self) -> None:
        """Operator reset: free the gate regardless of the in-flight turn."""
        handle = self.current
        if handle is None:
            return
        log_adapter(logger, handle.turn.cid).warning("turn.force_release")
        handle.expired = True
        if handle._watchdog is not None:
            handle._watchdog.cancel()
            handle._watchdog = None
        self._clear(handle, "reset")

    def _clear(self, handle: TurnHandle, reason: str) -> None:
        if self.current is not handle:
            return
        self.current = None
        self.active_baseline = None
        log_adapter(logger, handle.turn.cid).info(
            "turn.release",
            extra={
                "reason": reason,
                "dur_ms": int((time.time() - handle.turn.started_at) * 1000),
            },
        )
