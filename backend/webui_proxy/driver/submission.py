# ------------------------------------------------------------
# Module: webui_proxy/driver/submission.py
# Purpose: Type one prompt into the surface and confirm a reply started.
# ------------------------------------------------------------

"""Submission driver: prompt in, confirmed generation start + baseline out.

Responsibilities
----------------
- Wait (best effort) for the surface to finish any previous reply.
- Record the baseline segment count *before* anything is typed.
- Try the surface's injection techniques in order until one verifies.
- Commit, confirm that generation started, retry the commit once.

Notes
-----
- The baseline is returned to the caller and threaded into the capture
  engine; recomputing it after commit would race the page's own rendering.
- Both failure kinds are terminal for the turn; nothing here retries across
  turns.
- No locking: the session gate guarantees a single caller.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import NamedTuple

from webui_proxy.core.config import Settings
from webui_proxy.core.config import settings as _settings
from webui_proxy.core.errors import SubmissionFailed, SubmissionNotStarted
from webui_proxy.surface.protocols import Surface
from webui_proxy.utils.logging_extras import log_adapter
from webui_proxy.utils.timing import ms_to_s

logger = logging.getLogger(__name__)

_ZERO_WIDTH_RE = re.compile("[\u200b-\u200d\ufeff]")
_WS_RE = re.compile(r"\s+")

# Rich-text editors reflow pasted text; a prefix this long identifies the prompt.
MATCH_HEAD_CHARS = 12
MATCH_MIN_RATIO = 0.7


class StrategyStep(NamedTuple):
    """One `(name, attempt, verify)` entry for `first_successful`."""

    name: str
    attempt: Callable[[], Awaitable[object]]
    verify: Callable[[], Awaitable[bool]]


def normalize_input_text(text: str) -> str:
    return _ZERO_WIDTH_RE.sub("", str(text).replace("\r", "").replace("\u00a0", " ")).strip()


def input_matches(current: str, expected: str) -> bool:
    """Heuristic read-back match between the editor content and the prompt.

    Accepts exact match, containment either way (editors sometimes duplicate
    the text), a matching head, or a length within 70% of the prompt.
    """
    cur = normalize_input_text(current)
    exp = normalize_input_text(expected)
    if not cur:
        return False
    if cur == exp:
        return True
    if exp in cur or cur in exp:
        return True
    head = exp[:MATCH_HEAD_CHARS]
    if head and head in cur:
        return True
    return len(cur) >= math.floor(len(exp) * MATCH_MIN_RATIO)


async def first_successful(
    steps: Iterable[StrategyStep], *, lad: logging.LoggerAdapter | None = None
) -> str | None:
    """Run `attempt` then `verify` for each step; return the first verified name.

    An attempt that raises counts as a failed step; the next one is tried.
    """
    lad = lad or log_adapter(logger, None)
    for step in steps:
        try:
            ok = await step.attempt()
        except Exception as e:
            lad.warning("submit.strategy.error", extra={"strategy": step.name, "error": str(e)[:200]})
            continue
        if ok is False:
            lad.info("submit.strategy.unavailable", extra={"strategy": step.name})
            continue
        if await step.verify():
            return step.name
        lad.info("submit.strategy.unverified", extra={"strategy": step.name})
    return None


class SubmissionDriver:
    """Drive one prompt into `surface` and confirm generation start.

    Parameters
    ----------
    surface
        The interactive surface (shared; admission guarantees exclusivity).
    settings
        Timing knobs (`IDLE_WAIT_MS`, `AFTER_INPUT_SETTLE_MS`, `VERIFY_MS`,
        `COMMIT_WAIT_MS`, `COMMIT_RETRY_WAIT_MS`, `POLL_INTERVAL_MS`).
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

    async def submit(self, prompt: str, *, cid: str | None = None) -> int:
        """Inject `prompt`, commit it, and return the pre-submission baseline.

        Raises
        ------
        SubmissionFailed
            No injection technique could be verified.
        SubmissionNotStarted
            Injection verified, but commit (plus one retry) showed no
            generation start.
        """
        lad = log_adapter(logger, cid)
        t0 = self.clock()

        if not await self._wait_for(self._is_idle, self.settings.IDLE_WAIT_MS):
            # Best effort only: a stuck "stop" control must not block new turns.
            lad.warning("submit.idle_timeout", extra={"wait_ms": self.settings.IDLE_WAIT_MS})

        baseline = await self.surface.segment_count()
        lad.info("submit.baseline", extra={"baseline": baseline, "prompt_len": len(prompt)})

        strategy = await self.inject(prompt, cid=cid)
        lad.info("submit.injected", extra={"strategy": strategy})

        await self.sleep(ms_to_s(self.settings.AFTER_INPUT_SETTLE_MS))
        await self._commit_and_confirm(baseline, lad)
        lad.info(
            "submit.started",
            extra={"baseline": baseline, "dur_ms": int((self.clock() - t0) * 1000)},
        )
        return baseline

    async def inject(self, prompt: str, *, cid: str | None = None) -> str:
        """Type `prompt` into the input without committing; return the strategy used."""
        lad = log_adapter(logger, cid)
        name = await first_successful(self._steps(prompt), lad=lad)
        if name is None:
            lad.error("submit.injection_failed", extra={"prompt_len": len(prompt)})
            raise SubmissionFailed("text injection could not be verified")
        return name

    async def injection_verified(self, prompt: str) -> bool:
        """Read-only check that the input currently holds `prompt` (or is sendable)."""
        current = await self.surface.read_input()
        if input_matches(current, prompt):
            return True
        if await self.surface.is_commit_actionable():
            return True
        return bool(_WS_RE.sub("", current or ""))

    def _steps(self, prompt: str) -> list[StrategyStep]:
        steps = []
        for strategy in self.surface.injection_strategies():

            async def attempt(strategy=strategy):
                await self.surface.clear_input()
                ok = await strategy.attempt(prompt)
                # Editors animate after input; let the DOM settle before reading back.
                await self.sleep(ms_to_s(self.settings.AFTER_INPUT_SETTLE_MS))
                return ok

            async def verify():
                return await self._wait_for(
                    lambda: self.injection_verified(prompt), self.settings.VERIFY_MS
                )

            steps.append(StrategyStep(strategy.name, attempt, verify))
        return steps

    async def _commit_and_confirm(self, baseline: int, lad: logging.LoggerAdapter) -> None:
        if not await self._wait_for(self.surface.is_commit_actionable, self.settings.COMMIT_WAIT_MS):
            lad.warning("submit.commit_not_actionable")

        await self.surface.commit()

        async def started() -> bool:
            return await self._generation_started(baseline)

        if await self._wait_for(started, self.settings.COMMIT_WAIT_MS):
            return

        lad.warning("submit.commit_retry", extra={"baseline": baseline})
        await self.surface.commit()
        if await self._wait_for(started, self.settings.COMMIT_RETRY_WAIT_MS):
            return

        lad.error("submit.not_started", extra={"baseline": baseline})
        raise SubmissionNotStarted("commit produced no generation start")

    async def _generation_started(self, baseline: int) -> bool:
        if await self.surface.segment_count() > baseline:
            return True
        return await self.surface.is_generating()

    async def _is_idle(self) -> bool:
        return not await self.surface.is_generating()

    async def _wait_for(self, predicate: Callable[[], Awaitable[bool]], timeout_ms: int) -> bool:
        """Poll `predicate` until true or `timeout_ms` elapses (checked at least once)."""
        deadline = self.clock() + ms_to_s(timeout_ms)
        while True:
            if await predicate():
                return True
            if self.clock() >= deadline:
                return False
            await self.sleep(ms_to_s(self.settings.POLL_INTERVAL_MS))
