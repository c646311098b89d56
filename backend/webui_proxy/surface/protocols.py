# ------------------------------------------------------------
# Module: webui_proxy/surface/protocols.py
# Purpose: Minimal read/inject/commit contract the session driver depends on.
# ------------------------------------------------------------

"""Typed protocol for the interactive chat surface.

The submission driver and capture engine only talk to the page through this
interface, so their retry/verification/stability logic can be exercised with
an in-memory fake.

Responsibilities
----------------
- Describe one rendered reply segment (`SegmentState`).
- Describe one text-injection technique (`InjectionStrategy`).
- Declare the async operations a surface implementation must provide.

Notes
-----
- Every method is a suspension point; implementations must not block the loop.
- Segment indices are positions among currently *visible* reply segments.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, NamedTuple, Protocol


@dataclass(frozen=True)
class SegmentState:
    """Point-in-time read of one reply segment."""

    text: str
    spinning: bool = False


class InjectionStrategy(NamedTuple):
    """One way of getting text into the input widget.

    `attempt` performs the injection; it may return False (or raise) when the
    technique is unavailable. Success is decided by the driver's verifier.
    """

    name: str
    attempt: Callable[[str], Awaitable[bool]]


# Protocol describing the required interface for any surface implementation.
class Surface(Protocol):
    # Number of visible reply segments.
    async def segment_count(self) -> int: ...

    # Text and spinner flag of the segment at `index`; None if it is not rendered.
    async def read_segment(self, index: int) -> SegmentState | None: ...

    # True when the send control is visible and enabled.
    async def is_commit_actionable(self) -> bool: ...

    # True while the surface shows its "stop generating" control.
    async def is_generating(self) -> bool: ...

    # Current text of the input widget.
    async def read_input(self) -> str: ...

    # Empty the input widget (activation sequence included).
    async def clear_input(self) -> None: ...

    # Ordered injection techniques; tried first to last.
    def injection_strategies(self) -> Sequence[InjectionStrategy]: ...

    # Trigger reply generation; safe to call twice.
    async def commit(self) -> None: ...

    # Reload the conversation page.
    async def reset(self) -> None: ...

    def current_url(self) -> str | None: ...

    # Diagnostic snapshot of which page elements resolve.
    async def probe(self) -> dict[str, Any]: ...
