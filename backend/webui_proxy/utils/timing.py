# ------------------------------------------------------------
# Module: webui_proxy/utils/timing.py
# Purpose: Timing helpers and context-based logging for slow surface operations.
# ------------------------------------------------------------

"""Lightweight utilities for timing measurements and structured log timing.

Responsibilities
----------------
- Convert between the millisecond config knobs and asyncio's seconds.
- Provide a consistent context manager for timing browser start/reset.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager


def ms_to_s(ms: int | float) -> float:
    """Milliseconds (config unit) to seconds (asyncio unit)."""
    return ms / 1000.0


# Compute milliseconds elapsed since a given `time.perf_counter()` reading.
def ms_since(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)


@contextmanager
def log_timer(msg: str, logger: logging.Logger | logging.LoggerAdapter | None = None, **ctx):
    """
    Log a start/ok/failed message with elapsed time.

    Usage:
        with log_timer("surface.start", logger, url=url):
            ...
    """
    log = logger or logging.getLogger(__name__)
    t0 = time.perf_counter()
    if ctx:
        log.info("%s start %s", msg, ctx)
    else:
        log.info("%s start", msg)
    try:
        yield
    except Exception:
        log.error("%s failed after %dms", msg, ms_since(t0), exc_info=True)
        raise
    else:
        log.info("%s ok in %dms", msg, ms_since(t0))
