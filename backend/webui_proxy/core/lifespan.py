# ------------------------------------------------------------
# Module: webui_proxy/core/lifespan.py
# Purpose: Manage FastAPI startup and shutdown lifecycle events.
# ------------------------------------------------------------

"""FastAPI lifespan context for startup and shutdown events.

Responsibilities
----------------
- Launch the browser surface at startup unless one was injected
  (tests pass a fake) or `LAUNCH_SURFACE` is off.
- Close only the surface this lifespan launched.
- Log timings and errors for observability.

Developer Guidance
------------------
- Shared objects live on `app.state` (`settings`, `session`, `surface`).
- Fail fast on startup errors; a proxy without a browser is useless.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI

from webui_proxy.surface.playwright_surface import PlaywrightSurface

logger = logging.getLogger("webui_proxy.lifespan")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Launch the page surface on startup and close it on shutdown."""
    t0 = time.perf_counter()
    settings = app.state.settings
    owned: PlaywrightSurface | None = None
    try:
        logger.info("startup begin")
        if getattr(app.state, "surface", None) is None and settings.LAUNCH_SURFACE:
            owned = PlaywrightSurface.from_settings(settings)
            await owned.start()
            app.state.surface = owned
        logger.info("startup ok duration_ms=%.1f", (time.perf_counter() - t0) * 1000)
    except Exception:
        logger.exception("startup failed")
        raise

    try:
        yield
    finally:
        try:
            logger.info("shutdown begin")
            app.state.session.force_release()
            if owned is not None:
                await owned.close()
                app.state.surface = None
            logger.info("shutdown ok")
        except Exception:
            logger.exception("shutdown failed")
