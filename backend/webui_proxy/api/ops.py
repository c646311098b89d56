# ------------------------------------------------------------
# Module: webui_proxy/api/ops.py
# Purpose: Liveness, status and conversation reset endpoints.
# ------------------------------------------------------------

"""Operational endpoints (unversioned).

Details:
    - `/healthz` never touches the browser; it answers as long as the
      process is up.
    - `/status` reports whether a turn is in flight and the page URL.
    - `/reset` force-releases the gate, so an abandoned turn cannot keep the
      proxy busy, then holds it while navigating to a fresh conversation.

Developer Guidance:
    - Keep these fast; they are polled by scripts and supervisors.
    - Always return JSON, never raise to the client.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from webui_proxy.api.deps import get_session, get_surface, request_cid
from webui_proxy.utils.logging_extras import log_adapter

router: APIRouter = APIRouter()
log = logging.getLogger("webui_proxy.api.ops")


@router.get("/healthz")
def healthz() -> dict[str, bool]:
    return {"ok": True}


@router.get("/status")
def status(request: Request) -> dict:
    session = get_session(request)
    surface = getattr(request.app.state, "surface", None)
    return {
        "ok": True,
        "busy": session.busy,
        "url": surface.current_url() if surface is not None else None,
        "ts": int(time.time() * 1000),
    }


@router.post("/reset")
async def reset(request: Request):
    """Start a new conversation on the page and clear any in-flight turn."""
    cid = request_cid(request)
    lad = log_adapter(log, cid)
    session = get_session(request)
    session.force_release()
    # Hold the gate while the page reloads so no turn can start mid-navigation.
    handle = session.admit("", cid=cid)
    try:
        surface = get_surface(request)
        await surface.reset()
    except Exception:
        lad.exception("reset failed")
        return JSONResponse(status_code=500, content={"ok": False, "error": "reset failed"})
    finally:
        handle.release("reset")
    lad.info("reset ok")
    return {"ok": True, "reset": True, "url": surface.current_url()}
