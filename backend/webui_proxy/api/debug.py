# ------------------------------------------------------------
# Module: webui_proxy/api/debug.py
# Purpose: Selector and injection diagnostics (mounted only when EXPOSE_INTERNALS).
# ------------------------------------------------------------

"""Debug endpoints for tuning selectors against a live page.

These read page state and, for `type-test`, type into the input without
sending. `type-test` takes the single-flight gate so it cannot interleave
with a real turn.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from webui_proxy.api.deps import error_response, get_session, get_settings, get_surface, request_cid
from webui_proxy.api.v1.schemas import TypeTestIn
from webui_proxy.core.errors import ProxyError
from webui_proxy.driver.noise import clean_text
from webui_proxy.driver.submission import SubmissionDriver
from webui_proxy.utils.logging_extras import log_adapter

router: APIRouter = APIRouter()
log = logging.getLogger("webui_proxy.api.debug")

PREVIEW_CHARS = 80


@router.get("/probe")
async def probe(request: Request):
    try:
        return await get_surface(request).probe()
    except ProxyError as e:
        return error_response(e)


@router.get("/segments")
async def segments(request: Request):
    """Every visible reply segment with length and a short preview."""
    try:
        surface = get_surface(request)
        count = await surface.segment_count()
        items = []
        for i in range(count):
            seg = await surface.read_segment(i)
            if seg is None:
                continue
            items.append(
                {
                    "index": i,
                    "text_len": len(seg.text),
                    "preview": seg.text[:PREVIEW_CHARS],
                    "spinning": seg.spinning,
                }
            )
    except ProxyError as e:
        return error_response(e)
    return {"count": count, "items": items}


@router.get("/peek")
async def peek(request: Request):
    """Newest segment, raw and after placeholder filtering."""
    try:
        surface = get_surface(request)
        count = await surface.segment_count()
        seg = await surface.read_segment(count - 1) if count else None
    except ProxyError as e:
        return error_response(e)
    if seg is None:
        return {"count": count, "raw": None, "text": None, "spinning": False}
    return {"count": count, "raw": seg.text, "text": clean_text(seg.text), "spinning": seg.spinning}


@router.post("/type-test")
async def type_test(body: TypeTestIn, request: Request):
    """Inject text with the strategy chain but do not send it."""
    cid = request_cid(request)
    lad = log_adapter(log, cid)
    try:
        surface = get_surface(request)
        handle = get_session(request).admit(body.text, cid=cid)
    except ProxyError as e:
        return error_response(e, lad)

    try:
        driver = SubmissionDriver(surface, get_settings(request))
        strategy = await driver.inject(body.text, cid=cid)
        return {
            "ok": True,
            "strategy": strategy,
            "send_ready": await surface.is_commit_actionable(),
            "input": await surface.read_input(),
        }
    except ProxyError as e:
        return error_response(e, lad)
    except Exception:
        lad.exception("type-test failed")
        return JSONResponse(status_code=500, content={"ok": False, "error": "type-test failed"})
    finally:
        handle.release("type_test")
