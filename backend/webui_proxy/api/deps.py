# ------------------------------------------------------------
# Module: webui_proxy/api/deps.py
# Purpose: Access shared app.state objects and map proxy errors to responses.
# ------------------------------------------------------------

"""Request-scoped helpers shared by the routers.

Keep routes thin: they pull the session/surface from `app.state` through
these helpers and convert `ProxyError` into the OpenAI-style error object.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from webui_proxy.core.config import Settings
from webui_proxy.core.errors import ProxyError, SurfaceUnavailable
from webui_proxy.services.openai_format import error_body
from webui_proxy.session.controller import Session
from webui_proxy.surface.protocols import Surface
from webui_proxy.utils.logging_extras import CID_HEADER, new_cid


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_session(request: Request) -> Session:
    return request.app.state.session


def get_surface(request: Request) -> Surface:
    surface = getattr(request.app.state, "surface", None)
    if surface is None:
        raise SurfaceUnavailable("browser surface is not running")
    return surface


def request_cid(request: Request) -> str:
    return request.headers.get(CID_HEADER) or new_cid()


def error_response(err: ProxyError, lad: logging.LoggerAdapter | None = None) -> JSONResponse:
    if lad:
        lad.warning("request.failed", extra={"code": err.code, "status": err.status})
    return JSONResponse(status_code=err.status, content=error_body(err.code, str(err)))
