# ------------------------------------------------------------
# Module: webui_proxy/api/routes.py
# Purpose: Compose and expose the proxy's FastAPI routers.
# ------------------------------------------------------------

"""Central composition root for API routing.

Responsibilities
----------------
- Mount the OpenAI-compatible routers under /v1.
- Expose the unversioned operational routes (/healthz, /status, /reset).
- Keep the debug router separate; `create_app` mounts it only on request.
"""

from __future__ import annotations

from fastapi import APIRouter

from webui_proxy.api.debug import router as debug_router
from webui_proxy.api.ops import router as ops_router
from webui_proxy.api.v1.chat import router as chat_router
from webui_proxy.api.v1.models import router as models_router

# v1 composition root: webui_proxy.main mounts this under /v1.
v1_router: APIRouter = APIRouter()
v1_router.include_router(chat_router, tags=["chat"])
v1_router.include_router(models_router, tags=["models"])

router: APIRouter = APIRouter()
router.include_router(ops_router, tags=["ops"])

__all__ = ["debug_router", "router", "v1_router"]
