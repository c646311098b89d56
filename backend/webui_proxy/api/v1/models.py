# ------------------------------------------------------------
# Module: webui_proxy/api/v1/models.py
# Purpose: OpenAI-compatible model listing.
# ------------------------------------------------------------

"""GET /v1/models: a single static entry naming the proxied web UI."""

from __future__ import annotations

from fastapi import APIRouter, Request

from webui_proxy.api.deps import get_settings
from webui_proxy.services.openai_format import now_s

router: APIRouter = APIRouter()


@router.get("/models")
def list_models(request: Request) -> dict:
    settings = get_settings(request)
    return {
        "object": "list",
        "data": [
            {
                "id": settings.MODEL_ID,
                "object": "model",
                "created": now_s(),
                "owned_by": "local",
            }
        ],
    }
