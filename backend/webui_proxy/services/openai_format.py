# ------------------------------------------------------------
# Module: webui_proxy/services/openai_format.py
# Purpose: Render captured deltas as OpenAI chat-completion payloads / SSE frames.
# ------------------------------------------------------------

"""OpenAI wire shapes for the proxy.

Responsibilities
----------------
- Build `chat.completion.chunk` SSE frames, one per delta, in order.
- Terminate streams with a stop chunk and `data: [DONE]`.
- Build the aggregate `chat.completion` body and the error object.

Notes
-----
- Token usage is not observable through the surface; it is reported as zeros.
"""

from __future__ import annotations

import json
import time
import uuid

DONE_FRAME = "data: [DONE]\n\n"


def completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


def now_s() -> int:
    return int(time.time())


def _frame(payload: dict) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def chunk_frame(cid: str, model: str, delta: str, *, created: int | None = None) -> str:
    return _frame(
        {
            "id": cid,
            "object": "chat.completion.chunk",
            "created": created or now_s(),
            "model": model,
            "choices": [{"index": 0, "delta": {"content": delta}, "finish_reason": None}],
        }
    )


def stop_frame(cid: str, model: str, *, created: int | None = None) -> str:
    return _frame(
        {
            "id": cid,
            "object": "chat.completion.chunk",
            "created": created or now_s(),
            "model": model,
            "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}],
        }
    )


def completion_body(cid: str, model: str, content: str) -> dict:
    return {
        "id": cid,
        "object": "chat.completion",
        "created": now_s(),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
    }


def error_body(code: str, message: str | None = None) -> dict:
    return {"error": {"message": message or code, "type": "proxy_error", "code": code}}
