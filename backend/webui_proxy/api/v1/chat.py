# ------------------------------------------------------------
# Module: webui_proxy/api/v1/chat.py
# Purpose: OpenAI-compatible POST /v1/chat/completions (SSE and aggregate).
# ------------------------------------------------------------

"""Chat completions endpoint.

Thin adapter over `webui_proxy.services.chat`: it admits the turn, maps the
error taxonomy to HTTP statuses, and renders deltas as SSE frames.

Request lifecycle
-----------------
1. Parse the body and flatten messages into one prompt (400 when empty).
2. Admit + submit (429 busy, 502 submission failures).
3. Non-stream: capture the whole reply and return one `chat.completion`.
4. Stream: wait for the first delta *before* sending headers, so a reply that
   never appears is still a 502; afterwards a failure only ends the stream.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from webui_proxy.api.deps import error_response, get_session, get_settings, get_surface, request_cid
from webui_proxy.api.v1.schemas import ChatCompletionRequest
from webui_proxy.core.errors import NoTextCaptured, ProxyError
from webui_proxy.driver.capture import CaptureEngine
from webui_proxy.driver.submission import SubmissionDriver
from webui_proxy.services import chat as chat_service
from webui_proxy.services import openai_format as fmt
from webui_proxy.utils.logging_extras import log_adapter

router = APIRouter()
logger = logging.getLogger(__name__)

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"}


@router.post("/chat/completions")
async def chat_completions(body: ChatCompletionRequest, request: Request):
    cid = request_cid(request)
    lad = log_adapter(logger, cid)
    settings = get_settings(request)
    model = body.model or settings.MODEL_ID
    stream = chat_service.wants_stream(body.stream)
    lad.info("chat.request", extra={"messages": len(body.messages), "stream": stream})

    try:
        prompt = chat_service.prompt_from_messages([m.model_dump() for m in body.messages])
        surface = get_surface(request)
        driver = SubmissionDriver(surface, settings)
        handle = await chat_service.open_turn(get_session(request), driver, prompt, cid=cid)
    except ProxyError as e:
        return error_response(e, lad)
    except Exception:
        lad.exception("chat.submit error")
        return JSONResponse(status_code=502, content=fmt.error_body("proxy_error"))

    engine = CaptureEngine(surface, settings)
    completion = fmt.completion_id()

    if not stream:
        try:
            text = await chat_service.final_reply(handle, engine)
        except ProxyError as e:
            return error_response(e, lad)
        except Exception:
            lad.exception("chat.capture error")
            return JSONResponse(status_code=502, content=fmt.error_body("proxy_error"))
        lad.info("chat.done", extra={"chars": len(text)})
        return fmt.completion_body(completion, model, text)

    deltas = chat_service.stream_reply(handle, engine)
    try:
        first = await deltas.__anext__()
    except StopAsyncIteration:
        return error_response(NoTextCaptured("reply ended before any text"), lad)
    except ProxyError as e:
        return error_response(e, lad)
    except Exception:
        lad.exception("chat.capture error")
        return JSONResponse(status_code=502, content=fmt.error_body("proxy_error"))

    async def sse():
        created = fmt.now_s()
        sent = 1
        try:
            yield fmt.chunk_frame(completion, model, first, created=created)
            async for delta in deltas:
                sent += 1
                yield fmt.chunk_frame(completion, model, delta, created=created)
            yield fmt.stop_frame(completion, model, created=created)
            yield fmt.DONE_FRAME
            lad.info("chat.stream done", extra={"frames": sent})
        except ProxyError as e:
            # Headers already sent: end the stream without [DONE].
            lad.warning("chat.stream aborted", extra={"code": e.code, "frames": sent})
        except Exception:
            lad.exception("chat.stream aborted", extra={"frames": sent})
        finally:
            await deltas.aclose()

    return StreamingResponse(sse(), media_type="text/event-stream", headers=SSE_HEADERS)
