# ------------------------------------------------------------
# Module: webui_proxy/api/v1/schemas.py
# Purpose: Request models for the OpenAI-compatible endpoints.
# ------------------------------------------------------------

"""Pydantic request schemas.

Only the fields the proxy reads are declared; everything else an OpenAI
client sends (temperature, tools, stream_options, ...) is accepted and ignored.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """A single message in the chat history."""

    model_config = ConfigDict(extra="allow")

    role: str = "user"
    # Plain text or an array of content parts ({"type": "text", "text": ...}).
    content: str | list[Any] | None = None


class ChatCompletionRequest(BaseModel):
    """Body of POST /v1/chat/completions."""

    model_config = ConfigDict(extra="allow")

    model: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)
    # None means "client did not say"; the proxy streams by default.
    stream: bool | None = None


class TypeTestIn(BaseModel):
    text: str = Field("hello from type-test", min_length=1)
