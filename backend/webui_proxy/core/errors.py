# ------------------------------------------------------------
# Module: webui_proxy/core/errors.py
# Purpose: Typed proxy exceptions with stable codes for HTTP mapping.
# ------------------------------------------------------------

"""Exception types for the proxy core.

Each error carries the HTTP status and the stable `code` string the API layer
puts in the OpenAI-style error object, so routes never switch on messages.

Responsibilities
----------------
- Provide a base `ProxyError` for catch-all handling at the API boundary.
- Keep "could not type" distinct from "typed but would not send".
- Keep the taxonomy small; a partial reply on timeout is not an error.
"""

from __future__ import annotations


class ProxyError(Exception):
    """Base class for proxy failures."""

    status: int = 502
    code: str = "proxy_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)


class EmptyPrompt(ProxyError):
    """Raised when the request messages contain no usable text."""

    status = 400
    code = "empty_prompt"


class Busy(ProxyError):
    """Raised when a turn is already in flight (single-flight gate)."""

    status = 429
    code = "busy"


class SubmissionFailed(ProxyError):
    """Raised when no injection strategy could be verified."""

    code = "submission_failed"


class SubmissionNotStarted(ProxyError):
    """Raised when the prompt was typed but no reply generation started."""

    code = "submit_not_started"


class NoTextCaptured(ProxyError):
    """Raised when no non-placeholder text appeared before the capture timeout."""

    code = "no_text_captured"


class SurfaceError(ProxyError):
    """Raised when the browser surface itself fails (page closed, navigation)."""

    code = "proxy_error"


class SurfaceUnavailable(ProxyError):
    """Raised when no surface is attached (browser not launched)."""

    status = 503
    code = "surface_unavailable"
