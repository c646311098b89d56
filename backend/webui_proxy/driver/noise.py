# ------------------------------------------------------------
# Module: webui_proxy/driver/noise.py
# Purpose: Strip loading/typing placeholders from raw segment text.
# ------------------------------------------------------------

"""Placeholder filtering for captured reply text.

The surface renders typing indicators and status phrases inside the reply
segment itself, in whatever locale the account uses. They must never reach
the caller, and they must not be confused with short real replies ("OK").

Notes
-----
- Filtering is substring removal, never a length threshold.
- A trailing run of dots/ellipsis is the animated typing indicator; it is
  dropped, so a reply ending in "." is delivered without that final dot.
"""

from __future__ import annotations

import re

PLACEHOLDER_PHRASES: tuple[str, ...] = (
    "Gemini is typing",
    "Gemini replied",
    "正在输入",
    "正在思考",
    "思考中",
    "生成中",
    "加载中",
)

_PLACEHOLDER_RE = re.compile("|".join(re.escape(p) for p in PLACEHOLDER_PHRASES), re.IGNORECASE)
_TRAILING_ELLIPSIS_RE = re.compile(r"[\s.…]+$")
_ONLY_ELLIPSIS_RE = re.compile(r"^[\s.…]*$")


def is_placeholder(text: str | None) -> bool:
    """True when `text` carries no reply content (empty, dots, or a status phrase)."""
    return clean_text(text) == ""


def clean_text(raw: str | None) -> str:
    """Return `raw` without placeholder phrases and trailing indicator dots.

    >>> clean_text("Gemini is typing…")
    ''
    >>> clean_text("OK.")
    'OK'
    """
    if not raw:
        return ""
    text = _PLACEHOLDER_RE.sub("", str(raw)).strip()
    if _ONLY_ELLIPSIS_RE.match(text):
        return ""
    return _TRAILING_ELLIPSIS_RE.sub("", text)
