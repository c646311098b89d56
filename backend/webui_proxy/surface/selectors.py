# ------------------------------------------------------------
# Module: webui_proxy/surface/selectors.py
# Purpose: CSS selector sets for the chat page (input, send, segments, spinners).
# ------------------------------------------------------------

"""Selectors observed on the Gemini web UI.

Candidate lists are ordered; the first resolving entry wins. Keep localized
variants (zh labels) next to the English ones.
"""

from __future__ import annotations

INPUT_SELECTOR = (
    'rich-textarea :is([contenteditable="true"][role="textbox"], div[contenteditable="true"])'
)

# Marker attribute put on the chosen editor so later lookups are unambiguous.
ACTIVE_INPUT_ATTR = "data-proxy-target"
ACTIVE_INPUT_SELECTOR = f'[{ACTIVE_INPUT_ATTR}="1"]'

SEND_SELECTORS: tuple[str, ...] = (
    '.send-button-container.visible button.send-button.submit[aria-label="Send message"]',
    'button[aria-label="Send message"]',
    'button[aria-label^="Send"]',
    'button[aria-label*="send" i]',
    'button[aria-label*="发送"]',
)

# "Stop generating" control; present only while a reply is being produced.
BUSY_SELECTOR = (
    'button[aria-label*="Stop"],button[aria-label*="停止"],button[aria-label*="停止生成"]'
)

SEGMENT_ROOT_SELECTORS: tuple[str, ...] = (
    'div[id^="model-response-message-content"]',
    '[data-message-author="model"]',
    '[data-message-author="assistant"]',
    'chat-message[data-actor="model"]',
)

SEGMENT_TEXT_SELECTOR = '.markdown, md-block, .prose, [data-testid="markdown"]'

SPINNER_SELECTORS: tuple[str, ...] = (
    '[data-testid*="spinner"]',
    '[aria-label*="loading" i]',
    '[role="progressbar"]',
    "md-circular-progress",
    "md-progress",
    ".loading,.spinner,.progress",
)

LIVE_REGION_SELECTOR = '[aria-live="polite"], [aria-live="assertive"]'
