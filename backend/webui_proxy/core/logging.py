# ------------------------------------------------------------
# Module: webui_proxy/core/logging.py
# Purpose: Centralized configuration for unified logging across the proxy.
# ------------------------------------------------------------

"""Configure unified, stdout-based logging for the proxy.

Responsibilities
----------------
- Initialize a single consistent logging setup at app startup.
- Respect env-based toggles from `settings` (log level, mute, access logs).
- Align Uvicorn's loggers with the app-level configuration.

Notes
-----
- `basicConfig` is idempotent unless `force=True`.
- Use `MUTE_ALL_LOGS` to silence all logs for CI or benchmarks.
- Playwright's own chatter stays at WARNING regardless of the app level.
"""

from __future__ import annotations

import logging
import sys

from webui_proxy.core.config import Settings
from webui_proxy.core.config import settings as _settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Attributes every LogRecord has; anything else arrived through `extra=`.
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "color_message",
}


class KeyValueFormatter(logging.Formatter):
    """Plain text formatter that appends `extra=` fields as `key=value`."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = [f"{k}={v}" for k, v in vars(record).items() if k not in _RECORD_ATTRS]
        return f"{line} {' '.join(pairs)}" if pairs else line


def configure_logging(settings: Settings = _settings) -> None:
    """Initialize global logging once at startup.

    Notes
    -----
    - Hard-mutes all logs if `MUTE_ALL_LOGS` is set.
    - Keeps Uvicorn loggers aligned with app-level log level.
    """
    # Hard mute: disables ALL logging below CRITICAL globally.
    if settings.MUTE_ALL_LOGS:
        logging.disable(logging.CRITICAL)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(KeyValueFormatter(LOG_FORMAT))
    logging.basicConfig(level=settings.LOG_LEVEL, handlers=[handler])

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(settings.LOG_LEVEL)
    logging.getLogger("playwright").setLevel(logging.WARNING)

    # Optionally suppress noisy per-request access logs (status polling is chatty).
    if not settings.ACCESS_LOG:
        logging.getLogger("uvicorn.access").disabled = True
