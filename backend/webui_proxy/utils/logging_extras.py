# ------------------------------------------------------------
# Module: webui_proxy/utils/logging_extras.py
# Purpose: Contextual logging with per-turn correlation IDs.
# ------------------------------------------------------------

"""Helpers for correlating log lines of one chat turn.

Notes
-----
- The API layer takes the id from `x-correlation-id` or generates one; every
  component touching the turn logs through an adapter built here.
- When `cid` is None, the adapter adds no extra field.
"""

from __future__ import annotations

import logging
import uuid

CID_HEADER = "x-correlation-id"


class _ContextAdapter(logging.LoggerAdapter):
    """LoggerAdapter that keeps call-site `extra=` fields next to the cid."""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def new_cid() -> str:
    """Short random correlation id (12 hex chars)."""
    return uuid.uuid4().hex[:12]


def log_adapter(logger: logging.Logger, cid: str | None) -> logging.LoggerAdapter:
    """Return a `LoggerAdapter` that injects an optional correlation ID.

    Example
    -------
    >>> log = log_adapter(logging.getLogger(__name__), cid="abc123")
    >>> log.info("turn.admit")
    # emits the record with record.cid == "abc123"
    """
    return _ContextAdapter(logger, extra={"cid": cid} if cid else {})
