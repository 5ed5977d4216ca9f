"""
Structured logging helpers for crawl workflows.
"""

from __future__ import annotations

import json
import logging
from typing import Any

_MAX_FIELD_CHARS = 500


def log_event(
    logger: logging.Logger,
    level: int,
    event: str,
    *,
    exc_info: bool = False,
    **fields: Any,
) -> None:
    """
    Emit one crawl event as a compact JSON line.

    Long string fields (error bodies, page snippets) are clipped so a single
    misbehaving page cannot flood the log stream.
    """

    if not logger.isEnabledFor(level):
        return

    payload: dict[str, Any] = {"event": event}
    for key, value in fields.items():
        if isinstance(value, str) and len(value) > _MAX_FIELD_CHARS:
            value = value[:_MAX_FIELD_CHARS] + "..."
        payload[key] = value
    logger.log(level, json.dumps(payload, default=str, sort_keys=True), exc_info=exc_info)
