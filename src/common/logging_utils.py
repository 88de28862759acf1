"""Centralized logging helpers.

Every module logs through ``logging.getLogger(__name__)``; structured fields
travel in ``extra=`` built with :func:`extra_context` so a formatter can pick
them up without changing call sites.
"""
from __future__ import annotations

import logging
import os
import re
import time
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from constants import Constants

_SENSITIVE_KEYS = ("token", "key", "secret", "password", "auth", "signature")
_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9\-\._~\+/]+=*", re.IGNORECASE)


class ContextFormatter(logging.Formatter):
    """Appends ``key=value`` pairs for structured fields when present."""

    _fields = (
        "event", "component", "action", "outcome", "target", "package",
        "version", "status_code", "attempt", "duration_ms", "count",
    )

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        parts = []
        for name in self._fields:
            value = getattr(record, name, None)
            if value is not None:
                parts.append(f"{name}={value}")
        if parts:
            return f"{base} [{' '.join(parts)}]"
        return base


def configure_logging() -> None:
    """Configure the root logger from ``PKGLOCK_LOG_LEVEL``.

    Safe to call repeatedly; an existing console handler is reused.
    """
    level_name = os.environ.get(Constants.ENV_LOG_LEVEL, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    for handler in root.handlers:
        if getattr(handler, "_pkglock_console", False):
            return
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter(Constants.LOG_FORMAT))
    handler._pkglock_console = True  # type: ignore[attr-defined]
    root.addHandler(handler)


def is_debug_enabled(logger: logging.Logger) -> bool:
    """Return True when DEBUG records would be emitted by ``logger``."""
    return logger.isEnabledFor(logging.DEBUG)


def extra_context(**fields: Any) -> Dict[str, Any]:
    """Build an ``extra`` mapping, dropping None values."""
    return {k: v for k, v in fields.items() if v is not None}


def redact(text: Optional[str]) -> Optional[str]:
    """Mask bearer tokens embedded in free text."""
    if text is None:
        return None
    return _BEARER_RE.sub(r"\1[REDACTED]", text)


def safe_url(url: str) -> str:
    """Return ``url`` with credentials and sensitive query values masked."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    netloc = parts.netloc
    if "@" in netloc:
        netloc = "[REDACTED]@" + netloc.split("@", 1)[1]
    query = parts.query
    if query:
        pairs = []
        for key, value in parse_qsl(query, keep_blank_values=True):
            if any(s in key.lower() for s in _SENSITIVE_KEYS):
                value = "[REDACTED]"
            pairs.append((key, value))
        query = urlencode(pairs, safe="[]")
    return urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))


class Timer:
    """Context manager measuring wall time in milliseconds."""

    def __init__(self) -> None:
        self._start = 0.0
        self._end: Optional[float] = None

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._end = time.perf_counter()

    def duration_ms(self) -> float:
        end = self._end if self._end is not None else time.perf_counter()
        return round((end - self._start) * 1000.0, 2)
