"""
core/logging_config.py -- Log sink setup and the SECURITY event level.

Every log line is one JSON object:

    {"timestamp": "...", "level": "SECURITY", "logger": "app.auth",
     "message": "Login failed - unknown email", "meta": {"ip": "10.0.0.5"}}

Structured metadata travels through the stdlib `extra` mechanism:

    logger.info("User registered", extra={"meta": {"user_id": 7}})

SECURITY (35) sits between WARNING and ERROR so the usual level threshold
keeps it visible in production while still letting auditors grep for it.

[A09] Sensitive keys in meta are replaced before rendering. Password values,
password hashes, tokens and secrets never reach the sink, even if a caller
passes them by mistake.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from core.config import Settings

SECURITY = 35
logging.addLevelName(SECURITY, "SECURITY")

_REDACTED = "[REDACTED]"
_SENSITIVE_KEYS = frozenset(
    {"password", "password_hash", "hashed_password", "token", "secret", "jwt_secret", "authorization"}
)

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s %(message)s %(meta)s"


def redact(meta: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of meta with sensitive values masked (one level deep)."""
    return {k: (_REDACTED if k.lower() in _SENSITIVE_KEYS else v) for k, v in meta.items()}


class JsonFormatter(logging.Formatter):
    """Render a LogRecord as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        meta = getattr(record, "meta", None)
        if meta:
            entry["meta"] = redact(meta)
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class _TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        meta = getattr(record, "meta", None)
        record.meta = json.dumps(redact(meta), default=str) if meta else ""
        return super().format(record)


def configure_logging(settings: Settings) -> None:
    """Install a single stream handler on the root logger.

    Idempotent: repeated calls (app reloads, test lifespans) replace the
    handler instead of stacking duplicates.
    """
    handler = logging.StreamHandler()
    if settings.log_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(_TextFormatter(_TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_app_handler", False):
            root.removeHandler(existing)
    handler._app_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())


def security_event(logger: logging.Logger, message: str, **meta: Any) -> None:
    """Log an auth-relevant event (failed login, bad token) at SECURITY level."""
    logger.log(SECURITY, message, extra={"meta": meta})
