"""Structured logging — JSON in prod, coloured console in dev.

Key material never reaches a log line: ``redact_secrets`` masks credential
fields and shortens signatures before rendering.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, MutableMapping, Optional, TextIO

import structlog

from config.settings import settings

_configured = False

_SECRET_KEYS = frozenset({"private_key", "api_key", "sx_api_key", "password"})
_SIGNATURE_KEYS = frozenset({"signature", "taker_sig", "maker_sig"})
_SIGNATURE_PREFIX_CHARS = 10


def redact_secrets(
    _logger: Any,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Mask credentials and truncate signatures in *event_dict*."""
    for key in event_dict.keys() & _SECRET_KEYS:
        event_dict[key] = "***"
    for key in event_dict.keys() & _SIGNATURE_KEYS:
        value = event_dict[key]
        if isinstance(value, str) and len(value) > _SIGNATURE_PREFIX_CHARS:
            event_dict[key] = value[:_SIGNATURE_PREFIX_CHARS] + "..."
    return event_dict


def _renderer(env: str) -> structlog.types.Processor:
    if env == "dev":
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def setup_logging(
    level: Optional[str] = None,
    env: Optional[str] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """Route structlog through the stdlib root logger.

    *level* and *env* fall back to ``LOG_LEVEL`` / ``APP_ENV``; *stream*
    defaults to stdout.  Safe to call again: the root handler is replaced.
    """
    global _configured

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(env or settings.APP_ENV),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel((level or settings.LOG_LEVEL).upper())
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Bound logger for *name*; configures logging on first call."""
    if not _configured:
        setup_logging()
    return structlog.get_logger(name)
