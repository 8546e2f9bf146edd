from __future__ import annotations

"""
Structured logging setup for zkrunner.

This module configures **structlog** + the stdlib ``logging`` package so that:
- Orchestrator transitions, adapter calls and import reads are emitted as
  structured events (JSON, or a pretty console renderer for local use).
- Context variables (e.g., a session id bound by the host app) are merged
  into each event.
- Proof payloads never end up in logs verbatim.

Quick start
-----------
    from zkrunner.logging import setup_logging, get_logger

    setup_logging()  # call once on process start
    log = get_logger(__name__)
    log.info("proof_generated", backend="cairo-m", proof_size=128)

Level and format default to ``Settings.log_level`` / ``Settings.log_format``.
"""

import logging
from typing import Any, Dict, Iterable, Optional

import structlog
from structlog.contextvars import merge_contextvars
from structlog.processors import JSONRenderer

from .config import get_settings

# Keys whose values are replaced before rendering; proofs can be megabytes.
REDACT_KEYS = {"proof", "proof_bytes", "payload", "content"}


def _redact_payloads(_: logging.Logger, __: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    for k in list(event_dict.keys()):
        if k.lower() in REDACT_KEYS and event_dict[k] is not None:
            v = event_dict[k]
            size = len(v) if isinstance(v, (str, bytes, bytearray)) else None
            event_dict[k] = f"<{size} bytes>" if size is not None else "***"
    return event_dict


def _base_processors(service_name: str) -> Iterable:
    yield structlog.stdlib.add_log_level
    yield structlog.processors.TimeStamper(fmt="iso", utc=True)
    yield merge_contextvars
    yield structlog.processors.StackInfoRenderer()
    yield structlog.processors.format_exc_info
    yield _redact_payloads
    yield structlog.processors.UnicodeDecoder()

    def _ensure_service(_: logging.Logger, __: str, ev: Dict[str, Any]) -> Dict[str, Any]:
        ev.setdefault("service", service_name)
        return ev

    yield _ensure_service


def setup_logging(
    *,
    service_name: str = "zkrunner",
    level: Optional[str | int] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Configure structlog + stdlib logging. Safe to call more than once; the
    root handler is replaced, not duplicated.
    """
    settings = get_settings()
    level = level or settings.log_level.upper()
    log_format = (log_format or settings.log_format).lower()

    processors = list(_base_processors(service_name))
    if log_format == "json":
        renderer = JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False, sort_keys=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            *processors,
            # rendering happens once, in the handler's ProcessorFormatter
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                *processors,
            ],
        )
    )

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)

    logging.getLogger("asyncio").setLevel("WARNING")


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Return a lazy structlog logger named `name`. Nothing is bound here so
    module-level loggers pick up the configuration from a later setup_logging().
    """
    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_session_context(**kv: Any) -> None:
    """Bind session-scoped key/value pairs into the structlog contextvars store."""
    structlog.contextvars.bind_contextvars(**kv)


def clear_session_context(*keys: str) -> None:
    """Clear specific keys from contextvars, or clear all if no keys provided."""
    if keys:
        structlog.contextvars.unbind_contextvars(*keys)
    else:
        structlog.contextvars.clear_contextvars()


__all__ = [
    "setup_logging",
    "get_logger",
    "bind_session_context",
    "clear_session_context",
]
