"""Structured logging for signaldesk, built on structlog with stdlib integration."""

import logging
import os
from collections.abc import Mapping
from typing import Any

import structlog

#: Event keys whose values never reach a log line. Compared case-insensitively
#: with dashes folded to underscores, so venue header names match too.
SECRET_KEYS = frozenset({
    "api_key",
    "secret_key",
    "passphrase",
    "ok_access_key",
    "ok_access_sign",
    "ok_access_passphrase",
    "signature",
    "authorization",
})

REDACTED = "***"


def _is_secret(key: object) -> bool:
    return isinstance(key, str) and key.lower().replace("-", "_") in SECRET_KEYS


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: REDACTED if _is_secret(k) else _redact(v) for k, v in value.items()}
    return value


def redact_secrets(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Mask credential material in an event, including inside nested mappings
    such as a logged header dict."""
    for key in list(event_dict):
        if _is_secret(key):
            event_dict[key] = REDACTED
        else:
            event_dict[key] = _redact(event_dict[key])
    return event_dict


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structlog and route stdlib loggers through the same renderer.

    Context bound with ``structlog.contextvars`` (e.g. the instrument being
    polled) is merged into every event emitted from the same task.
    ``LOG_FORMAT=json`` switches to machine-readable output; anything else
    renders for a terminal.
    Credential fields are masked by ``redact_secrets`` before rendering,
    for structlog events and stdlib records alike.
    """
    log_format = os.environ.get("LOG_FORMAT", "console").lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        redact_secrets,
    ]

    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # aiohttp's access/client loggers are noisy at DEBUG
    logging.getLogger("aiohttp").setLevel(max(root_logger.level, logging.INFO))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)
