"""
Logging configuration.

Playback URLs can carry signed-access tokens, so every event passes through
``redact_tokens`` before it is rendered.
"""
from __future__ import annotations

import logging
import re
from typing import Any

import structlog

from playback_fallback.config import Settings

SECRET_KEYS = ("token", "secret", "api_key", "security_key", "password")

SECRET_PATTERNS = [
    re.compile(r"(token=)[^&\s\"']+"),
    re.compile(r"(expires=)[^&\s\"']+"),
]


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        for pattern in SECRET_PATTERNS:
            value = pattern.sub(r"\1***", value)
        return value
    if isinstance(value, dict):
        return {k: _redact_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact_value(v) for v in value]
    return value


def redact_tokens(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask token material in keys and in URL query strings."""
    for key in list(event_dict.keys()):
        if any(secret in key.lower() for secret in SECRET_KEYS):
            event_dict[key] = "***REDACTED***"
        else:
            event_dict[key] = _redact_value(event_dict[key])
    return event_dict


def configure_logging(config: Settings) -> None:
    logging.basicConfig(format="%(message)s", level=config.log_level.upper())

    renderer = (
        structlog.processors.JSONRenderer()
        if config.log_json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            redact_tokens,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
