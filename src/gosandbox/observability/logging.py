"""structlog setup for gosandbox with optional secret redaction."""

from __future__ import annotations

import logging
import re
import sys
from typing import TYPE_CHECKING, Final, TextIO

import structlog

if TYPE_CHECKING:
    from collections.abc import MutableMapping

_REDACTED_VALUE: Final[str] = "***REDACTED***"

_SENSITIVE_KEY_TERMS: Final[tuple[str, ...]] = (
    "secret",
    "token",
    "password",
    "passphrase",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "cookie",
    "private_key",
)

# NAME=value or name: value where the name mentions a secret. Environment
# entries such as GITHUB_TOKEN=... are matched through the word characters
# around the sensitive term.
_SENSITIVE_ASSIGNMENT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(\w*(?:api[_-]?key|token|password|secret|authorization)\w*)\s*([:=])\s*([^\s,;]+)"
)
_URL_USERINFO_PATTERN: Final[re.Pattern[str]] = re.compile(r"(://[^/\s:@]+:)[^@\s/]+@")
_BEARER_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*")

# Keys added by the processor chain itself; never redacted.
_RESERVED_KEYS: Final[frozenset[str]] = frozenset({"event", "level", "timestamp", "logger"})


def configure_logging(
    level: int | str = "INFO",
    log_format: str = "text",
    *,
    redact_secrets: bool = True,
    stream: TextIO | None = None,
) -> None:
    """Install the process-wide structlog processor chain.

    ``log_format`` is ``"json"`` for one JSON object per line or ``"text"``
    for console rendering. Output goes to ``stream`` (stderr by default) so
    command output on stdout stays machine-readable.
    """

    if log_format not in {"json", "text"}:
        raise ValueError(f"unsupported log format {log_format!r}")
    level_number = _parse_log_level(level)

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if redact_secrets:
        processors.append(redact_event_dict)
    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(sort_keys=True, default=str))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_number),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=False,
    )


def redact_event_dict(
    logger: object, method_name: str, event_dict: MutableMapping[str, object]
) -> MutableMapping[str, object]:
    """structlog processor masking secret-looking keys and ``NAME=value`` assignments."""

    for key in list(event_dict):
        if key in _RESERVED_KEYS:
            continue
        event_dict[key] = redact_value(event_dict[key], key_context=key)
    return event_dict


def redact_value(value: object, *, key_context: str | None = None) -> object:
    if key_context is not None and _requires_redaction_for_key(key_context):
        return _REDACTED_VALUE

    if isinstance(value, str):
        return redact_string(value)

    if isinstance(value, (list, tuple)):
        return [redact_value(item) for item in value]

    if isinstance(value, dict):
        return {key: redact_value(item, key_context=str(key)) for key, item in value.items()}

    return value


def redact_string(text: str) -> str:
    redacted = _SENSITIVE_ASSIGNMENT_PATTERN.sub(
        lambda match: f"{match.group(1)}{match.group(2)}{_REDACTED_VALUE}", text
    )
    redacted = _URL_USERINFO_PATTERN.sub(rf"\1{_REDACTED_VALUE}@", redacted)
    redacted = _BEARER_TOKEN_PATTERN.sub(f"Bearer {_REDACTED_VALUE}", redacted)
    return redacted


def _requires_redaction_for_key(key: str) -> bool:
    key_lower = key.lower()
    return any(term in key_lower for term in _SENSITIVE_KEY_TERMS)


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value

    normalized = value.strip().upper()
    parsed = logging.getLevelName(normalized)
    if isinstance(parsed, int):
        return parsed

    raise ValueError(f"unsupported logging level {value!r}")


__all__ = ["configure_logging", "redact_event_dict", "redact_string", "redact_value"]
