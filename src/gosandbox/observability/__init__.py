"""Public observability primitives: structlog configuration and redaction."""

from gosandbox.observability.logging import (
    configure_logging,
    redact_event_dict,
    redact_string,
    redact_value,
)

__all__ = [
    "configure_logging",
    "redact_event_dict",
    "redact_string",
    "redact_value",
]
