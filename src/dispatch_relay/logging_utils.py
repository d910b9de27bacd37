"""Logging utilities for the relay.

Provides:
- Secret redaction for GitHub tokens and authorization headers
- Structured logging helpers (``message | key=value``)
- Request ID context management
"""

import logging
import re
import uuid
from collections.abc import Mapping
from contextvars import ContextVar
from typing import Any

# Context variable for request ID (async-safe)
_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

REDACTED = "***REDACTED***"

GITHUB_TOKEN_PATTERNS = [
    (re.compile(r"ghp_[A-Za-z0-9_]+"), "ghp_" + REDACTED),  # Personal access tokens
    (re.compile(r"ghs_[A-Za-z0-9_]+"), "ghs_" + REDACTED),  # App installation tokens
    (re.compile(r"gho_[A-Za-z0-9_]+"), "gho_" + REDACTED),  # OAuth tokens
    (re.compile(r"ghu_[A-Za-z0-9_]+"), "ghu_" + REDACTED),  # User-to-server tokens
    (re.compile(r"github_pat_[A-Za-z0-9_]+"), "github_pat_" + REDACTED),  # Fine-grained PATs
]

# Authorization header value, with or without a scheme
AUTH_HEADER_PATTERN = re.compile(
    r"(Authorization[\"']?[:=\s]+[\"']?)((?:Bearer|token)\s+)?([^\s,;\"']+)",
    re.IGNORECASE,
)

SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})


def redact_secrets(text: Any) -> str:
    """Redact GitHub tokens and Authorization values from text.

    Args:
        text: Text that may contain secrets (non-strings are stringified)

    Returns:
        Text with secrets redacted
    """
    if text is None:
        return ""

    if not isinstance(text, str):
        text = str(text)

    for pattern, replacement in GITHUB_TOKEN_PATTERNS:
        text = pattern.sub(replacement, text)

    return AUTH_HEADER_PATTERN.sub(lambda m: f"{m.group(1)}{m.group(2) or ''}{REDACTED}", text)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Copy headers with sensitive values replaced."""
    return {
        key: REDACTED if key.lower() in SENSITIVE_HEADERS else redact_secrets(value)
        for key, value in headers.items()
    }


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID (generates one if not provided)

    Returns:
        The request ID that was set
    """
    if not request_id:
        request_id = str(uuid.uuid4())

    _request_id_var.set(request_id)
    return request_id


def get_request_id() -> str | None:
    """Get the request ID for the current context."""
    return _request_id_var.get()


def clear_request_id() -> None:
    """Clear the request ID from the current context."""
    _request_id_var.set(None)


def format_structured(message: str, **fields: Any) -> str:
    """Join a message with request_id and redacted ``key=value`` fields."""
    parts = [message]

    request_id = get_request_id()
    if request_id:
        parts.append(f"request_id={request_id}")

    for key, value in fields.items():
        parts.append(f"{key}={redact_secrets(value)}")

    return " | ".join(parts)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **kwargs: Any,
) -> None:
    """Log a message with structured context.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, logging.ERROR, etc.)
        message: Log message
        **kwargs: Additional structured fields to include
    """
    if logger.isEnabledFor(level):
        logger.log(level, format_structured(message, **kwargs))


def log_info(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    log_with_context(logger, logging.INFO, message, **kwargs)


def log_warning(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    log_with_context(logger, logging.WARNING, message, **kwargs)


def log_error(logger: logging.Logger, message: str, **kwargs: Any) -> None:
    log_with_context(logger, logging.ERROR, message, **kwargs)
