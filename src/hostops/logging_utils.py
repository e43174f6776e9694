"""Logging helpers: secret redaction, request ids and key=value context.

Model provider errors and HTTP request logs can echo API keys back to us, so
anything passed as structured context goes through ``redact_secrets`` first.
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Any

_request_id_var: ContextVar[str | None] = ContextVar("hostops_request_id", default=None)

# Order matters: the generic OpenAI pattern must not eat Anthropic or project keys.
API_KEY_PATTERNS = [
    (re.compile(r"sk-ant-[A-Za-z0-9_\-]+"), "sk-ant-***REDACTED***"),
    (re.compile(r"sk-proj-[A-Za-z0-9_\-]+"), "sk-proj-***REDACTED***"),
    (re.compile(r"sk-(?!ant-|proj-)[A-Za-z0-9_\-]{8,}"), "sk-***REDACTED***"),
]

CREDENTIAL_HEADER_PATTERN = re.compile(
    r"((?:Authorization|x-api-key)[:\s]+)((?:Bearer\s+)?[^\s,;]+)",
    re.IGNORECASE,
)

REDACTED = "***REDACTED***"


def redact_secrets(text: Any) -> str:
    """Mask provider API keys and credential header values.

    Args:
        text: Anything loggable. None becomes an empty string and other
            non-strings are converted with ``str``.

    Returns:
        The text with secrets replaced by ``***REDACTED***`` markers
    """
    if text is None:
        return ""
    text = text if isinstance(text, str) else str(text)

    text = CREDENTIAL_HEADER_PATTERN.sub(lambda m: m.group(1) + REDACTED, text)
    for pattern, replacement in API_KEY_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def set_request_id(request_id: str | None = None) -> str:
    """Bind a request id to the current context, generating a UUID if needed."""
    request_id = request_id or str(uuid.uuid4())
    _request_id_var.set(request_id)
    return request_id


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def format_context(message: str, **fields: Any) -> str:
    """Render ``message | request_id=... | key=value ...`` with values redacted."""
    parts = [message]
    request_id = get_request_id()
    if request_id:
        parts.append(f"request_id={request_id}")
    parts.extend(f"{key}={redact_secrets(value)}" for key, value in fields.items())
    return " | ".join(parts)


def log_with_context(logger: logging.Logger, level: int, message: str, **fields: Any) -> None:
    """Log ``message`` at ``level`` with the request id and redacted fields."""
    if logger.isEnabledFor(level):
        logger.log(level, format_context(message, **fields))


def log_debug(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.DEBUG, message, **fields)


def log_info(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.INFO, message, **fields)


def log_warning(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.WARNING, message, **fields)


def log_error(logger: logging.Logger, message: str, **fields: Any) -> None:
    log_with_context(logger, logging.ERROR, message, **fields)
