"""Redaction of user identifiers and credentials in log output.

User ids reach the engine as opaque strings chosen by the host application,
and in practice they are often email addresses. Every service logs the user
id it works on, so the filter here is installed once at startup (see
``configure_logging``) rather than at each call site.
"""

import logging
import re
from typing import Any


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_KEY_VALUE = r'["\']?\s*[:=]\s*["\']?)[^"\'&\s]+'

# Applied in order; header patterns run before the generic key=value ones.
REDACTIONS: tuple[tuple[re.Pattern, str], ...] = (
    (re.compile(r"Bearer\s+[\w\-.]+", re.IGNORECASE), "Bearer [REDACTED_TOKEN]"),
    (re.compile(r"(Authorization" + _KEY_VALUE, re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"((?:access_|refresh_)?token" + _KEY_VALUE, re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"((?:secret|api_key)" + _KEY_VALUE, re.IGNORECASE), r"\1[REDACTED]"),
    (re.compile(r"\b[\w.%+-]+@[\w.-]+\.[a-zA-Z]{2,}\b"), "[REDACTED_EMAIL]"),
)


def sanitize_string(text: str) -> str:
    """Return ``text`` with every known sensitive pattern redacted."""
    for pattern, replacement in REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


def _scrub(value: Any) -> Any:
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, (tuple, list)):
        return type(value)(_scrub(item) for item in value)
    if isinstance(value, dict):
        return {key: _scrub(item) for key, item in value.items()}

    # Numbers and other objects keep their type so %d-style formatting works
    rendered = str(value)
    return value if sanitize_string(rendered) == rendered else sanitize_string(rendered)


class LogSanitizationFilter(logging.Filter):
    """Rewrites the message and its arguments; records are never dropped."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = sanitize_string(str(record.msg))
        if record.args:
            record.args = _scrub(record.args)
        return True


def install_log_sanitizer(logger_name: str | None = None) -> None:
    """Attach the filter to one named logger, or to the root logger.

    Records from child loggers bypass the root logger's own filters, so in
    the root case the filter also goes on each root handler.
    """
    sanitizer = LogSanitizationFilter()
    if logger_name is not None:
        logging.getLogger(logger_name).addFilter(sanitizer)
        return

    root = logging.getLogger()
    root.addFilter(sanitizer)
    for handler in root.handlers:
        handler.addFilter(sanitizer)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
    install_log_sanitizer()
