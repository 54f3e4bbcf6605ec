"""Centralized logging utilities for accessroles.

This module provides:
- Logging configuration from AccessRolesConfig
- Safe preview utility for ACL payloads
- Structured logging with request context (request_id, principal, resource)
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Optional

from .config import AccessRolesConfig, LogLevel

if TYPE_CHECKING:
    from .model import AccessRequest

_CONTEXT_FIELDS = ("request_id", "principal", "resource")

_STANDARD_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info", "taskName",
}


def safe_preview(value: Any, limit: int = 240) -> str:
    """Create a length-bounded, single-line preview of a value for logging.

    Args:
        value: The value to preview (any type)
        limit: Maximum length of the preview (default: 240)

    Returns:
        A truncated string representation
    """
    if value is None:
        return ""

    if isinstance(value, str):
        s = value
    elif isinstance(value, (dict, list)):
        try:
            s = json.dumps(value, default=str, ensure_ascii=False, sort_keys=True)
        except (TypeError, ValueError):
            s = str(value)
    else:
        s = str(value)

    # Normalize whitespace
    s = " ".join(s.split())

    if len(s) > limit:
        return s[: limit - 1] + "…"

    return s


class AccessRolesFormatter(logging.Formatter):
    """Formatter that includes request context and optional JSON output."""

    def __init__(
        self,
        json_format: bool = True,
        *args: Any,
        **kwargs: Any,
    ):
        """Initialize the formatter.

        Args:
            json_format: Whether to output JSON (True) or plain text (False)
        """
        super().__init__(*args, **kwargs)
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record."""
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in _CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and key not in _CONTEXT_FIELDS and value is not None:
                log_data[key] = safe_preview(value)

        if self.json_format:
            return json.dumps(log_data, default=str, ensure_ascii=False)

        parts = [
            f"[{log_data['timestamp']}]",
            f"{log_data['level']}",
            f"{log_data['logger']}",
        ]
        for key in _CONTEXT_FIELDS:
            if key in log_data:
                parts.append(f"{key}={log_data[key]}")
        parts.append(f": {log_data['message']}")
        if "exception" in log_data:
            parts.append("\n" + log_data["exception"])
        return " ".join(parts)


class RequestLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds request context to every record.

    Usage:
        logger = get_request_logger(__name__, request)
        logger.info("Evaluating")
    """

    def __init__(
        self,
        logger: logging.Logger,
        request_id: Optional[str] = None,
        principal: Optional[str] = None,
        resource: Optional[str] = None,
    ):
        super().__init__(logger, {})
        self.request_id = request_id
        self.principal = principal
        self.resource = resource

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Process log message and add request context."""
        extra = kwargs.get("extra", {})
        for key in _CONTEXT_FIELDS:
            value = kwargs.pop(key, getattr(self, key))
            if value:
                extra[key] = value
        kwargs["extra"] = extra
        return msg, kwargs


def setup_logging(
    config: Optional[AccessRolesConfig] = None,
    json_format: Optional[bool] = None,
) -> None:
    """Configure root logging for an access-roles service.

    Args:
        config: AccessRolesConfig instance (if None, loads from environment)
        json_format: Override ``config.log_json``
    """
    if config is None:
        from .config import load_config_from_env

        config = load_config_from_env()

    level_map = {
        LogLevel.DEBUG: logging.DEBUG,
        LogLevel.INFO: logging.INFO,
        LogLevel.WARNING: logging.WARNING,
        LogLevel.ERROR: logging.ERROR,
        LogLevel.CRITICAL: logging.CRITICAL,
    }
    log_level = level_map.get(config.log_level, logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        AccessRolesFormatter(json_format=config.log_json if json_format is None else json_format)
    )
    root_logger.addHandler(console_handler)

    if config.service_name:
        logging.getLogger(config.service_name).setLevel(log_level)


def get_request_logger(name: str, request: Optional[AccessRequest] = None) -> RequestLoggerAdapter:
    """Get a logger adapter bound to an access request.

    Args:
        name: Logger name (typically __name__)
        request: Request whose id, principals and resource are attached

    Returns:
        RequestLoggerAdapter instance
    """
    logger = logging.getLogger(name)
    if request is None:
        return RequestLoggerAdapter(logger)
    return RequestLoggerAdapter(
        logger,
        request_id=request.request_id or None,
        principal=",".join(sorted(request.principals)) or None,
        resource=request.resource,
    )


__all__ = [
    "safe_preview",
    "AccessRolesFormatter",
    "RequestLoggerAdapter",
    "setup_logging",
    "get_request_logger",
]
