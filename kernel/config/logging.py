"""
Centralized structured logging for the backend.
Uses Python's standard logging with JSON formatting for production.

Messages are written as templates with named placeholders:

    logger.info("Deleting {EntityName} with ID {EntityId}", "User", user.id)

The rendered text goes into the record's message, while the template and
the bound values travel on the record (`record.template`,
`record.properties`) so two calls with the same template produce events
with the same shape. Every event also carries the open log scope
properties and the current correlation ID.
"""

import json
import logging
import re
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from kernel.config.constants import LogProperties
from kernel.config.settings import settings
from kernel.infrastructure.correlation import CorrelationService, correlation_service
from kernel.infrastructure.log_context import LogScope, current_scope_properties


# {Name}, {Name:format}; a leading @ or $ (destructure/stringify hints) is accepted and ignored
_PLACEHOLDER = re.compile(r"\{([@$]?)([A-Za-z_][A-Za-z0-9_]*)(?::([^{}]+))?\}")


def _format_value(value: Any, format_spec: str | None) -> str:
    if not format_spec:
        return str(value)
    try:
        return format(value, format_spec)
    except (TypeError, ValueError):
        return str(value)


def render_template(
    template: str,
    args: tuple[Any, ...],
    ambient: Mapping[str, Any] | None = None,
) -> tuple[str, dict[str, Any]]:
    """
    Bind positional args to the named placeholders of a message template.

    Args are bound in placeholder order; a name repeated in the template
    reuses its first value. Placeholders left without an argument are
    rendered from `ambient` (the open scope properties) when it has the
    name, otherwise left as written.

    Returns:
        (rendered message, fields bound from args)
    """
    fields: dict[str, Any] = {}
    remaining = iter(args)
    ambient = ambient or {}

    def bind(match: re.Match) -> str:
        name, format_spec = match.group(2), match.group(3)
        if name not in fields:
            try:
                fields[name] = next(remaining)
            except StopIteration:
                if name in ambient:
                    return _format_value(ambient[name], format_spec)
                return match.group(0)
        return _format_value(fields[name], format_spec)

    message = _PLACEHOLDER.sub(bind, template)
    return message, fields


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    Outputs logs in a format easily parseable by log aggregation tools.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        template = getattr(record, "template", None)
        if template:
            log_data["template"] = template

        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id and correlation_id != "-":
            log_data["correlation_id"] = correlation_id

        properties = getattr(record, "properties", None)
        if properties:
            log_data["properties"] = properties

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Source location in debug mode
        if settings.debug:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """
    Human-readable formatter for development.

    [12:30:01 INF] data_api.repositories: Inserting new User with ID ... {"EntityName": "User", ...}
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    LEVELS = {
        "DEBUG": "DBG",
        "INFO": "INF",
        "WARNING": "WRN",
        "ERROR": "ERR",
        "CRITICAL": "FTL",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        level = self.LEVELS.get(record.levelname, record.levelname[:3])
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        message = f"{color}[{timestamp} {level}]{self.RESET} {record.name}: {record.getMessage()}"

        properties = getattr(record, "properties", None)
        if properties:
            message += f" {self.DIM}{json.dumps(properties, default=str)}{self.RESET}"
        else:
            correlation_id = getattr(record, "correlation_id", None)
            if correlation_id and correlation_id != "-":
                message += f" {self.DIM}[{correlation_id}]{self.RESET}"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


class StructuredLogger(logging.LoggerAdapter):
    """
    Logger that renders message templates and attaches structured properties.

    Wraps a standard library logger, so handlers, levels and filters are
    configured the usual way (see setup_logging).
    """

    def __init__(self, logger: logging.Logger, correlation: CorrelationService | None = None):
        super().__init__(logger, {})
        self._correlation = correlation or correlation_service

    def log(
        self,
        level: int,
        msg: Any,
        *args: Any,
        exc_info: Any = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        extra: Mapping[str, Any] | None = None,
    ) -> None:
        if not self.isEnabledFor(level):
            return

        template = str(msg)
        ambient = current_scope_properties()
        message, fields = render_template(template, args, ambient)

        properties = ambient
        properties.update(fields)
        properties[LogProperties.CORRELATION_ID] = self._correlation.correlation_id

        record_extra: dict[str, Any] = dict(extra or {})
        record_extra["template"] = template
        record_extra["properties"] = properties

        # Templates without named placeholders keep stdlib %-style formatting
        record_args = args if args and not fields else ()

        self.logger.log(
            level,
            message,
            *record_args,
            exc_info=exc_info,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
            extra=record_extra,
        )

    def begin_scope(self, properties: Mapping[str, Any]) -> LogScope:
        """
        Push properties onto the ambient log context.

        Usage:
            with logger.begin_scope({"UserId": user_id}):
                logger.info("Loading profile")
        """
        return LogScope(properties)

    def begin_operation_scope(self, operation_name: str, operation_id: str | None = None) -> LogScope:
        """Push OperationName, OperationId (generated when absent) and CorrelationId."""
        return LogScope({
            LogProperties.OPERATION_NAME: operation_name,
            LogProperties.OPERATION_ID: operation_id or str(uuid.uuid4()),
            LogProperties.CORRELATION_ID: self._correlation.correlation_id,
        })


_loggers: dict[str, StructuredLogger] = {}


def setup_logging() -> None:
    """
    Configure logging for the application.
    Call this once at application startup.
    """
    # Import here to avoid circular imports
    from kernel.infrastructure.correlation import CorrelationIdFilter

    log_level = settings.effective_log_level

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(CorrelationIdFilter())

    # Use appropriate formatter based on environment
    if settings.environment == "production":
        formatter = StructuredFormatter()
    else:
        formatter = DevelopmentFormatter()

    handler.setFormatter(formatter)

    # Configure root logger
    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.db_echo else logging.WARNING
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    get_logger(__name__).info(
        "Logging configured for {Environment} at level {LogLevel}",
        settings.environment,
        logging.getLevelName(log_level),
    )


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger with the given name.

    Usage:
        from kernel.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Retrieved {Count} {EntityName} records", 3, "User")
        logger.error("Commit failed for {EntityName}", "User", exc_info=exc)
    """
    logger = _loggers.get(name)
    if logger is None:
        logger = _loggers[name] = StructuredLogger(logging.getLogger(name))
    return logger
