"""
Operation timing and outcome logging.

Usage:
    from kernel.infrastructure.performance import performance_logger

    with performance_logger.track_operation("ImportUsers", {"Source": "csv"}):
        await import_users()

    # Or with helpers that name the operation by kind
    with track_database_operation(performance_logger, "SaveChanges", "UnitOfWork"):
        await session.commit()
"""

from __future__ import annotations

import time
from datetime import timedelta
from typing import Any, Mapping

from kernel.config.constants import LogProperties
from kernel.config.logging import StructuredLogger, get_logger


def _duration_properties(
    operation_name: str,
    duration_ms: float,
    additional_properties: Mapping[str, Any] | None,
) -> dict[str, Any]:
    properties: dict[str, Any] = {
        LogProperties.OPERATION_NAME: operation_name,
        LogProperties.DURATION: duration_ms,
        LogProperties.DURATION_MS: round(duration_ms, 2),
    }
    if additional_properties:
        properties.update(additional_properties)
    return properties


class OperationTracker:
    """
    Measures one operation from construction until `close()`.

    The completion event is logged exactly once, on the first close.
    """

    def __init__(
        self,
        logger: StructuredLogger,
        operation_name: str,
        additional_properties: Mapping[str, Any] | None = None,
    ):
        self._logger = logger
        self._operation_name = operation_name
        self._additional_properties = dict(additional_properties or {})
        self._started = time.perf_counter()
        self._elapsed: float | None = None

        self._logger.debug("Started operation {OperationName}", operation_name)

    @property
    def operation_name(self) -> str:
        return self._operation_name

    @property
    def closed(self) -> bool:
        return self._elapsed is not None

    @property
    def elapsed(self) -> timedelta:
        """Time since start, frozen once the tracker is closed."""
        seconds = self._elapsed if self._elapsed is not None else time.perf_counter() - self._started
        return timedelta(seconds=seconds)

    def close(self) -> None:
        if self._elapsed is not None:
            return

        self._elapsed = time.perf_counter() - self._started
        duration_ms = self._elapsed * 1000

        properties = _duration_properties(
            self._operation_name, duration_ms, self._additional_properties
        )
        with self._logger.begin_scope(properties):
            self._logger.info(
                "Completed operation {OperationName} in {Duration}ms",
                self._operation_name,
                duration_ms,
            )

    def __enter__(self) -> OperationTracker:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class PerformanceLogger:
    """Tracks operation timing and logs outcomes."""

    def __init__(self, logger: StructuredLogger | None = None):
        self._logger = logger or get_logger("kernel.performance")

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    def track_operation(
        self,
        operation_name: str,
        additional_properties: Mapping[str, Any] | None = None,
    ) -> OperationTracker:
        """Start timing an operation; close the returned tracker to log its duration."""
        return OperationTracker(self._logger, operation_name, additional_properties)

    def log_operation_duration(
        self,
        operation_name: str,
        duration: timedelta,
        additional_properties: Mapping[str, Any] | None = None,
    ) -> None:
        """Log the duration of an operation timed by the caller."""
        duration_ms = duration.total_seconds() * 1000
        properties = _duration_properties(operation_name, duration_ms, additional_properties)

        with self._logger.begin_scope(properties):
            self._logger.info(
                "Operation {OperationName} completed in {Duration}ms",
                operation_name,
                duration_ms,
            )

    def log_operation_success(
        self,
        operation_name: str,
        duration: timedelta,
        additional_properties: Mapping[str, Any] | None = None,
    ) -> None:
        duration_ms = duration.total_seconds() * 1000
        properties = _duration_properties(operation_name, duration_ms, additional_properties)
        properties[LogProperties.STATUS] = "Success"

        with self._logger.begin_scope(properties):
            self._logger.info(
                "Operation {OperationName} succeeded in {Duration}ms",
                operation_name,
                duration_ms,
            )

    def log_operation_failure(
        self,
        operation_name: str,
        duration: timedelta,
        exception: BaseException,
        additional_properties: Mapping[str, Any] | None = None,
    ) -> None:
        duration_ms = duration.total_seconds() * 1000
        properties = _duration_properties(operation_name, duration_ms, additional_properties)
        properties[LogProperties.STATUS] = "Failed"
        properties[LogProperties.EXCEPTION_TYPE] = type(exception).__name__

        with self._logger.begin_scope(properties):
            self._logger.error(
                "Operation {OperationName} failed after {Duration}ms",
                operation_name,
                duration_ms,
                exc_info=exception,
            )


# =============================================================================
# Tracking helpers by operation kind
# =============================================================================


def track_database_operation(
    performance_logger: PerformanceLogger,
    operation: str,
    entity_type: str,
    record_count: int | None = None,
) -> OperationTracker:
    """Track a database operation as DB_{operation}_{entity_type}."""
    properties: dict[str, Any] = {
        "OperationType": "Database",
        "EntityType": entity_type,
        "DatabaseOperation": operation,
    }
    if record_count is not None:
        properties["RecordCount"] = record_count

    return performance_logger.track_operation(f"DB_{operation}_{entity_type}", properties)


def track_api_endpoint(
    performance_logger: PerformanceLogger,
    http_method: str,
    endpoint: str,
    user_id: Any = None,
) -> OperationTracker:
    """Track an HTTP endpoint as API_{method}_{endpoint}."""
    properties: dict[str, Any] = {
        "OperationType": "API",
        "HttpMethod": http_method,
        "Endpoint": endpoint,
    }
    if user_id is not None:
        properties["UserId"] = user_id

    return performance_logger.track_operation(f"API_{http_method}_{endpoint}", properties)


def track_business_operation(
    performance_logger: PerformanceLogger,
    operation_name: str,
    additional_context: Mapping[str, Any] | None = None,
) -> OperationTracker:
    """Track a business operation as BIZ_{operation_name}."""
    properties: dict[str, Any] = {"OperationType": "Business"}
    if additional_context:
        properties.update(additional_context)

    return performance_logger.track_operation(f"BIZ_{operation_name}", properties)


def log_repository_metrics(
    logger: StructuredLogger,
    operation: str,
    entity_type: str,
    record_count: int,
    duration: timedelta,
) -> None:
    """Log how many records an operation processed and the resulting throughput."""
    duration_ms = duration.total_seconds() * 1000
    seconds = duration.total_seconds()
    records_per_second = (
        round(record_count / seconds, 2) if record_count > 0 and seconds > 0 else 0
    )

    properties = {
        LogProperties.COMPONENT: "Repository",
        "Operation": operation,
        "EntityType": entity_type,
        "RecordCount": record_count,
        LogProperties.DURATION: duration_ms,
        "RecordsPerSecond": records_per_second,
    }

    with logger.begin_scope(properties):
        logger.info(
            "Repository {Operation} on {EntityType} processed {RecordCount} records in {Duration}ms",
            operation,
            entity_type,
            record_count,
            duration_ms,
        )


performance_logger = PerformanceLogger()
