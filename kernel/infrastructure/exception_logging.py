"""
Structured exception logging.

Each helper pushes a scope describing the failure and logs one error event
with the exception attached. None of them swallow or translate the
exception; callers re-raise after logging.
"""

from typing import Any, Mapping, Sequence

from kernel.config.constants import LogProperties
from kernel.config.logging import StructuredLogger


def log_exception_with_context(
    logger: StructuredLogger,
    exception: BaseException,
    context_message: str,
    additional_properties: Mapping[str, Any] | None = None,
) -> None:
    """
    Log an exception with its type, message and cause as structured properties.

    `context_message` may reference any of the pushed properties by name;
    they are rendered from the scope.
    """
    properties: dict[str, Any] = {
        LogProperties.EXCEPTION_TYPE: type(exception).__name__,
        "ExceptionMessage": str(exception),
    }

    cause = exception.__cause__ or exception.__context__
    if cause is not None:
        properties["InnerExceptionType"] = type(cause).__name__
        properties["InnerExceptionMessage"] = str(cause)

    if additional_properties:
        properties.update(additional_properties)

    with logger.begin_scope(properties):
        logger.error(context_message, exc_info=exception)


def log_repository_exception(
    logger: StructuredLogger,
    exception: BaseException,
    operation: str,
    entity_type: str,
    entity_id: Any = None,
) -> None:
    """Log a failed repository operation with operation, entity type and ID."""
    properties: dict[str, Any] = {
        "Operation": operation,
        "EntityType": entity_type,
        LogProperties.COMPONENT: "Repository",
    }
    if entity_id is not None:
        properties["EntityId"] = entity_id

    log_exception_with_context(
        logger,
        exception,
        "Repository operation {Operation} failed for {EntityType}",
        properties,
    )


def log_api_exception(
    logger: StructuredLogger,
    exception: BaseException,
    http_method: str,
    endpoint: str,
    user_id: Any = None,
) -> None:
    """Log a failed API operation with method, endpoint and caller."""
    properties: dict[str, Any] = {
        "HttpMethod": http_method,
        "Endpoint": endpoint,
        LogProperties.COMPONENT: "API",
    }
    if user_id is not None:
        properties["UserId"] = user_id

    log_exception_with_context(
        logger,
        exception,
        "API operation {HttpMethod} {Endpoint} failed",
        properties,
    )


def log_validation_errors(
    logger: StructuredLogger,
    validation_errors: Mapping[str, Sequence[str]],
    operation: str,
    additional_context: Mapping[str, Any] | None = None,
) -> None:
    """Log validation failures as a single warning event."""
    error_count = sum(len(messages) for messages in validation_errors.values())
    properties: dict[str, Any] = {
        "Operation": operation,
        "ValidationErrors": {field: list(messages) for field, messages in validation_errors.items()},
        "ErrorCount": error_count,
        LogProperties.COMPONENT: "Validation",
    }
    if additional_context:
        properties.update(additional_context)

    with logger.begin_scope(properties):
        logger.warning(
            "Validation failed for operation {Operation} with {ErrorCount} errors",
            operation,
            error_count,
        )
