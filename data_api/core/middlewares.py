"""
Request logging middleware for the FastAPI application.
Resolves the correlation ID, times the request and logs its outcome.
"""

from __future__ import annotations

import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from kernel.config.constants import UNKNOWN_REMOTE_ADDRESS, Headers, LogProperties
from kernel.config.logging import StructuredLogger, get_logger
from kernel.config.settings import settings
from kernel.infrastructure.correlation import (
    CorrelationService,
    correlation_service,
    new_correlation_id,
)
from kernel.infrastructure.performance import (
    PerformanceLogger,
    performance_logger as default_performance_logger,
    track_api_endpoint,
)
from kernel.security.user_context import EMPTY_USER_ID, ClaimsUserContext, UserContext

REQUEST_PROCESSING = "RequestProcessing"


def resolve_remote_address(request: Request) -> str:
    """First X-Forwarded-For entry, then the transport peer, then "Unknown"."""
    forwarded_for = request.headers.get(Headers.FORWARDED_FOR)
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    if request.client is not None and request.client.host:
        return request.client.host

    return UNKNOWN_REMOTE_ADDRESS


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Correlate, time and log every request.

    - X-Correlation-ID is reused when present and non-blank, else generated
    - The resolved ID is stored for the request and echoed on the response
    - Start and completion are logged inside a RequestProcessing scope
    - Failures are logged and re-raised; no error response is produced here

    The caller ID on the API tracker is read from the claims visible when the
    request enters this middleware. Whatever authenticates the caller must
    therefore publish its claims in a layer that wraps this one (a middleware
    added after register_middlewares). Claims published by a route dependency
    live in the handler's own context and never reach this middleware.
    """

    def __init__(
        self,
        app,
        correlation: CorrelationService | None = None,
        performance_logger: PerformanceLogger | None = None,
        logger: StructuredLogger | None = None,
        user_context: UserContext | None = None,
        header_name: str | None = None,
    ):
        super().__init__(app)
        self._correlation = correlation or correlation_service
        self._performance_logger = performance_logger or default_performance_logger
        self._logger = logger or get_logger(__name__)
        self._user_context = user_context or ClaimsUserContext()
        self._header_name = header_name or settings.correlation_header

    def _resolve_correlation_id(self, request: Request) -> str:
        inbound = request.headers.get(self._header_name)
        if inbound and inbound.strip():
            return inbound.strip()
        return new_correlation_id()

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        correlation_id = self._resolve_correlation_id(request)
        token = self._correlation.set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        method = request.method
        path = request.url.path
        remote_address = resolve_remote_address(request)

        user_id = self._user_context.get_current_user_id()
        tracker = track_api_endpoint(
            self._performance_logger,
            method,
            path,
            user_id if user_id != EMPTY_USER_ID else None,
        )
        started = time.perf_counter()

        try:
            with tracker, self._logger.begin_operation_scope(REQUEST_PROCESSING, correlation_id):
                self._logger.info(
                    "Started processing request {RequestMethod} {RequestPath} from {RemoteIpAddress}",
                    method,
                    path,
                    remote_address,
                )

                try:
                    response = await call_next(request)
                except Exception:
                    duration_ms = (time.perf_counter() - started) * 1000
                    failure = {
                        "RequestPath": path,
                        "StatusCode": 500,
                        LogProperties.DURATION: duration_ms,
                        "RemoteIpAddress": remote_address,
                        "UserAgent": request.headers.get(Headers.USER_AGENT, ""),
                    }
                    with self._logger.begin_scope(failure):
                        self._logger.exception(
                            "Request {RequestPath} failed after {Duration}ms",
                            path,
                            duration_ms,
                        )
                    raise

                duration_ms = (time.perf_counter() - started) * 1000
                self._logger.info(
                    "Completed request {RequestPath} with status {StatusCode} in {Duration}ms",
                    path,
                    response.status_code,
                    duration_ms,
                )

            response.headers[self._header_name] = correlation_id
            return response
        finally:
            self._correlation.reset(token)


def register_middlewares(app: FastAPI) -> None:
    """
    Register the request pipeline middlewares on the FastAPI application.

    Starlette runs the last added middleware outermost, so an authentication
    middleware that publishes caller claims must be added after this call.
    """
    app.add_middleware(RequestLoggingMiddleware)
