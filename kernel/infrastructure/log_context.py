"""
Ambient log scopes.

A scope is a mapping of properties pushed onto a per-context stack. Every
structured log event emitted while the scope is open carries its
properties. Scopes nest: inner scopes add to the outer ones, and on a key
collision the inner value wins until the inner scope is released.

Release must happen in reverse order of acquisition. Releasing a scope
while an inner scope is still open raises LogScopeError and leaves the
stack untouched. Releasing the same scope twice is a no-op.
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Any, Mapping

from kernel.utils.exceptions import LogScopeError

_scope_stack: ContextVar[tuple["LogScope", ...]] = ContextVar("log_scope_stack", default=())


class LogScope:
    """
    Handle for one pushed set of properties.

    Usage:
        with LogScope({"OrderId": 42}):
            logger.info("Processing order")
    """

    __slots__ = ("_properties", "_released")

    def __init__(self, properties: Mapping[str, Any]):
        self._properties = dict(properties)
        self._released = False
        _scope_stack.set(_scope_stack.get() + (self,))

    @property
    def properties(self) -> dict[str, Any]:
        return dict(self._properties)

    @property
    def released(self) -> bool:
        return self._released

    def close(self) -> None:
        """Remove this scope's properties from the ambient context."""
        if self._released:
            return

        stack = _scope_stack.get()
        if not stack or stack[-1] is not self:
            raise LogScopeError(
                "Log scopes must be released in reverse order of acquisition"
            )

        _scope_stack.set(stack[:-1])
        self._released = True

    def __enter__(self) -> LogScope:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "released" if self._released else "active"
        return f"<LogScope({self._properties!r}, {state})>"


def current_scope_properties() -> dict[str, Any]:
    """Merged properties of all open scopes, outermost first."""
    merged: dict[str, Any] = {}
    for scope in _scope_stack.get():
        merged.update(scope._properties)
    return merged


def scope_depth() -> int:
    """Number of scopes open in the current context."""
    return len(_scope_stack.get())
