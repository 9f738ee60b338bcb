"""
Middleware variant interfaces and shared helpers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Protocol

from starlette.requests import Request
from starlette.responses import Response


RequestHandler = Callable[[Request], Awaitable[Response]]


class MiddlewareVariant(Protocol):
    """Interface for request-wrapping middleware variants."""

    variant_id: str
    display_name: str

    def wrap(self, downstream: RequestHandler) -> RequestHandler:
        """Return a handler that runs this variant around downstream."""


class BaseMiddlewareVariant(ABC):
    """Common attributes for built-in variants."""

    variant_id = "base"
    display_name = "Base"

    @staticmethod
    def request_target(request: Request) -> str:
        """Path plus query string, as sent on the request line."""
        target = request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        return target

    @abstractmethod
    def wrap(self, downstream: RequestHandler) -> RequestHandler:
        """Return a handler that runs this variant around downstream."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(variant_id={self.variant_id!r})"
