"""
Error taxonomy for the hotswap dispatcher and its listener.
"""

from __future__ import annotations


__all__ = ["HotswapError", "InvalidVariantName", "ListenerStartupError"]


INVALID_VARIANT_NAME = "invalid middleware name"


class HotswapError(Exception):
    """Base exception for dispatcher and bootstrap errors."""


class InvalidVariantName(HotswapError):
    """Raised when constructing with, or switching to, an unregistered variant."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.message = INVALID_VARIANT_NAME
        super().__init__(self.message)


class ListenerStartupError(HotswapError):
    """Raised when the server cannot bind its listening socket."""

    def __init__(self, host: str, port: int, cause: Exception) -> None:
        self.host = host
        self.port = port
        self.cause = cause
        super().__init__(f"Failed to listen on {host}:{port}: {cause}")
