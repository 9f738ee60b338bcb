"""
Hotswap Middleware Package.

Runtime-swappable request middleware for the switch server.

Components:
    - StatefulDispatcher: Holds the variant registry and the active variant,
      applies the active variant to every dispatched request
    - InvalidVariantName: Raised for unregistered variant ids
    - ListenerStartupError: Raised when the server socket cannot be bound

Example:
    >>> from hotswap import StatefulDispatcher
    >>> from variants import build_registry
    >>>
    >>> dispatcher = StatefulDispatcher("quiet", build_registry())
    >>> dispatcher.update("verbose")
    >>> dispatcher.active_name
    'verbose'
"""

from .dispatcher import StatefulDispatcher

from .errors import (
    HotswapError,
    InvalidVariantName,
    ListenerStartupError,
)

__all__ = [
    "StatefulDispatcher",
    "HotswapError",
    "InvalidVariantName",
    "ListenerStartupError",
]
