"""
Stateful Middleware Dispatcher.

Owns the variant registry and the active variant reference, and provides the
only mutation path (update) and the only dispatch path (dispatch).

Thread Safety:
    The active reference is guarded by a threading.Lock that is held only for
    the read or the swap, never across an await. Requests already in flight
    when update() runs may finish under either variant.

Last Grunted: 10/19/2026
"""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from .errors import InvalidVariantName

if TYPE_CHECKING:
    from variants.base import MiddlewareVariant, RequestHandler


__all__ = ["StatefulDispatcher"]


logger = logging.getLogger(__name__)


class StatefulDispatcher:
    """
    Selects, per request, which middleware variant wraps the downstream handler.

    Example:
        >>> dispatcher = StatefulDispatcher("quiet", build_registry())
        >>> handler = dispatcher.dispatch(call_next)
        >>> response = await handler(request)
        >>> dispatcher.update("verbose")
    """

    def __init__(
        self,
        initial_name: str,
        registry: Mapping[str, MiddlewareVariant],
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            initial_name: Variant id to activate first.
            registry: Mapping of variant id to variant. Copied and frozen.

        Raises:
            InvalidVariantName: If initial_name is not registered.
        """
        self._registry: Mapping[str, MiddlewareVariant] = MappingProxyType(dict(registry))

        current = self._registry.get(initial_name)
        if current is None:
            raise InvalidVariantName(initial_name)

        self._current = current
        self._lock = threading.Lock()
        logger.info(
            "StatefulDispatcher initialized: active=%s, available=%s",
            current.variant_id,
            ", ".join(self.available_variants()),
        )

    # -------------------------------------------------------------------------
    # Properties (thread-safe)
    # -------------------------------------------------------------------------

    @property
    def registry(self) -> Mapping[str, MiddlewareVariant]:
        """Read-only variant registry."""
        return self._registry

    @property
    def active(self) -> MiddlewareVariant:
        """Variant applied to the next dispatched request."""
        with self._lock:
            return self._current

    @property
    def active_name(self) -> str:
        return self.active.variant_id

    def available_variants(self) -> tuple[str, ...]:
        """Return all registered variant ids."""
        return tuple(sorted(self._registry.keys()))

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def update(self, name: str) -> None:
        """
        Switch the active variant.

        Args:
            name: Registered variant id.

        Raises:
            InvalidVariantName: If name is not registered. The active
                variant is left unchanged.
        """
        next_variant = self._registry.get(name)
        if next_variant is None:
            logger.warning("Rejected middleware switch to unknown variant '%s'", name)
            raise InvalidVariantName(name)

        with self._lock:
            previous = self._current
            self._current = next_variant

        logger.info(
            "Middleware switched: %s -> %s",
            previous.variant_id,
            next_variant.variant_id,
        )

    def dispatch(self, downstream: RequestHandler) -> RequestHandler:
        """
        Wrap a downstream handler with whichever variant is active per request.

        The active variant is read when the returned handler is invoked, not
        when dispatch() is called.

        Args:
            downstream: Handler to run inside the active variant.

        Returns:
            Async handler taking a request and returning a response.
        """

        async def handler(request: Any) -> Any:
            variant = self.active
            return await variant.wrap(downstream)(request)

        return handler
