"""
Middleware variant registry.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from variants.base import MiddlewareVariant
from variants.quiet import QuietVariant
from variants.verbose import VerboseVariant


DEFAULT_VARIANT_ID = "quiet"


def _build_registry() -> Mapping[str, MiddlewareVariant]:
    variants: tuple[MiddlewareVariant, ...] = (
        QuietVariant(),
        VerboseVariant(),
    )
    return MappingProxyType({variant.variant_id: variant for variant in variants})


_REGISTRY = _build_registry()


def build_registry() -> Mapping[str, MiddlewareVariant]:
    """Return the read-only id -> variant mapping. Variants hold no state."""
    return _REGISTRY


def available_variants() -> tuple[str, ...]:
    """Return all supported variant IDs."""
    return tuple(sorted(_REGISTRY.keys()))
