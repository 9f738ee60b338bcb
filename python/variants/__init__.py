"""
Middleware variant entrypoints.
"""

from variants.base import BaseMiddlewareVariant, MiddlewareVariant, RequestHandler
from variants.quiet import QuietVariant
from variants.registry import DEFAULT_VARIANT_ID, available_variants, build_registry
from variants.verbose import VerboseVariant, format_elapsed

__all__ = [
    "BaseMiddlewareVariant",
    "DEFAULT_VARIANT_ID",
    "MiddlewareVariant",
    "QuietVariant",
    "RequestHandler",
    "VerboseVariant",
    "available_variants",
    "build_registry",
    "format_elapsed",
]
