"""
Verbose variant: logs the request target before and after the downstream
handler, the second record carrying elapsed wall-clock time.
"""

from __future__ import annotations

import logging
import time

from starlette.requests import Request
from starlette.responses import Response

from variants.base import BaseMiddlewareVariant, RequestHandler


logger = logging.getLogger(__name__)


def format_elapsed(seconds: float) -> str:
    """Render a duration with a unit suited to its magnitude (µs, ms or s)."""
    if seconds < 1e-3:
        return f"{seconds * 1e6:.3f}µs"
    if seconds < 1.0:
        return f"{seconds * 1e3:.3f}ms"
    return f"{seconds:.3f}s"


class VerboseVariant(BaseMiddlewareVariant):
    """
    Request logging with timing.

    Elapsed time covers the awaited downstream call. Under
    BaseHTTPMiddleware, call_next returns once the response has started, so
    time spent streaming a response body is not included.
    """

    variant_id = "verbose"
    display_name = "Verbose"

    def wrap(self, downstream: RequestHandler) -> RequestHandler:
        async def handler(request: Request) -> Response:
            target = self.request_target(request)
            logger.info("%s", target)

            started_at = time.perf_counter()
            try:
                return await downstream(request)
            finally:
                # Emitted on every exit path, including downstream failures
                logger.info(
                    "%s %s",
                    target,
                    format_elapsed(time.perf_counter() - started_at),
                )

        return handler
