"""
Quiet variant: one log record per request, no timing.
"""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import Response

from variants.base import BaseMiddlewareVariant, RequestHandler


logger = logging.getLogger(__name__)


class QuietVariant(BaseMiddlewareVariant):
    """Logs the request target, then hands off."""

    variant_id = "quiet"
    display_name = "Quiet"

    def wrap(self, downstream: RequestHandler) -> RequestHandler:
        async def handler(request: Request) -> Response:
            logger.info("%s", self.request_target(request))
            return await downstream(request)

        return handler
