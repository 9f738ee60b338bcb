"""
Hotswap Middleware Switch Server

Serves a status endpoint and a configuration endpoint that switches, at
runtime, which middleware variant wraps every incoming request.

Endpoints:
    ANY /        - Status acknowledgement
    ANY /config  - Switch active middleware ({"option": "<variant>"})

Internal binding: configured by HOTSWAP_HOST/HOTSWAP_PORT (default 0.0.0.0:8080)
"""

from __future__ import annotations

import logging
import os
import socket
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field, ValidationError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from hotswap import InvalidVariantName, ListenerStartupError, StatefulDispatcher
from variants import DEFAULT_VARIANT_ID, available_variants, build_registry

# =============================================================================
# Logging Configuration
# =============================================================================

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str = "info") -> None:
    """Install the process-wide log format."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


# =============================================================================
# Configuration
# =============================================================================

SERVICE_NAME = "Hotswap Middleware Server"
SERVICE_VERSION = "1.0.0"

LOG_LEVELS: tuple[str, ...] = ("critical", "error", "warning", "info", "debug")


@dataclass(frozen=True)
class RuntimeConfig:
    """Runtime config for the switch server."""

    host: str
    port: int
    initial_variant: str
    log_level: str


def load_runtime_config() -> RuntimeConfig:
    """Load runtime config from environment with strict validation."""
    host = (os.environ.get("HOTSWAP_HOST", "0.0.0.0") or "").strip()
    if not host:
        raise RuntimeError("HOTSWAP_HOST resolved to empty value.")

    port_raw = (os.environ.get("HOTSWAP_PORT", "8080") or "").strip()
    if not port_raw:
        raise RuntimeError("HOTSWAP_PORT resolved to empty value.")

    try:
        port = int(port_raw)
    except ValueError as exc:
        raise RuntimeError(f"HOTSWAP_PORT must be an integer. Got: {port_raw}") from exc

    if port < 1 or port > 65535:
        raise RuntimeError(f"HOTSWAP_PORT must be in range 1-65535. Got: {port}.")

    initial_variant = (
        os.environ.get("HOTSWAP_INITIAL_VARIANT", DEFAULT_VARIANT_ID) or ""
    ).strip().lower()
    if not initial_variant:
        raise RuntimeError("HOTSWAP_INITIAL_VARIANT resolved to empty value.")

    log_level = (os.environ.get("HOTSWAP_LOG_LEVEL", "info") or "").strip().lower()
    if log_level not in LOG_LEVELS:
        raise RuntimeError(
            f"HOTSWAP_LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}. Got: {log_level!r}."
        )

    return RuntimeConfig(
        host=host,
        port=port,
        initial_variant=initial_variant,
        log_level=log_level,
    )


# =============================================================================
# Request / Response Models
# =============================================================================


class ConfigRequest(BaseModel):
    """Body of a /config call."""

    option: str = Field(..., description="Variant id to activate")


class StatusResponse(BaseModel):
    """Status acknowledgement."""

    ok: bool = Field(..., description="Always true while the server is up")


class ConfigResponse(BaseModel):
    """Response for a successful middleware switch."""

    changed: bool = Field(..., description="Whether the active middleware was set")


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = Field(default=False)
    error: str = Field(..., description="Error description")
    error_code: str | None = Field(default=None, description="Machine-readable error code")


# =============================================================================
# Custom Exceptions
# =============================================================================


class ConfigRequestError(Exception):
    """Base exception for rejected /config requests."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        error_code: str | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(message)


class BodyParseError(ConfigRequestError):
    """Raised when the /config body is not a JSON object with a string option."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            message=f"invalid request body: {detail}",
            error_code="BODY_PARSE_ERROR",
        )


class MissingOptionField(ConfigRequestError):
    """Raised when the /config body is a JSON object without "option"."""

    def __init__(self, message: str = 'missing "option" field') -> None:
        super().__init__(message=message, error_code="MISSING_OPTION_FIELD")


def parse_config_request(body: bytes) -> ConfigRequest:
    """
    Validate a raw /config body.

    Args:
        body: Raw request body.

    Returns:
        The parsed ConfigRequest.

    Raises:
        MissingOptionField: If the body is an object without "option".
        BodyParseError: For any other decode or validation failure.
    """
    try:
        return ConfigRequest.model_validate_json(body)
    except ValidationError as exc:
        errors = exc.errors()
        if any(
            error["type"] == "missing" and tuple(error["loc"]) == ("option",)
            for error in errors
        ):
            raise MissingOptionField() from exc
        detail = errors[0]["msg"] if errors else str(exc)
        raise BodyParseError(detail) from exc


# =============================================================================
# Dependencies
# =============================================================================


def get_dispatcher(request: Request) -> StatefulDispatcher:
    """
    Retrieve the dispatcher from lifespan state.

    Raises:
        RuntimeError: If state is not properly initialized.
    """
    dispatcher = getattr(request.state, "dispatcher", None)
    if dispatcher is None:
        raise RuntimeError("Application state not initialized")
    return dispatcher


# =============================================================================
# Middleware
# =============================================================================


class SwitchableMiddleware(BaseHTTPMiddleware):
    """Global request wrapper that defers to the dispatcher's active variant."""

    def __init__(self, app: ASGIApp, dispatcher: StatefulDispatcher) -> None:
        super().__init__(app)
        self._dispatcher = dispatcher

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        handler = self._dispatcher.dispatch(call_next)
        return await handler(request)


# =============================================================================
# Exception Handlers
# =============================================================================


async def config_request_error_handler(
    request: Request, exc: ConfigRequestError
) -> PlainTextResponse:
    """Translate a rejected /config body into a plain-text 400."""
    logger.info("Rejected /config request: %s", exc.message)
    return PlainTextResponse(exc.message, status_code=exc.status_code)


async def invalid_variant_name_handler(
    request: Request, exc: InvalidVariantName
) -> PlainTextResponse:
    """Translate an unknown variant id into a plain-text 400."""
    return PlainTextResponse(exc.message, status_code=status.HTTP_400_BAD_REQUEST)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Args:
        request: The incoming request.
        exc: The exception that was raised.

    Returns:
        JSONResponse with generic error message.
    """
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            ok=False,
            error="Internal server error",
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )


# =============================================================================
# Endpoints
# =============================================================================
# Registered as plain Starlette routes with methods=None: every HTTP method
# is accepted and only the path selects the handler.


async def status_handler(request: Request) -> JSONResponse:
    """Status acknowledgement. Ignores the request body."""
    return JSONResponse(StatusResponse(ok=True).model_dump())


async def configure(request: Request) -> JSONResponse:
    """
    Switch the active middleware variant.

    Args:
        request: Request whose body is {"option": "<variant id>"}.

    Returns:
        JSONResponse with {"changed": true}.

    Raises:
        BodyParseError: Body is not a JSON object with a string option.
        MissingOptionField: Body has no "option" key.
        InvalidVariantName: Option names no registered variant.
    """
    dispatcher = get_dispatcher(request)
    config_request = parse_config_request(await request.body())
    dispatcher.update(config_request.option)
    return JSONResponse(ConfigResponse(changed=True).model_dump())


# =============================================================================
# FastAPI Application
# =============================================================================


def create_app(dispatcher: StatefulDispatcher) -> FastAPI:
    """
    Build the FastAPI application around an explicit dispatcher.

    Args:
        dispatcher: Dispatcher installed as the global request wrapper.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[dict[str, Any]]:
        logger.info("Starting %s", SERVICE_NAME)
        logger.info(
            "Active middleware: %s (available: %s)",
            dispatcher.active_name,
            ", ".join(dispatcher.available_variants()),
        )

        yield {"dispatcher": dispatcher}

        logger.info("Shutting down...")

    app = FastAPI(
        title=SERVICE_NAME,
        version=SERVICE_VERSION,
        description="Status endpoint plus runtime-switchable request middleware",
        lifespan=lifespan,
    )

    app.add_middleware(SwitchableMiddleware, dispatcher=dispatcher)

    app.add_exception_handler(ConfigRequestError, config_request_error_handler)
    app.add_exception_handler(InvalidVariantName, invalid_variant_name_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.add_route("/", status_handler, methods=None)
    app.add_route("/config", configure, methods=None)
    return app


# =============================================================================
# Bootstrap
# =============================================================================


def bind_listener(host: str, port: int) -> socket.socket:
    """
    Bind the server socket up front so a busy port fails fast.

    Raises:
        ListenerStartupError: If the address cannot be bound.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError as exc:
        sock.close()
        raise ListenerStartupError(host, port, exc) from exc
    sock.set_inheritable(True)
    return sock


def main(config: RuntimeConfig | None = None) -> None:
    """Start the switch server. Exits the process on startup failure."""
    config = config or load_runtime_config()
    configure_logging(config.log_level)

    try:
        dispatcher = StatefulDispatcher(config.initial_variant, build_registry())
    except InvalidVariantName as exc:
        logger.critical(
            "Unknown initial middleware '%s'. Supported variants: %s.",
            exc.name,
            ", ".join(available_variants()),
        )
        sys.exit(1)

    app = create_app(dispatcher)

    logger.info("=" * 60)
    logger.info("%s v%s", SERVICE_NAME, SERVICE_VERSION)
    logger.info("=" * 60)
    logger.info("Binding to: http://%s:%d", config.host, config.port)
    logger.info("Initial middleware: %s", dispatcher.active_name)
    logger.info("")
    logger.info("Endpoints:")
    logger.info("  ANY /        - Status")
    logger.info("  ANY /config  - Switch middleware")
    logger.info("=" * 60)

    try:
        sock = bind_listener(config.host, config.port)
    except ListenerStartupError as exc:
        logger.critical("%s", exc)
        sys.exit(1)

    logger.info("starting :%d...", config.port)
    server = uvicorn.Server(uvicorn.Config(app, log_level=config.log_level))
    server.run(sockets=[sock])


if __name__ == "__main__":
    main()
