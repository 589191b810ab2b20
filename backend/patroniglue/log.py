"""Logging setup, access-log formatting and upstream request logging."""

from __future__ import annotations

import logging

import httpx
from fastapi import Request

from patroniglue.config import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"
DEFAULT_REQUEST_FORMAT = "%a - %m %U"

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "FATAL": logging.CRITICAL,
}

_ROOT_LOGGER = logging.getLogger("patroniglue")
_HTTP_LOGGER = logging.getLogger("patroniglue.http")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    set_log_level(level)

    # Upstream calls are logged through our own event hooks.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def set_log_level(level: str) -> None:
    """Set the minimum level printed by patroniglue loggers."""
    name = (level or "").strip().upper()
    if name not in LOG_LEVELS:
        raise ConfigurationError(f"log level {level} not allowed")
    _ROOT_LOGGER.setLevel(LOG_LEVELS[name])


def _client_address(request: Request) -> str:
    client = request.client
    if client is None:
        return "-"
    return f"{client.host}:{client.port}"


def _request_uri(request: Request) -> str:
    uri = request.url.path
    if request.url.query:
        uri = f"{uri}?{request.url.query}"
    return uri


def format_request(request: Request, fmt: str | None = None) -> str:
    """Fill %a (client address), %m (method) and %U (request URI) placeholders."""
    output = fmt or DEFAULT_REQUEST_FORMAT
    definitions = {
        "%a": _client_address(request),
        "%m": request.method,
        "%U": _request_uri(request),
    }
    for placeholder, value in definitions.items():
        output = output.replace(placeholder, value)
    return output


async def _log_http_request(request: httpx.Request) -> None:
    _HTTP_LOGGER.debug("%s %s", request.method, request.url)


async def _log_http_response(response: httpx.Response) -> None:
    request = response.request
    _HTTP_LOGGER.debug(
        "HTTP response method=%s url=%s status=%d",
        request.method,
        request.url,
        response.status_code,
    )


def httpx_event_hooks() -> dict[str, list]:
    """Event hooks for debug logging of upstream requests and responses."""
    return {
        "request": [_log_http_request],
        "response": [_log_http_response],
    }
