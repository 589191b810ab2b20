"""Command-line entry point: read settings, build the app and serve it."""

from __future__ import annotations

import argparse
import logging
import ssl
import sys
from typing import Optional, Sequence

import uvicorn

from patroniglue import __version__, config
from patroniglue.config import ConfigurationError, load_settings
from patroniglue.log import configure_logging, set_log_level
from patroniglue.main import create_app
from patroniglue.models import Settings
from patroniglue.tls import apply_tls_settings

logger = logging.getLogger("patroniglue.cli")


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=config.APP_NAME,
        description="Expose cached Patroni statuses as HTTP status codes.",
    )
    parser.add_argument("--quiet", action="store_true", help="Quiet mode")
    parser.add_argument("--verbose", action="store_true", help="Verbose mode")
    parser.add_argument("--debug", action="store_true", help="Debug mode")
    parser.add_argument("--version", action="store_true", help="Print version")
    parser.add_argument("--config", default=config.DEFAULT_CONFIG_PATH, help="Configuration file")
    return parser.parse_args(argv)


def _log_level(args: argparse.Namespace) -> str:
    level = config.LOG_LEVEL
    if args.debug:
        level = "DEBUG"
    if args.verbose:
        level = "INFO"
    if args.quiet:
        level = "ERROR"
    return level


def build_server(settings: Settings) -> uvicorn.Server:
    frontend = settings.frontend
    server_config = uvicorn.Config(
        create_app(settings),
        host=frontend.host,
        port=frontend.port,
        ssl_certfile=frontend.certfile if frontend.tls_enabled else None,
        ssl_keyfile=frontend.keyfile if frontend.tls_enabled else None,
        log_config=None,
        access_log=False,
    )
    try:
        server_config.load()
    except (OSError, ssl.SSLError) as exc:
        raise ConfigurationError(f"could not load TLS certificate: {exc}") from exc
    if server_config.ssl is not None:
        apply_tls_settings(server_config.ssl, frontend)
    return uvicorn.Server(server_config)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    if args.version:
        print(__version__)
        return 0

    configure_logging()
    try:
        set_log_level(_log_level(args))
        logger.debug("reading configuration file %s", args.config)
        settings = load_settings(args.config)
        server = build_server(settings)
    except ConfigurationError as exc:
        logger.critical("could not start: %s", exc)
        return 1

    scheme = "https" if settings.frontend.tls_enabled else "http"
    logger.info("listening on %s://%s:%d", scheme, settings.frontend.host, settings.frontend.port)
    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
