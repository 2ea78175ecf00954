from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn
import yaml

from cinedub.infrastructure.config import AppConfig, load_config
from cinedub.infrastructure.logging.setup import configure_logging
from cinedub.interfaces.main import build_app

log = structlog.get_logger(__name__)

_DEFAULT_PORT = "7979"

# argparse dest -> flat config key understood by load_config
_OVERRIDE_FLAGS: dict[str, str] = {
    "log_level": "log_level",
    "log_format": "log_format",
    "lang": "language_preference",
    "dubbed_hls": "dubbed_hls",
    "dubbed_dash": "dubbed_dash",
    "dubbed_api": "dubbed_api",
}


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cinedub",
        description="Resolve titles to streams, preferring PT-BR dubbed sources.",
    )

    server = parser.add_argument_group("server")
    server.add_argument("--host", default=None, help="Bind host (default: $HOST).")
    server.add_argument(
        "--port", default=None, type=int, help="Bind port (default: $PORT or 7979)."
    )

    config = parser.add_argument_group("configuration")
    config.add_argument(
        "--config", default=None, help="YAML config file (default: $CINEDUB_CONFIG)."
    )
    config.add_argument("--dotenv", default=None, help="Load variables from a .env.")
    config.add_argument(
        "--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )
    config.add_argument("--log-format", default=None, choices=["json", "console"])
    config.add_argument(
        "--print-config",
        action="store_true",
        help="Print the merged configuration as YAML and exit.",
    )

    resolution = parser.add_argument_group("resolution")
    resolution.add_argument(
        "--lang",
        default=None,
        choices=["pt-BR", "en", "original"],
        help="Default language preference for requests that do not set one.",
    )
    resolution.add_argument("--dubbed-hls", default=None, metavar="TEMPLATE")
    resolution.add_argument("--dubbed-dash", default=None, metavar="TEMPLATE")
    resolution.add_argument("--dubbed-api", default=None, metavar="TEMPLATE")
    resolution.add_argument(
        "--enable-addons",
        action="store_true",
        help="Register the Stremio add-on resolver.",
    )
    resolution.add_argument(
        "--no-health-checks",
        action="store_true",
        help="Do not run the periodic provider health checks.",
    )

    return parser.parse_args(list(argv) if argv is not None else None)


def build_cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Translate parsed flags into the top config layer."""
    overrides: dict[str, Any] = {
        key: getattr(args, dest)
        for dest, key in _OVERRIDE_FLAGS.items()
        if getattr(args, dest, None)
    }
    if getattr(args, "enable_addons", False):
        overrides["addons_enabled"] = True
    if getattr(args, "no_health_checks", False):
        overrides["health_enabled"] = False
    return overrides


def render_config(config: AppConfig) -> str:
    return yaml.safe_dump(
        config.to_sectioned_dict(), sort_keys=False, allow_unicode=True
    )


def start(argv: Iterable[str] | None = None) -> None:
    """Process entrypoint: load config once, then serve the app."""
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    config = load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=build_cli_overrides(args),
    )

    if args.print_config:
        sys.stdout.write(render_config(config))
        return

    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = args.port or int(os.getenv("PORT", _DEFAULT_PORT))

    log_config = configure_logging(config)
    log.info(
        "starting",
        host=host,
        port=port,
        environment=config.environment,
        language_preference=config.resolution.language_preference,
        dubbed_configured=config.dubbed.is_configured,
    )

    uvicorn.run(build_app(config), host=host, port=port, log_config=log_config)


if __name__ == "__main__":
    raise SystemExit(start())
