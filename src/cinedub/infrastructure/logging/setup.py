"""structlog + stdlib logging for the service and uvicorn.

structlog events and plain ``logging`` records (uvicorn, fastapi, httpx)
go through one ``ProcessorFormatter`` so every line shares a layout:
colourised console output in dev/test, one JSON object per line in prod.
"""

from __future__ import annotations

import copy
import logging.config
from typing import Any

import structlog

from cinedub.infrastructure.config.schema import AppConfig

log = structlog.get_logger(__name__)

# uvicorn's own handler/logger layout; formatters are swapped below
_UVICORN_LOGGING: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "default": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        },
        "access": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
        },
    },
    "loggers": {
        "uvicorn": {"handlers": ["default"], "propagate": False},
        "uvicorn.error": {},
        "uvicorn.access": {"handlers": ["access"], "propagate": False},
        "fastapi": {"handlers": ["default"], "propagate": False},
    },
}

# Libraries that log each request at INFO
_CHATTY_LOGGERS: tuple[str, ...] = ("httpx", "httpcore")


def _drop_color_message(_: Any, __: Any, event_dict: dict[str, Any]) -> dict[str, Any]:
    # uvicorn duplicates the message with ANSI codes under "color_message"
    event_dict.pop("color_message", None)
    return event_dict


def _shared_processors() -> list[structlog.typing.Processor]:
    return [
        _drop_color_message,
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]


def _renderer(config: AppConfig) -> structlog.typing.Processor:
    if config.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def build_logging_config(config: AppConfig) -> dict[str, Any]:
    """dictConfig for ``logging.config`` and ``uvicorn.run(log_config=...)``."""
    cfg = copy.deepcopy(_UVICORN_LOGGING)
    level = config.log_level

    cfg["formatters"] = {
        "structlog": {
            "()": structlog.stdlib.ProcessorFormatter,
            "foreign_pre_chain": _shared_processors(),
            "processors": [
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(config),
            ],
        }
    }
    for handler in cfg["handlers"].values():
        handler["formatter"] = "structlog"
    for logger in cfg["loggers"].values():
        logger["level"] = level

    quiet = level if level == "DEBUG" else "WARNING"
    for name in _CHATTY_LOGGERS:
        cfg["loggers"][name] = {"level": quiet}

    cfg["root"] = {"handlers": ["default"], "level": level}
    return cfg


def configure_logging(config: AppConfig) -> dict[str, Any]:
    """Configure structlog and stdlib logging; return the dictConfig used."""
    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    cfg = build_logging_config(config)
    logging.config.dictConfig(cfg)
    log.info(
        "logging_configured", log_format=config.log_format, log_level=config.log_level
    )
    return cfg
