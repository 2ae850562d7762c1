"""
rabbit_id.tier0_core.logging
─────────────────────────────
Structured logs for the ``rabbit_id`` logger tree. The generator logs its
identity once at construction and clock anomalies as they happen; nothing is
logged per id above DEBUG.

Minimal stack: structlog (stdout JSON or console)
Configure via: RABBIT_LOG_LEVEL, RABBIT_LOG_FORMAT=json|console (env or .env)
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from rabbit_id.tier0_core.config import RabbitIdConfig, get_config

_PACKAGE_LOGGER = "rabbit_id"


# ── Configuration ─────────────────────────────────────────────────────────────

_handler: logging.Handler | None = None


def _configure_structlog(config: RabbitIdConfig) -> None:
    """Apply level and renderer from *config*. Safe to call again; the handler is replaced."""
    global _handler
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    shared_processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if config.log_format.lower() == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    ))

    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    if _handler is not None:
        package_logger.removeHandler(_handler)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    _handler = handler


# ── Public API ────────────────────────────────────────────────────────────────

def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Return a structured logger bound to the given name. The first call
    configures logging from get_config().

    Usage:
        log = get_logger(__name__)
        log.info("generator.created", datacenter_id=1, worker_id=7)
    """
    if _handler is None:
        _configure_structlog(get_config())
    return structlog.get_logger(name or _PACKAGE_LOGGER)


__all__ = ["get_logger"]
