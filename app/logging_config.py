"""
Structured logging for the bridge.

Every record, whether emitted through ``logging.getLogger(__name__)`` or
structlog, goes through one ``ProcessorFormatter`` so request ids bound by
the HTTP middleware show up on pairing and billing lines alike.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import settings

SERVICE_NAME = "wallet-login-bridge"

# Chatty at INFO/DEBUG: one line per RPC round trip or websocket frame
QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx", "web3", "websockets")


def add_service_name(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _use_console(log_format: str, level: int) -> bool:
    if log_format == "console":
        return True
    if log_format == "json":
        return False
    return level == logging.DEBUG


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Install the root handler.

    Args:
        log_level: Override for ``settings.log_level``
        log_format: ``json``, ``console`` or ``auto`` (console only at DEBUG)
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    console = _use_console((log_format or settings.log_format).lower(), level)

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if console:
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
