"""
Smart Feedback Portal: Logging setup.

``configure_logging()`` runs once when ``feedback_portal.app`` is imported.
Modules log through ``logging.getLogger(__name__)``; request lines come from
the middleware in ``feedback_portal.app`` as ``request_log {json}``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Client libraries that log every request or frame at INFO/DEBUG.
_QUIET_LOGGERS = ("httpx", "httpcore", "websockets", "uvicorn.access")

_configured = False


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: Optional[str] = None,
    fmt: str = DEFAULT_FORMAT,
    datefmt: str = DEFAULT_DATEFMT,
) -> None:
    """Install a stdout handler on the root logger, once per process.

    ``level`` overrides ``LOG_LEVEL``; unknown names fall back to INFO.
    """
    global _configured
    if _configured:
        return

    root = logging.getLogger()
    root.setLevel(_resolve_level(level))

    # uvicorn installs its own handlers when it owns the process.
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def reset_logging_for_tests() -> None:
    """Allow the next ``configure_logging()`` call to run again."""
    global _configured
    _configured = False
