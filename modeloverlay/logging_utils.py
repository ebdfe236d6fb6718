"""Mini README: Application-wide logging helpers for modeloverlay.

Structure:
    * configure_root_logger - installs the shared stream handler once.
    * get_logger - factory returning module loggers after baseline setup.

Usage:
    Modules create ``LOGGER = get_logger(__name__)``. The level defaults to
    the ``log_level`` setting so hosts embedding the overlay library can
    quieten placement chatter through ``MODELOVERLAY_LOG_LEVEL`` without
    touching code.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

_LOGGER_INITIALISED = False


def _coerce_level(level: Union[int, str]) -> int:
    """Translate level names such as ``"debug"`` into logging constants."""

    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level '{level}'")
    return resolved


def configure_root_logger(level: Optional[Union[int, str]] = None) -> None:
    """Attach the overlay formatter to the root logger exactly once."""

    global _LOGGER_INITIALISED
    if _LOGGER_INITIALISED:
        return

    if level is None:
        from .configuration import get_settings

        level = get_settings().log_level

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(_coerce_level(level))
    root_logger.addHandler(handler)
    _LOGGER_INITIALISED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-specific logger ensuring baseline configuration."""

    configure_root_logger()
    return logging.getLogger(name)
