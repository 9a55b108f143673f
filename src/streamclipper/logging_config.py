"""Logging setup for streamclipper.

Call ``setup_logging()`` once from the entry point; library modules only do
``logger = logging.getLogger(__name__)`` and never configure handlers.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Dict, Optional, Union

PACKAGE_LOGGER = "streamclipper"
DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
MODULE_LEVELS_ENV = "SC_LOG_MODULE_LEVELS"

_CONFIGURED = False


def _qualify(name: str) -> str:
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return name
    return f"{PACKAGE_LOGGER}.{name}"


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    value = getattr(logging, str(level).strip().upper(), None)
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def parse_module_levels(value: str) -> Dict[str, int]:
    """Parse ``"analysis_audio=DEBUG,chat:INFO"`` into qualified logger levels.

    Entries may be separated by commas or semicolons. Bad entries are skipped.
    """
    out: Dict[str, int] = {}
    for part in re.split(r"[;,]+", value or ""):
        match = re.match(r"^\s*([\w.]+)\s*[=:]\s*(\w+)\s*$", part)
        if not match:
            continue
        level = getattr(logging, match.group(2).upper(), None)
        if isinstance(level, int):
            out[_qualify(match.group(1))] = level
    return out


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
) -> None:
    """Attach stderr (and optionally file) handlers to the package logger.

    Subsequent calls are no-ops.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(_coerce_level(level))
    logger.handlers.clear()

    # Handlers stay at DEBUG so per-module overrides can lower the threshold.
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False

    for name, lvl in parse_module_levels(os.getenv(MODULE_LEVELS_ENV, "")).items():
        logging.getLogger(name).setLevel(lvl)

    _CONFIGURED = True

