"""Logging utilities for Taxon-Refinery.

Provides timestamped run logs and structured run records (YAML, JSON lines).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Tuple, Union

import yaml

PathLike = Union[str, Path]

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def get_timestamped_log_path(log_path: PathLike) -> Path:
    """Insert a timestamp before the suffix of ``log_path``.

    Example: consistency.log -> consistency_20261017_080530.log
    """
    log_path = Path(log_path)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return log_path.parent / f"{log_path.stem}_{timestamp}{log_path.suffix or '.log'}"


def get_logger(
    name: str,
    log_path: PathLike,
    level: int = logging.INFO,
    timestamped: bool = True,
    propagate: bool = False,
) -> Tuple[logging.Logger, Path]:
    """Attach a file handler for one filtering run to the named logger.

    Parameters
    ----------
    name : str
        Logger name (typically the package name, so module loggers
        propagate into the run log).
    log_path : PathLike
        Base path for the log file.
    level : int
        Logging level (default: INFO).
    timestamped : bool
        If True, add a timestamp to the file name so earlier runs are kept.
    propagate : bool
        If True, records also reach handlers on ancestor loggers (the
        console); by default they go to the run log only.

    Returns
    -------
    Tuple[logging.Logger, Path]
        The logger and the path actually written to.
    """
    actual_log_path = get_timestamped_log_path(log_path) if timestamped else Path(log_path)
    actual_log_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = propagate
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.FileHandler(actual_log_path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    logger.addHandler(handler)
    return logger, actual_log_path


def log_yaml(log_path: PathLike, record: dict[str, Any]) -> Path:
    """Write ``record`` as a YAML document, replacing any previous file."""
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(record, handle, sort_keys=False, default_flow_style=False)
    return path


def log_json(log_path: PathLike, record: dict[str, Any]) -> Path:
    """Append ``record`` as one JSON line."""
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(record, default=str))
        handle.write("\n")
    return path
