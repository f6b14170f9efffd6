"""
dockdash - A live terminal dashboard for running Docker containers.

This package shows the containers running on a Docker host together with
their CPU and memory usage, updated in real time as containers start, stop
and report new samples.

Features:
  - Container list with a selectable detail column (image, ports, binds, ...)
  - Live CPU/RAM bars per container
  - Summary line with container count and total CPU/RAM
  - Inspect mode with the full descriptor of a container

Main Components:
  - main.py: Reconciler loop and program startup
  - bus.py: Per-category signal queues with a fair multiplexed wait
  - workers.py: Docker event, stats, tick and keyboard producer threads
  - backend.py: Docker API wrapper
  - state.py: Registry, stats holder and cursor arithmetic
  - ui.py: Curses rendering engine
  - model.py: Data structures and signal types

Usage:
  python -m dockdash [--docker-endpoint URL] [--log-file PATH]

Dependencies:
  - docker>=7.0.0
  - PyYAML
  - curses (built-in, not available on Windows natively)
"""

import logging
import logging.handlers
from typing import Optional

__version__ = "0.1.0"

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


class DockdashError(Exception):
    """Base class for errors raised by dockdash."""


def configure_logging(file_path: Optional[str], level: str = "INFO",
                      max_size_mb: int = 10, backup_count: int = 5) -> None:
    """
    Route package logs to a rotating file, or discard them.

    Nothing may be written to the terminal while curses owns it, so without
    a log file every record is dropped by a NullHandler.

    Args:
        file_path: Log destination, or None to discard
        level: Level name (DEBUG, INFO, ...)
        max_size_mb: Rotate after this many megabytes
        backup_count: Rotated files to keep
    """
    root = logging.getLogger(__name__)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if file_path:
        handler = logging.handlers.RotatingFileHandler(
            file_path, maxBytes=max_size_mb * 1024 * 1024, backupCount=backup_count
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    else:
        handler = logging.NullHandler()

    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.propagate = False
