# magdb/log.py
from __future__ import annotations

import logging
import sys
from typing import Optional

__all__ = ["configure_logging", "LOG_FORMAT", "DATE_FORMAT"]

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(verbose: bool = False, quiet: bool = False, log_file: Optional[str] = None) -> None:
    """Root handler for the command-line scripts. Library code only calls getLogger."""
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT, handlers=handlers, force=True)
