"""
Logging configuration
"""

import logging
import sys
from typing import Optional
from core.config import settings


def setup_logging(verbose: bool = False, level: Optional[str] = None):
    """
    Configure application logging on standard error.

    Verbose runs log at DEBUG, which includes the per-record diagnostics
    for dropped archive records.
    """

    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)

    # Configure root logger
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stderr)
        ],
        force=True
    )

    # Keep HTTP transport logging quiet even in verbose mode
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging configured at {logging.getLevelName(log_level)} level")
