"""
Logging Configuration

Single place where scripts configure the root logger. Library modules only
create module-level loggers and never call this.
"""

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure root logging for command-line entry points.

    Args:
        level: Logging level name ("DEBUG", "INFO", ...) or numeric value.
    """
    if isinstance(level, str):
        level = level.upper()

    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
