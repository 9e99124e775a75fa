"""Centralized logging configuration using loguru."""

import sys

from loguru import logger

from marketcache.config import settings

# Remove default DEBUG handler and log at the configured level with forced colors
# colorize=True forces ANSI colors even without TTY (needed for k8s/stern)
logger.remove()
logger.add(sys.stderr, level=settings.log_level.upper(), colorize=True)

__all__ = ["logger"]
