"""
Logging configuration for GMS.

Logs go to stderr: stdout carries the MCP stdio transport.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from .config import load_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

logger = logging.getLogger("gms.tools")


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install a single stderr handler on the ``gms`` logger.

    Args:
        level: Level name; defaults to the LOG_LEVEL setting
    """
    level_name = (level or load_settings().log_level).upper()
    root = logging.getLogger("gms")
    root.setLevel(level_name)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.propagate = False


@contextmanager
def log_tool_call(tool_name: str, goal_id: Optional[str] = None) -> Iterator[None]:
    """Log the start, completion and failure of a tool call with its duration."""
    start = time.perf_counter()
    logger.debug("Tool start: %s goal_id=%s", tool_name, goal_id)
    try:
        yield
    except Exception as exc:
        logger.error(
            "Tool failed: %s goal_id=%s duration_ms=%.1f error=%s",
            tool_name,
            goal_id,
            (time.perf_counter() - start) * 1000,
            exc,
        )
        raise
    logger.info(
        "Tool complete: %s goal_id=%s duration_ms=%.1f",
        tool_name,
        goal_id,
        (time.perf_counter() - start) * 1000,
    )
