"""Logging configuration for stdio mode.

In stdio mode stdout carries JSON-RPC messages, so every log record must
go to stderr.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

PACKAGE_LOGGER = "pokedex_mcp"

# MCP logging levels (RFC 5424 names) mapped onto stdlib levels
MCP_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emergency": logging.CRITICAL,
}


def configure_stdio_safe_logging(level: str | int = logging.INFO) -> None:
    """Route ALL logging to stderr, keeping stdout clean for JSON-RPC.

    1. Removes existing handlers from the root logger and every known logger
    2. Installs a single stderr handler on the root logger
    3. Makes every logger propagate to root
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger_instance = logging.getLogger(logger_name)
        for handler in logger_instance.handlers[:]:
            logger_instance.removeHandler(handler)
        logger_instance.propagate = True

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(stderr_handler)
    root_logger.setLevel(level)


def set_mcp_log_level(level: str) -> int:
    """Apply an MCP logging/setLevel request to the package logger.

    Returns:
        The stdlib level that was applied

    Raises:
        ValueError: If level is not an MCP logging level
    """
    try:
        stdlib_level = MCP_LEVELS[level.lower()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level}") from None
    logging.getLogger(PACKAGE_LOGGER).setLevel(stdlib_level)
    return stdlib_level
