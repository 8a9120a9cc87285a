"""
logging_config.py — Centralized Logging Configuration for the Order Lifecycle Service

This module configures unified logging behavior for the entire application.
It ensures that all modules log messages consistently to the console and,
when configured, to a file.

Features:
    • Console output with optional file output
    • Process ID tagging for multi-process visibility
    • Standardized log format for all modules
    • Reduced verbosity for HTTP client libraries (httpx, httpcore)

Correlation prefixes used throughout the service:
    • [Trace: <id>]  refund commands (trace id from the x-trace-id header)
    • [Order: <id>]  cancellation requests
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """
    Configures the global logging system for the application.

    Args:
        level (str): Log level name (e.g. 'INFO', 'DEBUG'). Unknown names fall back to INFO.
        log_file (str, optional): Path of a persistent log file. Console only when omitted.
    """
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    # Outbound HTTP calls are logged by the clients themselves
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name):
    """
    Returns a logger instance for a given module or component name.

    Args:
        name (str): The logger name, typically the module's __name__.

    Returns:
        logging.Logger: A logger that follows the global format and handlers.
    """
    return logging.getLogger(name)


def trace_prefix(trace_id: str) -> str:
    return f"[Trace: {trace_id}]"


def order_prefix(order_id: str) -> str:
    return f"[Order: {order_id}]"
