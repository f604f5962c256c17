"""
Unified Logging Configuration

This module sets up a centralized logging system for the entire application.
All modules should import and use the logger from this module instead of
using print() statements.

Usage:
    from core.logging import logger, get_logger

    logger.info("Fetched 120 merged tokens")

    log = get_logger(__name__)
    log.warning("DexScreener rate limited")

Log Levels:
    DEBUG    - Per-request details, dropped records
    INFO     - Cycle summaries, emitted event counts, connections
    WARNING  - Retries, skipped ticks, dropped events
    ERROR    - Source unavailable, cycle failures

Configuration:
    Log level is controlled by the LOG_LEVEL setting in .env file.
"""

import logging
import sys
from typing import Optional


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure and return the application logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include logger name in log messages

    Returns:
        logging.Logger: Configured logger instance

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Application started")
        2024-01-01 12:00:00 [INFO] tokenagg Application started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    logger = logging.getLogger("tokenagg")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    return logger


# ============================================
# Initialize Logger with Settings
# ============================================

try:
    from core.config import settings
    log_level = settings.log_level if hasattr(settings, 'log_level') else "INFO"
except ImportError:
    log_level = "INFO"

logger = setup_logging(log_level=log_level)


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger for a specific module or component.

    Example:
        # In sources/dexscreener/api_client.py:
        logger = get_logger(__name__)  # "tokenagg.sources.dexscreener.api_client"
    """
    return logging.getLogger(f"tokenagg.{name}")


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(source: str, endpoint: str, params: dict = None) -> None:
    """
    Log a provider API request with consistent formatting.

    Example:
        >>> log_api_request("dexscreener", "/latest/dex/search", {"q": "solana"})
        [DEBUG] API Request: dexscreener /latest/dex/search | Params: {'q': 'solana'}
    """
    if params:
        logger.debug(f"API Request: {source} {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {source} {endpoint}")


def log_api_response(source: str, endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log a provider API response with status and timing information.

    Example:
        >>> log_api_response("geckoterminal", "/networks/solana/trending_pools", 200, 0.342)
        [DEBUG] API Response: geckoterminal /networks/solana/trending_pools | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {source} {endpoint} | Status: {status}{time_str}")


def log_source_failure(source: str, status: Optional[int] = None, body: Optional[str] = None,
                       error: Optional[str] = None) -> None:
    """
    Log a source failure with enough context to diagnose it (status, truncated body).

    Example:
        >>> log_source_failure("dexscreener", 503, "<html>Service Unavailable</html>")
        [ERROR] Source unavailable: dexscreener | Status: 503 | Body: <html>Service Unavailable</html>
    """
    parts = [f"Source unavailable: {source}"]
    if status is not None:
        parts.append(f"Status: {status}")
    if error:
        parts.append(f"Error: {error}")
    if body:
        parts.append(f"Body: {body[:200]}")
    logger.error(" | ".join(parts))


logger.debug("Logging system initialized")
