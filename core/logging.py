"""
Logging Setup

One stdout logger tree rooted at "pairwatch". Modules ask for a child with
get_logger(__name__) so every line names the component that wrote it:

    2024-01-01 12:00:00 [WARNING] pairwatch.core.pipeline CHZ/BTC: pepper data may be limited: HTTP 429

What goes where:
    DEBUG    provider requests/responses, pipeline stage transitions
    INFO     bar counts per fetch, derived series lengths, startup config
    WARNING  degraded optional legs, rate limits, empty ("limited data") series
    ERROR    failed required legs, HTTP errors from a provider

The level comes from LOG_LEVEL (see core.config).
"""

import logging
import sys
from typing import Any, Dict, Optional


LOGGER_NAME = "pairwatch"

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s %(message)s"


def setup_logging(log_level: str = "INFO", log_format: Optional[str] = None) -> logging.Logger:
    """
    Configure the root handler and return the "pairwatch" logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown names fall back to INFO)
        log_format: Format string, DEFAULT_FORMAT when omitted

    Calling it again replaces the previous configuration (uvicorn and
    pytest both install their own handlers first).
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=log_format or DEFAULT_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level)
    return root


try:
    from core.config import settings
    log_level = settings.log_level
except ImportError:
    # core.config is still being imported
    log_level = "INFO"

logger = setup_logging(log_level=log_level)


def get_logger(name: str) -> logging.Logger:
    """
    Child logger of "pairwatch", e.g. get_logger("core.pipeline") -> "pairwatch.core.pipeline".
    """
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


# ============================================
# Provider Calls
# ============================================

def log_api_request(provider: str, endpoint: str, params: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an outgoing provider request at DEBUG.

    The CryptoCompare api_key is masked so it never reaches the log.
    """
    if not params:
        logger.debug(f"{provider} -> {endpoint}")
        return

    shown = {key: ("***" if key == "api_key" else value) for key, value in params.items()}
    logger.debug(f"{provider} -> {endpoint} {shown}")


def log_api_response(provider: str, endpoint: str, status: int, response_time: Optional[float] = None) -> None:
    """Log a provider response status (and elapsed seconds) at DEBUG."""
    elapsed = f" in {response_time:.3f}s" if response_time is not None else ""
    logger.debug(f"{provider} <- {endpoint} HTTP {status}{elapsed}")


# ============================================
# Pipeline
# ============================================

def log_stage_transition(log: logging.Logger, pair: str, previous: str, current: str) -> None:
    """
    Log a pair pipeline stage change at DEBUG.

    Example:
        >>> log_stage_transition(log, "CHZ/BTC", "deriving", "ready")
        [DEBUG] pairwatch.core.pipeline CHZ/BTC: deriving -> ready
    """
    log.debug(f"{pair}: {previous} -> {current}")
