"""
POSETRACK Shared Utilities

Logging, response envelopes and time helpers.
"""

import logging
import sys
import time
from typing import Any, Optional
from datetime import datetime, timezone


# ============================================
# Logging Configuration
# ============================================

def setup_logger(name: str = "posetrack", level: int = logging.INFO) -> logging.Logger:
    """
    Set up a configured logger with console output.

    Usage:
        logger = setup_logger(__name__)
        logger.info("Hello from POSETRACK")
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger


def resolve_log_level(name: str, default: int = logging.INFO) -> int:
    """Map a level name such as "debug" to its logging constant."""
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


# ============================================
# Response Envelopes
# ============================================

def success_response(data: Any = None, message: str = "Success") -> dict:
    """Create a success response dict."""
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": get_now_iso()
    }


def error_response(error: str, error_code: str = None, details: Optional[dict] = None) -> dict:
    """Create an error response dict."""
    return {
        "success": False,
        "error": error,
        "error_code": error_code,
        "details": details,
        "timestamp": get_now_iso()
    }


# ============================================
# Utility Functions
# ============================================

def get_now_iso() -> str:
    """Get current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat()


def now_millis() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def mask_secret(value: Optional[str], visible: int = 10) -> str:
    """Keep the first `visible` characters of a secret for logging."""
    if not value:
        return ""
    return f"{value[:visible]}..."
