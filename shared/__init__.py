"""
POSETRACK Shared Module

Common utilities used across all services.
"""

from .utils import (
    setup_logger,
    resolve_log_level,
    success_response,
    error_response,
    get_now_iso,
    now_millis,
    mask_secret,
)

__all__ = [
    'setup_logger',
    'resolve_log_level',
    'success_response',
    'error_response',
    'get_now_iso',
    'now_millis',
    'mask_secret',
]
