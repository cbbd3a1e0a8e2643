"""
Shared utilities module

This module provides common utilities used across the entire application.
All utilities are domain-agnostic and reusable.
"""

from .clock import Clock
from .formatters import DateFormatter
from .logger import RecentLogBuffer, get_recent_log_buffer, setup_logging
from .phone_normalizer import PhoneNumberNormalizer

__all__ = [
    "Clock",
    "DateFormatter",
    "PhoneNumberNormalizer",
    "RecentLogBuffer",
    "get_recent_log_buffer",
    "setup_logging",
]
