"""Utility functions and helpers for shellgate."""

from .logging import logger, log_message, get_current_timestamp
from .helpers import (
    check_dependencies,
    get_current_context,
    format_template_string,
    strip_ansi,
    format_memory_usage,
    remove_file,
    safe_file_write
)

__all__ = [
    "logger",
    "log_message",
    "get_current_timestamp",
    "check_dependencies",
    "get_current_context",
    "format_template_string",
    "strip_ansi",
    "format_memory_usage",
    "remove_file",
    "safe_file_write",
]
