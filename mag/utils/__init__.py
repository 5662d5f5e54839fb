"""Utility functions and helpers for mag."""

from .logging import logger
from .helpers import (
    now_millis,
    get_current_context,
    format_template_string,
    resolve_path,
    is_within_directory,
    safe_file_write,
    atomic_json_write,
    check_dependencies,
)

__all__ = [
    "logger",
    "now_millis",
    "get_current_context",
    "format_template_string",
    "resolve_path",
    "is_within_directory",
    "safe_file_write",
    "atomic_json_write",
    "check_dependencies",
]
