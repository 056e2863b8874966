"""
Utility Module for the Bill Normalization Engine.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Custom exceptions
    - File and parsing helpers
"""

from .logger import setup_logger, get_logger
from .helpers import ensure_directory, safe_filename, elapsed_ms, clamp

__all__ = [
    'setup_logger',
    'get_logger',
    'ensure_directory',
    'safe_filename',
    'elapsed_ms',
    'clamp'
]
