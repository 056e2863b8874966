"""
Helper Utilities Module.

Small, generic helpers shared by the orientation, cleanup and
resolution modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - safe_filename: Sanitize filenames for filesystem
    - elapsed_ms: Milliseconds since a perf_counter start mark
    - clamp: Bound a value to a closed interval
    - parse_iso_date: Parse a YYYY-MM-DD string
    - parse_amount: Parse a normalized numeric string
    - generate_timestamp: Timestamp string for output filenames
"""

import math
import re
import time
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Raises:
        PermissionError: If directory cannot be created due to permissions.

    Example:
        >>> ensure_directory("outputs/corrected")
        PosixPath('outputs/corrected')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def safe_filename(filename: str, replacement: str = "_") -> str:
    """
    Sanitize a filename by removing or replacing invalid characters.

    Args:
        filename: Original filename.
        replacement: Character to replace invalid characters with.

    Returns:
        Sanitized filename safe for filesystem.

    Example:
        >>> safe_filename("page:001/a")
        "page_001_a"
    """
    invalid_chars = r'[<>:"/\\|?*\x00-\x1f]'
    sanitized = re.sub(invalid_chars, replacement, filename)
    sanitized = sanitized.strip('. ')

    if not sanitized:
        sanitized = "unnamed"

    return sanitized


def elapsed_ms(start: float) -> int:
    """Whole milliseconds elapsed since a time.perf_counter() mark."""
    return int((time.perf_counter() - start) * 1000)


def clamp(value: float, low: float, high: float) -> float:
    """Bound value to [low, high]."""
    return max(low, min(high, value))


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a strict YYYY-MM-DD date string.

    Args:
        value: Normalized date string.

    Returns:
        date object, or None if the string is missing or malformed.

    Example:
        >>> parse_iso_date("2026-01-15")
        datetime.date(2026, 1, 15)
        >>> parse_iso_date("15/01/2026") is None
        True
    """
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_amount(value: Optional[str]) -> Optional[float]:
    """
    Parse a normalized numeric string such as "1234.56".

    Non-finite values ("nan", "inf") are treated as unparseable.

    Args:
        value: Normalized amount string.

    Returns:
        Float value, or None if the string does not parse.
    """
    if value is None:
        return None
    try:
        amount = float(value.strip())
    except ValueError:
        return None
    if not math.isfinite(amount):
        return None
    return amount


def generate_timestamp(fmt: str = "%Y%m%d_%H%M%S") -> str:
    """
    Generate a timestamp string for file naming.

    Example:
        >>> generate_timestamp()
        "20260115_143022"
    """
    return datetime.now().strftime(fmt)
