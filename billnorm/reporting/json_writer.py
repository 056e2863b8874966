"""
JSON Result Writer.

Writes any result object exposing to_json() (ResolutionResult,
MultiPageStripResult, DocumentNormalizationResult) to disk.
"""

from pathlib import Path
from typing import Union

from billnorm.utils.exceptions import ReportExportError
from billnorm.utils.helpers import ensure_directory
from billnorm.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)


def save_json(result, path: Union[str, Path]) -> str:
    """
    Save a result as UTF-8 JSON.

    Args:
        result: Object with a to_json() method.
        path: Destination file path.

    Returns:
        Path of the written file.

    Raises:
        ReportExportError: If the file cannot be written.
    """
    filepath = Path(path)
    try:
        ensure_directory(filepath.parent)
        filepath.write_text(result.to_json(), encoding="utf-8")
    except OSError as e:
        logger.error(f"JSON export failed: {e}")
        raise ReportExportError(str(filepath), str(e))

    logger.debug(f"JSON saved: {filepath}")
    return str(filepath)
