"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the bill
normalization engine. Using specific exceptions allows callers to tell
a fatal per-page failure apart from a programming error upstream.

Exception Hierarchy:
    BillNormalizationError (base)
    ├── ImageError
    │   ├── ImageLoadError
    │   └── ImageSaveError
    ├── OrientationError
    │   ├── InvalidRotationError
    │   └── OrientationProcessingError
    ├── ResolutionError
    │   └── NoCandidatesError
    └── ReportExportError

Cross-field validation failures and contradictions are not exceptions.
They travel inside a successful ResolutionResult.
"""


class BillNormalizationError(Exception):
    """
    Base exception for all bill normalization errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# IMAGE I/O ERRORS
# =============================================================================

class ImageError(BillNormalizationError):
    """Base exception for page image I/O errors."""
    pass


class ImageLoadError(ImageError):
    """Raised when a page image cannot be opened or decoded."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Could not open page image: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


class ImageSaveError(ImageError):
    """Raised when a corrected page image cannot be written."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Could not save page image: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# ORIENTATION ERRORS
# =============================================================================

class OrientationError(BillNormalizationError):
    """Base exception for orientation detection errors."""
    pass


class InvalidRotationError(OrientationError):
    """
    Raised when a rotation other than 0/90/180/270 is requested.

    Example:
        >>> raise InvalidRotationError(45)
    """

    def __init__(self, angle):
        message = f"Invalid rotation angle: {angle}"
        details = {"angle": angle, "allowed": [0, 90, 180, 270]}
        super().__init__(message, details)


class OrientationProcessingError(OrientationError):
    """Raised when rotation scoring cannot produce a complete result."""

    def __init__(self, reason: str, page_id: str = None):
        message = f"Orientation processing failed: {reason}"
        details = {"page_id": page_id} if page_id else None
        super().__init__(message, details)


# =============================================================================
# RESOLUTION ERRORS
# =============================================================================

class ResolutionError(BillNormalizationError):
    """Base exception for field resolution errors."""
    pass


class NoCandidatesError(ResolutionError):
    """Raised when a field is resolved from an empty candidate list."""

    def __init__(self, field_name: str):
        message = f"No candidates provided for field: {field_name}"
        details = {"field": field_name}
        super().__init__(message, details)


# =============================================================================
# REPORTING ERRORS
# =============================================================================

class ReportExportError(BillNormalizationError):
    """Raised when a review report cannot be written."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export report: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# Export all exceptions
__all__ = [
    'BillNormalizationError',
    'ImageError',
    'ImageLoadError',
    'ImageSaveError',
    'OrientationError',
    'InvalidRotationError',
    'OrientationProcessingError',
    'ResolutionError',
    'NoCandidatesError',
    'ReportExportError',
]
