"""
Strip Analyzer Module.

Extracts cheap statistical descriptors of the top and bottom bands of
a page. Two pages with the same letterhead or footer produce bands with
nearly the same brightness and texture, which is enough to spot
repetition without OCR.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

import numpy as np

from billnorm.imaging.geometry import NormalizedBBox, normalize_bbox
from billnorm.imaging.page_image import PageImage, to_grayscale_array

# Bands with pixel variance at or below this are treated as blank paper
CONTENT_VARIANCE_THRESHOLD = 100.0


@dataclass(frozen=True)
class StripData:
    """
    Pixel statistics for a horizontal band of a page.

    Attributes:
        bbox: Band location relative to the page
        mean_intensity: Mean gray level (0-255)
        variance: Population variance of gray levels
        has_content: True iff variance > 100
    """
    bbox: NormalizedBBox
    mean_intensity: float
    variance: float
    has_content: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bbox': self.bbox.to_dict(),
            'mean_intensity': self.mean_intensity,
            'variance': self.variance,
            'has_content': self.has_content,
        }


def strip_pixel_height(page_height: int, ratio: float) -> int:
    """Band height in pixels: round(page_height * ratio), at least 1."""
    return max(1, int(round(page_height * ratio)))


def strip_statistics(gray: np.ndarray, top: int, height: int) -> Tuple[float, float]:
    """
    Mean and population variance of the rows [top, top + height).

    Returns:
        (mean, variance); (0.0, 0.0) for an empty region.
    """
    band = gray[top:top + height, :]
    if band.size == 0:
        return 0.0, 0.0

    values = band.astype(np.float64)
    return float(values.mean()), float(values.var())


def _make_strip(gray: np.ndarray, top: int, height: int) -> StripData:
    page_height, page_width = gray.shape[:2]
    mean, variance = strip_statistics(gray, top, height)
    return StripData(
        bbox=normalize_bbox(0, top, page_width, height, page_width, page_height),
        mean_intensity=mean,
        variance=variance,
        has_content=variance > CONTENT_VARIANCE_THRESHOLD,
    )


def extract_top_strip(image: PageImage, strip_height_ratio: float) -> StripData:
    """
    Describe the header band of a page.

    Args:
        image: Page as PIL Image or numpy array.
        strip_height_ratio: Band height as a fraction of page height.

    Returns:
        StripData for rows [0, h * ratio).

    Example:
        >>> strip = extract_top_strip(np.zeros((100, 100), np.uint8), 0.1)
        >>> strip.bbox
        NormalizedBBox(x=0.0, y=0.0, width=1.0, height=0.1)
    """
    gray = to_grayscale_array(image)
    height = strip_pixel_height(gray.shape[0], strip_height_ratio)
    return _make_strip(gray, 0, height)


def extract_bottom_strip(image: PageImage, strip_height_ratio: float) -> StripData:
    """
    Describe the footer band of a page.

    Args:
        image: Page as PIL Image or numpy array.
        strip_height_ratio: Band height as a fraction of page height.

    Returns:
        StripData for rows [h - h * ratio, h).
    """
    gray = to_grayscale_array(image)
    height = strip_pixel_height(gray.shape[0], strip_height_ratio)
    top = max(0, gray.shape[0] - height)
    return _make_strip(gray, top, height)


def strip_similarity(strip1: StripData, strip2: StripData) -> float:
    """
    Similarity of two content-bearing strips in [0, 1].

    Average of mean-intensity closeness (1 - |delta mean| / 255) and the
    variance ratio min/max (1.0 when both variances are zero).
    """
    mean_similarity = 1.0 - abs(strip1.mean_intensity - strip2.mean_intensity) / 255.0

    max_var = max(strip1.variance, strip2.variance)
    min_var = min(strip1.variance, strip2.variance)
    variance_ratio = min_var / max_var if max_var > 0.0 else 1.0

    return (mean_similarity + variance_ratio) / 2.0


def strips_are_similar(strip1: StripData, strip2: StripData, threshold: float) -> bool:
    """
    Decide whether two strips show the same repeated region.

    Two blank strips always match; a blank and a non-blank strip never
    do. Otherwise the strips match when strip_similarity() >= threshold.
    """
    if strip1.has_content != strip2.has_content:
        return False

    if not strip1.has_content:
        return True

    return strip_similarity(strip1, strip2) >= threshold
