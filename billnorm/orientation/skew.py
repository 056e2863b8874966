"""
Skew Correction Module.

After the right-angle rotation is fixed, scanned pages are usually
still a few degrees off. This module measures that residual skew from
near-horizontal Hough lines and rotates it out with an affine warp.
"""

from typing import List, Sequence

import cv2
import numpy as np
from PIL import Image

from billnorm.utils.logger import get_logger
from .evaluator import ORIENTATION_TOLERANCE, detect_edges, detect_line_angles

# Initialize module logger
logger = get_logger(__name__)

# Skews at or below this magnitude are left alone
MIN_CORRECTABLE_SKEW = 0.5


def horizontal_line_offsets(angles: Sequence[float]) -> List[float]:
    """
    Signed offsets from horizontal for near-horizontal lines.

    Lines near 180 degrees are folded back by subtracting 180, so a
    line at 178 degrees contributes -2.
    """
    offsets = []
    for angle in angles:
        if angle < ORIENTATION_TOLERANCE:
            offsets.append(angle)
        elif abs(angle - 180.0) < ORIENTATION_TOLERANCE:
            offsets.append(angle - 180.0)
    return offsets


class SkewCorrector:
    """
    Detects and removes small residual skew from an oriented page.

    Attributes:
        max_skew_angle: Measured skew is clamped to +/- this many degrees
        background_fill: Gray level for pixels exposed by the rotation

    Example:
        >>> corrector = SkewCorrector(max_skew_angle=10.0)
        >>> angle = corrector.detect_skew_angle(gray)
        >>> straight = corrector.deskew(image, angle)
    """

    def __init__(self, max_skew_angle: float = 10.0, background_fill: int = 255) -> None:
        self.max_skew_angle = max_skew_angle
        self.background_fill = background_fill

    def detect_skew_angle(self, gray: np.ndarray) -> float:
        """
        Measure residual skew of a page in degrees.

        Uses the median offset of near-horizontal lines, which ignores
        the odd ruling line or table border at a different angle. For an
        even number of lines the upper of the two middle values is used.

        Args:
            gray: uint8 grayscale page, already rotated upright.

        Returns:
            Skew angle clamped to +/- max_skew_angle; 0.0 when no
            near-horizontal line is found. Positive means the text
            runs downhill to the right.
        """
        angles = detect_line_angles(detect_edges(gray))
        offsets = horizontal_line_offsets(angles)

        if not offsets:
            logger.debug("No near-horizontal lines found, assuming no skew")
            return 0.0

        offsets.sort()
        median_angle = offsets[len(offsets) // 2]
        clamped = max(-self.max_skew_angle, min(self.max_skew_angle, median_angle))

        logger.debug(
            f"Skew from {len(offsets)} lines: median={median_angle:.2f}, clamped={clamped:.2f}"
        )
        return float(clamped)

    @staticmethod
    def needs_correction(skew_angle: float) -> bool:
        return abs(skew_angle) > MIN_CORRECTABLE_SKEW

    def deskew(self, image: Image.Image, skew_angle: float) -> Image.Image:
        """
        Rotate the page about its center to cancel skew_angle.

        Nearest-neighbor sampling keeps text crisp; pixels whose source
        falls outside the page take the background fill. Output size
        equals input size.

        Args:
            image: Upright PIL page (mode 'L' or 'RGB').
            skew_angle: Skew measured by detect_skew_angle().

        Returns:
            New PIL Image with the skew removed.
        """
        if skew_angle == 0.0:
            return image.copy()

        pixels = np.asarray(image)
        height, width = pixels.shape[:2]
        center = (width / 2.0, height / 2.0)

        # Positive angle in OpenCV turns the page counter-clockwise on screen,
        # which undoes a clockwise (downhill) skew of the same size.
        matrix = cv2.getRotationMatrix2D(center, skew_angle, 1.0)

        if pixels.ndim == 3:
            border = (self.background_fill,) * pixels.shape[2]
        else:
            border = self.background_fill

        corrected = cv2.warpAffine(
            pixels,
            matrix,
            (width, height),
            flags=cv2.INTER_NEAREST,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=border,
        )

        logger.debug(f"Deskewed page by {-skew_angle:.2f} degrees")
        return Image.fromarray(corrected)
