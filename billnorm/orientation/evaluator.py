"""
Orientation Evaluator Module.

Scores how readable a page is under each of the four right-angle
rotations. Printed text produces long runs of horizontal edges, so the
rotation whose edge map yields the most horizontal Hough lines (relative
to vertical ones) is the one a reader would hold the page in.

Pipeline per rotation:
    1. Rotate the (downscaled) grayscale page
    2. Canny edge detection
    3. Probabilistic Hough segments, merged when within 8 px and 8 degrees
    4. Count horizontal vs vertical lines and measure edge density
    5. Combine into a readability score in [0, 1]
"""

import math
from typing import List, Sequence, Tuple

import cv2
import numpy as np

from billnorm.imaging.page_image import VALID_ROTATIONS, rotate_right_angle
from billnorm.utils.logger import get_logger
from billnorm.utils.exceptions import OrientationProcessingError
from .results import RotationScore

# Initialize module logger
logger = get_logger(__name__)

# Canny hysteresis thresholds
CANNY_LOW = 50
CANNY_HIGH = 100

# Probabilistic Hough accumulator: 1 px distance steps, 0.5 degree angle steps
HOUGH_RHO = 1
HOUGH_THETA = np.pi / 360
HOUGH_VOTE_THRESHOLD = 40
HOUGH_MAX_LINE_GAP = 8

# Segments shorter than max(MIN_LINE_LENGTH, shorter side / 12) are ignored
MIN_LINE_LENGTH = 30
MIN_LINE_DIVISOR = 12

# Segments within this many pixels (rho) and degrees (theta) of a longer
# one are the same line
SUPPRESSION_RADIUS = 8.0

# A line counts as horizontal/vertical within this many degrees
ORIENTATION_TOLERANCE = 15.0

# Edge density at or above this value counts as fully dense text
MAX_TEXT_DENSITY = 0.3


def detect_edges(gray: np.ndarray) -> np.ndarray:
    """Run Canny on a uint8 grayscale page; edge pixels are 255."""
    return cv2.Canny(gray, CANNY_LOW, CANNY_HIGH)


def min_line_length(shape: Tuple[int, ...]) -> int:
    return max(MIN_LINE_LENGTH, min(shape[:2]) // MIN_LINE_DIVISOR)


def segment_to_polar(x1: float, y1: float, x2: float, y2: float) -> Tuple[float, float, float, float]:
    """
    Describe a segment by the infinite line through it.

    Returns:
        Tuple of (direction, theta, rho, length). direction is the line
        angle in [0, 180) with 0 horizontal; theta and rho are the
        normal form used by the Hough transform, theta in [0, 180).
    """
    direction = math.degrees(math.atan2(y2 - y1, x2 - x1)) % 180.0
    theta = (direction + 90.0) % 180.0
    normal = math.radians(theta)
    rho = x1 * math.cos(normal) + y1 * math.sin(normal)
    return direction, theta, rho, math.hypot(x2 - x1, y2 - y1)


def is_same_line(first: Sequence[float], second: Sequence[float],
                 radius: float = SUPPRESSION_RADIUS) -> bool:
    """
    Whether two polar lines fall within radius of each other.

    theta wraps at 180 degrees, where the sign of rho flips.
    """
    theta_delta = abs(first[1] - second[1])
    other_rho = second[2]
    if theta_delta > 90.0:
        theta_delta = 180.0 - theta_delta
        other_rho = -other_rho
    return theta_delta <= radius and abs(first[2] - other_rho) <= radius


def suppress_duplicate_lines(lines: Sequence[Tuple[float, float, float, float]]) -> List[Tuple[float, float, float, float]]:
    """
    Keep the longest segment of each group of near-identical lines.

    Both edges of a stroke, and the pieces of a broken rule, collapse
    into a single line.
    """
    kept: List[Tuple[float, float, float, float]] = []
    for line in sorted(lines, key=lambda item: item[3], reverse=True):
        if not any(is_same_line(line, other) for other in kept):
            kept.append(line)
    return kept


def detect_line_angles(edges: np.ndarray) -> List[float]:
    """
    Find straight lines in an edge map and return their direction.

    Segments come from the probabilistic Hough transform with a minimum
    length that scales with the page, so diagonals that only cross a
    few strokes never qualify. Duplicates within SUPPRESSION_RADIUS are
    then merged.

    Args:
        edges: Binary edge map from detect_edges().

    Returns:
        One angle in degrees per line, in [0, 180): 0 is horizontal,
        90 vertical. Positive angles run downhill to the right.
    """
    segments = cv2.HoughLinesP(
        edges,
        HOUGH_RHO,
        HOUGH_THETA,
        HOUGH_VOTE_THRESHOLD,
        minLineLength=min_line_length(edges.shape),
        maxLineGap=HOUGH_MAX_LINE_GAP,
    )
    if segments is None:
        return []

    lines = [segment_to_polar(*(float(v) for v in segment)) for segment in segments[:, 0]]
    kept = suppress_duplicate_lines(lines)

    logger.debug(f"{len(segments)} segments merged into {len(kept)} lines")
    return [line[0] for line in kept]


def is_horizontal(angle: float) -> bool:
    return angle < ORIENTATION_TOLERANCE or abs(angle - 180.0) < ORIENTATION_TOLERANCE


def is_vertical(angle: float) -> bool:
    return abs(angle - 90.0) < ORIENTATION_TOLERANCE or abs(angle - 270.0) < ORIENTATION_TOLERANCE


def count_line_orientations(angles: Sequence[float]) -> Tuple[int, int]:
    """
    Count horizontal and vertical lines.

    Args:
        angles: Line directions in degrees.

    Returns:
        Tuple of (horizontal, vertical). Diagonal lines count as neither.

    Example:
        >>> count_line_orientations([0, 5, 90, 95])
        (2, 2)
    """
    horizontal = 0
    vertical = 0

    for angle in angles:
        if is_horizontal(angle):
            horizontal += 1
        elif is_vertical(angle):
            vertical += 1

    return horizontal, vertical


def readability_score(horizontal_lines: int, vertical_lines: int, text_density: float) -> float:
    """
    Combine line statistics into a readability score.

    0.7 weight on the share of horizontal lines, 0.3 on edge density
    (capped at MAX_TEXT_DENSITY and scaled to [0, 1]).
    """
    horizontal_share = horizontal_lines / (horizontal_lines + vertical_lines + 1)
    density_score = min(text_density, MAX_TEXT_DENSITY) / MAX_TEXT_DENSITY
    return min(horizontal_share * 0.7 + density_score * 0.3, 1.0)


class OrientationEvaluator:
    """
    Scores a grayscale page under each right-angle rotation.

    Example:
        >>> evaluator = OrientationEvaluator()
        >>> scores = evaluator.evaluate_rotations(gray)
        >>> [s.angle for s in scores]
        [0, 90, 180, 270]
    """

    def score_rotation(self, gray: np.ndarray, angle: int) -> RotationScore:
        """
        Rotate the page clockwise by angle and score its readability.

        Args:
            gray: uint8 grayscale page at 0 degrees.
            angle: Rotation to evaluate (0, 90, 180, 270).

        Returns:
            RotationScore for that rotation.

        Raises:
            InvalidRotationError: If angle is not a right angle.
        """
        rotated = rotate_right_angle(gray, angle)
        edges = detect_edges(rotated)
        angles = detect_line_angles(edges)

        horizontal, vertical = count_line_orientations(angles)

        total_pixels = edges.shape[0] * edges.shape[1]
        edge_pixels = int(np.count_nonzero(edges))
        text_density = edge_pixels / total_pixels if total_pixels else 0.0

        score = readability_score(horizontal, vertical, text_density)

        logger.debug(
            f"Rotation {angle}: score={score:.3f}, horizontal={horizontal}, "
            f"vertical={vertical}, density={text_density:.4f}"
        )

        return RotationScore(
            angle=angle,
            score=score,
            horizontal_lines=horizontal,
            vertical_lines=vertical,
            text_density=text_density,
        )

    def evaluate_rotations(self, gray: np.ndarray) -> List[RotationScore]:
        """
        Score all four rotations.

        Args:
            gray: uint8 grayscale page at 0 degrees.

        Returns:
            Four RotationScores in 0/90/180/270 order.

        Raises:
            OrientationProcessingError: If the page is empty or a rotation
                could not be scored; partial results are never returned.
        """
        if gray.size == 0:
            raise OrientationProcessingError("Page image has no pixels")

        try:
            return [self.score_rotation(gray, angle) for angle in VALID_ROTATIONS]
        except cv2.error as e:
            raise OrientationProcessingError(f"Rotation scoring failed: {e}")
