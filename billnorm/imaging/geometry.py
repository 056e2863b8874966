"""
Bounding Box Geometry.

Pixel and normalized (0-1) bounding boxes plus the overlap math used
to compare regions across pages of different resolutions.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """
    Pixel-space bounding box.

    Attributes:
        x: Left edge in pixels
        y: Top edge in pixels
        width: Width in pixels
        height: Height in pixels
    """
    x: int
    y: int
    width: int
    height: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class NormalizedBBox:
    """
    Bounding box expressed as fractions of the page dimensions.

    A valid box satisfies 0 <= x, y and x + width <= 1, y + height <= 1,
    which makes boxes comparable between pages scanned at different DPI.

    Example:
        >>> NormalizedBBox(0.0, 0.0, 1.0, 0.08).is_valid()
        True
    """
    x: float
    y: float
    width: float
    height: float

    def is_valid(self) -> bool:
        """Check that all coordinates lie in [0, 1] and the box stays on the page."""
        return (
            0.0 <= self.x <= 1.0
            and 0.0 <= self.y <= 1.0
            and 0.0 <= self.width <= 1.0
            and 0.0 <= self.height <= 1.0
            and self.x + self.width <= 1.0
            and self.y + self.height <= 1.0
        )

    def area(self) -> float:
        return self.width * self.height

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NormalizedBBox':
        return cls(
            x=float(data['x']),
            y=float(data['y']),
            width=float(data['width']),
            height=float(data['height']),
        )


def normalize_bbox(
    x: int,
    y: int,
    width: int,
    height: int,
    img_width: int,
    img_height: int
) -> NormalizedBBox:
    """
    Convert pixel coordinates to a NormalizedBBox.

    Args:
        x, y: Top-left corner in pixels.
        width, height: Box size in pixels.
        img_width, img_height: Page size in pixels.

    Returns:
        Resolution-independent bounding box.
    """
    return NormalizedBBox(
        x=x / img_width,
        y=y / img_height,
        width=width / img_width,
        height=height / img_height,
    )


def denormalize_bbox(
    bbox: NormalizedBBox,
    img_width: int,
    img_height: int
) -> Tuple[int, int, int, int]:
    """
    Convert a NormalizedBBox back to rounded pixel coordinates.

    Negative or NaN results saturate to 0.

    Returns:
        Tuple of (x, y, width, height) in pixels.
    """
    def _to_pixels(value: float) -> int:
        if value != value or value < 0.0:
            return 0
        return int(round(value))

    return (
        _to_pixels(bbox.x * img_width),
        _to_pixels(bbox.y * img_height),
        _to_pixels(bbox.width * img_width),
        _to_pixels(bbox.height * img_height),
    )


def bbox_intersection_area(a: NormalizedBBox, b: NormalizedBBox) -> float:
    """Area of the overlap between two boxes (0 when they do not touch)."""
    x_overlap = min(a.x + a.width, b.x + b.width) - max(a.x, b.x)
    y_overlap = min(a.y + a.height, b.y + b.height) - max(a.y, b.y)
    if x_overlap <= 0.0 or y_overlap <= 0.0:
        return 0.0
    return x_overlap * y_overlap


def bbox_iou(a: NormalizedBBox, b: NormalizedBBox) -> float:
    """
    Intersection over Union of two boxes.

    Returns:
        IoU in [0, 1]; 0 when both boxes are degenerate.

    Example:
        >>> box = NormalizedBBox(0.0, 0.0, 0.5, 0.5)
        >>> bbox_iou(box, box)
        1.0
    """
    intersection = bbox_intersection_area(a, b)
    union = a.area() + b.area() - intersection
    if union == 0.0:
        return 0.0
    return intersection / union


def calculate_overlap_ratio(shield: NormalizedBBox, zone: NormalizedBBox) -> float:
    """Fraction of the shield's own area that falls inside zone."""
    shield_area = shield.area()
    if shield_area == 0.0:
        return 0.0
    return bbox_intersection_area(shield, zone) / shield_area
