"""
Imaging Module for the Bill Normalization Engine.

Page raster I/O, right-angle rotation, grayscale conversion and the
bounding-box geometry shared by the orientation and cleanup modules.
"""

from .geometry import (
    BoundingBox,
    NormalizedBBox,
    normalize_bbox,
    denormalize_bbox,
    bbox_intersection_area,
    bbox_iou,
    calculate_overlap_ratio
)
from .page_image import (
    PageImage,
    VALID_ROTATIONS,
    load_page_image,
    save_page_image,
    image_size,
    rotate_right_angle,
    to_grayscale_array,
    downscale_for_analysis
)

__all__ = [
    'BoundingBox',
    'NormalizedBBox',
    'normalize_bbox',
    'denormalize_bbox',
    'bbox_intersection_area',
    'bbox_iou',
    'calculate_overlap_ratio',
    'PageImage',
    'VALID_ROTATIONS',
    'load_page_image',
    'save_page_image',
    'image_size',
    'rotate_right_angle',
    'to_grayscale_array',
    'downscale_for_analysis'
]
