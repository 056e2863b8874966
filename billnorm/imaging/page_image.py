"""
Page Image Module.

This module handles page raster I/O and the pixel conversions shared by
orientation detection and strip analysis:
    - Loading and saving page images (Pillow)
    - Lossless right-angle rotation
    - Grayscale conversion to numpy arrays
    - Downsampling for analysis (OpenCV)

A page may be handed around either as a PIL Image or as a numpy array
(grayscale HxW or color HxWx3); helpers here accept both.
"""

from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image

from billnorm.utils.logger import get_logger
from billnorm.utils.helpers import ensure_directory
from billnorm.utils.exceptions import (
    ImageLoadError,
    ImageSaveError,
    InvalidRotationError
)

# Initialize module logger
logger = get_logger(__name__)

PageImage = Union[Image.Image, np.ndarray]

VALID_ROTATIONS = (0, 90, 180, 270)

# Clockwise rotation expressed as the equivalent Pillow transpose
_CLOCKWISE_TRANSPOSE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


def load_page_image(filepath: Union[str, Path]) -> Image.Image:
    """
    Open a page image and convert it to a mode the engine can process.

    Palette, alpha and CMYK images are flattened to RGB on a white
    background; grayscale and RGB images are kept as they are.

    Args:
        filepath: Path to the page image.

    Returns:
        Decoded PIL Image (mode 'L' or 'RGB').

    Raises:
        ImageLoadError: If the file is missing or cannot be decoded.
    """
    filepath = Path(filepath)

    try:
        with Image.open(filepath) as handle:
            handle.load()
            image = handle.copy()
    except (OSError, ValueError) as e:
        logger.error(f"Failed to open page image {filepath}: {e}")
        raise ImageLoadError(str(filepath), str(e))

    if image.mode in ('L', 'RGB'):
        return image

    original_mode = image.mode
    if image.mode in ('RGBA', 'LA', 'P'):
        rgba = image.convert('RGBA')
        background = Image.new('RGB', image.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        image = background
    else:
        image = image.convert('RGB')

    logger.debug(f"Converted page image from {original_mode} to {image.mode}")
    return image


def save_page_image(image: PageImage, filepath: Union[str, Path]) -> Path:
    """
    Write a page image, creating the parent directory if needed.

    Args:
        image: PIL Image or numpy array to save.
        filepath: Destination path; the suffix selects the format.

    Returns:
        Path the image was written to.

    Raises:
        ImageSaveError: If the directory or file cannot be written.
    """
    filepath = Path(filepath)

    try:
        ensure_directory(filepath.parent)
        if isinstance(image, np.ndarray):
            image = Image.fromarray(image)
        image.save(filepath)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to save page image {filepath}: {e}")
        raise ImageSaveError(str(filepath), str(e))

    return filepath


def image_size(image: PageImage) -> tuple:
    """Return (width, height) for a PIL Image or numpy array."""
    if isinstance(image, np.ndarray):
        return int(image.shape[1]), int(image.shape[0])
    return image.size


def rotate_right_angle(image: PageImage, angle: int) -> PageImage:
    """
    Rotate a page clockwise by a right angle without resampling.

    90 and 270 swap width and height; 0 and 180 preserve them.

    Args:
        image: PIL Image or numpy array.
        angle: One of 0, 90, 180, 270.

    Returns:
        Rotated image of the same type as the input.

    Raises:
        InvalidRotationError: For any other angle.

    Example:
        >>> rotate_right_angle(Image.new('L', (800, 600)), 90).size
        (600, 800)
    """
    if angle not in VALID_ROTATIONS:
        raise InvalidRotationError(angle)

    if isinstance(image, np.ndarray):
        if angle == 0:
            return image.copy()
        return np.ascontiguousarray(np.rot90(image, k=-(angle // 90)))

    if angle == 0:
        return image.copy()
    return image.transpose(_CLOCKWISE_TRANSPOSE[angle])


def to_grayscale_array(image: PageImage) -> np.ndarray:
    """
    Convert a page to an 8-bit single-channel numpy array.

    Args:
        image: PIL Image, HxW array or HxWx3 RGB array.

    Returns:
        uint8 array of shape (height, width).
    """
    if isinstance(image, np.ndarray):
        array = image
        if array.ndim == 3:
            if array.shape[2] == 4:
                array = cv2.cvtColor(array.astype(np.uint8), cv2.COLOR_RGBA2GRAY)
            else:
                array = cv2.cvtColor(array.astype(np.uint8), cv2.COLOR_RGB2GRAY)
        return array.astype(np.uint8, copy=False)

    return np.asarray(image.convert('L'), dtype=np.uint8)


def downscale_for_analysis(gray: np.ndarray, max_dimension: int) -> np.ndarray:
    """
    Shrink a grayscale page so its longer side is at most max_dimension.

    Aspect ratio is preserved, so line angles measured on the result
    match the full-resolution page. Smaller pages are returned as-is.

    Args:
        gray: uint8 grayscale array.
        max_dimension: Longest side allowed, in pixels (<= 0 disables).

    Returns:
        Possibly resized grayscale array.
    """
    height, width = gray.shape[:2]
    longest = max(height, width)

    if max_dimension <= 0 or longest <= max_dimension:
        return gray

    ratio = max_dimension / longest
    new_size = (max(1, int(round(width * ratio))), max(1, int(round(height * ratio))))
    resized = cv2.resize(gray, new_size, interpolation=cv2.INTER_AREA)

    logger.debug(f"Downscaled page for analysis from {width}x{height} to {new_size[0]}x{new_size[1]}")
    return resized
