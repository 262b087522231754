"""
Rotation and post-processing filters for rectified pages.

Rotation is restricted to quarter turns so it stays lossless. Filters work on
the RGB channels and leave alpha untouched.
"""

import logging
from typing import Union

import cv2
import numpy as np

from src.common.types import RasterImage
from src.rectification.types import FilterType

logger = logging.getLogger(__name__)

# Contrast gain of the "enhance" filter around mid-gray
ENHANCE_FACTOR = 1.3

_ROTATE_CODES = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def rotate_quarter_turns(image: RasterImage, degrees: int) -> RasterImage:
    """
    Rotate a raster clockwise by a multiple of 90 degrees.

    Args:
        image: RGBA raster.
        degrees: Clockwise rotation; any multiple of 90 (negative values and
            full turns are normalized).

    Returns:
        New raster. A 90/270 degree turn swaps width and height.

    Raises:
        ValueError: If ``degrees`` is not a multiple of 90.
    """
    if degrees % 90 != 0:
        raise ValueError(f"Rotation must be a multiple of 90 degrees, got {degrees}")

    normalized = degrees % 360
    if normalized == 0:
        return image.copy()

    rotated = cv2.rotate(image.data, _ROTATE_CODES[normalized])
    logger.debug(
        f"Rotated {image.width}x{image.height} raster by {normalized} degrees"
    )
    return RasterImage(data=np.ascontiguousarray(rotated))


def apply_filter(image: RasterImage, filter_type: Union[FilterType, str]) -> RasterImage:
    """
    Apply a post-processing filter.

    - ``enhance``: v' = clip(1.3 * (v - 128) + 128, 0, 255) per RGB channel.
    - ``bw``: every RGB channel is replaced by the mean of R, G and B.
    - ``none``: returns an unchanged copy.

    Args:
        image: RGBA raster.
        filter_type: FilterType or its string value.

    Returns:
        New raster; the input is not modified.
    """
    filter_type = FilterType(filter_type)
    data = image.data.copy()

    if filter_type == FilterType.ENHANCE:
        rgb = data[:, :, :3].astype(np.float64)
        stretched = ENHANCE_FACTOR * (rgb - 128.0) + 128.0
        data[:, :, :3] = np.clip(np.rint(stretched), 0, 255).astype(np.uint8)
    elif filter_type == FilterType.BW:
        mean = np.rint(data[:, :, :3].astype(np.float64).mean(axis=2))
        data[:, :, :3] = mean.astype(np.uint8)[:, :, np.newaxis]

    if filter_type != FilterType.NONE:
        logger.debug(f"Applied '{filter_type.value}' filter")

    return RasterImage(data=data)
