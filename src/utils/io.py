"""
I/O Utilities

Image file input/output operations.
"""

import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

from src.common.types import RasterImage

logger = logging.getLogger(__name__)

# JPEG quality for exported pages (0.9 on a 0..1 scale)
DEFAULT_JPEG_QUALITY = 90


def load_image(file_path: Union[str, Path]) -> RasterImage:
    """
    Decode an image file into an RGBA raster.

    Grayscale, BGR and BGRA files are all converted to RGBA; files without an
    alpha channel get an opaque one.

    Args:
        file_path: Path to any format OpenCV can decode.

    Returns:
        RasterImage with shape (H, W, 4).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If OpenCV cannot decode the file.
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Image not found: {file_path}")

    image = cv2.imread(str(file_path), cv2.IMREAD_UNCHANGED)
    if image is None:
        raise ValueError(f"Could not decode image: {file_path}")

    if image.dtype != np.uint8:
        # 16-bit PNG/TIFF
        image = (image / 257).astype(np.uint8)

    if image.ndim == 2:
        rgba = cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    elif image.shape[2] == 3:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    else:
        rgba = cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)

    logger.debug(f"Loaded {file_path} as {rgba.shape[1]}x{rgba.shape[0]} RGBA")
    return RasterImage(data=rgba)


def save_image(
    image: RasterImage,
    file_path: Union[str, Path],
    jpeg_quality: int = DEFAULT_JPEG_QUALITY,
) -> Path:
    """
    Encode an RGBA raster to disk; the format follows the file extension.

    JPEG has no alpha channel, so alpha is dropped for .jpg/.jpeg targets.

    Raises:
        ValueError: If OpenCV cannot encode to the requested format.
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    suffix = file_path.suffix.lower()
    if suffix in (".jpg", ".jpeg"):
        data = cv2.cvtColor(image.data, cv2.COLOR_RGBA2BGR)
        params = [cv2.IMWRITE_JPEG_QUALITY, int(jpeg_quality)]
    else:
        data = cv2.cvtColor(image.data, cv2.COLOR_RGBA2BGRA)
        params = []

    try:
        written = cv2.imwrite(str(file_path), data, params)
    except cv2.error as e:
        # Unknown extensions raise instead of returning False
        raise ValueError(f"Could not encode image to {file_path}: {e}") from e
    if not written:
        raise ValueError(f"Could not encode image to {file_path}")

    logger.debug(f"Saved {image.width}x{image.height} image to {file_path}")
    return file_path
