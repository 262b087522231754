"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.
"""

import numpy as np
import pytest

from src.common.types import RasterImage


@pytest.fixture
def gradient_raster():
    """Fixture providing a 64x48 RGBA raster where every pixel is distinct."""
    height, width = 48, 64
    ys, xs = np.mgrid[0:height, 0:width]
    data = np.empty((height, width, 4), dtype=np.uint8)
    data[:, :, 0] = xs * 4 % 256
    data[:, :, 1] = ys * 5 % 256
    data[:, :, 2] = (xs + ys) % 256
    data[:, :, 3] = 255
    return RasterImage(data=data)


@pytest.fixture
def solid_red_raster():
    """Fixture providing a 400x300 solid red raster."""
    return RasterImage.blank(400, 300, fill=(255, 0, 0, 255))


@pytest.fixture
def skewed_quadrilateral():
    """Fixture providing a perspective-distorted page inside a 640x480 frame."""
    return np.array(
        [
            [150, 60],  # Top-Left
            [500, 90],  # Top-Right
            [560, 420],  # Bottom-Right
            [90, 400],  # Bottom-Left
        ],
        dtype=np.float64,
    )


@pytest.fixture
def sample_document_image(skewed_quadrilateral):
    """Fixture providing a photo of a dark page on a light table, as RGBA."""
    import cv2

    image = np.full((480, 640, 4), (200, 200, 200, 255), dtype=np.uint8)
    pts = skewed_quadrilateral.astype(np.int32)
    cv2.fillPoly(image, [pts], (30, 60, 90, 255))

    return RasterImage(data=image), skewed_quadrilateral
