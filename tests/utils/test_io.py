"""
Unit tests for image I/O utilities.
"""

import logging

import cv2
import numpy as np
import pytest

from src.common.types import RasterImage
from src.utils.io import load_image, save_image
from src.utils.logging_config import setup_logging


class TestImageIO:
    """Tests for load_image and save_image."""

    def test_png_round_trip(self, tmp_path, gradient_raster):
        """PNG keeps every channel, alpha included."""
        data = gradient_raster.data.copy()
        data[:, :, 3] = 128
        raster = RasterImage(data=data)

        path = save_image(raster, tmp_path / "page.png")
        loaded = load_image(path)

        assert loaded == raster

    def test_jpeg_drops_alpha(self, tmp_path):
        """JPEG output is opaque and close to the source colors."""
        raster = RasterImage.blank(32, 32, fill=(200, 40, 40, 0))

        path = save_image(raster, tmp_path / "page.jpg")
        loaded = load_image(path)

        assert loaded.shape == (32, 32, 4)
        assert np.all(loaded.data[:, :, 3] == 255)
        np.testing.assert_allclose(
            loaded.data[:, :, :3].astype(int), raster.data[:, :, :3].astype(int), atol=4
        )

    def test_creates_parent_directories(self, tmp_path, gradient_raster):
        """Missing output directories are created."""
        path = save_image(gradient_raster, tmp_path / "out" / "nested" / "page.png")

        assert path.exists()

    def test_unsupported_extension(self, tmp_path, gradient_raster):
        """Unknown formats raise ValueError."""
        with pytest.raises(ValueError, match="Could not encode"):
            save_image(gradient_raster, tmp_path / "page.unknownext")

    def test_load_grayscale(self, tmp_path):
        """Grayscale files become opaque RGBA."""
        gray = np.array([[0, 100], [200, 255]], dtype=np.uint8)
        path = tmp_path / "gray.png"
        cv2.imwrite(str(path), gray)

        loaded = load_image(path)

        assert loaded.pixel(1, 0) == (100, 100, 100, 255)
        assert loaded.pixel(0, 1) == (200, 200, 200, 255)

    def test_load_bgr_order(self, tmp_path):
        """BGR files are converted to RGB order."""
        bgr = np.zeros((2, 2, 3), dtype=np.uint8)
        bgr[0, 0] = (255, 0, 0)  # blue in OpenCV order
        path = tmp_path / "color.png"
        cv2.imwrite(str(path), bgr)

        loaded = load_image(path)

        assert loaded.pixel(0, 0) == (0, 0, 255, 255)

    def test_load_16_bit(self, tmp_path):
        """16-bit files are scaled down to 8 bits."""
        deep = np.array([[65535, 25700]], dtype=np.uint16)
        path = tmp_path / "deep.png"
        cv2.imwrite(str(path), deep)

        loaded = load_image(path)

        assert loaded.pixel(0, 0) == (255, 255, 255, 255)
        assert loaded.pixel(1, 0) == (100, 100, 100, 255)

    def test_missing_file(self, tmp_path):
        """Missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Image not found"):
            load_image(tmp_path / "missing.png")

    def test_undecodable_file(self, tmp_path):
        """Files OpenCV cannot decode raise ValueError."""
        path = tmp_path / "notes.png"
        path.write_text("not an image")

        with pytest.raises(ValueError, match="Could not decode"):
            load_image(path)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_level_by_name(self):
        setup_logging("debug")

        assert logging.getLogger().level == logging.DEBUG

    def test_level_by_value(self):
        setup_logging(logging.WARNING)

        assert logging.getLogger().level == logging.WARNING
