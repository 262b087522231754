"""
Common types and utilities shared across all modules.

This module provides standardized data types for the document rectification
pipeline, ensuring consistency and type safety between geometry, warping and
I/O code.
"""

from src.common.types import (
    OPAQUE_WHITE,
    Pixel,
    Point,
    Quadrilateral,
    RasterImage,
    validate_pixel,
)

__all__ = [
    "OPAQUE_WHITE",
    "Pixel",
    "Point",
    "Quadrilateral",
    "RasterImage",
    "validate_pixel",
]
