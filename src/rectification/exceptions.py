"""
Exception hierarchy for the rectification module.

Both error kinds are input-validation failures: they are raised before any
output pixel is written and are never retried internally.
"""


class RectificationError(ValueError):
    """Base class for geometric input errors."""


class DegenerateGeometryError(RectificationError):
    """The 4-point correspondence is singular (collinear or coincident points)."""


class InvalidDimensionsError(RectificationError):
    """The requested output size is zero, negative or otherwise unusable."""
