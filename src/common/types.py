"""
Common type definitions for the document rectification pipeline.

This module provides Pydantic-based type definitions for the core data
structures shared by every stage: corner points, the corner quadrilateral,
and RGBA raster images.

These types provide:
- Type validation and conversion
- Consistent interfaces across modules
- Helper methods for common operations
- Integration with numpy arrays and OpenCV
"""

import math
from typing import List, Sequence, Tuple, Union

import numpy as np
from pydantic import BaseModel, Field, field_validator

# RGBA color value, each channel in [0, 255]
Pixel = Tuple[int, int, int, int]

OPAQUE_WHITE: Pixel = (255, 255, 255, 255)


def validate_pixel(value: Sequence[int]) -> Pixel:
    """
    Validate and normalize an RGBA color.

    Args:
        value: Sequence of 4 integer channel values.

    Returns:
        Tuple (R, G, B, A).

    Raises:
        ValueError: If the value does not have 4 channels in [0, 255].
    """
    channels = tuple(value)
    if len(channels) != 4:
        raise ValueError(f"Expected 4 channels (RGBA), got {len(channels)}")

    for channel in channels:
        if isinstance(channel, bool) or int(channel) != channel:
            raise ValueError(f"Channel values must be integers, got {channel!r}")
        if not 0 <= channel <= 255:
            raise ValueError(f"Channel values must be in [0, 255], got {channel}")

    return tuple(int(c) for c in channels)


class Point(BaseModel):
    """
    Type-safe representation of a 2D point (x, y) in source pixel units.

    Coordinates are kept as floats: corners dragged in the UI or returned by a
    detector rarely land on the pixel grid.

    Attributes:
        x: X-coordinate (horizontal, typically 0 to image width).
        y: Y-coordinate (vertical, typically 0 to image height).

    Example:
        >>> point = Point(x=100.5, y=200)
        >>> arr = point.to_numpy()  # array([100.5, 200. ])
        >>> point2 = Point.from_numpy(np.array([150, 250]))
    """

    x: float = Field(..., description="X-coordinate (horizontal)")
    y: float = Field(..., description="Y-coordinate (vertical)")

    model_config = {"frozen": True}

    @field_validator("x", "y", mode="before")
    @classmethod
    def _convert_to_float(cls, v: Union[int, float, np.number]) -> float:
        """
        Convert coordinate to float and reject NaN/infinity.

        Args:
            v: Coordinate value (int, float or numpy scalar).

        Returns:
            Float coordinate.
        """
        if isinstance(v, bool) or not isinstance(v, (int, float, np.number)):
            raise ValueError(f"Coordinate must be numeric, got {type(v)}")
        v = float(v)
        if not math.isfinite(v):
            raise ValueError(f"Coordinate must be finite, got {v}")
        return v

    @classmethod
    def from_numpy(cls, arr: np.ndarray) -> "Point":
        """
        Create Point from numpy array.

        Args:
            arr: Numpy array of shape (2,) with [x, y] coordinates.

        Returns:
            Point instance.

        Raises:
            ValueError: If array shape is not (2,).
        """
        arr = np.asarray(arr)
        if arr.shape != (2,):
            raise ValueError(f"Expected array of shape (2,), got {arr.shape}")
        return cls(x=float(arr[0]), y=float(arr[1]))

    @classmethod
    def from_list(cls, coords: Sequence[float]) -> "Point":
        """
        Create Point from list [x, y].

        Raises:
            ValueError: If list does not contain exactly 2 elements.
        """
        if len(coords) != 2:
            raise ValueError(f"Expected list with 2 elements, got {len(coords)}")
        return cls(x=coords[0], y=coords[1])

    def to_numpy(self, dtype: type = np.float64) -> np.ndarray:
        """Convert Point to numpy array of shape (2,)."""
        return np.array([self.x, self.y], dtype=dtype)

    def to_tuple(self) -> Tuple[float, float]:
        """Convert Point to tuple (x, y)."""
        return (self.x, self.y)

    def distance_to(self, other: "Point") -> float:
        """
        Calculate Euclidean distance to another point.

        Args:
            other: Target point.

        Returns:
            Euclidean distance as float.
        """
        return math.hypot(self.x - other.x, self.y - other.y)

    def __repr__(self) -> str:
        """String representation of Point."""
        return f"Point(x={self.x}, y={self.y})"


PointLike = Union[Point, Sequence[float], np.ndarray]


def _to_point(value: PointLike) -> Point:
    if isinstance(value, Point):
        return value
    if isinstance(value, dict):
        return Point(**value)
    return Point.from_list(list(value))


class Quadrilateral(BaseModel):
    """
    Four corner points in the winding order Top-Left, Top-Right,
    Bottom-Right, Bottom-Left.

    The ordering is the caller's responsibility: the model does not re-sort
    the points or check convexity. Use
    ``src.rectification.geometric_validator.order_points`` on unordered
    detector output first.

    Attributes:
        points: Exactly 4 corner points [TL, TR, BR, BL].

    Example:
        >>> quad = Quadrilateral.from_list([[10, 10], [90, 12], [95, 80], [8, 78]])
        >>> quad.top_right
        Point(x=90.0, y=12.0)
        >>> quad.to_numpy().shape
        (4, 2)
    """

    points: Tuple[Point, Point, Point, Point]

    model_config = {"frozen": True}

    @field_validator("points", mode="before")
    @classmethod
    def _convert_points(cls, v) -> Tuple[Point, ...]:
        """Accept Points, [x, y] pairs or {"x": .., "y": ..} mappings."""
        if isinstance(v, np.ndarray):
            v = v.tolist()
        points = tuple(_to_point(p) for p in v)
        if len(points) != 4:
            raise ValueError(f"Expected exactly 4 points, got {len(points)}")
        return points

    @classmethod
    def from_list(cls, coords: Sequence[PointLike]) -> "Quadrilateral":
        """
        Create Quadrilateral from a list of 4 [x, y] pairs.

        Raises:
            ValueError: If the list does not contain exactly 4 points.
        """
        return cls(points=list(coords))

    @classmethod
    def from_numpy(cls, arr: np.ndarray) -> "Quadrilateral":
        """
        Create Quadrilateral from numpy array.

        Args:
            arr: Array of shape (4, 2).

        Raises:
            ValueError: If array shape is not (4, 2).
        """
        arr = np.asarray(arr, dtype=np.float64)
        if arr.shape != (4, 2):
            raise ValueError(
                f"Expected exactly 4 points with shape (4, 2), got shape {arr.shape}"
            )
        return cls(points=arr.tolist())

    @classmethod
    def coerce(
        cls, value: Union["Quadrilateral", np.ndarray, Sequence[PointLike]]
    ) -> "Quadrilateral":
        """Return ``value`` as a Quadrilateral, converting arrays and lists."""
        if isinstance(value, Quadrilateral):
            return value
        if isinstance(value, np.ndarray):
            return cls.from_numpy(value)
        return cls.from_list(value)

    @classmethod
    def canonical_rectangle(cls, width: float, height: float) -> "Quadrilateral":
        """
        Axis-aligned rectangle [(0,0), (W,0), (W,H), (0,H)].

        This is the destination frame of every rectification.
        """
        return cls(points=[(0, 0), (width, 0), (width, height), (0, height)])

    def to_numpy(self, dtype: type = np.float64) -> np.ndarray:
        """Convert to numpy array of shape (4, 2)."""
        return np.array([p.to_tuple() for p in self.points], dtype=dtype)

    def to_list(self) -> List[List[float]]:
        """Convert to list [[x, y], ...]."""
        return [[p.x, p.y] for p in self.points]

    @property
    def top_left(self) -> Point:
        return self.points[0]

    @property
    def top_right(self) -> Point:
        return self.points[1]

    @property
    def bottom_right(self) -> Point:
        return self.points[2]

    @property
    def bottom_left(self) -> Point:
        return self.points[3]

    def __getitem__(self, index: int) -> Point:
        return self.points[index]


class RasterImage(BaseModel):
    """
    Type-safe wrapper for RGBA raster images (numpy.ndarray).

    Pixels are stored row-major with the origin at the top-left corner, four
    8-bit channels per pixel in R, G, B, A order.

    Attributes:
        data: The underlying numpy array, shape (H, W, 4), dtype uint8.

    Example:
        >>> raster = RasterImage.blank(640, 480, fill=(255, 0, 0, 255))
        >>> print(raster.width, raster.height)  # 640, 480
        >>> rgba = RasterImage.from_array(cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB))
    """

    data: np.ndarray = Field(..., description="RGBA image data as numpy array")

    model_config = {"arbitrary_types_allowed": True}

    @field_validator("data")
    @classmethod
    def _validate_image(cls, v: np.ndarray) -> np.ndarray:
        """
        Validate that the numpy array is an RGBA image.

        Raises:
            ValueError: If array is not of shape (H, W, 4) and dtype uint8.
        """
        if not isinstance(v, np.ndarray):
            raise ValueError(f"Expected numpy.ndarray, got {type(v)}")

        if v.size == 0:
            raise ValueError("Image array is empty")

        if v.ndim != 3 or v.shape[2] != 4:
            raise ValueError(f"Expected RGBA image of shape (H, W, 4), got {v.shape}")

        if v.dtype != np.uint8:
            raise ValueError(
                f"Expected uint8 dtype for image, got {v.dtype}. "
                "Images should be in range [0, 255]"
            )

        return v

    @classmethod
    def blank(cls, width: int, height: int, fill: Pixel = OPAQUE_WHITE) -> "RasterImage":
        """
        Allocate a new raster filled with a single color.

        Raises:
            ValueError: If width or height is not positive.
        """
        if width <= 0 or height <= 0:
            raise ValueError(f"Raster size must be positive, got {width}x{height}")
        data = np.empty((height, width, 4), dtype=np.uint8)
        data[:] = validate_pixel(fill)
        return cls(data=data)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "RasterImage":
        """
        Build a raster from a grayscale, RGB or RGBA uint8 array.

        Grayscale and RGB inputs are promoted to RGBA with opaque alpha. The
        returned raster never shares memory with ``arr``.

        Raises:
            ValueError: If the array has an unsupported shape or dtype.
        """
        arr = np.asarray(arr)
        if arr.dtype != np.uint8:
            raise ValueError(f"Expected uint8 dtype for image, got {arr.dtype}")

        if arr.ndim == 2:
            arr = arr[:, :, np.newaxis]
        if arr.ndim != 3:
            raise ValueError(
                f"Expected 2D (grayscale) or 3D (color) image, got shape {arr.shape}"
            )

        channels = arr.shape[2]
        if channels == 4:
            return cls(data=arr.copy())

        rgba = np.full(arr.shape[:2] + (4,), 255, dtype=np.uint8)
        if channels in (1, 3):
            rgba[:, :, :3] = arr
        else:
            raise ValueError(f"Expected 1, 3, or 4 channels, got {channels}")
        return cls(data=rgba)

    @property
    def shape(self) -> Tuple[int, ...]:
        """Get image shape (H, W, 4)."""
        return self.data.shape

    @property
    def height(self) -> int:
        """Get image height in pixels."""
        return int(self.data.shape[0])

    @property
    def width(self) -> int:
        """Get image width in pixels."""
        return int(self.data.shape[1])

    def pixel(self, x: int, y: int) -> Pixel:
        """Get the RGBA value at column ``x``, row ``y``."""
        return tuple(int(c) for c in self.data[y, x])

    def to_numpy(self) -> np.ndarray:
        """Get underlying numpy array."""
        return self.data

    def copy(self) -> "RasterImage":
        """Create a deep copy of the raster."""
        return RasterImage(data=self.data.copy())

    def __eq__(self, other: object) -> bool:
        """Pixel-wise equality."""
        if not isinstance(other, RasterImage):
            return False
        return self.shape == other.shape and bool(np.array_equal(self.data, other.data))

    def __repr__(self) -> str:
        """String representation of RasterImage."""
        return f"RasterImage(width={self.width}, height={self.height})"
