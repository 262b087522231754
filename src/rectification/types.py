"""
Data types and structures for the Rectification module.

Provides the homography value type plus type-safe containers for
configuration and results.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple, Union

import numpy as np

from src.common.types import Pixel, Point, Quadrilateral, RasterImage


class Interpolation(Enum):
    """Sampling method used by the inverse warp."""

    NEAREST = "nearest"  # floor(sx), floor(sy); reproduces the grid exactly
    BILINEAR = "bilinear"  # 2x2 weighted blend; smoother edges


class FilterType(Enum):
    """Post-processing filters applied to the rectified page."""

    NONE = "none"
    ENHANCE = "enhance"  # Contrast stretch around mid-gray
    BW = "bw"  # Channel-mean grayscale


class ScanMode(Enum):
    """Kind of object being scanned; picks the initial corner placement."""

    DOCUMENT = "document"  # Nearly the full frame
    BOOK = "book"  # Slightly wider margin for the page curl
    ID_CARD = "id_card"  # Small card in the middle of the photo


class DecisionStatus(Enum):
    """Pipeline decision outcomes."""

    PASS = "PASS"
    REJECT = "REJECT"


class RejectionReason(Enum):
    """Specific reasons for rejection."""

    DEGENERATE_GEOMETRY = "Degenerate Geometry"  # Collinear/coincident corners
    INVALID_GEOMETRY = "Invalid Geometry"  # Non-convex or self-intersecting
    AREA_TOO_SMALL = "Area Too Small"  # Selected region below minimum edge
    INVALID_DIMENSIONS = "Invalid Dimensions"  # Unusable output size
    NONE = "None"  # No rejection (passed all checks)


@dataclass(frozen=True)
class HomographyMatrix:
    """
    Immutable 3x3 projective transform, row-major, normalized so h8 == 1.

    The coefficients map homogeneous coordinates as::

        X = h0*x + h1*y + h2
        Y = h3*x + h4*y + h5
        W = h6*x + h7*y + h8
        x' = X / W,  y' = Y / W

    Attributes:
        coefficients: The 9 coefficients h0..h8.
    """

    coefficients: Tuple[float, ...]

    def __post_init__(self) -> None:
        coefficients = tuple(float(c) for c in self.coefficients)
        if len(coefficients) != 9:
            raise ValueError(f"Expected 9 coefficients, got {len(coefficients)}")
        if not all(math.isfinite(c) for c in coefficients):
            raise ValueError(f"Homography coefficients must be finite: {coefficients}")
        if coefficients[8] != 1.0:
            raise ValueError(
                f"Homography must be normalized with h8 == 1, got {coefficients[8]}"
            )
        object.__setattr__(self, "coefficients", coefficients)

    @classmethod
    def from_numpy(cls, matrix: np.ndarray) -> "HomographyMatrix":
        """
        Build from a 3x3 array, rescaling so the bottom-right entry is 1.

        Raises:
            ValueError: If the shape is wrong or the bottom-right entry is 0.
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (3, 3):
            raise ValueError(f"Expected a 3x3 matrix, got shape {matrix.shape}")
        if matrix[2, 2] == 0:
            raise ValueError("Cannot normalize a homography whose h8 is zero")
        normalized = (matrix / matrix[2, 2]).flatten().tolist()
        normalized[8] = 1.0
        return cls(tuple(normalized))

    @classmethod
    def identity(cls) -> "HomographyMatrix":
        return cls((1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0))

    def __getitem__(self, index: int) -> float:
        """Coefficient h<index> in row-major order."""
        return self.coefficients[index]

    def entry(self, row: int, col: int) -> float:
        """Coefficient at (row, col) of the 3x3 matrix."""
        if not (0 <= row < 3 and 0 <= col < 3):
            raise IndexError(f"Matrix index out of range: ({row}, {col})")
        return self.coefficients[row * 3 + col]

    def to_numpy(self) -> np.ndarray:
        """Return a fresh 3x3 float64 array."""
        return np.array(self.coefficients, dtype=np.float64).reshape(3, 3)

    def project(self, x: float, y: float) -> Tuple[float, float]:
        """
        Map a single point through the transform.

        Raises:
            ZeroDivisionError: If the point maps to infinity (W == 0).
        """
        h = self.coefficients
        w = h[6] * x + h[7] * y + h[8]
        if w == 0:
            raise ZeroDivisionError(f"Point ({x}, {y}) maps to infinity")
        return ((h[0] * x + h[1] * y + h[2]) / w, (h[3] * x + h[4] * y + h[5]) / w)

    def project_points(self, points: np.ndarray) -> np.ndarray:
        """Map an (N, 2) array of points; rows at infinity become NaN/inf."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        homogeneous = np.hstack([pts, np.ones((pts.shape[0], 1))]) @ self.to_numpy().T
        with np.errstate(divide="ignore", invalid="ignore"):
            return homogeneous[:, :2] / homogeneous[:, 2:3]


@dataclass
class SolverConfig:
    """Configuration for the homography solver."""

    pivot_tolerance: float  # Absolute threshold below which a pivot counts as zero
    collinearity_tolerance: float  # Relative threshold for collinear corner triplets
    strict_pivots: bool  # Raise on a near-zero pivot instead of zeroing the unknown


@dataclass
class WarpConfig:
    """Configuration for the inverse warp."""

    interpolation: Interpolation
    background_fill: Pixel  # Written where the source coordinate is out of frame
    workers: int  # Threads used for row bands (1 = inline)


@dataclass
class OutputConfig:
    """Configuration for output sizing and post-processing."""

    max_dimension: int  # Longer side of the output, in pixels
    min_edge_length: float  # Minimum average edge length of the selection
    require_convex: bool
    default_filter: FilterType


@dataclass
class CornerConfig:
    """Configuration for the initial corner placement."""

    scan_mode: ScanMode


@dataclass
class RectificationConfig:
    """Complete rectification module configuration."""

    solver: SolverConfig
    warp: WarpConfig
    output: OutputConfig
    corners: CornerConfig


@dataclass
class RectificationResult:
    """
    Output from the rectification pipeline.

    Attributes:
        decision: PASS or REJECT status.
        rectified_image: The flattened page (None if rejected).
        rejection_reason: Specific reason if rejected, NONE otherwise.
        output_width: Requested/computed output width (0 if not reached).
        output_height: Requested/computed output height (0 if not reached).
        homography: Destination->source transform used for the warp.
        detail: Message of the error that caused the rejection.
    """

    decision: DecisionStatus
    rectified_image: Optional[RasterImage]
    rejection_reason: RejectionReason
    output_width: int = 0
    output_height: int = 0
    homography: Optional[HomographyMatrix] = None
    detail: str = ""

    def is_pass(self) -> bool:
        """Check if the pipeline passed."""
        return self.decision == DecisionStatus.PASS

    def get_error_message(self) -> str:
        """Get human-readable error message."""
        if self.is_pass():
            return "All checks passed"

        reason_messages = {
            RejectionReason.DEGENERATE_GEOMETRY: (
                "Corners are collinear or coincident, please adjust them"
            ),
            RejectionReason.INVALID_GEOMETRY: (
                "Corners do not form a convex quadrilateral"
            ),
            RejectionReason.AREA_TOO_SMALL: (
                "Selected area is too small. Please adjust corners."
            ),
            RejectionReason.INVALID_DIMENSIONS: "Requested output size is not usable",
        }

        message = reason_messages.get(
            self.rejection_reason, f"Rejected: {self.rejection_reason.value}"
        )
        if self.detail:
            message = f"{message} ({self.detail})"
        return message


def parse_enum(enum_cls, value: str, field: str):
    """Look up an enum member by value, with a readable error."""
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        valid = [member.value for member in enum_cls]
        raise ValueError(f"Invalid {field}: {value}. Must be one of {valid}") from None


def as_corner_array(points: Union[Quadrilateral, np.ndarray, Sequence]) -> np.ndarray:
    """Coerce 4 corner points to a (4, 2) float64 array."""
    if isinstance(points, Quadrilateral):
        return points.to_numpy()
    if isinstance(points, np.ndarray):
        arr = points.astype(np.float64)
    else:
        arr = np.array(
            [p.to_tuple() if isinstance(p, Point) else tuple(p) for p in points],
            dtype=np.float64,
        )
    if arr.shape != (4, 2):
        raise ValueError(
            f"Expected exactly 4 points with shape (4, 2), got shape {arr.shape}"
        )
    return arr
