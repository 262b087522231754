"""
Geometric helpers for the Rectification module.

Validates the corner quadrilateral before the homography is built and derives
the output size the caller asks the rectifier for.
"""

import itertools
import logging
from typing import Optional, Tuple, Union

import numpy as np

from src.common.types import Quadrilateral
from src.rectification.exceptions import InvalidDimensionsError
from src.rectification.types import ScanMode, as_corner_array, parse_enum

logger = logging.getLogger(__name__)

QuadLike = Union[Quadrilateral, np.ndarray, list]

DEFAULT_MAX_DIMENSION = 2400
DEFAULT_MIN_EDGE_LENGTH = 10.0

# (x, y) fraction of the frame kept clear on each side
SCAN_MODE_INSETS = {
    ScanMode.DOCUMENT: (0.02, 0.02),
    ScanMode.BOOK: (0.05, 0.05),
    ScanMode.ID_CARD: (0.2, 0.3),
}


def calculate_edge_lengths(
    corners: QuadLike,
) -> Tuple[float, float, float, float]:
    """
    Calculate the length of all 4 edges of a quadrilateral.

    Args:
        corners: 4 corner points in order [TL, TR, BR, BL].

    Returns:
        Tuple of (top_edge, right_edge, bottom_edge, left_edge) lengths.

    Example:
        >>> points = np.array([[100, 100], [400, 100], [400, 200], [100, 200]])
        >>> top, right, bottom, left = calculate_edge_lengths(points)
        >>> print(f"Width: {top:.0f}, Height: {right:.0f}")
        Width: 300, Height: 100
    """
    tl, tr, br, bl = as_corner_array(corners)

    top_edge = float(np.linalg.norm(tr - tl))
    right_edge = float(np.linalg.norm(br - tr))
    bottom_edge = float(np.linalg.norm(br - bl))
    left_edge = float(np.linalg.norm(bl - tl))

    logger.debug(
        f"Edge lengths - Top: {top_edge:.1f}, Right: {right_edge:.1f}, "
        f"Bottom: {bottom_edge:.1f}, Left: {left_edge:.1f}"
    )

    return top_edge, right_edge, bottom_edge, left_edge


def calculate_output_size(
    corners: QuadLike,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
    min_edge_length: float = DEFAULT_MIN_EDGE_LENGTH,
) -> Tuple[int, int]:
    """
    Derive the output raster size from the selected quadrilateral.

    The aspect ratio comes from the averaged opposite edges; the longer side
    is scaled to ``max_dimension`` so the flattened page keeps a high
    resolution regardless of how far the camera was from the document.

    Args:
        corners: 4 corner points in order [TL, TR, BR, BL].
        max_dimension: Length of the longer output side in pixels.
        min_edge_length: Minimum average width/height of the selection.

    Returns:
        Tuple of (width, height) in pixels.

    Raises:
        InvalidDimensionsError: If the selection is smaller than
            ``min_edge_length`` or ``max_dimension`` is not positive.

    Example:
        >>> calculate_output_size([[0, 0], [300, 0], [300, 200], [0, 200]])
        (2400, 1600)
    """
    if max_dimension < 1:
        raise InvalidDimensionsError(
            f"max_dimension must be at least 1, got {max_dimension}"
        )

    top, right, bottom, left = calculate_edge_lengths(corners)
    avg_width = (top + bottom) / 2
    avg_height = (left + right) / 2

    if avg_width < min_edge_length or avg_height < min_edge_length:
        raise InvalidDimensionsError(
            f"Selected area is too small: average size {avg_width:.1f}x{avg_height:.1f}, "
            f"minimum edge is {min_edge_length:.1f}px"
        )

    if avg_width > avg_height:
        width = max_dimension
        height = max(1, int(round(avg_height / avg_width * max_dimension)))
    else:
        height = max_dimension
        width = max(1, int(round(avg_width / avg_height * max_dimension)))

    logger.debug(
        f"Output size {width}x{height} from average edges "
        f"{avg_width:.1f}x{avg_height:.1f}"
    )

    return width, height


def find_collinear_triplet(
    points: QuadLike, tolerance: float = 1e-9
) -> Optional[Tuple[int, int, int]]:
    """
    Find three points that are collinear (or coincident).

    A triplet (a, b, c) counts as collinear when the doubled triangle area
    |(b - a) x (c - a)| is at most ``tolerance`` times the squared span of the
    whole point set, so the test does not depend on the pixel scale.

    Args:
        points: 4 points, any order.
        tolerance: Relative tolerance.

    Returns:
        Indices of the first collinear triplet found, or None.
    """
    pts = as_corner_array(points)
    span = float(np.ptp(pts, axis=0).max())
    threshold = tolerance * span * span

    for i, j, k in itertools.combinations(range(4), 3):
        v1 = pts[j] - pts[i]
        v2 = pts[k] - pts[i]
        cross = v1[0] * v2[1] - v1[1] * v2[0]
        if abs(cross) <= threshold:
            logger.debug(
                f"Collinear triplet {(i, j, k)}: |cross|={abs(cross):.3e} "
                f"<= {threshold:.3e}"
            )
            return (i, j, k)

    return None


def is_convex_quadrilateral(corners: QuadLike) -> bool:
    """
    Check if 4 ordered points form a convex quadrilateral.

    A quadrilateral is convex when every pair of consecutive edges turns in the
    same direction, i.e. all 2D cross products share a sign. Mixed signs mean
    a concave or self-intersecting (bow-tie) shape, usually from corners that
    were dragged past each other.

    Args:
        corners: Ordered points [TL, TR, BR, BL].

    Returns:
        True if the quadrilateral is convex, False otherwise.
    """
    rect = as_corner_array(corners)
    cross_products = []

    for i in range(4):
        p1 = rect[i]
        p2 = rect[(i + 1) % 4]
        p3 = rect[(i + 2) % 4]

        v1 = p2 - p1
        v2 = p3 - p2
        cross_products.append(v1[0] * v2[1] - v1[1] * v2[0])

    signs = [cp > 1e-6 for cp in cross_products]
    is_convex = all(signs) or not any(signs)

    # a zero cross product (straight angle) is neither convex nor strictly concave
    if any(abs(cp) <= 1e-6 for cp in cross_products):
        is_convex = False

    if not is_convex:
        logger.warning(
            f"Non-convex quadrilateral detected. Cross products: {cross_products}"
        )

    return is_convex


def clamp_corners(corners: QuadLike, width: int, height: int) -> Quadrilateral:
    """
    Clamp corner points to the image frame [0, width] x [0, height].

    Args:
        corners: 4 corner points.
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        New Quadrilateral with every point inside the frame.
    """
    pts = as_corner_array(corners)
    pts[:, 0] = np.clip(pts[:, 0], 0, width)
    pts[:, 1] = np.clip(pts[:, 1], 0, height)
    return Quadrilateral.from_numpy(pts)


def default_corners(
    width: int,
    height: int,
    scan_mode: Union[ScanMode, str] = ScanMode.DOCUMENT,
    inset: Optional[Union[float, Tuple[float, float]]] = None,
) -> Quadrilateral:
    """
    Initial corner placement before the user or a detector adjusts them.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        scan_mode: Preset inset for the kind of object photographed.
        inset: Overrides the preset; one ratio for both axes or an
            (x_ratio, y_ratio) pair.

    Raises:
        ValueError: If the scan mode is unknown or a ratio is outside [0, 0.5).

    Example:
        >>> default_corners(1000, 500, ScanMode.ID_CARD).to_numpy()[0]
        array([200., 150.])
    """
    if inset is None:
        if not isinstance(scan_mode, ScanMode):
            scan_mode = parse_enum(ScanMode, scan_mode, "scan_mode")
        x_ratio, y_ratio = SCAN_MODE_INSETS[scan_mode]
    elif isinstance(inset, (int, float)):
        x_ratio = y_ratio = inset
    else:
        x_ratio, y_ratio = inset

    for name, ratio in (("x", x_ratio), ("y", y_ratio)):
        if not 0 <= ratio < 0.5:
            raise ValueError(f"{name} inset ratio must be in [0, 0.5), got {ratio}")

    dx = width * x_ratio
    dy = height * y_ratio
    return Quadrilateral.from_list(
        [[dx, dy], [width - dx, dy], [width - dx, height - dy], [dx, height - dy]]
    )


def order_points(pts: QuadLike) -> Quadrilateral:
    """
    Order 4 points as Top-Left, Top-Right, Bottom-Right, Bottom-Left.

    Corner detectors do not guarantee the winding order the rectifier needs.
    The algorithm uses geometric properties:
    - Top-Left: smallest sum (x + y)
    - Bottom-Right: largest sum (x + y)
    - Top-Right: smallest difference (y - x)
    - Bottom-Left: largest difference (y - x)

    Args:
        pts: 4 points, any order.

    Returns:
        Ordered Quadrilateral.

    Raises:
        ValueError: If the heuristic picks the same point twice (e.g. a square
            rotated by 45 degrees).
    """
    pts = as_corner_array(pts)

    s = pts.sum(axis=1)
    diff = np.diff(pts, axis=1).ravel()

    indices = [
        int(np.argmin(s)),
        int(np.argmin(diff)),
        int(np.argmax(s)),
        int(np.argmax(diff)),
    ]
    if len(set(indices)) != 4:
        raise ValueError(
            f"Cannot determine corner order unambiguously for points {pts.tolist()}"
        )

    ordered = pts[indices]
    logger.debug(
        f"Ordered points: TL={ordered[0]}, TR={ordered[1]}, "
        f"BR={ordered[2]}, BL={ordered[3]}"
    )
    return Quadrilateral.from_numpy(ordered)
