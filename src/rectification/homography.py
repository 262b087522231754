"""
Homography Solver

Computes the 3x3 projective transform that maps 4 source points onto 4
destination points.

With h8 fixed to 1 the transform has 8 unknowns, and each point
correspondence (sx, sy) -> (dx, dy) contributes two linear equations:

    h0*sx + h1*sy + h2 - h6*sx*dx - h7*sy*dx = dx
    h3*sx + h4*sy + h5 - h6*sx*dy - h7*sy*dy = dy

Exactly 4 correspondences are always supplied, so the 8x8 system is solved
directly by Gaussian elimination with partial pivoting instead of a
least-squares/SVD fit.
"""

import logging
from typing import List, Optional, Tuple, Union

import numpy as np

from src.common.types import Quadrilateral
from src.rectification.exceptions import DegenerateGeometryError
from src.rectification.geometric_validator import find_collinear_triplet
from src.rectification.types import HomographyMatrix, as_corner_array

logger = logging.getLogger(__name__)

PointsLike = Union[Quadrilateral, np.ndarray, list]

PIVOT_TOLERANCE = 1e-10
COLLINEARITY_TOLERANCE = 1e-9


def build_linear_system(src: PointsLike, dst: PointsLike) -> Tuple[np.ndarray, np.ndarray]:
    """
    Build the 8x8 system A·h = b for the correspondences src[i] -> dst[i].

    Args:
        src: 4 source points.
        dst: 4 destination points.

    Returns:
        Tuple (A, b) with shapes (8, 8) and (8,).
    """
    src_pts = as_corner_array(src)
    dst_pts = as_corner_array(dst)

    A = np.zeros((8, 8), dtype=np.float64)
    b = np.zeros(8, dtype=np.float64)

    for i in range(4):
        sx, sy = src_pts[i]
        dx, dy = dst_pts[i]
        A[2 * i] = [sx, sy, 1.0, 0.0, 0.0, 0.0, -sx * dx, -sy * dx]
        A[2 * i + 1] = [0.0, 0.0, 0.0, sx, sy, 1.0, -sx * dy, -sy * dy]
        b[2 * i] = dx
        b[2 * i + 1] = dy

    return A, b


def solve_linear_system(
    A: np.ndarray, b: np.ndarray, tolerance: float = PIVOT_TOLERANCE
) -> Tuple[np.ndarray, List[int]]:
    """
    Solve A·x = b by Gaussian elimination with partial pivoting.

    At each column the row with the largest absolute entry is swapped into the
    pivot position. A pivot smaller than ``tolerance`` skips elimination for
    that column, and the matching unknown is set to 0 during
    back-substitution instead of dividing by a near-zero value.

    The inputs are not modified.

    Args:
        A: Square coefficient matrix.
        b: Right-hand side.
        tolerance: Absolute pivot threshold.

    Returns:
        Tuple (x, skipped) where ``skipped`` lists the column indices whose
        pivot fell below the tolerance. An empty list means the solution is
        exact up to round-off.
    """
    M = np.array(A, dtype=np.float64)
    rhs = np.array(b, dtype=np.float64)
    n = M.shape[0]
    skipped: List[int] = []

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(M[col:, col])))
        if pivot_row != col:
            M[[col, pivot_row]] = M[[pivot_row, col]]
            rhs[[col, pivot_row]] = rhs[[pivot_row, col]]

        pivot = M[col, col]
        if abs(pivot) < tolerance:
            skipped.append(col)
            continue

        factors = M[col + 1 :, col] / pivot
        M[col + 1 :, col:] -= np.outer(factors, M[col, col:])
        rhs[col + 1 :] -= factors * rhs[col]

    x = np.zeros(n, dtype=np.float64)
    for row in range(n - 1, -1, -1):
        diagonal = M[row, row]
        if abs(diagonal) < tolerance:
            x[row] = 0.0
            if row not in skipped:
                skipped.append(row)
            continue
        x[row] = (rhs[row] - M[row, row + 1 :] @ x[row + 1 :]) / diagonal

    return x, sorted(skipped)


def solve(
    src: PointsLike,
    dst: PointsLike,
    tolerance: float = PIVOT_TOLERANCE,
    strict: bool = True,
    collinearity_tolerance: Optional[float] = COLLINEARITY_TOLERANCE,
) -> HomographyMatrix:
    """
    Compute the homography mapping ``src[i]`` onto ``dst[i]`` for i = 0..3.

    Args:
        src: 4 source points.
        dst: 4 destination points.
        tolerance: Absolute pivot threshold for the elimination.
        strict: If True, a near-zero pivot raises DegenerateGeometryError.
            If False, the unknown is set to 0 and a warning is logged.
        collinearity_tolerance: Relative threshold for the collinear-triplet
            check run on both point sets before solving. None skips the
            check and leaves detection to the pivot test alone.

    Returns:
        HomographyMatrix with h8 == 1.

    Raises:
        DegenerateGeometryError: If either point set has three collinear or
            coincident points, if a pivot vanishes in strict mode, or if the
            solution is not finite.
        ValueError: If either input does not contain exactly 4 points.

    Example:
        >>> quad = [[120, 80], [520, 60], [560, 700], [90, 720]]
        >>> H = solve([[0, 0], [400, 0], [400, 600], [0, 600]], quad)
        >>> x, y = H.project(400, 0)  # approximately (520, 60)
    """
    if collinearity_tolerance is not None:
        for name, points in (("source", src), ("destination", dst)):
            triplet = find_collinear_triplet(points, collinearity_tolerance)
            if triplet is not None:
                raise DegenerateGeometryError(
                    f"{name.capitalize()} points {list(triplet)} are collinear "
                    "or coincident; the homography is undefined"
                )

    A, b = build_linear_system(src, dst)
    h, skipped = solve_linear_system(A, b, tolerance)

    if skipped:
        if strict:
            raise DegenerateGeometryError(
                f"Singular correspondence system: pivots {skipped} below {tolerance:g}"
            )
        logger.warning(
            f"Near-zero pivots {skipped} below {tolerance:g}; "
            "corresponding coefficients set to 0"
        )

    if not np.all(np.isfinite(h)):
        raise DegenerateGeometryError(f"Homography has non-finite coefficients: {h}")

    matrix = HomographyMatrix(tuple(h.tolist()) + (1.0,))
    logger.debug(f"Solved homography: {matrix.coefficients}")
    return matrix
