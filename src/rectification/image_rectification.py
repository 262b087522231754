"""
Image Rectification

Flattens a perspective-distorted document: the quadrilateral marked in the
source photo is resampled into an axis-aligned output rectangle.

The warp uses inverse mapping. The homography is solved from the output
rectangle to the source quadrilateral, and every output pixel looks up the
source pixel it comes from, so each destination pixel is written exactly once
and foreshortened areas never leave holes.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from src.common.types import (
    OPAQUE_WHITE,
    Pixel,
    Quadrilateral,
    RasterImage,
    validate_pixel,
)
from src.rectification.exceptions import InvalidDimensionsError
from src.rectification.homography import (
    COLLINEARITY_TOLERANCE,
    PIVOT_TOLERANCE,
    solve,
)
from src.rectification.types import HomographyMatrix, Interpolation

logger = logging.getLogger(__name__)

# Mapped coordinates this close to an integer floor as if exactly on the grid
GRID_SNAP_TOLERANCE = 1e-6

# Round-off allowed below the left/top source edge before a point counts as outside
EDGE_TOLERANCE = 1e-9


def rectify(
    source: Union[RasterImage, np.ndarray],
    quad: Union[Quadrilateral, np.ndarray, list],
    out_width: int,
    out_height: int,
    background_fill: Sequence[int] = OPAQUE_WHITE,
    interpolation: Union[Interpolation, str] = Interpolation.NEAREST,
    workers: int = 1,
    pivot_tolerance: float = PIVOT_TOLERANCE,
    strict_pivots: bool = True,
    collinearity_tolerance: Optional[float] = COLLINEARITY_TOLERANCE,
) -> RasterImage:
    """
    Resample the quadrilateral ``quad`` of ``source`` into a new
    ``out_width`` x ``out_height`` raster.

    Every output pixel (x, y) is mapped back through the destination->source
    homography. If the mapped point lies inside the source frame
    (0 <= sx < width, 0 <= sy < height) the source is sampled there; otherwise
    the pixel receives ``background_fill``. Corners outside the photo are
    therefore not an error.

    Args:
        source: RGBA source raster, or an (H, W, 4) uint8 array.
        quad: Corner points in source pixels, ordered [TL, TR, BR, BL].
        out_width: Output width in pixels.
        out_height: Output height in pixels.
        background_fill: RGBA color for pixels that map outside the source.
        interpolation: "nearest" (default, copies floor(sx), floor(sy)
            verbatim) or "bilinear".
        workers: Number of threads. Rows are split into disjoint bands, one
            per thread; the result does not depend on this value.
        pivot_tolerance: Absolute pivot threshold of the solver.
        strict_pivots: Raise instead of zeroing unknowns on a vanishing pivot.
        collinearity_tolerance: Relative threshold for collinear corners;
            None skips the check.

    Returns:
        Newly allocated RGBA raster owned by the caller.

    Raises:
        InvalidDimensionsError: If either output dimension is not a positive
            integer.
        DegenerateGeometryError: If the corners are collinear/coincident.
        ValueError: If the source raster, quad, fill color or worker count is
            malformed.

    Example:
        >>> page = rectify(photo, [[120, 80], [520, 60], [560, 700], [90, 720]], 400, 600)
        >>> page.width, page.height
        (400, 600)
    """
    out_width, out_height = validate_output_dimensions(out_width, out_height)
    quad = Quadrilateral.coerce(quad)

    # Inverse mapping: solve output rectangle -> source quad
    homography = solve(
        Quadrilateral.canonical_rectangle(out_width, out_height),
        quad,
        tolerance=pivot_tolerance,
        strict=strict_pivots,
        collinearity_tolerance=collinearity_tolerance,
    )

    return warp_perspective(
        source,
        homography,
        out_width,
        out_height,
        background_fill=background_fill,
        interpolation=interpolation,
        workers=workers,
    )


def warp_perspective(
    source: Union[RasterImage, np.ndarray],
    homography: HomographyMatrix,
    out_width: int,
    out_height: int,
    background_fill: Sequence[int] = OPAQUE_WHITE,
    interpolation: Union[Interpolation, str] = Interpolation.NEAREST,
    workers: int = 1,
) -> RasterImage:
    """
    Inverse-warp ``source`` with a destination->source homography.

    This is the sampling half of :func:`rectify`, for callers that already
    hold the matrix.

    Raises:
        InvalidDimensionsError: If either output dimension is not a positive
            integer.
        ValueError: If the raster, fill color or worker count is malformed.
    """
    out_width, out_height = validate_output_dimensions(out_width, out_height)
    fill = validate_pixel(background_fill)
    interpolation = Interpolation(interpolation)
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        raise ValueError(f"workers must be a positive integer, got {workers!r}")

    raster = source if isinstance(source, RasterImage) else RasterImage(data=source)

    output = np.empty((out_height, out_width, 4), dtype=np.uint8)
    bands = _row_bands(out_height, workers)

    def warp_band(band: Tuple[int, int]) -> None:
        _warp_rows(raster.data, homography, output, band, fill, interpolation)

    if len(bands) == 1:
        warp_band(bands[0])
    else:
        with ThreadPoolExecutor(max_workers=len(bands)) as executor:
            # list() re-raises the first exception from any band
            list(executor.map(warp_band, bands))

    logger.info(
        f"Rectified {raster.width}x{raster.height} source to "
        f"{out_width}x{out_height} ({interpolation.value}, {len(bands)} band(s))"
    )

    return RasterImage(data=output)


def map_to_source(
    homography: HomographyMatrix, row_start: int, row_stop: int, width: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Map destination rows [row_start, row_stop) to source coordinates.

    Returns:
        Arrays (sx, sy) of shape (row_stop - row_start, width), not snapped
        to the grid. Points that map to infinity come back as inf/NaN.
    """
    h = homography.coefficients
    ys, xs = np.mgrid[row_start:row_stop, 0:width]
    xs = xs.astype(np.float64)
    ys = ys.astype(np.float64)

    with np.errstate(divide="ignore", invalid="ignore"):
        z = h[6] * xs + h[7] * ys + h[8]
        sx = (h[0] * xs + h[1] * ys + h[2]) / z
        sy = (h[3] * xs + h[4] * ys + h[5]) / z
        return sx, sy


def _snap_to_grid(values: np.ndarray) -> np.ndarray:
    # Round-off on an exact grid (e.g. 3.9999999999) must not floor to the
    # previous pixel
    rounded = np.round(values)
    return np.where(np.abs(values - rounded) <= GRID_SNAP_TOLERANCE, rounded, values)


def _inside_source(
    sx: np.ndarray, sy: np.ndarray, width: int, height: int
) -> np.ndarray:
    """Bounds test on the unsnapped coordinates."""
    # NaN compares False and inf fails a bound, so points at infinity fall outside
    return (
        (sx >= -EDGE_TOLERANCE)
        & (sx < width)
        & (sy >= -EDGE_TOLERANCE)
        & (sy < height)
    )


def _warp_rows(
    src: np.ndarray,
    homography: HomographyMatrix,
    output: np.ndarray,
    band: Tuple[int, int],
    fill: Pixel,
    interpolation: Interpolation,
) -> None:
    """Fill output[row_start:row_stop] in place."""
    row_start, row_stop = band
    src_height, src_width = src.shape[:2]
    out_band = output[row_start:row_stop]

    sx, sy = map_to_source(homography, row_start, row_stop, output.shape[1])

    inside = _inside_source(sx, sy, src_width, src_height)

    out_band[:] = fill
    if not inside.any():
        return

    # Snapping only picks the pixel; it never moves a point across the frame edge
    sx = _snap_to_grid(sx[inside])
    sy = _snap_to_grid(sy[inside])

    if interpolation == Interpolation.BILINEAR:
        out_band[inside] = _sample_bilinear(src, sx, sy)
    else:
        out_band[inside] = _sample_nearest(src, sx, sy)


def _sample_nearest(src: np.ndarray, sx: np.ndarray, sy: np.ndarray) -> np.ndarray:
    src_height, src_width = src.shape[:2]
    ix = np.clip(np.floor(sx), 0, src_width - 1).astype(np.intp)
    iy = np.clip(np.floor(sy), 0, src_height - 1).astype(np.intp)
    return src[iy, ix]


def _sample_bilinear(src: np.ndarray, sx: np.ndarray, sy: np.ndarray) -> np.ndarray:
    src_height, src_width = src.shape[:2]

    x0 = np.clip(np.floor(sx), 0, src_width - 1).astype(np.intp)
    y0 = np.clip(np.floor(sy), 0, src_height - 1).astype(np.intp)
    # Neighbours past the last column/row are clamped to the edge
    x1 = np.minimum(x0 + 1, src_width - 1)
    y1 = np.minimum(y0 + 1, src_height - 1)

    fx = (sx - x0)[:, np.newaxis]
    fy = (sy - y0)[:, np.newaxis]

    top = src[y0, x0] * (1.0 - fx) + src[y0, x1] * fx
    bottom = src[y1, x0] * (1.0 - fx) + src[y1, x1] * fx
    blended = top * (1.0 - fy) + bottom * fy

    return np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def _row_bands(height: int, workers: int) -> List[Tuple[int, int]]:
    """Split [0, height) into at most ``workers`` contiguous, disjoint bands."""
    count = max(1, min(workers, height))
    edges = np.linspace(0, height, count + 1).astype(int)
    return [
        (int(start), int(stop))
        for start, stop in zip(edges[:-1], edges[1:])
        if stop > start
    ]


def validate_output_dimensions(out_width, out_height) -> Tuple[int, int]:
    """
    Check a requested output size and return it as ints.

    Raises:
        InvalidDimensionsError: If either value is not a positive whole number.
    """
    for name, value in (("width", out_width), ("height", out_height)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer, float)):
            raise InvalidDimensionsError(
                f"Output {name} must be an integer, got {type(value).__name__}"
            )
        if not math.isfinite(value) or value != int(value):
            raise InvalidDimensionsError(f"Output {name} must be whole, got {value}")
        if value <= 0:
            raise InvalidDimensionsError(
                f"Output {name} must be positive, got {value}"
            )

    return int(out_width), int(out_height)
