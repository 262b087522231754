"""
Main processor for the Rectification module.

Orchestrates the complete pipeline:
1. Source rotation (quarter turns)
2. Geometric validation (collinearity, convexity)
3. Output sizing
4. Perspective rectification
5. Post-processing filter

Implements fail-fast strategy: stops at first failure and reports it as a
REJECT result instead of raising.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from src.common.types import Quadrilateral, RasterImage
from src.rectification.config_loader import load_config
from src.rectification.enhancement import apply_filter, rotate_quarter_turns
from src.rectification.exceptions import (
    DegenerateGeometryError,
    InvalidDimensionsError,
)
from src.rectification.geometric_validator import (
    calculate_output_size,
    find_collinear_triplet,
    is_convex_quadrilateral,
)
from src.rectification.homography import solve
from src.rectification.image_rectification import (
    validate_output_dimensions,
    warp_perspective,
)
from src.rectification.types import (
    DecisionStatus,
    FilterType,
    RectificationConfig,
    RectificationResult,
    RejectionReason,
)

logger = logging.getLogger(__name__)


class RectificationProcessor:
    """
    Main processor for document perspective correction.

    Example:
        >>> processor = RectificationProcessor()
        >>> photo = load_image(Path("receipt.jpg"))
        >>> corners = [[120, 80], [520, 60], [560, 700], [90, 720]]
        >>> result = processor.process(photo, corners)
        >>> if result.is_pass():
        ...     save_image(result.rectified_image, Path("receipt_flat.jpg"))
    """

    def __init__(
        self,
        config: Optional[RectificationConfig] = None,
        config_path: Optional[Path] = None,
    ):
        """
        Initialize the rectification processor.

        Args:
            config: Pre-loaded configuration object. If None, will load from file.
            config_path: Path to config file. If None, uses default location.
        """
        if config is not None:
            self.config = config
            logger.info("Using provided configuration")
        else:
            self.config = load_config(config_path) if config_path else load_config()
            logger.info("Loaded configuration from file")

    def process(
        self,
        image: Union[RasterImage, np.ndarray],
        corners: Union[Quadrilateral, np.ndarray, list],
        rotation: int = 0,
        output_size: Optional[Tuple[int, int]] = None,
        filter_type: Optional[Union[FilterType, str]] = None,
    ) -> RectificationResult:
        """
        Execute the complete rectification pipeline.

        Args:
            image: Source photo as RGBA raster or (H, W, 4) uint8 array.
            corners: 4 document corners [TL, TR, BR, BL], in the coordinate
                space of the image *after* ``rotation`` is applied.
            rotation: Clockwise rotation of the source in degrees (multiple
                of 90) applied before rectification.
            output_size: Explicit (width, height). If None, derived from the
                corner edge lengths and the configured maximum dimension.
            filter_type: Post-processing filter; defaults to the configured one.

        Returns:
            RectificationResult containing decision, flattened image (if
            passed) and diagnostic information.

        Raises:
            ValueError: If the image, the corner list or ``rotation`` is
                malformed. Geometric failures are reported in the result.
        """
        logger.info("Starting Rectification Pipeline")

        source = image if isinstance(image, RasterImage) else RasterImage(data=image)
        quad = Quadrilateral.coerce(corners)

        # Stage 1: Rotation
        if rotation % 360 != 0:
            logger.info(f"[Stage 1/5] Rotating source by {rotation} degrees")
            source = rotate_quarter_turns(source, rotation)

        # Stage 2: Geometric Validation
        logger.info("[Stage 2/5] Geometric Validation")
        triplet = find_collinear_triplet(quad, self.config.solver.collinearity_tolerance)
        if triplet is not None:
            logger.warning("Pipeline REJECTED at Stage 2: Degenerate Geometry")
            return self._reject(
                RejectionReason.DEGENERATE_GEOMETRY,
                detail=f"corners {list(triplet)} are collinear",
            )

        if self.config.output.require_convex and not is_convex_quadrilateral(quad):
            logger.warning("Pipeline REJECTED at Stage 2: Invalid Geometry")
            return self._reject(RejectionReason.INVALID_GEOMETRY)

        # Stage 3: Output Sizing
        logger.info("[Stage 3/5] Output Sizing")
        if output_size is None:
            try:
                width, height = calculate_output_size(
                    quad,
                    max_dimension=self.config.output.max_dimension,
                    min_edge_length=self.config.output.min_edge_length,
                )
            except InvalidDimensionsError as e:
                logger.warning(f"Pipeline REJECTED at Stage 3: {e}")
                return self._reject(RejectionReason.AREA_TOO_SMALL, detail=str(e))
        else:
            try:
                width, height = validate_output_dimensions(*output_size)
            except InvalidDimensionsError as e:
                logger.warning(f"Pipeline REJECTED at Stage 3: {e}")
                return self._reject(RejectionReason.INVALID_DIMENSIONS, detail=str(e))
        logger.info(f"Output size: {width}x{height}")

        # Stage 4: Perspective Rectification
        logger.info("[Stage 4/5] Perspective Rectification")
        solver = self.config.solver
        try:
            homography = solve(
                Quadrilateral.canonical_rectangle(width, height),
                quad,
                tolerance=solver.pivot_tolerance,
                strict=solver.strict_pivots,
                collinearity_tolerance=solver.collinearity_tolerance,
            )
        except DegenerateGeometryError as e:
            logger.warning(f"Pipeline REJECTED at Stage 4: {e}")
            return self._reject(
                RejectionReason.DEGENERATE_GEOMETRY,
                detail=str(e),
                output_size=(width, height),
            )

        warp = self.config.warp
        rectified = warp_perspective(
            source,
            homography,
            width,
            height,
            background_fill=warp.background_fill,
            interpolation=warp.interpolation,
            workers=warp.workers,
        )

        # Stage 5: Post-processing
        selected_filter = FilterType(
            filter_type if filter_type is not None else self.config.output.default_filter
        )
        if selected_filter != FilterType.NONE:
            logger.info(f"[Stage 5/5] Applying '{selected_filter.value}' filter")
            rectified = apply_filter(rectified, selected_filter)

        logger.info("Pipeline PASSED")

        return RectificationResult(
            decision=DecisionStatus.PASS,
            rectified_image=rectified,
            rejection_reason=RejectionReason.NONE,
            output_width=rectified.width,
            output_height=rectified.height,
            homography=homography,
        )

    @staticmethod
    def _reject(
        reason: RejectionReason,
        detail: str = "",
        output_size: Tuple[int, int] = (0, 0),
    ) -> RectificationResult:
        return RectificationResult(
            decision=DecisionStatus.REJECT,
            rectified_image=None,
            rejection_reason=reason,
            output_width=int(output_size[0]),
            output_height=int(output_size[1]),
            detail=detail,
        )


def process_rectification(
    image: Union[RasterImage, np.ndarray],
    corners: Union[Quadrilateral, np.ndarray, list],
    config: Optional[RectificationConfig] = None,
    **kwargs,
) -> RectificationResult:
    """
    Convenience function for one-shot rectification.

    Args:
        image: Source photo.
        corners: 4 document corners [TL, TR, BR, BL].
        config: Optional custom configuration. Uses default if None.
        **kwargs: Forwarded to RectificationProcessor.process (rotation,
            output_size, filter_type).

    Returns:
        RectificationResult object.
    """
    processor = RectificationProcessor(config=config)
    return processor.process(image, corners, **kwargs)
