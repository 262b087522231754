"""
Document Perspective Rectification

Flattens a photographed document from its 4 marked corners into a
rectangular, top-down page image.

Pipeline stages:
1. Source rotation (quarter turns)
2. Geometric validation (collinear / non-convex corners)
3. Output sizing (averaged edges, longer side capped)
4. Homography solve + inverse warp
5. Post-processing filter (enhance / bw)
"""

from src.rectification.config_loader import load_config
from src.rectification.enhancement import apply_filter, rotate_quarter_turns
from src.rectification.exceptions import (
    DegenerateGeometryError,
    InvalidDimensionsError,
    RectificationError,
)
from src.rectification.geometric_validator import (
    calculate_output_size,
    clamp_corners,
    default_corners,
    order_points,
)
from src.rectification.homography import solve
from src.rectification.image_rectification import rectify, warp_perspective
from src.rectification.processor import RectificationProcessor, process_rectification
from src.rectification.types import (
    DecisionStatus,
    FilterType,
    HomographyMatrix,
    Interpolation,
    RectificationConfig,
    RectificationResult,
    RejectionReason,
    ScanMode,
)

__all__ = [
    "RectificationProcessor",
    "process_rectification",
    "load_config",
    "rectify",
    "warp_perspective",
    "solve",
    "calculate_output_size",
    "clamp_corners",
    "default_corners",
    "order_points",
    "apply_filter",
    "rotate_quarter_turns",
    "RectificationError",
    "DegenerateGeometryError",
    "InvalidDimensionsError",
    "DecisionStatus",
    "FilterType",
    "HomographyMatrix",
    "Interpolation",
    "RectificationConfig",
    "RectificationResult",
    "RejectionReason",
    "ScanMode",
]
