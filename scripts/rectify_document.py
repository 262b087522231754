#!/usr/bin/env python3
"""
Document Rectification Script

Flattens a photographed document from its 4 corner points.

Usage:
    # Corners in TL, TR, BR, BL order, output size derived from the corners
    python scripts/rectify_document.py --image photo.jpg \
        --corners 120,80 520,60 560,700 90,720 --output page.jpg

    # Explicit output size, source rotated a quarter turn first, B&W filter
    python scripts/rectify_document.py --image photo.jpg \
        --corners 120,80 520,60 560,700 90,720 --output page.png \
        --width 850 --height 1100 --rotation 90 --filter bw

    # Unordered corners from a detector, clamped to the photo
    python scripts/rectify_document.py --image photo.jpg \
        --corners 560,700 120,80 90,720 520,60 --order-corners --clamp \
        --output page.jpg

    # No corners: start from the ID card preset
    python scripts/rectify_document.py --image card.jpg --scan-mode id_card \
        --output card.png
"""

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.rectification import (  # noqa: E402
    FilterType,
    Interpolation,
    RectificationProcessor,
    ScanMode,
    clamp_corners,
    default_corners,
    load_config,
    order_points,
)
from src.rectification.config_loader import DEFAULT_CONFIG_PATH  # noqa: E402
from src.utils.io import load_image, save_image  # noqa: E402
from src.utils.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_BAD_INPUT = 2


def parse_corner(text: str) -> Tuple[float, float]:
    """Parse an "x,y" command-line token."""
    try:
        x_text, y_text = text.split(",")
        return float(x_text), float(y_text)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Corner must look like 'x,y', got '{text}'"
        ) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Flatten a photographed document from its 4 corners",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--image", type=Path, required=True, help="Source photo")
    parser.add_argument(
        "--corners",
        type=parse_corner,
        nargs=4,
        metavar="X,Y",
        help="Document corners: top-left top-right bottom-right bottom-left "
        "(default: scan-mode preset)",
    )
    parser.add_argument(
        "--scan-mode",
        type=str,
        choices=[m.value for m in ScanMode],
        help="Preset corner placement when --corners is omitted (default: from config)",
    )
    parser.add_argument(
        "--output", type=Path, required=True, help="Output image path"
    )
    parser.add_argument("--width", type=int, help="Output width (needs --height)")
    parser.add_argument("--height", type=int, help="Output height (needs --width)")
    parser.add_argument(
        "--rotation",
        type=int,
        default=0,
        choices=[0, 90, 180, 270],
        help="Clockwise rotation of the photo before rectification",
    )
    parser.add_argument(
        "--filter",
        type=str,
        choices=[f.value for f in FilterType],
        help="Post-processing filter (default: from config)",
    )
    parser.add_argument(
        "--interpolation",
        type=str,
        choices=[i.value for i in Interpolation],
        help="Sampling method (default: from config)",
    )
    parser.add_argument(
        "--workers", type=int, help="Threads for the warp (default: from config)"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Rectification config YAML",
    )
    parser.add_argument(
        "--order-corners",
        action="store_true",
        help="Sort the corners into TL, TR, BR, BL first",
    )
    parser.add_argument(
        "--clamp",
        action="store_true",
        help="Clamp the corners to the photo bounds",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if (args.width is None) != (args.height is None):
        parser.error("--width and --height must be given together")
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be at least 1")

    try:
        config = load_config(args.config)
        image = load_image(args.image)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return EXIT_BAD_INPUT

    if args.interpolation is not None:
        config.warp = dataclasses.replace(
            config.warp, interpolation=Interpolation(args.interpolation)
        )
    if args.workers is not None:
        config.warp = dataclasses.replace(config.warp, workers=args.workers)

    # corners refer to the rotated photo
    width, height = image.width, image.height
    if args.rotation in (90, 270):
        width, height = height, width

    corners = args.corners
    if corners is None:
        scan_mode = args.scan_mode or config.corners.scan_mode
        corners = default_corners(width, height, scan_mode)
        logger.info(f"No corners given, using {ScanMode(scan_mode).value} preset")
    if args.order_corners:
        try:
            corners = order_points(corners)
        except ValueError as e:
            logger.error(str(e))
            return EXIT_BAD_INPUT
    if args.clamp:
        corners = clamp_corners(corners, width, height)

    output_size = (args.width, args.height) if args.width is not None else None

    processor = RectificationProcessor(config=config)
    result = processor.process(
        image,
        corners,
        rotation=args.rotation,
        output_size=output_size,
        filter_type=args.filter,
    )

    if not result.is_pass():
        logger.warning(f"Rectification rejected: {result.get_error_message()}")
        return EXIT_REJECTED

    try:
        save_image(result.rectified_image, args.output)
    except ValueError as e:
        # Output format OpenCV cannot encode
        logger.error(str(e))
        return EXIT_BAD_INPUT
    logger.info(
        f"Saved {result.output_width}x{result.output_height} page to {args.output}"
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
