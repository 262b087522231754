"""
Shared Utilities

Common functions used across all modules.
"""

from src.utils.io import load_image, save_image
from src.utils.logging_config import setup_logging

__all__ = [
    "load_image",
    "save_image",
    "setup_logging",
]
