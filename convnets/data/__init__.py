"""Dataset readers producing ``(input, expected)`` container pairs."""

from . import binary, idx, png
from .registry import detect_format, load_dataset, register_format

__all__ = ["binary", "detect_format", "idx", "load_dataset", "png", "register_format"]
