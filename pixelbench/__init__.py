"""Deterministic RGBA pixel transforms and a benchmark harness for them."""

from .image_processing import edge_detect, invert, quantize
from .models import EdgeMode, TransformType

__all__ = ["EdgeMode", "TransformType", "edge_detect", "invert", "quantize"]
__version__ = "0.1.0"
