"""Pixel buffer transforms on flat RGBA data.

AIDEV-NOTE: Every transform is a pure function of (buffer, width, height,
options) returning a fresh buffer of the same size. Organized into:
- color: inversion
- quantization: deterministic K-means palette reduction (plus alternatives)
- edges: blur + Sobel edge detection
- processor: ImageProcessor glue to image files
- utils: buffer validation and shared numerics
"""

from .color import invert
from .edges import edge_detect
from .processor import ImageProcessor
from .quantization import quantize, quantize_colors

__all__ = ["ImageProcessor", "edge_detect", "invert", "quantize", "quantize_colors"]
