"""Edge detection with a 3x3 blur and the Sobel operator.

AIDEV-NOTE: 3x3 windows need a full ring of neighbors, so the outermost
1-pixel border is never computed. The blur stage keeps the plain
grayscale value on its border (a flat image stays flat) and the final
output has RGB zeroed on its border.
"""

import numpy as np

from ..models import EDGE_THRESHOLD, EdgeMode
from .utils import grayscale_mean, round_half_up, to_rgba_array, validate_dimensions

BLUR_KERNEL = (
    (1, 2, 1),
    (2, 4, 2),
    (1, 2, 1),
)
BLUR_KERNEL_SUM = 16

SOBEL_X = (
    (-1, 0, 1),
    (-2, 0, 2),
    (-1, 0, 1),
)
SOBEL_Y = (
    (-1, -2, -1),
    (0, 0, 0),
    (1, 2, 1),
)


def edge_detect(
    buffer,
    width: int,
    height: int,
    mode: EdgeMode = EdgeMode.BINARY_THRESHOLD,
    threshold: int = EDGE_THRESHOLD,
) -> bytes:
    """Detect edges in an RGBA buffer.

    Args:
        buffer: RGBA bytes, length width * height * 4
        width: Image width in pixels (at least 3)
        height: Image height in pixels (at least 3)
        mode: EdgeMode or its string value
        threshold: Magnitude above which a pixel is an edge (binary mode)

    Returns:
        New RGBA buffer. BINARY_THRESHOLD gives a 0/255 mask with alpha
        forced to 255; CONTINUOUS_MAGNITUDE gives the gradient magnitude
        with the original alpha.

    Raises:
        ValueError: On malformed buffer, image smaller than 3x3 or unknown mode
    """
    validate_dimensions(buffer, width, height, min_size=3)
    mode = EdgeMode(mode)

    rgba = to_rgba_array(buffer, width, height)
    gray = grayscale_mean(rgba)

    out = np.zeros_like(rgba)
    if mode == EdgeMode.BINARY_THRESHOLD:
        magnitude = sobel_magnitude(blur(gray))
        edges = np.where(magnitude > threshold, 255, 0).astype(np.uint8)
        out[1:-1, 1:-1, :3] = edges[..., None]
        out[..., 3] = 255
    else:
        magnitude = sobel_magnitude(gray)
        out[1:-1, 1:-1, :3] = magnitude[..., None]
        out[..., 3] = rgba[..., 3]

    return out.tobytes()


def convolve3x3(image: np.ndarray, kernel) -> np.ndarray:
    """Weighted 3x3 window sum over the interior, shape (h - 2, w - 2)."""
    height, width = image.shape
    acc = np.zeros((height - 2, width - 2), dtype=np.int64)
    for ky in range(3):
        for kx in range(3):
            weight = kernel[ky][kx]
            if weight:
                acc += weight * image[ky : ky + height - 2, kx : kx + width - 2]
    return acc


def blur(gray: np.ndarray) -> np.ndarray:
    """3x3 weighted average of a grayscale image, border left as is."""
    blurred = gray.copy()
    acc = convolve3x3(gray, BLUR_KERNEL)
    blurred[1:-1, 1:-1] = round_half_up(acc / BLUR_KERNEL_SUM).astype(np.int64)
    return blurred


def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """Sobel gradient magnitude of the interior, rounded and capped at 255."""
    gx = convolve3x3(gray, SOBEL_X).astype(np.float64)
    gy = convolve3x3(gray, SOBEL_Y).astype(np.float64)
    magnitude = round_half_up(np.sqrt(gx * gx + gy * gy))
    return np.minimum(magnitude, 255).astype(np.uint8)
