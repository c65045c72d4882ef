"""Utility functions shared by the pixel buffer transforms.

AIDEV-NOTE: Buffers are flat RGBA bytes, row-major, 4 bytes per pixel.
Every transform validates its input here and works on numpy views of a
private copy, so callers never see their buffer mutated.
"""

import numpy as np

# Distance matrix entries (rows x centroids) per block in nearest centroid search
NEAREST_CHUNK_ELEMENTS = 65536 * 8


def validate_dimensions(buffer, width: int, height: int, min_size: int = 1) -> None:
    """Check that a buffer holds exactly width x height RGBA pixels.

    Args:
        buffer: Bytes-like object or uint8 array
        width: Image width in pixels
        height: Image height in pixels
        min_size: Smallest allowed width and height

    Raises:
        ValueError: If the dimensions are too small or the length mismatches
    """
    if width < min_size or height < min_size:
        raise ValueError(
            f"Image must be at least {min_size}x{min_size} pixels, "
            f"got {width}x{height}"
        )

    expected = width * height * 4
    actual = len(buffer) if not isinstance(buffer, np.ndarray) else buffer.size
    if actual != expected:
        raise ValueError(
            f"Buffer length {actual} does not match {width}x{height} RGBA "
            f"image (expected {expected} bytes)"
        )


def to_rgba_array(buffer, width: int, height: int) -> np.ndarray:
    """Copy a buffer into a (height, width, 4) uint8 array."""
    if isinstance(buffer, np.ndarray):
        flat = buffer.astype(np.uint8, copy=True).reshape(-1)
    else:
        flat = np.frombuffer(bytes(buffer), dtype=np.uint8).copy()
    return flat.reshape(height, width, 4)


def extract_points(buffer, width: int, height: int) -> np.ndarray:
    """Convert an RGBA buffer to color points.

    Returns:
        (width * height, 3) float64 array, one RGB point per pixel in
        row-major order. Alpha is dropped.
    """
    validate_dimensions(buffer, width, height)
    rgba = to_rgba_array(buffer, width, height)
    return rgba.reshape(-1, 4)[:, :3].astype(np.float64)


def round_half_up(values: np.ndarray) -> np.ndarray:
    """Round to the nearest integer with .5 going up.

    AIDEV-NOTE: np.round rounds half to even, which would shift a mean of
    e.g. 127.5 down to 127. Pixel values always round .5 up.
    """
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5)


def to_uint8(values: np.ndarray) -> np.ndarray:
    """Round and clamp channel values to the 0-255 byte range."""
    return np.clip(round_half_up(values), 0, 255).astype(np.uint8)


def distances_to_centroids(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Euclidean distance of every point to every centroid, shape (N, k)."""
    diff = points[:, None, :] - centroids[None, :, :]
    return np.sqrt((diff * diff).sum(axis=2))


def nearest_centroid(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Index of the closest centroid for each point.

    Ties go to the lowest centroid index. Points are processed in blocks
    sized so a block's (rows, k) distance matrix holds at most
    NEAREST_CHUNK_ELEMENTS entries, whatever k is.
    """
    labels = np.empty(len(points), dtype=np.intp)
    rows = max(1, NEAREST_CHUNK_ELEMENTS // max(len(centroids), 1))
    for start in range(0, len(points), rows):
        block = points[start : start + rows]
        # argmin returns the first minimum
        labels[start : start + len(block)] = distances_to_centroids(
            block, centroids
        ).argmin(axis=1)
    return labels


def grayscale_mean(rgba: np.ndarray) -> np.ndarray:
    """Unweighted RGB mean per pixel, rounded half up, as int64 (height, width)."""
    total = rgba[..., :3].astype(np.int64).sum(axis=2)
    return round_half_up(total / 3.0).astype(np.int64)
