import numpy as np


def solid(width, height, rgba):
    """Bytes of a single-color RGBA image."""
    return bytes(rgba) * (width * height)


def checkerboard(width, height, color_a, color_b, alpha=255):
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    for y in range(height):
        for x in range(width):
            arr[y, x, :3] = color_a if (x + y) % 2 == 0 else color_b
    arr[..., 3] = alpha
    return arr.tobytes()


def rgb_colors(buffer):
    """Set of distinct RGB tuples in a buffer."""
    rgb = np.frombuffer(buffer, dtype=np.uint8).reshape(-1, 4)[:, :3]
    return {tuple(int(c) for c in row) for row in rgb}


def as_rgba(buffer, width, height):
    return np.frombuffer(buffer, dtype=np.uint8).reshape(height, width, 4)
