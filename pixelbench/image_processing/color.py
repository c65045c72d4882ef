"""Per-pixel color transforms."""

from .utils import to_rgba_array, validate_dimensions


def invert(buffer, width: int, height: int) -> bytes:
    """Invert the RGB channels of an RGBA buffer.

    Each of R, G and B becomes 255 - value. Alpha is left as it is.

    Raises:
        ValueError: If the buffer does not match width x height
    """
    validate_dimensions(buffer, width, height)
    rgba = to_rgba_array(buffer, width, height)
    rgba[..., :3] = 255 - rgba[..., :3]
    return rgba.tobytes()
