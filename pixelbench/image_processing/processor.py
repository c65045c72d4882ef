"""Main image processor orchestrating load, transform and save.

AIDEV-NOTE: The transforms themselves only see flat RGBA buffers. This
module is the glue to image files: decoding with Pillow, downscaling
large inputs and dispatching a TransformType with its settings.
"""

from pathlib import Path

from PIL import Image

from ..models import ProcessingConfig, TransformType
from .color import invert
from .edges import edge_detect
from .quantization import quantize_colors
from .utils import validate_dimensions


def image_to_buffer(image: Image.Image) -> "tuple[bytes, int, int]":
    """Return (RGBA bytes, width, height) for a Pillow image."""
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    width, height = image.size
    return image.tobytes(), width, height


def buffer_to_image(buffer, width: int, height: int) -> Image.Image:
    """Wrap an RGBA buffer as a Pillow image."""
    validate_dimensions(buffer, width, height)
    return Image.frombytes("RGBA", (width, height), bytes(buffer))


def scale_to_max_dimension(image: Image.Image, max_dimension: int) -> Image.Image:
    """Downscale so the longest side is at most max_dimension.

    AIDEV-NOTE: Aspect ratio is kept and images are never upscaled.
    """
    width, height = image.size
    longest = max(width, height)
    if max_dimension <= 0 or longest <= max_dimension:
        return image

    scale = max_dimension / longest
    new_width = max(1, int(width * scale))
    new_height = max(1, int(height * scale))
    return image.resize((new_width, new_height), Image.Resampling.LANCZOS)


class ImageProcessor:
    """Applies pixel transforms to image files."""

    def __init__(
        self,
        processing_config: ProcessingConfig | None = None,
        max_dimension: int = 0,
    ):
        self.processing_config = processing_config or ProcessingConfig()
        self.max_dimension = max_dimension

    def load_image(self, file_path: str | Path) -> Image.Image:
        """Load and validate an image file.

        Args:
            file_path: Path to image file (PNG, JPG, etc.)

        Returns:
            PIL Image in RGBA mode

        Raises:
            ValueError: If file cannot be loaded or is invalid
        """
        try:
            image = Image.open(file_path)
            # AIDEV-NOTE: Always convert to RGBA for consistent processing
            if image.mode != "RGBA":
                image = image.convert("RGBA")
            return image
        except Exception as e:
            raise ValueError(f"Failed to load image: {e}") from e

    def load_buffer(self, file_path: str | Path) -> "tuple[bytes, int, int]":
        """Load an image file, scale it down if needed and return its buffer."""
        image = scale_to_max_dimension(self.load_image(file_path), self.max_dimension)
        return image_to_buffer(image)

    def apply(
        self,
        transform: TransformType,
        buffer,
        width: int,
        height: int,
    ) -> bytes:
        """Run one transform on a buffer using the processing config.

        Args:
            transform: Which transform to run
            buffer: RGBA bytes
            width: Image width in pixels
            height: Image height in pixels

        Returns:
            New RGBA buffer of the same size
        """
        config = self.processing_config
        transform = TransformType(transform)

        if transform == TransformType.INVERT:
            return invert(buffer, width, height)
        elif transform == TransformType.QUANTIZE:
            return quantize_colors(
                buffer,
                width,
                height,
                config.num_colors,
                method=config.quantization_method,
            )
        else:
            return edge_detect(
                buffer,
                width,
                height,
                mode=config.edge_mode,
                threshold=config.edge_threshold,
            )

    def save_buffer(
        self, buffer, width: int, height: int, file_path: str | Path
    ) -> None:
        """Encode an RGBA buffer to an image file (format from extension)."""
        buffer_to_image(buffer, width, height).save(file_path)

    def process(
        self,
        transform: TransformType,
        input_path: str | Path,
        output_path: str | Path | None = None,
    ) -> Image.Image:
        """Execute the complete load, transform and save pipeline.

        Args:
            transform: Which transform to run
            input_path: Path to input image
            output_path: Where to write the result, skipped if None

        Returns:
            Result as a PIL Image in RGBA mode
        """
        transform = TransformType(transform)
        print(f"Starting {transform.value} pipeline...")

        print("Loading image...")
        buffer, width, height = self.load_buffer(input_path)
        print(f"Loaded image with size: {width}x{height} pixels.")

        print(f"Applying {transform.value}...")
        result = self.apply(transform, buffer, width, height)

        if output_path is not None:
            self.save_buffer(result, width, height, output_path)
            print(f"Saved {output_path}")

        print("Image processing complete.")
        return buffer_to_image(result, width, height)
