"""Pillow decode adapter: image files to :class:`ImageData` buffers."""

from __future__ import annotations

from pathlib import Path

from PIL import Image, UnidentifiedImageError

from vectorforge.errors import ImageLoadError
from vectorforge.logging import get_logger
from vectorforge.models import ImageData

logger = get_logger("image_io")


def image_to_data(image: Image.Image) -> ImageData:
    """Convert a PIL image (any mode) to a row-major RGBA buffer."""
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    width, height = image.size
    return ImageData(width=width, height=height, data=image.tobytes())


def load_image_data(path: str | Path) -> ImageData:
    """Open and decode an image file.

    Raises:
        ImageLoadError: If the file is missing or Pillow cannot decode it.
    """
    resolved = Path(path)
    if not resolved.is_file():
        raise ImageLoadError(f"Image not found: {resolved}")

    try:
        with Image.open(resolved) as img:
            img.load()
            data = image_to_data(img)
    except (UnidentifiedImageError, OSError) as exc:
        raise ImageLoadError(f"Cannot open image: {resolved}") from exc

    logger.debug("Loaded %s (%dx%d)", resolved.name, data.width, data.height)
    return data
