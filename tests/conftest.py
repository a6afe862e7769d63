"""Shared fixtures for vectorforge tests."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from synthetic_images import BLACK, RED, WHITE, build_image
from vectorforge.models import ConversionSettings, ImageData, PipelineContext

# ---------------------------------------------------------------------------
# Image fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def image_factory() -> Callable[..., ImageData]:
    """Factory building synthetic RGBA images (see :func:`build_image`)."""
    return build_image


@pytest.fixture()
def tiny_image() -> ImageData:
    """4×4 white image with a 2×2 black square at (1,1)-(2,2)."""
    return build_image(4, 4, WHITE, [(1, 1, 2, 2, BLACK)])


@pytest.fixture()
def square_image() -> ImageData:
    """40×40 white image with a 20×20 red square at (10,10)."""
    return build_image(40, 40, WHITE, [(10, 10, 20, 20, RED)])


@pytest.fixture()
def two_tone_image() -> ImageData:
    """48×32 image split into a black left half and a red right half."""
    return build_image(48, 32, BLACK, [(24, 0, 24, 32, RED)])


@pytest.fixture()
def default_settings() -> ConversionSettings:
    """Mid-range settings (all 0.5)."""
    return ConversionSettings()


@pytest.fixture()
def context_factory(
    default_settings: ConversionSettings,
) -> Callable[..., PipelineContext]:
    """Factory building a fresh context for an image."""

    def _make(
        image: ImageData, settings: ConversionSettings | None = None
    ) -> PipelineContext:
        return PipelineContext.from_image(image, settings or default_settings)

    return _make


@pytest.fixture()
def png_file(tmp_path: Path, square_image: ImageData) -> Path:
    """The square image saved as a PNG file."""
    from PIL import Image

    path = tmp_path / "square.png"
    Image.frombytes(
        "RGBA", (square_image.width, square_image.height), square_image.data
    ).save(path)
    return path


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture()
def clean_vectorforge_logger() -> Iterator[logging.Logger]:
    """Strip handlers from the ``vectorforge`` logger before and after a test."""
    logger = logging.getLogger("vectorforge")

    def _reset() -> None:
        for handler in list(logger.handlers):
            if isinstance(handler, logging.FileHandler):
                handler.close()
            logger.removeHandler(handler)
        logger.setLevel(logging.WARNING)

    _reset()
    yield logger
    _reset()
