"""Median-cut color quantization stage."""

from __future__ import annotations

import math

from PIL import Image

from vectorforge.logging import get_logger
from vectorforge.models import ImageData, PipelineContext

logger = get_logger("stages.quantization")

# Pixels below this alpha are treated as fully transparent background.
ALPHA_CUTOFF = 10


def target_color_count(color_simplification: float) -> int:
    """Palette size for a simplification level: 256 colors down to 16 (min 4)."""
    return max(4, math.floor(256 - color_simplification * 240))


def _median_cut_palette_rgb(
    opaque_rgb: bytes,
    full_rgb: Image.Image | None,
    max_colors: int,
) -> bytes:
    """Quantize the packed opaque RGB pixels and return the mapped RGB bytes.

    When *full_rgb* is given, the palette was built from a sample and every
    image pixel is remapped through it.
    """
    opaque_img = Image.frombytes("RGB", (len(opaque_rgb) // 3, 1), opaque_rgb)
    quantized_p = opaque_img.quantize(
        colors=max_colors, method=Image.Quantize.MEDIANCUT
    )
    if full_rgb is not None:
        return full_rgb.quantize(palette=quantized_p).convert("RGB").tobytes()
    return quantized_p.convert("RGB").tobytes()


def quantize_rgba(
    image_data: ImageData,
    max_colors: int,
    max_sample_pixels: int = 1_000_000,
) -> ImageData:
    """Reduce the opaque colors of an RGBA buffer to at most *max_colors*.

    Pixels with alpha below :data:`ALPHA_CUTOFF` become transparent white;
    all other pixels become fully opaque.  Colors are only remapped when
    the image has more unique opaque colors than *max_colors*.
    """
    width, height = image_data.width, image_data.height
    raw = image_data.data
    out = bytearray(width * height * 4)

    opaque_indices: list[int] = []
    opaque_rgb = bytearray()
    for i in range(width * height):
        base = i * 4
        if raw[base + 3] < ALPHA_CUTOFF:
            out[base : base + 4] = b"\xff\xff\xff\x00"
            continue
        opaque_indices.append(i)
        opaque_rgb.extend(raw[base : base + 3])
        out[base : base + 3] = raw[base : base + 3]
        out[base + 3] = 255

    unique = {bytes(opaque_rgb[j : j + 3]) for j in range(0, len(opaque_rgb), 3)}
    if len(unique) <= max_colors:
        return ImageData(width=width, height=height, data=bytes(out))

    n_opaque = len(opaque_indices)
    full_rgb: Image.Image | None = None
    palette_source = bytes(opaque_rgb)
    if n_opaque > max_sample_pixels:
        step = max(1, n_opaque // max_sample_pixels)
        sampled = bytearray()
        for j in range(0, n_opaque, step)[:max_sample_pixels]:
            sampled.extend(opaque_rgb[j * 3 : j * 3 + 3])
        palette_source = bytes(sampled)
        full_rgb = Image.frombytes("RGBA", (width, height), bytes(out)).convert("RGB")

    mapped = _median_cut_palette_rgb(palette_source, full_rgb, max_colors)

    for j, pixel_idx in enumerate(opaque_indices):
        src = pixel_idx * 3 if full_rgb is not None else j * 3
        base = pixel_idx * 4
        out[base : base + 3] = mapped[src : src + 3]

    return ImageData(width=width, height=height, data=bytes(out))


class ColorQuantizationStage:
    """Reduce the image palette according to ``color_simplification``."""

    name = "ColorQuantization"

    def execute(self, context: PipelineContext) -> PipelineContext:
        color_count = target_color_count(context.settings.color_simplification)
        quantized = quantize_rgba(context.image_data, color_count)
        logger.debug(
            "Quantized %dx%d image to at most %d colors",
            context.width,
            context.height,
            color_count,
        )
        return context.with_updates(
            image_data=quantized,
            metadata={
                "target_color_count": color_count,
                "quantization_method": "median-cut",
            },
        )
