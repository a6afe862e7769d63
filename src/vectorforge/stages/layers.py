"""Color-layer extraction: one boolean pixel mask per opaque color."""

from __future__ import annotations

from collections import Counter

from vectorforge.logging import get_logger
from vectorforge.models import ColorLayer, ColorRGB, ImageData, PipelineContext
from vectorforge.stages.quantization import ALPHA_CUTOFF

logger = get_logger("stages.layers")


def extract_color_layers(image_data: ImageData) -> list[ColorLayer]:
    """Split an RGBA buffer into mutually exclusive per-color masks.

    Pixels with alpha below :data:`ALPHA_CUTOFF` belong to no layer.
    Layers are ordered by descending pixel count; ties keep first-seen order.
    """
    raw = image_data.data
    n_pixels = image_data.width * image_data.height

    labels: list[tuple[int, int, int] | None] = [None] * n_pixels
    counts: Counter[tuple[int, int, int]] = Counter()
    for i in range(n_pixels):
        base = i * 4
        if raw[base + 3] < ALPHA_CUTOFF:
            continue
        color = (raw[base], raw[base + 1], raw[base + 2])
        labels[i] = color
        counts[color] += 1

    masks: dict[tuple[int, int, int], list[bool]] = {
        color: [False] * n_pixels for color in counts
    }
    for i, color in enumerate(labels):
        if color is not None:
            masks[color][i] = True

    layers = []
    for (r, g, b), count in counts.most_common():
        key = ColorRGB(r=r, g=g, b=b).key
        layers.append(ColorLayer(color=key, pixels=masks[(r, g, b)], area=count))
    return layers


class ColorLayerExtractionStage:
    """Populate ``color_layers`` from the (usually quantized) image."""

    name = "ColorLayerExtraction"

    def execute(self, context: PipelineContext) -> PipelineContext:
        layers = extract_color_layers(context.image_data)
        logger.debug("Extracted %d color layers", len(layers))
        return context.with_updates(
            color_layers=layers,
            metadata={"unique_colors": len(layers), "layers": len(layers)},
        )
