"""Conversion pipeline stages split by concern."""

from vectorforge.stages.layers import ColorLayerExtractionStage, extract_color_layers
from vectorforge.stages.quantization import (
    ColorQuantizationStage,
    quantize_rgba,
    target_color_count,
)
from vectorforge.stages.smoothing import PathSmoothingStage, smooth_points
from vectorforge.stages.svg_generation import (
    SVGGenerationStage,
    generate_path_data,
    render_svg,
)
from vectorforge.stages.tracing import (
    ContourTracingStage,
    detail_threshold,
    extract_regions,
    order_edge_points,
    polygon_area,
    simplify_douglas_peucker,
    trace_layer,
)

__all__ = [
    "ColorLayerExtractionStage",
    "ColorQuantizationStage",
    "ContourTracingStage",
    "PathSmoothingStage",
    "SVGGenerationStage",
    "detail_threshold",
    "extract_color_layers",
    "extract_regions",
    "generate_path_data",
    "order_edge_points",
    "polygon_area",
    "quantize_rgba",
    "render_svg",
    "simplify_douglas_peucker",
    "smooth_points",
    "target_color_count",
    "trace_layer",
]
