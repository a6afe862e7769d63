"""SVG document model, refinement passes and remixes."""

from vectorforge.svg.document import SvgDocument, SvgNode
from vectorforge.svg.refinement import (
    TRANSFORMATIONS,
    BorderOptions,
    RefinementOptions,
    SvgInfo,
    Transformation,
    add_border,
    apply_transformations,
    flatten_groups,
    get_transformation,
    inspect_svg,
    merge_color_blocks,
    refine_svg,
    remove_background,
    remove_empty_elements,
    round_path_data,
    round_path_precision,
)
from vectorforge.svg.remix import (
    BackgroundOptions,
    PathStrokeOptions,
    ShadowOptions,
    TransformOptions,
    add_background,
    add_drop_shadow,
    add_path_stroke,
    apply_transform,
    convert_fill_to_stroke,
    convert_to_grayscale,
    invert_colors,
    remove_color,
)

__all__ = [
    "TRANSFORMATIONS",
    "BackgroundOptions",
    "BorderOptions",
    "PathStrokeOptions",
    "RefinementOptions",
    "ShadowOptions",
    "SvgDocument",
    "SvgInfo",
    "SvgNode",
    "TransformOptions",
    "Transformation",
    "add_background",
    "add_border",
    "add_drop_shadow",
    "add_path_stroke",
    "apply_transform",
    "apply_transformations",
    "convert_fill_to_stroke",
    "convert_to_grayscale",
    "flatten_groups",
    "get_transformation",
    "inspect_svg",
    "invert_colors",
    "merge_color_blocks",
    "refine_svg",
    "remove_background",
    "remove_color",
    "remove_empty_elements",
    "round_path_data",
    "round_path_precision",
]
