"""Color, style and geometry remixes over a parsed SVG document.

Like the passes in :mod:`vectorforge.svg.refinement`, every function here
edits an :class:`~vectorforge.svg.document.SvgDocument` in place and
reports what it changed.  Content inside ``<defs>``, masks, clip paths,
patterns, symbols and markers is never touched: it is only drawn where
something references it.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from typing import Literal

from pydantic import BaseModel, Field

from vectorforge.colors import color_distance, parse_color, to_hex
from vectorforge.logging import get_logger
from vectorforge.svg.document import (
    DRAWABLE_TAGS,
    NON_RENDERED_TAGS,
    RESOURCE_TAGS,
    SvgDocument,
    format_number,
)

logger = get_logger("svg.remix")

SHADOW_FILTER_ID = "vf-drop-shadow"

_PAINT_ATTRS = ("fill", "stroke")

Rgb = tuple[int, int, int]


class PathStrokeOptions(BaseModel):
    """Outline given to unstroked paths by :func:`add_path_stroke`."""

    stroke_width: float = Field(default=1.0, gt=0)
    stroke_color: str = "#000000"
    linecap: Literal["butt", "round", "square"] = "round"
    linejoin: Literal["miter", "round", "bevel"] = "round"


class ShadowOptions(BaseModel):
    """Drop shadow added by :func:`add_drop_shadow`."""

    offset_x: float = 2.0
    offset_y: float = 2.0
    blur: float = Field(default=4.0, ge=0)
    color: str = "rgba(0,0,0,0.3)"


class BackgroundOptions(BaseModel):
    """Solid backdrop inserted by :func:`add_background`."""

    color: str = "#ffffff"
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)


class TransformOptions(BaseModel):
    """Geometric remix applied around the canvas center.

    Composed into a single wrapping group in this order: rotation,
    scaling, horizontal mirror, vertical mirror.

    Attributes:
        scale: Uniform scale factor (1 keeps the size).
        rotate: Clockwise rotation in degrees.
        flip_x: Mirror left to right.
        flip_y: Mirror top to bottom.
    """

    scale: float = Field(default=1.0, gt=0)
    rotate: float = 0.0
    flip_x: bool = False
    flip_y: bool = False

    @property
    def is_identity(self) -> bool:
        return (
            self.scale == 1
            and self.rotate == 0
            and not self.flip_x
            and not self.flip_y
        )


def _canvas_nodes(doc: SvgDocument) -> list[int]:
    """Live nodes drawn in place, in document order."""
    return [
        idx
        for idx in doc.iter()
        if doc.nodes[idx].tag not in RESOURCE_TAGS and not doc.in_resource(idx)
    ]


def _content_children(doc: SvgDocument) -> list[int]:
    return [
        c
        for c in doc.live_children(doc.root)
        if doc.nodes[c].tag not in NON_RENDERED_TAGS
    ]


# ---------------------------------------------------------------------------
# Color
# ---------------------------------------------------------------------------


def _recolor(doc: SvgDocument, convert: Callable[[Rgb], Rgb]) -> int:
    """Rewrite every parseable ``fill``/``stroke`` attribute through *convert*."""
    changed = 0
    for idx in _canvas_nodes(doc):
        attrs = doc.nodes[idx].attrs
        for name in _PAINT_ATTRS:
            rgb = parse_color(attrs.get(name))
            if rgb is None:
                continue
            attrs[name] = to_hex(convert(rgb))
            changed += 1
    return changed


def _luminance(rgb: Rgb) -> Rgb:
    r, g, b = rgb
    gray = math.floor(0.299 * r + 0.587 * g + 0.114 * b + 0.5)
    return (gray, gray, gray)


def convert_to_grayscale(doc: SvgDocument) -> int:
    """Replace fill and stroke colors by their luminance as ``#gggggg``.

    Returns the number of attributes rewritten.  ``none``, ``url(...)``
    and unrecognized values are kept.
    """
    return _recolor(doc, _luminance)


def invert_colors(doc: SvgDocument) -> int:
    """Replace fill and stroke colors by their RGB complement."""
    return _recolor(doc, lambda rgb: (255 - rgb[0], 255 - rgb[1], 255 - rgb[2]))


def remove_color(doc: SvgDocument, color: str, tolerance: float = 0.0) -> int:
    """Delete shapes whose fill is within *tolerance* (RGB distance) of *color*.

    Raises:
        ValueError: If *color* is not a recognizable CSS color.
    """
    target = parse_color(color)
    if target is None:
        raise ValueError(f"Unsupported color: {color!r}")

    removed = 0
    for idx in _canvas_nodes(doc):
        node = doc.nodes[idx]
        if node.removed or node.tag not in DRAWABLE_TAGS:
            continue
        fill = parse_color(node.paint("fill"))
        if fill is not None and color_distance(fill, target) <= tolerance:
            doc.remove(idx)
            removed += 1
    return removed


# ---------------------------------------------------------------------------
# Style
# ---------------------------------------------------------------------------


def convert_fill_to_stroke(doc: SvgDocument, stroke_width: float = 2.0) -> int:
    """Turn filled paths into outlines drawn in their former fill color."""
    converted = 0
    for idx in _canvas_nodes(doc):
        node = doc.nodes[idx]
        fill = node.attrs.get("fill")
        if node.tag != "path" or fill is None or fill.strip() == "none":
            continue
        node.attrs["stroke"] = fill
        node.attrs["stroke-width"] = format_number(stroke_width)
        node.attrs["fill"] = "none"
        converted += 1
    return converted


def add_path_stroke(
    doc: SvgDocument, options: PathStrokeOptions | None = None
) -> int:
    """Outline every path that has no ``stroke`` of its own."""
    options = options or PathStrokeOptions()
    stroked = 0
    for idx in _canvas_nodes(doc):
        node = doc.nodes[idx]
        if node.tag != "path" or node.paint("stroke") is not None:
            continue
        node.attrs.update(
            {
                "stroke": options.stroke_color,
                "stroke-width": format_number(options.stroke_width),
                "stroke-linecap": options.linecap,
                "stroke-linejoin": options.linejoin,
            }
        )
        stroked += 1
    return stroked


def _unused_id(doc: SvgDocument, base: str) -> str:
    taken = {doc.nodes[i].attrs.get("id") for i in doc.iter()}
    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate


def add_drop_shadow(doc: SvgDocument, options: ShadowOptions | None = None) -> int:
    """Define a drop-shadow filter and apply it to the top-level shapes.

    Only direct children of the root are filtered, so nested content gets
    one shadow from its outermost group.  Elements that already carry a
    ``filter`` keep it.  Returns the number of elements filtered; when
    that is zero no filter is defined.
    """
    options = options or ShadowOptions()
    targets = [
        c
        for c in _content_children(doc)
        if (doc.nodes[c].tag == "g" or doc.nodes[c].tag in DRAWABLE_TAGS)
        and "filter" not in doc.nodes[c].attrs
    ]
    if not targets:
        return 0

    filter_id = _unused_id(doc, SHADOW_FILTER_ID)
    defs = doc.add_node("defs", parent=doc.root, position=0)
    shadow = doc.add_node(
        "filter",
        {"id": filter_id, "x": "-50%", "y": "-50%", "width": "200%", "height": "200%"},
        parent=defs,
    )
    doc.add_node(
        "feDropShadow",
        {
            "dx": format_number(options.offset_x),
            "dy": format_number(options.offset_y),
            "stdDeviation": format_number(options.blur),
            "flood-color": options.color,
        },
        parent=shadow,
    )
    for idx in targets:
        doc.nodes[idx].attrs["filter"] = f"url(#{filter_id})"
    return len(targets)


def add_background(
    doc: SvgDocument, options: BackgroundOptions | None = None
) -> bool:
    """Insert a canvas-sized rectangle beneath everything else.

    Returns False (leaving the document untouched) when the canvas size
    cannot be determined.
    """
    options = options or BackgroundOptions()
    view_box = doc.view_box()
    if view_box is None:
        logger.warning("Cannot add background: SVG has no usable viewBox or size")
        return False

    min_x, min_y, width, height = view_box
    attrs = {
        "x": format_number(min_x),
        "y": format_number(min_y),
        "width": format_number(width),
        "height": format_number(height),
        "fill": options.color,
    }
    if options.opacity < 1:
        attrs["opacity"] = format_number(options.opacity)
    doc.add_node("rect", attrs, parent=doc.root, position=0)
    return True


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


def transform_steps(
    options: TransformOptions, view_box: tuple[float, float, float, float]
) -> list[str]:
    """SVG transform functions realizing *options* on the given canvas."""
    min_x, min_y, width, height = view_box
    cx = format_number(min_x + width / 2)
    cy = format_number(min_y + height / 2)
    steps: list[str] = []
    if options.rotate != 0:
        steps.append(f"rotate({format_number(options.rotate)} {cx} {cy})")
    if options.scale != 1:
        steps.append(
            f"translate({cx} {cy}) scale({format_number(options.scale)}) "
            f"translate({format_number(-(min_x + width / 2))} "
            f"{format_number(-(min_y + height / 2))})"
        )
    if options.flip_x:
        steps.append(f"translate({format_number(2 * min_x + width)} 0) scale(-1 1)")
    if options.flip_y:
        steps.append(f"translate(0 {format_number(2 * min_y + height)}) scale(1 -1)")
    return steps


def apply_transform(
    doc: SvgDocument, options: TransformOptions | None = None
) -> bool:
    """Wrap the artwork in a group that rotates, scales and mirrors it.

    The canvas itself keeps its size.  Returns False when *options* is the
    identity or the canvas size is unknown.
    """
    options = options or TransformOptions()
    if options.is_identity:
        return False
    view_box = doc.view_box()
    if view_box is None:
        logger.warning("Cannot transform: SVG has no usable viewBox or size")
        return False

    content = _content_children(doc)
    group = doc.add_node(
        "g",
        {"transform": " ".join(transform_steps(options, view_box))},
        parent=doc.root,
    )
    for child in content:
        doc.move(child, group)
    return True


__all__ = [
    "BackgroundOptions",
    "PathStrokeOptions",
    "ShadowOptions",
    "TransformOptions",
    "add_background",
    "add_drop_shadow",
    "add_path_stroke",
    "apply_transform",
    "convert_fill_to_stroke",
    "convert_to_grayscale",
    "invert_colors",
    "remove_color",
    "transform_steps",
]
