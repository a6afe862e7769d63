"""Post-processing passes over generated (or user supplied) SVG markup.

Every pass takes a parsed :class:`~vectorforge.svg.document.SvgDocument`,
edits it in place and returns how many elements it touched.
:func:`refine_svg` parses once, runs the passes enabled in
:class:`RefinementOptions` in a fixed order, and serializes the result.
:data:`TRANSFORMATIONS` names ready-made option sets for one-click remixes.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from svgpathtools import Arc, Line, Path, parse_path

from vectorforge.colors import color_distance, is_near_white, parse_color
from vectorforge.errors import ConfigurationError
from vectorforge.logging import get_logger
from vectorforge.svg.document import (
    DRAWABLE_TAGS,
    NON_RENDERED_TAGS,
    SvgDocument,
    SvgNode,
    format_number,
    parse_length,
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

logger = get_logger("svg.refinement")

BACKGROUND_COVERAGE = 0.95
DEFAULT_MERGE_THRESHOLD = 20.0
DEFAULT_PRECISION = 2

_DECIMAL_RE = re.compile(r"-?\d*\.\d+(?:[eE][-+]?\d+)?")
_CLOSE_RE = re.compile(r"[Zz]")

# Attributes that apply in the element's own user space; moving them from a
# group onto a transformed child would change their reference frame.
_USER_SPACE_EFFECTS = frozenset({"clip-path", "mask", "filter"})
# Values that compound down the tree rather than override.
_COMPOUNDING = frozenset({"opacity"})
# Attributes a merged path may differ in.
_MERGE_FREE = frozenset({"d", "fill"})


class BorderOptions(BaseModel):
    """Decorative frame drawn around the artwork by :func:`add_border`."""

    shape: Literal["rectangle", "rounded", "circle"] = "rounded"
    padding: float = Field(default=10.0, ge=0)
    stroke_width: float = Field(default=2.0, gt=0)
    stroke_color: str = "#000000"
    border_radius: float = Field(default=8.0, ge=0)


class RefinementOptions(BaseModel):
    """Which refinement passes :func:`refine_svg` runs.

    Passes always run in this order: background removal, color removal,
    color-block merging, empty-element removal, precision rounding, group
    flattening, grayscale, color inversion, fill-to-stroke, path stroke,
    geometric transform, drop shadow, background fill, border overlay,
    then ``custom_transform`` on the serialized text.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    remove_background: bool = False
    remove_colors: list[str] = Field(default_factory=list)
    color_tolerance: float = Field(default=0.0, ge=0)
    merge_color_blocks: bool = False
    merge_threshold: float = Field(default=DEFAULT_MERGE_THRESHOLD, ge=0)
    remove_empty_elements: bool = False
    round_precision: bool = False
    precision: int = Field(default=DEFAULT_PRECISION, ge=0, le=8)
    flatten_groups: bool = False
    grayscale: bool = False
    invert_colors: bool = False
    fill_to_stroke: bool = False
    fill_stroke_width: float = Field(default=2.0, gt=0)
    path_stroke: PathStrokeOptions | None = None
    transform: TransformOptions | None = None
    shadow: ShadowOptions | None = None
    background: BackgroundOptions | None = None
    border: BorderOptions | None = None
    custom_transform: Callable[[str], str] | None = Field(default=None, exclude=True)

    @field_validator("remove_colors")
    @classmethod
    def _colors_parse(cls, value: list[str]) -> list[str]:
        for color in value:
            if parse_color(color) is None:
                raise ValueError(f"Unsupported color: {color!r}")
        return value

    @property
    def touches_document(self) -> bool:
        """True when at least one structural pass is enabled."""
        return bool(
            self.remove_background
            or self.remove_colors
            or self.merge_color_blocks
            or self.remove_empty_elements
            or self.round_precision
            or self.flatten_groups
            or self.grayscale
            or self.invert_colors
            or self.fill_to_stroke
            or self.path_stroke is not None
            or self.transform is not None
            or self.shadow is not None
            or self.background is not None
            or self.border is not None
        )


class SvgInfo(BaseModel):
    """Summary counts reported by :func:`inspect_svg`."""

    path_count: int
    group_count: int
    has_empty_elements: bool


# ---------------------------------------------------------------------------
# Path data helpers
# ---------------------------------------------------------------------------


def _parse_path_data(d: str | None) -> Path | None:
    """Parse ``d`` with svgpathtools; None when the data is malformed.

    Close commands are dropped: a fill closes every outline anyway, and a
    close on a subpath without segments cannot be represented.
    """
    if d is None or not d.strip():
        return Path()
    try:
        return parse_path(_CLOSE_RE.sub(" ", d))
    except (ValueError, IndexError, ZeroDivisionError) as exc:
        logger.debug("Cannot parse path data %r: %s", d[:40], exc)
        return None


def _degenerate(segment: Any) -> bool:
    if isinstance(segment, Arc):
        return segment.start == segment.end
    return len(set(segment.bpoints())) == 1


def _draws_nothing(d: str | None) -> bool:
    """True when path data has no segment of non-zero extent.

    Moves, closes onto the current point and zero-length segments draw
    nothing.  Malformed data is assumed to draw something.
    """
    path = _parse_path_data(d)
    if path is None:
        return False
    return all(_degenerate(segment) for segment in path)


def _rectangular_path_bounds(d: str) -> tuple[float, float, float, float] | None:
    """Bounding box of a path tracing one axis-aligned rectangle, else None."""
    path = _parse_path_data(d)
    if path is None or len(path) < 3 or not path.iscontinuous():
        return None
    if not all(isinstance(segment, Line) for segment in path):
        return None
    x0, x1, y0, y1 = path.bbox()
    if x1 <= x0 or y1 <= y0:
        return None
    # The fill closes the outline implicitly, so the last vertex connects
    # back to the first.
    vertices = [segment.start for segment in path] + [path[-1].end]
    for a, b in zip(vertices, vertices[1:] + vertices[:1]):
        if a.real != b.real and a.imag != b.imag:
            return None
        if a.real not in (x0, x1) or a.imag not in (y0, y1):
            return None
    return (x0, y0, x1, y1)


def round_path_data(d: str, precision: int = DEFAULT_PRECISION) -> str:
    """Round decimals with more than *precision* places, half-up.

    Numbers in exponent notation and numbers already short enough are
    left untouched: ``round_path_data("M 12.34567 3.1", 2)`` gives
    ``"M 12.35 3.1"``.
    """
    quantum = Decimal(1).scaleb(-precision)

    def repl(match: re.Match[str]) -> str:
        text = match.group(0)
        if "e" in text or "E" in text:
            return text
        decimals = len(text.split(".", 1)[1])
        if decimals <= precision:
            return text
        rounded = Decimal(text).quantize(quantum, rounding=ROUND_HALF_UP)
        if rounded == 0:
            rounded = abs(rounded)
        return str(rounded)

    return _DECIMAL_RE.sub(repl, d)


# ---------------------------------------------------------------------------
# Passes
# ---------------------------------------------------------------------------


def _element_bounds(
    node: SvgNode, view_box: tuple[float, float, float, float]
) -> tuple[float, float, float, float] | None:
    if node.tag == "path":
        return _rectangular_path_bounds(node.attrs.get("d", ""))
    if node.tag != "rect":
        return None
    _, _, vb_w, vb_h = view_box
    x = parse_length(node.attrs.get("x", "0"), vb_w)
    y = parse_length(node.attrs.get("y", "0"), vb_h)
    w = parse_length(node.attrs.get("width"), vb_w)
    h = parse_length(node.attrs.get("height"), vb_h)
    if x is None or y is None or w is None or h is None or w <= 0 or h <= 0:
        return None
    return (x, y, x + w, y + h)


def _coverage(
    bounds: tuple[float, float, float, float],
    view_box: tuple[float, float, float, float],
) -> float:
    min_x, min_y, vb_w, vb_h = view_box
    overlap_w = min(bounds[2], min_x + vb_w) - max(bounds[0], min_x)
    overlap_h = min(bounds[3], min_y + vb_h) - max(bounds[1], min_y)
    if overlap_w <= 0 or overlap_h <= 0:
        return 0.0
    return (overlap_w * overlap_h) / (vb_w * vb_h)


def remove_background(doc: SvgDocument) -> int:
    """Drop near-white rectangles that cover (almost) the whole canvas.

    Elements under a ``transform`` are left alone since their on-canvas
    footprint is not known without evaluating it.  So is anything inside a
    mask, clip path, pattern, symbol, marker or ``<defs>``: a full-size
    white rectangle there is part of the resource, not a backdrop.
    """
    view_box = doc.view_box()
    if view_box is None:
        return 0

    removed = 0
    for idx in list(doc.iter()):
        node = doc.nodes[idx]
        if node.removed or node.tag not in ("rect", "path"):
            continue
        if doc.in_resource(idx):
            continue
        if "transform" in node.attrs or any(
            "transform" in doc.nodes[a].attrs for a in doc.ancestors(idx)
        ):
            continue
        color = parse_color(node.paint("fill"))
        if color is None or not is_near_white(color):
            continue
        bounds = _element_bounds(node, view_box)
        if bounds is None:
            continue
        if _coverage(bounds, view_box) >= BACKGROUND_COVERAGE:
            doc.remove(idx)
            removed += 1
    return removed


def merge_color_blocks(
    doc: SvgDocument, threshold: float = DEFAULT_MERGE_THRESHOLD
) -> int:
    """Concatenate sibling paths whose fills are closer than *threshold*.

    Only paths with a parseable color fill take part (``none`` and
    ``url(...)`` fills never merge), and only when every attribute other
    than ``d`` and ``fill`` is identical, so strokes, opacity, fill rules
    and ids survive.  The merged path keeps the first member's fill.

    Returns the number of paths folded into another one.
    """
    merged = 0
    for parent in list(doc.iter()):
        # Each cluster: (shared attributes, representative color, member idxs).
        clusters: list[
            tuple[frozenset[tuple[str, str]], tuple[int, int, int], list[int]]
        ] = []
        for child in doc.live_children(parent):
            node = doc.nodes[child]
            if node.tag != "path" or "transform" in node.attrs:
                continue
            rgb = parse_color(node.attrs.get("fill"))
            if rgb is None:
                continue
            shared = frozenset(
                (k, v) for k, v in node.attrs.items() if k not in _MERGE_FREE
            )

            for rep_shared, rep_rgb, members in clusters:
                if rep_shared == shared and color_distance(rgb, rep_rgb) < threshold:
                    members.append(child)
                    break
            else:
                clusters.append((shared, rgb, [child]))

        for _shared, _rgb, members in clusters:
            if len(members) < 2:
                continue
            data = [doc.nodes[m].attrs.get("d", "").strip() for m in members]
            doc.nodes[members[0]].attrs["d"] = " ".join(d for d in data if d)
            for extra in members[1:]:
                doc.remove(extra)
            merged += len(members) - 1
    return merged


def remove_empty_elements(doc: SvgDocument) -> int:
    """Remove childless groups and paths that draw nothing, to a fixed point."""
    removed = 0
    changed = True
    while changed:
        changed = False
        for idx in list(doc.iter()):
            if idx == doc.root:
                continue
            node = doc.nodes[idx]
            if node.removed:
                continue
            empty_group = (
                node.tag == "g"
                and not doc.live_children(idx)
                and not node.text.strip()
            )
            empty_path = node.tag == "path" and _draws_nothing(node.attrs.get("d"))
            if empty_group or empty_path:
                doc.remove(idx)
                removed += 1
                changed = True
    return removed


def round_path_precision(doc: SvgDocument, precision: int = DEFAULT_PRECISION) -> int:
    """Apply :func:`round_path_data` to every ``d`` and ``points`` attribute."""
    changed = 0
    for idx in doc.iter():
        attrs = doc.nodes[idx].attrs
        for name in ("d", "points"):
            value = attrs.get(name)
            if value is None:
                continue
            rounded = round_path_data(value, precision)
            if rounded != value:
                attrs[name] = rounded
                changed += 1
    return changed


def _merge_group_attributes(
    group: dict[str, str], child: dict[str, str]
) -> dict[str, str] | None:
    """Attributes for a child absorbing its group, or None on conflict."""
    merged = dict(child)
    for name, value in group.items():
        if name == "transform":
            continue
        if name in merged:
            if name in _COMPOUNDING or merged[name] != value:
                return None
            continue
        if name in _USER_SPACE_EFFECTS and "transform" in child:
            return None
        merged[name] = value

    group_transform = group.get("transform", "").strip()
    if group_transform:
        child_transform = child.get("transform", "").strip()
        merged["transform"] = f"{group_transform} {child_transform}".strip()
    return merged


def flatten_groups(doc: SvgDocument) -> int:
    """Replace single-child groups by their drawable child.

    Runs until nothing changes, so nested wrappers collapse fully and a
    second call is a no-op.
    """
    flattened = 0
    changed = True
    while changed:
        changed = False
        for idx in list(doc.iter()):
            node = doc.nodes[idx]
            if node.removed or idx == doc.root or node.tag != "g":
                continue
            if node.text.strip():
                continue
            children = doc.live_children(idx)
            if len(children) != 1:
                continue
            child = doc.nodes[children[0]]
            if child.tag not in DRAWABLE_TAGS:
                continue
            merged = _merge_group_attributes(node.attrs, child.attrs)
            if merged is None:
                continue
            child.attrs = merged
            doc.replace_with(idx, children[0])
            flattened += 1
            changed = True
    return flattened


def add_border(doc: SvgDocument, options: BorderOptions | None = None) -> bool:
    """Frame the artwork, growing the canvas by ``options.padding`` per side.

    Returns False (leaving the document untouched) when the canvas size
    cannot be determined.
    """
    options = options or BorderOptions()
    view_box = doc.view_box()
    if view_box is None:
        logger.warning("Cannot add border: SVG has no usable viewBox or size")
        return False

    min_x, min_y, width, height = view_box
    pad = options.padding
    new_w = width + 2 * pad
    new_h = height + 2 * pad
    root = doc.root

    content = [
        c for c in doc.live_children(root) if doc.nodes[c].tag not in NON_RENDERED_TAGS
    ]
    group = doc.add_node(
        "g",
        {
            "transform": (
                f"translate({format_number(pad - min_x)}, "
                f"{format_number(pad - min_y)})"
            )
        },
        parent=root,
    )
    for child in content:
        doc.move(child, group)

    half = options.stroke_width / 2
    stroke = {
        "fill": "none",
        "stroke": options.stroke_color,
        "stroke-width": format_number(options.stroke_width),
    }
    if options.shape == "circle":
        frame_attrs = {
            "cx": format_number(new_w / 2),
            "cy": format_number(new_h / 2),
            "r": format_number(max(min(new_w, new_h) / 2 - half, 0.0)),
        }
    else:
        frame_attrs = {
            "x": format_number(half),
            "y": format_number(half),
            "width": format_number(new_w - options.stroke_width),
            "height": format_number(new_h - options.stroke_width),
        }
        if options.shape == "rounded" and options.border_radius > 0:
            radius = format_number(options.border_radius)
            frame_attrs["rx"] = radius
            frame_attrs["ry"] = radius
    frame_attrs.update(stroke)
    # Frame is drawn after (on top of) the artwork.
    doc.add_node(
        "circle" if options.shape == "circle" else "rect", frame_attrs, parent=root
    )

    attrs = doc.nodes[root].attrs
    attrs["viewBox"] = f"0 0 {format_number(new_w)} {format_number(new_h)}"
    attrs["width"] = format_number(new_w)
    attrs["height"] = format_number(new_h)
    return True


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def refine_document(doc: SvgDocument, options: RefinementOptions) -> dict[str, int]:
    """Run the enabled structural passes over *doc* and report per-pass counts."""
    stats: dict[str, int] = {}
    if options.remove_background:
        stats["backgrounds_removed"] = remove_background(doc)
    if options.remove_colors:
        stats["colors_removed"] = sum(
            remove_color(doc, color, options.color_tolerance)
            for color in options.remove_colors
        )
    if options.merge_color_blocks:
        stats["paths_merged"] = merge_color_blocks(doc, options.merge_threshold)
    if options.remove_empty_elements:
        stats["empty_removed"] = remove_empty_elements(doc)
    if options.round_precision:
        stats["paths_rounded"] = round_path_precision(doc, options.precision)
    if options.flatten_groups:
        stats["groups_flattened"] = flatten_groups(doc)
    if options.grayscale:
        stats["grayscaled"] = convert_to_grayscale(doc)
    if options.invert_colors:
        stats["inverted"] = invert_colors(doc)
    if options.fill_to_stroke:
        stats["outlined"] = convert_fill_to_stroke(doc, options.fill_stroke_width)
    if options.path_stroke is not None:
        stats["paths_stroked"] = add_path_stroke(doc, options.path_stroke)
    if options.transform is not None:
        stats["transformed"] = int(apply_transform(doc, options.transform))
    if options.shadow is not None:
        stats["shadowed"] = add_drop_shadow(doc, options.shadow)
    if options.background is not None:
        stats["background_added"] = int(add_background(doc, options.background))
    if options.border is not None:
        stats["border_added"] = int(add_border(doc, options.border))
    return stats


def refine_svg(svg: str, options: RefinementOptions | None = None) -> str:
    """Apply the passes selected by *options* to SVG markup.

    Raises:
        SvgParseError: If a structural pass is enabled and *svg* is not
            well-formed.
    """
    options = options or RefinementOptions()
    result = svg
    if options.touches_document:
        doc = SvgDocument.parse(svg)
        stats = refine_document(doc, options)
        logger.debug("Refinement passes: %s", stats)
        result = doc.serialize()
    if options.custom_transform is not None:
        result = options.custom_transform(result)
    return result


def inspect_svg(svg: str) -> SvgInfo:
    """Count paths and groups and report whether anything is empty."""
    doc = SvgDocument.parse(svg)
    paths = doc.find_all("path")
    groups = doc.find_all("g")
    has_empty = any(
        _draws_nothing(doc.nodes[p].attrs.get("d")) for p in paths
    ) or any(not doc.live_children(g) for g in groups)
    return SvgInfo(
        path_count=len(paths), group_count=len(groups), has_empty_elements=has_empty
    )


# ---------------------------------------------------------------------------
# One-click transformations
# ---------------------------------------------------------------------------


class Transformation(BaseModel):
    """A named remix: a ready-made :class:`RefinementOptions` set."""

    id: str
    name: str
    description: str
    category: Literal["border", "background", "color", "transform", "style"]
    options: RefinementOptions = Field(exclude=True)


def _remix(
    remix_id: str, name: str, description: str, category: str, **options: Any
) -> Transformation:
    return Transformation(
        id=remix_id,
        name=name,
        description=description,
        category=category,
        options=RefinementOptions(**options),
    )


TRANSFORMATIONS: tuple[Transformation, ...] = (
    _remix(
        "add-rectangle-border",
        "Add Rectangle Border",
        "Add a rectangular border around the SVG",
        "border",
        border=BorderOptions(shape="rectangle"),
    ),
    _remix(
        "add-rounded-border",
        "Add Rounded Border",
        "Add a rounded rectangle border",
        "border",
        border=BorderOptions(shape="rounded"),
    ),
    _remix(
        "add-circle-border",
        "Add Circle Border",
        "Add a circular border around the SVG",
        "border",
        border=BorderOptions(shape="circle"),
    ),
    _remix(
        "add-path-stroke",
        "Add Path Stroke",
        "Add stroke to all paths",
        "border",
        path_stroke=PathStrokeOptions(),
    ),
    _remix(
        "remove-background",
        "Remove Background",
        "Remove background elements for transparency",
        "background",
        remove_background=True,
    ),
    _remix(
        "add-white-background",
        "Add White Background",
        "Add a white background",
        "background",
        background=BackgroundOptions(),
    ),
    _remix(
        "add-shadow",
        "Add Drop Shadow",
        "Add a drop shadow effect",
        "style",
        shadow=ShadowOptions(),
    ),
    _remix(
        "grayscale",
        "Convert to Grayscale",
        "Convert all colors to grayscale",
        "color",
        grayscale=True,
    ),
    _remix(
        "invert-colors",
        "Invert Colors",
        "Invert all colors in the SVG",
        "color",
        invert_colors=True,
    ),
    _remix(
        "fill-to-stroke",
        "Convert Fill to Stroke",
        "Convert filled paths to outlined strokes",
        "style",
        fill_to_stroke=True,
    ),
    _remix(
        "simplify",
        "Simplify Paths",
        "Reduce path precision for smaller file size",
        "style",
        round_precision=True,
        precision=1,
    ),
    _remix(
        "flip-horizontal",
        "Flip Horizontal",
        "Mirror the SVG horizontally",
        "transform",
        transform=TransformOptions(flip_x=True),
    ),
    _remix(
        "flip-vertical",
        "Flip Vertical",
        "Mirror the SVG vertically",
        "transform",
        transform=TransformOptions(flip_y=True),
    ),
    _remix(
        "rotate-90",
        "Rotate 90°",
        "Rotate the SVG 90 degrees clockwise",
        "transform",
        transform=TransformOptions(rotate=90),
    ),
    _remix(
        "scale-up",
        "Scale Up (150%)",
        "Increase SVG size by 50%",
        "transform",
        transform=TransformOptions(scale=1.5),
    ),
    _remix(
        "scale-down",
        "Scale Down (50%)",
        "Reduce SVG size by 50%",
        "transform",
        transform=TransformOptions(scale=0.5),
    ),
)


def get_transformation(transformation_id: str) -> Transformation:
    """Look up a one-click transformation by id.

    Raises:
        ConfigurationError: If no transformation has that id.
    """
    for transformation in TRANSFORMATIONS:
        if transformation.id == transformation_id:
            return transformation
    known = ", ".join(t.id for t in TRANSFORMATIONS)
    raise ConfigurationError(
        f"Unknown transformation {transformation_id!r} (available: {known})"
    )


def apply_transformations(svg: str, transformation_ids: Iterable[str]) -> str:
    """Apply transformations one after another, each to the previous output."""
    for transformation_id in transformation_ids:
        transformation = get_transformation(transformation_id)
        svg = refine_svg(svg, transformation.options)
        logger.debug("Applied transformation %s", transformation.id)
    return svg


__all__ = [
    "BackgroundOptions",
    "BorderOptions",
    "PathStrokeOptions",
    "RefinementOptions",
    "ShadowOptions",
    "SvgInfo",
    "TRANSFORMATIONS",
    "Transformation",
    "TransformOptions",
    "add_border",
    "apply_transformations",
    "flatten_groups",
    "get_transformation",
    "inspect_svg",
    "merge_color_blocks",
    "refine_document",
    "refine_svg",
    "remove_background",
    "remove_empty_elements",
    "round_path_data",
    "round_path_precision",
]
