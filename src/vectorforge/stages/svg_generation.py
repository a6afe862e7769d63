"""Path-data generation stage and the SVG document serializer."""

from __future__ import annotations

from collections.abc import Sequence
from xml.sax.saxutils import quoteattr

from vectorforge.errors import ConfigurationError
from vectorforge.logging import get_logger
from vectorforge.models import PathElement, PipelineContext, Point

logger = get_logger("stages.svg_generation")

CUBIC_CUTOFF = 0.5
QUADRATIC_CUTOFF = 0.2


def _fmt(value: float) -> str:
    return f"{value:.2f}"


def _cubic_segments(points: Sequence[Point]) -> str:
    parts: list[str] = []
    n = len(points)
    for i in range(1, n):
        prev, curr, nxt = points[i - 1], points[i], points[(i + 1) % n]
        cp1x = prev.x + (curr.x - prev.x) * 0.6
        cp1y = prev.y + (curr.y - prev.y) * 0.6
        cp2x = curr.x - (nxt.x - curr.x) * 0.3
        cp2y = curr.y - (nxt.y - curr.y) * 0.3
        parts.append(
            f" C {_fmt(cp1x)} {_fmt(cp1y)}, {_fmt(cp2x)} {_fmt(cp2y)}, "
            f"{_fmt(curr.x)} {_fmt(curr.y)}"
        )
    return "".join(parts)


def _quadratic_segments(points: Sequence[Point]) -> str:
    parts: list[str] = []
    for prev, curr in zip(points, points[1:]):
        cpx = (prev.x + curr.x) / 2
        cpy = (prev.y + curr.y) / 2
        parts.append(f" Q {_fmt(cpx)} {_fmt(cpy)}, {_fmt(curr.x)} {_fmt(curr.y)}")
    return "".join(parts)


def _linear_segments(points: Sequence[Point]) -> str:
    return "".join(f" L {_fmt(p.x)} {_fmt(p.y)}" for p in points[1:])


def generate_path_data(points: Sequence[Point], smoothness: float) -> str:
    """Build closed SVG path data for a contour.

    Curve type follows *smoothness*: cubic above 0.5, quadratic above 0.2,
    straight lines otherwise.  Returns an empty string for < 2 points.
    """
    if len(points) < 2:
        return ""

    head = f"M {_fmt(points[0].x)} {_fmt(points[0].y)}"
    if smoothness > CUBIC_CUTOFF and len(points) >= 3:
        body = _cubic_segments(points)
    elif smoothness > QUADRATIC_CUTOFF and len(points) >= 3:
        body = _quadratic_segments(points)
    else:
        body = _linear_segments(points)
    return f"{head}{body} Z"


def _path_tag(path: PathElement) -> str:
    attrs = [f"d={quoteattr(path.d)}", f"fill={quoteattr(path.fill)}"]
    if path.stroke is not None:
        attrs.append(f"stroke={quoteattr(path.stroke)}")
    if path.stroke_width is not None:
        attrs.append(f'stroke-width="{path.stroke_width:g}"')
    if path.opacity is not None and path.opacity < 1:
        attrs.append(f'opacity="{path.opacity:.2f}"')
    return f"  <path {' '.join(attrs)} />"


def svg_header(width: int, height: int) -> str:
    """XML declaration plus the opening ``<svg>`` tag for a canvas size."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {width} {height}" '
        f'width="{width}" height="{height}">\n'
    )


def render_svg(width: int, height: int, paths: Sequence[PathElement]) -> str:
    """Serialize path elements into a standalone SVG document."""
    body = "\n".join(_path_tag(path) for path in paths)
    if body:
        body += "\n"
    return f"{svg_header(width, height)}{body}</svg>"


class SVGGenerationStage:
    """Turn traced contours into filled ``PathElement`` records."""

    name = "SVGGeneration"

    def execute(self, context: PipelineContext) -> PipelineContext:
        if context.contours is None:
            raise ConfigurationError("Contours must be traced before SVG generation")

        smoothness = context.settings.path_smoothing
        paths: list[PathElement] = []
        for color, contours in context.contours.items():
            for contour in contours:
                if len(contour.points) < 3:
                    continue
                d = generate_path_data(contour.points, smoothness)
                if d:
                    paths.append(PathElement(d=d, fill=color, opacity=1.0))

        estimated_size = len(render_svg(context.width, context.height, paths))
        logger.debug("Generated %d paths (~%d bytes)", len(paths), estimated_size)
        return context.with_updates(
            paths=paths,
            metadata={"path_count": len(paths), "svg_size": estimated_size},
        )
