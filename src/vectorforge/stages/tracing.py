"""Contour tracing: boundary detection, ordering, and simplification.

Each color layer's mask is scanned row-major.  Every connected
(8-neighbourhood) foreground region is visited exactly once by a
breadth-first traversal that collects its boundary pixels.  The
unordered boundary is chained into a polyline with a greedy
nearest-neighbour walk and reduced with Douglas-Peucker.

The nearest-neighbour walk is a heuristic: it does not guarantee a
topologically correct traversal for concave shapes, holes, or regions
whose boundary pixels form several loops.  The walk is O(E²) in the
number of boundary pixels E, which is bounded by the region's perimeter
rather than the image area.
"""

from __future__ import annotations

import math
from collections import deque
from collections.abc import Sequence

from vectorforge.errors import ConfigurationError
from vectorforge.logging import get_logger
from vectorforge.models import Contour, PipelineContext, Point

logger = get_logger("stages.tracing")

Pixel = tuple[int, int]
Coord = tuple[float, float]

SIMPLIFY_TOLERANCE = 1.5

_NEIGHBOURS: tuple[Pixel, ...] = (
    (1, 0),
    (-1, 0),
    (0, 1),
    (0, -1),
    (1, 1),
    (-1, -1),
    (1, -1),
    (-1, 1),
)


def detail_threshold(complexity: float) -> int:
    """Minimum boundary size kept for a complexity level in [0, 1]."""
    return max(2, math.floor(50 - complexity * 45))


def _is_edge_pixel(
    mask: Sequence[bool], width: int, height: int, x: int, y: int
) -> bool:
    if x == 0 or y == 0 or x == width - 1 or y == height - 1:
        return True
    idx = y * width + x
    return not (
        mask[idx - 1]
        and mask[idx + 1]
        and mask[idx - width]
        and mask[idx + width]
        and mask[idx - width - 1]
        and mask[idx - width + 1]
        and mask[idx + width - 1]
        and mask[idx + width + 1]
    )


def extract_regions(
    mask: Sequence[bool], width: int, height: int
) -> list[list[Pixel]]:
    """Return the boundary pixels of every 8-connected region in *mask*.

    Regions are listed in raster-scan order of their first pixel; within
    a region, boundary pixels appear in breadth-first visiting order.

    Raises:
        ValueError: If the mask length does not equal ``width * height``.
    """
    if len(mask) != width * height:
        raise ValueError(
            f"Mask has {len(mask)} entries, expected {width * height}"
        )

    visited = bytearray(width * height)
    regions: list[list[Pixel]] = []

    for y in range(height):
        row = y * width
        for x in range(width):
            idx = row + x
            if not mask[idx] or visited[idx]:
                continue

            edge_points: list[Pixel] = []
            visited[idx] = 1
            queue: deque[Pixel] = deque([(x, y)])
            while queue:
                cx, cy = queue.popleft()
                if _is_edge_pixel(mask, width, height, cx, cy):
                    edge_points.append((cx, cy))
                for dx, dy in _NEIGHBOURS:
                    nx, ny = cx + dx, cy + dy
                    if nx < 0 or ny < 0 or nx >= width or ny >= height:
                        continue
                    nidx = ny * width + nx
                    if mask[nidx] and not visited[nidx]:
                        visited[nidx] = 1
                        queue.append((nx, ny))
            regions.append(edge_points)

    return regions


def order_edge_points(points: Sequence[Pixel]) -> list[Pixel]:
    """Chain boundary pixels by repeatedly stepping to the nearest one.

    Starts at ``points[0]``; ties go to the earliest remaining point.
    """
    if len(points) < 2:
        return list(points)

    ordered: list[Pixel] = [points[0]]
    remaining = list(points[1:])
    lx, ly = points[0]

    while remaining:
        best_idx = 0
        best_dist = math.inf
        for i, (px, py) in enumerate(remaining):
            dist = (px - lx) ** 2 + (py - ly) ** 2
            if dist < best_dist:
                best_dist = dist
                best_idx = i
                # Distinct integer pixels are never closer than 1.
                if dist <= 1:
                    break
        lx, ly = remaining.pop(best_idx)
        ordered.append((lx, ly))

    return ordered


def _segment_distance(point: Coord, start: Coord, end: Coord) -> float:
    """Distance from *point* to the segment between *start* and *end*."""
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    if dx == 0 and dy == 0:
        return math.hypot(point[0] - start[0], point[1] - start[1])

    t = ((point[0] - start[0]) * dx + (point[1] - start[1]) * dy) / (
        dx * dx + dy * dy
    )
    t = max(0.0, min(1.0, t))
    proj_x = start[0] + t * dx
    proj_y = start[1] + t * dy
    return math.hypot(point[0] - proj_x, point[1] - proj_y)


def simplify_douglas_peucker(
    points: Sequence[Coord], tolerance: float = SIMPLIFY_TOLERANCE
) -> list[Coord]:
    """Reduce a polyline with the Douglas-Peucker algorithm.

    A span is split at its point of maximum deviation from the chord when
    that deviation exceeds *tolerance*; otherwise it collapses to its two
    endpoints.  Spans are processed from an explicit stack so long
    boundaries cannot exhaust the recursion limit.
    """
    n = len(points)
    if n < 3:
        return list(points)

    keep = [False] * n
    keep[0] = keep[-1] = True
    stack = [(0, n - 1)]

    while stack:
        start, end = stack.pop()
        if end - start < 2:
            continue
        max_dist = 0.0
        max_idx = start
        for i in range(start + 1, end):
            dist = _segment_distance(points[i], points[start], points[end])
            if dist > max_dist:
                max_dist = dist
                max_idx = i
        if max_dist > tolerance:
            keep[max_idx] = True
            stack.append((start, max_idx))
            stack.append((max_idx, end))

    return [p for p, kept in zip(points, keep) if kept]


def polygon_area(points: Sequence[Coord]) -> float:
    """Unsigned shoelace area of a closed polygon (0 for < 3 points)."""
    if len(points) < 3:
        return 0.0
    total = 0.0
    for i, (x1, y1) in enumerate(points):
        x2, y2 = points[(i + 1) % len(points)]
        total += x1 * y2 - x2 * y1
    return abs(total / 2)


def trace_layer(
    mask: Sequence[bool],
    width: int,
    height: int,
    min_size: int,
    tolerance: float = SIMPLIFY_TOLERANCE,
) -> list[Contour]:
    """Trace every region of one layer mask into simplified contours.

    Regions with fewer than *min_size* boundary pixels are dropped as noise.
    """
    contours: list[Contour] = []
    for edge_points in extract_regions(mask, width, height):
        if len(edge_points) < min_size:
            continue
        ordered = order_edge_points(edge_points)
        simplified = simplify_douglas_peucker(ordered, tolerance)
        contours.append(
            Contour(
                points=[Point(x=x, y=y) for x, y in simplified],
                closed=True,
                area=polygon_area(simplified),
            )
        )
    return contours


class ContourTracingStage:
    """Trace each color layer into a list of simplified contours."""

    name = "ContourTracing"

    def execute(self, context: PipelineContext) -> PipelineContext:
        if context.color_layers is None:
            raise ConfigurationError(
                "Color layers must be extracted before contour tracing"
            )

        min_size = detail_threshold(context.settings.complexity)
        contours: dict[str, list[Contour]] = {}
        for layer in context.color_layers:
            layer_contours = trace_layer(
                layer.pixels, context.width, context.height, min_size
            )
            if layer_contours:
                contours[layer.color] = layer_contours

        total = sum(len(c) for c in contours.values())
        logger.debug(
            "Traced %d contours across %d layers (detail threshold %d)",
            total,
            len(context.color_layers),
            min_size,
        )
        return context.with_updates(
            contours=contours,
            metadata={"detail_threshold": min_size, "total_contours": total},
        )
