"""Catmull-Rom path smoothing stage."""

from __future__ import annotations

import math

from vectorforge.errors import ConfigurationError
from vectorforge.logging import get_logger
from vectorforge.models import Contour, PipelineContext, Point

logger = get_logger("stages.smoothing")

SMOOTHING_CUTOFF = 0.3
MIN_POINT_SPACING = 0.5


def _catmull_rom(
    p0: Point, p1: Point, p2: Point, p3: Point, t: float, alpha: float
) -> Point:
    """Sample the p1→p2 span at *t*, blended towards p1 by ``1 - alpha``."""
    t2 = t * t
    t3 = t2 * t

    def axis(a: float, b: float, c: float, d: float) -> float:
        return 0.5 * (
            2 * b
            + (-a + c) * t
            + (2 * a - 5 * b + 4 * c - d) * t2
            + (-a + 3 * b - 3 * c + d) * t3
        )

    x = axis(p0.x, p1.x, p2.x, p3.x)
    y = axis(p0.y, p1.y, p2.y, p3.y)
    return Point(x=p1.x * (1 - alpha) + x * alpha, y=p1.y * (1 - alpha) + y * alpha)


def _drop_close_points(points: list[Point], spacing: float) -> list[Point]:
    if not points:
        return points
    kept = [points[0]]
    for point in points[1:]:
        prev = kept[-1]
        if math.hypot(point.x - prev.x, point.y - prev.y) >= spacing:
            kept.append(point)
    return kept


def smooth_points(points: list[Point], tension: float) -> list[Point]:
    """Resample a closed polyline along a Catmull-Rom spline.

    Polylines with fewer than four points are returned unchanged.
    """
    n = len(points)
    if n < 4:
        return list(points)

    alpha = min(0.6, tension)
    segments = max(3, math.floor(10 * tension))
    result: list[Point] = []
    for i in range(n):
        p0 = points[i - 1]
        p1 = points[i]
        p2 = points[(i + 1) % n]
        p3 = points[(i + 2) % n]
        for step in range(segments):
            result.append(_catmull_rom(p0, p1, p2, p3, step / segments, alpha))

    return _drop_close_points(result, MIN_POINT_SPACING)


class PathSmoothingStage:
    """Smooth traced contours when ``path_smoothing`` is high enough."""

    name = "PathSmoothing"

    def execute(self, context: PipelineContext) -> PipelineContext:
        if context.contours is None:
            raise ConfigurationError("Contours must be traced before path smoothing")

        smoothness = context.settings.path_smoothing
        enabled = smoothness > SMOOTHING_CUTOFF

        smoothed: dict[str, list[Contour]] = {}
        for color, contours in context.contours.items():
            smoothed[color] = [
                contour.model_copy(
                    update={"points": smooth_points(contour.points, smoothness)}
                )
                if enabled
                else contour
                for contour in contours
            ]

        logger.debug(
            "Path smoothing %s (level %.2f)", "on" if enabled else "off", smoothness
        )
        return context.with_updates(
            contours=smoothed,
            metadata={
                "smoothing_method": "bezier" if enabled else "none",
                "smoothing_level": smoothness,
            },
        )
