"""Iterative re-conversion driven by a settings advisor and a scorer.

Each iteration runs the full pipeline on a fresh context with the current
settings, optionally scores the result, and asks the advisor for the
settings of the next attempt.  The advisor and scorer are opaque
callables (plain or async), typically backed by an external model; this
module only owns the loop, its stopping rules and the fallback used when
the advisor fails.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from typing import TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

from vectorforge.logging import get_logger
from vectorforge.models import ConversionResult, ConversionSettings, ImageData
from vectorforge.pipeline import (
    ConversionPipeline,
    convert_image_data,
    create_default_pipeline,
)

logger = get_logger("iterative")

FALLBACK_STEP = 0.1

T = TypeVar("T")

Advisor = Callable[
    [ConversionSettings],
    Union[ConversionSettings, Awaitable[ConversionSettings]],
]
Scorer = Callable[
    [ImageData, ConversionResult], Union[float, Awaitable[float]]
]


class IterativeConfig(BaseModel):
    """Stopping rules for :func:`run_iterative_conversion`.

    Attributes:
        max_iterations: Hard cap on pipeline runs.
        target_score: Stop as soon as an iteration scores at least this much
            (0-100).  Ignored when no scorer is supplied.
    """

    max_iterations: int = Field(default=5, ge=1)
    target_score: float | None = Field(default=None, ge=0.0, le=100.0)


class IterationResult(BaseModel):
    """Outcome of one pipeline run inside the iterative loop."""

    model_config = ConfigDict(frozen=True)

    iteration: int = Field(..., ge=1)
    settings: ConversionSettings
    result: ConversionResult
    score: float | None = None


def fallback_settings(settings: ConversionSettings) -> ConversionSettings:
    """Nudge towards more detail: +complexity, -simplification, +smoothing."""
    return ConversionSettings.clamped(
        complexity=settings.complexity + FALLBACK_STEP,
        color_simplification=settings.color_simplification - FALLBACK_STEP,
        path_smoothing=settings.path_smoothing + FALLBACK_STEP,
    )


async def _maybe_await(value: Union[T, Awaitable[T]]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value  # type: ignore[return-value]


async def _next_settings(
    advisor: Advisor | None, settings: ConversionSettings, iteration: int
) -> ConversionSettings:
    if advisor is None:
        return fallback_settings(settings)
    try:
        proposed = await _maybe_await(advisor(settings))
        if not isinstance(proposed, ConversionSettings):
            raise TypeError(
                f"Advisor returned {type(proposed).__name__}, "
                "expected ConversionSettings"
            )
    except Exception as exc:
        logger.warning(
            "Settings advisor failed after iteration %d, using fallback: %s",
            iteration,
            exc,
            extra={"iteration": iteration},
        )
        return fallback_settings(settings)
    return proposed


async def run_iterative_conversion(
    image_data: ImageData,
    settings: ConversionSettings,
    advisor: Advisor | None,
    *,
    scorer: Scorer | None = None,
    config: IterativeConfig | None = None,
    pipeline: ConversionPipeline | None = None,
    should_abort: Callable[[], bool] | None = None,
    on_iteration: Callable[[IterationResult], None] | None = None,
) -> list[IterationResult]:
    """Convert repeatedly, refining settings between attempts.

    Args:
        image_data: The decoded raster, reused for every iteration.
        settings: Settings for the first iteration.
        advisor: Proposes the next settings from the current ones.  When it
            raises (or is None) a fixed nudge is applied instead.
        scorer: Rates a result from 0 to 100; scores outside are clamped.
        config: Iteration cap and target score.
        pipeline: Pipeline to run (default: :func:`create_default_pipeline`).
        should_abort: Polled before every iteration; True stops the loop.
        on_iteration: Called with each :class:`IterationResult` as it lands.

    Returns:
        Every completed iteration, in order.

    Raises:
        StageExecutionError: If a pipeline run fails.
    """
    config = config or IterativeConfig()
    pipeline = pipeline if pipeline is not None else create_default_pipeline()
    results: list[IterationResult] = []
    current = settings

    for iteration in range(1, config.max_iterations + 1):
        if should_abort is not None and should_abort():
            logger.info("Iterative conversion aborted before iteration %d", iteration)
            break

        result = await convert_image_data(image_data, current, pipeline=pipeline)
        score: float | None = None
        if scorer is not None:
            raw = await _maybe_await(scorer(image_data, result))
            score = min(100.0, max(0.0, float(raw)))

        record = IterationResult(
            iteration=iteration, settings=current, result=result, score=score
        )
        results.append(record)
        if on_iteration is not None:
            on_iteration(record)
        logger.info(
            "Iteration %d/%d: %d bytes, score %s",
            iteration,
            config.max_iterations,
            result.size,
            "n/a" if score is None else f"{score:.1f}",
            extra={"iteration": iteration},
        )

        if (
            score is not None
            and config.target_score is not None
            and score >= config.target_score
        ):
            logger.info("Target score %.1f reached", config.target_score)
            break
        if iteration < config.max_iterations:
            current = await _next_settings(advisor, current, iteration)

    return results


def best_iteration(results: list[IterationResult]) -> IterationResult | None:
    """Highest-scoring iteration; earliest wins ties, unscored rank last."""
    best: IterationResult | None = None
    for record in results:
        if best is None:
            best = record
            continue
        if record.score is None:
            continue
        if best.score is None or record.score > best.score:
            best = record
    return best
