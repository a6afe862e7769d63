"""Stage pipeline orchestration for raster-to-vector conversion.

A :class:`ConversionPipeline` is an ordered, mutable list of named stages.
Callers assemble it with builder-style methods, swap or drop stages at
runtime (e.g. a preview mode without smoothing), and :meth:`execute` it
once per conversion attempt against a fresh :class:`PipelineContext`.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable
from typing import Literal, Protocol, runtime_checkable

from vectorforge.errors import ConversionError, StageExecutionError
from vectorforge.logging import get_logger
from vectorforge.models import (
    ConversionResult,
    ConversionSettings,
    ImageData,
    PipelineContext,
)
from vectorforge.stages import (
    ColorLayerExtractionStage,
    ColorQuantizationStage,
    ContourTracingStage,
    PathSmoothingStage,
    SVGGenerationStage,
    render_svg,
)

logger = get_logger("pipeline")

ProgressCallback = Callable[[str, int, int], None]
PipelineKind = Literal["default", "minimal", "high_quality"]


@runtime_checkable
class PipelineStage(Protocol):
    """A named unit of work transforming a :class:`PipelineContext`.

    ``execute`` may return the new context directly or an awaitable
    resolving to it; the pipeline awaits both uniformly.
    """

    name: str

    def execute(
        self, context: PipelineContext
    ) -> PipelineContext | Awaitable[PipelineContext]: ...


class ThreadedStage:
    """Run a synchronous stage in a worker thread.

    The wrapped stage keeps its name, so pipelines can still address it
    by name for replacement or removal.
    """

    def __init__(self, stage: PipelineStage) -> None:
        self.stage = stage
        self.name = stage.name

    async def execute(self, context: PipelineContext) -> PipelineContext:
        result = await asyncio.to_thread(self.stage.execute, context)
        if inspect.isawaitable(result):
            result = await result
        return result


class ConversionPipeline:
    """Ordered list of named stages executed sequentially against a context."""

    def __init__(self, stages: Iterable[PipelineStage] | None = None) -> None:
        self._stages: list[PipelineStage] = list(stages or [])

    def __len__(self) -> int:
        return len(self._stages)

    def __repr__(self) -> str:
        return f"ConversionPipeline({self.stage_names!r})"

    @property
    def stage_names(self) -> list[str]:
        """Names of the stages in execution order."""
        return [stage.name for stage in self._stages]

    def _index_of(self, stage_name: str) -> int:
        for idx, stage in enumerate(self._stages):
            if stage.name == stage_name:
                return idx
        return -1

    # -- builder operations -------------------------------------------------

    def add_stage(self, stage: PipelineStage) -> "ConversionPipeline":
        """Append *stage* and return the pipeline for chaining."""
        self._stages.append(stage)
        return self

    def remove_stage(self, stage_name: str) -> bool:
        """Remove the first stage named *stage_name*.

        Returns:
            True if a stage was removed, False if no stage matched.
        """
        idx = self._index_of(stage_name)
        if idx == -1:
            return False
        del self._stages[idx]
        return True

    def replace_stage(self, stage_name: str, new_stage: PipelineStage) -> bool:
        """Swap the first stage named *stage_name* for *new_stage* in place.

        Returns:
            True if a stage was replaced, False if no stage matched (the
            pipeline is left unchanged).
        """
        idx = self._index_of(stage_name)
        if idx == -1:
            return False
        self._stages[idx] = new_stage
        return True

    def insert_stage_before(self, anchor_name: str, new_stage: PipelineStage) -> bool:
        """Insert *new_stage* before the stage named *anchor_name*.

        When the anchor is missing the stage is appended at the end.

        Returns:
            True if the anchor was found, False if the stage was appended.
        """
        idx = self._index_of(anchor_name)
        if idx == -1:
            self._stages.append(new_stage)
            return False
        self._stages.insert(idx, new_stage)
        return True

    def insert_stage_after(self, anchor_name: str, new_stage: PipelineStage) -> bool:
        """Insert *new_stage* after the stage named *anchor_name*.

        When the anchor is missing the stage is appended at the end.

        Returns:
            True if the anchor was found, False if the stage was appended.
        """
        idx = self._index_of(anchor_name)
        if idx == -1:
            self._stages.append(new_stage)
            return False
        self._stages.insert(idx + 1, new_stage)
        return True

    def clear(self) -> "ConversionPipeline":
        """Remove every stage and return the pipeline for chaining."""
        self._stages.clear()
        return self

    def clone(self) -> "ConversionPipeline":
        """Return a pipeline with an independent copy of the stage list."""
        return ConversionPipeline(self._stages)

    def get_stages(self) -> tuple[PipelineStage, ...]:
        """Return a read-only view of the stages in execution order."""
        return tuple(self._stages)

    # -- execution ----------------------------------------------------------

    async def execute(
        self,
        context: PipelineContext,
        on_progress: ProgressCallback | None = None,
    ) -> PipelineContext:
        """Run every stage in order and return the final context.

        Args:
            context: The starting context for this conversion attempt.
            on_progress: Called as ``(stage_name, index, total)`` with a
                1-based index before each stage runs.

        Returns:
            The context produced by the last stage (the input context
            itself when the pipeline is empty).

        Raises:
            StageExecutionError: If any stage raises; the original error is
                chained and no partial context is returned.
        """
        current = context
        stages = list(self._stages)
        total = len(stages)

        for idx, stage in enumerate(stages, start=1):
            if on_progress is not None:
                on_progress(stage.name, idx, total)

            logger.debug("Running stage %d/%d: %s", idx, total, stage.name)
            try:
                result = stage.execute(current)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as exc:
                logger.error("Stage %s failed: %s", stage.name, exc)
                raise StageExecutionError(
                    f'Pipeline failed at stage "{stage.name}": {exc}',
                    stage_name=stage.name,
                ) from exc
            current = result

        return current


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def create_default_pipeline() -> ConversionPipeline:
    """Quantize, extract layers, trace, smooth, and generate path data."""
    return ConversionPipeline(
        [
            ColorQuantizationStage(),
            ColorLayerExtractionStage(),
            ContourTracingStage(),
            PathSmoothingStage(),
            SVGGenerationStage(),
        ]
    )


def create_minimal_pipeline() -> ConversionPipeline:
    """Fast preview pipeline: no quantization and no smoothing."""
    return ConversionPipeline(
        [
            ColorLayerExtractionStage(),
            ContourTracingStage(),
            SVGGenerationStage(),
        ]
    )


def create_high_quality_pipeline() -> ConversionPipeline:
    """Default stages with contour tracing offloaded to a worker thread."""
    pipeline = create_default_pipeline()
    pipeline.replace_stage(
        ContourTracingStage.name, ThreadedStage(ContourTracingStage())
    )
    return pipeline


_FACTORIES: dict[str, Callable[[], ConversionPipeline]] = {
    "default": create_default_pipeline,
    "minimal": create_minimal_pipeline,
    "high_quality": create_high_quality_pipeline,
}


def create_pipeline(kind: PipelineKind = "default") -> ConversionPipeline:
    """Build one of the named pipelines.

    Raises:
        ValueError: If *kind* is not a known pipeline name.
    """
    try:
        factory = _FACTORIES[kind]
    except KeyError:
        raise ValueError(
            f"Unknown pipeline {kind!r}; expected one of {sorted(_FACTORIES)}"
        ) from None
    return factory()


async def convert_image_data(
    image_data: ImageData,
    settings: ConversionSettings,
    on_progress: ProgressCallback | None = None,
    pipeline: ConversionPipeline | None = None,
) -> ConversionResult:
    """Convert a decoded RGBA buffer into a standalone SVG document.

    Args:
        image_data: The decoded raster.
        settings: Conversion settings.
        on_progress: Optional per-stage progress callback.
        pipeline: Pipeline to run (default: :func:`create_default_pipeline`).

    Returns:
        The SVG text, its size in characters, and the run metadata.

    Raises:
        StageExecutionError: If a stage fails.
        ConversionError: If the pipeline produced no paths.
    """
    pipeline = pipeline if pipeline is not None else create_default_pipeline()
    context = PipelineContext.from_image(image_data, settings)

    result = await pipeline.execute(context, on_progress)

    if result.paths is None:
        raise ConversionError("SVG generation failed: no paths created")

    svg = render_svg(result.width, result.height, result.paths)
    logger.info(
        "Converted %dx%d image into %d paths (%d bytes)",
        result.width,
        result.height,
        len(result.paths),
        len(svg),
    )
    return ConversionResult(svg=svg, size=len(svg), metadata=dict(result.metadata))
