"""Concurrent conversion of many images.

Every job gets its own context and its own pipeline instance, so jobs
share no mutable state and can run side by side on one event loop.  Contour
tracing, the CPU-heavy stage, is moved to worker threads so the loop
keeps scheduling other jobs.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from typing import Literal

from pydantic import BaseModel, Field

from vectorforge.logging import get_logger
from vectorforge.models import ConversionResult, ConversionSettings, ImageData
from vectorforge.pipeline import (
    ConversionPipeline,
    ThreadedStage,
    convert_image_data,
    create_default_pipeline,
)
from vectorforge.stages import ContourTracingStage
from vectorforge.svg.refinement import RefinementOptions, refine_svg

logger = get_logger("batch")

JobStatus = Literal["completed", "failed"]


class BatchItem(BaseModel):
    """One image queued for batch conversion."""

    name: str
    image_data: ImageData


class BatchJob(BaseModel):
    """Outcome of a single batch item."""

    name: str
    status: JobStatus
    result: ConversionResult | None = None
    error: str | None = None


class BatchResult(BaseModel):
    """All job outcomes, in submission order."""

    jobs: list[BatchJob] = Field(default_factory=list)

    @property
    def completed(self) -> int:
        return sum(1 for job in self.jobs if job.status == "completed")

    @property
    def failed(self) -> int:
        return sum(1 for job in self.jobs if job.status == "failed")


def offload_tracing(pipeline: ConversionPipeline) -> ConversionPipeline:
    """Wrap the contour tracing stage (if present) in a :class:`ThreadedStage`."""
    for stage in pipeline.get_stages():
        if stage.name == ContourTracingStage.name and not isinstance(
            stage, ThreadedStage
        ):
            pipeline.replace_stage(stage.name, ThreadedStage(stage))
    return pipeline


async def convert_batch(
    items: Sequence[BatchItem],
    settings: ConversionSettings,
    *,
    max_concurrent: int = 0,
    pipeline_factory: Callable[[], ConversionPipeline] = create_default_pipeline,
    refinement: RefinementOptions | None = None,
) -> BatchResult:
    """Convert every item, isolating failures per job.

    Args:
        items: Images to convert.
        settings: Settings shared by all jobs.
        max_concurrent: Upper bound on jobs in flight (0 = unbounded).
        pipeline_factory: Builds a fresh pipeline for each job.
        refinement: Optional refinement applied to each job's SVG.

    Returns:
        A :class:`BatchResult` with one job per item, in input order.
    """
    semaphore: asyncio.Semaphore | None = None
    if max_concurrent > 0:
        semaphore = asyncio.Semaphore(max_concurrent)

    async def _process_one(index: int, item: BatchItem) -> BatchJob:
        if semaphore is not None:
            await semaphore.acquire()
        try:
            logger.info(
                "Converting %d/%d: %s",
                index,
                len(items),
                item.name,
                extra={"job_id": item.name},
            )
            result = await convert_image_data(
                item.image_data, settings, pipeline=offload_tracing(pipeline_factory())
            )
            if refinement is not None:
                svg = refine_svg(result.svg, refinement)
                result = result.model_copy(update={"svg": svg, "size": len(svg)})
            return BatchJob(name=item.name, status="completed", result=result)
        except Exception as exc:
            logger.error(
                "Job %s failed: %s", item.name, exc, extra={"job_id": item.name}
            )
            return BatchJob(name=item.name, status="failed", error=str(exc))
        finally:
            if semaphore is not None:
                semaphore.release()

    jobs = await asyncio.gather(
        *(_process_one(idx, item) for idx, item in enumerate(items, start=1))
    )
    batch = BatchResult(jobs=list(jobs))
    logger.info(
        "Batch finished: %d completed, %d failed", batch.completed, batch.failed
    )
    return batch
