"""VectorForge — raster-to-vector conversion through a staged pipeline."""

from vectorforge.batch import BatchItem, BatchJob, BatchResult, convert_batch
from vectorforge.config import RunConfig, load_config, resolve_settings
from vectorforge.errors import (
    ConfigurationError,
    ConversionError,
    ImageLoadError,
    PresetError,
    StageExecutionError,
    SvgParseError,
    VectorForgeError,
)
from vectorforge.image_io import image_to_data, load_image_data
from vectorforge.iterative import (
    IterationResult,
    IterativeConfig,
    best_iteration,
    run_iterative_conversion,
)
from vectorforge.logging import get_logger, setup_logging
from vectorforge.models import (
    ColorLayer,
    Contour,
    ConversionResult,
    ConversionSettings,
    ImageData,
    PathElement,
    PipelineContext,
    Point,
)
from vectorforge.pipeline import (
    ConversionPipeline,
    PipelineStage,
    ThreadedStage,
    convert_image_data,
    create_default_pipeline,
    create_high_quality_pipeline,
    create_minimal_pipeline,
    create_pipeline,
)
from vectorforge.presets import (
    BUILT_IN_PRESETS,
    ConversionPreset,
    get_preset,
    list_presets,
    match_preset,
)
from vectorforge.stages import render_svg
from vectorforge.svg import (
    TRANSFORMATIONS,
    BorderOptions,
    RefinementOptions,
    SvgDocument,
    SvgInfo,
    apply_transformations,
    inspect_svg,
    refine_svg,
)

__all__ = [
    "BUILT_IN_PRESETS",
    "TRANSFORMATIONS",
    "BatchItem",
    "BatchJob",
    "BatchResult",
    "BorderOptions",
    "ColorLayer",
    "ConfigurationError",
    "Contour",
    "ConversionError",
    "ConversionPipeline",
    "ConversionPreset",
    "ConversionResult",
    "ConversionSettings",
    "ImageData",
    "ImageLoadError",
    "IterationResult",
    "IterativeConfig",
    "PathElement",
    "PipelineContext",
    "PipelineStage",
    "Point",
    "PresetError",
    "RefinementOptions",
    "RunConfig",
    "StageExecutionError",
    "SvgDocument",
    "SvgInfo",
    "SvgParseError",
    "ThreadedStage",
    "VectorForgeError",
    "apply_transformations",
    "best_iteration",
    "convert_batch",
    "convert_image_data",
    "create_default_pipeline",
    "create_high_quality_pipeline",
    "create_minimal_pipeline",
    "create_pipeline",
    "get_logger",
    "get_preset",
    "image_to_data",
    "inspect_svg",
    "list_presets",
    "load_config",
    "load_image_data",
    "match_preset",
    "refine_svg",
    "render_svg",
    "resolve_settings",
    "run_iterative_conversion",
    "setup_logging",
]
