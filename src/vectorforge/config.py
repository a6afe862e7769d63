"""YAML run configuration for the command line and batch jobs.

Example::

    preset: logo
    settings:
      complexity: 0.7          # overrides the preset value
    pipeline: high_quality
    refinement:
      remove_background: true
      round_precision: true
      precision: 1
      grayscale: true
      shadow: true
      border:
        shape: circle
        padding: 12
    iterations:
      max_iterations: 3
      target_score: 90
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from vectorforge.errors import ConfigurationError, PresetError
from vectorforge.iterative import IterativeConfig
from vectorforge.logging import get_logger
from vectorforge.models import ConversionSettings
from vectorforge.pipeline import PipelineKind
from vectorforge.presets import get_preset
from vectorforge.svg.refinement import BorderOptions, RefinementOptions
from vectorforge.svg.remix import (
    BackgroundOptions,
    PathStrokeOptions,
    ShadowOptions,
    TransformOptions,
)

logger = get_logger("config")

_SECTIONS = frozenset({"preset", "settings", "pipeline", "refinement", "iterations"})
_NESTED_REFINEMENT: dict[str, type[BaseModel]] = {
    "border": BorderOptions,
    "path_stroke": PathStrokeOptions,
    "transform": TransformOptions,
    "shadow": ShadowOptions,
    "background": BackgroundOptions,
}


class RunConfig(BaseModel):
    """Everything one conversion run needs besides the image itself."""

    preset: str | None = None
    settings: ConversionSettings = Field(default_factory=ConversionSettings)
    pipeline: PipelineKind = "default"
    refinement: RefinementOptions = Field(default_factory=RefinementOptions)
    iterations: IterativeConfig | None = None


def _parse_yaml(path: Path) -> dict:
    """Read a YAML file whose top level must be a mapping.

    Raises:
        ConfigurationError: If the YAML is malformed or not a mapping.
    """
    with open(path, "r", encoding="utf-8") as fh:
        try:
            data = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Malformed YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}"
        )
    return data


def _section(data: dict, name: str) -> dict:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(
            f"'{name}' section must be a YAML mapping, got {type(value).__name__}"
        )
    return value


def resolve_settings(
    preset_id: str | None, overrides: dict[str, Any] | None = None
) -> ConversionSettings:
    """Start from a preset (or the defaults) and apply explicit overrides.

    Overrides may use either ``snake_case`` or ``camelCase`` keys.

    Raises:
        ConfigurationError: If *preset_id* is unknown.
    """
    base = ConversionSettings()
    if preset_id is not None:
        try:
            base = get_preset(preset_id).settings
        except PresetError as exc:
            raise ConfigurationError(str(exc)) from exc
    if not overrides:
        return base

    explicit = ConversionSettings.model_validate(overrides)
    values = base.model_dump()
    values.update(explicit.model_dump(include=explicit.model_fields_set))
    return ConversionSettings(**values)


def _parse_refinement(raw: dict) -> RefinementOptions:
    """Build refinement options; nested sections also accept ``true``."""
    options = dict(raw)
    for name, model in _NESTED_REFINEMENT.items():
        value = options.pop(name, None)
        if value is True:
            options[name] = model()
        elif isinstance(value, dict):
            options[name] = model(**value)
        elif value not in (None, False):
            raise ConfigurationError(
                f"'refinement.{name}' must be a mapping or a boolean, "
                f"got {type(value).__name__}"
            )
    return RefinementOptions(**options)


def load_config(path: str | Path) -> RunConfig:
    """Load and validate a run configuration from a YAML file.

    The preset (if any) is applied first; values under ``settings`` then
    override it field by field.

    Raises:
        ConfigurationError: If the file is missing, the YAML is malformed,
            a section has the wrong shape, or the preset is unknown.
        ValidationError: If a field value fails Pydantic validation.
    """
    resolved = Path(path)
    if not resolved.is_file():
        raise ConfigurationError(f"Config file not found: {resolved}")
    data = _parse_yaml(resolved)

    unknown = sorted(set(data) - _SECTIONS)
    if unknown:
        logger.warning("Ignoring unknown config sections: %s", ", ".join(unknown))

    preset = data.get("preset")
    if preset is not None and not isinstance(preset, str):
        raise ConfigurationError(
            f"'preset' must be a string, got {type(preset).__name__}"
        )

    config_kwargs: dict[str, Any] = {
        "preset": preset,
        "settings": resolve_settings(preset, _section(data, "settings")),
        "refinement": _parse_refinement(_section(data, "refinement")),
    }
    if "pipeline" in data:
        config_kwargs["pipeline"] = data["pipeline"]
    if data.get("iterations") is not None:
        config_kwargs["iterations"] = IterativeConfig(**_section(data, "iterations"))

    config = RunConfig(**config_kwargs)
    logger.info(
        "Loaded config %s (preset=%s, pipeline=%s)",
        resolved.name,
        config.preset or "none",
        config.pipeline,
    )
    return config
