"""Built-in conversion presets for common image types."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from vectorforge.errors import PresetError
from vectorforge.models import ConversionSettings


class ConversionPreset(BaseModel):
    """A named, ready-made set of conversion settings."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    settings: ConversionSettings


def _preset(
    preset_id: str,
    name: str,
    description: str,
    complexity: float,
    color_simplification: float,
    path_smoothing: float,
) -> ConversionPreset:
    return ConversionPreset(
        id=preset_id,
        name=name,
        description=description,
        settings=ConversionSettings(
            complexity=complexity,
            color_simplification=color_simplification,
            path_smoothing=path_smoothing,
        ),
    )


BUILT_IN_PRESETS: tuple[ConversionPreset, ...] = (
    _preset("logo", "Logo", "Clean shapes, limited colors", 0.6, 0.5, 0.6),
    _preset("icon", "Icon", "Simple graphics, bold lines", 0.4, 0.7, 0.6),
    _preset(
        "illustration", "Illustration", "Detailed artwork, more colors", 0.7, 0.3, 0.5
    ),
    _preset("photo", "Photo", "Maximum detail preservation", 0.85, 0.15, 0.4),
    _preset("minimal", "Minimal", "Smallest file size", 0.3, 0.8, 0.7),
)


def list_presets() -> list[ConversionPreset]:
    """Return the built-in presets in display order."""
    return list(BUILT_IN_PRESETS)


def get_preset(preset_id: str) -> ConversionPreset:
    """Look up a preset by id.

    Raises:
        PresetError: If no preset has that id.
    """
    for preset in BUILT_IN_PRESETS:
        if preset.id == preset_id:
            return preset
    known = ", ".join(p.id for p in BUILT_IN_PRESETS)
    raise PresetError(f"Unknown preset {preset_id!r} (available: {known})")


def match_preset(settings: ConversionSettings) -> ConversionPreset | None:
    """Return the preset whose settings equal *settings*, if any."""
    for preset in BUILT_IN_PRESETS:
        if preset.settings == settings:
            return preset
    return None
