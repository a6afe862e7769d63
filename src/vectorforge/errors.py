"""VectorForge error hierarchy.

All custom exceptions inherit from VectorForgeError, enabling callers
to catch the base class for blanket error handling or specific
subclasses for targeted recovery.
"""

from __future__ import annotations


class VectorForgeError(Exception):
    """Base exception for all VectorForge errors."""


class ConfigurationError(VectorForgeError):
    """Raised when a stage precondition or a run configuration is invalid."""


class StageExecutionError(VectorForgeError):
    """Raised when a pipeline stage fails.

    The message embeds the failing stage's name and the original error
    message; the original exception is chained as ``__cause__``.
    """

    def __init__(self, message: str, stage_name: str) -> None:
        super().__init__(message)
        self.stage_name = stage_name


class ConversionError(VectorForgeError):
    """Raised when a conversion run finishes without producing paths."""


class SvgParseError(VectorForgeError):
    """Raised when SVG markup cannot be parsed for refinement."""


class PresetError(VectorForgeError):
    """Raised when a conversion preset cannot be found."""


class ImageLoadError(VectorForgeError):
    """Raised when an input image cannot be opened or decoded."""
