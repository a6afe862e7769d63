"""Pydantic data models threaded through the conversion pipeline."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vectorforge.colors import rgb_key


def _clamp_unit(value: float) -> float:
    return min(1.0, max(0.0, float(value)))


class Point(BaseModel):
    """A pixel-space coordinate.

    Integer-valued while tracing, fractional after simplification or
    smoothing.
    """

    x: float
    y: float

    @property
    def xy(self) -> tuple[float, float]:
        """Return the point as an ``(x, y)`` tuple."""
        return (self.x, self.y)


class ColorRGB(BaseModel):
    """An RGBA color with 0–255 channel values."""

    r: int = Field(..., ge=0, le=255)
    g: int = Field(..., ge=0, le=255)
    b: int = Field(..., ge=0, le=255)
    a: int = Field(default=255, ge=0, le=255)

    @property
    def rgb(self) -> tuple[int, int, int]:
        """Return the color as an ``(R, G, B)`` tuple."""
        return (self.r, self.g, self.b)

    @property
    def key(self) -> str:
        """Return the layer key used for this color, e.g. ``rgb(0,0,0)``."""
        return rgb_key(self.r, self.g, self.b)


class ImageData(BaseModel):
    """A decoded RGBA raster: ``width * height * 4`` bytes, row-major.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        data: Raw RGBA bytes.
    """

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    data: bytes

    @model_validator(mode="after")
    def _buffer_matches_dimensions(self) -> "ImageData":
        expected = self.width * self.height * 4
        if len(self.data) != expected:
            raise ValueError(
                f"RGBA buffer has {len(self.data)} bytes, expected {expected} "
                f"for {self.width}x{self.height}"
            )
        return self

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        """Return the ``(R, G, B, A)`` value at pixel ``(x, y)``."""
        base = (y * self.width + x) * 4
        r, g, b, a = self.data[base : base + 4]
        return (r, g, b, a)


class ColorLayer(BaseModel):
    """A pixel mask isolating the pixels of one quantized color.

    Attributes:
        color: Quantized color key (``"rgb(r,g,b)"``).
        pixels: Row-major mask of length ``width * height``; True means the
            pixel belongs to this layer.
        area: Number of pixels in the layer.
    """

    color: str
    pixels: list[bool]
    area: int = Field(..., ge=0)


class Contour(BaseModel):
    """A traced, simplified region boundary.

    Attributes:
        points: Ordered polyline.
        closed: Whether the polyline closes back on its first point.
        area: Unsigned shoelace area of the polygon.
    """

    points: list[Point]
    closed: bool = True
    area: float = Field(default=0.0, ge=0.0)


class PathElement(BaseModel):
    """A vector drawing primitive: path data plus styling."""

    model_config = ConfigDict(populate_by_name=True)

    d: str
    fill: str
    stroke: str | None = None
    stroke_width: float | None = Field(default=None, alias="strokeWidth", ge=0.0)
    opacity: float | None = Field(default=None, ge=0.0, le=1.0)


class ConversionSettings(BaseModel):
    """User-facing conversion controls, each normalized to [0, 1].

    Attributes:
        complexity: Higher keeps smaller contours (lower detail threshold).
        color_simplification: Higher produces fewer, coarser color layers.
        path_smoothing: Drives spline smoothing and path-data curve type.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    complexity: float = Field(default=0.5, ge=0.0, le=1.0)
    color_simplification: float = Field(
        default=0.5, ge=0.0, le=1.0, alias="colorSimplification"
    )
    path_smoothing: float = Field(default=0.5, ge=0.0, le=1.0, alias="pathSmoothing")

    @classmethod
    def clamped(
        cls,
        complexity: float,
        color_simplification: float,
        path_smoothing: float,
    ) -> "ConversionSettings":
        """Build settings from arbitrary numbers by clamping into [0, 1]."""
        return cls(
            complexity=_clamp_unit(complexity),
            color_simplification=_clamp_unit(color_simplification),
            path_smoothing=_clamp_unit(path_smoothing),
        )


class PipelineContext(BaseModel):
    """State flowing from stage to stage during one conversion attempt.

    Stages never mutate the context they receive; they return a copy with
    new fields filled in.  Later fields require earlier ones:
    ``contours`` needs ``color_layers`` and ``paths`` needs ``contours``.
    """

    image_data: ImageData
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    settings: ConversionSettings
    color_layers: list[ColorLayer] | None = None
    contours: dict[str, list[Contour]] | None = None
    paths: list[PathElement] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_invariants(self) -> "PipelineContext":
        if (self.width, self.height) != (self.image_data.width, self.image_data.height):
            raise ValueError(
                f"Context size {self.width}x{self.height} does not match image "
                f"{self.image_data.width}x{self.image_data.height}"
            )
        if self.color_layers is not None:
            expected = self.width * self.height
            for layer in self.color_layers:
                if len(layer.pixels) != expected:
                    raise ValueError(
                        f"Layer {layer.color!r} mask has {len(layer.pixels)} "
                        f"entries, expected {expected}"
                    )
        if self.contours is not None and self.color_layers is None:
            raise ValueError("contours require color_layers")
        if self.paths is not None and self.contours is None:
            raise ValueError("paths require contours")
        return self

    @classmethod
    def from_image(
        cls,
        image_data: ImageData,
        settings: ConversionSettings,
        metadata: dict[str, Any] | None = None,
    ) -> "PipelineContext":
        """Create a fresh context for one conversion attempt."""
        return cls(
            image_data=image_data,
            width=image_data.width,
            height=image_data.height,
            settings=settings,
            metadata=dict(metadata or {}),
        )

    def with_updates(
        self, metadata: dict[str, Any] | None = None, **fields: Any
    ) -> "PipelineContext":
        """Return a copy with *fields* replaced and *metadata* merged in.

        The copy is validated again, so an update that breaks the stage
        ordering or the mask sizes is rejected.

        Raises:
            ValidationError: If the updated context violates an invariant.
        """
        merged = {**self.metadata, **(metadata or {})}
        return type(self).model_validate({**dict(self), **fields, "metadata": merged})


class ConversionResult(BaseModel):
    """Serialized output of a conversion run."""

    svg: str
    size: int = Field(..., ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)
