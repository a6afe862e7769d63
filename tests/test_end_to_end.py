"""End-to-end conversions through the default pipeline."""

from __future__ import annotations

import pytest

from synthetic_images import BLACK, RED, TRANSPARENT, WHITE, build_image
from vectorforge.models import ConversionSettings, PipelineContext
from vectorforge.pipeline import (
    convert_image_data,
    create_default_pipeline,
    create_high_quality_pipeline,
)
from vectorforge.svg import RefinementOptions, SvgDocument, inspect_svg, refine_svg


class TestTinyImage:
    """A 4×4 image is far below the detail threshold at mid complexity."""

    @pytest.mark.asyncio
    async def test_every_contour_pruned(self, tiny_image) -> None:
        context = PipelineContext.from_image(tiny_image, ConversionSettings())
        result = await create_default_pipeline().execute(context)

        assert result.metadata["target_color_count"] == 136
        assert len(result.color_layers) == 2
        assert result.metadata["detail_threshold"] == 27
        assert result.contours == {}
        assert result.paths == []

    @pytest.mark.asyncio
    async def test_renders_empty_document(self, tiny_image) -> None:
        result = await convert_image_data(tiny_image, ConversionSettings())
        assert "<path" not in result.svg
        assert 'viewBox="0 0 4 4"' in result.svg
        assert result.metadata["path_count"] == 0


class TestShapes:
    @pytest.mark.asyncio
    async def test_square_becomes_one_red_path(self, square_image) -> None:
        result = await convert_image_data(
            square_image,
            ConversionSettings(complexity=0.5, path_smoothing=0.0),
        )
        doc = SvgDocument.parse(result.svg)
        red = [
            doc.nodes[i]
            for i in doc.find_all("path")
            if doc.nodes[i].attrs["fill"] == "rgb(255,0,0)"
        ]
        assert len(red) == 1
        d = red[0].attrs["d"]
        assert d.startswith("M 10.00 10.00")
        for corner in ("29.00 10.00", "29.00 29.00", "10.00 29.00"):
            assert corner in d

    @pytest.mark.asyncio
    async def test_transparent_background_emits_only_foreground(self) -> None:
        image = build_image(32, 32, TRANSPARENT, [(6, 6, 20, 20, BLACK)])
        result = await convert_image_data(image, ConversionSettings())
        assert result.svg.count("<path") == 1
        assert 'fill="rgb(0,0,0)"' in result.svg

    @pytest.mark.asyncio
    async def test_layers_drawn_largest_first(self) -> None:
        image = build_image(48, 32, BLACK, [(30, 0, 18, 32, RED)])
        result = await convert_image_data(image, ConversionSettings())
        assert result.svg.index("rgb(0,0,0)") < result.svg.index("rgb(255,0,0)")

    @pytest.mark.asyncio
    async def test_high_quality_matches_default(self, square_image) -> None:
        settings = ConversionSettings(path_smoothing=0.7)
        default = await convert_image_data(square_image, settings)
        threaded = await convert_image_data(
            square_image, settings, pipeline=create_high_quality_pipeline()
        )
        assert threaded.svg == default.svg


class TestConvertThenRefine:
    @pytest.mark.asyncio
    async def test_refined_output_is_valid_svg(self) -> None:
        image = build_image(40, 40, WHITE, [(5, 5, 30, 30, RED)])
        result = await convert_image_data(
            image, ConversionSettings(path_smoothing=0.8)
        )
        options = RefinementOptions(
            merge_color_blocks=True,
            remove_empty_elements=True,
            round_precision=True,
            precision=1,
            flatten_groups=True,
        )
        refined = refine_svg(result.svg, options)
        info = inspect_svg(refined)
        assert info.path_count >= 1
        assert not info.has_empty_elements
        assert refined.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert len(refined) <= len(result.svg)
