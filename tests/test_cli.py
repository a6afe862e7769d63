"""Tests for vectorforge CLI commands.

This module tests the CLI commands (convert, refine, remix, batch, presets,
transformations) implemented in src/vectorforge/cli.py.
"""

from __future__ import annotations

import logging
import textwrap
from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner
from rich.console import Console

from vectorforge.cli import build_refinement, main
from vectorforge.svg.refinement import BorderOptions, RefinementOptions
from vectorforge.svg.remix import BackgroundOptions


@pytest.fixture
def cli_runner() -> CliRunner:
    """Fixture providing a Click CLI runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolate_output(
    clean_vectorforge_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    """Wide console so tables don't wrap; logger handlers dropped after."""
    monkeypatch.setattr("vectorforge.cli.console", Console(width=200))
    yield


@pytest.fixture
def messy_svg(tmp_path: Path) -> Path:
    path = tmp_path / "drawing.svg"
    path.write_text(
        '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 50 50">'
        '<rect width="50" height="50" fill="#ffffff"/>'
        "<g><g/></g>"
        '<g fill="red"><path d="M 1.23456 2 L 10 10 Z"/></g>'
        "</svg>",
        encoding="utf-8",
    )
    return path


# ---------------------------------------------------------------------------
# CLI Entry Point Tests
# ---------------------------------------------------------------------------


def test_cli_help_flag(cli_runner: CliRunner) -> None:
    """Test that --help flag displays usage information."""
    result = cli_runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "VectorForge" in result.output
    for command in ("convert", "refine", "remix", "batch", "presets"):
        assert command in result.output


def test_cli_version_flag(cli_runner: CliRunner) -> None:
    """Test that --version flag displays version information."""
    result = cli_runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "version" in result.output.lower()


# ---------------------------------------------------------------------------
# Convert Command Tests
# ---------------------------------------------------------------------------


def test_convert_help(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(main, ["convert", "--help"])
    assert result.exit_code == 0
    assert "--preset" in result.output
    assert "--remove-background" in result.output
    assert "--border" in result.output


def test_convert_writes_svg(
    cli_runner: CliRunner, png_file: Path, tmp_path: Path
) -> None:
    output = tmp_path / "out" / "square.svg"
    result = cli_runner.invoke(
        main,
        ["convert", str(png_file), "-o", str(output), "--path-smoothing", "0.1"],
    )
    assert result.exit_code == 0, result.output
    svg = output.read_text(encoding="utf-8")
    assert svg.startswith('<?xml version="1.0" encoding="UTF-8"?>')
    assert 'fill="rgb(255,0,0)"' in svg
    assert "Wrote" in result.output


def test_convert_default_output_next_to_image(
    cli_runner: CliRunner, png_file: Path
) -> None:
    result = cli_runner.invoke(main, ["convert", str(png_file), "--preset", "icon"])
    assert result.exit_code == 0, result.output
    assert png_file.with_suffix(".svg").is_file()
    assert "complexity=0.40" in result.output


def test_convert_with_refinement_flags(
    cli_runner: CliRunner, png_file: Path, tmp_path: Path
) -> None:
    output = tmp_path / "framed.svg"
    result = cli_runner.invoke(
        main,
        [
            "convert",
            str(png_file),
            "-o",
            str(output),
            "--remove-background",
            "--border",
            "circle",
            "--border-padding",
            "5",
        ],
    )
    assert result.exit_code == 0, result.output
    svg = output.read_text(encoding="utf-8")
    assert 'viewBox="0 0 50 50"' in svg
    assert "<circle" in svg


def test_convert_uses_config_file(
    cli_runner: CliRunner, png_file: Path, tmp_path: Path
) -> None:
    config = tmp_path / "run.yaml"
    config.write_text(
        textwrap.dedent(
            """\
            preset: photo
            settings:
              path_smoothing: 0.0
            pipeline: minimal
            refinement:
              round_precision: true
              precision: 0
            """
        ),
        encoding="utf-8",
    )
    output = tmp_path / "cfg.svg"
    result = cli_runner.invoke(
        main, ["convert", str(png_file), "-o", str(output), "--config", str(config)]
    )
    assert result.exit_code == 0, result.output
    assert "complexity=0.85" in result.output
    assert "ColorLayerExtraction" in result.output
    assert ".00" not in output.read_text(encoding="utf-8")


def test_convert_iterations_flag(
    cli_runner: CliRunner, png_file: Path, tmp_path: Path
) -> None:
    output = tmp_path / "iter.svg"
    result = cli_runner.invoke(
        main, ["convert", str(png_file), "-o", str(output), "--iterations", "2"]
    )
    assert result.exit_code == 0, result.output
    assert "Iteration 1/2" in result.output
    assert "Iteration 2/2" in result.output
    assert "Iteration 3/" not in result.output
    assert output.read_text(encoding="utf-8").count("<path") >= 1


def test_convert_uses_configured_iterations(
    cli_runner: CliRunner, png_file: Path, tmp_path: Path
) -> None:
    config = tmp_path / "iter.yaml"
    config.write_text("iterations:\n  max_iterations: 3\n", encoding="utf-8")
    result = cli_runner.invoke(
        main,
        [
            "convert",
            str(png_file),
            "-o",
            str(tmp_path / "o.svg"),
            "--config",
            str(config),
        ],
    )
    assert result.exit_code == 0, result.output
    assert "Iteration 3/3" in result.output


def test_convert_rejects_zero_iterations(
    cli_runner: CliRunner, png_file: Path
) -> None:
    result = cli_runner.invoke(main, ["convert", str(png_file), "--iterations", "0"])
    assert result.exit_code == 2


def test_convert_missing_image(cli_runner: CliRunner, tmp_path: Path) -> None:
    result = cli_runner.invoke(main, ["convert", str(tmp_path / "nope.png")])
    assert result.exit_code == 2


def test_convert_unreadable_image(cli_runner: CliRunner, tmp_path: Path) -> None:
    bogus = tmp_path / "bogus.png"
    bogus.write_text("definitely not a png", encoding="utf-8")
    result = cli_runner.invoke(main, ["convert", str(bogus)])
    assert result.exit_code == 1
    assert "Conversion failed" in result.output
    assert "Cannot open image" in result.output


def test_convert_bad_config(
    cli_runner: CliRunner, png_file: Path, tmp_path: Path
) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("preset: poster\n", encoding="utf-8")
    result = cli_runner.invoke(
        main, ["convert", str(png_file), "--config", str(config)]
    )
    assert result.exit_code == 1
    assert "Unknown preset 'poster'" in result.output


def test_convert_rejects_out_of_range_setting(
    cli_runner: CliRunner, png_file: Path
) -> None:
    result = cli_runner.invoke(main, ["convert", str(png_file), "--complexity", "1.5"])
    assert result.exit_code == 2


# ---------------------------------------------------------------------------
# Refine Command Tests
# ---------------------------------------------------------------------------


def test_refine_default_output(cli_runner: CliRunner, messy_svg: Path) -> None:
    result = cli_runner.invoke(
        main,
        [
            "refine",
            str(messy_svg),
            "--remove-background",
            "--remove-empty",
            "--precision",
            "1",
            "--flatten-groups",
        ],
    )
    assert result.exit_code == 0, result.output
    refined = messy_svg.with_name("drawing.refined.svg").read_text(encoding="utf-8")
    assert "<rect" not in refined
    assert "<g" not in refined
    assert 'd="M 1.2 2 L 10 10 Z"' in refined
    assert 'fill="red"' in refined
    assert "groups: 3 → 0" in result.output


def test_refine_explicit_output(
    cli_runner: CliRunner, messy_svg: Path, tmp_path: Path
) -> None:
    output = tmp_path / "framed.svg"
    result = cli_runner.invoke(
        main, ["refine", str(messy_svg), "-o", str(output), "--border", "rectangle"]
    )
    assert result.exit_code == 0, result.output
    assert 'viewBox="0 0 70 70"' in output.read_text(encoding="utf-8")


def test_refine_malformed_svg(cli_runner: CliRunner, tmp_path: Path) -> None:
    broken = tmp_path / "broken.svg"
    broken.write_text("<svg><g></svg>", encoding="utf-8")
    result = cli_runner.invoke(main, ["refine", str(broken), "--remove-empty"])
    assert result.exit_code == 1
    assert "Refinement failed" in result.output


def test_refine_color_flags(cli_runner: CliRunner, messy_svg: Path) -> None:
    output = messy_svg.with_name("gray.svg")
    result = cli_runner.invoke(
        main,
        [
            "refine",
            str(messy_svg),
            "-o",
            str(output),
            "--grayscale",
            "--background",
            "#eeeeee",
        ],
    )
    assert result.exit_code == 0, result.output
    refined = output.read_text(encoding="utf-8")
    assert 'fill="#4c4c4c"' in refined
    assert 'fill="red"' not in refined
    assert 'fill="#eeeeee"' in refined


def test_refine_remove_color(cli_runner: CliRunner, messy_svg: Path) -> None:
    output = messy_svg.with_name("no-white.svg")
    result = cli_runner.invoke(
        main, ["refine", str(messy_svg), "-o", str(output), "--remove-color", "white"]
    )
    assert result.exit_code == 0, result.output
    assert "<rect" not in output.read_text(encoding="utf-8")


def test_refine_rejects_unknown_color(cli_runner: CliRunner, messy_svg: Path) -> None:
    result = cli_runner.invoke(
        main, ["refine", str(messy_svg), "--remove-color", "not-a-color"]
    )
    assert result.exit_code == 1
    assert "Refinement failed" in result.output
    assert "Unsupported color" in result.output


# ---------------------------------------------------------------------------
# Remix Command Tests
# ---------------------------------------------------------------------------


def test_remix_default_output(cli_runner: CliRunner, messy_svg: Path) -> None:
    result = cli_runner.invoke(
        main,
        ["remix", str(messy_svg), "-t", "grayscale", "-t", "add-circle-border"],
    )
    assert result.exit_code == 0, result.output
    remixed = messy_svg.with_name("drawing.remixed.svg").read_text(encoding="utf-8")
    assert 'fill="#ffffff"' in remixed
    assert "<circle" in remixed
    assert "Applied grayscale, add-circle-border" in result.output


def test_remix_requires_transformation(cli_runner: CliRunner, messy_svg: Path) -> None:
    result = cli_runner.invoke(main, ["remix", str(messy_svg)])
    assert result.exit_code == 2


def test_remix_rejects_unknown_transformation(
    cli_runner: CliRunner, messy_svg: Path
) -> None:
    result = cli_runner.invoke(main, ["remix", str(messy_svg), "-t", "sepia"])
    assert result.exit_code == 2


def test_remix_malformed_svg(cli_runner: CliRunner, tmp_path: Path) -> None:
    broken = tmp_path / "broken.svg"
    broken.write_text("<svg><g></svg>", encoding="utf-8")
    result = cli_runner.invoke(main, ["remix", str(broken), "-t", "invert-colors"])
    assert result.exit_code == 1
    assert "Remix failed" in result.output


def test_transformations_lists_all(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(main, ["transformations"])
    assert result.exit_code == 0
    for remix_id in ("add-rounded-border", "grayscale", "rotate-90", "scale-down"):
        assert remix_id in result.output


# ---------------------------------------------------------------------------
# Batch Command Tests
# ---------------------------------------------------------------------------


def test_batch_converts_all(
    cli_runner: CliRunner, png_file: Path, tmp_path: Path
) -> None:
    second = tmp_path / "copy.png"
    second.write_bytes(png_file.read_bytes())
    out_dir = tmp_path / "svgs"
    result = cli_runner.invoke(
        main,
        ["batch", str(png_file), str(second), "-d", str(out_dir), "-c", "1"],
    )
    assert result.exit_code == 0, result.output
    assert sorted(p.name for p in out_dir.iterdir()) == ["copy.svg", "square.svg"]
    assert "2 completed" in result.output


def test_batch_reports_failures(
    cli_runner: CliRunner, png_file: Path, tmp_path: Path
) -> None:
    bogus = tmp_path / "bogus.png"
    bogus.write_text("nope", encoding="utf-8")
    out_dir = tmp_path / "svgs"
    result = cli_runner.invoke(
        main, ["batch", str(png_file), str(bogus), "--output-dir", str(out_dir)]
    )
    assert result.exit_code == 1
    assert (out_dir / "square.svg").is_file()
    assert "1 completed" in result.output
    assert "1 failed" in result.output


def test_batch_requires_output_dir(cli_runner: CliRunner, png_file: Path) -> None:
    result = cli_runner.invoke(main, ["batch", str(png_file)])
    assert result.exit_code == 2


# ---------------------------------------------------------------------------
# Presets Command Tests
# ---------------------------------------------------------------------------


def test_presets_lists_all(cli_runner: CliRunner) -> None:
    result = cli_runner.invoke(main, ["presets"])
    assert result.exit_code == 0
    for preset_id in ("logo", "icon", "illustration", "photo", "minimal"):
        assert preset_id in result.output


# ---------------------------------------------------------------------------
# build_refinement
# ---------------------------------------------------------------------------


class TestBuildRefinement:
    def test_no_flags_returns_base(self) -> None:
        base = RefinementOptions(remove_background=True)
        assert build_refinement(base) is base

    def test_flags_layer_over_base(self) -> None:
        base = RefinementOptions(remove_background=True, precision=4)
        options = build_refinement(base, merge_colors=True, precision=1)
        assert options.remove_background
        assert options.merge_color_blocks
        assert options.round_precision
        assert options.precision == 1

    def test_border_padding_keeps_configured_shape(self) -> None:
        base = RefinementOptions(border=BorderOptions(shape="circle"))
        options = build_refinement(base, border_padding=3)
        assert options.border == BorderOptions(shape="circle", padding=3)

    def test_removed_colors_extend_configured(self) -> None:
        base = RefinementOptions(remove_colors=["red"])
        options = build_refinement(base, remove_color=("blue",))
        assert options.remove_colors == ["red", "blue"]

    def test_color_flags(self) -> None:
        options = build_refinement(RefinementOptions(), grayscale=True, invert=True)
        assert options.grayscale
        assert options.invert_colors

    def test_background_keeps_configured_opacity(self) -> None:
        base = RefinementOptions(background=BackgroundOptions(opacity=0.5))
        options = build_refinement(base, background="black")
        assert options.background == BackgroundOptions(color="black", opacity=0.5)
