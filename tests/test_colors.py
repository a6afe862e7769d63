"""Tests for vectorforge.colors."""

from __future__ import annotations

import pytest

from vectorforge.colors import (
    color_distance,
    is_near_white,
    parse_color,
    rgb_key,
    to_hex,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("rgb(255,0,0)", (255, 0, 0)),
        ("rgba(1, 2, 3, 0.5)", (1, 2, 3)),
        ("#00ff7f", (0, 255, 127)),
        ("#00FF7F80", (0, 255, 127)),
        ("#fff", (255, 255, 255)),
        ("White", (255, 255, 255)),
        ("  #abc  ", (170, 187, 204)),
    ],
)
def test_parse_color_supported_forms(text: str, expected: tuple[int, int, int]) -> None:
    assert parse_color(text) == expected


@pytest.mark.parametrize(
    "text", [None, "", "none", "url(#grad)", "rgb(300,0,0)", "#12345", "chartreuse?"]
)
def test_parse_color_unsupported(text: str | None) -> None:
    assert parse_color(text) is None


def test_color_distance_is_euclidean() -> None:
    assert color_distance((0, 0, 0), (3, 4, 0)) == 5.0
    assert color_distance((10, 10, 10), (10, 10, 10)) == 0.0


def test_near_white_requires_every_channel_above_floor() -> None:
    assert is_near_white((250, 251, 255))
    assert not is_near_white((245, 255, 255))
    assert not is_near_white((255, 255, 200))


def test_rgb_key_format() -> None:
    assert rgb_key(1, 22, 255) == "rgb(1,22,255)"


def test_to_hex_is_lowercase_and_padded() -> None:
    assert to_hex((0, 171, 255)) == "#00abff"
    assert parse_color(to_hex((76, 76, 76))) == (76, 76, 76)
