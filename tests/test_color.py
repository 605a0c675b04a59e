"""Tests for RGBColor validation."""

import math

import pytest

from openrgb_sync_mcp.models.color import RGBColor, is_valid_rgb_color


def test_validate_passthrough():
    assert RGBColor.validate({"r": 255, "g": 128, "b": 64, "a": 200}) == RGBColor(255, 128, 64, 200)


def test_validate_clamps():
    assert RGBColor.validate({"r": 300, "g": 400, "b": 500, "a": 350}) == RGBColor(255, 255, 255, 255)
    assert RGBColor.validate({"r": -10, "g": -50, "b": -100, "a": -25}) == RGBColor(0, 0, 0, 0)


def test_validate_missing_channels():
    assert RGBColor.validate({"r": 100, "g": 150}) == RGBColor(100, 150, 0, 255)
    assert RGBColor.validate({}) == RGBColor(0, 0, 0, 255)


@pytest.mark.parametrize("bad", [None, math.nan, math.inf, "12", True])
def test_validate_invalid_channels_default(bad):
    assert RGBColor.validate({"r": bad, "g": bad, "b": bad, "a": bad}) == RGBColor(0, 0, 0, 255)


def test_validate_floors_decimals():
    assert RGBColor.validate({"r": 255.9, "g": 128.7, "b": 64.3, "a": 200.1}) == RGBColor(255, 128, 64, 200)


def test_validate_color_instance():
    assert RGBColor.validate(RGBColor(999, 1, 2, 3)) == RGBColor(255, 1, 2, 3)


def test_create_defaults():
    assert RGBColor.create() == RGBColor(0, 0, 0, 255)
    assert RGBColor.create(10, 20) == RGBColor(10, 20, 0, 255)


def test_from_hex():
    assert RGBColor.from_hex("#3584e4") == RGBColor(0x35, 0x84, 0xE4, 255)
    assert RGBColor.from_hex("3584e480") == RGBColor(0x35, 0x84, 0xE4, 0x80)
    assert RGBColor(0x35, 0x84, 0xE4).to_hex() == "#3584e4"


@pytest.mark.parametrize("text", ["#123", "#gggggg", ""])
def test_from_hex_invalid(text):
    with pytest.raises(ValueError):
        RGBColor.from_hex(text)


def test_is_valid_rgb_color():
    assert is_valid_rgb_color({"r": 255, "g": 128, "b": 64, "a": 200})
    assert is_valid_rgb_color({"r": 254.9, "g": 0, "b": 0, "a": 0})
    assert is_valid_rgb_color(RGBColor(1, 2, 3))
    assert not is_valid_rgb_color(None)
    assert not is_valid_rgb_color([])
    assert not is_valid_rgb_color({"r": 255, "g": 128, "b": 64})
    assert not is_valid_rgb_color({"r": "255", "g": 128, "b": 64, "a": 200})
    assert not is_valid_rgb_color({"r": 255.1, "g": 128, "b": 64, "a": 200})
    assert not is_valid_rgb_color({"r": math.nan, "g": 0, "b": 0, "a": 0})
    assert not is_valid_rgb_color({"r": -math.inf, "g": 0, "b": 0, "a": 0})


def test_validated_output_is_valid():
    assert is_valid_rgb_color(RGBColor.validate({"r": 300, "g": -50, "b": 128.7}))


def test_constructor_clamps():
    color = RGBColor(300, -4, 10.7, math.nan)
    assert (color.r, color.g, color.b, color.a) == (255, 0, 10, 255)
    assert is_valid_rgb_color(color)
