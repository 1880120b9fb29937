"""Tests for aspect-ratio to pixel-size conversion."""

import pytest

from backend.dimensions import compute_dimensions, ensure_positive, parse_ratio, snap_to_multiple
from backend.errors import InvalidAspectRatio, InvalidDimensions


def test_square_512_stays_512():
    assert compute_dimensions("1/1", 512, 16) == (512, 512)


def test_landscape_is_wider_and_16_aligned():
    width, height = compute_dimensions("16/9", 512, 16)
    assert width > height
    assert width % 16 == 0 and height % 16 == 0
    assert (width, height) == (672, 384)


def test_portrait_mirrors_landscape():
    assert compute_dimensions("9/16", 512, 16) == (384, 672)


def test_64_granularity_is_coarser():
    """The proxy granularity floors 16/9 further than the form granularity."""
    assert compute_dimensions("16/9", 512, 64) == (640, 384)


@pytest.mark.parametrize("ratio", ["1/1", "16/9", "9/16", "4/3", "3/2", "21/9", "1/7"])
@pytest.mark.parametrize("base_size", [64, 256, 512, 768, 1000])
@pytest.mark.parametrize("multiple", [16, 64])
def test_results_are_non_negative_multiples(ratio, base_size, multiple):
    width, height = compute_dimensions(ratio, base_size, multiple)
    assert width >= 0 and height >= 0
    assert width % multiple == 0
    assert height % multiple == 0


def test_extreme_ratio_can_floor_to_zero_and_is_rejected():
    width, height = compute_dimensions("100/1", 64, 16)
    assert height == 0
    with pytest.raises(InvalidDimensions):
        ensure_positive(width, height)


def test_halves_round_up():
    # scale = 5 / sqrt(4) = 2.5, so width is exactly 2.5
    assert compute_dimensions("1/4", 5, 1) == (3, 10)


def test_snap_to_multiple_floors():
    assert snap_to_multiple(47, 16) == 32
    assert snap_to_multiple(768, 64) == 768
    assert snap_to_multiple(1000, 64) == 960


@pytest.mark.parametrize("bad", ["", "16:9", "a/b", "0/1", "1/0", "-1/1", "1/2/3", "inf/1"])
def test_bad_ratios(bad):
    with pytest.raises(InvalidAspectRatio):
        parse_ratio(bad)


def test_bad_ratio_is_a_value_error():
    with pytest.raises(ValueError):
        compute_dimensions("nope", 512)


def test_base_size_must_be_positive():
    with pytest.raises(InvalidDimensions):
        compute_dimensions("1/1", 0)
