# -*- coding: utf-8 -*-
# Dichroma: Seeing images through dichromatic eyes
#
# Copyright (c) 2026 opticsWolf
#
# SPDX-License-Identifier: LGPL-3.0-or-later

import numpy as np
import pytest

from dichroma_codec import to_linear, to_srgb


def test_byte_round_trip_is_exact():
    codes = np.arange(256)
    assert np.array_equal(to_srgb(to_linear(codes)), codes)


def test_round_trip_scalar_every_code():
    for v in range(256):
        assert to_srgb(to_linear(v)) == v


def test_decode_endpoints_and_branches():
    assert to_linear(0) == 0.0
    assert to_linear(255) == pytest.approx(1.0)
    # 10/255 is below the 0.04045 knee: linear segment
    assert to_linear(10) == pytest.approx(10 / 255 / 12.92)
    # 128/255 is above it: power segment
    assert to_linear(128) == pytest.approx(((128 / 255 + 0.055) / 1.055) ** 2.4)


def test_decode_is_monotonic():
    lin = to_linear(np.arange(256))
    assert np.all(np.diff(lin) > 0)


def test_encode_clamps_out_of_gamut():
    assert to_srgb(-0.25) == 0
    assert to_srgb(0.0) == 0
    assert to_srgb(1.0) == 255
    assert to_srgb(3.5) == 255


def test_encode_non_finite_values():
    assert to_srgb(float("nan")) == 0
    assert to_srgb(float("inf")) == 255
    assert to_srgb(-float("inf")) == 0
    out = to_srgb(np.array([np.nan, 0.5, np.inf, -np.inf]))
    assert out.tolist() == [0, to_srgb(0.5), 255, 0]


def _linear_for_code(x):
    """Linear value whose unrounded sRGB code is x (power segment)."""
    return ((x / 255 + 0.055) / 1.055) ** 2.4


def test_encode_rounds_to_nearest():
    # Linear segment
    assert to_srgb(0.6 / (12.92 * 255)) == 1
    assert to_srgb(0.4 / (12.92 * 255)) == 0
    # Power segment
    assert to_srgb(_linear_for_code(100.7)) == 101
    assert to_srgb(_linear_for_code(100.3)) == 100


def test_scalar_and_array_types():
    assert isinstance(to_linear(200), float)
    assert isinstance(to_srgb(0.5), int)

    grid = np.arange(12, dtype=np.uint8).reshape(3, 4)
    lin = to_linear(grid)
    assert lin.shape == (3, 4)
    assert lin.dtype == np.float64

    back = to_srgb(lin)
    assert back.shape == (3, 4)
    assert back.dtype == np.uint8


def test_to_linear_rejects_non_integer_input():
    with pytest.raises(TypeError):
        to_linear(0.5)
    with pytest.raises(TypeError):
        to_linear(np.array([0.1, 0.2]))


def test_to_linear_rejects_booleans():
    with pytest.raises(TypeError):
        to_linear(True)
    with pytest.raises(TypeError):
        to_linear(np.array([True, False]))


@pytest.mark.parametrize("bad", [-1, 256, [0, 300]])
def test_to_linear_rejects_out_of_range(bad):
    with pytest.raises(ValueError):
        to_linear(bad)


def test_strict_mode_matches_fast_mode(strict_ieee):
    codes = np.arange(256)
    assert np.array_equal(to_srgb(to_linear(codes)), codes)
    assert to_linear(128) == pytest.approx(((128 / 255 + 0.055) / 1.055) ** 2.4)
