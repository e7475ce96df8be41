# -*- coding: utf-8 -*-
# Dichroma: Seeing images through dichromatic eyes
#
# Copyright (c) 2026 opticsWolf
#
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reference outputs on the 4x3 test card, one unit of tolerance per channel."""

import warnings

import numpy as np
import pytest

from conftest import GOLDEN, INPUT_RGBA, max_channel_diff
from dichroma_params import Deficiency
from dichroma_simulation import (
    TritanAccuracyWarning,
    simulate_cvd,
    simulate_cvd_brettel1997,
    simulate_cvd_vienot1999,
)

H, W = INPUT_RGBA.shape[:2]

# The six default-pipeline scenarios.
DISPATCH_CASES = [
    (Deficiency.PROTAN, 1.0, "vienot1999"),
    (Deficiency.PROTAN, 0.55, "vienot1999"),
    (Deficiency.DEUTAN, 1.0, "vienot1999"),
    (Deficiency.DEUTAN, 0.55, "vienot1999"),
    (Deficiency.TRITAN, 1.0, "brettel1997"),
    (Deficiency.TRITAN, 0.55, "brettel1997"),
]


@pytest.mark.parametrize("kind, severity, model", DISPATCH_CASES)
def test_simulate_cvd_reference_card(kind, severity, model, card):
    simulate_cvd(kind, severity, card, W, H, 0)

    expected = GOLDEN[(model, kind.name, severity)]
    assert max_channel_diff(card[..., :3], expected) <= 1
    assert np.array_equal(card[..., 3], INPUT_RGBA[..., 3])


@pytest.mark.parametrize("severity", [1.0, 0.55])
@pytest.mark.parametrize("kind", [Deficiency.PROTAN, Deficiency.DEUTAN, Deficiency.TRITAN])
def test_brettel1997_reference_card(kind, severity, card):
    simulate_cvd_brettel1997(kind, severity, card, W, H)
    assert max_channel_diff(card[..., :3], GOLDEN[("brettel1997", kind.name, severity)]) <= 1
    assert np.array_equal(card[..., 3], INPUT_RGBA[..., 3])


@pytest.mark.parametrize("severity", [1.0, 0.55])
def test_vienot1999_tritan_reference_card(severity, card):
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", TritanAccuracyWarning)
        simulate_cvd_vienot1999(Deficiency.TRITAN, severity, card, W, H)
    assert max_channel_diff(card[..., :3], GOLDEN[("vienot1999", "TRITAN", severity)]) <= 1


@pytest.mark.parametrize("kind, severity, model", DISPATCH_CASES)
def test_reference_card_with_padded_rows(kind, severity, model):
    stride = W * 4 + 8
    padded = np.zeros((H, stride), dtype=np.uint8)
    padded[:, : W * 4] = INPUT_RGBA.reshape(H, -1)

    simulate_cvd(kind, severity, padded, W, H, stride)

    out = padded[:, : W * 4].reshape(H, W, 4)
    assert max_channel_diff(out[..., :3], GOLDEN[(model, kind.name, severity)]) <= 1
    assert not padded[:, W * 4:].any()


@pytest.mark.parametrize("kind, severity, model", DISPATCH_CASES)
def test_reference_card_strict_ieee(kind, severity, model, card, strict_ieee):
    simulate_cvd(kind, severity, card, W, H)
    assert max_channel_diff(card[..., :3], GOLDEN[(model, kind.name, severity)]) <= 1
