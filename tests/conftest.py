# -*- coding: utf-8 -*-
# Dichroma: Seeing images through dichromatic eyes
#
# Copyright (c) 2026 opticsWolf
#
# SPDX-License-Identifier: LGPL-3.0-or-later

import numpy as np
import pytest

import dichroma_codec

# 4x3 RGBA test card: primaries, secondaries, neutrals and a few mid-tones.
# Alpha varies so that any write to channel 3 shows up.
INPUT_RGBA = np.array(
    [
        [(255, 0, 0, 255), (0, 255, 0, 200), (0, 0, 255, 128), (255, 255, 0, 255)],
        [(0, 255, 255, 0), (255, 0, 255, 255), (128, 128, 128, 255), (255, 255, 255, 255)],
        [(0, 0, 0, 255), (200, 120, 40, 255), (30, 90, 160, 64), (245, 10, 130, 255)],
    ],
    dtype=np.uint8,
)

_NEUTRALS = [(128, 128, 128), (255, 255, 255), (0, 0, 0)]


def _card(row0, row1_head, row2_tail):
    """Builds a 3x4x3 expected RGB card; the neutrals are always unchanged."""
    rows = [list(row0), list(row1_head) + _NEUTRALS[:2], [_NEUTRALS[2]] + list(row2_tail)]
    return np.array(rows, dtype=np.int16)


# Expected R, G, B for every pixel of INPUT_RGBA, keyed by (model, kind, severity).
GOLDEN = {
    ("vienot1999", "PROTAN", 1.0): _card(
        [(93, 93, 14), (242, 242, 0), (0, 0, 255), (255, 255, 0)],
        [(242, 242, 254), (93, 93, 255)],
        [(132, 132, 42), (86, 86, 160), (90, 90, 131)],
    ),
    ("vienot1999", "PROTAN", 0.55): _card(
        [(189, 69, 8), (186, 248, 0), (0, 0, 255), (255, 255, 0)],
        [(186, 248, 255), (189, 69, 255)],
        [(167, 127, 41), (67, 88, 160), (182, 68, 131)],
    ),
    ("vienot1999", "DEUTAN", 1.0): _card(
        [(147, 147, 0), (219, 219, 41), (0, 0, 255), (255, 255, 0)],
        [(219, 219, 255), (147, 147, 253)],
        [(149, 149, 30), (78, 78, 160), (141, 141, 124)],
    ),
    ("vienot1999", "DEUTAN", 0.55): _card(
        [(205, 111, 0), (168, 236, 29), (0, 0, 255), (255, 255, 0)],
        [(168, 236, 255), (205, 111, 254)],
        [(174, 137, 35), (62, 84, 160), (197, 107, 127)],
    ),
    ("vienot1999", "TRITAN", 1.0): _card(
        [(255, 0, 0), (109, 239, 239), (0, 102, 102), (255, 239, 239)],
        [(0, 255, 255), (237, 102, 102)],
        [(204, 113, 113), (0, 103, 103), (241, 50, 50)],
    ),
    ("vienot1999", "TRITAN", 0.55): _card(
        [(255, 0, 0), (82, 247, 184), (0, 76, 191), (255, 247, 184)],
        [(0, 255, 255), (245, 76, 191)],
        [(202, 116, 89), (0, 97, 132), (243, 38, 96)],
    ),
    ("brettel1997", "PROTAN", 1.0): _card(
        [(106, 91, 14), (255, 238, 0), (0, 55, 255), (255, 250, 0)],
        [(238, 243, 255), (0, 106, 255)],
        [(149, 130, 41), (29, 90, 160), (71, 92, 131)],
    ),
    ("brettel1997", "PROTAN", 0.55): _card(
        [(192, 68, 8), (212, 246, 0), (0, 40, 255), (255, 252, 0)],
        [(183, 248, 255), (161, 79, 255)],
        [(175, 125, 41), (30, 90, 160), (178, 69, 131)],
    ),
    ("brettel1997", "DEUTAN", 1.0): _card(
        [(164, 139, 0), (242, 209, 46), (0, 86, 254), (255, 243, 22)],
        [(209, 223, 255), (102, 161, 252)],
        [(165, 142, 33), (30, 90, 160), (145, 140, 125)],
    ),
    ("brettel1997", "DEUTAN", 0.55): _card(
        [(211, 105, 0), (185, 231, 33), (0, 64, 255), (255, 248, 14)],
        [(160, 238, 255), (191, 122, 253)],
        [(182, 133, 36), (30, 90, 160), (198, 106, 127)],
    ),
    ("brettel1997", "TRITAN", 1.0): _card(
        [(255, 0, 78), (124, 234, 255), (0, 96, 135), (255, 239, 242)],
        [(73, 248, 255), (238, 99, 120)],
        [(205, 112, 123), (0, 99, 122), (242, 41, 88)],
    ),
    ("brettel1997", "TRITAN", 0.55): _card(
        [(255, 0, 58), (93, 244, 207), (0, 72, 201), (255, 246, 186)],
        [(54, 251, 255), (246, 74, 196)],
        [(203, 115, 97), (0, 95, 141), (244, 31, 109)],
    ),
}


def max_channel_diff(a, b):
    """Largest absolute difference between two uint8/int arrays."""
    return int(np.max(np.abs(np.asarray(a, dtype=np.int16) - np.asarray(b, dtype=np.int16))))


@pytest.fixture
def card():
    """A fresh, writable copy of the RGBA test card."""
    return INPUT_RGBA.copy()


@pytest.fixture
def random_rgba():
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(37, 53, 4), dtype=np.uint8)


@pytest.fixture
def strict_ieee():
    """Runs a test with the fastmath=False kernels, restoring the default afterwards."""
    previous = dichroma_codec.is_strict_ieee()
    dichroma_codec.set_strict_ieee(True)
    yield
    dichroma_codec.set_strict_ieee(previous)
