# -*- coding: utf-8 -*-
"""
Dichroma: Seeing images through dichromatic eyes
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Deficiency Parameter Tables
===========================

Precomputed calibration constants for the two simulation models, keyed by
the closed ``Deficiency`` enumeration.

LMS model:
    linear sRGB -> CIE XYZ uses the sRGB standard matrix, and CIE XYZ -> LMS
    uses Smith & Pokorny (1975).  This is the LMS model of Viénot, Brettel
    and Mollon upgraded to the primaries of modern monitors.

Brettel 1997 projection planes:
    The planes were computed with RGB white as the neutral element (not the
    equal-energy illuminant E), as most Brettel implementations do.  This
    keeps more projected colors inside the sRGB gamut.

    Each half-plane projection is fused with the forward and backward color
    space conversions,

        rgb_cvd_from_rgb_k = rgb_from_lms @ projection_k @ lms_from_rgb

    and the separation-plane normal is pre-multiplied into RGB,

        separation_plane_normal_rgb = normal_lms @ lms_from_rgb

    so no LMS coordinates are ever computed at runtime.

Viénot 1999:
    A single projection plane, so the whole pipeline collapses to one 3x3
    matrix in linear RGB.  Not valid for tritanopia.

All arrays are float64, C-contiguous and read-only.  Values carry five
decimals, which is the precision of the published reference tables.

References:
    - Brettel, H., Viénot, F., Mollon, J. D. (1997). "Computerized simulation
      of color appearance for dichromats." JOSA A 14(10).
    - Viénot, F., Brettel, H., Mollon, J. D. (1999). "Digital video
      colourmaps for checking the legibility of displays by dichromats."
      Color Research & Application 24(4).
    - Smith, V. C., Pokorny, J. (1975). "Spectral sensitivity of the foveal
      cone photopigments between 400 and 500 nm." Vision Research 15(2).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, Final, Mapping, Optional, Union

import numpy as np

__all__ = [
    "Deficiency",
    "DeficiencyLike",
    "Brettel1997Params",
    "CalibrationSet",
    "BRETTEL1997_PARAMS",
    "VIENOT1999_MATRICES",
    "DEFAULT_CALIBRATION",
    "brettel1997_params",
    "vienot1999_matrix",
]


# ---------------------------------------------------------------------------
# 1.  Deficiency enumeration
# ---------------------------------------------------------------------------
class Deficiency(enum.IntEnum):
    """The three dichromacies.  Closed set."""
    PROTAN = 0
    DEUTAN = 1
    TRITAN = 2

    @classmethod
    def parse(cls, value: DeficiencyLike) -> Deficiency:
        """
        Coerces a member, its integer value or a name to a ``Deficiency``.

        Names are matched case-insensitively on their prefix, so "protan",
        "Protanopia" and "protanomaly" all map to ``PROTAN``.

        Raises:
            ValueError: If the value names no deficiency.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member, prefix in _NAME_PREFIXES:
                if key.startswith(prefix):
                    return member
            raise ValueError(f"Unknown deficiency: {value!r}")
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                raise ValueError(f"Unknown deficiency: {value!r}") from None
        raise ValueError(f"Unknown deficiency: {value!r}")


DeficiencyLike = Union[Deficiency, int, str]

_NAME_PREFIXES: Final = (
    (Deficiency.PROTAN, "prot"),
    (Deficiency.DEUTAN, "deut"),
    (Deficiency.TRITAN, "trit"),
)


def _frozen(rows) -> np.ndarray:
    arr = np.array(rows, dtype=np.float64)
    arr.setflags(write=False)
    return arr


# ---------------------------------------------------------------------------
# 2.  Brettel 1997 (two half-planes)
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class Brettel1997Params:
    """Fused two-plane projection data for one deficiency."""
    rgb_cvd_from_rgb_1:          np.ndarray
    rgb_cvd_from_rgb_2:          np.ndarray
    separation_plane_normal_rgb: np.ndarray

    def __post_init__(self) -> None:
        for name, shape in (("rgb_cvd_from_rgb_1", (3, 3)),
                            ("rgb_cvd_from_rgb_2", (3, 3)),
                            ("separation_plane_normal_rgb", (3,))):
            arr = getattr(self, name)
            if not isinstance(arr, np.ndarray) or arr.shape != shape:
                raise ValueError(f"{name} must be an array of shape {shape}")
            if (arr.flags.writeable or arr.dtype != np.float64
                    or not arr.flags.c_contiguous):
                # Store a private read-only float64 copy.
                object.__setattr__(self, name, _frozen(arr))


BRETTEL1997_PARAMS: Final[Mapping[Deficiency, Brettel1997Params]] = {
    Deficiency.PROTAN: Brettel1997Params(
        rgb_cvd_from_rgb_1=_frozen([
            [0.14510,  1.20165, -0.34675],
            [0.10447,  0.85316,  0.04237],
            [0.00429, -0.00603,  1.00174],
        ]),
        rgb_cvd_from_rgb_2=_frozen([
            [0.14115,  1.16782, -0.30897],
            [0.10495,  0.85730,  0.03776],
            [0.00431, -0.00586,  1.00155],
        ]),
        separation_plane_normal_rgb=_frozen([0.00048, 0.00416, -0.00464]),
    ),
    Deficiency.DEUTAN: Brettel1997Params(
        rgb_cvd_from_rgb_1=_frozen([
            [ 0.36198,  0.86755, -0.22953],
            [ 0.26099,  0.64512,  0.09389],
            [-0.01975,  0.02686,  0.99289],
        ]),
        rgb_cvd_from_rgb_2=_frozen([
            [ 0.37009,  0.88540, -0.25549],
            [ 0.25767,  0.63782,  0.10451],
            [-0.01950,  0.02741,  0.99209],
        ]),
        separation_plane_normal_rgb=_frozen([-0.00293, -0.00645, 0.00938]),
    ),
    Deficiency.TRITAN: Brettel1997Params(
        rgb_cvd_from_rgb_1=_frozen([
            [ 1.01354,  0.14268, -0.15622],
            [-0.01181,  0.87561,  0.13619],
            [ 0.07707,  0.81208,  0.11085],
        ]),
        rgb_cvd_from_rgb_2=_frozen([
            [ 0.93337,  0.19999, -0.13336],
            [ 0.05809,  0.82565,  0.11626],
            [-0.37923,  1.13825,  0.24098],
        ]),
        separation_plane_normal_rgb=_frozen([0.03960, -0.02831, -0.01129]),
    ),
}


# ---------------------------------------------------------------------------
# 3.  Viénot 1999 (single plane)
# ---------------------------------------------------------------------------
VIENOT1999_MATRICES: Final[Mapping[Deficiency, np.ndarray]] = {
    Deficiency.PROTAN: _frozen([
        [0.10889,  0.89111, 0.00000],
        [0.10889,  0.89111, 0.00000],
        [0.00447, -0.00447, 1.00000],
    ]),
    Deficiency.DEUTAN: _frozen([
        [ 0.29031, 0.70969, 0.00000],
        [ 0.29031, 0.70969, 0.00000],
        [-0.02197, 0.02197, 1.00000],
    ]),
    # Not accurate for tritanopia, kept for completeness.
    Deficiency.TRITAN: _frozen([
        [1.00000, 0.15236, -0.15236],
        [0.00000, 0.86717,  0.13283],
        [0.00000, 0.86717,  0.13283],
    ]),
}


# ---------------------------------------------------------------------------
# 4.  Calibration bundle
# ---------------------------------------------------------------------------
@dataclass(slots=True, frozen=True)
class CalibrationSet:
    """
    One consistent set of constants for both model families.

    Swapping calibrations means passing another ``CalibrationSet`` to the
    simulation entry points; the tables themselves are never mutated.
    """
    name:     str
    brettel:  Mapping[Deficiency, Brettel1997Params] = field(default_factory=dict)
    vienot:   Mapping[Deficiency, np.ndarray]        = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen_vienot: Dict[Deficiency, np.ndarray] = {}
        for key, matrix in self.vienot.items():
            arr = np.asarray(matrix, dtype=np.float64)
            if arr.shape != (3, 3):
                raise ValueError(
                    f"Viénot matrix for {Deficiency.parse(key).name} must be 3x3, "
                    f"got {arr.shape}"
                )
            if arr.flags.writeable or not arr.flags.c_contiguous:
                arr = _frozen(arr)
            frozen_vienot[Deficiency.parse(key)] = arr
        object.__setattr__(self, "vienot", frozen_vienot)
        object.__setattr__(
            self, "brettel",
            {Deficiency.parse(k): v for k, v in self.brettel.items()},
        )


DEFAULT_CALIBRATION: Final[CalibrationSet] = CalibrationSet(
    name="sRGB / Smith-Pokorny 1975, RGB-white neutral",
    brettel=BRETTEL1997_PARAMS,
    vienot=VIENOT1999_MATRICES,
)


# ---------------------------------------------------------------------------
# 5.  Lookups
# ---------------------------------------------------------------------------
def brettel1997_params(
    deficiency: DeficiencyLike,
    calibration: Optional[CalibrationSet] = None,
) -> Brettel1997Params:
    """Returns the Brettel 1997 parameters of *deficiency*."""
    cal = DEFAULT_CALIBRATION if calibration is None else calibration
    key = Deficiency.parse(deficiency)
    try:
        return cal.brettel[key]
    except KeyError:
        raise KeyError(
            f"Calibration '{cal.name}' has no Brettel 1997 parameters "
            f"for {key.name}."
        ) from None


def vienot1999_matrix(
    deficiency: DeficiencyLike,
    calibration: Optional[CalibrationSet] = None,
) -> np.ndarray:
    """Returns the Viénot 1999 matrix of *deficiency*."""
    cal = DEFAULT_CALIBRATION if calibration is None else calibration
    key = Deficiency.parse(deficiency)
    try:
        return cal.vienot[key]
    except KeyError:
        raise KeyError(
            f"Calibration '{cal.name}' has no Viénot 1999 matrix "
            f"for {key.name}."
        ) from None
