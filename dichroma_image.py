# -*- coding: utf-8 -*-
"""
Dichroma: Seeing images through dichromatic eyes
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Array & Color Front-End
=======================

Convenience wrappers over the raw-buffer simulators in
``dichroma_simulation`` for the data tools actually hold:

- H x W x 4 (RGBA) and H x W x 3 (RGB) ``uint8`` NumPy arrays,
- single RGB triplets and ``#RGB`` / ``#RRGGBB`` hex strings,
- theme palettes (name -> hex mappings).

Packed RGBA arrays, including row sub-views of larger images, are handed to
the kernels without a copy; their row stride becomes ``bytes_per_row``.
Every other layout goes through a contiguous RGBA scratch buffer.
"""

from __future__ import annotations

import enum
import re
from typing import Any, Callable, Dict, Final, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
from numpy.lib.stride_tricks import as_strided

from dichroma_params import CalibrationSet, Deficiency, DeficiencyLike
from dichroma_simulation import (
    _run_vienot1999,
    _warn_tritan_accuracy,
    simulate_cvd,
    simulate_cvd_brettel1997,
)

__all__ = [
    "Algorithm",
    "simulate_image",
    "simulate_color",
    "simulate_hex",
    "transform_palette",
]

RGBTuple = Tuple[int, int, int]
Runner = Callable[..., None]

_HEX_RE: Final = re.compile(r"#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})")


class Algorithm(str, enum.Enum):
    """Which simulator to run."""
    AUTO = "auto"
    BRETTEL1997 = "brettel1997"
    VIENOT1999 = "vienot1999"


def _vienot1999_unchecked(
    deficiency: Deficiency,
    severity: float,
    buffer: Any,
    width: int,
    height: int,
    bytes_per_row: int = 0,
    *,
    calibration: Optional[CalibrationSet] = None,
) -> None:
    """Viénot 1999 without the tritan warning; the public entry points emit it."""
    _run_vienot1999(deficiency, severity, buffer, width, height, bytes_per_row, calibration)


_RUNNERS: Final[Mapping[Algorithm, Runner]] = {
    Algorithm.AUTO: simulate_cvd,
    Algorithm.BRETTEL1997: simulate_cvd_brettel1997,
    Algorithm.VIENOT1999: _vienot1999_unchecked,
}


def _algorithm(algorithm: Union[Algorithm, str]) -> Algorithm:
    if isinstance(algorithm, str) and not isinstance(algorithm, Algorithm):
        algorithm = algorithm.strip().lower()
    try:
        return Algorithm(algorithm)
    except ValueError:
        names = ", ".join(a.value for a in Algorithm)
        raise ValueError(
            f"Unknown algorithm {algorithm!r}; expected one of: {names}"
        ) from None


def _prepare(
    algorithm: Union[Algorithm, str], deficiency: DeficiencyLike
) -> Tuple[Runner, Deficiency]:
    """
    Resolves the runner and deficiency for a public entry point.

    Must be called directly from that entry point: the tritan warning is
    attributed to the entry point's caller.
    """
    algo = _algorithm(algorithm)
    kind = Deficiency.parse(deficiency)
    if algo is Algorithm.VIENOT1999 and kind is Deficiency.TRITAN:
        # this helper -> entry point -> user code
        _warn_tritan_accuracy(stacklevel=3)
    return _RUNNERS[algo], kind


def _packed_rows_view(arr: np.ndarray) -> Optional[Tuple[np.ndarray, int]]:
    """
    Flat byte view over an RGBA array whose pixels are packed within rows.

    Returns (view, bytes_per_row), or None if the layout needs a copy
    (negative or interleaved strides, overlapping rows).
    """
    h, w, _ = arr.shape
    row_stride, px_stride, ch_stride = arr.strides
    if ch_stride != 1 or px_stride != 4 or row_stride < w * 4:
        return None
    span = (h - 1) * row_stride + w * 4
    return as_strided(arr, shape=(span,), strides=(1,)), row_stride


def _simulate_array(
    image: np.ndarray,
    run: Runner,
    kind: Deficiency,
    severity: float,
    inplace: bool,
    calibration: Optional[CalibrationSet],
) -> np.ndarray:
    if not isinstance(image, np.ndarray):
        raise TypeError(f"Expected a numpy.ndarray, got {type(image).__name__}")
    if image.dtype != np.uint8:
        raise TypeError(f"Expected a uint8 image, got dtype {image.dtype}")
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected shape (H, W, 3) or (H, W, 4), got {image.shape}")
    if inplace and not image.flags.writeable:
        raise TypeError("Cannot simulate in place on a read-only array.")

    h, w, channels = image.shape
    target = image if inplace else image.copy()
    if h == 0 or w == 0:
        return target

    if channels == 4:
        packed = _packed_rows_view(target)
        if packed is not None:
            view, stride = packed
            run(kind, severity, view, w, h, stride, calibration=calibration)
            return target
        scratch = np.ascontiguousarray(target)
    else:
        scratch = np.empty((h, w, 4), dtype=np.uint8)
        scratch[..., :3] = target
        scratch[..., 3] = 255

    run(kind, severity, scratch, w, h, 0, calibration=calibration)
    target[...] = scratch[..., :channels]
    return target


def simulate_image(
    image: np.ndarray,
    deficiency: DeficiencyLike,
    severity: float = 1.0,
    algorithm: Union[Algorithm, str] = Algorithm.AUTO,
    inplace: bool = False,
    *,
    calibration: Optional[CalibrationSet] = None,
) -> np.ndarray:
    """
    Simulates a dichromacy on an RGB or RGBA image array.

    Args:
        image: ``uint8`` array of shape (H, W, 4) or (H, W, 3), sRGB encoded.
        deficiency: PROTAN, DEUTAN or TRITAN (or a name, see
            ``Deficiency.parse``).
        severity: 0.0 = unchanged, 1.0 = full dichromacy.
        algorithm: ``"auto"`` (default), ``"brettel1997"`` or ``"vienot1999"``.
        inplace: Write into *image* instead of a copy.
        calibration: Alternative constants for the simulators.

    Returns:
        The simulated image, same shape and dtype as the input.  With
        ``inplace=True`` this is *image* itself.

    Raises:
        TypeError: If the array is not ``uint8``, or is read-only and
            ``inplace=True``.
        ValueError: On a wrong shape or an unknown algorithm/deficiency.
    """
    run, kind = _prepare(algorithm, deficiency)
    return _simulate_array(image, run, kind, severity, inplace, calibration)


def _check_rgb(rgb: Sequence[int]) -> RGBTuple:
    if len(rgb) != 3:
        raise ValueError(f"Expected an (r, g, b) triplet, got {rgb!r}")
    values = tuple(int(v) for v in rgb)
    if any(v < 0 or v > 255 for v in values):
        raise ValueError(f"RGB components must lie in 0..255, got {rgb!r}")
    return values  # type: ignore[return-value]


def _simulate_rgb_batch(
    colors: Sequence[RGBTuple],
    run: Runner,
    kind: Deficiency,
    severity: float,
    calibration: Optional[CalibrationSet],
) -> np.ndarray:
    """Runs N colors through the simulator as an N x 1 image."""
    pixels = np.full((len(colors), 1, 4), 255, dtype=np.uint8)
    if colors:
        pixels[:, 0, :3] = np.asarray(colors, dtype=np.uint8)
    _simulate_array(pixels, run, kind, severity, True, calibration)
    return pixels[:, 0, :3]


def simulate_color(
    rgb: Sequence[int],
    deficiency: DeficiencyLike,
    severity: float = 1.0,
    algorithm: Union[Algorithm, str] = Algorithm.AUTO,
    *,
    calibration: Optional[CalibrationSet] = None,
) -> RGBTuple:
    """Returns how an 8-bit sRGB (r, g, b) color appears to a dichromat."""
    color = _check_rgb(rgb)
    run, kind = _prepare(algorithm, deficiency)
    out = _simulate_rgb_batch([color], run, kind, severity, calibration)
    r, g, b = (int(v) for v in out[0])
    return r, g, b


def _hex_to_rgb(color: str) -> RGBTuple:
    if not isinstance(color, str) or _HEX_RE.fullmatch(color) is None:
        raise ValueError(f"Invalid hex color: {color!r}")
    digits = color[1:]
    if len(digits) == 3:  # #RGB
        digits = "".join(c * 2 for c in digits)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def _rgb_to_hex(rgb: Sequence[int]) -> str:
    r, g, b = (int(v) for v in rgb)
    return f"#{r:02X}{g:02X}{b:02X}"


def simulate_hex(
    color: str,
    deficiency: DeficiencyLike,
    severity: float = 1.0,
    algorithm: Union[Algorithm, str] = Algorithm.AUTO,
    *,
    calibration: Optional[CalibrationSet] = None,
) -> str:
    """Hex-string variant of ``simulate_color``; returns ``#RRGGBB``."""
    rgb = _hex_to_rgb(color)
    run, kind = _prepare(algorithm, deficiency)
    out = _simulate_rgb_batch([rgb], run, kind, severity, calibration)
    return _rgb_to_hex(out[0])


def transform_palette(
    palette: Mapping[str, Any],
    deficiency: DeficiencyLike,
    severity: float = 1.0,
    algorithm: Union[Algorithm, str] = Algorithm.AUTO,
    *,
    calibration: Optional[CalibrationSet] = None,
) -> Dict[str, Any]:
    """
    Simulates every hex color of a palette in a single kernel call.

    Values that are not ``#RGB`` / ``#RRGGBB`` strings (other tokens, sizes,
    fonts, ...) are passed through unchanged.
    """
    run, kind = _prepare(algorithm, deficiency)
    keys = [k for k, v in palette.items()
            if isinstance(v, str) and _HEX_RE.fullmatch(v)]
    out: Dict[str, Any] = dict(palette)
    if not keys:
        return out

    simulated = _simulate_rgb_batch(
        [_hex_to_rgb(palette[k]) for k in keys],
        run, kind, severity, calibration,
    )
    for key, rgb in zip(keys, simulated):
        out[key] = _rgb_to_hex(rgb)
    return out
