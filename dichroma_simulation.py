# -*- coding: utf-8 -*-
"""
Dichroma: Seeing images through dichromatic eyes
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

Dichromacy Simulation Engine
============================

In-place simulation of protanopia, deuteranopia and tritanopia on 8-bit
sRGB RGBA buffers.

Two models are provided:

1. Brettel 1997 (two half-planes): each pixel is projected onto one of two
   half-planes, chosen by the side of a separation plane it falls on.
   Accurate for all three deficiencies.
2. Viénot 1999 (single plane): one fixed 3x3 matrix per deficiency.
   Slightly cheaper, but NOT valid for tritanopia.

``simulate_cvd`` picks Brettel 1997 for tritanopia and Viénot 1999 otherwise.

Buffer Contract:
    The buffer is a caller-owned, row-major region of ``height`` rows of
    ``bytes_per_row`` bytes each, of which the first ``width * 4`` bytes are
    RGBA pixels.  ``bytes_per_row == 0`` means tightly packed rows.  Only the
    R, G, B bytes of each pixel are rewritten; alpha and any row padding are
    never touched.  Nothing is allocated or copied: the kernels work through
    a zero-copy NumPy view of the caller's memory.

Severity:
    ``simulated * severity + original * (1 - severity)`` in linear RGB.
    Values outside [0, 1] are not clamped and extrapolate.  The blend is
    skipped when severity is within 1e-3 of 1.0; both paths agree to within
    one unit of the 8-bit output.

Parallelism:
    Rows are independent work units distributed with Numba ``prange``, so
    the output does not depend on the thread count or scheduling.
"""

from __future__ import annotations

import math
import operator
import warnings
from typing import Any, Final, Optional, Tuple

import numpy as np
from numba import njit, prange

import dichroma_codec
from dichroma_codec import ArrayFloat, linear_from_srgb_byte, srgb_byte_from_linear
from dichroma_params import (
    CalibrationSet,
    Deficiency,
    DeficiencyLike,
    brettel1997_params,
    vienot1999_matrix,
)

__all__ = [
    "TritanAccuracyWarning",
    "SEVERITY_SKIP_EPS",
    "blend_severity",
    "simulate_cvd",
    "simulate_cvd_brettel1997",
    "simulate_cvd_vienot1999",
]

BYTES_PER_PIXEL: Final[int] = 4

# Severities this close to 1.0 skip the blend entirely.
SEVERITY_SKIP_EPS: Final[float] = 1e-3


class TritanAccuracyWarning(UserWarning):
    """Viénot 1999 was asked to simulate tritanopia."""


def _warn_tritan_accuracy(stacklevel: int) -> None:
    """
    Emits a ``TritanAccuracyWarning``.

    *stacklevel* counts from the function calling this helper, as for
    ``warnings.warn``, so wrappers can attribute the warning to their caller.
    """
    warnings.warn(
        "Viénot 1999 is not accurate for tritanopia; "
        "use simulate_cvd_brettel1997 instead.",
        TritanAccuracyWarning,
        stacklevel=stacklevel + 1,
    )


# =============================================================================
# 1. PIXEL KERNELS (Numba Optimized)
# =============================================================================
# The per-row helpers are inlined into the prange kernels so that each kernel
# variant compiles them with its own fastmath setting.

@njit(cache=True, inline='always')
def _blend(simulated, original, severity):
    """Linear interpolation between original (0.0) and simulated (1.0)."""
    return simulated * severity + original * (1.0 - severity)

@njit(cache=True, inline='always')
def _brettel1997_row(buf, start, width, m1, m2, normal, severity, blend):
    """Two-plane projection of one row, in place."""
    for col in range(width):
        i = start + 4 * col
        r = linear_from_srgb_byte(buf[i])
        g = linear_from_srgb_byte(buf[i + 1])
        b = linear_from_srgb_byte(buf[i + 2])

        # Signed distance to the separation plane; zero belongs to plane 1.
        d = r * normal[0] + g * normal[1] + b * normal[2]
        m = m1 if d >= 0.0 else m2

        cr = m[0, 0] * r + m[0, 1] * g + m[0, 2] * b
        cg = m[1, 0] * r + m[1, 1] * g + m[1, 2] * b
        cb = m[2, 0] * r + m[2, 1] * g + m[2, 2] * b

        # Blending in RGB or in LMS is the same, both are linear.
        if blend:
            cr = _blend(cr, r, severity)
            cg = _blend(cg, g, severity)
            cb = _blend(cb, b, severity)

        buf[i] = srgb_byte_from_linear(cr)
        buf[i + 1] = srgb_byte_from_linear(cg)
        buf[i + 2] = srgb_byte_from_linear(cb)

@njit(cache=True, inline='always')
def _vienot1999_row(buf, start, width, m, severity, blend):
    """Single-matrix projection of one row, in place."""
    for col in range(width):
        i = start + 4 * col
        r = linear_from_srgb_byte(buf[i])
        g = linear_from_srgb_byte(buf[i + 1])
        b = linear_from_srgb_byte(buf[i + 2])

        cr = m[0, 0] * r + m[0, 1] * g + m[0, 2] * b
        cg = m[1, 0] * r + m[1, 1] * g + m[1, 2] * b
        cb = m[2, 0] * r + m[2, 1] * g + m[2, 2] * b

        if blend:
            cr = _blend(cr, r, severity)
            cg = _blend(cg, g, severity)
            cb = _blend(cb, b, severity)

        buf[i] = srgb_byte_from_linear(cr)
        buf[i + 1] = srgb_byte_from_linear(cg)
        buf[i + 2] = srgb_byte_from_linear(cb)


@njit(parallel=True, fastmath=True, cache=True)
def _brettel1997_kernel(buf, width, height, stride, m1, m2, normal, severity, blend):
    """
    Brettel 1997 over a whole buffer.

    Args:
        buf (uint8[:]): Flat view of the image memory, modified in place.
        width (int): Pixels per row.
        height (int): Number of rows.
        stride (int): Bytes between the starts of consecutive rows (resolved).
        m1 (float64[:, :]): Fused projection for plane 1.
        m2 (float64[:, :]): Fused projection for plane 2.
        normal (float64[:]): Separation-plane normal in linear RGB.
        severity (float): Blend factor.
        blend (bool): False skips the blend (severity ~ 1).
    """
    for row in prange(height):
        _brettel1997_row(buf, row * stride, width, m1, m2, normal, severity, blend)

@njit(parallel=True, fastmath=True, cache=True)
def _vienot1999_kernel(buf, width, height, stride, m, severity, blend):
    """Viénot 1999 over a whole buffer.  Same layout as the Brettel kernel."""
    for row in prange(height):
        _vienot1999_row(buf, row * stride, width, m, severity, blend)


# --- Strict IEEE 754 kernel variants (fastmath=False) ---

@njit(parallel=True, fastmath=False, cache=True)
def _brettel1997_kernel_strict(buf, width, height, stride, m1, m2, normal, severity, blend):
    """Brettel 1997, strict IEEE 754 variant."""
    for row in prange(height):
        _brettel1997_row(buf, row * stride, width, m1, m2, normal, severity, blend)

@njit(parallel=True, fastmath=False, cache=True)
def _vienot1999_kernel_strict(buf, width, height, stride, m, severity, blend):
    """Viénot 1999, strict IEEE 754 variant."""
    for row in prange(height):
        _vienot1999_row(buf, row * stride, width, m, severity, blend)


# =============================================================================
# 2. BUFFER VALIDATION
# =============================================================================

def _as_byte_view(buffer: Any) -> np.ndarray:
    """
    Returns a flat, writable uint8 view sharing memory with *buffer*.

    Accepts C-contiguous uint8 ndarrays (any shape) and any object exposing
    a writable, contiguous buffer (bytearray, memoryview, array.array, ...).
    """
    if isinstance(buffer, np.ndarray):
        if buffer.dtype != np.uint8:
            raise TypeError(f"Expected a uint8 pixel buffer, got dtype {buffer.dtype}")
        if not buffer.flags.writeable:
            raise TypeError("Pixel buffer is read-only.")
        if not buffer.flags.c_contiguous:
            raise ValueError(
                "Pixel buffer must be C-contiguous; express row padding "
                "through bytes_per_row instead."
            )
        return buffer.reshape(-1)

    try:
        view = memoryview(buffer)
    except TypeError:
        raise TypeError(
            f"Expected a writable byte buffer, got {type(buffer).__name__}"
        ) from None
    if view.readonly:
        raise TypeError(f"Pixel buffer ({type(buffer).__name__}) is read-only.")
    if not view.c_contiguous:
        raise ValueError("Pixel buffer must be C-contiguous.")
    return np.frombuffer(view.cast("B"), dtype=np.uint8)

def _resolve_geometry(
    size: int, width: int, height: int, bytes_per_row: int
) -> Tuple[int, int, int]:
    """
    Validates the image geometry against a buffer of *size* bytes.

    Returns:
        (width, height, stride) with the stride sentinel 0 resolved.
    """
    width = operator.index(width)
    height = operator.index(height)
    bytes_per_row = operator.index(bytes_per_row)
    if width < 0 or height < 0 or bytes_per_row < 0:
        raise ValueError(
            f"Image geometry must be non-negative, got width={width}, "
            f"height={height}, bytes_per_row={bytes_per_row}"
        )

    row_bytes = width * BYTES_PER_PIXEL
    stride = bytes_per_row if bytes_per_row != 0 else row_bytes
    if stride < row_bytes:
        raise ValueError(
            f"bytes_per_row={stride} is smaller than width*4={row_bytes}"
        )

    if width and height:
        # Last byte touched is the end of the last row's pixels.
        required = (height - 1) * stride + row_bytes
        if size < required:
            raise ValueError(
                f"Pixel buffer too small: {size} bytes for a {width}x{height} "
                f"image with bytes_per_row={stride} (needs {required})"
            )
    return width, height, stride

def _resolve_severity(severity: float) -> Tuple[float, bool]:
    """Returns (severity, blend) where blend=False means 'skip the blend'."""
    s = float(severity)
    if not math.isfinite(s):
        raise ValueError(f"Severity must be finite, got {severity!r}")
    return s, abs(s - 1.0) >= SEVERITY_SKIP_EPS


# =============================================================================
# 3. SIMULATORS
# =============================================================================

def _run_brettel1997(
    kind: Deficiency, severity: float, buffer: Any, width: int, height: int,
    bytes_per_row: int, calibration: Optional[CalibrationSet],
) -> None:
    params = brettel1997_params(kind, calibration)
    view = _as_byte_view(buffer)
    w, h, stride = _resolve_geometry(view.size, width, height, bytes_per_row)
    s, blend = _resolve_severity(severity)
    if w == 0 or h == 0:
        return

    kernel = (_brettel1997_kernel_strict if dichroma_codec.is_strict_ieee()
              else _brettel1997_kernel)
    kernel(view, w, h, stride,
           params.rgb_cvd_from_rgb_1,
           params.rgb_cvd_from_rgb_2,
           params.separation_plane_normal_rgb,
           s, blend)

def _run_vienot1999(
    kind: Deficiency, severity: float, buffer: Any, width: int, height: int,
    bytes_per_row: int, calibration: Optional[CalibrationSet],
) -> None:
    matrix = vienot1999_matrix(kind, calibration)
    view = _as_byte_view(buffer)
    w, h, stride = _resolve_geometry(view.size, width, height, bytes_per_row)
    s, blend = _resolve_severity(severity)
    if w == 0 or h == 0:
        return

    kernel = (_vienot1999_kernel_strict if dichroma_codec.is_strict_ieee()
              else _vienot1999_kernel)
    kernel(view, w, h, stride, matrix, s, blend)


def simulate_cvd_brettel1997(
    deficiency: DeficiencyLike,
    severity: float,
    buffer: Any,
    width: int,
    height: int,
    bytes_per_row: int = 0,
    *,
    calibration: Optional[CalibrationSet] = None,
) -> None:
    """
    Simulates a dichromacy in place with the Brettel 1997 two-plane model.

    Works well for all three deficiencies, at a slightly higher cost than
    Viénot 1999.

    Args:
        deficiency: PROTAN, DEUTAN or TRITAN (or a name/int, see
            ``Deficiency.parse``).
        severity: 0.0 leaves the image unchanged, 1.0 is full dichromacy.
        buffer: Writable RGBA buffer, 8 bits per channel, sRGB encoded.
        width: Pixels per row.
        height: Number of rows.
        bytes_per_row: Row stride in bytes; 0 means ``width * 4``.
        calibration: Alternative constants; defaults to
            ``DEFAULT_CALIBRATION``.

    Raises:
        TypeError: If the buffer is not a writable byte buffer.
        ValueError: On an unknown deficiency, a non-finite severity, or a
            geometry the buffer cannot hold.
    """
    kind = Deficiency.parse(deficiency)
    _run_brettel1997(kind, severity, buffer, width, height, bytes_per_row, calibration)

def simulate_cvd_vienot1999(
    deficiency: DeficiencyLike,
    severity: float,
    buffer: Any,
    width: int,
    height: int,
    bytes_per_row: int = 0,
    *,
    calibration: Optional[CalibrationSet] = None,
) -> None:
    """
    Simulates a dichromacy in place with the Viénot 1999 single-matrix model.

    Accurate for protanopia and deuteranopia only.  Tritanopia is still
    computed but a ``TritanAccuracyWarning`` is emitted; use
    ``simulate_cvd_brettel1997`` (or ``simulate_cvd``) instead.

    Same arguments and errors as ``simulate_cvd_brettel1997``.
    """
    kind = Deficiency.parse(deficiency)
    if kind is Deficiency.TRITAN:
        _warn_tritan_accuracy(stacklevel=2)
    _run_vienot1999(kind, severity, buffer, width, height, bytes_per_row, calibration)

def simulate_cvd(
    deficiency: DeficiencyLike,
    severity: float,
    buffer: Any,
    width: int,
    height: int,
    bytes_per_row: int = 0,
    *,
    calibration: Optional[CalibrationSet] = None,
) -> None:
    """
    Simulates a dichromacy in place, picking the model per deficiency.

    Brettel 1997 for tritanopia (Viénot 1999 is not accurate there),
    Viénot 1999 for protanopia and deuteranopia (equally accurate, faster).

    Same arguments and errors as ``simulate_cvd_brettel1997``.
    """
    kind = Deficiency.parse(deficiency)
    if kind is Deficiency.TRITAN:
        _run_brettel1997(kind, severity, buffer, width, height, bytes_per_row, calibration)
    else:
        _run_vienot1999(kind, severity, buffer, width, height, bytes_per_row, calibration)


def blend_severity(
    simulated: ArrayFloat, original: ArrayFloat, severity: float
) -> ArrayFloat:
    """
    Severity blend on linear RGB values, as applied inside the kernels.

    Args:
        simulated: Fully simulated linear values, any shape.
        original: Original linear values, broadcastable to *simulated*.
        severity: Blend factor; not clamped.

    Returns:
        ``simulated * severity + original * (1 - severity)`` as float64.
    """
    s, _ = _resolve_severity(severity)
    sim = np.asarray(simulated, dtype=np.float64)
    orig = np.asarray(original, dtype=np.float64)
    return sim * s + orig * (1.0 - s)


# =============================================================================
# Validation Block
# =============================================================================
if __name__ == "__main__":
    import time

    print("--- Dichroma Simulation Engine Validation ---")

    w, h = 1920, 1080
    rng = np.random.default_rng(7)
    source = rng.integers(0, 256, size=(h, w, 4), dtype=np.uint8)

    # 1. Alpha must survive every model.
    print("1. Testing alpha preservation...")
    for kind in Deficiency:
        img = source.copy()
        simulate_cvd(kind, 1.0, img, w, h)
        same = np.array_equal(img[..., 3], source[..., 3])
        print(f"   {kind.name:<6} {'[PASS]' if same else '[FAIL]'}")

    # 2. Severity 0 is the identity (up to one unit of rounding).
    print("2. Testing severity=0 identity...")
    img = source.copy()
    simulate_cvd(Deficiency.DEUTAN, 0.0, img, w, h)
    diff = np.max(np.abs(img.astype(np.int16) - source.astype(np.int16)))
    print(f"   Max channel diff: {diff} {'[PASS]' if diff <= 1 else '[FAIL]'}")

    # 3. Padded stride leaves the padding alone.
    print("3. Testing padded stride...")
    pad = 16
    padded = np.full((h, w * 4 + pad), 77, dtype=np.uint8)
    padded[:, : w * 4] = source.reshape(h, -1)
    simulate_cvd(Deficiency.PROTAN, 1.0, padded, w, h, w * 4 + pad)
    untouched = bool(np.all(padded[:, w * 4:] == 77))
    print(f"   Padding untouched: {'[PASS]' if untouched else '[FAIL]'}")

    # 4. Timing (first call includes JIT compilation unless cached).
    print("4. Benchmarking 1920x1080...")
    for name, fn in (("brettel1997", simulate_cvd_brettel1997),
                     ("vienot1999", simulate_cvd_vienot1999)):
        img = source.copy()
        fn(Deficiency.PROTAN, 1.0, img, w, h)
        img = source.copy()
        t0 = time.perf_counter()
        fn(Deficiency.PROTAN, 0.55, img, w, h)
        t1 = time.perf_counter()
        print(f"   {name:<12} {(t1 - t0) * 1000:.2f} ms")
