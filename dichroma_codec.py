# -*- coding: utf-8 -*-
"""
Dichroma: Seeing images through dichromatic eyes
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: LGPL-3.0-or-later

sRGB Transfer Codec
===================

Conversion between 8-bit sRGB channel values and linear-light floats, the
first and last step of every simulation kernel.

The module exposes two layers:

1. Scalar Numba helpers (``linear_from_srgb_byte`` / ``srgb_byte_from_linear``)
   compiled with ``inline='always'`` so the pixel kernels in
   ``dichroma_simulation`` fuse them into their row loops.
2. Array kernels plus the public ``to_linear`` / ``to_srgb`` wrappers, which
   accept Python scalars or NumPy arrays of any shape.

Encoding rounds half-up (``int(x + 0.5)``), never to even. Together with the
clamp at both ends of the range this makes ``to_srgb(to_linear(v)) == v``
hold exactly for every byte value.

References:
    - IEC 61966-2-1:1999 (sRGB Standard)
"""

from typing import Final, TypeAlias, Union

import numpy as np
import numpy.typing as npt
from numba import njit

__all__ = [
    # --- Type Aliases ---
    "ArrayFloat",
    "ArrayByte",

    # --- Constants ---
    "SRGB_DECODE_THRESHOLD",
    "SRGB_ENCODE_THRESHOLD",
    "SRGB_LINEAR_SLOPE",

    # --- Configuration ---
    "set_strict_ieee",
    "is_strict_ieee",

    # --- Scalar kernels ---
    "linear_from_srgb_byte",
    "srgb_byte_from_linear",

    # --- Public API ---
    "to_linear",
    "to_srgb",
]

# --- Type Aliases ---
ArrayFloat: TypeAlias = npt.NDArray[np.floating]
ArrayByte: TypeAlias = npt.NDArray[np.uint8]

# --- Transfer Function Constants ---
# IEC 61966-2-1 defines the slope of the linear toe as exactly 12.92.
# The two thresholds are the same knee seen from either side of the curve
# (0.0031308 * 12.92 == 0.04045).
SRGB_DECODE_THRESHOLD: Final[float] = 0.04045
SRGB_ENCODE_THRESHOLD: Final[float] = 0.0031308
SRGB_LINEAR_SLOPE: Final[float] = 12.92
_SRGB_OFFSET: Final[float] = 0.055
_SRGB_SCALE: Final[float] = 1.055
_SRGB_GAMMA: Final[float] = 2.4
_INV_SRGB_GAMMA: Final[float] = 1.0 / 2.4


# --- Runtime Configuration ---
# When True, the array kernels here and the pixel kernels in
# dichroma_simulation use fastmath=False variants that keep strict IEEE 754
# semantics (no FP reassociation).  Useful when bit-matching reference
# images produced by another implementation.
#
# Toggle at runtime via:
#     import dichroma_codec as codec
#     codec.set_strict_ieee(True)   # enable strict mode
#     codec.set_strict_ieee(False)  # back to fast mode (default)
_STRICT_IEEE: bool = False

def set_strict_ieee(enabled: bool = True) -> None:
    """
    Toggle between fast (default) and strict IEEE 754 Numba kernels.

    The setting is process-wide and read at every call, so it affects the
    codec wrappers below as well as every simulation entry point.

    Args:
        enabled: If True, use strict IEEE mode.
    """
    global _STRICT_IEEE
    _STRICT_IEEE = bool(enabled)

def is_strict_ieee() -> bool:
    """Returns True when the strict IEEE 754 kernels are active."""
    return _STRICT_IEEE


# =============================================================================
# 1. SCALAR KERNELS (inlined into the pixel loops)
# =============================================================================

@njit(cache=True, inline='always')
def linear_from_srgb_byte(v):
    """
    sRGB EOTF for a single 8-bit channel value.

    Returns the linear-light value in [0, 1].
    """
    fv = v / 255.0
    if fv < SRGB_DECODE_THRESHOLD:
        return fv / SRGB_LINEAR_SLOPE
    return ((fv + _SRGB_OFFSET) / _SRGB_SCALE) ** _SRGB_GAMMA

@njit(cache=True, inline='always')
def srgb_byte_from_linear(v):
    """
    sRGB OETF for a single linear-light value, quantized to 0..255.

    Out-of-gamut values are clamped before the transfer function is applied.
    """
    if v <= 0.0:
        return 0
    if v >= 1.0:
        return 255
    if v < SRGB_ENCODE_THRESHOLD:
        return int(v * SRGB_LINEAR_SLOPE * 255.0 + 0.5)
    return int(255.0 * (v ** _INV_SRGB_GAMMA * _SRGB_SCALE - _SRGB_OFFSET) + 0.5)


# =============================================================================
# 2. ARRAY KERNELS (Numba Optimized)
# =============================================================================
# Inputs are flat, contiguous 1D arrays; the public wrappers take care of
# reshaping.  Explicit loops avoid the boolean masks np.where would allocate.

@njit(cache=True, fastmath=True)
def _fast_decode_srgb(srgb: ArrayByte) -> ArrayFloat:
    """Array sRGB bytes -> linear floats."""
    out = np.empty(srgb.size, dtype=np.float64)
    for i in range(srgb.size):
        out[i] = linear_from_srgb_byte(srgb[i])
    return out

@njit(cache=True, fastmath=True)
def _fast_encode_srgb(linear: ArrayFloat) -> ArrayByte:
    """Array linear floats -> sRGB bytes."""
    out = np.empty(linear.size, dtype=np.uint8)
    for i in range(linear.size):
        out[i] = srgb_byte_from_linear(linear[i])
    return out


# --- Strict IEEE 754 kernel variants (fastmath=False) ---

@njit(cache=True, fastmath=False)
def _fast_decode_srgb_strict(srgb: ArrayByte) -> ArrayFloat:
    """sRGB decode, strict IEEE 754 variant."""
    out = np.empty(srgb.size, dtype=np.float64)
    for i in range(srgb.size):
        out[i] = linear_from_srgb_byte(srgb[i])
    return out

@njit(cache=True, fastmath=False)
def _fast_encode_srgb_strict(linear: ArrayFloat) -> ArrayByte:
    """sRGB encode, strict IEEE 754 variant."""
    out = np.empty(linear.size, dtype=np.uint8)
    for i in range(linear.size):
        out[i] = srgb_byte_from_linear(linear[i])
    return out


# --- Kernel dispatchers ---

def _decode_srgb(srgb: ArrayByte) -> ArrayFloat:
    """Dispatch sRGB decode to fast or strict kernel."""
    if _STRICT_IEEE:
        return _fast_decode_srgb_strict(srgb)
    return _fast_decode_srgb(srgb)

def _encode_srgb(linear: ArrayFloat) -> ArrayByte:
    """Dispatch sRGB encode to fast or strict kernel."""
    if _STRICT_IEEE:
        return _fast_encode_srgb_strict(linear)
    return _fast_encode_srgb(linear)


# =============================================================================
# 3. PUBLIC API
# =============================================================================

def to_linear(value: Union[int, np.ndarray]) -> Union[float, ArrayFloat]:
    """
    Decodes 8-bit sRGB channel values to linear light.

    Args:
        value: An integer in 0..255 or an integer array of any shape.

    Returns:
        A float for scalar input, otherwise a float64 array of the same shape.

    Raises:
        TypeError: If the input is not integer-typed.
        ValueError: If any value lies outside 0..255.
    """
    arr = np.asarray(value)
    if arr.dtype.kind not in "iu":
        raise TypeError(f"Expected integer sRGB values, got dtype {arr.dtype}")
    if arr.size and (arr.min() < 0 or arr.max() > 255):
        raise ValueError("sRGB channel values must lie in 0..255")

    flat = np.ascontiguousarray(arr, dtype=np.uint8).ravel()
    res = _decode_srgb(flat).reshape(arr.shape)
    if arr.ndim == 0:
        return float(res[()])
    return res

def to_srgb(value: Union[float, np.ndarray]) -> Union[int, ArrayByte]:
    """
    Encodes linear-light values to 8-bit sRGB.

    Values at or below 0 map to 0 and values at or above 1 map to 255;
    everything in between is rounded half-up.  NaN maps to 0; infinities clamp like any
    other out-of-range value.

    Args:
        value: A float or a float array of any shape.

    Returns:
        An int for scalar input, otherwise a uint8 array of the same shape.
    """
    arr = np.asarray(value, dtype=np.float64)
    # The fastmath kernels assume finite input.
    arr = np.nan_to_num(arr, nan=0.0, posinf=1.0, neginf=0.0)
    flat = np.ascontiguousarray(arr).ravel()
    res = _encode_srgb(flat).reshape(arr.shape)
    if arr.ndim == 0:
        return int(res[()])
    return res


# =============================================================================
# Validation Block
# =============================================================================
if __name__ == "__main__":
    import time

    print("--- Dichroma sRGB Codec Validation ---")

    # 1. Byte round-trip must be exact for all 256 values.
    print("1. Testing byte round-trip (sRGB -> linear -> sRGB)...")
    codes = np.arange(256)
    back = to_srgb(to_linear(codes))
    mismatches = int(np.count_nonzero(back != codes))
    print(f"   Mismatches: {mismatches} {'[PASS]' if mismatches == 0 else '[FAIL]'}")

    # 2. Clamping at both ends.
    print("2. Testing clamping...")
    print(f"   to_srgb(-0.5) = {to_srgb(-0.5)}, to_srgb(1.5) = {to_srgb(1.5)}")

    # 3. Strict vs fast.
    print("3. Testing strict IEEE mode...")
    lin_fast = to_linear(codes)
    set_strict_ieee(True)
    lin_strict = to_linear(codes)
    set_strict_ieee(False)
    print(f"   Max diff (fast vs strict): {np.max(np.abs(lin_fast - lin_strict)):.2e}")

    # 4. Throughput.
    print("4. Benchmarking encode (10M values)...")
    values = np.random.rand(10_000_000)
    t0 = time.perf_counter()
    _ = to_srgb(values)
    t1 = time.perf_counter()
    print(f"   Encoded {values.size:,} values in {(t1 - t0) * 1000:.2f} ms")
