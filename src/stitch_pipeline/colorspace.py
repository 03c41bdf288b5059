"""sRGB to CIELab conversion and perceptual color distances.

Every function accepts either a single triple or an array whose last axis
holds the three channels, so the same code serves one-off lookups and the
per-pixel mapping pass. Conversions assume sRGB with a D65 white point.
"""

from __future__ import annotations

import re
from typing import Sequence

import numpy as np
from skimage.color import deltaE_cie76

from .models import LAB, RGB

_HEX_PATTERN = re.compile(r"^#?[0-9A-Fa-f]{6}$")

# sRGB -> XYZ, D65
_RGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ],
    dtype=np.float64,
)
_WHITE_D65 = np.array([95.047, 100.000, 108.883], dtype=np.float64)

_EPSILON = 0.008856
_KAPPA = 903.3


def rgb_to_lab_array(rgb: np.ndarray | Sequence[Sequence[int]]) -> np.ndarray:
    """Convert an ``(..., 3)`` array of 8-bit RGB values to CIELab."""
    rgb_norm = np.asarray(rgb, dtype=np.float64) / 255.0
    if rgb_norm.shape[-1:] != (3,):
        raise ValueError("rgb values must have a trailing axis of length 3")

    linear = np.where(
        rgb_norm <= 0.04045,
        rgb_norm / 12.92,
        ((rgb_norm + 0.055) / 1.055) ** 2.4,
    )
    xyz = (linear * 100.0) @ _RGB_TO_XYZ.T
    ratio = xyz / _WHITE_D65

    f = np.where(ratio > _EPSILON, np.cbrt(ratio), (_KAPPA * ratio + 16.0) / 116.0)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]

    return np.stack(
        [116.0 * fy - 16.0, 500.0 * (fx - fy), 200.0 * (fy - fz)], axis=-1
    )


def rgb_to_lab(rgb: RGB) -> LAB:
    lab = rgb_to_lab_array(np.asarray(rgb).reshape(1, 3)).reshape(3)
    return float(lab[0]), float(lab[1]), float(lab[2])


def delta_e_76(lab1, lab2) -> float | np.ndarray:
    """CIE76 difference: Euclidean distance in Lab. Arrays broadcast."""
    distance = deltaE_cie76(
        np.asarray(lab1, dtype=np.float64), np.asarray(lab2, dtype=np.float64)
    )
    return _scalar_or_array(distance)


def delta_e_94(lab1, lab2, textiles: bool = True) -> float | np.ndarray:
    """CIE94 difference of ``lab2`` from the reference ``lab1``.

    Chroma weighting is taken from the first argument, so the metric is only
    symmetric when both colors share the same chroma.
    """
    lab1 = np.asarray(lab1, dtype=np.float64)
    lab2 = np.asarray(lab2, dtype=np.float64)

    if textiles:
        k_l, k_1, k_2 = 2.0, 0.048, 0.014
    else:
        k_l, k_1, k_2 = 1.0, 0.045, 0.015

    l1, a1, b1 = lab1[..., 0], lab1[..., 1], lab1[..., 2]
    l2, a2, b2 = lab2[..., 0], lab2[..., 1], lab2[..., 2]

    c1 = np.sqrt(a1 * a1 + b1 * b1)
    c2 = np.sqrt(a2 * a2 + b2 * b2)

    d_l = l1 - l2
    d_c = c1 - c2
    d_a = a1 - a2
    d_b = b1 - b2
    d_h = np.sqrt(np.maximum(0.0, d_a * d_a + d_b * d_b - d_c * d_c))

    s_l = 1.0
    s_c = 1.0 + k_1 * c1
    s_h = 1.0 + k_2 * c1

    distance = np.sqrt(
        (d_l / (k_l * s_l)) ** 2 + (d_c / s_c) ** 2 + (d_h / s_h) ** 2
    )
    return _scalar_or_array(distance)


def rgb_distance(rgb1, rgb2) -> float | np.ndarray:
    """Plain Euclidean distance between raw 8-bit RGB values."""
    diff = np.asarray(rgb1, dtype=np.float64) - np.asarray(rgb2, dtype=np.float64)
    return _scalar_or_array(np.sqrt(np.sum(diff * diff, axis=-1)))


def hex_to_rgb(value: str) -> RGB:
    text = value.strip()
    if not _HEX_PATTERN.match(text):
        raise ValueError(f"invalid hex color '{value}'")

    normalized = text[1:] if text.startswith("#") else text
    return (
        int(normalized[0:2], 16),
        int(normalized[2:4], 16),
        int(normalized[4:6], 16),
    )


def rgb_to_hex(rgb: RGB) -> str:
    return f"#{rgb[0]:02X}{rgb[1]:02X}{rgb[2]:02X}"


def _scalar_or_array(values: np.ndarray) -> float | np.ndarray:
    values = np.asarray(values)
    if values.ndim == 0:
        return float(values)
    return values
