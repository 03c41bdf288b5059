from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np

from .colorspace import delta_e_76, delta_e_94, rgb_distance, rgb_to_lab_array
from .models import RGB, MatchingMethod, ReferenceColor
from .palette import ReferencePalette, default_palette


def color_distances(
    rgb: np.ndarray,
    lab: np.ndarray | None,
    reference_rgb: np.ndarray,
    reference_lab: np.ndarray,
    method: MatchingMethod,
) -> np.ndarray:
    """Distances from query colors to reference colors under ``method``.

    Shapes broadcast over the leading axes; the trailing axis holds the
    channels. ``lab`` may be None for the RGB metric.
    """
    if method is MatchingMethod.RGB:
        return np.asarray(rgb_distance(rgb, reference_rgb))
    if lab is None:
        raise ValueError(f"{method.value} matching needs Lab values")
    if method is MatchingMethod.CIE94:
        return np.asarray(delta_e_94(lab, reference_lab, textiles=True))
    return np.asarray(delta_e_76(lab, reference_lab))


class PaletteMatcher:
    """Nearest-color lookups against a fixed reference palette.

    Every scan walks the palette in its stored order and keeps the first
    minimal entry it sees.
    """

    def __init__(self, palette: ReferencePalette | Iterable[ReferenceColor] | None = None) -> None:
        if palette is None:
            palette = default_palette()
        elif not isinstance(palette, ReferencePalette):
            palette = ReferencePalette(palette)
        self.palette = palette

    def closest_match(
        self, color: RGB, method: MatchingMethod | str = MatchingMethod.CIELAB
    ) -> ReferenceColor:
        method = MatchingMethod(method)
        distances = self._distances(np.asarray(color, dtype=np.float64).reshape(1, 3), method)
        return self.palette.colors[int(np.argmin(distances[0]))]

    def color_distance(
        self,
        color: RGB,
        thread: ReferenceColor,
        method: MatchingMethod | str = MatchingMethod.CIELAB,
    ) -> float:
        method = MatchingMethod(method)
        rgb = np.asarray(color, dtype=np.float64)
        lab = None if method is MatchingMethod.RGB else rgb_to_lab_array(rgb)
        distance = color_distances(
            rgb,
            lab,
            np.asarray(thread.rgb, dtype=np.float64),
            np.asarray(thread.lab, dtype=np.float64),
            method,
        )
        return float(distance)

    def match_palette(
        self,
        colors: Sequence[RGB],
        method: MatchingMethod | str = MatchingMethod.CIELAB,
        prefer_unique: bool = True,
    ) -> list[ReferenceColor]:
        if prefer_unique:
            return self.match_palette_unique(colors, method)
        return self.match_palette_allow_duplicates(colors, method)

    def match_palette_allow_duplicates(
        self, colors: Sequence[RGB], method: MatchingMethod | str = MatchingMethod.CIELAB
    ) -> list[ReferenceColor]:
        method = MatchingMethod(method)
        return [self.closest_match(color, method) for color in colors]

    def match_palette_unique(
        self, colors: Sequence[RGB], method: MatchingMethod | str = MatchingMethod.CIELAB
    ) -> list[ReferenceColor]:
        """Match each color to a reference color, avoiding repeats.

        The most isolated inputs (largest CIE76 distance to their nearest
        fellow input) claim their best match first. Once every reference
        color is taken, matches fall back to the unconstrained closest one.
        Results follow the input order.
        """
        method = MatchingMethod(method)
        if len(colors) == 0:
            return []

        rgb = np.asarray(colors, dtype=np.float64).reshape(-1, 3)
        lab = rgb_to_lab_array(rgb)
        distances = color_distances(
            rgb[:, None, :],
            lab[:, None, :],
            self.palette.rgb_array[None, :, :],
            self.palette.lab_array[None, :, :],
            method,
        )

        claimed = np.zeros(len(self.palette), dtype=bool)
        matches: list[ReferenceColor | None] = [None] * rgb.shape[0]

        for index in _distinctiveness_order(lab):
            row = distances[index]
            if claimed.all():
                best = int(np.argmin(row))
            else:
                best = int(np.argmin(np.where(claimed, np.inf, row)))
            claimed[best] = True
            matches[index] = self.palette.colors[best]

        return [match for match in matches if match is not None]

    def nearest_indices(
        self,
        pixels: np.ndarray,
        method: MatchingMethod | str = MatchingMethod.CIELAB,
    ) -> np.ndarray:
        """Index of the closest palette color for every ``(..., 3)`` pixel.

        Distinct colors are matched once and the result is scattered back,
        which gives the same answer as matching pixel by pixel.
        """
        method = MatchingMethod(method)
        pixels = np.asarray(pixels)
        shape = pixels.shape[:-1]
        flat = pixels.reshape(-1, 3)
        if flat.shape[0] == 0:
            return np.zeros(shape, dtype=np.intp)

        unique, inverse = np.unique(flat, axis=0, return_inverse=True)
        distances = self._distances(unique.astype(np.float64), method)
        nearest = np.argmin(distances, axis=1)
        return nearest[inverse.reshape(-1)].reshape(shape)

    def _distances(self, rgb: np.ndarray, method: MatchingMethod) -> np.ndarray:
        lab = None if method is MatchingMethod.RGB else rgb_to_lab_array(rgb)
        return color_distances(
            rgb[:, None, :],
            None if lab is None else lab[:, None, :],
            self.palette.rgb_array[None, :, :],
            self.palette.lab_array[None, :, :],
            method,
        )


def _distinctiveness_order(lab: np.ndarray) -> np.ndarray:
    count = lab.shape[0]
    if count == 1:
        return np.zeros(1, dtype=np.intp)

    pairwise = np.asarray(delta_e_76(lab[:, None, :], lab[None, :, :]))
    np.fill_diagonal(pairwise, np.inf)
    scores = pairwise.min(axis=1)
    # stable, so equally distinctive colors keep their input order
    return np.argsort(-scores, kind="stable")
