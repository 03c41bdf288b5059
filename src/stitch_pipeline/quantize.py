from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .models import RGB


@dataclass(frozen=True)
class ColorBucket:
    """Distinct colors (``(n, 3)``) and how many pixels carry each one."""

    colors: np.ndarray
    counts: np.ndarray

    @classmethod
    def empty(cls) -> ColorBucket:
        return cls(
            colors=np.empty((0, 3), dtype=np.int64),
            counts=np.empty(0, dtype=np.int64),
        )

    @property
    def is_empty(self) -> bool:
        return self.colors.shape[0] == 0

    @property
    def distinct_count(self) -> int:
        return int(self.colors.shape[0])

    @property
    def total_count(self) -> int:
        return int(self.counts.sum())

    def channel_with_greatest_range(self) -> int:
        if self.is_empty:
            return 0
        ranges = self.colors.max(axis=0) - self.colors.min(axis=0)
        # argmax keeps the first channel on ties: R, then G, then B
        return int(np.argmax(ranges))

    def average_color(self) -> RGB:
        total = self.total_count
        if total == 0:
            return 0, 0, 0
        weighted = (self.colors * self.counts[:, None]).sum(axis=0) / total
        rounded = np.clip(np.floor(weighted + 0.5), 0, 255).astype(int)
        return int(rounded[0]), int(rounded[1]), int(rounded[2])

    def split(self) -> tuple[ColorBucket, ColorBucket]:
        """Split at the pixel-weighted median of the widest channel."""
        if self.distinct_count <= 1:
            return self, ColorBucket.empty()

        channel = self.channel_with_greatest_range()
        order = np.argsort(self.colors[:, channel], kind="stable")
        colors = self.colors[order]
        counts = self.counts[order]

        running = np.cumsum(counts)
        half = self.total_count // 2
        split_index = int(np.argmax(running >= half)) + 1
        split_index = max(1, min(split_index, self.distinct_count - 1))

        return (
            ColorBucket(colors=colors[:split_index], counts=counts[:split_index]),
            ColorBucket(colors=colors[split_index:], counts=counts[split_index:]),
        )


def quantize(
    pixels: np.ndarray | Sequence[Sequence[int]], target_color_count: int
) -> list[RGB]:
    """Reduce ``pixels`` to at most ``target_color_count`` colors by median cut.

    Buckets are split until their number reaches the next power of two at or
    above the target, then the list of representatives is truncated to the
    target. Inputs that already have few enough distinct colors come back
    unchanged, in order of first appearance.
    """
    if target_color_count <= 0:
        return []

    flat = np.asarray(pixels)
    if flat.size == 0:
        return []
    flat = flat.reshape(-1, 3).astype(np.int64)

    colors, counts = count_distinct_colors(flat)
    if colors.shape[0] <= target_color_count:
        return [(int(r), int(g), int(b)) for r, g, b in colors]

    bucket_limit = 1 << (target_color_count - 1).bit_length()
    buckets = [ColorBucket(colors=colors, counts=counts)]

    while len(buckets) < bucket_limit:
        index = _bucket_to_split(buckets)
        if index is None:
            break
        lower, upper = buckets.pop(index).split()
        buckets.extend(bucket for bucket in (lower, upper) if not bucket.is_empty)

    representatives = [bucket.average_color() for bucket in buckets]
    return representatives[:target_color_count]


def count_distinct_colors(flat_pixels: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Collapse ``(n, 3)`` pixels into distinct colors with occurrence counts."""
    unique, first_index, counts = np.unique(
        flat_pixels, axis=0, return_index=True, return_counts=True
    )
    order = np.argsort(first_index, kind="stable")
    return unique[order].astype(np.int64), counts[order].astype(np.int64)


def _bucket_to_split(buckets: list[ColorBucket]) -> int | None:
    best_index: int | None = None
    best_total = -1
    for index, bucket in enumerate(buckets):
        if bucket.distinct_count <= 1:
            continue
        total = bucket.total_count
        # >= so that later buckets win ties
        if total >= best_total:
            best_index = index
            best_total = total
    return best_index
