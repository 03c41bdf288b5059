from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Callable, Sequence

import numpy as np
from PIL import Image

from .errors import (
    EmptyResultError,
    GenerationCancelledError,
    GenerationPhase,
    InvalidSettingsError,
    PatternGenerationError,
)
from .io import read_image_rgb, resize_image, to_rgb_array
from .matching import PaletteMatcher
from .models import (
    GenerationSettings,
    MatchingMethod,
    PaletteEntry,
    Pattern,
    PatternMetadata,
    ReferenceColor,
    Stitch,
)
from .palette import ReferencePalette, default_palette
from .quantize import quantize

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]
CancelCheck = Callable[[], bool]
Resizer = Callable[[np.ndarray, int, int], np.ndarray]

# Ordered by visual distinctiveness; letters cover high color counts.
PATTERN_SYMBOLS: tuple[str, ...] = (
    "●", "■", "▲", "◆", "★", "♦", "♥", "♣", "♠", "○",
    "□", "△", "◇", "☆", "◐", "◑", "◒", "◓", "▪", "▫",
    "×", "+", "⊕", "⊗", "⊙", "⊚", "◉", "◎", "▣", "▤",
    "▥", "▦", "▧", "▨", "▩", "⬟", "A", "B", "C", "D",
    "E", "F", "G", "H", "I", "J", "K", "L", "M", "N",
    "O", "P", "Q", "R", "S", "T",
)


def compute_target_dimensions(
    source_size: tuple[int, int],
    target_width: int,
    target_height: int,
    maintain_aspect_ratio: bool,
) -> tuple[int, int]:
    """Final (width, height) in stitches for a ``source_size`` image.

    With the aspect ratio locked the result fits inside the requested box,
    filling the requested width when that fits and the height otherwise.
    """
    if not maintain_aspect_ratio:
        return target_width, target_height

    source_width, source_height = source_size
    if source_width <= 0 or source_height <= 0:
        return target_width, target_height

    height_from_width = int(target_width * source_height / source_width)
    if height_from_width <= target_height:
        return target_width, height_from_width

    width_from_height = int(target_height * source_width / source_height)
    return width_from_height, target_height


def build_palette_entries(
    stitches: Sequence[Sequence[Stitch | None]],
    palette: Sequence[ReferenceColor],
    symbols: Sequence[str] = PATTERN_SYMBOLS,
) -> list[PaletteEntry]:
    """Count stitches per thread and hand out symbols, most used first.

    Threads that ended up with no stitches are left out.
    """
    counts = Counter(
        stitch.thread.code for row in stitches for stitch in row if stitch is not None
    )
    ordered = sorted(
        _unique_by_code(palette),
        key=lambda thread: counts.get(thread.code, 0),
        reverse=True,
    )

    entries: list[PaletteEntry] = []
    for thread in ordered:
        count = counts.get(thread.code, 0)
        if count <= 0:
            continue
        symbol = symbols[len(entries) % len(symbols)]
        entries.append(PaletteEntry(thread=thread, symbol=symbol, stitch_count=count))
    return entries


class _PhaseTracker:
    def __init__(
        self, progress: ProgressCallback | None, should_cancel: CancelCheck | None
    ) -> None:
        self.progress = progress
        self.should_cancel = should_cancel

    def enter(self, phase: GenerationPhase, fraction: float, message: str) -> None:
        if self.should_cancel is not None and self.should_cancel():
            raise GenerationCancelledError(phase, "Pattern generation was cancelled")
        LOGGER.debug("phase %s: %s", phase.value, message)
        self.report(fraction, message)

    def report(self, fraction: float, message: str) -> None:
        if self.progress is not None:
            self.progress(fraction, message)


class PatternGenerationPipeline:
    def __init__(
        self,
        palette: ReferencePalette | None = None,
        resizer: Resizer = resize_image,
    ) -> None:
        self.palette = palette if palette is not None else default_palette()
        self.matcher = PaletteMatcher(self.palette)
        self.resizer = resizer

    def run(
        self,
        image_path: str | Path,
        settings: GenerationSettings = GenerationSettings.DEFAULT,
        progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
    ) -> Pattern:
        image_rgb = read_image_rgb(image_path)
        source_name = Path(str(image_path)).name
        metadata = PatternMetadata(
            name=Path(source_name).stem or "New Pattern",
            source_image_name=source_name,
        )
        return self.generate(
            image_rgb,
            settings=settings,
            progress=progress,
            should_cancel=should_cancel,
            metadata=metadata,
        )

    def generate(
        self,
        image: Image.Image | np.ndarray,
        settings: GenerationSettings = GenerationSettings.DEFAULT,
        progress: ProgressCallback | None = None,
        should_cancel: CancelCheck | None = None,
        metadata: PatternMetadata | None = None,
    ) -> Pattern:
        tracker = _PhaseTracker(progress, should_cancel)

        tracker.enter(GenerationPhase.DIMENSIONS, 0.05, "Calculating dimensions...")
        try:
            method = MatchingMethod(settings.method)
        except ValueError:
            raise InvalidSettingsError(
                GenerationPhase.DIMENSIONS,
                f"unknown matching method {settings.method!r}",
            ) from None
        if settings.max_colors <= 0:
            raise InvalidSettingsError(
                GenerationPhase.DIMENSIONS,
                f"max_colors must be positive, got {settings.max_colors}",
            )
        image_rgb = _extract_rgb(image)
        source_height, source_width = image_rgb.shape[:2]
        width, height = compute_target_dimensions(
            (source_width, source_height),
            settings.target_width,
            settings.target_height,
            settings.maintain_aspect_ratio,
        )
        if width <= 0 or height <= 0:
            raise InvalidSettingsError(
                GenerationPhase.DIMENSIONS,
                f"invalid pattern dimensions {width}x{height}",
            )

        tracker.enter(GenerationPhase.RESIZE, 0.1, "Resizing image...")
        if image_rgb.size == 0:
            raise EmptyResultError(GenerationPhase.RESIZE, "source image has no pixels")
        try:
            resized = self.resizer(image_rgb, width, height)
        except (ValueError, OSError) as exc:
            raise PatternGenerationError(
                GenerationPhase.RESIZE, f"failed to resize image: {exc}"
            ) from exc
        if resized.shape[:2] != (height, width):
            raise PatternGenerationError(
                GenerationPhase.RESIZE,
                f"resizer returned {resized.shape[1]}x{resized.shape[0]}, "
                f"expected {width}x{height}",
            )

        tracker.enter(GenerationPhase.EXTRACT, 0.2, "Extracting colors...")
        pixels = _extract_rgb(resized)
        flat_pixels = pixels.reshape(-1, 3)
        if flat_pixels.shape[0] == 0:
            raise EmptyResultError(
                GenerationPhase.EXTRACT, "failed to extract pixel data from image"
            )

        tracker.enter(GenerationPhase.QUANTIZE, 0.3, "Reducing colors...")
        representatives = quantize(flat_pixels, settings.max_colors)
        if not representatives:
            raise EmptyResultError(
                GenerationPhase.QUANTIZE, "no colors could be extracted from the image"
            )
        LOGGER.debug("quantized to %d representative colors", len(representatives))

        tracker.enter(GenerationPhase.MATCH, 0.5, "Matching to reference threads...")
        working_palette = _unique_by_code(
            self.matcher.match_palette_unique(representatives, method)
        )
        if not working_palette:
            raise EmptyResultError(
                GenerationPhase.MATCH, "no reference threads matched the image colors"
            )

        tracker.enter(GenerationPhase.MAP, 0.6, "Creating pattern...")
        stitches = map_pixels_to_stitches(pixels, working_palette, method)

        tracker.enter(GenerationPhase.AGGREGATE, 0.9, "Finalizing...")
        entries = build_palette_entries(stitches, working_palette)
        tracker.report(1.0, "Complete!")

        LOGGER.info(
            "Generated %dx%d pattern with %d colors", width, height, len(entries)
        )
        return Pattern(
            width=width,
            height=height,
            stitches=stitches,
            palette=entries,
            metadata=metadata or PatternMetadata(name="New Pattern"),
        )


def map_pixels_to_stitches(
    pixels: np.ndarray,
    working_palette: Sequence[ReferenceColor],
    method: MatchingMethod = MatchingMethod.CIELAB,
) -> list[list[Stitch | None]]:
    """Assign every pixel of an ``(H, W, 3)`` image its closest working thread."""
    if not working_palette:
        raise EmptyResultError(GenerationPhase.MAP, "working palette is empty")

    nearest = PaletteMatcher(working_palette).nearest_indices(pixels, method)
    stitch_by_index = [Stitch(thread=thread) for thread in working_palette]
    return [[stitch_by_index[index] for index in row] for row in nearest.tolist()]


def _unique_by_code(threads: Sequence[ReferenceColor]) -> list[ReferenceColor]:
    seen: set[str] = set()
    unique: list[ReferenceColor] = []
    for thread in threads:
        if thread.code not in seen:
            seen.add(thread.code)
            unique.append(thread)
    return unique


def _extract_rgb(image: Image.Image | np.ndarray) -> np.ndarray:
    try:
        return to_rgb_array(image)
    except ValueError as exc:
        raise PatternGenerationError(
            GenerationPhase.EXTRACT, f"unsupported image data: {exc}"
        ) from exc
