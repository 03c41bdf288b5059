from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

RGB = tuple[int, int, int]
LAB = tuple[float, float, float]

STITCHES_PER_SKEIN = 400.0
BASE_FABRIC_COUNT = 14


@dataclass(frozen=True)
class ReferenceColor:
    code: str
    name: str
    rgb: RGB
    lab: LAB

    @property
    def hex(self) -> str:
        return f"#{self.rgb[0]:02X}{self.rgb[1]:02X}{self.rgb[2]:02X}"

    def skeins_needed(self, stitch_count: int, fabric_count: int = BASE_FABRIC_COUNT) -> float:
        """Estimated skeins for ``stitch_count`` full stitches.

        Based on roughly 400 stitches per skein on 14-count fabric with two
        strands, scaled linearly with the fabric count.
        """
        per_skein = STITCHES_PER_SKEIN * (fabric_count / BASE_FABRIC_COUNT)
        return stitch_count / per_skein

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "hex": self.hex,
            "rgb": list(self.rgb),
            "lab": [float(v) for v in self.lab],
        }


class StitchType(str, Enum):
    FULL = "full"
    HALF = "half"
    QUARTER_TL = "quarter_tl"
    QUARTER_TR = "quarter_tr"
    QUARTER_BL = "quarter_bl"
    QUARTER_BR = "quarter_br"
    THREE_QUARTER = "three_quarter"
    BACKSTITCH = "backstitch"
    FRENCH_KNOT = "french_knot"

    @property
    def display_name(self) -> str:
        return _STITCH_TYPE_NAMES[self]


_STITCH_TYPE_NAMES = {
    StitchType.FULL: "Full Stitch",
    StitchType.HALF: "Half Stitch",
    StitchType.QUARTER_TL: "Quarter (Top-Left)",
    StitchType.QUARTER_TR: "Quarter (Top-Right)",
    StitchType.QUARTER_BL: "Quarter (Bottom-Left)",
    StitchType.QUARTER_BR: "Quarter (Bottom-Right)",
    StitchType.THREE_QUARTER: "Three-Quarter",
    StitchType.BACKSTITCH: "Backstitch",
    StitchType.FRENCH_KNOT: "French Knot",
}


@dataclass(frozen=True)
class Stitch:
    thread: ReferenceColor
    stitch_type: StitchType = StitchType.FULL
    is_completed: bool = False


@dataclass(frozen=True)
class PaletteEntry:
    thread: ReferenceColor
    symbol: str
    stitch_count: int

    def percentage(self, total: int) -> float:
        if total <= 0:
            return 0.0
        return self.stitch_count / total * 100.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.thread.code,
            "name": self.thread.name,
            "hex": self.thread.hex,
            "symbol": self.symbol,
            "stitch_count": int(self.stitch_count),
        }


@dataclass(frozen=True)
class PatternMetadata:
    name: str = "Untitled Pattern"
    author: str = ""
    notes: str = ""
    source_image_name: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "author": self.author,
            "notes": self.notes,
            "source_image_name": self.source_image_name,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class Pattern:
    width: int
    height: int
    stitches: list[list[Stitch | None]]
    palette: list[PaletteEntry]
    metadata: PatternMetadata = field(default_factory=PatternMetadata)

    @classmethod
    def empty(cls, width: int, height: int) -> Pattern:
        return cls(
            width=width,
            height=height,
            stitches=[[None] * width for _ in range(height)],
            palette=[],
        )

    @property
    def total_stitch_count(self) -> int:
        return sum(1 for row in self.stitches for stitch in row if stitch is not None)

    @property
    def completed_stitch_count(self) -> int:
        return sum(
            1
            for row in self.stitches
            for stitch in row
            if stitch is not None and stitch.is_completed
        )

    @property
    def progress_percentage(self) -> float:
        total = self.total_stitch_count
        if total == 0:
            return 0.0
        return self.completed_stitch_count / total * 100.0

    @property
    def color_count(self) -> int:
        return len(self.palette)

    def stitch_at(self, x: int, y: int) -> Stitch | None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            return None
        return self.stitches[y][x]

    def positions_for(self, code: str) -> list[tuple[int, int]]:
        return [
            (x, y)
            for y, row in enumerate(self.stitches)
            for x, stitch in enumerate(row)
            if stitch is not None and stitch.thread.code == code
        ]

    def finished_size(self, fabric_count: int) -> tuple[float, float]:
        """Finished (width, height) in inches on ``fabric_count`` fabric."""
        return self.width / fabric_count, self.height / fabric_count

    def to_dict(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "total_stitches": self.total_stitch_count,
            "palette": [entry.to_dict() for entry in self.palette],
            "grid": [
                [None if stitch is None else stitch.thread.code for stitch in row]
                for row in self.stitches
            ],
            "metadata": self.metadata.to_dict(),
        }


class MatchingMethod(str, Enum):
    CIELAB = "cielab"
    CIE94 = "cie94"
    RGB = "rgb"

    @property
    def display_name(self) -> str:
        return {
            MatchingMethod.CIELAB: "CIELab (Recommended)",
            MatchingMethod.CIE94: "CIE94 (Most Accurate)",
            MatchingMethod.RGB: "RGB (Fast)",
        }[self]

    @property
    def description(self) -> str:
        return {
            MatchingMethod.CIELAB: "Good balance of accuracy and speed. Best for most patterns.",
            MatchingMethod.CIE94: "Most perceptually accurate. Best for portraits and skin tones.",
            MatchingMethod.RGB: "Simple and fast, but less accurate color matching.",
        }[self]


@dataclass(frozen=True)
class GenerationSettings:
    target_width: int = 200
    target_height: int = 250
    maintain_aspect_ratio: bool = True
    max_colors: int = 40
    method: MatchingMethod = MatchingMethod.CIELAB

    DEFAULT: ClassVar[GenerationSettings]
    PORTRAIT: ClassVar[GenerationSettings]
    SMALL: ClassVar[GenerationSettings]

    @classmethod
    def preset(cls, name: str) -> GenerationSettings:
        presets = {"default": cls.DEFAULT, "portrait": cls.PORTRAIT, "small": cls.SMALL}
        try:
            return presets[name.strip().lower()]
        except KeyError:
            raise ValueError(
                f"unknown preset '{name}'. Use one of: {', '.join(presets)}"
            ) from None


GenerationSettings.DEFAULT = GenerationSettings()
GenerationSettings.PORTRAIT = GenerationSettings(
    target_width=250,
    target_height=350,
    max_colors=45,
    method=MatchingMethod.CIE94,
)
GenerationSettings.SMALL = GenerationSettings(
    target_width=100,
    target_height=125,
    max_colors=25,
)
