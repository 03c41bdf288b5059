from __future__ import annotations

import csv
import json
import logging
from functools import cached_property, lru_cache
from pathlib import Path
from typing import Iterable, Iterator, Mapping

import numpy as np

from .colorspace import hex_to_rgb, rgb_to_lab_array
from .models import RGB, ReferenceColor

LOGGER = logging.getLogger(__name__)

DEFAULT_PALETTE_PATH = Path(__file__).resolve().parent / "data" / "dmc_colors.json"


class PaletteValidationError(ValueError):
    pass


class ReferencePalette:
    """Immutable, ordered collection of reference thread colors."""

    def __init__(self, colors: Iterable[ReferenceColor]) -> None:
        self._colors = tuple(colors)
        if not self._colors:
            raise PaletteValidationError("reference palette must contain at least one entry")

        by_code: dict[str, ReferenceColor] = {}
        for color in self._colors:
            if color.code in by_code:
                raise PaletteValidationError(f"duplicate reference code '{color.code}'")
            by_code[color.code] = color
        self._by_code = by_code

    @classmethod
    def from_records(
        cls, records: Iterable[Mapping[str, object]], source: str = "<records>"
    ) -> ReferencePalette:
        parsed = [
            _parse_record(record, f"{source}:{idx}")
            for idx, record in enumerate(records, start=1)
        ]
        if not parsed:
            raise PaletteValidationError(f"palette has no usable entries: {source}")

        labs = rgb_to_lab_array(np.asarray([rgb for _, _, rgb in parsed], dtype=np.uint8))
        return cls(
            ReferenceColor(
                code=code,
                name=name,
                rgb=rgb,
                lab=(float(lab[0]), float(lab[1]), float(lab[2])),
            )
            for (code, name, rgb), lab in zip(parsed, labs)
        )

    @property
    def colors(self) -> tuple[ReferenceColor, ...]:
        return self._colors

    @cached_property
    def rgb_array(self) -> np.ndarray:
        return np.asarray([color.rgb for color in self._colors], dtype=np.float64)

    @cached_property
    def lab_array(self) -> np.ndarray:
        return np.asarray([color.lab for color in self._colors], dtype=np.float64)

    def get(self, code: str) -> ReferenceColor | None:
        return self._by_code.get(code)

    def search(self, query: str) -> list[ReferenceColor]:
        needle = query.strip().lower()
        return [
            color
            for color in self._colors
            if needle in color.code.lower() or needle in color.name.lower()
        ]

    def __len__(self) -> int:
        return len(self._colors)

    def __iter__(self) -> Iterator[ReferenceColor]:
        return iter(self._colors)

    def __contains__(self, code: object) -> bool:
        return code in self._by_code

    def __repr__(self) -> str:
        return f"ReferencePalette({len(self._colors)} colors)"


def load_palette(
    palette_path: str | Path | None,
    fallback_palette_path: str | Path | None = None,
) -> tuple[ReferencePalette, str]:
    if palette_path is None:
        fallback = Path(fallback_palette_path or DEFAULT_PALETTE_PATH)
        if fallback.resolve() == DEFAULT_PALETTE_PATH.resolve():
            return default_palette(), "dmc_builtin"
        return _load_palette_file(fallback), "dmc_builtin"

    return _load_palette_file(palette_path), "user"


@lru_cache(maxsize=1)
def default_palette() -> ReferencePalette:
    return _load_palette_file(DEFAULT_PALETTE_PATH)


def _load_palette_file(path_like: str | Path) -> ReferencePalette:
    path = Path(path_like)
    if not path.exists():
        raise PaletteValidationError(f"palette file does not exist: {path}")

    if path.suffix.lower() == ".csv":
        records = _read_csv(path)
    elif path.suffix.lower() == ".json":
        records = _read_json(path)
    else:
        raise PaletteValidationError(
            f"unsupported palette format '{path.suffix}'. Use .csv or .json"
        )

    palette = ReferencePalette.from_records(records, source=str(path))
    LOGGER.info("Loaded %d reference colors from %s", len(palette), path)
    return palette


def _read_csv(path: Path) -> list[dict[str, object]]:
    with path.open("r", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        if not reader.fieldnames:
            raise PaletteValidationError(f"palette csv has no header: {path}")
        return [dict(row) for row in reader]


def _read_json(path: Path) -> list[dict[str, object]]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PaletteValidationError(f"palette json at {path} is not valid JSON") from exc

    if isinstance(payload, dict):
        records = payload.get("threads", payload.get("colors"))
        if not isinstance(records, list):
            raise PaletteValidationError(
                f"json palette at {path} must be a list or include a 'threads' list"
            )
    elif isinstance(payload, list):
        records = payload
    else:
        raise PaletteValidationError(
            f"json palette at {path} must be a list or object with 'threads'"
        )

    for idx, record in enumerate(records, start=1):
        if not isinstance(record, dict):
            raise PaletteValidationError(
                f"invalid palette entry at {path}:{idx} (expected object)"
            )
    return records


def _parse_record(raw_entry: Mapping[str, object], location: str) -> tuple[str, str, RGB]:
    normalized: dict[str, object] = {
        str(key).strip().lower(): value
        for key, value in raw_entry.items()
        if key is not None
    }

    code = _as_clean_str(normalized.get("id")) or _as_clean_str(normalized.get("code"))
    if not code:
        raise PaletteValidationError(f"{location}: missing required field 'id'")

    name = _as_clean_str(normalized.get("name"))
    if not name:
        raise PaletteValidationError(f"{location}: missing required field 'name'")

    hex_value = _as_clean_str(normalized.get("hex"))
    if hex_value:
        try:
            return code, name, hex_to_rgb(hex_value)
        except ValueError as exc:
            raise PaletteValidationError(f"{location}: {exc}") from exc

    channels = normalized.get("rgb", normalized)
    if not isinstance(channels, Mapping):
        raise PaletteValidationError(f"{location}: 'rgb' must be an object with r/g/b")

    return code, name, _parse_channels(channels, location)


def _parse_channels(channels: Mapping[str, object], location: str) -> RGB:
    values: list[int] = []
    for channel in ("r", "g", "b"):
        raw = channels.get(channel)
        if raw is None or raw == "":
            raise PaletteValidationError(
                f"{location}: provide either 'hex' or numeric 'r','g','b' values"
            )
        try:
            value = int(raw)
        except (TypeError, ValueError) as exc:
            raise PaletteValidationError(
                f"{location}: invalid '{channel}' value, expected an integer"
            ) from exc
        if not 0 <= value <= 255:
            raise PaletteValidationError(
                f"{location}: '{channel}' value {value} is outside 0-255"
            )
        values.append(value)
    return values[0], values[1], values[2]


def _as_clean_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None
