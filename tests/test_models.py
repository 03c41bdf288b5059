from __future__ import annotations

import pytest

from stitch_pipeline.models import (
    GenerationSettings,
    MatchingMethod,
    PaletteEntry,
    Pattern,
    PatternMetadata,
    ReferenceColor,
    Stitch,
    StitchType,
)

BLACK = ReferenceColor(code="310", name="Black", rgb=(0, 0, 0), lab=(0.0, 0.0, 0.0))
RED = ReferenceColor(code="666", name="Bright Red", rgb=(227, 29, 66), lab=(49.0, 72.0, 33.0))


def _small_pattern() -> Pattern:
    stitches = [
        [Stitch(BLACK), Stitch(RED, is_completed=True), None],
        [Stitch(RED), None, Stitch(BLACK, is_completed=True)],
    ]
    return Pattern(
        width=3,
        height=2,
        stitches=stitches,
        palette=[
            PaletteEntry(thread=BLACK, symbol="●", stitch_count=2),
            PaletteEntry(thread=RED, symbol="■", stitch_count=2),
        ],
        metadata=PatternMetadata(name="Sampler"),
    )


def test_reference_color_hex_and_skeins():
    assert RED.hex == "#E31D42"
    assert BLACK.skeins_needed(400) == pytest.approx(1.0)
    assert BLACK.skeins_needed(400, fabric_count=28) == pytest.approx(0.5)


def test_stitch_defaults_to_full_and_incomplete():
    stitch = Stitch(BLACK)

    assert stitch.stitch_type is StitchType.FULL
    assert stitch.stitch_type.display_name == "Full Stitch"
    assert not stitch.is_completed


def test_pattern_counts_and_progress():
    pattern = _small_pattern()

    assert pattern.total_stitch_count == 4
    assert pattern.completed_stitch_count == 2
    assert pattern.progress_percentage == pytest.approx(50.0)
    assert pattern.color_count == 2


def test_pattern_lookup_helpers():
    pattern = _small_pattern()

    assert pattern.stitch_at(1, 0).thread.code == "666"
    assert pattern.stitch_at(2, 0) is None
    assert pattern.stitch_at(3, 0) is None
    assert pattern.stitch_at(-1, 1) is None
    assert pattern.positions_for("310") == [(0, 0), (2, 1)]
    assert pattern.finished_size(14) == pytest.approx((3 / 14, 2 / 14))


def test_empty_pattern_has_no_stitches():
    pattern = Pattern.empty(4, 3)

    assert len(pattern.stitches) == 3
    assert all(len(row) == 4 for row in pattern.stitches)
    assert pattern.total_stitch_count == 0
    assert pattern.progress_percentage == 0.0


def test_palette_entry_percentage():
    entry = PaletteEntry(thread=BLACK, symbol="●", stitch_count=25)

    assert entry.percentage(100) == pytest.approx(25.0)
    assert entry.percentage(0) == 0.0


def test_pattern_to_dict_exposes_grid_codes():
    payload = _small_pattern().to_dict()

    assert payload["width"] == 3
    assert payload["total_stitches"] == 4
    assert payload["grid"] == [["310", "666", None], ["666", None, "310"]]
    assert payload["palette"][0] == {
        "code": "310",
        "name": "Black",
        "hex": "#000000",
        "symbol": "●",
        "stitch_count": 2,
    }
    assert payload["metadata"]["name"] == "Sampler"


def test_generation_presets():
    assert GenerationSettings.preset("default") == GenerationSettings()
    assert GenerationSettings.preset("Portrait").method is MatchingMethod.CIE94
    assert GenerationSettings.SMALL.max_colors == 25

    with pytest.raises(ValueError):
        GenerationSettings.preset("poster")


def test_matching_method_labels():
    assert MatchingMethod("cie94") is MatchingMethod.CIE94
    assert MatchingMethod.CIELAB.display_name == "CIELab (Recommended)"
    assert "fast" in MatchingMethod.RGB.description
