from __future__ import annotations

import json

import pytest

from stitch_pipeline.colorspace import rgb_to_lab
from stitch_pipeline.palette import (
    PaletteValidationError,
    ReferencePalette,
    default_palette,
    load_palette,
)


def test_load_palette_from_csv_hex(tmp_path):
    palette_file = tmp_path / "palette.csv"
    palette_file.write_text(
        "code,name,hex\n"
        "666,Bright Red,#E31D42\n"
        "797,Royal Blue,#13477D\n",
        encoding="utf-8",
    )

    palette, source = load_palette(palette_file)

    assert source == "user"
    assert len(palette) == 2
    assert palette.colors[0].name == "Bright Red"
    assert palette.colors[0].hex == "#E31D42"
    assert palette.colors[0].lab == pytest.approx(rgb_to_lab((227, 29, 66)))


def test_load_palette_from_csv_channels(tmp_path):
    palette_file = tmp_path / "palette.csv"
    palette_file.write_text("id,name,r,g,b\n310,Black,0,0,0\n", encoding="utf-8")

    palette, _ = load_palette(palette_file)

    assert palette.get("310").rgb == (0, 0, 0)


def test_load_palette_from_thread_database_json(tmp_path):
    palette_file = tmp_path / "threads.json"
    palette_file.write_text(
        json.dumps(
            {
                "version": "1.0",
                "threads": [
                    {"id": "BLANC", "name": "White", "rgb": {"r": 255, "g": 255, "b": 255}},
                    {"id": "310", "name": "Black", "rgb": {"r": 0, "g": 0, "b": 0}},
                ],
            }
        ),
        encoding="utf-8",
    )

    palette, _ = load_palette(palette_file)

    assert [color.code for color in palette] == ["BLANC", "310"]
    assert palette.get("BLANC").lab[0] == pytest.approx(100.0, abs=0.1)


def test_load_palette_from_json_list(tmp_path):
    palette_file = tmp_path / "threads.json"
    palette_file.write_text(
        json.dumps([{"code": "ECRU", "name": "Ecru", "hex": "F0EADA"}]),
        encoding="utf-8",
    )

    palette, _ = load_palette(palette_file)

    assert palette.get("ECRU").rgb == (240, 234, 218)


@pytest.mark.parametrize(
    "content",
    [
        "id,name\n310,Black\n",
        "id,name,hex\n310,Black,#12345\n",
        "id,name,r,g,b\n310,Black,0,0,300\n",
        "name,hex\nBlack,#000000\n",
        "id,name,hex\n",
    ],
)
def test_invalid_csv_palette_raises(tmp_path, content):
    palette_file = tmp_path / "bad.csv"
    palette_file.write_text(content, encoding="utf-8")

    with pytest.raises(PaletteValidationError):
        load_palette(palette_file)


def test_missing_or_unsupported_palette_raises(tmp_path):
    with pytest.raises(PaletteValidationError):
        load_palette(tmp_path / "missing.json")

    other = tmp_path / "palette.txt"
    other.write_text("310 Black", encoding="utf-8")
    with pytest.raises(PaletteValidationError):
        load_palette(other)

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(PaletteValidationError):
        load_palette(broken)


def test_duplicate_codes_are_rejected():
    with pytest.raises(PaletteValidationError):
        ReferencePalette.from_records(
            [
                {"id": "310", "name": "Black", "hex": "#000000"},
                {"id": "310", "name": "Also Black", "hex": "#010101"},
            ]
        )


def test_empty_palette_is_rejected():
    with pytest.raises(PaletteValidationError):
        ReferencePalette([])


def test_search_is_case_insensitive_on_code_and_name(primary_palette):
    assert [color.code for color in primary_palette.search("bright")] == ["666", "700", "973"]
    assert [color.code for color in primary_palette.search("blanc")] == ["BLANC"]
    assert primary_palette.search("mauve") == []


def test_lookup_by_code_is_exact(primary_palette):
    assert primary_palette.get("BLANC").name == "White"
    assert primary_palette.get("blanc") is None
    assert "797" in primary_palette


def test_default_palette_is_the_bundled_dmc_table():
    palette, source = load_palette(None)

    assert source == "dmc_builtin"
    assert palette is default_palette()
    assert len(palette) > 400
    assert palette.get("310").name == "Black"
    assert palette.lab_array.shape == (len(palette), 3)
