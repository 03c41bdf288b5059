from __future__ import annotations

from fastapi.testclient import TestClient

from stitch_pipeline import api
from stitch_pipeline.errors import EmptyResultError, GenerationPhase
from stitch_pipeline.models import (
    GenerationSettings,
    MatchingMethod,
    PaletteEntry,
    Pattern,
    ReferenceColor,
    Stitch,
)

NAVY = ReferenceColor(code="336", name="Navy Blue", rgb=(37, 59, 115), lab=(25.7, 8.6, -31.5))
WHITE = ReferenceColor(code="BLANC", name="White", rgb=(255, 255, 255), lab=(100.0, 0.0, 0.0))


def test_generate_endpoint_returns_pattern_fields(monkeypatch):
    class FakePipeline:
        def run(self, image_path: str, settings: GenerationSettings):
            assert image_path == "https://example.com/image.jpg"
            assert settings.target_width == 2
            assert settings.target_height == 1
            assert settings.max_colors == 2
            assert settings.method is MatchingMethod.CIE94
            return Pattern(
                width=2,
                height=1,
                stitches=[[Stitch(NAVY), Stitch(WHITE)]],
                palette=[
                    PaletteEntry(thread=NAVY, symbol="●", stitch_count=1),
                    PaletteEntry(thread=WHITE, symbol="■", stitch_count=1),
                ],
            )

    monkeypatch.setattr(api, "_build_pipeline", lambda: FakePipeline())

    client = TestClient(api.app)
    response = client.post(
        "/generate",
        json={
            "image_url": "https://example.com/image.jpg",
            "target_width": 2,
            "target_height": 1,
            "max_colors": 2,
            "method": "cie94",
        },
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["width"] == 2
    assert payload["total_stitches"] == 2
    assert payload["grid"] == [["336", "BLANC"]]
    assert payload["palette"][0] == {
        "code": "336",
        "name": "Navy Blue",
        "hex": "#253B73",
        "symbol": "●",
        "stitch_count": 1,
    }


def test_generate_endpoint_maps_pipeline_errors_to_400(monkeypatch):
    class FailingPipeline:
        def run(self, image_path: str, settings: GenerationSettings):
            raise EmptyResultError(GenerationPhase.QUANTIZE, "no colors")

    monkeypatch.setattr(api, "_build_pipeline", lambda: FailingPipeline())

    client = TestClient(api.app)
    response = client.post(
        "/generate",
        json={"image_url": "https://example.com/image.jpg", "include_grid": False},
    )

    assert response.status_code == 400
    assert "quantize" in response.json()["detail"]


def test_generate_endpoint_validates_settings():
    client = TestClient(api.app)
    response = client.post(
        "/generate",
        json={"image_url": "https://example.com/image.jpg", "max_colors": 0},
    )

    assert response.status_code == 422


def test_threads_endpoint_searches_reference_palette():
    client = TestClient(api.app)
    response = client.get("/threads", params={"query": "black"})

    assert response.status_code == 200
    codes = [item["code"] for item in response.json()]
    assert "310" in codes
