from __future__ import annotations

import numpy as np
import pytest

from stitch_pipeline.palette import ReferencePalette


@pytest.fixture
def primary_palette() -> ReferencePalette:
    return ReferencePalette.from_records(
        [
            {"id": "310", "name": "Black", "rgb": {"r": 0, "g": 0, "b": 0}},
            {"id": "BLANC", "name": "White", "rgb": {"r": 255, "g": 255, "b": 255}},
            {"id": "666", "name": "Bright Red", "rgb": {"r": 227, "g": 29, "b": 66}},
            {"id": "700", "name": "Bright Green", "rgb": {"r": 7, "g": 115, "b": 27}},
            {"id": "797", "name": "Royal Blue", "rgb": {"r": 19, "g": 71, "b": 125}},
            {"id": "973", "name": "Bright Canary", "rgb": {"r": 255, "g": 227, "b": 0}},
        ]
    )


@pytest.fixture
def quadrant_image() -> np.ndarray:
    """100x100 image with red, green, blue and yellow quadrants."""
    image = np.zeros((100, 100, 3), dtype=np.uint8)
    image[:50, :50] = [255, 0, 0]
    image[:50, 50:] = [0, 255, 0]
    image[50:, :50] = [0, 0, 255]
    image[50:, 50:] = [255, 255, 0]
    return image
