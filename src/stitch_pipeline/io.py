from __future__ import annotations

import io
import json
from pathlib import Path

import numpy as np
import requests
from PIL import Image
from skimage.util import img_as_ubyte

from .models import Pattern

EMPTY_CELL_RGB = (255, 255, 255)


def read_image_rgb(image_path: str | Path) -> np.ndarray:
    path_str = str(image_path)
    if path_str.startswith(("http://", "https://")):
        response = requests.get(path_str, timeout=10)
        response.raise_for_status()
        image_data = io.BytesIO(response.content)
        with Image.open(image_data) as image:
            rgb = image.convert("RGB")
            return np.asarray(rgb, dtype=np.uint8)

    path = Path(image_path)
    with Image.open(path) as image:
        rgb = image.convert("RGB")
        return np.asarray(rgb, dtype=np.uint8)


def to_rgb_array(image: Image.Image | np.ndarray) -> np.ndarray:
    """Return an ``(H, W, 3)`` uint8 array, dropping any alpha channel.

    Grayscale arrays (2-D, or one or two channels) are spread across RGB.
    Float and bool arrays are read as [0, 1] intensities; integer arrays
    must already lie in 0..255.
    """
    if isinstance(image, Image.Image):
        return np.asarray(image.convert("RGB"), dtype=np.uint8)

    array = np.asarray(image)
    if array.ndim == 2:
        array = array[:, :, np.newaxis]
    if array.ndim != 3 or array.shape[2] not in (1, 2, 3, 4):
        raise ValueError(
            f"image must have shape (H, W) or (H, W, 1-4 channels), got {array.shape}"
        )

    array = _as_ubyte(array)
    if array.shape[2] < 3:
        return np.repeat(array[:, :, :1], 3, axis=2)
    return np.ascontiguousarray(array[:, :, :3])


def _as_ubyte(array: np.ndarray) -> np.ndarray:
    if array.dtype == np.uint8:
        return array
    if np.issubdtype(array.dtype, np.integer):
        if array.size and (array.min() < 0 or array.max() > 255):
            raise ValueError("integer pixel values must lie in 0..255")
        return array.astype(np.uint8)
    if array.dtype == np.bool_ or np.issubdtype(array.dtype, np.floating):
        # raises for floats outside [-1, 1]
        return img_as_ubyte(array)
    raise ValueError(f"unsupported pixel dtype {array.dtype}")


def resize_image(image_rgb: np.ndarray, width: int, height: int) -> np.ndarray:
    if width <= 0 or height <= 0:
        raise ValueError("target width and height must be positive")

    with Image.fromarray(image_rgb) as image:
        resized = image.resize((width, height), resample=Image.Resampling.LANCZOS)
        return np.asarray(resized, dtype=np.uint8)


def render_pattern(pattern: Pattern, cell_size: int = 1) -> Image.Image:
    if cell_size <= 0:
        raise ValueError("cell_size must be positive")

    cells = np.empty((pattern.height, pattern.width, 3), dtype=np.uint8)
    cells[:, :] = EMPTY_CELL_RGB
    for y, row in enumerate(pattern.stitches):
        for x, stitch in enumerate(row):
            if stitch is not None:
                cells[y, x] = stitch.thread.rgb

    if cell_size > 1:
        cells = np.repeat(np.repeat(cells, cell_size, axis=0), cell_size, axis=1)
    return Image.fromarray(cells)


def save_pattern_preview(
    pattern: Pattern, output_path: str | Path, cell_size: int = 1
) -> None:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    render_pattern(pattern, cell_size=cell_size).save(path)


def write_pattern_json(pattern: Pattern, output_path: str | Path) -> None:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(pattern.to_dict(), indent=2, ensure_ascii=False)
    path.write_text(payload + "\n", encoding="utf-8")
