"""Shared fixtures for img-hash-linker tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest
from PIL import Image, ImageDraw

_ENV_KEYS = (
    "IMG_HASH_LINKER_HASH_SIZE",
    "IMG_HASH_LINKER_THRESHOLD",
    "IMG_HASH_LINKER_REMOVE_BORDER",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's IMG_HASH_LINKER_* overrides out of the tests."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def half_split(size: int = 8) -> Image.Image:
    """Grayscale image: top half black, bottom half white."""
    img = Image.new("L", (size, size), 255)
    ImageDraw.Draw(img).rectangle((0, 0, size - 1, size // 2 - 1), fill=0)
    return img


def framed_square(size: int = 20, box: tuple = (5, 5, 9, 9), fill=(0, 0, 0)) -> Image.Image:
    """White RGB canvas with a filled rectangle (inclusive corners)."""
    img = Image.new("RGB", (size, size), (255, 255, 255))
    ImageDraw.Draw(img).rectangle(box, fill=fill)
    return img


@pytest.fixture()
def save_png(tmp_path: Path) -> Callable[[Image.Image, str], Path]:
    """Write an image into tmp_path and return its path."""

    def _save(img: Image.Image, name: str = "img.png") -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        img.save(path)
        return path

    return _save


@pytest.fixture()
def write_dict(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write raw dictionary text into tmp_path and return its path."""

    def _write(text: str, name: str = "links.csv") -> Path:
        path = tmp_path / name
        path.write_bytes(text.encode("utf-8"))
        return path

    return _write
