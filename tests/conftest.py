"""Shared fixtures for building test images on disk."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Callable, Optional, Tuple

import pytest
from PIL import Image

Color = Tuple[int, ...]


def image_bytes(
    size: Tuple[int, int],
    fmt: str = "PNG",
    mode: str = "RGB",
    color: Color = (200, 30, 30),
    **save_options: object,
) -> bytes:
    image = Image.new(mode, size, color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **save_options)
    return buffer.getvalue()


@pytest.fixture
def make_image() -> Callable[..., Path]:
    """Write a solid-color image to ``path`` and return the path."""

    def _make(
        path: Path,
        size: Tuple[int, int] = (64, 48),
        fmt: Optional[str] = None,
        mode: str = "RGB",
        color: Color = (200, 30, 30),
        **save_options: object,
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        fmt = fmt or {"jpg": "JPEG", "jpeg": "JPEG"}.get(path.suffix.lower().lstrip("."), path.suffix.lstrip(".").upper())
        path.write_bytes(image_bytes(size, fmt, mode, color, **save_options))
        return path

    return _make
