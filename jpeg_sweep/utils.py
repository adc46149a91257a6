"""Utility helpers for file naming and ordering."""

from __future__ import annotations

import re
from pathlib import PurePath
from typing import List, Tuple, Union

DIGITS_PATTERN = re.compile(r"([0-9]+)")
OUTPUT_SUFFIX = ".jpg"


def natural_sort_key(value: str) -> Tuple[List[Union[int, str]], str]:
    """Case-insensitive natural ordering key (``img2`` before ``img10``)."""
    # re.split with a capture group alternates text and digit chunks, so
    # positions always compare like with like.
    parts: List[Union[int, str]] = [
        int(chunk) if index % 2 else chunk.casefold()
        for index, chunk in enumerate(DIGITS_PATTERN.split(value))
    ]
    return parts, value


def extension_of(name: str) -> str:
    """Lowercased extension without the dot, empty when there is none."""
    return PurePath(name).suffix.lower().lstrip(".")


def output_name(name: str) -> str:
    """Destination file name: same stem, extension forced to ``.jpg``."""
    return PurePath(name).stem + OUTPUT_SUFFIX
