"""Enumerate eligible source images in a directory."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Union

from .config import DEFAULT_EXTENSIONS
from .utils import extension_of, natural_sort_key

logger = logging.getLogger("jpeg_sweep.scanner")


def list_source_images(
    directory: Union[str, Path],
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> List[str]:
    """Return eligible file names in deterministic natural order.

    Hidden entries, directories and names outside the extension allow-list
    are ignored. A missing or unreadable directory yields an empty list.
    """
    allowed = {ext.lower().lstrip(".") for ext in extensions}
    names: List[str] = []
    try:
        with os.scandir(directory) as entries:
            for entry in entries:
                if entry.name.startswith("."):
                    continue
                try:
                    if entry.is_dir():
                        continue
                except OSError:
                    continue
                if extension_of(entry.name) not in allowed:
                    continue
                names.append(entry.name)
    except OSError as exc:
        logger.debug("Cannot scan %s: %s", directory, exc)
        return []
    names.sort(key=natural_sort_key)
    return names


def count_images(
    directory: Union[str, Path],
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> int:
    return len(list_source_images(directory, extensions))
