"""Decide whether a source image needs (re)processing."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger("jpeg_sweep.freshness")


def _mtime_seconds(path: Union[str, Path]) -> Optional[int]:
    try:
        return int(os.stat(path).st_mtime)
    except OSError:
        return None


def needs_processing(
    source: Union[str, Path],
    destination: Union[str, Path],
    force: bool = False,
) -> bool:
    """Return False only when the destination is at least as new as the source.

    Timestamps are compared in whole seconds. Anything that cannot be
    stat'ed counts as stale.
    """
    if force:
        return True
    if not os.path.exists(destination):
        return True
    dest_mtime = _mtime_seconds(destination)
    source_mtime = _mtime_seconds(source)
    if dest_mtime is None or source_mtime is None:
        logger.debug("Unreadable timestamp for %s or %s; processing", source, destination)
        return True
    return dest_mtime < source_mtime
