"""Atomic write-to-temp-then-rename commits."""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from .errors import CommitError

logger = logging.getLogger("jpeg_sweep.writer")

TEMP_SUFFIX = ".tmp"
FILE_MODE = 0o644


def commit(data: bytes, destination: Union[str, Path]) -> Path:
    """Publish ``data`` at ``destination`` without exposing a partial file.

    The temporary file lives next to the destination so the final
    ``os.replace`` stays on one filesystem. Its dot prefix keeps it out of
    directory scans while in flight.
    """
    destination = Path(destination)
    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=destination.parent,
            prefix=f".{destination.name}.",
            suffix=TEMP_SUFFIX,
        )
    except OSError as exc:
        raise CommitError(f"cannot create temporary file for {destination.name}: {exc}") from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_path, FILE_MODE)
        os.replace(tmp_path, destination)
    except OSError as exc:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise CommitError(f"cannot write {destination.name}: {exc}") from exc

    logger.debug("Committed %d bytes to %s", len(data), destination)
    return destination
