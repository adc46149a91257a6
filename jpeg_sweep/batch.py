"""High-level orchestration for bounded batch sweeps and one-shot conversions."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterable, Optional, Union

from .config import DEFAULT_BATCH_LIMIT, DEFAULT_EXTENSIONS, UPLOAD_PARAMS, TransformParams, clamp_limit
from .errors import NormalizeError
from .freshness import needs_processing
from .models import ERROR, PROCESSED, SKIPPED, BatchItem, BatchReport, NormalizedImage, StatusReport
from .pipeline import decoder_available, decoder_capabilities, normalize_file
from .scanner import count_images, list_source_images
from .utils import output_name
from .writer import commit

logger = logging.getLogger("jpeg_sweep.batch")

PathLike = Union[str, Path]


def convert_file(source: PathLike, destination: PathLike, params: TransformParams) -> NormalizedImage:
    """Normalize one file and atomically publish the result."""
    result = normalize_file(source, params)
    commit(result.data, destination)
    return result


def convert_in_place(
    path: PathLike,
    params: TransformParams = UPLOAD_PARAMS,
    remove_original: bool = True,
) -> Path:
    """Upload-time conversion: write ``<stem>.jpg`` beside the source.

    The source is removed only after the JPEG has been committed and only if
    its name differs from the output. On failure the original stays put and
    the error propagates.
    """
    path = Path(path)
    target = path.with_name(output_name(path.name))
    convert_file(path, target, params)
    if remove_original and target.name != path.name:
        try:
            path.unlink()
        except OSError as exc:
            logger.warning("Converted %s but could not remove the original: %s", path.name, exc)
    logger.info("Converted %s -> %s", path.name, target.name)
    return target


def _process_one(source: Path, destination: Path, params: TransformParams) -> BatchItem:
    try:
        convert_file(source, destination, params)
    except NormalizeError as exc:
        logger.warning("Failed to normalize %s: %s", source.name, exc)
        return BatchItem(file=source.name, outcome=ERROR, error=str(exc))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected failure while normalizing %s", source.name)
        return BatchItem(file=source.name, outcome=ERROR, error=str(exc) or type(exc).__name__)
    return BatchItem(file=source.name, outcome=PROCESSED, output=destination.name)


def run_batch(
    source_dir: PathLike,
    dest_dir: PathLike,
    limit: int = DEFAULT_BATCH_LIMIT,
    force: bool = False,
    params: Optional[TransformParams] = None,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> BatchReport:
    """Process up to ``limit`` stale images from ``source_dir`` into ``dest_dir``.

    Skipped files do not count against the limit, so repeated calls drain a
    backlog in natural file order.
    """
    source_dir = Path(source_dir)
    dest_dir = Path(dest_dir)
    limit = clamp_limit(limit)
    params = params or TransformParams()

    files = list_source_images(source_dir, extensions)
    report = BatchReport(source_count=len(files), limit=limit, force=force)
    if not files:
        logger.info("No eligible images found in %s", source_dir)
        return report

    try:
        dest_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Cannot create destination directory %s: %s", dest_dir, exc)

    start = time.perf_counter()
    for name in files:
        if report.processed >= limit:
            break
        source = source_dir / name
        destination = dest_dir / output_name(name)
        if not needs_processing(source, destination, force):
            report.add(BatchItem(file=name, outcome=SKIPPED, output=destination.name))
            continue
        item = _process_one(source, destination, params)
        if item.outcome == PROCESSED:
            logger.debug("Processed %s -> %s", name, destination.name)
        report.add(item)

    logger.info(
        "Batch finished in %.2fs (%d processed, %d skipped, %d errors, %d found)",
        time.perf_counter() - start,
        report.processed,
        report.skipped,
        report.errors,
        report.source_count,
    )
    return report


def get_status(
    source_dir: PathLike,
    dest_dir: PathLike,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> StatusReport:
    """Count eligible files on both sides without running a batch."""
    extensions = tuple(extensions)
    return StatusReport(
        source_dir=Path(source_dir),
        dest_dir=Path(dest_dir),
        source_count=count_images(source_dir, extensions),
        dest_count=count_images(dest_dir, extensions),
        decoder_available=decoder_available(),
        capabilities=decoder_capabilities(),
    )
