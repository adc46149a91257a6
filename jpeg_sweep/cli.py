"""Command-line entry point for jpeg-sweep."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Sequence

from .batch import convert_file, convert_in_place, get_status, run_batch
from .config import (
    MAX_BATCH_LIMIT,
    UPLOAD_MAX_SIDE,
    UPLOAD_QUALITY,
    SweepConfig,
    TransformParams,
)
from .errors import NormalizeError
from .pipeline import decoder_available

logger = logging.getLogger("jpeg_sweep.cli")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return ("run",)
    first = argv[0]
    if first in commands or first in ("-h", "--help"):
        return argv
    return ("run", *argv)


def _positive_int(value: str) -> int:
    number = int(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer: {value}")
    return number


def _quality(value: str) -> int:
    number = int(value)
    if not 0 <= number <= 100:
        raise argparse.ArgumentTypeError(f"quality must be within 0-100: {value}")
    return number


def _ratio(value: str) -> float:
    """Accept ``1.5`` or ``W:H`` style aspect ratios."""
    try:
        if ":" in value:
            width, height = (float(part) for part in value.split(":", 1))
            ratio = width / height
        else:
            ratio = float(value)
    except (ValueError, ZeroDivisionError):
        raise argparse.ArgumentTypeError(f"invalid crop ratio: {value!r} (expected 1.5 or W:H)") from None
    if ratio <= 0:
        raise argparse.ArgumentTypeError(f"crop ratio must be positive: {value!r}")
    return ratio


def _add_transform_arguments(parser: argparse.ArgumentParser, max_side: int, quality: int) -> None:
    parser.add_argument(
        "--max-side",
        type=_positive_int,
        default=max_side,
        help=f"Shrink images so the longest edge is at most this many pixels (default: {max_side})",
    )
    parser.add_argument(
        "--quality",
        type=_quality,
        default=quality,
        help=f"JPEG quality 0-100 (default: {quality})",
    )
    parser.add_argument(
        "--crop-ratio",
        type=_ratio,
        default=None,
        help="Center-crop to this width/height ratio before resizing (e.g. 1, 1.5 or 4:3)",
    )
    parser.add_argument(
        "--keep-metadata",
        action="store_true",
        help="Keep EXIF and ICC profile data instead of stripping it",
    )


def _add_directory_arguments(parser: argparse.ArgumentParser, config: SweepConfig) -> None:
    parser.add_argument(
        "source",
        nargs="?",
        type=Path,
        default=config.source_dir,
        help=f"Directory holding the original images (default: {config.source_dir})",
    )
    parser.add_argument(
        "destination",
        nargs="?",
        type=Path,
        default=config.dest_dir,
        help=f"Directory receiving the normalized JPEGs (default: {config.dest_dir})",
    )
    parser.add_argument(
        "--include-psd",
        action="store_true",
        default=config.include_psd,
        help="Also pick up .psd files from the source directory",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    config = SweepConfig.from_env()
    parser = argparse.ArgumentParser(
        description="Normalize uploaded images into bounded, progressive, metadata-free JPEGs.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser(
        "run", help="Process one bounded batch of stale images"
    )
    _add_directory_arguments(run_parser, config)
    run_parser.add_argument(
        "--limit",
        type=int,
        default=config.limit,
        help=f"Maximum number of images to process in this call (1-{MAX_BATCH_LIMIT}, default: {config.limit})",
    )
    run_parser.add_argument(
        "--force",
        action="store_true",
        help="Re-process images even when the JPEG is up to date",
    )
    _add_transform_arguments(run_parser, config.params.max_side, config.params.quality)

    status_parser = subparsers.add_parser(
        "status", help="Show image counts and decoder availability"
    )
    _add_directory_arguments(status_parser, config)

    convert_parser = subparsers.add_parser(
        "convert", help="Convert a single uploaded image"
    )
    convert_parser.add_argument("path", type=Path, help="Image to convert")
    convert_parser.add_argument(
        "--out",
        type=Path,
        default=None,
        help="Write the JPEG here instead of converting in place",
    )
    convert_parser.add_argument(
        "--keep-original",
        action="store_true",
        help="Do not remove the source after an in-place conversion",
    )
    convert_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    _add_transform_arguments(convert_parser, UPLOAD_MAX_SIDE, UPLOAD_QUALITY)

    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, subparsers.choices.keys()))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _params_from_args(args: argparse.Namespace) -> TransformParams:
    return TransformParams(
        max_side=args.max_side,
        quality=args.quality,
        crop_ratio=args.crop_ratio,
        strip_metadata=not args.keep_metadata,
    )


def _emit(payload: Dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, indent=2) + "\n")
    sys.stdout.flush()


def _extensions(args: argparse.Namespace) -> tuple:
    return SweepConfig(include_psd=args.include_psd).extensions


def _run_batch(args: argparse.Namespace) -> int:
    if not decoder_available():
        _emit({"success": False, "message": "Pillow was built without JPEG/PNG support."})
        return 1
    report = run_batch(
        args.source,
        args.destination,
        limit=args.limit,
        force=args.force,
        params=_params_from_args(args),
        extensions=_extensions(args),
    )
    _emit(report.to_dict())
    return 1 if report.errors else 0


def _run_status(args: argparse.Namespace) -> int:
    status = get_status(args.source, args.destination, _extensions(args))
    _emit(status.to_dict())
    return 0


def _run_convert(args: argparse.Namespace) -> int:
    params = _params_from_args(args)
    try:
        if args.out is None:
            target = convert_in_place(args.path, params, remove_original=not args.keep_original)
        else:
            convert_file(args.path, args.out, params)
            target = args.out
    except NormalizeError as exc:
        logger.error("Could not convert %s: %s", args.path, exc)
        _emit({"success": False, "file": str(args.path), "error": str(exc)})
        return 1
    _emit({"success": True, "file": str(args.path), "output": str(target)})
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)
    if args.command == "status":
        return _run_status(args)
    if args.command == "convert":
        return _run_convert(args)
    return _run_batch(args)


if __name__ == "__main__":
    sys.exit(main())
