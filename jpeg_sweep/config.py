"""Configuration objects and constants for the normalization pipeline."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

logger = logging.getLogger("jpeg_sweep.config")

DEFAULT_MAX_SIDE = 1200
DEFAULT_QUALITY = 78
UPLOAD_MAX_SIDE = 2400
UPLOAD_QUALITY = 72

DEFAULT_BATCH_LIMIT = 50
MAX_BATCH_LIMIT = 500

DEFAULT_SOURCE_DIR = Path("import/jpg")
DEFAULT_DEST_DIR = Path("import/jpg_small")

DEFAULT_EXTENSIONS: Tuple[str, ...] = ("jpg", "jpeg", "png", "webp")
PSD_EXTENSIONS: Tuple[str, ...] = DEFAULT_EXTENSIONS + ("psd",)


@dataclass(frozen=True)
class TransformParams:
    """Per-invocation settings for the transform pipeline."""

    max_side: int = DEFAULT_MAX_SIDE
    quality: int = DEFAULT_QUALITY
    crop_ratio: Optional[float] = None
    strip_metadata: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.max_side, bool) or not isinstance(self.max_side, int) or self.max_side <= 0:
            raise ValueError(f"max_side must be a positive integer, got {self.max_side!r}")
        if isinstance(self.quality, bool) or not isinstance(self.quality, int) or not 0 <= self.quality <= 100:
            raise ValueError(f"quality must be an integer in [0, 100], got {self.quality!r}")
        if self.crop_ratio is not None and not self.crop_ratio > 0:
            raise ValueError(f"crop_ratio must be positive, got {self.crop_ratio!r}")


UPLOAD_PARAMS = TransformParams(max_side=UPLOAD_MAX_SIDE, quality=UPLOAD_QUALITY)


def clamp_limit(limit: int) -> int:
    """Keep a requested batch size inside the supported range."""
    return max(1, min(int(limit), MAX_BATCH_LIMIT))


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s is set to %r which is not an integer; using %s", name, raw, default)
        return default


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class SweepConfig:
    """Top-level settings for a batch sweep over one source directory."""

    source_dir: Path = DEFAULT_SOURCE_DIR
    dest_dir: Path = DEFAULT_DEST_DIR
    limit: int = DEFAULT_BATCH_LIMIT
    include_psd: bool = False
    params: TransformParams = field(default_factory=TransformParams)

    @property
    def extensions(self) -> Tuple[str, ...]:
        return PSD_EXTENSIONS if self.include_psd else DEFAULT_EXTENSIONS

    @classmethod
    def from_env(cls) -> "SweepConfig":
        """Build a config from ``JPEG_SWEEP_*`` environment overrides."""
        source = os.getenv("JPEG_SWEEP_SOURCE_DIR")
        dest = os.getenv("JPEG_SWEEP_DEST_DIR")
        return cls(
            source_dir=Path(source).expanduser() if source else DEFAULT_SOURCE_DIR,
            dest_dir=Path(dest).expanduser() if dest else DEFAULT_DEST_DIR,
            limit=clamp_limit(_env_int("JPEG_SWEEP_BATCH_LIMIT", DEFAULT_BATCH_LIMIT)),
            include_psd=_env_flag("JPEG_SWEEP_INCLUDE_PSD"),
            params=TransformParams(
                max_side=_env_int("JPEG_SWEEP_MAX_SIDE", DEFAULT_MAX_SIDE),
                quality=_env_int("JPEG_SWEEP_QUALITY", DEFAULT_QUALITY),
            ),
        )
