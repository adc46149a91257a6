"""Data models used throughout the normalization pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

PROCESSED = "processed"
SKIPPED = "skipped"
ERROR = "error"


@dataclass(frozen=True)
class SourceImage:
    """Header-level description of an input image; pixels stay undecoded."""

    data: bytes = field(repr=False)
    format: str
    width: int
    height: int
    orientation: int = 1
    has_alpha: bool = False
    path: Optional[Path] = None


@dataclass(frozen=True)
class NormalizedImage:
    """JPEG bytes produced by one pipeline invocation."""

    data: bytes = field(repr=False)
    width: int
    height: int


@dataclass(frozen=True)
class BatchItem:
    """One row of a batch report."""

    file: str
    outcome: str
    output: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {"file": self.file, "outcome": self.outcome}
        if self.output is not None:
            record["output"] = self.output
        if self.error is not None:
            record["error"] = self.error
        return record


@dataclass
class BatchReport:
    """Aggregate result of one batch sweep."""

    source_count: int
    limit: int
    force: bool = False
    items: List[BatchItem] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return self._count(PROCESSED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    @property
    def errors(self) -> int:
        return self._count(ERROR)

    def _count(self, outcome: str) -> int:
        return sum(1 for item in self.items if item.outcome == outcome)

    def add(self, item: BatchItem) -> None:
        self.items.append(item)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "limit": self.limit,
            "force": self.force,
            "sourceCount": self.source_count,
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": self.errors,
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class StatusReport:
    """Progress snapshot of a source/destination directory pair."""

    source_dir: Path
    dest_dir: Path
    source_count: int
    dest_count: int
    decoder_available: bool
    capabilities: Dict[str, bool] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "sourceDir": str(self.source_dir),
            "destDir": str(self.dest_dir),
            "sourceCount": self.source_count,
            "destCount": self.dest_count,
            "decoderAvailable": self.decoder_available,
            "capabilities": dict(self.capabilities),
        }
