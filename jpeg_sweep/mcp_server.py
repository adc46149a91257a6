"""MCP server exposing jpeg-sweep status/batch/convert tools."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from .batch import convert_in_place, get_status, run_batch
from .config import DEFAULT_BATCH_LIMIT, UPLOAD_PARAMS, SweepConfig
from .pipeline import decoder_available

logger = logging.getLogger("jpeg_sweep.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="jpeg-sweep")


@mcp.tool()
def status() -> Dict[str, Any]:
    """Report eligible image counts and whether the image decoder is available."""

    config = SweepConfig.from_env()
    return get_status(config.source_dir, config.dest_dir, config.extensions).to_dict()


@mcp.tool()
def run_batch_sweep(limit: int = DEFAULT_BATCH_LIMIT, force: bool = False) -> Dict[str, Any]:
    """Normalize up to ``limit`` stale images; call repeatedly until nothing is processed."""

    if not decoder_available():
        return {"success": False, "message": "Pillow was built without JPEG/PNG support."}
    config = SweepConfig.from_env()
    report = run_batch(
        config.source_dir,
        config.dest_dir,
        limit=limit,
        force=force,
        params=config.params,
        extensions=config.extensions,
    )
    return report.to_dict()


@mcp.tool()
def convert(path: str, crop_ratio: Optional[float] = None) -> Dict[str, Any]:
    """Convert one uploaded image to a normalized JPEG beside it."""

    source = Path(path).expanduser()
    if not source.is_file():
        raise FileNotFoundError(f"Image path does not exist: {source}")
    params = replace(UPLOAD_PARAMS, crop_ratio=crop_ratio)
    target = convert_in_place(source, params)
    return {"success": True, "file": str(source), "output": str(target)}


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
