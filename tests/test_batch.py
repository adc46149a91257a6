"""Tests for the bounded batch driver, status query and upload conversion."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from PIL import Image

from jpeg_sweep import batch, writer
from jpeg_sweep.batch import convert_in_place, get_status, run_batch
from jpeg_sweep.config import MAX_BATCH_LIMIT, TransformParams
from jpeg_sweep.errors import DecodeError
from jpeg_sweep.models import ERROR, PROCESSED, SKIPPED
from jpeg_sweep.pipeline import normalize_file


@pytest.fixture
def dirs(tmp_path: Path):
    source = tmp_path / "jpg"
    destination = tmp_path / "jpg_small"
    source.mkdir()
    return source, destination


def test_scenario_mixed_directory(dirs, make_image) -> None:
    source, destination = dirs
    make_image(source / "a.png", size=(800, 600))
    # PNG payload behind a .jpg name; the pipeline sniffs the real format.
    make_image(source / "b.jpg", size=(2000, 2000), fmt="PNG", mode="RGBA", color=(0, 0, 0, 0))

    report = run_batch(source, destination, limit=50, params=TransformParams(max_side=1200))

    assert (report.processed, report.skipped, report.errors) == (2, 0, 0)
    assert report.source_count == 2
    with Image.open(destination / "a.jpg") as a:
        assert a.size == (800, 600)
    with Image.open(destination / "b.jpg") as b:
        assert b.size == (1200, 1200)
        assert b.mode == "RGB"
        assert min(b.getpixel((600, 600))) >= 245


def test_second_run_skips_everything(dirs, make_image) -> None:
    source, destination = dirs
    for name in ("one.png", "two.jpg", "three.webp"):
        make_image(source / name, size=(50, 40))

    first = run_batch(source, destination)
    second = run_batch(source, destination)

    assert first.processed == 3
    assert second.processed == 0
    assert second.skipped == 3
    assert [item.outcome for item in second.items] == [SKIPPED] * 3


def test_force_reprocesses_fresh_files(dirs, make_image) -> None:
    source, destination = dirs
    make_image(source / "one.png")

    run_batch(source, destination)
    report = run_batch(source, destination, force=True)

    assert report.processed == 1
    assert report.force is True


def test_touched_source_is_reprocessed(dirs, make_image) -> None:
    source, destination = dirs
    original = make_image(source / "one.png")
    run_batch(source, destination)
    output = destination / "one.jpg"
    os.utime(output, (1_000_000, 1_000_000))
    os.utime(original, (1_000_100, 1_000_100))

    report = run_batch(source, destination)

    assert report.processed == 1


def test_limit_bounds_each_call_and_progress_resumes(dirs, make_image) -> None:
    source, destination = dirs
    for index in range(120):
        make_image(source / f"img{index}.png", size=(8, 6))

    first = run_batch(source, destination, limit=50)
    second = run_batch(source, destination, limit=50)
    third = run_batch(source, destination, limit=50)

    assert first.processed == 50
    assert [item.file for item in first.items] == [f"img{index}.png" for index in range(50)]
    assert second.processed == 50
    assert second.skipped == 50
    assert [item.file for item in second.items if item.outcome == PROCESSED] == [
        f"img{index}.png" for index in range(50, 100)
    ]
    assert third.processed == 20
    assert third.skipped == 100
    assert len(list(destination.iterdir())) == 120


def test_errors_are_isolated_per_file(dirs, make_image) -> None:
    source, destination = dirs
    make_image(source / "a.png")
    (source / "b.png").write_bytes(b"this is not a png")
    make_image(source / "c.png")

    report = run_batch(source, destination)

    assert [item.outcome for item in report.items] == [PROCESSED, ERROR, PROCESSED]
    assert report.errors == 1
    assert report.items[1].error
    assert not (destination / "b.jpg").exists()
    assert (destination / "c.jpg").exists()


def test_errors_do_not_count_against_limit(dirs, make_image) -> None:
    source, destination = dirs
    (source / "a.png").write_bytes(b"broken")
    make_image(source / "b.png")
    make_image(source / "c.png")

    report = run_batch(source, destination, limit=1)

    assert [(item.file, item.outcome) for item in report.items] == [("a.png", ERROR), ("b.png", PROCESSED)]


def test_limit_is_clamped(dirs, make_image) -> None:
    source, destination = dirs
    make_image(source / "a.png")
    make_image(source / "b.png")

    assert run_batch(source, destination, limit=0).processed == 1
    assert run_batch(source, destination, limit=10_000).limit == MAX_BATCH_LIMIT


def test_missing_source_directory_reports_nothing(tmp_path: Path) -> None:
    report = run_batch(tmp_path / "missing", tmp_path / "out")

    assert report.source_count == 0
    assert report.items == []


def test_report_serialization(dirs, make_image) -> None:
    source, destination = dirs
    make_image(source / "a.png")
    (source / "b.png").write_bytes(b"broken")

    payload = run_batch(source, destination, limit=5).to_dict()

    assert payload["sourceCount"] == 2
    assert payload["processed"] == 1
    assert payload["errors"] == 1
    assert payload["limit"] == 5
    assert payload["items"][0] == {"file": "a.png", "outcome": "processed", "output": "a.jpg"}
    assert payload["items"][1]["outcome"] == "error"
    assert "output" not in payload["items"][1]


def test_status_counts_both_directories(dirs, make_image) -> None:
    source, destination = dirs
    make_image(source / "a.png")
    make_image(source / "b.png")
    make_image(source / ".hidden.png")

    before = get_status(source, destination)
    run_batch(source, destination, limit=1)
    after = get_status(source, destination)

    assert (before.source_count, before.dest_count) == (2, 0)
    assert (after.source_count, after.dest_count) == (2, 1)
    assert isinstance(after.decoder_available, bool)
    assert set(after.to_dict()["capabilities"]) == {"jpeg", "png", "webp", "psd"}


def test_convert_in_place_replaces_original(tmp_path: Path, make_image) -> None:
    original = make_image(tmp_path / "upload.png", size=(3000, 1500))

    target = convert_in_place(original)

    assert target == tmp_path / "upload.jpg"
    assert not original.exists()
    with Image.open(target) as image:
        assert image.size == (2400, 1200)


def test_convert_in_place_with_crop_ratio(tmp_path: Path, make_image) -> None:
    original = make_image(tmp_path / "upload.jpeg", size=(400, 300))

    target = convert_in_place(original, TransformParams(crop_ratio=1.0))

    with Image.open(target) as image:
        assert image.size == (300, 300)


def test_convert_in_place_keeps_original_on_failure(tmp_path: Path) -> None:
    original = tmp_path / "upload.png"
    original.write_bytes(b"not an image")

    with pytest.raises(DecodeError):
        convert_in_place(original)

    assert original.read_bytes() == b"not an image"
    assert not (tmp_path / "upload.jpg").exists()


def test_convert_in_place_same_name_overwrites(tmp_path: Path, make_image) -> None:
    original = make_image(tmp_path / "photo.jpg", size=(100, 100))

    target = convert_in_place(original)

    assert target == original
    assert target.exists()


def test_commit_failure_is_isolated_per_file(dirs, make_image, monkeypatch: pytest.MonkeyPatch) -> None:
    source, destination = dirs
    for name in ("a.png", "b.png", "c.png"):
        make_image(source / name)
    real_replace = writer.os.replace

    def replace(src, dst):
        if Path(dst).name == "b.jpg":
            raise OSError("disk full")
        real_replace(src, dst)

    monkeypatch.setattr(writer.os, "replace", replace)

    report = run_batch(source, destination)

    assert [item.outcome for item in report.items] == [PROCESSED, ERROR, PROCESSED]
    assert "disk full" in report.items[1].error
    assert sorted(path.name for path in destination.iterdir()) == ["a.jpg", "c.jpg"]


def test_unexpected_failure_is_reported_as_error(dirs, make_image, monkeypatch: pytest.MonkeyPatch) -> None:
    source, destination = dirs
    make_image(source / "a.png")
    make_image(source / "b.png")

    def explode(path, params):
        if Path(path).name == "a.png":
            raise RuntimeError("boom")
        return normalize_file(path, params)

    monkeypatch.setattr(batch, "normalize_file", explode)

    report = run_batch(source, destination)

    assert [(item.outcome, item.error) for item in report.items] == [(ERROR, "boom"), (PROCESSED, None)]
