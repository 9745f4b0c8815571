"""Tests for the spool directory payload source."""

import gzip
import os
import time
from pathlib import Path

import pytest

from httpcat.adapters.driving.spool import REJECTED_SUFFIX, SpoolDirectory

__all__ = []


def write_payload(directory: Path, name: str, mtime: float, data: bytes = b"{}") -> Path:
    """Write a gzip payload file with a fixed modification time."""
    path = directory / name
    path.write_bytes(gzip.compress(data))
    os.utime(path, (mtime, mtime))
    return path


def test_poll_lists_payloads_oldest_first(tmp_path: Path) -> None:
    """Only matching files are returned, ordered by modification time."""
    write_payload(tmp_path, "b.gz", 2_000)
    write_payload(tmp_path, "a.gz", 3_000)
    write_payload(tmp_path, "c.gz", 1_000)
    (tmp_path / "notes.txt").write_text("ignored")
    (tmp_path / "sub.gz").mkdir()

    assert SpoolDirectory(tmp_path).poll() == ["c.gz", "b.gz", "a.gz"]


def test_open_reads_raw_bytes(tmp_path: Path) -> None:
    """open() yields the compressed bytes untouched."""
    write_payload(tmp_path, "p.gz", 1_000, b"payload")
    spool = SpoolDirectory(tmp_path)

    with spool.open("p.gz") as stream:
        assert gzip.decompress(stream.read()) == b"payload"


def test_ack_deletes_payload(tmp_path: Path) -> None:
    """Without done_dir, acked payloads are removed."""
    path = write_payload(tmp_path, "p.gz", 1_000)
    spool = SpoolDirectory(tmp_path)

    spool.ack("p.gz")

    assert not path.exists()
    assert spool.poll() == []


def test_ack_moves_payload_to_done_dir(tmp_path: Path) -> None:
    """With done_dir, acked payloads are kept there."""
    spool_dir = tmp_path / "spool"
    spool_dir.mkdir()
    write_payload(spool_dir, "p.gz", 1_000)
    spool = SpoolDirectory(spool_dir, done_dir=tmp_path / "done")

    spool.ack("p.gz")

    assert (tmp_path / "done" / "p.gz").exists()
    assert spool.poll() == []


def test_reject_renames_payload_out_of_the_poll(tmp_path: Path) -> None:
    """Rejected payloads stay on disk but are never polled again."""
    write_payload(tmp_path, "bad.gz", 1_000)
    spool = SpoolDirectory(tmp_path)

    spool.reject("bad.gz")

    assert (tmp_path / f"bad.gz{REJECTED_SUFFIX}").exists()
    assert spool.poll() == []


def test_missing_directory_is_rejected(tmp_path: Path) -> None:
    """The spool directory must exist."""
    with pytest.raises(ValueError, match="Spool directory not found"):
        SpoolDirectory(tmp_path / "missing")


def test_recently_modified_file_waits_until_settled(tmp_path: Path) -> None:
    """A file a producer may still be writing is held back, not offered."""
    data = gzip.compress(b"x" * 10_000)
    path = tmp_path / "p.gz"
    path.write_bytes(data[: len(data) // 2])
    spool = SpoolDirectory(tmp_path, settle_sec=30)

    assert spool.poll() == []

    path.write_bytes(data)
    settled = time.time() - 60
    os.utime(path, (settled, settled))

    assert spool.poll() == ["p.gz"]


def test_settled_and_fresh_files_are_split(tmp_path: Path) -> None:
    """Only files older than the settle window are listed."""
    write_payload(tmp_path, "old.gz", time.time() - 60)
    write_payload(tmp_path, "new.gz", time.time())

    assert SpoolDirectory(tmp_path, settle_sec=30).poll() == ["old.gz"]


def test_zero_settle_offers_files_immediately(tmp_path: Path) -> None:
    """settle_sec=0 disables the wait."""
    write_payload(tmp_path, "p.gz", time.time() - 1)

    assert SpoolDirectory(tmp_path, settle_sec=0).poll() == ["p.gz"]


def test_negative_settle_is_rejected(tmp_path: Path) -> None:
    """A negative settle window is a configuration error."""
    with pytest.raises(ValueError, match="Settle time"):
        SpoolDirectory(tmp_path, settle_sec=-1)


def test_poll_skips_file_removed_during_scan(tmp_path: Path, monkeypatch) -> None:
    """A file deleted between listing and stat is skipped, not raised."""
    write_payload(tmp_path, "kept.gz", 1_000)
    listed = [tmp_path / "gone.gz", tmp_path / "kept.gz"]
    monkeypatch.setattr(Path, "glob", lambda self, pattern: iter(listed))

    assert SpoolDirectory(tmp_path).poll() == ["kept.gz"]
