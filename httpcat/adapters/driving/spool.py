"""Spool directory payload source.

Producers drop gzip-compressed files into a directory; the dispatcher
delivers them oldest first. A file is removed (or moved to ``done_dir``)
only after a host accepted it, so a crash or shutdown mid-delivery
leaves it in place for the next run.

Producer contract: write each payload under a name the pattern does not
match (``batch.gz.tmp``) and rename it into place when complete. Files
modified less than ``settle_sec`` ago are skipped as well, so a producer
writing straight to ``*.gz`` is not read half-way through and rejected.
"""

import logging
import shutil
import stat
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from httpcat.ports.payload import PayloadSourcePort

__all__ = ["SpoolDirectory", "REJECTED_SUFFIX", "DEFAULT_SETTLE_SEC"]

logger = logging.getLogger(__name__)

REJECTED_SUFFIX = ".rejected"
DEFAULT_SETTLE_SEC = 2.0


class SpoolDirectory(PayloadSourcePort):
    """Payload source backed by files in one directory."""

    def __init__(
        self,
        path: str | Path,
        *,
        pattern: str = "*.gz",
        done_dir: str | Path | None = None,
        settle_sec: float = DEFAULT_SETTLE_SEC,
    ) -> None:
        """Initialize the spool.

        Args:
            path: Directory to poll.
            pattern: Glob selecting payload files.
            done_dir: Where delivered files go; deleted when None.
            settle_sec: Minimum age, by modification time, before a file
                is offered for delivery. 0 offers files immediately.

        Raises:
            ValueError: If ``path`` is not a directory or ``settle_sec``
                is negative.
        """
        self.path = Path(path)
        if not self.path.is_dir():
            raise ValueError(f"Spool directory not found: {self.path}")
        if settle_sec < 0:
            raise ValueError(f"Settle time must be >= 0 (got: {settle_sec})")
        self.pattern = pattern
        self.settle_sec = settle_sec
        self.done_dir = Path(done_dir) if done_dir is not None else None
        if self.done_dir is not None:
            self.done_dir.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        return self.path / key

    def poll(self) -> list[str]:
        """Return names of settled files, oldest modification time first.

        Files still being written (modified within ``settle_sec``) and
        files removed while the directory is scanned are skipped.
        """
        cutoff = time.time() - self.settle_sec
        pending: list[tuple[float, str]] = []
        for p in self.path.glob(self.pattern):
            try:
                st = p.stat()
            except FileNotFoundError:
                logger.debug(f"{p.name} vanished while polling")
                continue
            if not stat.S_ISREG(st.st_mode):
                continue
            if st.st_mtime > cutoff:
                logger.debug(f"{p.name} not settled yet")
                continue
            pending.append((st.st_mtime, p.name))
        pending.sort()
        return [name for _, name in pending]

    @contextmanager
    def open(self, key: str) -> Iterator[BinaryIO]:
        with self._resolve(key).open("rb") as f:
            yield f

    def ack(self, key: str) -> None:
        """Remove a delivered file, or move it to ``done_dir``."""
        src = self._resolve(key)
        if self.done_dir is None:
            src.unlink(missing_ok=True)
        else:
            shutil.move(src, self.done_dir / key)
        logger.debug(f"Acked {key}")

    def reject(self, key: str) -> None:
        """Rename an undeliverable file so it is not polled again."""
        src = self._resolve(key)
        dst = src.with_name(src.name + REJECTED_SUFFIX)
        src.rename(dst)
        logger.warning(f"Rejected {key}, kept as {dst.name}")
