from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path

from ..util.time import from_timestamp

LOGGER = logging.getLogger(__name__)


class CacheStore:
    """File-backed storage for a single cached artifact.

    Reads never lock the file, so a concurrent writer only risks a short read.
    Writes truncate and replace the whole file; with ``atomic`` the new bytes
    land in a sibling temp file that is moved over the artifact.
    """

    def __init__(self, path: Path, atomic: bool = False) -> None:
        self.path = Path(path)
        self.atomic = atomic

    def exists(self) -> bool:
        return self.path.is_file()

    def last_write_time(self) -> datetime:
        return from_timestamp(self.path.stat().st_mtime)

    def read(self) -> bytes:
        return self.path.read_bytes()

    def read_text(self) -> str:
        return self.read().decode("utf-8")

    def write(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.atomic:
            with self.path.open("wb") as fh:
                fh.write(data)
            return

        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
            os.replace(tmp_name, self.path)
        except OSError:
            LOGGER.warning("Atomic write of %s failed; removing %s", self.path, tmp_name)
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def write_text(self, text: str) -> None:
        self.write(text.encode("utf-8"))
