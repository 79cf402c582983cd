# src/taiga_cli/storage/cache_store.py

from __future__ import annotations

import contextlib
import hashlib
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

from ..errors import CacheCorruption

logger = logging.getLogger(__name__)

SESSION_KEY = "session"

T = TypeVar("T")


def project_key(project_id: int) -> str:
    return f"project:{int(project_id)}"


def snapshot_key(project_id: int) -> str:
    return f"tasks:{int(project_id)}"


class CacheStore:
    """
    Key -> bytes store on local disk.

    File names are the SHA-1 hex digest of the logical key, so arbitrary keys
    map to fixed-length safe names. Writes go through a temp file and
    os.replace, so an interrupted write never leaves a half-written record.

    No locking: concurrent processes sharing a directory get last-writer-wins.
    """

    def __init__(self, cache_dir: str | Path) -> None:
        self._dir = Path(cache_dir).expanduser()
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.debug("CacheStore ready dir=%s", self._dir)

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, key: str) -> Path:
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()
        return self._dir / digest

    def put(self, key: str, value: bytes) -> None:
        path = self.path_for(key)
        tmp = path.with_name(path.name + ".tmp")
        try:
            tmp.write_bytes(value)
            with contextlib.suppress(OSError):
                # Session records hold tokens (and maybe a password): keep them private.
                os.chmod(tmp, 0o600)
            os.replace(tmp, path)
        except OSError:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise
        logger.debug("Cache write key=%s bytes=%d", key, len(value))

    def get(self, key: str) -> bytes | None:
        path = self.path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheCorruption(f"could not read cache entry {key!r}: {e}", path=path) from e

    def load(self, key: str, decode: Callable[[bytes], T]) -> T | None:
        """Read and decode one record; decode failures carry the file path."""
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return decode(raw)
        except CacheCorruption as e:
            if e.path is None:
                e.path = self.path_for(key)
            logger.error("Corrupt cache entry key=%s path=%s: %s", key, e.path, e)
            raise

    def delete(self, key: str) -> None:
        with contextlib.suppress(FileNotFoundError):
            self.path_for(key).unlink()
            logger.debug("Cache delete key=%s", key)

    def clear(self) -> int:
        """Remove every cache record. Returns how many files were deleted."""
        removed = 0
        for entry in self._dir.iterdir():
            # Only our own records: 40-char hex names (and stray temp files).
            name = entry.name.removesuffix(".tmp")
            if entry.is_file() and len(name) == 40 and all(c in "0123456789abcdef" for c in name):
                entry.unlink()
                removed += 1
        logger.info("Cache cleared dir=%s removed=%d", self._dir, removed)
        return removed
