from __future__ import annotations

import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Set
from urllib.parse import quote

from .errors import StorageUnavailable

logger = logging.getLogger(__name__)


class KeyValueStorage(ABC):
    """Durable string storage addressed by key.

    No atomicity is offered across keys. A get issued after a completed set on
    the same key returns the written value. Failures raise StorageUnavailable.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MemoryStorage(KeyValueStorage):
    """Thread-safe in-memory storage.

    fail_reads / fail_writes hold keys whose operations raise
    StorageUnavailable, which lets tests simulate a flaky device.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._lock = threading.RLock()
        self._data: Dict[str, str] = dict(initial or {})
        self.fail_reads: Set[str] = set()
        self.fail_writes: Set[str] = set()
        self.write_log: list[tuple[str, str]] = []

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            if key in self.fail_reads:
                raise StorageUnavailable(f"read failed for {key}")
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            if key in self.fail_writes:
                raise StorageUnavailable(f"write failed for {key}")
            self._data[key] = value
            self.write_log.append((key, value))

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def dump(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._data)


class FileStorage(KeyValueStorage):
    """Filesystem-backed storage, one file per key.

    Writes go through a temporary file and os.replace so a crash leaves either
    the old value or the new one, never a torn file.
    """

    SUFFIX = ".val"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        return self.root / (quote(key, safe="") + self.SUFFIX)

    def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageUnavailable(f"Failed to read {key}: {exc}") from exc

    def set(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=path.name, dir=self.root)
        except OSError as exc:
            raise StorageUnavailable(f"Failed to write {key}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            logger.debug("Wrote %s (%d chars)", path, len(value))
        except OSError as exc:
            raise StorageUnavailable(f"Failed to write {key}: {exc}") from exc
        finally:
            if os.path.exists(tmp_name):
                try:
                    os.remove(tmp_name)
                except OSError:
                    logger.debug("Could not remove temp file %s", tmp_name, exc_info=True)

    def delete(self, key: str) -> None:
        try:
            self.path_for(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailable(f"Failed to delete {key}: {exc}") from exc
