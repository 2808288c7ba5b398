from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Optional, Sequence, Tuple

from .errors import StorageError
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

Write = Tuple[str, str]


@dataclass(frozen=True)
class WriteFailure:
    """A write that did not reach storage, plus the writes abandoned after it."""

    key: str
    error: Exception
    skipped_keys: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class WriteBatch:
    writes: Tuple[Write, ...]
    label: str = ""


class WriteBehindQueue:
    """Applies write batches to storage on a single background thread.

    Batches are applied in submission order and writes inside a batch in list
    order, so callers control the on-disk sequence. When a write fails the
    remainder of its batch is abandoned: later writes in a batch are assumed to
    depend on the earlier ones having landed. Failures are not retried; they are
    handed to on_error.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        on_error: Optional[Callable[[WriteFailure], None]] = None,
        name: str = "realdream-writer",
    ) -> None:
        self._storage = storage
        self._on_error = on_error
        self._name = name
        self._cond = threading.Condition(threading.RLock())
        self._pending: Deque[WriteBatch] = deque()
        self._in_flight = 0
        self._closed = False
        self._thread: Optional[threading.Thread] = None

    # ---------------------- Public API ----------------------
    def submit(self, writes: Sequence[Write], label: str = "") -> None:
        """Queue an ordered batch of (key, value) writes and return immediately."""
        if not writes:
            return
        batch = WriteBatch(writes=tuple(writes), label=label)
        with self._cond:
            if self._closed:
                raise RuntimeError("WriteBehindQueue is closed")
            self._pending.append(batch)
            self._ensure_worker()
            self._cond.notify_all()
        logger.debug("Queued write batch %r: %s", label, [k for k, _ in batch.writes])

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Block until every queued batch has been attempted. Returns False on timeout."""
        with self._cond:
            return self._cond.wait_for(self._idle, timeout)

    def close(self, timeout: Optional[float] = None) -> bool:
        """Drain outstanding writes and stop the worker thread."""
        drained = self.flush(timeout)
        with self._cond:
            self._closed = True
            self._cond.notify_all()
            thread = self._thread
        if thread is not None:
            thread.join(timeout)
        if not drained:
            logger.warning("Write queue closed with %d batch(es) still pending", self.pending)
        return drained

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._pending) + self._in_flight

    @property
    def closed(self) -> bool:
        return self._closed

    # ---------------------- Internal ----------------------
    def _idle(self) -> bool:
        return not self._pending and self._in_flight == 0

    def _ensure_worker(self) -> None:
        if self._thread is None or not self._thread.is_alive():
            self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
            self._thread.start()

    def _run(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._pending or self._closed)
                if not self._pending:
                    return
                batch = self._pending.popleft()
                self._in_flight += 1
            try:
                self._apply(batch)
            finally:
                with self._cond:
                    self._in_flight -= 1
                    self._cond.notify_all()

    def _apply(self, batch: WriteBatch) -> None:
        for idx, (key, value) in enumerate(batch.writes):
            try:
                self._storage.set(key, value)
            except StorageError as exc:
                skipped = tuple(k for k, _ in batch.writes[idx + 1:])
                logger.error("Write of %s failed (%s); abandoning %d later write(s) in batch %r",
                             key, exc, len(skipped), batch.label)
                self._report(WriteFailure(key=key, error=exc, skipped_keys=skipped))
                return
            except Exception as exc:  # storage backends are external code
                skipped = tuple(k for k, _ in batch.writes[idx + 1:])
                logger.exception("Unexpected error writing %s", key)
                self._report(WriteFailure(key=key, error=exc, skipped_keys=skipped))
                return
        logger.debug("Write batch %r applied", batch.label)

    def _report(self, failure: WriteFailure) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(failure)
        except Exception:
            logger.exception("Write failure observer failed")
