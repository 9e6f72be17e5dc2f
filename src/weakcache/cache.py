"""Reference-counted in-memory cache (process scoped).

Records stay cached while callers hold a handle to them. Once every handle
is gone (garbage collected or released explicitly) the record survives for
``min_ttl`` seconds before the sweep loop may drop it. ``max_ttl`` bounds the
absolute age of a record: unreferenced records are swept once it passes,
referenced ones are replaced on the next fetch of the same key.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import queue
import threading
import time
from typing import Any, Callable
import weakref

from .config import CacheConfig
from .errors import check_duration
from .hashing import KeyHasher

logger = logging.getLogger(__name__)


@dataclass
class _Record:
    key: str
    value: Any
    min_ttl: float
    expires_at: float | None
    refs: int = 0
    last_unref: float | None = None

    def is_expired(self, now: float) -> bool:
        # Unreferenced for longer than the grace period.
        if self.last_unref is not None and self.last_unref + self.min_ttl < now:
            return True
        if self.expires_at is not None and self.expires_at < now:
            return True
        return False


def _enqueue_unref(
    pending: queue.SimpleQueue,
    now: Callable[[], float],
    index: int,
    record: _Record,
) -> None:
    # Stamped here so the grace period starts at release, not when drained.
    pending.put((index, record, now()))


class Handle:
    """A live reference to a cached value.

    The record's reference count drops by one when the handle is garbage
    collected or released, whichever happens first.
    """

    def __init__(self, key: str, value: Any) -> None:
        self.key = key
        self.value = value
        self._finalizer: weakref.finalize | None = None

    @property
    def released(self) -> bool:
        return self._finalizer is not None and not self._finalizer.alive

    def release(self) -> None:
        if self._finalizer is not None:
            self._finalizer()

    def __enter__(self) -> "Handle":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        state = "released" if self.released else "live"
        return f"<Handle key={self.key!r} {state}>"


class Cache:
    def __init__(self, gc_interval: float, *, now: Callable[[], float] | None = None) -> None:
        self._gc_interval = check_duration("gc_interval", gc_interval, positive=True)
        self._now = now or time.monotonic
        self._hasher = KeyHasher()
        self._lock = threading.Lock()
        self._reachable: dict[int, _Record] = {}
        self._unreachable: dict[int, _Record] = {}
        # Finalizers may fire inside our own locked sections (cyclic GC), so
        # they only enqueue; SimpleQueue.put is safe to call re-entrantly.
        self._pending: queue.SimpleQueue[tuple[int, _Record, float]] = queue.SimpleQueue()
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name="weakcache-sweep", daemon=True)
        self._thread.start()

    @classmethod
    def from_config(cls, config: CacheConfig, *, now: Callable[[], float] | None = None) -> "Cache":
        return cls(config.gc_interval_seconds, now=now)

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def fetch(
        self,
        key: str,
        min_ttl: float,
        max_ttl: float,
        producer: Callable[[], Any],
    ) -> Handle:
        """Return a handle to the record for ``key``, calling ``producer`` on a miss.

        ``min_ttl`` is how long the record survives without references (0 = no
        grace period). ``max_ttl`` is its maximum lifetime (0 = unbounded).
        An expired record is dropped before ``producer`` runs; exceptions from
        ``producer`` propagate and leave the cache otherwise untouched.
        """
        min_ttl = check_duration("min_ttl", min_ttl)
        max_ttl = check_duration("max_ttl", max_ttl)
        index = self._hasher.index(key)

        with self._lock:
            self._drain_locked()
            now = self._now()
            record = self._lookup_locked(index, key, now)
            if record is None:
                value = producer()
                record = _Record(
                    key=key,
                    value=value,
                    min_ttl=min_ttl,
                    expires_at=now + max_ttl if max_ttl > 0 else None,
                )
                self._unreachable.pop(index, None)
                if self._reachable.pop(index, None) is not None:
                    logger.debug("Replaced record for key %r", key)
            elif self._unreachable.pop(index, None) is not None:
                record.last_unref = None
            record.refs += 1
            self._reachable[index] = record

        handle = Handle(key, record.value)
        finalizer = weakref.finalize(handle, _enqueue_unref, self._pending, self._now, index, record)
        finalizer.atexit = False
        handle._finalizer = finalizer
        return handle

    def sweep(self) -> int:
        """Drop expired unreferenced records; returns how many were dropped."""
        with self._lock:
            self._drain_locked()
            now = self._now()
            expired = [index for index, record in self._unreachable.items() if record.is_expired(now)]
            for index in expired:
                del self._unreachable[index]
            remaining = len(self._reachable) + len(self._unreachable)
        if expired:
            logger.debug("Swept %d expired record(s), %d remaining", len(expired), remaining)
        return len(expired)

    def len(self) -> int:
        with self._lock:
            self._drain_locked()
            return len(self._reachable) + len(self._unreachable)

    def __len__(self) -> int:
        return self.len()

    def close(self) -> None:
        """Stop the sweep loop. The cache itself stays usable."""
        self._stop.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join()

    def __enter__(self) -> "Cache":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _lookup_locked(self, index: int, key: str, now: float) -> _Record | None:
        record = self._unreachable.get(index)
        if record is None:
            record = self._reachable.get(index)
        if record is None:
            return None
        if record.key != key:
            logger.debug("Key %r collides with cached key %r", key, record.key)
            return None
        if record.is_expired(now):
            self._unreachable.pop(index, None)
            self._reachable.pop(index, None)
            logger.debug("Dropped expired record for key %r", key)
            return None
        return record

    def _drain_locked(self) -> None:
        while True:
            try:
                index, record, released_at = self._pending.get_nowait()
            except queue.Empty:
                return
            self._unref_locked(index, record, released_at)

    def _unref_locked(self, index: int, record: _Record, released_at: float) -> None:
        if self._reachable.get(index) is not record:
            # Expired or replaced while this handle was alive.
            return
        record.refs -= 1
        if record.refs > 0:
            return
        del self._reachable[index]
        record.last_unref = released_at
        self._unreachable[index] = record

    def _run(self) -> None:
        logger.debug("Sweep loop started (interval=%ss)", self._gc_interval)
        while not self._stop.wait(self._gc_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("Sweep failed")
        logger.debug("Sweep loop stopped")
