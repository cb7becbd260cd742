from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional

_log = logging.getLogger(__name__)


def _path_key(path: Path) -> str:
    try:
        return str(Path(str(path)).resolve())
    except Exception:
        return str(path)


@dataclass(frozen=True)
class RecordGuard:
    """Proof that the holder owns the read-modify-write section for ``path``."""

    path: Path
    key: str
    _lock: threading.Lock

    def covers(self, path: Path) -> bool:
        return self.key == _path_key(path) and self._lock.locked()


@dataclass
class _PathLock:
    lock: threading.Lock
    users: int = 0


class RecordLocks:
    """Per-path exclusive locks for record and counter files.

    Only guards callers sharing one ``RecordLocks`` instance inside a single
    process; other processes touching the same files are not coordinated.
    A path's lock is dropped once no caller holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, _PathLock] = {}
        self._guard = threading.Lock()

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = _PathLock(lock=threading.Lock())
                self._locks[key] = entry
            entry.users += 1
            return entry.lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                return
            entry.users -= 1
            if entry.users <= 0:
                del self._locks[key]

    def active_paths(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, path: Path) -> Iterator[RecordGuard]:
        key = _path_key(path)
        lock = self._checkout(key)
        try:
            lock.acquire()
            _log.debug("acquired record lock %s", key)
            try:
                yield RecordGuard(path=Path(path), key=key, _lock=lock)
            finally:
                lock.release()
                _log.debug("released record lock %s", key)
        finally:
            self._checkin(key)


def check_guard(path: Path, guard: Optional[RecordGuard]) -> None:
    if guard is None:
        return
    if not guard.covers(path):
        raise ValueError(f"record guard for {guard.path} does not cover {path}")
