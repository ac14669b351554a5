from __future__ import annotations

import threading
import weakref
from contextlib import contextmanager
from typing import Hashable, Iterator


class _KeyLock:
    __slots__ = ("rlock", "__weakref__")

    def __init__(self):
        self.rlock = threading.RLock()


class KeyedLock:
    """One re-entrant lock per key, created on demand.

    Settlement and recovery for the same (user, project) run one at a time in
    this process; the unique key on payroll periods covers other processes.
    Locks are held weakly: a key's entry lives only while some thread holds
    or waits on it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[Hashable, _KeyLock] = weakref.WeakValueDictionary()

    def _lock_for(self, key: Hashable) -> _KeyLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = _KeyLock()
                self._locks[key] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        lock = self._lock_for(key)
        with lock.rlock:
            yield
