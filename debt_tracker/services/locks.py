"""Per-instrument locks serializing mutating operations"""

import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator

_registry_lock = threading.Lock()
_locks: Dict[uuid.UUID, threading.Lock] = {}


def _lock_for(instrument_id: uuid.UUID) -> threading.Lock:
    with _registry_lock:
        lock = _locks.get(instrument_id)
        if lock is None:
            lock = _locks[instrument_id] = threading.Lock()
        return lock


@contextmanager
def instrument_lock(instrument_id: uuid.UUID) -> Iterator[None]:
    """Hold the single-writer lock of one instrument for the enclosed block"""
    lock = _lock_for(instrument_id)
    with lock:
        yield


def forget(instrument_id: uuid.UUID) -> None:
    """Drop the lock of a deleted instrument"""
    with _registry_lock:
        _locks.pop(instrument_id, None)
