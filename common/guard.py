"""Per-vault exclusive operation lock."""
from __future__ import annotations

from contextlib import contextmanager
from threading import Lock, get_ident
from typing import Iterator, Optional

from common.errors import StateError


class OperationLock:
    """Serializes public operations on one vault instance.

    Other threads block until the current operation finishes. A nested call
    from the thread that already holds the lock (an adapter calling back into
    the vault mid-operation) is rejected instead of deadlocking.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._owner: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._owner is not None

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        if self._owner == get_ident():
            raise StateError("Reentrancy", f"{operation} called while another operation is in progress")
        with self._lock:
            self._owner = get_ident()
            try:
                yield
            finally:
                self._owner = None
