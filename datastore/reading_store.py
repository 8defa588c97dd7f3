from __future__ import annotations
from threading import Lock
from typing import Optional

from app.schemas import Reading


class ReadingStore:
    """Holds the single most recent reading.

    Writers replace the whole reading under the lock and readers get a deep
    copy, so a reader sees either the previous or the new reading in full.
    """

    def __init__(self) -> None:
        self._latest: Optional[Reading] = None
        self._lock = Lock()

    def set(self, reading: Reading) -> None:
        snapshot = reading.model_copy(deep=True)
        with self._lock:
            self._latest = snapshot

    def get(self) -> Optional[Reading]:
        with self._lock:
            latest = self._latest
        if latest is None:
            return None
        return latest.model_copy(deep=True)
