from __future__ import annotations

import threading
import time
from datetime import UTC, datetime


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


class EpochMillisClock:
    """Epoch milliseconds that never repeat within the process.

    Post and comment ids embed the creation time in milliseconds, so two writes
    landing in the same millisecond must still receive distinct values.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def next(self) -> int:
        with self._lock:
            current = int(time.time() * 1000)
            if current <= self._last:
                current = self._last + 1
            self._last = current
            return current


EPOCH_MILLIS = EpochMillisClock()
