"""
Model version identifiers.

Versions are `vYYYYMMDD-HHMMSS` from the UTC clock. When the same second is
handed out twice by one source, a sequence suffix is appended
(`v20250101-120000-1`). Versions written by other processes are only known
to the registry, so a training run also checks the registry and moves past
any suffix already taken there (see `next_free_version`).
"""
from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Tuple

STAMP_FORMAT = "v%Y%m%d-%H%M%S"
STAMP_LENGTH = len("vYYYYMMDD-HHMMSS")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def version_stamp(model_version: str) -> str:
    """`v20250101-120000-3` -> `v20250101-120000`."""
    return model_version[:STAMP_LENGTH]


def next_free_version(model_version: str, taken: Iterable[str]) -> str:
    """
    `model_version` if it is not in `taken`, otherwise the first
    `<stamp>-N` with the same stamp that is free.
    """
    taken = set(taken)
    if model_version not in taken:
        return model_version
    stamp = version_stamp(model_version)
    sequence = 1
    while f"{stamp}-{sequence}" in taken:
        sequence += 1
    return f"{stamp}-{sequence}"


class VersionSource:
    """Hands out unique model versions from an injectable clock."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or utc_now
        self._lock = threading.Lock()
        self._last_stamp: Optional[str] = None
        self._sequence = 0

    def next_version(self) -> Tuple[str, datetime]:
        """Return (model_version, created_at)."""
        with self._lock:
            now = self._clock()
            stamp = now.strftime(STAMP_FORMAT)
            if stamp == self._last_stamp:
                self._sequence += 1
                return f"{stamp}-{self._sequence}", now
            self._last_stamp = stamp
            self._sequence = 0
            return stamp, now


# Process-wide source used when callers do not inject one
default_version_source = VersionSource()
