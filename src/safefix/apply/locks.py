"""Per-file locks so overlapping fixes on one file serialize."""

from __future__ import annotations

import os
import threading
from collections import defaultdict
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Iterable, Iterator


class PathLocks:
    """Exclusive locks keyed by real path.

    Symlinks are followed, so every spelling of one file maps to the same
    lock. Several paths are always acquired in sorted order to avoid
    deadlocks between fixes that share more than one file.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[Path, threading.Lock] = defaultdict(threading.Lock)

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._guard:
            return self._locks[_real(path)]

    @contextmanager
    def hold(self, paths: Iterable[Path]) -> Iterator[None]:
        with ExitStack() as stack:
            for path in sorted({_real(p) for p in paths}, key=str):
                lock = self._lock_for(path)
                lock.acquire()
                stack.callback(lock.release)
            yield


def _real(path: Path) -> Path:
    return Path(os.path.realpath(path))
