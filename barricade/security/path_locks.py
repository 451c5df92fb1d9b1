"""
Per-Path Locks
==============

Single-writer discipline for dispositions: every operation that moves or
destroys a file holds that file's lock for its whole duration.
"""

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Set, Union

from barricade.utils.exceptions import ErrorCode, FileAccessError
from barricade.utils.logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def refuse_symlink(path: PathLike) -> None:
    """Reject a symbolic link as the subject of a move or destroy.

    Acting on a link would move or trash only the link while the target
    stays in place, or overwrite a target outside the locked path.

    Raises:
        FileAccessError: If ``path`` is a symbolic link.
    """
    if Path(path).is_symlink():
        raise FileAccessError(
            "Refusing to act on a symbolic link",
            file_path=str(path),
            error_code=ErrorCode.SYMLINK_REFUSED
        )


class PathLockRegistry:
    """Hands out one re-entrant lock per normalized path.

    Locks are created on demand and dropped when no holder or waiter
    remains, so the registry does not grow with every file ever touched.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._users: Dict[str, int] = {}
        self._held: Set[str] = set()
        self._depth: Dict[str, int] = {}

    @staticmethod
    def _key(path: PathLike) -> str:
        return str(Path(path).expanduser().absolute())

    @contextmanager
    def hold(self, *paths: PathLike) -> Iterator[None]:
        """Hold the locks for ``paths`` (acquired in sorted order).

        Example:
            with locks.hold(source, destination):
                ...
        """
        keys = sorted({self._key(p) for p in paths})
        acquired = []
        try:
            for key in keys:
                lock = self._checkout(key)
                lock.acquire()
                acquired.append(key)
                with self._guard:
                    self._held.add(key)
                    self._depth[key] = self._depth.get(key, 0) + 1
            yield
        finally:
            for key in reversed(acquired):
                with self._guard:
                    self._depth[key] -= 1
                    if self._depth[key] == 0:
                        del self._depth[key]
                        self._held.discard(key)
                self._locks[key].release()
                self._checkin(key)

    def is_locked(self, path: PathLike) -> bool:
        """Whether some disposition currently holds ``path``."""
        with self._guard:
            return self._key(path) in self._held

    def _checkout(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]
