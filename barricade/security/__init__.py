"""Security module for hashing, shredding and per-path locking."""

from .hasher import ContentHasher
from .path_locks import PathLockRegistry, refuse_symlink
from .secure_delete import ShredEngine, ShredResult, STORAGE_CAVEAT

__all__ = [
    "ContentHasher",
    "PathLockRegistry",
    "refuse_symlink",
    "ShredEngine",
    "ShredResult",
    "STORAGE_CAVEAT",
]
