"""Disk-backed bucket store using diskcache."""

import logging
import os
import sqlite3
from contextlib import contextmanager
from typing import Any, Iterator

from ..errors import StoreUnavailable
from .base import Backend, Snapshot
from .memory import MemorySnapshot, Node

logger = logging.getLogger(__name__)

_MISSING = object()


class Disk(Backend):
    """Bucket store kept in a diskcache directory (SQLite + files).

    Keys are tuples of byte segments: ``(*bucket_path, key)`` maps to a
    bytes value, and ``(*bucket_path,)`` mapped to None records a bucket
    that may be empty. Every proper prefix of a key is a bucket.

    Only existing caches are opened. Views read inside a deferred SQLite
    transaction, so they see one committed state and never take the
    write lock.
    """

    def __init__(self, directory: str) -> None:
        if not os.path.isdir(directory):
            raise StoreUnavailable(f"cache directory does not exist: {directory}")
        from diskcache import Cache as DiskCache
        from diskcache.core import DBNAME

        if not os.path.isfile(os.path.join(directory, DBNAME)):
            raise StoreUnavailable(f"not a cache directory (no {DBNAME}): {directory}")

        self.directory = directory
        try:
            self.store = DiskCache(directory)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"cannot open cache {directory}: {e}") from e

    @contextmanager
    def view(self) -> Iterator[Snapshot]:
        root: Node = {}
        sql = self.store._sql
        try:
            sql("BEGIN")
            try:
                for key in self.store.iterkeys():
                    if not _is_path(key):
                        logger.warning("skipping non-path cache key %r", key)
                        continue
                    value = self.store.get(key, default=_MISSING)
                    if value is _MISSING:
                        continue
                    _insert(root, key, value)
            finally:
                sql("COMMIT")
        except sqlite3.Error as e:
            raise StoreUnavailable(f"cannot read cache {self.directory}: {e}") from e
        yield MemorySnapshot(root)

    def info(self) -> dict[str, Any]:
        try:
            return {
                "storage": "disk",
                "path": self.directory,
                "size": self.store.volume(),
                "entries": len(self.store),
            }
        except sqlite3.Error as e:
            raise StoreUnavailable(f"cannot read cache {self.directory}: {e}") from e

    def close(self) -> None:
        self.store.close()


def _is_path(key: Any) -> bool:
    return (
        isinstance(key, tuple)
        and len(key) > 0
        and all(isinstance(part, bytes) for part in key)
    )


def _insert(root: Node, key: tuple[bytes, ...], value: Any) -> None:
    if value is None:
        parents, leaf = key, None
    elif isinstance(value, bytes):
        if len(key) < 2:
            raise StoreUnavailable(f"value stored outside a bucket: {key!r}")
        parents, leaf = key[:-1], key[-1]
    else:
        raise StoreUnavailable(
            f"expected bytes for {key!r}, got {type(value).__name__}"
        )

    node = root
    for name in parents:
        child = node.setdefault(name, {})
        if not isinstance(child, dict):
            raise StoreUnavailable(f"{name!r} is both a value and a bucket in {key!r}")
        node = child

    if leaf is not None:
        if isinstance(node.get(leaf), dict):
            raise StoreUnavailable(f"{leaf!r} is both a value and a bucket in {key!r}")
        node[leaf] = value
