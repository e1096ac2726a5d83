"""In-memory hierarchical store."""

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Sequence

from .base import Backend, Bucket, BucketStats, Snapshot, encode_name

Node = dict[bytes, Any]


class MemoryBucket(Bucket):
    """A bucket backed by a nested dict (``dict`` children are buckets)."""

    def __init__(self, node: Node) -> None:
        self.node = node

    def bucket(self, name: bytes) -> Bucket | None:
        child = self.node.get(name)
        if isinstance(child, dict):
            return MemoryBucket(child)
        return None

    def get(self, key: bytes) -> bytes | None:
        value = self.node.get(key)
        if isinstance(value, bytes):
            return value
        return None

    def items(self) -> Iterator[tuple[bytes, bytes | None]]:
        for key in sorted(self.node):
            value = self.node[key]
            yield key, None if isinstance(value, dict) else value

    def stats(self) -> BucketStats:
        return _node_stats(self.node)


class MemorySnapshot(Snapshot):
    """A snapshot over a private copy of a bucket tree."""

    def __init__(self, root: Node) -> None:
        self.root = root

    def bucket(self, name: bytes) -> Bucket | None:
        return MemoryBucket(self.root).bucket(name)

    def buckets(self) -> Iterator[tuple[bytes, Bucket]]:
        for name in sorted(self.root):
            yield name, MemoryBucket(self.root[name])


class Memory(Backend):
    """A memory-backed bucket store.

    Args:
        tree: Optional nested mapping to load. Mappings become buckets,
            bytes become values. Top-level entries must be mappings.
    """

    def __init__(self, tree: Mapping[Any, Any] | None = None) -> None:
        self.root: Node = {}
        self._lock = threading.Lock()
        for name, child in (tree or {}).items():
            if not isinstance(child, Mapping):
                raise TypeError(f"Top-level entry {name!r} must be a bucket")
            self._load(self.root, name, child)

    def _load(self, node: Node, name: str | bytes, child: Any) -> None:
        if isinstance(child, Mapping):
            sub: Node = node.setdefault(encode_name(name), {})
            for key, value in child.items():
                self._load(sub, key, value)
        elif isinstance(child, bytes):
            node[encode_name(name)] = child
        else:
            raise TypeError(f"Expected bytes for {name!r}, got {type(child).__name__}")

    def _walk(self, path: Sequence[str | bytes], create: bool) -> Node:
        if not path:
            raise ValueError("bucket path must not be empty")
        node = self.root
        for name in path:
            raw = encode_name(name)
            child = node.get(raw)
            if child is None and create:
                child = node[raw] = {}
            if not isinstance(child, dict):
                raise ValueError(f"{name!r} is not a bucket")
            node = child
        return node

    def create_bucket(self, *path: str | bytes) -> None:
        """Create the bucket at ``path`` along with any missing parents."""
        with self._lock:
            self._walk(path, create=True)

    def put(self, bucket_path: Sequence[str | bytes], key: str | bytes, value: bytes) -> None:
        """Set ``key`` to ``value`` inside an existing bucket."""
        if not isinstance(value, bytes):
            raise TypeError(f"Expected bytes, got {type(value).__name__}")
        with self._lock:
            node = self._walk(bucket_path, create=False)
            raw = encode_name(key)
            if isinstance(node.get(raw), dict):
                raise ValueError(f"{key!r} is a bucket")
            node[raw] = value

    @contextmanager
    def view(self) -> Iterator[Snapshot]:
        with self._lock:
            root = copy_tree(self.root)
        yield MemorySnapshot(root)

    def info(self) -> dict[str, Any]:
        return {"storage": "memory", "bucket_count": len(self.root)}


def copy_tree(node: Node) -> Node:
    """Copy the dict structure of a bucket tree; values are shared."""
    return {
        key: copy_tree(value) if isinstance(value, dict) else value
        for key, value in node.items()
    }


def _node_stats(node: Node) -> BucketStats:
    stats = BucketStats(bucket_n=1, key_n=len(node), depth=1)
    sub = BucketStats()
    for key, value in node.items():
        if isinstance(value, dict):
            stats.leaf_inuse += len(key)
            sub.add(_node_stats(value))
        else:
            stats.leaf_inuse += len(key) + len(value)
    stats.depth += sub.depth
    stats.add(sub)
    return stats
