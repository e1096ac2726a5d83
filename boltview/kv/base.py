"""Abstract read-only interface over a hierarchical bucket store."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Iterator


@dataclass
class BucketStats:
    """Page and key accounting for a bucket and everything below it.

    Field meanings follow bbolt's ``BucketStats``. Backends without a
    paged layout report zero page counts.
    """

    branch_page_n: int = 0
    branch_overflow_n: int = 0
    leaf_page_n: int = 0
    leaf_overflow_n: int = 0
    key_n: int = 0
    depth: int = 0
    branch_inuse: int = 0
    leaf_inuse: int = 0
    bucket_n: int = 0
    inline_bucket_n: int = 0
    inline_bucket_inuse: int = 0

    def add(self, other: "BucketStats") -> None:
        """Accumulate ``other`` into this instance; depth takes the maximum."""
        self.branch_page_n += other.branch_page_n
        self.branch_overflow_n += other.branch_overflow_n
        self.leaf_page_n += other.leaf_page_n
        self.leaf_overflow_n += other.leaf_overflow_n
        self.key_n += other.key_n
        if self.depth < other.depth:
            self.depth = other.depth
        self.branch_inuse += other.branch_inuse
        self.leaf_inuse += other.leaf_inuse
        self.bucket_n += other.bucket_n
        self.inline_bucket_n += other.inline_bucket_n
        self.inline_bucket_inuse += other.inline_bucket_inuse


class Bucket(ABC):
    """A named container of keys mapping to values or nested buckets.

    Handles are only valid while the snapshot that produced them is open.
    """

    @abstractmethod
    def bucket(self, name: bytes) -> "Bucket | None":
        """Return the direct child bucket ``name``, or None."""

    @abstractmethod
    def get(self, key: bytes) -> bytes | None:
        """Return the value for ``key``, or None if absent or a bucket."""

    @abstractmethod
    def items(self) -> Iterator[tuple[bytes, bytes | None]]:
        """Iterate direct entries; a None value marks a nested bucket."""

    @abstractmethod
    def stats(self) -> BucketStats:
        """Structural statistics for this bucket."""


class Snapshot(ABC):
    """A consistent, read-only, point-in-time view of a store."""

    @abstractmethod
    def bucket(self, name: bytes) -> Bucket | None:
        """Return the top-level bucket ``name``, or None."""

    @abstractmethod
    def buckets(self) -> Iterator[tuple[bytes, Bucket]]:
        """Iterate top-level buckets in enumeration order."""


class Backend(ABC):
    """A store that hands out read-only snapshots."""

    @abstractmethod
    def view(self) -> AbstractContextManager[Snapshot]:
        """Open a snapshot, released when the context exits."""

    @abstractmethod
    def info(self) -> dict[str, Any]:
        """Database-level facts (location, size, layout)."""


def encode_name(name: str | bytes) -> bytes:
    """Encode a bucket or key name to its stored bytes."""
    if isinstance(name, bytes):
        return name
    return name.encode("utf-8", "surrogateescape")


def decode_name(raw: bytes) -> str:
    """Decode stored name bytes; undecodable bytes survive a round trip."""
    return raw.decode("utf-8", "surrogateescape")
