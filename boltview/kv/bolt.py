"""Read-only reader for bbolt database files.

The file is a sequence of fixed-size pages. Pages 0 and 1 hold two copies
of the meta record; the valid one with the highest transaction id wins.
Buckets are B+trees of branch and leaf pages. A small bucket without
sub-buckets is stored inline: its leaf page lives inside the parent's
value right after the bucket header.
"""

import logging
import mmap
import os
import struct
from bisect import bisect_right
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterator

from ..errors import StoreUnavailable
from .base import Backend, Bucket, BucketStats, Snapshot

logger = logging.getLogger(__name__)

MAGIC = 0xED0CDAED
VERSION = 2

PAGE_HEADER = struct.Struct("<QHHI")  # id, flags, count, overflow
META = struct.Struct("<IIIIQQQQQQ")  # magic, version, page size, flags, root, sequence, freelist, pgid, txid, checksum
LEAF_ELEMENT = struct.Struct("<IIII")  # flags, pos, ksize, vsize
BRANCH_ELEMENT = struct.Struct("<IIQ")  # pos, ksize, pgid
BUCKET_HEADER = struct.Struct("<QQ")  # root, sequence

BRANCH_PAGE = 0x01
LEAF_PAGE = 0x02
META_PAGE = 0x04
FREELIST_PAGE = 0x10

BUCKET_LEAF = 0x01

NO_FREELIST = 0xFFFFFFFFFFFFFFFF
META_CHECKSUM_SPAN = META.size - 8
CANDIDATE_PAGE_SIZES = (4096, 8192, 16384, 32768, 65536)

FNV_OFFSET = 0xCBF29CE484222325
FNV_PRIME = 0x100000001B3


def fnv64a(data: bytes) -> int:
    """64-bit FNV-1a hash, as used for meta checksums."""
    h = FNV_OFFSET
    for byte in data:
        h ^= byte
        h = (h * FNV_PRIME) & 0xFFFFFFFFFFFFFFFF
    return h


@dataclass(frozen=True)
class Meta:
    """A validated meta record."""

    page_size: int
    flags: int
    root: int
    freelist: int
    pgid: int
    txid: int


def read_meta(data: Any, offset: int) -> Meta | None:
    """Parse and validate the meta record of the page at ``offset``."""
    start = offset + PAGE_HEADER.size
    if start + META.size > len(data):
        return None
    _, flags, _, _ = PAGE_HEADER.unpack_from(data, offset)
    if not flags & META_PAGE:
        return None
    (magic, version, page_size, meta_flags, root, _,
     freelist, pgid, txid, checksum) = META.unpack_from(data, start)
    if magic != MAGIC or version != VERSION:
        return None
    if fnv64a(data[start:start + META_CHECKSUM_SPAN]) != checksum:
        return None
    return Meta(page_size, meta_flags, root, freelist, pgid, txid)


def pick_meta(data: Any) -> Meta:
    """Return the newest valid meta record in the file."""
    if len(data) < PAGE_HEADER.size + META.size:
        raise StoreUnavailable("file too small to be a bbolt database")

    first = read_meta(data, 0)
    sizes = [first.page_size] if first is not None else []
    sizes += [size for size in CANDIDATE_PAGE_SIZES if size not in sizes]

    second = None
    for size in sizes:
        candidate = read_meta(data, size)
        if candidate is not None and candidate.page_size == size:
            second = candidate
            break

    valid = [meta for meta in (first, second) if meta is not None]
    if not valid:
        raise StoreUnavailable("no valid meta page (not a bbolt database?)")
    if first is None:
        logger.warning("meta page 0 is invalid, using meta page 1")
    return max(valid, key=lambda meta: meta.txid)


class BoltBucket(Bucket):
    """A bucket inside a bbolt snapshot.

    Args:
        snapshot: The owning snapshot.
        root: Root page id, 0 for an inline bucket.
        inline: The inline leaf page bytes when ``root`` is 0.
    """

    def __init__(self, snapshot: "BoltSnapshot", root: int, inline: bytes | None = None) -> None:
        self.snapshot = snapshot
        self.root = root
        self.inline = inline

    def _pages(self) -> Iterator[tuple[Any, int, int, int, int, int]]:
        """Depth-first pages in key order: (buf, offset, flags, count, overflow, depth)."""
        if self.inline is not None:
            _, flags, count, overflow = _header(self.inline, 0)
            yield self.inline, 0, flags, count, overflow, 0
            return

        data = self.snapshot.data
        seen: set[int] = set()
        stack = [(self.root, 0)]
        while stack:
            pgid, depth = stack.pop()
            if pgid in seen:
                raise StoreUnavailable(f"page {pgid} is referenced twice")
            seen.add(pgid)
            offset = self.snapshot.page_offset(pgid)
            _, flags, count, overflow = _header(data, offset)
            yield data, offset, flags, count, overflow, depth
            if flags & BRANCH_PAGE:
                children = [child for _, child in _branch_elements(data, offset, count)]
                stack.extend((child, depth + 1) for child in reversed(children))

    def _leaves(self) -> Iterator[tuple[int, bytes, bytes]]:
        for buf, offset, flags, count, _, _ in self._pages():
            if flags & LEAF_PAGE:
                yield from _leaf_elements(buf, offset, count)

    def _seek(self, key: bytes) -> tuple[int, bytes] | None:
        if self.inline is not None:
            buf, offset = self.inline, 0
        else:
            buf, offset = self.snapshot.data, self.snapshot.page_offset(self.root)

        for _ in range(64):
            _, flags, count, _ = _header(buf, offset)
            if flags & BRANCH_PAGE:
                elements = _branch_elements(buf, offset, count)
                if not elements:
                    return None
                index = max(bisect_right([k for k, _ in elements], key) - 1, 0)
                offset = self.snapshot.page_offset(elements[index][1])
                continue
            if flags & LEAF_PAGE:
                for elem_flags, elem_key, value in _leaf_elements(buf, offset, count):
                    if elem_key == key:
                        return elem_flags, value
                return None
            raise StoreUnavailable(f"unexpected page flags 0x{flags:x} while searching")
        raise StoreUnavailable("bucket tree is too deep")

    def _open(self, value: bytes) -> "BoltBucket":
        if len(value) < BUCKET_HEADER.size:
            raise StoreUnavailable("truncated bucket header")
        root, _ = BUCKET_HEADER.unpack_from(value, 0)
        if root == 0:
            return BoltBucket(self.snapshot, 0, value[BUCKET_HEADER.size:])
        return BoltBucket(self.snapshot, root)

    def bucket(self, name: bytes) -> Bucket | None:
        found = self._seek(name)
        if found is None or not found[0] & BUCKET_LEAF:
            return None
        return self._open(found[1])

    def get(self, key: bytes) -> bytes | None:
        found = self._seek(key)
        if found is None or found[0] & BUCKET_LEAF:
            return None
        return found[1]

    def items(self) -> Iterator[tuple[bytes, bytes | None]]:
        for flags, key, value in self._leaves():
            yield key, None if flags & BUCKET_LEAF else value

    def stats(self) -> BucketStats:
        stats = BucketStats(bucket_n=1)
        sub = BucketStats()
        if self.inline is not None:
            stats.inline_bucket_n += 1

        for buf, offset, flags, count, overflow, depth in self._pages():
            if flags & LEAF_PAGE:
                stats.key_n += count
                used = PAGE_HEADER.size
                if count:
                    last = offset + PAGE_HEADER.size + LEAF_ELEMENT.size * (count - 1)
                    _, pos, ksize, vsize = LEAF_ELEMENT.unpack_from(buf, last)
                    used += LEAF_ELEMENT.size * (count - 1) + pos + ksize + vsize
                if self.inline is not None:
                    stats.inline_bucket_inuse += used
                else:
                    stats.leaf_page_n += 1
                    stats.leaf_inuse += used
                    stats.leaf_overflow_n += overflow
                    for elem_flags, _, value in _leaf_elements(buf, offset, count):
                        if elem_flags & BUCKET_LEAF:
                            sub.add(self._open(value).stats())
            elif flags & BRANCH_PAGE:
                stats.branch_page_n += 1
                used = PAGE_HEADER.size
                if count:
                    last = offset + PAGE_HEADER.size + BRANCH_ELEMENT.size * (count - 1)
                    pos, ksize, _ = BRANCH_ELEMENT.unpack_from(buf, last)
                    used += BRANCH_ELEMENT.size * (count - 1) + pos + ksize
                stats.branch_inuse += used
                stats.branch_overflow_n += overflow
            stats.depth = max(stats.depth, depth + 1)

        stats.depth += sub.depth
        stats.add(sub)
        return stats


class BoltSnapshot(Snapshot):
    """A read-only transaction over a mapped bbolt file."""

    def __init__(self, data: Any) -> None:
        self.data = data
        self.meta = pick_meta(data)
        self.page_size = self.meta.page_size
        self.root = BoltBucket(self, self.meta.root)

    def page_offset(self, pgid: int) -> int:
        """Byte offset of page ``pgid``, validated against the file."""
        offset = pgid * self.page_size
        if pgid < 2 or pgid >= self.meta.pgid or offset + PAGE_HEADER.size > len(self.data):
            raise StoreUnavailable(f"page id {pgid} is out of range")
        return offset

    def bucket(self, name: bytes) -> Bucket | None:
        return self.root.bucket(name)

    def buckets(self) -> Iterator[tuple[bytes, Bucket]]:
        for flags, key, value in self.root._leaves():
            if flags & BUCKET_LEAF:
                yield key, self.root._open(value)

    def free_page_count(self) -> int | None:
        """Number of page ids on the freelist, None when not persisted."""
        if self.meta.freelist == NO_FREELIST:
            return None
        offset = self.page_offset(self.meta.freelist)
        _, flags, count, _ = _header(self.data, offset)
        if not flags & FREELIST_PAGE:
            raise StoreUnavailable(f"page {self.meta.freelist} is not a freelist page")
        if count == 0xFFFF:
            (count,) = struct.unpack_from("<Q", self.data, offset + PAGE_HEADER.size)
        return count


class Bolt(Backend):
    """A bbolt database file opened read-only.

    Each ``view()`` maps the file and unmaps it when the context exits;
    bucket handles and values are only usable inside that context.
    """

    def __init__(self, path: str) -> None:
        if not os.path.isfile(path):
            raise StoreUnavailable(f"database file does not exist: {path}")
        self.path = path

    @contextmanager
    def view(self) -> Iterator[BoltSnapshot]:
        try:
            handle = open(self.path, "rb")
        except OSError as e:
            raise StoreUnavailable(f"failed to open database: {e}") from e
        with handle:
            try:
                data = mmap.mmap(handle.fileno(), 0, access=mmap.ACCESS_READ)
            except (OSError, ValueError) as e:
                raise StoreUnavailable(f"failed to map database: {e}") from e
            try:
                yield BoltSnapshot(data)
            finally:
                data.close()

    def info(self) -> dict[str, Any]:
        stat = os.stat(self.path)
        with self.view() as snapshot:
            meta = snapshot.meta
            free_pages = snapshot.free_page_count()
        return {
            "storage": "bolt",
            "path": self.path,
            "size": stat.st_size,
            "last_modified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
            "page_size": meta.page_size,
            "txid": meta.txid,
            "high_water_pgid": meta.pgid,
            "free_page_n": free_pages,
        }


def _header(buf: Any, offset: int) -> tuple[int, int, int, int]:
    if offset + PAGE_HEADER.size > len(buf):
        raise StoreUnavailable("truncated page header")
    return PAGE_HEADER.unpack_from(buf, offset)


def _leaf_elements(buf: Any, offset: int, count: int) -> list[tuple[int, bytes, bytes]]:
    elements = []
    for i in range(count):
        elem = offset + PAGE_HEADER.size + i * LEAF_ELEMENT.size
        if elem + LEAF_ELEMENT.size > len(buf):
            raise StoreUnavailable("truncated leaf element")
        flags, pos, ksize, vsize = LEAF_ELEMENT.unpack_from(buf, elem)
        start = elem + pos
        end = start + ksize + vsize
        if end > len(buf):
            raise StoreUnavailable("leaf element points past the end of the file")
        elements.append((flags, buf[start:start + ksize], buf[start + ksize:end]))
    return elements


def _branch_elements(buf: Any, offset: int, count: int) -> list[tuple[bytes, int]]:
    elements = []
    for i in range(count):
        elem = offset + PAGE_HEADER.size + i * BRANCH_ELEMENT.size
        if elem + BRANCH_ELEMENT.size > len(buf):
            raise StoreUnavailable("truncated branch element")
        pos, ksize, pgid = BRANCH_ELEMENT.unpack_from(buf, elem)
        start = elem + pos
        if start + ksize > len(buf):
            raise StoreUnavailable("branch element points past the end of the file")
        elements.append((buf[start:start + ksize], pgid))
    return elements
