"""Inspector: per-call snapshots over a bucket store.

Every method opens its own snapshot, copies what it needs out of it and
releases it before returning. Nothing is cached between calls.
"""

import logging
from typing import Any

from .classify import HEX_PREVIEW_BYTES, ClassifiedValue, classify
from .envelope import Envelope, decode_envelope
from .errors import NotFound
from .kv.base import Backend, Snapshot, encode_name
from .resolve import resolve, split_path
from .search import MAX_RESULTS, SearchHit, search
from .timestamp import DecodedTime, decode_time
from .tree import BucketSummary, build_summary, build_tree

logger = logging.getLogger(__name__)


class Inspector:
    """Read-only browsing operations over a ``Backend``."""

    def __init__(self, backend: Backend) -> None:
        self.backend = backend

    def buckets(self) -> list[BucketSummary]:
        """Summary trees of all top-level buckets, without keys."""
        with self.backend.view() as snapshot:
            trees = build_tree(snapshot)
        logger.info("listed %d top-level buckets", len(trees))
        return trees

    def bucket(self, path: str) -> BucketSummary:
        """Summary of one bucket including its classified key/values."""
        with self.backend.view() as snapshot:
            bucket = resolve(snapshot, path)
            parts = split_path(path)
            summary = build_summary(
                bucket, parts[-1], "/".join(parts), 0, include_keys=True
            )
        logger.info("bucket %s: %d keys", path, len(summary.keys))
        return summary

    def _value(self, snapshot: Snapshot, path: str, key: str) -> bytes:
        value = resolve(snapshot, path).get(encode_name(key))
        if value is None:
            raise NotFound(path, key=key)
        return bytes(value)

    def raw(self, path: str, key: str) -> bytes:
        """A copy of the raw value stored under ``key``."""
        with self.backend.view() as snapshot:
            return self._value(snapshot, path, key)

    def key(self, path: str, key: str, *, full: bool = False) -> ClassifiedValue:
        """Classify one value.

        JSON and text are shown whole. The hex preview of binary data is
        bounded unless ``full`` is set.
        """
        data = self.raw(path, key)
        return classify(
            data,
            key=key,
            text_limit=None,
            hex_limit=None if full else HEX_PREVIEW_BYTES,
        )

    def search(self, query: str, max_results: int = MAX_RESULTS) -> list[SearchHit]:
        """Find keys whose names contain ``query`` (case-insensitive)."""
        if not query:
            raise ValueError("search query cannot be empty")
        with self.backend.view() as snapshot:
            hits = search(snapshot, query, max_results)
        logger.info("search %r: %d hits", query, len(hits))
        return hits

    def decode_time(self, path: str, key: str) -> DecodedTime:
        """Decode the value under ``key`` as a marshaled timestamp."""
        return decode_time(self.raw(path, key))

    def decode_envelope(self, path: str, key: str) -> Envelope:
        """Decode the value under ``key`` as a typed-payload envelope."""
        return decode_envelope(self.raw(path, key))

    def stats(self) -> dict[str, Any]:
        """Backend facts plus the number of top-level buckets."""
        info = dict(self.backend.info())
        with self.backend.view() as snapshot:
            info["top_level_buckets"] = sum(1 for _ in snapshot.buckets())
        return info
