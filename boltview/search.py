"""Key-name search across every bucket of a snapshot."""

from dataclasses import dataclass
from itertools import islice
from typing import Iterator

from .classify import classify
from .kv.base import Bucket, Snapshot, decode_name

MAX_RESULTS = 100
SEARCH_PREVIEW_CHARS = 200


@dataclass(frozen=True)
class SearchHit:
    """A key whose name matched a search query."""

    bucket: str
    key: str
    path: str
    kind: str
    size: int
    preview: str


def iter_matches(snapshot: Snapshot, query: str) -> Iterator[SearchHit]:
    """Lazily yield keys whose names contain ``query``, ignoring case.

    The walk is depth-first in enumeration order: a sub-bucket is
    searched completely before the entries that follow it.
    """
    needle = query.lower()
    stack: list[tuple[str, Iterator[tuple[bytes, bytes | None]], Bucket]] = [
        (decode_name(raw_name), bucket.items(), bucket)
        for raw_name, bucket in snapshot.buckets()
    ]
    stack.reverse()

    while stack:
        path, entries, bucket = stack[-1]
        entry = next(entries, None)
        if entry is None:
            stack.pop()
            continue
        raw_key, value = entry
        key = decode_name(raw_key)
        if value is None:
            child = bucket.bucket(raw_key)
            if child is not None:
                stack.append((f"{path}/{key}", child.items(), child))
        elif needle in key.lower():
            classified = classify(value, key=key)
            preview = classified.preview
            if len(preview) > SEARCH_PREVIEW_CHARS:
                preview = preview[:SEARCH_PREVIEW_CHARS] + "..."
            yield SearchHit(
                bucket=path,
                key=key,
                path=f"{path}/{key}",
                kind=classified.kind,
                size=classified.size,
                preview=preview,
            )


def search(snapshot: Snapshot, query: str, max_results: int = MAX_RESULTS) -> list[SearchHit]:
    """Collect at most ``max_results`` matches; the walk stops at the cap."""
    return list(islice(iter_matches(snapshot, query), max_results))
