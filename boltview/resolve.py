"""Logical path resolution over nested buckets.

Bucket names are arbitrary bytes and may contain ``/``, so a slash-joined
path can split into more segments than there are nesting levels. When a
single segment does not name a child bucket, the resolver retries with
contractions: first all remaining segments joined back together, then
progressively shorter runs starting at the current segment.
"""

import logging
from itertools import islice
from typing import Iterator, cast

from .errors import NotFound
from .kv.base import Bucket, Snapshot, decode_name, encode_name

logger = logging.getLogger(__name__)

MAX_AVAILABLE_NAMES = 20


def split_path(path: str) -> list[str]:
    """Split a logical path on ``/``, dropping empty segments."""
    return [part for part in path.strip("/").split("/") if part]


def child_bucket_names(container: Snapshot | Bucket) -> Iterator[str]:
    """Names of the direct sub-buckets of a snapshot root or bucket."""
    if isinstance(container, Snapshot):
        for name, _ in container.buckets():
            yield decode_name(name)
    else:
        for key, value in container.items():
            if value is None:
                yield decode_name(key)


def resolve(snapshot: Snapshot, path: str) -> Bucket:
    """Locate the bucket named by a logical path.

    Args:
        snapshot: An open snapshot.
        path: Slash-joined bucket path; leading and trailing slashes
            are ignored.

    Returns:
        The bucket at the end of the path.

    Raises:
        NotFound: If any level fails to resolve. There is no fallback to
            a parent bucket.
    """
    parts = split_path(path)
    if not parts:
        raise NotFound(path)

    current: Snapshot | Bucket = snapshot
    i = 0
    while i < len(parts):
        child = current.bucket(encode_name(parts[i]))
        if child is not None:
            logger.debug("resolve: level %d bucket=%r", i, parts[i])
            current = child
            i += 1
            continue

        if len(parts) - i > 1:
            remainder = "/".join(parts[i:])
            child = current.bucket(encode_name(remainder))
            if child is not None:
                logger.debug("resolve: remaining path is one name=%r", remainder)
                return child

        # First match scanning from the longest contraction down wins.
        for j in range(len(parts) - 1, i + 1, -1):
            candidate = "/".join(parts[i:j])
            child = current.bucket(encode_name(candidate))
            if child is not None:
                logger.debug("resolve: contracted segments %d..%d into %r", i, j, candidate)
                current = child
                i = j
                break
        else:
            available = list(islice(child_bucket_names(current), MAX_AVAILABLE_NAMES))
            logger.debug(
                "resolve: no bucket %r at level %d, available=%r", parts[i], i, available
            )
            raise NotFound(path, available=available)

    return cast(Bucket, current)
