"""Bucket tree summaries."""

from dataclasses import dataclass, field

from .classify import ClassifiedValue, classify
from .kv.base import Bucket, BucketStats, Snapshot, decode_name

EXPAND_BELOW_DEPTH = 2


@dataclass
class BucketSummary:
    """A bucket, its statistics and its sub-bucket summaries.

    ``key_count`` counts direct entries (values and sub-buckets);
    ``stats.key_n`` also counts everything nested below.

    ``keys`` is only filled for a single-bucket detail request.
    ``expanded`` is a display hint for the first levels of a tree.
    """

    name: str
    path: str
    depth: int
    key_count: int
    stats: BucketStats
    expanded: bool
    sub_buckets: list["BucketSummary"] = field(default_factory=list)
    keys: list[ClassifiedValue] = field(default_factory=list)


def build_summary(
    bucket: Bucket,
    name: str,
    path: str,
    depth: int = 0,
    *,
    include_keys: bool = False,
) -> BucketSummary:
    """Summarize ``bucket`` and, recursively, every bucket below it.

    Sub-buckets and keys keep the store's enumeration order. Leaf values
    are classified with bounded previews when ``include_keys`` is set;
    nested summaries never carry keys.
    """
    stats = bucket.stats()
    summary = BucketSummary(
        name=name,
        path=path,
        depth=depth,
        key_count=0,
        stats=stats,
        expanded=depth < EXPAND_BELOW_DEPTH,
    )
    for raw_key, value in bucket.items():
        summary.key_count += 1
        key = decode_name(raw_key)
        if value is None:
            child = bucket.bucket(raw_key)
            if child is not None:
                summary.sub_buckets.append(
                    build_summary(child, key, f"{path}/{key}", depth + 1)
                )
        elif include_keys:
            summary.keys.append(classify(value, key=key))
    return summary


def build_tree(snapshot: Snapshot) -> list[BucketSummary]:
    """Summaries of every top-level bucket."""
    trees = []
    for raw_name, bucket in snapshot.buckets():
        name = decode_name(raw_name)
        trees.append(build_summary(bucket, name, name, 0))
    return trees
