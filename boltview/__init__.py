"""boltview: read-only browser for hierarchical bucket stores."""

from .classify import ClassifiedValue, classify
from .envelope import Envelope, decode_envelope
from .errors import BoltviewError, ConfigError, DecodeError, NotFound, StoreUnavailable
from .hexdump import dump
from .inspector import Inspector
from .kv.base import Backend, Bucket, BucketStats, Snapshot
from .resolve import resolve
from .search import SearchHit, search
from .store import open_store
from .timestamp import DecodedTime, decode_time
from .tree import BucketSummary, build_summary, build_tree

__all__ = [
    "Backend",
    "BoltviewError",
    "Bucket",
    "BucketStats",
    "BucketSummary",
    "ClassifiedValue",
    "ConfigError",
    "DecodeError",
    "DecodedTime",
    "Envelope",
    "Inspector",
    "NotFound",
    "SearchHit",
    "Snapshot",
    "StoreUnavailable",
    "build_summary",
    "build_tree",
    "classify",
    "decode_envelope",
    "decode_time",
    "dump",
    "open_store",
    "resolve",
    "search",
]
