"""Hierarchical store backends."""

from .base import Backend, Bucket, BucketStats, Snapshot
from .bolt import Bolt
from .disk import Disk
from .memory import Memory

__all__ = ["Backend", "Bolt", "Bucket", "BucketStats", "Disk", "Memory", "Snapshot"]
