"""Backend factory."""

from typing import Literal

from .kv.base import Backend


def open_store(
    storage: Literal["bolt", "disk", "memory"] = "bolt",
    *,
    path: str | None = None,
) -> Backend:
    """Open a read-only bucket store.

    Args:
        storage: ``"bolt"`` (default) for a bbolt database file,
            ``"disk"`` for a diskcache directory, or ``"memory"`` for an
            empty in-process store.
        path: Required for ``"bolt"`` and ``"disk"``. The database file
            or cache directory.

    Returns:
        A ``Backend`` whose ``view()`` yields snapshots.

    Raises:
        StoreUnavailable: If the file or directory cannot be opened.
    """
    if storage == "memory":
        from .kv.memory import Memory

        return Memory()

    if storage not in ("bolt", "disk"):
        raise ValueError(f"Unknown storage: {storage!r}")
    if path is None:
        raise ValueError(f"path is required when storage={storage!r}")

    if storage == "bolt":
        from .kv.bolt import Bolt

        return Bolt(path)

    from .kv.disk import Disk

    return Disk(path)
