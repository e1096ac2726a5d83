"""Runtime configuration from the environment."""

import logging
import os
from dataclasses import dataclass

from .errors import ConfigError

DEFAULT_DB_PATH = "/var/lib/containerd/io.containerd.metadata.v1.bolt/meta.db"
STORAGE_KINDS = ("bolt", "disk", "memory")


@dataclass(frozen=True)
class Config:
    """Validated runtime configuration.

    Attributes:
        db_path: Database file (bolt) or cache directory (disk).
        storage: Backend kind, one of ``bolt``, ``disk`` or ``memory``.
        log_level: Numeric ``logging`` level.
    """

    db_path: str
    storage: str
    log_level: int

    @classmethod
    def from_env(cls) -> "Config":
        """Build config from ``BOLTVIEW_*`` environment variables.

        Raises:
            ConfigError: If a value is not recognized.
        """
        storage = os.getenv("BOLTVIEW_STORAGE", "bolt")
        if storage not in STORAGE_KINDS:
            raise ConfigError(
                f"Invalid BOLTVIEW_STORAGE value {storage!r}; "
                f"expected one of {', '.join(STORAGE_KINDS)}"
            )
        return cls(
            db_path=os.getenv("BOLTVIEW_DB", DEFAULT_DB_PATH),
            storage=storage,
            log_level=parse_log_level(os.getenv("BOLTVIEW_LOG_LEVEL", "WARNING")),
        )


def parse_log_level(raw_value: str) -> int:
    """Map a level name such as ``info`` to its ``logging`` constant."""
    level = logging.getLevelName(raw_value.strip().upper())
    if not isinstance(level, int):
        raise ConfigError(f"Invalid log level {raw_value!r}")
    return level


def setup_logging(level: int = logging.WARNING) -> None:
    """Send log records to stderr with timestamps and logger names."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if root_logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root_logger.addHandler(handler)
