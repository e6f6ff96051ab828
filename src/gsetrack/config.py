"""Runtime configuration for gsetrack."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from gsetrack._constants import DEFAULT_DB_FILENAME, SCHEMA_VERSION
from gsetrack.exceptions import GseConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def default_db_path() -> Path:
    """``$XDG_DATA_HOME/gsetrack/gsetrack.sqlite3`` (``~/.local/share`` when unset)."""
    base = os.environ.get("XDG_DATA_HOME")
    root = Path(base) if base else Path.home() / ".local" / "share"
    return root / "gsetrack" / DEFAULT_DB_FILENAME


@dataclasses.dataclass(frozen=True)
class TrackerConfig:
    """Tracker configuration.

    Parameters
    ----------
    db_path : Path or None
        SQLite database file for the persistent store. ``None`` keeps
        all data in memory for the lifetime of the process.
    schema_version : str
        Schema version this build expects. A persisted marker with any
        other value triggers a full reseed on start.
    dataset_path : Path or None
        JSON reference dataset to seed from. ``None`` uses the dataset
        bundled with the package.
    fault_marks_maintenance : bool
        Move available or in-use equipment to ``under-maintenance`` when a
        fault is reported against it.
    """

    db_path: Path | None = dataclasses.field(default_factory=default_db_path)
    schema_version: str = SCHEMA_VERSION
    dataset_path: Path | None = None
    fault_marks_maintenance: bool = True

    def __post_init__(self) -> None:
        if not self.schema_version or not self.schema_version.strip():
            raise GseConfigError("schema_version must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> TrackerConfig:
        """Create configuration from environment variables.

        Reads ``GSETRACK_DB_PATH``, ``GSETRACK_SCHEMA_VERSION``,
        ``GSETRACK_DATASET_PATH`` and ``GSETRACK_FAULT_MARKS_MAINTENANCE``.
        ``GSETRACK_DB_PATH=:memory:`` selects the in-memory store.
        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        db_env = env.get("GSETRACK_DB_PATH")
        if db_env is not None and "db_path" not in overrides:
            config_kwargs["db_path"] = None if db_env.strip() == ":memory:" else Path(db_env).expanduser()

        version_env = env.get("GSETRACK_SCHEMA_VERSION")
        if version_env is not None and "schema_version" not in overrides:
            config_kwargs["schema_version"] = version_env.strip()

        dataset_env = env.get("GSETRACK_DATASET_PATH")
        if dataset_env and "dataset_path" not in overrides:
            config_kwargs["dataset_path"] = Path(dataset_env).expanduser()

        if "fault_marks_maintenance" not in overrides:
            config_kwargs["fault_marks_maintenance"] = _env_bool(env.get("GSETRACK_FAULT_MARKS_MAINTENANCE"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
