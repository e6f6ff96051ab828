"""Process entry: the startup barrier.

:func:`start_tracker` is awaited once at process start. It opens the
persistent store, runs the bootstrap gate to completion, and only then
constructs and loads the shared state store. Views receive
``TrackerApp.state`` and nothing else.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType

from gsetrack.bootstrap import BootstrapOutcome, ensure_initialized
from gsetrack.config import TrackerConfig
from gsetrack.exceptions import BootstrapError, ReferenceDataError, StoreError
from gsetrack.ingestion.dataset import ReferenceDataset, bundled_reference_dataset, load_reference_dataset
from gsetrack.state.store import SharedStateStore
from gsetrack.storage.base import PersistentStore
from gsetrack.storage.memory import MemoryStore
from gsetrack.storage.sqlite import SqliteStore

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TrackerApp:
    """A started tracker: bootstrapped store plus loaded shared state.

    Usage::

        async with await start_tracker(config) as app:
            app.state.list_equipment()
    """

    config: TrackerConfig
    persistent: PersistentStore
    state: SharedStateStore
    bootstrap: BootstrapOutcome
    owns_store: bool = True

    async def close(self) -> None:
        if self.owns_store:
            await self.persistent.close()

    async def __aenter__(self) -> TrackerApp:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


def _resolve_dataset(config: TrackerConfig) -> ReferenceDataset:
    if config.dataset_path is not None:
        return load_reference_dataset(config.dataset_path)
    return bundled_reference_dataset()


def _default_store(config: TrackerConfig) -> PersistentStore:
    if config.db_path is None:
        return MemoryStore()
    return SqliteStore(config.db_path)


async def start_tracker(
    config: TrackerConfig | None = None,
    *,
    store: PersistentStore | None = None,
    dataset: ReferenceDataset | None = None,
) -> TrackerApp:
    """Bootstrap the persistent store and load the shared state.

    Parameters
    ----------
    config : TrackerConfig or None
        Defaults to :meth:`TrackerConfig.from_env`.
    store : PersistentStore or None
        Use this store instead of the one selected by *config*. The caller
        keeps ownership and must close it.
    dataset : ReferenceDataset or None
        Seed data. Defaults to ``config.dataset_path`` or the bundled dataset.

    Raises
    ------
    BootstrapError
        The store could not be opened, seeded, or loaded. Nothing may be
        rendered against it; retrying means calling this function again.
    """
    config = config if config is not None else TrackerConfig.from_env()
    owns_store = store is None
    persistent = store if store is not None else _default_store(config)

    try:
        if dataset is None:
            dataset = _resolve_dataset(config)
    except ReferenceDataError as exc:
        _logger.error("Reference dataset unavailable: %s", exc)
        raise BootstrapError(f"Reference dataset unavailable: {exc}", cause=exc) from exc

    try:
        await persistent.open()
        outcome = await ensure_initialized(persistent, dataset, dataset.normalization, config.schema_version)
        state = SharedStateStore(
            persistent,
            dataset.normalization,
            fault_marks_maintenance=config.fault_marks_maintenance,
        )
        await state.load()
    except (BootstrapError, StoreError) as exc:
        _logger.error("Tracker startup failed: %s", exc)
        if owns_store:
            await persistent.close()
        if isinstance(exc, BootstrapError):
            raise
        raise BootstrapError(f"Tracker startup failed: {exc}", cause=exc) from exc

    _logger.info(
        "Tracker ready at schema version %s (%s, %d equipment)",
        config.schema_version,
        outcome.action,
        len(state.list_equipment()),
    )
    return TrackerApp(
        config=config,
        persistent=persistent,
        state=state,
        bootstrap=outcome,
        owns_store=owns_store,
    )
