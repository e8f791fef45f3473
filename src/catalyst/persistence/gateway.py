"""Persistence gateway for the (phase, project) pair.

The saved state is a single JSON value under one key::

    {"currentPhase": "Architecture", "projectData": {...}}

Loading never fails: a blob that cannot be read, does not parse or does
not have that shape is deleted and the default empty project at the first
phase is returned instead. Autosave write failures are logged and the
workspace keeps running on its in-memory state.

When attached to a Store the gateway saves after every change of the phase
or the project. With a debounce delay configured, saves are coalesced on the
running event loop; call flush() before shutting down.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from catalyst.models.project import Phase, Project
from catalyst.persistence.storage import StorageBackend
from catalyst.workflow.store import Store, WorkspaceState

logger = structlog.get_logger(__name__)

DEFAULT_STATE_KEY = "ai-project-catalyst-state"


class SavedState(BaseModel):
    """Persisted workspace state.

    Attributes:
        phase: Current phase (``currentPhase`` in JSON)
        project: Project aggregate (``projectData`` in JSON)
    """

    model_config = ConfigDict(populate_by_name=True)

    phase: Phase = Field(alias="currentPhase")
    project: Project = Field(alias="projectData")

    @classmethod
    def default(cls) -> SavedState:
        return cls(phase=Phase.IDEA, project=Project())


class PersistenceGateway:
    """Saves and restores workspace state through a storage backend.

    Attributes:
        storage: Backend holding the serialized state
        key: Storage key
        debounce_seconds: Autosave delay, 0 to save on every change
    """

    def __init__(
        self,
        storage: StorageBackend,
        key: str = DEFAULT_STATE_KEY,
        debounce_seconds: float = 0.0,
    ) -> None:
        self.storage = storage
        self.key = key
        self.debounce_seconds = debounce_seconds
        self._pending: WorkspaceState | None = None
        self._timer: asyncio.TimerHandle | None = None

    def save(self, phase: Phase, project: Project) -> None:
        """Serialize and store the pair, overwriting any previous value."""
        blob = SavedState(phase=phase, project=project).model_dump_json(by_alias=True)
        self.storage.set(self.key, blob)
        logger.debug("state_saved", phase=phase.value, size=len(blob))

    def load(self) -> SavedState:
        """Restore the saved pair, or the default state if none is usable."""
        try:
            raw = self.storage.get(self.key)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(
                "state_discarded_unreadable",
                key=self.key,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._discard()
            return SavedState.default()
        if raw is None:
            logger.info("state_not_found", key=self.key)
            return SavedState.default()
        try:
            state = SavedState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "state_discarded_corrupt",
                key=self.key,
                error_count=e.error_count(),
            )
            self._discard()
            return SavedState.default()
        logger.info("state_loaded", phase=state.phase.value, project_id=state.project.id)
        return state

    def clear(self) -> None:
        """Delete the saved state."""
        self.storage.delete(self.key)

    def _discard(self) -> None:
        try:
            self.storage.delete(self.key)
        except OSError as e:
            logger.warning("state_delete_failed", key=self.key, error=str(e))

    def attach(self, store: Store) -> Callable[[], None]:
        """Save on every phase or project change of ``store``.

        Returns:
            Function detaching the gateway from the store.
        """

        def on_change(previous: WorkspaceState, current: WorkspaceState) -> None:
            if (
                previous.current_phase != current.current_phase
                or previous.project is not current.project
            ):
                self._schedule(current)

        return store.subscribe(on_change)

    def _schedule(self, state: WorkspaceState) -> None:
        self._pending = state
        if self.debounce_seconds <= 0:
            self.flush()
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.flush()
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = loop.call_later(self.debounce_seconds, self.flush)

    def flush(self) -> None:
        """Write any pending state now.

        A failed write is logged at warning level and dropped; the next
        change schedules a fresh save.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._pending is None:
            return
        state, self._pending = self._pending, None
        try:
            self.save(state.current_phase, state.project)
        except OSError as e:
            logger.warning(
                "state_save_failed",
                key=self.key,
                phase=state.current_phase.value,
                error=str(e),
            )
