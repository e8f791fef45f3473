"""Workspace store: state, commands and the reducer.

All mutation of the (phase, project) pair goes through Store.dispatch with
one of the command models below. reduce() is a pure function from
(state, command) to a new state; handlers never modify the state they are
given. In the Viewer role every mutating command reduces to the unchanged
state.

Example:
    >>> store = Store()
    >>> state = store.dispatch(SetPhase(phase=Phase.BRAINSTORM))
    >>> state.current_phase
    <Phase.BRAINSTORM: 'Brainstorm'>
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated, Any, ClassVar, Literal, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from catalyst.models.artifacts import KnowledgeDoc, Snapshot
from catalyst.models.base import generate_id, now_ms
from catalyst.models.file_node import FileNode
from catalyst.models.plan import PlanPhase, Task, TaskStatus
from catalyst.models.project import (
    ArtifactKey,
    Phase,
    Project,
    Role,
    dump_artifact,
    project_name_from_idea,
    validate_artifact,
)
from catalyst.workflow import board, file_tree
from catalyst.workflow.phases import compute_unlocked

logger = structlog.get_logger(__name__)

BusyConcern = Literal["generating", "refining", "assisting"]

PROJECT_DETAILS = frozenset({"name", "initial_idea", "project_type", "constraints"})

# Artifacts captured by a snapshot
SNAPSHOT_KEYS: tuple[ArtifactKey, ...] = tuple(ArtifactKey)


class WorkspaceState(BaseModel):
    """Everything the workflow core holds for one open project.

    Attributes:
        current_phase: Phase the user is on
        project: The project aggregate
        role: Collaborator role of the current user
        generating: Primary generation in flight
        refining: Section refinement in flight
        assisting: Task assistance in flight
        error: Last user-facing error message
    """

    model_config = ConfigDict(frozen=True)

    current_phase: Phase = Phase.IDEA
    project: Project = Field(default_factory=Project)
    role: Role = Role.OWNER
    generating: bool = False
    refining: bool = False
    assisting: bool = False
    error: str | None = None

    @property
    def unlocked(self) -> frozenset[Phase]:
        return compute_unlocked(self.project)

    @property
    def read_only(self) -> bool:
        return self.role.read_only

    def is_busy(self, concern: BusyConcern) -> bool:
        return bool(getattr(self, concern))


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Commands allowed while read-only
    read_only_safe: ClassVar[bool] = False


class SetPhase(_Command):
    type: Literal["set_phase"] = "set_phase"
    phase: Phase

    read_only_safe: ClassVar[bool] = True


class UpdateProject(_Command):
    """Replace artifact slots and/or project details in one step.

    When ``phase`` is set the current phase moves in the same step, so a
    listener never sees the new artifact without the new phase.

    Artifact values are validated against their slot type on construction,
    so a malformed value never reaches the reducer.
    """

    type: Literal["update_project"] = "update_project"
    artifacts: dict[ArtifactKey, Any] = Field(default_factory=dict)
    details: dict[str, str] = Field(default_factory=dict)
    phase: Phase | None = None

    @field_validator("artifacts")
    @classmethod
    def validate_artifacts(cls, v: dict[ArtifactKey, Any]) -> dict[ArtifactKey, Any]:
        return {
            key: None if value is None else validate_artifact(key, value)
            for key, value in v.items()
        }

    @field_validator("details")
    @classmethod
    def validate_details(cls, v: dict[str, str]) -> dict[str, str]:
        unknown = set(v) - PROJECT_DETAILS
        if unknown:
            raise ValueError(f"Unknown project details: {', '.join(sorted(unknown))}")
        return v


class SetBusy(_Command):
    type: Literal["set_busy"] = "set_busy"
    concern: BusyConcern
    value: bool

    read_only_safe: ClassVar[bool] = True


class SetError(_Command):
    type: Literal["set_error"] = "set_error"
    message: str | None = None

    read_only_safe: ClassVar[bool] = True


class ResetProject(_Command):
    type: Literal["reset_project"] = "reset_project"
    project: Project = Field(default_factory=Project)


class LoadState(_Command):
    type: Literal["load_state"] = "load_state"
    phase: Phase
    project: Project

    read_only_safe: ClassVar[bool] = True


class SetRole(_Command):
    type: Literal["set_role"] = "set_role"
    role: Role

    read_only_safe: ClassVar[bool] = True


class MutateFileTree(_Command):
    """One path-addressed edit of the file structure artifact.

    Attributes:
        op: insert, remove, set_content or replace
        path: Parent folder path for insert, node path otherwise
        node: Node to insert
        content: New file content for set_content
        nodes: Whole new tree for replace
    """

    type: Literal["mutate_file_tree"] = "mutate_file_tree"
    op: Literal["insert", "remove", "set_content", "replace"]
    path: list[str] = Field(default_factory=list)
    node: FileNode | None = None
    content: str | None = None
    nodes: list[FileNode] | None = None

    @model_validator(mode="after")
    def payload_matches_op(self) -> MutateFileTree:
        if self.op == "insert" and self.node is None:
            raise ValueError("insert requires a node")
        if self.op == "set_content" and self.content is None:
            raise ValueError("set_content requires content")
        if self.op == "replace" and self.nodes is None:
            raise ValueError("replace requires nodes")
        return self


class FinalizePlan(_Command):
    """Store the plan and open the board.

    Tasks are derived only when the project has none yet.
    """

    type: Literal["finalize_plan"] = "finalize_plan"
    plan: list[PlanPhase] | None = None


class RegenerateTasks(_Command):
    type: Literal["regenerate_tasks"] = "regenerate_tasks"


class MoveTask(_Command):
    type: Literal["move_task"] = "move_task"
    task_id: str
    status: TaskStatus


class ToggleChecklistItem(_Command):
    type: Literal["toggle_checklist_item"] = "toggle_checklist_item"
    task_id: str
    item_id: str


class AddTask(_Command):
    type: Literal["add_task"] = "add_task"
    task: Task


class UpdateTask(_Command):
    type: Literal["update_task"] = "update_task"
    task_id: str
    changes: dict[str, Any]

    @field_validator("changes")
    @classmethod
    def known_fields(cls, v: dict[str, Any]) -> dict[str, Any]:
        unknown = set(v) - board.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update task fields: {', '.join(sorted(unknown))}")
        return v


class AddKnowledgeDoc(_Command):
    type: Literal["add_knowledge_doc"] = "add_knowledge_doc"
    doc: KnowledgeDoc


class DeleteKnowledgeDoc(_Command):
    type: Literal["delete_knowledge_doc"] = "delete_knowledge_doc"
    doc_id: str


class CreateSnapshot(_Command):
    type: Literal["create_snapshot"] = "create_snapshot"
    name: str
    description: str = ""
    snapshot_id: str = Field(default_factory=generate_id)
    timestamp: int = Field(default_factory=now_ms)


class RestoreSnapshot(_Command):
    type: Literal["restore_snapshot"] = "restore_snapshot"
    snapshot_id: str


class DeleteSnapshot(_Command):
    type: Literal["delete_snapshot"] = "delete_snapshot"
    snapshot_id: str


Command = Annotated[
    Union[
        SetPhase,
        UpdateProject,
        SetBusy,
        SetError,
        ResetProject,
        LoadState,
        SetRole,
        MutateFileTree,
        FinalizePlan,
        RegenerateTasks,
        MoveTask,
        ToggleChecklistItem,
        AddTask,
        UpdateTask,
        AddKnowledgeDoc,
        DeleteKnowledgeDoc,
        CreateSnapshot,
        RestoreSnapshot,
        DeleteSnapshot,
    ],
    Field(discriminator="type"),
]

Handler = Callable[[WorkspaceState, Any], WorkspaceState]

_HANDLERS: dict[type[_Command], Handler] = {}


def _handles(command_type: type[_Command]) -> Callable[[Handler], Handler]:
    def register(fn: Handler) -> Handler:
        _HANDLERS[command_type] = fn
        return fn

    return register


def _with_project(state: WorkspaceState, project: Project) -> WorkspaceState:
    return state.model_copy(update={"project": project})


def _with_tasks(state: WorkspaceState, tasks: list[Task]) -> WorkspaceState:
    return _with_project(state, state.project.with_artifacts({ArtifactKey.TASKS: tasks}))


@_handles(SetPhase)
def _set_phase(state: WorkspaceState, cmd: SetPhase) -> WorkspaceState:
    return state.model_copy(update={"current_phase": cmd.phase})


@_handles(UpdateProject)
def _update_project(state: WorkspaceState, cmd: UpdateProject) -> WorkspaceState:
    project = state.project.with_artifacts(cmd.artifacts)
    if cmd.details:
        details = dict(cmd.details)
        if "initial_idea" in details and "name" not in details:
            details["name"] = project_name_from_idea(details["initial_idea"])
        project = project.model_copy(update=details)
    if cmd.phase is not None:
        return state.model_copy(update={"project": project, "current_phase": cmd.phase})
    return _with_project(state, project)


@_handles(SetBusy)
def _set_busy(state: WorkspaceState, cmd: SetBusy) -> WorkspaceState:
    return state.model_copy(update={cmd.concern: cmd.value})


@_handles(SetError)
def _set_error(state: WorkspaceState, cmd: SetError) -> WorkspaceState:
    return state.model_copy(update={"error": cmd.message})


@_handles(ResetProject)
def _reset_project(state: WorkspaceState, cmd: ResetProject) -> WorkspaceState:
    return state.model_copy(
        update={"project": cmd.project, "current_phase": Phase.IDEA, "error": None}
    )


@_handles(LoadState)
def _load_state(state: WorkspaceState, cmd: LoadState) -> WorkspaceState:
    return state.model_copy(update={"project": cmd.project, "current_phase": cmd.phase})


@_handles(SetRole)
def _set_role(state: WorkspaceState, cmd: SetRole) -> WorkspaceState:
    return state.model_copy(update={"role": cmd.role})


@_handles(MutateFileTree)
def _mutate_file_tree(state: WorkspaceState, cmd: MutateFileTree) -> WorkspaceState:
    nodes = state.project.file_structure or []
    if cmd.op == "insert":
        assert cmd.node is not None
        updated = file_tree.insert(nodes, cmd.path, cmd.node)
    elif cmd.op == "remove":
        updated = file_tree.remove(nodes, cmd.path)
    elif cmd.op == "set_content":
        assert cmd.content is not None
        updated = file_tree.set_content(nodes, cmd.path, cmd.content)
    else:
        updated = list(cmd.nodes or [])
    return _with_project(
        state, state.project.with_artifacts({ArtifactKey.FILE_STRUCTURE: updated})
    )


@_handles(FinalizePlan)
def _finalize_plan(state: WorkspaceState, cmd: FinalizePlan) -> WorkspaceState:
    plan = board.normalize_plan(
        cmd.plan if cmd.plan is not None else state.project.action_plan or []
    )
    updates: dict[ArtifactKey, Any] = {ArtifactKey.ACTION_PLAN: plan}
    if not state.project.tasks:
        updates[ArtifactKey.TASKS] = board.derive_tasks(plan)
    else:
        logger.info("finalize_kept_tasks", task_count=len(state.project.tasks))
    return state.model_copy(
        update={
            "project": state.project.with_artifacts(updates),
            "current_phase": Phase.WORKSPACE,
        }
    )


@_handles(RegenerateTasks)
def _regenerate_tasks(state: WorkspaceState, cmd: RegenerateTasks) -> WorkspaceState:
    return _with_tasks(state, board.derive_tasks(state.project.action_plan or []))


@_handles(MoveTask)
def _move_task(state: WorkspaceState, cmd: MoveTask) -> WorkspaceState:
    return _with_tasks(state, board.move_task(state.project.tasks or [], cmd.task_id, cmd.status))


@_handles(ToggleChecklistItem)
def _toggle_checklist_item(
    state: WorkspaceState, cmd: ToggleChecklistItem
) -> WorkspaceState:
    return _with_tasks(
        state,
        board.toggle_checklist_item(state.project.tasks or [], cmd.task_id, cmd.item_id),
    )


@_handles(AddTask)
def _add_task(state: WorkspaceState, cmd: AddTask) -> WorkspaceState:
    return _with_tasks(state, [*(state.project.tasks or []), cmd.task])


@_handles(UpdateTask)
def _update_task(state: WorkspaceState, cmd: UpdateTask) -> WorkspaceState:
    return _with_tasks(
        state, board.update_task(state.project.tasks or [], cmd.task_id, **cmd.changes)
    )


@_handles(AddKnowledgeDoc)
def _add_knowledge_doc(state: WorkspaceState, cmd: AddKnowledgeDoc) -> WorkspaceState:
    docs = [*(state.project.knowledge_base or []), cmd.doc]
    return _with_project(
        state, state.project.with_artifacts({ArtifactKey.KNOWLEDGE_BASE: docs})
    )


@_handles(DeleteKnowledgeDoc)
def _delete_knowledge_doc(
    state: WorkspaceState, cmd: DeleteKnowledgeDoc
) -> WorkspaceState:
    docs = [doc for doc in state.project.knowledge_base or [] if doc.id != cmd.doc_id]
    return _with_project(
        state, state.project.with_artifacts({ArtifactKey.KNOWLEDGE_BASE: docs})
    )


@_handles(CreateSnapshot)
def _create_snapshot(state: WorkspaceState, cmd: CreateSnapshot) -> WorkspaceState:
    project = state.project
    data = {
        key.value: dump_artifact(key, project.artifact(key))
        for key in SNAPSHOT_KEYS
        if project.artifact(key) is not None
    }
    snapshot = Snapshot(
        id=cmd.snapshot_id,
        name=cmd.name,
        description=cmd.description,
        timestamp=cmd.timestamp,
        data=data,
    )
    return _with_project(
        state, project.model_copy(update={"snapshots": [*project.snapshots, snapshot]})
    )


@_handles(RestoreSnapshot)
def _restore_snapshot(state: WorkspaceState, cmd: RestoreSnapshot) -> WorkspaceState:
    snapshot = next((s for s in state.project.snapshots if s.id == cmd.snapshot_id), None)
    if snapshot is None:
        logger.debug("snapshot_restore_miss", snapshot_id=cmd.snapshot_id)
        return state
    # Slots the snapshot did not capture keep their current values
    restored = {
        key: validate_artifact(key, snapshot.data[key.value])
        for key in SNAPSHOT_KEYS
        if snapshot.data.get(key.value) is not None
    }
    return _with_project(state, state.project.with_artifacts(restored))


@_handles(DeleteSnapshot)
def _delete_snapshot(state: WorkspaceState, cmd: DeleteSnapshot) -> WorkspaceState:
    snapshots = [s for s in state.project.snapshots if s.id != cmd.snapshot_id]
    return _with_project(state, state.project.model_copy(update={"snapshots": snapshots}))


def reduce(state: WorkspaceState, command: Command) -> WorkspaceState:
    """Apply one command to a state and return the resulting state.

    Args:
        state: Current state (never modified).
        command: Command to apply.

    Returns:
        The new state, or ``state`` itself when the command is rejected.
    """
    if state.read_only and not command.read_only_safe:
        logger.debug("command_rejected_read_only", command=command.type)
        return state
    handler = _HANDLERS[type(command)]
    return handler(state, command)


Listener = Callable[[WorkspaceState, WorkspaceState], None]


class Store:
    """Holds the current WorkspaceState and applies commands to it.

    Listeners are called with (previous, current) after every dispatch that
    produced a new state.
    """

    def __init__(self, state: WorkspaceState | None = None) -> None:
        self._state = state or WorkspaceState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> WorkspaceState:
        return self._state

    def dispatch(self, command: Command) -> WorkspaceState:
        """Reduce ``command`` into the current state and notify listeners."""
        previous = self._state
        current = reduce(previous, command)
        if current is previous:
            return current
        self._state = current
        for listener in list(self._listeners):
            listener(previous, current)
        return current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
