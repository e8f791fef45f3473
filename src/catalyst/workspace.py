"""Workspace command surface.

A Workspace ties one Store to a LifecycleController and, optionally, a
PersistenceGateway, and exposes the user-level commands: submit an idea,
advance through the phases, refine sections, edit the file tree and work
the task board.

Commands never raise for user-level failures. They either update the state
or leave a message in ``workspace.state.error``.

Example usage:
    >>> config = load_config()
    >>> async with OllamaGenerator(config.generator) as generator:
    ...     workspace = Workspace.open(config, generator)
    ...     await workspace.submit_idea("habit tracker", "Web Application")
    ...     await workspace.advance_phase()
    ...     workspace.close()
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from catalyst.config import CatalystConfig
from catalyst.generation.base import ArtifactGenerator
from catalyst.logging import bind_project_context, clear_project_context
from catalyst.models.artifacts import KnowledgeDoc
from catalyst.models.file_node import FileNode
from catalyst.models.plan import PlanPhase, Task, TaskStatus
from catalyst.models.project import ArtifactKey, Phase, Project, Role, validate_artifact
from catalyst.persistence.gateway import PersistenceGateway
from catalyst.persistence.storage import JsonFileStorage
from catalyst.workflow.board import create_manual_task, normalize_plan
from catalyst.workflow.lifecycle import (
    ArtifactBundle,
    AssistKind,
    GenerationRequest,
    LifecycleController,
)
from catalyst.workflow.phases import advance, is_unlocked, navigate, previous
from catalyst.workflow.store import (
    AddKnowledgeDoc,
    AddTask,
    CreateSnapshot,
    DeleteKnowledgeDoc,
    DeleteSnapshot,
    FinalizePlan,
    MoveTask,
    MutateFileTree,
    RegenerateTasks,
    ResetProject,
    RestoreSnapshot,
    SetError,
    SetPhase,
    SetRole,
    Store,
    ToggleChecklistItem,
    UpdateProject,
    WorkspaceState,
)

logger = structlog.get_logger(__name__)

Producer = Callable[[ArtifactGenerator, Project], Awaitable[Any]]


@dataclass(frozen=True)
class Transition:
    """What advancing from one phase generates.

    Attributes:
        target: Phase reached on success
        artifact_key: Slot receiving the generated artifact
        produce: Coroutine function calling the generator
        label: Name used in failure messages (defaults to the target phase)
    """

    target: Phase
    artifact_key: ArtifactKey
    produce: Producer
    label: str | None = None


async def _architecture_bundle(generator: ArtifactGenerator, project: Project) -> ArtifactBundle:
    # The cost estimate is produced first; a failure of either call fails both
    cost = await generator.generate_cost_estimation(project)
    schema = await generator.generate_schema(project)
    return ArtifactBundle(schema, {ArtifactKey.COST_ESTIMATION: cost})


async def _action_plan(generator: ArtifactGenerator, project: Project) -> list[PlanPhase]:
    plan = await generator.generate_action_plan(project)
    return normalize_plan(validate_artifact(ArtifactKey.ACTION_PLAN, plan))


TRANSITIONS: dict[Phase, Transition] = {
    Phase.IDEA: Transition(
        Phase.BRAINSTORM,
        ArtifactKey.BRAINSTORMING,
        lambda g, p: g.generate_brainstorming(p),
    ),
    Phase.BRAINSTORM: Transition(
        Phase.RESEARCH, ArtifactKey.RESEARCH, lambda g, p: g.generate_research(p)
    ),
    Phase.KNOWLEDGE: Transition(
        Phase.RESEARCH, ArtifactKey.RESEARCH, lambda g, p: g.generate_research(p)
    ),
    Phase.RESEARCH: Transition(
        Phase.ARCHITECTURE,
        ArtifactKey.ARCHITECTURE,
        lambda g, p: g.generate_architecture(p),
    ),
    Phase.ARCHITECTURE: Transition(
        Phase.DATA_MODEL,
        ArtifactKey.SCHEMA,
        _architecture_bundle,
        label=Phase.ARCHITECTURE.value,
    ),
    Phase.DATA_MODEL: Transition(
        Phase.FILE_STRUCTURE,
        ArtifactKey.FILE_STRUCTURE,
        lambda g, p: g.generate_file_structure(p),
    ),
    Phase.FILE_STRUCTURE: Transition(
        Phase.UI_UX,
        ArtifactKey.DESIGN_SYSTEM,
        lambda g, p: g.generate_design_system(p),
    ),
    Phase.UI_UX: Transition(
        Phase.API_SPEC, ArtifactKey.API_SPEC, lambda g, p: g.generate_api_spec(p)
    ),
    Phase.API_SPEC: Transition(
        Phase.SECURITY,
        ArtifactKey.SECURITY,
        lambda g, p: g.generate_security_context(p),
    ),
    Phase.BLUEPRINT_STUDIO: Transition(
        Phase.AGENT_RULES,
        ArtifactKey.AGENT_RULES,
        lambda g, p: g.generate_agent_rules(p),
    ),
    Phase.AGENT_RULES: Transition(Phase.PLAN, ArtifactKey.ACTION_PLAN, _action_plan),
}

KICKOFF_TRANSITION = Transition(
    Phase.KICKOFF, ArtifactKey.KICKOFF, lambda g, p: g.generate_kickoff_assets(p)
)


def bind_log_context(state: WorkspaceState) -> None:
    """Bind the state's project and phase to every following log line."""
    bind_project_context(project_id=state.project.id, phase=state.current_phase.value)


def _rebind_log_context(previous: WorkspaceState, current: WorkspaceState) -> None:
    if (
        previous.current_phase != current.current_phase
        or previous.project.id != current.project.id
    ):
        bind_log_context(current)


class Workspace:
    """User-level commands over one project.

    Attributes:
        store: Store holding the workspace state
        generator: Artifact generator
        lifecycle: Controller running generation calls
        gateway: Persistence gateway saving every change, if any
    """

    def __init__(
        self,
        store: Store,
        generator: ArtifactGenerator,
        gateway: PersistenceGateway | None = None,
    ) -> None:
        self.store = store
        self.generator = generator
        self.lifecycle = LifecycleController(store, generator)
        self.gateway = gateway
        self._detach: Callable[[], None] | None = None
        if gateway is not None:
            self._detach = gateway.attach(store)
        bind_log_context(store.state)
        self._unwatch: Callable[[], None] | None = store.subscribe(_rebind_log_context)

    @classmethod
    def open(cls, config: CatalystConfig, generator: ArtifactGenerator) -> Workspace:
        """Restore the saved workspace described by ``config``."""
        storage = JsonFileStorage(config.storage.directory)
        gateway = PersistenceGateway(
            storage,
            key=config.storage.state_key,
            debounce_seconds=config.storage.debounce_seconds,
        )
        saved = gateway.load()
        state = WorkspaceState(
            current_phase=saved.phase,
            project=saved.project,
            role=Role(config.workspace.role),
        )
        return cls(Store(state), generator, gateway)

    def close(self) -> None:
        """Write pending changes, stop autosaving and drop the log context."""
        if self.gateway is not None:
            self.gateway.flush()
        if self._detach is not None:
            self._detach()
            self._detach = None
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None
            clear_project_context()

    @property
    def state(self) -> WorkspaceState:
        return self.store.state

    @property
    def project(self) -> Project:
        return self.store.state.project

    # --- phase flow --------------------------------------------------------

    async def submit_idea(
        self, idea: str, project_type: str = "", constraints: str = ""
    ) -> GenerationRequest:
        """Start a fresh project from an idea and brainstorm it."""
        self.store.dispatch(
            ResetProject(project=Project.from_idea(idea, project_type, constraints))
        )
        return await self._run(TRANSITIONS[Phase.IDEA])

    async def advance_phase(self, regenerate: bool = False) -> GenerationRequest | None:
        """Move to the next phase, generating its artifact when needed.

        When the next phase's artifact already exists the phase is simply
        advanced unless ``regenerate`` is set. From Plan, advancing
        finalizes the plan into the board.

        Returns:
            The generation request, or None when nothing was generated.
        """
        current = self.state.current_phase
        if current is Phase.PLAN:
            self.finalize_plan()
            return None
        transition = TRANSITIONS.get(current)
        if transition is None:
            self.store.dispatch(SetPhase(phase=advance(current)))
            return None
        if regenerate or not self.project.has_artifact(transition.artifact_key):
            return await self._run(transition)
        self.store.dispatch(SetPhase(phase=transition.target))
        return None

    def navigate_to(self, phase: Phase) -> bool:
        """Jump to an unlocked phase. Locked phases set an error instead."""
        if not is_unlocked(self.project, phase):
            self.store.dispatch(SetError(message=f"{phase.value} is not unlocked yet."))
            return False
        self.store.dispatch(SetPhase(phase=navigate(phase)))
        return True

    def back_phase(self) -> Phase:
        """Step back to the nearest earlier unlocked phase."""
        target = previous(self.state.current_phase)
        while not is_unlocked(self.project, target):
            target = previous(target)
        self.store.dispatch(SetPhase(phase=target))
        return target

    async def generate_kickoff(self) -> GenerationRequest:
        return await self._run(KICKOFF_TRANSITION)

    async def _run(self, transition: Transition) -> GenerationRequest:
        generator = self.generator
        project = self.project

        async def produce() -> Any:
            return await transition.produce(generator, project)

        return await self.lifecycle.run_phase_generator(
            transition.target, produce, transition.artifact_key, label=transition.label
        )

    async def refine(self, section: str, feedback: str) -> GenerationRequest:
        return await self.lifecycle.refine(section, feedback)

    def update_artifact(self, updates: dict[ArtifactKey, Any]) -> bool:
        """Replace artifact slots with user-edited values.

        Returns:
            False (with an error message set) when a value does not fit its slot.
        """
        try:
            command = UpdateProject(artifacts=updates)
        except ValueError as e:
            self.store.dispatch(SetError(message=f"Invalid artifact update: {e}"))
            return False
        self.store.dispatch(command)
        return True

    def reset_project(self) -> None:
        self.store.dispatch(ResetProject())

    def set_role(self, role: Role) -> None:
        self.store.dispatch(SetRole(role=role))

    # --- file tree ---------------------------------------------------------

    def mutate_file_tree(
        self,
        op: str,
        path: list[str],
        node: FileNode | None = None,
        content: str | None = None,
        nodes: list[FileNode] | None = None,
    ) -> bool:
        """Apply one file tree edit (insert, remove, set_content or replace).

        Returns:
            False (with an error message set) when the edit is malformed,
            e.g. an unknown op or an insert without a node.
        """
        try:
            command = MutateFileTree(op=op, path=path, node=node, content=content, nodes=nodes)
        except ValueError as e:
            self.store.dispatch(SetError(message=f"Invalid file tree edit: {e}"))
            return False
        self.store.dispatch(command)
        return True

    # --- board -------------------------------------------------------------

    def finalize_plan(self, plan: list[PlanPhase] | None = None) -> None:
        """Store the plan and open the board, deriving tasks the first time."""
        self.store.dispatch(FinalizePlan(plan=plan))

    def regenerate_tasks(self) -> None:
        """Re-derive the board from the plan, discarding task progress."""
        self.store.dispatch(RegenerateTasks())

    def move_task(self, task_id: str, status: TaskStatus) -> None:
        self.store.dispatch(MoveTask(task_id=task_id, status=status))

    def toggle_checklist_item(self, task_id: str, item_id: str) -> None:
        self.store.dispatch(ToggleChecklistItem(task_id=task_id, item_id=item_id))

    def add_task(self, description: str, phase: str = "", **fields: Any) -> Task:
        task = create_manual_task(description, phase=phase, **fields)
        self.store.dispatch(AddTask(task=task))
        return task

    async def assist_task(self, task_id: str, kind: AssistKind) -> GenerationRequest:
        return await self.lifecycle.assist_task(task_id, kind)

    async def generate_task_guide(self, task_id: str) -> GenerationRequest:
        return await self.assist_task(task_id, "guide")

    async def generate_task_checklist(self, task_id: str) -> GenerationRequest:
        return await self.assist_task(task_id, "checklist")

    async def generate_task_code(self, task_id: str) -> GenerationRequest:
        return await self.assist_task(task_id, "code")

    # --- knowledge base and snapshots --------------------------------------

    def add_knowledge_doc(self, title: str, content: str, **fields: Any) -> KnowledgeDoc:
        doc = KnowledgeDoc(title=title, content=content, **fields)
        self.store.dispatch(AddKnowledgeDoc(doc=doc))
        return doc

    def delete_knowledge_doc(self, doc_id: str) -> None:
        self.store.dispatch(DeleteKnowledgeDoc(doc_id=doc_id))

    def create_snapshot(self, name: str, description: str = "") -> str:
        command = CreateSnapshot(name=name, description=description)
        self.store.dispatch(command)
        return command.snapshot_id

    def restore_snapshot(self, snapshot_id: str) -> None:
        self.store.dispatch(RestoreSnapshot(snapshot_id=snapshot_id))

    def delete_snapshot(self, snapshot_id: str) -> None:
        self.store.dispatch(DeleteSnapshot(snapshot_id=snapshot_id))
