"""Unit tests for the workspace store and reducer.

Tests cover:
- Phase, busy and error commands
- Artifact and detail updates with validation
- File tree mutation through commands
- Plan finalization and task regeneration
- Read-only (Viewer) rejection
- Snapshots and knowledge documents
- Listener notification
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from catalyst.models.artifacts import ChatMessage, KnowledgeDoc
from catalyst.models.file_node import FileNode
from catalyst.models.plan import TaskStatus
from catalyst.models.project import ArtifactKey, Phase, Project, Role
from catalyst.workflow.board import create_manual_task
from catalyst.workflow.store import (
    AddKnowledgeDoc,
    AddTask,
    CreateSnapshot,
    DeleteKnowledgeDoc,
    DeleteSnapshot,
    FinalizePlan,
    LoadState,
    MoveTask,
    MutateFileTree,
    RegenerateTasks,
    ResetProject,
    RestoreSnapshot,
    SetBusy,
    SetError,
    SetPhase,
    SetRole,
    Store,
    UpdateProject,
    UpdateTask,
    WorkspaceState,
    reduce,
)


class TestBasicCommands:
    """Test phase, busy, error and reset commands."""

    def test_set_phase(self, store: Store) -> None:
        state = store.dispatch(SetPhase(phase=Phase.RESEARCH))
        assert state.current_phase is Phase.RESEARCH

    def test_set_busy_per_concern(self, store: Store) -> None:
        store.dispatch(SetBusy(concern="refining", value=True))

        assert store.state.refining
        assert not store.state.generating
        assert store.state.is_busy("refining")

    def test_set_and_clear_error(self, store: Store) -> None:
        store.dispatch(SetError(message="boom"))
        assert store.state.error == "boom"

        store.dispatch(SetError())
        assert store.state.error is None

    def test_reset_returns_to_idea(self, planned_store: Store) -> None:
        planned_store.dispatch(SetError(message="old"))

        state = planned_store.dispatch(ResetProject())

        assert state.current_phase is Phase.IDEA
        assert state.error is None
        assert state.project.action_plan is None

    def test_load_state_replaces_phase_and_project(self, store: Store) -> None:
        project = Project.from_idea("todo app")

        state = store.dispatch(LoadState(phase=Phase.RESEARCH, project=project))

        assert state.current_phase is Phase.RESEARCH
        assert state.project.initial_idea == "todo app"

    def test_reduce_never_modifies_input(self, store: Store) -> None:
        before = store.state

        after = reduce(before, SetPhase(phase=Phase.PLAN))

        assert before.current_phase is Phase.IDEA
        assert after is not before


class TestUpdateProject:
    """Test artifact and detail updates."""

    def test_raw_artifacts_are_validated(self, store: Store, fake_generator) -> None:
        state = store.dispatch(
            UpdateProject(
                artifacts={
                    ArtifactKey.BRAINSTORMING: fake_generator.responses[
                        "generate_brainstorming"
                    ]
                }
            )
        )

        assert state.project.brainstorming_results is not None
        assert state.project.brainstorming_results.features == ["Daily check-in", "Reminders"]
        assert Phase.BRAINSTORM in state.unlocked

    def test_other_slots_untouched(self, planned_store: Store) -> None:
        before = planned_store.state.project

        after = planned_store.dispatch(
            UpdateProject(artifacts={ArtifactKey.AGENT_RULES: "new rules"})
        ).project

        assert after.agent_rules == "new rules"
        assert after.architecture == before.architecture
        assert after.action_plan == before.action_plan

    def test_malformed_artifact_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UpdateProject(artifacts={ArtifactKey.ARCHITECTURE: {"stack": "React"}})

    def test_unknown_detail_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            UpdateProject(details={"owner": "me"})

    def test_new_idea_renames_project(self, store: Store) -> None:
        state = store.dispatch(
            UpdateProject(details={"initial_idea": "a very long idea about habits"})
        )

        assert state.project.initial_idea == "a very long idea about habits"
        assert state.project.name == "a very long idea abo..."

    def test_none_clears_slot(self, planned_store: Store) -> None:
        state = planned_store.dispatch(UpdateProject(artifacts={ArtifactKey.RESEARCH: None}))
        assert state.project.research_report is None


class TestMutateFileTree:
    """Test file tree commands."""

    def test_insert(self, planned_store: Store) -> None:
        state = planned_store.dispatch(
            MutateFileTree(
                op="insert", path=["src", "api"], node=FileNode(name="routes.py", type="file")
            )
        )

        api = state.project.file_structure[0].children[1]  # type: ignore[index]
        assert [child.name for child in api.children or []] == ["routes.py"]

    def test_set_content(self, planned_store: Store) -> None:
        state = planned_store.dispatch(
            MutateFileTree(op="set_content", path=["README.md"], content="# New")
        )
        assert state.project.file_structure[1].content == "# New"  # type: ignore[index]

    def test_remove(self, planned_store: Store) -> None:
        state = planned_store.dispatch(MutateFileTree(op="remove", path=["src"]))
        assert [node.name for node in state.project.file_structure or []] == ["README.md"]

    def test_insert_into_empty_project(self, store: Store) -> None:
        state = store.dispatch(
            MutateFileTree(op="insert", node=FileNode(name="app", type="folder"))
        )
        assert Phase.FILE_STRUCTURE in state.unlocked

    @pytest.mark.parametrize(
        "kwargs",
        [{"op": "insert"}, {"op": "set_content", "path": ["a"]}, {"op": "replace"}],
    )
    def test_missing_payload_is_rejected(self, kwargs: dict) -> None:
        with pytest.raises(ValidationError):
            MutateFileTree(**kwargs)


class TestFinalizePlan:
    """Test plan finalization and task regeneration."""

    def test_derives_tasks_and_opens_board(self, planned_store: Store) -> None:
        state = planned_store.dispatch(FinalizePlan())

        assert state.current_phase is Phase.WORKSPACE
        assert [task.id for task in state.project.tasks or []] == ["0-0", "1-0", "1-1"]
        assert {Phase.WORKSPACE, Phase.DOCUMENT, Phase.KICKOFF} <= state.unlocked

    def test_existing_tasks_are_kept(self, planned_store: Store) -> None:
        planned_store.dispatch(FinalizePlan())
        planned_store.dispatch(MoveTask(task_id="0-0", status=TaskStatus.DONE))

        state = planned_store.dispatch(FinalizePlan())

        assert state.project.tasks[0].status is TaskStatus.DONE  # type: ignore[index]

    def test_regenerate_discards_progress(self, planned_store: Store) -> None:
        planned_store.dispatch(FinalizePlan())
        planned_store.dispatch(MoveTask(task_id="0-0", status=TaskStatus.DONE))

        state = planned_store.dispatch(RegenerateTasks())

        assert all(task.status is TaskStatus.TODO for task in state.project.tasks or [])

    def test_add_and_update_task(self, planned_store: Store) -> None:
        planned_store.dispatch(FinalizePlan())
        manual = create_manual_task("Write docs")

        planned_store.dispatch(AddTask(task=manual))
        state = planned_store.dispatch(
            UpdateTask(task_id=manual.id, changes={"implementation_guide": "Step 1"})
        )

        assert state.project.tasks[-1].id == manual.id  # type: ignore[index]
        assert state.project.tasks[-1].implementation_guide == "Step 1"  # type: ignore[index]

    def test_update_task_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            UpdateTask(task_id="0-0", changes={"status": "Done"})


class TestReadOnly:
    """Test that the Viewer role cannot mutate the project."""

    @pytest.fixture
    def viewer_store(self, planned_project: Project) -> Store:
        return Store(
            WorkspaceState(current_phase=Phase.PLAN, project=planned_project, role=Role.VIEWER)
        )

    @pytest.mark.parametrize(
        "command",
        [
            UpdateProject(artifacts={ArtifactKey.AGENT_RULES: "hacked"}),
            ResetProject(),
            FinalizePlan(),
            RegenerateTasks(),
            MutateFileTree(op="remove", path=["src"]),
            CreateSnapshot(name="v1"),
        ],
    )
    def test_mutations_reduce_to_same_state(self, viewer_store: Store, command) -> None:
        before = viewer_store.state

        after = viewer_store.dispatch(command)

        assert after is before

    def test_navigation_still_allowed(self, viewer_store: Store) -> None:
        state = viewer_store.dispatch(SetPhase(phase=Phase.RESEARCH))
        assert state.current_phase is Phase.RESEARCH

    def test_role_can_be_raised_again(self, viewer_store: Store) -> None:
        viewer_store.dispatch(SetRole(role=Role.EDITOR))
        state = viewer_store.dispatch(UpdateProject(artifacts={ArtifactKey.AGENT_RULES: "ok"}))
        assert state.project.agent_rules == "ok"


class TestSnapshots:
    """Test snapshot create, restore and delete."""

    def test_restore_brings_back_artifacts(self, planned_store: Store) -> None:
        planned_store.dispatch(CreateSnapshot(name="v1", snapshot_id="snap-1"))
        planned_store.dispatch(UpdateProject(artifacts={ArtifactKey.AGENT_RULES: "changed"}))
        planned_store.dispatch(UpdateProject(artifacts={ArtifactKey.RESEARCH: None}))

        state = planned_store.dispatch(RestoreSnapshot(snapshot_id="snap-1"))

        assert state.project.agent_rules == "# Agent rules\n\nUse type hints everywhere."
        assert state.project.research_report is not None
        assert [s.name for s in state.project.snapshots] == ["v1"]

    def test_restore_keeps_artifacts_created_after_snapshot(self, planned_store: Store) -> None:
        planned_store.dispatch(CreateSnapshot(name="before board", snapshot_id="snap-0"))
        planned_store.dispatch(FinalizePlan())
        planned_store.dispatch(MoveTask(task_id="0-0", status=TaskStatus.DONE))

        state = planned_store.dispatch(RestoreSnapshot(snapshot_id="snap-0"))

        tasks = state.project.tasks
        assert tasks is not None
        assert tasks[0].status is TaskStatus.DONE
        assert state.project.action_plan is not None

    def test_restore_overwrites_only_captured_slots(self, store: Store) -> None:
        store.dispatch(UpdateProject(artifacts={ArtifactKey.AGENT_RULES: "v1 rules"}))
        store.dispatch(CreateSnapshot(name="v1", snapshot_id="snap-1"))
        store.dispatch(
            UpdateProject(
                artifacts={ArtifactKey.AGENT_RULES: "v2 rules", ArtifactKey.KICKOFF: "# Kickoff"}
            )
        )

        state = store.dispatch(RestoreSnapshot(snapshot_id="snap-1"))

        assert state.project.agent_rules == "v1 rules"
        assert state.project.kickoff_assets == "# Kickoff"

    def test_snapshot_data_uses_json_keys(self, planned_store: Store) -> None:
        state = planned_store.dispatch(CreateSnapshot(name="v1"))

        data = state.project.snapshots[0].data
        assert data["action_plan"][0]["phase_name"] == "Setup"
        assert "snapshots" not in data

    def test_chat_history_is_captured(self, store: Store) -> None:
        message = ChatMessage(role="user", text="Use Postgres")
        store.dispatch(UpdateProject(artifacts={ArtifactKey.CHAT_HISTORY: [message]}))
        store.dispatch(CreateSnapshot(name="v1", snapshot_id="snap-1"))
        store.dispatch(UpdateProject(artifacts={ArtifactKey.CHAT_HISTORY: []}))

        state = store.dispatch(RestoreSnapshot(snapshot_id="snap-1"))

        assert [m.text for m in state.project.chat_history or []] == ["Use Postgres"]

    def test_restore_unknown_id_is_noop(self, planned_store: Store) -> None:
        before = planned_store.state
        assert planned_store.dispatch(RestoreSnapshot(snapshot_id="missing")) is before

    def test_delete(self, planned_store: Store) -> None:
        planned_store.dispatch(CreateSnapshot(name="v1", snapshot_id="a"))
        planned_store.dispatch(CreateSnapshot(name="v2", snapshot_id="b"))

        state = planned_store.dispatch(DeleteSnapshot(snapshot_id="a"))

        assert [s.id for s in state.project.snapshots] == ["b"]


class TestKnowledgeBase:
    """Test knowledge document commands."""

    def test_add_unlocks_knowledge_phase(self, store: Store) -> None:
        doc = KnowledgeDoc(title="Style guide", content="Use tabs")

        state = store.dispatch(AddKnowledgeDoc(doc=doc))

        assert Phase.KNOWLEDGE in state.unlocked
        assert state.project.knowledge_base == [doc]

    def test_delete(self, store: Store) -> None:
        doc = KnowledgeDoc(id="doc-1", title="Style guide", content="Use tabs")
        store.dispatch(AddKnowledgeDoc(doc=doc))

        state = store.dispatch(DeleteKnowledgeDoc(doc_id="doc-1"))

        assert state.project.knowledge_base == []
        assert Phase.KNOWLEDGE not in state.unlocked


class TestListeners:
    """Test store subscription."""

    def test_listener_receives_previous_and_current(self, store: Store) -> None:
        seen = []
        store.subscribe(lambda prev, cur: seen.append((prev.current_phase, cur.current_phase)))

        store.dispatch(SetPhase(phase=Phase.BRAINSTORM))

        assert seen == [(Phase.IDEA, Phase.BRAINSTORM)]

    def test_rejected_command_does_not_notify(self, store: Store) -> None:
        store.dispatch(SetRole(role=Role.VIEWER))
        seen = []
        store.subscribe(lambda prev, cur: seen.append(cur))

        store.dispatch(ResetProject())

        assert seen == []

    def test_unsubscribe(self, store: Store) -> None:
        seen = []
        unsubscribe = store.subscribe(lambda prev, cur: seen.append(cur))

        unsubscribe()
        store.dispatch(SetPhase(phase=Phase.BRAINSTORM))

        assert seen == []
