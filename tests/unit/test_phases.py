"""Unit tests for the phase graph and unlock policy.

Tests cover:
- Phase ordering and successor/predecessor lookup
- Unlock computation from artifact presence
- Monotonicity of the unlocked set
- Shared gates (security, tasks)
"""

from __future__ import annotations

import pytest

from catalyst.models.project import ArtifactKey, Phase, Project, validate_artifact
from catalyst.workflow.phases import (
    PHASE_ORDER,
    UNLOCK_GATES,
    advance,
    compute_unlocked,
    is_unlocked,
    navigate,
    ordered,
    previous,
)


class TestPhaseOrder:
    """Test the fixed phase ordering."""

    def test_order_starts_with_idea_and_ends_with_kickoff(self) -> None:
        assert PHASE_ORDER[0] is Phase.IDEA
        assert PHASE_ORDER[-1] is Phase.KICKOFF
        assert len(PHASE_ORDER) == 16

    def test_every_phase_but_idea_has_a_gate(self) -> None:
        assert set(UNLOCK_GATES) == set(Phase) - {Phase.IDEA}

    @pytest.mark.parametrize("index", range(len(PHASE_ORDER) - 1))
    def test_advance_yields_unique_successor(self, index: int) -> None:
        assert advance(PHASE_ORDER[index]) is PHASE_ORDER[index + 1]

    def test_advance_on_last_phase_stays(self) -> None:
        assert advance(Phase.KICKOFF) is Phase.KICKOFF

    def test_previous_on_first_phase_stays(self) -> None:
        assert previous(Phase.IDEA) is Phase.IDEA

    def test_previous_inverts_advance(self) -> None:
        for phase in PHASE_ORDER[1:]:
            assert advance(previous(phase)) is phase

    def test_navigate_is_unconditional(self) -> None:
        assert navigate(Phase.KICKOFF) is Phase.KICKOFF

    def test_ordered_sorts_by_workflow(self) -> None:
        assert ordered({Phase.PLAN, Phase.IDEA, Phase.RESEARCH}) == [
            Phase.IDEA,
            Phase.RESEARCH,
            Phase.PLAN,
        ]


class TestComputeUnlocked:
    """Test compute_unlocked against project contents."""

    def test_idea_only_project_unlocks_only_idea(self, idea_project: Project) -> None:
        assert compute_unlocked(idea_project) == frozenset({Phase.IDEA})

    def test_brainstorming_unlocks_exactly_brainstorm(
        self, idea_project: Project, fake_generator
    ) -> None:
        brainstorming = validate_artifact(
            ArtifactKey.BRAINSTORMING, fake_generator.responses["generate_brainstorming"]
        )
        project = idea_project.with_artifacts({ArtifactKey.BRAINSTORMING: brainstorming})

        added = compute_unlocked(project) - compute_unlocked(idea_project)

        assert added == frozenset({Phase.BRAINSTORM})

    def test_security_unlocks_review_and_studio(
        self, idea_project: Project, fake_generator
    ) -> None:
        security = validate_artifact(
            ArtifactKey.SECURITY, fake_generator.responses["generate_security_context"]
        )
        project = idea_project.with_artifacts({ArtifactKey.SECURITY: security})

        unlocked = compute_unlocked(project)

        assert Phase.SECURITY in unlocked
        assert Phase.BLUEPRINT_STUDIO in unlocked

    def test_tasks_unlock_the_terminal_phases(self, planned_project: Project) -> None:
        from catalyst.workflow.board import derive_tasks

        project = planned_project.with_artifacts(
            {ArtifactKey.TASKS: derive_tasks(planned_project.action_plan or [])}
        )

        assert {Phase.WORKSPACE, Phase.DOCUMENT, Phase.KICKOFF} <= compute_unlocked(project)

    def test_empty_list_artifact_does_not_unlock(self, idea_project: Project) -> None:
        project = idea_project.with_artifacts({ArtifactKey.FILE_STRUCTURE: []})
        assert not is_unlocked(project, Phase.FILE_STRUCTURE)

    def test_empty_rules_text_does_not_unlock(self, idea_project: Project) -> None:
        project = idea_project.with_artifacts({ArtifactKey.AGENT_RULES: ""})
        assert not is_unlocked(project, Phase.AGENT_RULES)

    def test_adding_artifacts_never_removes_phases(self, planned_project: Project) -> None:
        project = Project.from_idea("habit tracker")
        previous_unlocked = compute_unlocked(project)

        for key in ArtifactKey:
            value = planned_project.artifact(key)
            if value is None:
                continue
            project = project.with_artifacts({key: value})
            current_unlocked = compute_unlocked(project)
            assert previous_unlocked <= current_unlocked
            previous_unlocked = current_unlocked

        assert Phase.PLAN in previous_unlocked
