"""Phase graph and unlock policy.

The workflow is a fixed, totally ordered sequence of phases. Which phases a
user may open is derived from the artifacts present in the project, never
stored: a phase is unlocked iff its gating artifact exists.

Navigation itself is unconditional here; callers check compute_unlocked
before letting a user jump to a phase.
"""

from __future__ import annotations

import structlog

from catalyst.models.project import ArtifactKey, Phase, Project

logger = structlog.get_logger(__name__)


PHASE_ORDER: tuple[Phase, ...] = tuple(Phase)

# Authoritative unlock policy. Several phases share one gate.
UNLOCK_GATES: dict[Phase, ArtifactKey] = {
    Phase.BRAINSTORM: ArtifactKey.BRAINSTORMING,
    Phase.KNOWLEDGE: ArtifactKey.KNOWLEDGE_BASE,
    Phase.RESEARCH: ArtifactKey.RESEARCH,
    Phase.ARCHITECTURE: ArtifactKey.ARCHITECTURE,
    Phase.DATA_MODEL: ArtifactKey.SCHEMA,
    Phase.FILE_STRUCTURE: ArtifactKey.FILE_STRUCTURE,
    Phase.UI_UX: ArtifactKey.DESIGN_SYSTEM,
    Phase.API_SPEC: ArtifactKey.API_SPEC,
    Phase.SECURITY: ArtifactKey.SECURITY,
    Phase.BLUEPRINT_STUDIO: ArtifactKey.SECURITY,
    Phase.AGENT_RULES: ArtifactKey.AGENT_RULES,
    Phase.PLAN: ArtifactKey.ACTION_PLAN,
    Phase.WORKSPACE: ArtifactKey.TASKS,
    Phase.DOCUMENT: ArtifactKey.TASKS,
    Phase.KICKOFF: ArtifactKey.TASKS,
}


def compute_unlocked(project: Project) -> frozenset[Phase]:
    """Compute the set of phases reachable from the project's artifacts.

    Args:
        project: Project to inspect.

    Returns:
        Unlocked phases. Always contains the first phase.
    """
    unlocked = {PHASE_ORDER[0]}
    for phase, key in UNLOCK_GATES.items():
        if project.has_artifact(key):
            unlocked.add(phase)
    return frozenset(unlocked)


def is_unlocked(project: Project, phase: Phase) -> bool:
    """Whether ``phase`` is currently reachable for ``project``."""
    return phase in compute_unlocked(project)


def ordered(phases: frozenset[Phase] | set[Phase]) -> list[Phase]:
    """Sort phases by workflow order."""
    return sorted(phases, key=PHASE_ORDER.index)


def advance(current: Phase) -> Phase:
    """Return the phase after ``current``, or ``current`` if it is last."""
    index = PHASE_ORDER.index(current)
    if index + 1 >= len(PHASE_ORDER):
        return current
    return PHASE_ORDER[index + 1]


def previous(current: Phase) -> Phase:
    """Return the phase before ``current``, or ``current`` if it is first."""
    index = PHASE_ORDER.index(current)
    if index == 0:
        return current
    return PHASE_ORDER[index - 1]


def navigate(target: Phase) -> Phase:
    """Return ``target`` unconditionally.

    Unlock checks belong to the caller (see is_unlocked).
    """
    logger.debug("phase_navigate", target=target.value)
    return target
