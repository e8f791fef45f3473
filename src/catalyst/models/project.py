"""Project aggregate, workflow phases and the artifact slot registry.

The Project holds one optional slot per phase artifact. Slots are named by
ArtifactKey and each key maps to exactly one artifact type in
ARTIFACT_TYPES, so that every update can be validated before it is merged
into the aggregate.
"""

from __future__ import annotations

import enum
from functools import lru_cache
from typing import Any

from pydantic import Field, TypeAdapter

from catalyst.models.artifacts import (
    ApiSpecification,
    ArchitectureData,
    BrainstormingData,
    ChatMessage,
    CostEstimation,
    DesignSystem,
    KnowledgeDoc,
    ResearchReport,
    SchemaData,
    SecurityContext,
    Snapshot,
)
from catalyst.models.base import CatalystModel, generate_id, now_ms
from catalyst.models.file_node import FileNode
from catalyst.models.plan import PlanPhase, Task


class Phase(str, enum.Enum):
    """Workflow phases in their fixed order.

    Declaration order is the workflow order. KNOWLEDGE is optional: it is
    reachable by navigation once the user adds reference documents.
    Advancing from Brainstorm skips it and goes straight to Research.
    """

    IDEA = "Idea"
    BRAINSTORM = "Brainstorm"
    KNOWLEDGE = "Knowledge"
    RESEARCH = "Research"
    ARCHITECTURE = "Architecture"
    DATA_MODEL = "Data Model"
    FILE_STRUCTURE = "File Structure"
    UI_UX = "UI/UX Design"
    API_SPEC = "API Specification"
    SECURITY = "Security & QA"
    BLUEPRINT_STUDIO = "Blueprint Studio"
    AGENT_RULES = "Agent Rules"
    PLAN = "Plan"
    WORKSPACE = "Workspace"
    DOCUMENT = "Document"
    KICKOFF = "Kickoff"


class Role(str, enum.Enum):
    """Collaborator role; VIEWER may read but never mutate."""

    OWNER = "Owner"
    EDITOR = "Editor"
    VIEWER = "Viewer"

    @property
    def read_only(self) -> bool:
        return self is Role.VIEWER


class ArtifactKey(str, enum.Enum):
    """Names of the artifact slots on Project (values are field names)."""

    BRAINSTORMING = "brainstorming_results"
    KNOWLEDGE_BASE = "knowledge_base"
    RESEARCH = "research_report"
    ARCHITECTURE = "architecture"
    SCHEMA = "data_schema"
    FILE_STRUCTURE = "file_structure"
    DESIGN_SYSTEM = "design_system"
    API_SPEC = "api_spec"
    SECURITY = "security_context"
    COST_ESTIMATION = "cost_estimation"
    AGENT_RULES = "agent_rules"
    ACTION_PLAN = "action_plan"
    TASKS = "tasks"
    KICKOFF = "kickoff_assets"
    CHAT_HISTORY = "chat_history"


ARTIFACT_TYPES: dict[ArtifactKey, Any] = {
    ArtifactKey.BRAINSTORMING: BrainstormingData,
    ArtifactKey.KNOWLEDGE_BASE: list[KnowledgeDoc],
    ArtifactKey.RESEARCH: ResearchReport,
    ArtifactKey.ARCHITECTURE: ArchitectureData,
    ArtifactKey.SCHEMA: SchemaData,
    ArtifactKey.FILE_STRUCTURE: list[FileNode],
    ArtifactKey.DESIGN_SYSTEM: DesignSystem,
    ArtifactKey.API_SPEC: ApiSpecification,
    ArtifactKey.SECURITY: SecurityContext,
    ArtifactKey.COST_ESTIMATION: CostEstimation,
    ArtifactKey.AGENT_RULES: str,
    ArtifactKey.ACTION_PLAN: list[PlanPhase],
    ArtifactKey.TASKS: list[Task],
    ArtifactKey.KICKOFF: str,
    ArtifactKey.CHAT_HISTORY: list[ChatMessage],
}


@lru_cache(maxsize=None)
def _adapter(key: ArtifactKey) -> TypeAdapter[Any]:
    return TypeAdapter(ARTIFACT_TYPES[key])


def validate_artifact(key: ArtifactKey, value: Any) -> Any:
    """Validate a raw value against the artifact type of ``key``.

    Model instances are accepted as-is; dicts and lists are parsed using
    either snake_case or camelCase keys.

    Raises:
        pydantic.ValidationError: If the value does not fit the slot.
    """
    return _adapter(key).validate_python(value)


def dump_artifact(key: ArtifactKey, value: Any) -> Any:
    """Serialize an artifact value to JSON-compatible data (camelCase keys)."""
    return _adapter(key).dump_python(value, mode="json", by_alias=True)


def project_name_from_idea(idea: str) -> str:
    """Derive a display name from the idea text (first 20 chars)."""
    idea = idea.strip()
    if not idea:
        return "Untitled Project"
    return idea[:20] + ("..." if len(idea) > 20 else "")


class Project(CatalystModel):
    """The root aggregate holding every phase artifact for one project.

    Attributes:
        id: Project identifier
        name: Display name
        initial_idea: Idea description the workflow starts from
        project_type: Kind of software (web app, CLI tool, ...)
        constraints: Free-text technical constraints
        last_updated: Time of the last artifact update in milliseconds
        snapshots: Named artifact snapshots
        (remaining fields): one optional slot per ArtifactKey
    """

    id: str = Field(default_factory=generate_id)
    name: str = "Untitled Project"
    initial_idea: str = ""
    project_type: str = ""
    constraints: str = ""
    last_updated: int = Field(default_factory=now_ms)

    brainstorming_results: BrainstormingData | None = None
    knowledge_base: list[KnowledgeDoc] | None = None
    research_report: ResearchReport | None = None
    architecture: ArchitectureData | None = None
    data_schema: SchemaData | None = Field(default=None, alias="schema")
    file_structure: list[FileNode] | None = None
    design_system: DesignSystem | None = None
    api_spec: ApiSpecification | None = None
    security_context: SecurityContext | None = None
    cost_estimation: CostEstimation | None = None
    agent_rules: str | None = None
    action_plan: list[PlanPhase] | None = None
    tasks: list[Task] | None = None
    kickoff_assets: str | None = None
    chat_history: list[ChatMessage] | None = None
    snapshots: list[Snapshot] = Field(default_factory=list)

    def artifact(self, key: ArtifactKey) -> Any:
        """Return the current value of one artifact slot."""
        return getattr(self, key.value)

    def has_artifact(self, key: ArtifactKey) -> bool:
        """Whether a slot holds a usable value (non-None and non-empty)."""
        value = self.artifact(key)
        if value is None:
            return False
        if isinstance(value, (list, str)):
            return len(value) > 0
        return True

    def with_artifacts(self, updates: dict[ArtifactKey, Any]) -> Project:
        """Return a copy with the named slots replaced and all others untouched.

        Values must already be validated (see validate_artifact).
        """
        return self.model_copy(
            update={
                **{key.value: value for key, value in updates.items()},
                "last_updated": now_ms(),
            }
        )

    @classmethod
    def from_idea(
        cls, idea: str = "", project_type: str = "", constraints: str = ""
    ) -> Project:
        """Create a fresh project for an idea."""
        return cls(
            name=project_name_from_idea(idea),
            initial_idea=idea,
            project_type=project_type,
            constraints=constraints,
        )
