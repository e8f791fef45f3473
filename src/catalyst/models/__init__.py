"""Pydantic data model for Catalyst.

This package defines the project aggregate, the workflow phases, every
phase artifact shape, the plan/task board records and the file tree node.
"""

from catalyst.models.artifacts import (
    ApiEndpoint,
    ApiSpecification,
    ArchitectureData,
    BrainstormingData,
    ChatMessage,
    CostEstimation,
    DesignSystem,
    KnowledgeDoc,
    Persona,
    ResearchRefinement,
    ResearchReport,
    SchemaData,
    SchemaTable,
    SecurityContext,
    Snapshot,
    Source,
    TechStack,
)
from catalyst.models.file_node import FileNode
from catalyst.models.plan import (
    ChecklistItem,
    PlanPhase,
    PlanTask,
    Task,
    TaskCodeSnippet,
    TaskStatus,
    normalize_priority,
)
from catalyst.models.project import (
    ARTIFACT_TYPES,
    ArtifactKey,
    Phase,
    Project,
    Role,
    dump_artifact,
    validate_artifact,
)

__all__ = [
    "ARTIFACT_TYPES",
    "ApiEndpoint",
    "ApiSpecification",
    "ArchitectureData",
    "ArtifactKey",
    "BrainstormingData",
    "ChatMessage",
    "ChecklistItem",
    "CostEstimation",
    "DesignSystem",
    "FileNode",
    "KnowledgeDoc",
    "Persona",
    "Phase",
    "PlanPhase",
    "PlanTask",
    "Project",
    "ResearchRefinement",
    "ResearchReport",
    "Role",
    "SchemaData",
    "SchemaTable",
    "SecurityContext",
    "Snapshot",
    "Source",
    "Task",
    "TaskCodeSnippet",
    "TaskStatus",
    "TechStack",
    "dump_artifact",
    "normalize_priority",
    "validate_artifact",
]
