"""Artifact generator protocol and error hierarchy.

The workflow core treats artifact generation as an opaque asynchronous
call: given the project (or one of its artifacts) it returns a value shaped
like the requested artifact, or raises. Any object implementing
ArtifactGenerator can be plugged into the lifecycle controller; the bundled
implementation is OllamaGenerator.

Return values are validated against the artifact type by the caller, so
implementations may return either model instances or plain JSON data.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from catalyst.models.artifacts import (
    ApiSpecification,
    ArchitectureData,
    BrainstormingData,
    CostEstimation,
    DesignSystem,
    ResearchRefinement,
    ResearchReport,
    SchemaData,
    SecurityContext,
)
from catalyst.models.file_node import FileNode
from catalyst.models.plan import PlanPhase, Task, TaskCodeSnippet
from catalyst.models.project import Project


class GenerationError(Exception):
    """Base exception for artifact generation failures."""

    pass


class GenerationTimeoutError(GenerationError):
    """Raised when the generation backend times out."""

    pass


class GenerationConnectionError(GenerationError):
    """Raised when the generation backend cannot be reached."""

    pass


class GenerationAPIError(GenerationError):
    """Raised when the generation backend returns an error response."""

    pass


class MalformedArtifactError(GenerationError):
    """Raised when a generated value cannot be parsed as the expected artifact."""

    pass


@runtime_checkable
class ArtifactGenerator(Protocol):
    """Produces and refines phase artifacts for a project."""

    async def generate_brainstorming(self, project: Project) -> BrainstormingData | Any: ...

    async def generate_research(self, project: Project) -> ResearchReport | Any: ...

    async def generate_architecture(self, project: Project) -> ArchitectureData | Any: ...

    async def generate_cost_estimation(self, project: Project) -> CostEstimation | Any: ...

    async def generate_schema(self, project: Project) -> SchemaData | Any: ...

    async def generate_file_structure(self, project: Project) -> list[FileNode] | Any: ...

    async def generate_design_system(self, project: Project) -> DesignSystem | Any: ...

    async def generate_api_spec(self, project: Project) -> ApiSpecification | Any: ...

    async def generate_security_context(self, project: Project) -> SecurityContext | Any: ...

    async def generate_agent_rules(self, project: Project) -> str: ...

    async def generate_action_plan(self, project: Project) -> list[PlanPhase] | Any: ...

    async def generate_kickoff_assets(self, project: Project) -> str: ...

    async def refine_section(self, section: str, current: Any, feedback: str) -> Any:
        """Return a revised version of ``current`` following ``feedback``."""
        ...

    async def refine_research(
        self, report: ResearchReport, feedback: str
    ) -> ResearchRefinement | Any:
        """Return a new summary plus any newly found sources."""
        ...

    async def generate_implementation_guide(self, task: Task, project: Project) -> str: ...

    async def generate_checklist(self, task: Task, project: Project) -> list[str]: ...

    async def generate_task_code(self, task: Task, project: Project) -> TaskCodeSnippet | Any: ...
