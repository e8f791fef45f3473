"""Artifact shapes produced by the workflow phases.

Each phase of the workflow yields one of the models below (or a plain
markdown string for agent rules and kickoff assets). The shapes mirror
what the generator is asked to return; list fields default to empty so that
a sparse but well-formed response still validates, while the fields a phase
cannot do without are required.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from catalyst.models.base import CatalystModel, generate_id, now_ms


# --- Brainstorming ---------------------------------------------------------


class Persona(CatalystModel):
    """A target user persona."""

    role: str
    description: str = ""
    pain_points: list[str] = Field(default_factory=list)


class UserJourney(CatalystModel):
    """A goal-oriented journey for one persona."""

    persona_role: str
    goal: str
    steps: list[str] = Field(default_factory=list)


class BrainstormingData(CatalystModel):
    """Strategic analysis of the initial idea.

    Attributes:
        questions: Key open questions about the product
        usps: Unique selling propositions
        personas: Target user personas
        user_journeys: Journeys walked by the personas
        features: Core MVP features
    """

    questions: list[str]
    usps: list[str]
    personas: list[Persona]
    user_journeys: list[UserJourney] = Field(default_factory=list)
    features: list[str]


# --- Knowledge base --------------------------------------------------------


class KnowledgeDoc(CatalystModel):
    """A reference document supplied by the user."""

    id: str = Field(default_factory=generate_id)
    title: str
    content: str
    type: Literal["text", "code", "policy"] = "text"
    tags: list[str] = Field(default_factory=list)
    added_at: int = Field(default_factory=now_ms)


# --- Research --------------------------------------------------------------


class Source(CatalystModel):
    """A cited web source."""

    uri: str
    title: str = ""


class Competitor(CatalystModel):
    """A competing product found during research."""

    name: str
    url: str = ""
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    price_model: str = ""


class ResearchReport(CatalystModel):
    """Market and feasibility research.

    Attributes:
        summary: Markdown research summary
        sources: Citations backing the summary, in discovery order
        competitors: Competing products
    """

    summary: str
    sources: list[Source] = Field(default_factory=list)
    competitors: list[Competitor] = Field(default_factory=list)


class ResearchRefinement(CatalystModel):
    """Result of refining the research report.

    The summary replaces the old one; new_sources are appended to the
    existing citation list.
    """

    summary: str
    new_sources: list[Source] = Field(default_factory=list)


# --- Architecture ----------------------------------------------------------


class TechStack(CatalystModel):
    """Chosen technology stack."""

    frontend: str
    backend: str
    database: str
    styling: str
    deployment: str
    rationale: str = ""


class PackageDependency(CatalystModel):
    """A library the stack depends on."""

    name: str
    description: str = ""


class ArchitectureData(CatalystModel):
    """Technical architecture.

    Attributes:
        stack: Technology stack
        patterns: Key design patterns
        dependencies: Package dependencies required by the stack
        diagram: Optional mermaid diagram of the system
        cloud_diagram: Optional C4 context diagram
        iac_code: Optional infrastructure-as-code listing
    """

    stack: TechStack
    patterns: list[str] = Field(default_factory=list)
    dependencies: list[PackageDependency] = Field(default_factory=list)
    diagram: str | None = None
    cloud_diagram: str | None = None
    iac_code: str | None = None


class InfrastructureCost(CatalystModel):
    service: str
    estimated_cost: str
    reason: str = ""


class ProjectRisk(CatalystModel):
    description: str
    impact: str = ""


class CostEstimation(CatalystModel):
    """Infrastructure cost and effort estimate."""

    monthly_infrastructure: list[InfrastructureCost] = Field(default_factory=list)
    total_project_hours: str
    suggested_team_size: str
    risks: list[ProjectRisk] = Field(default_factory=list)


# --- Data model ------------------------------------------------------------


class SchemaColumn(CatalystModel):
    name: str
    type: str
    constraints: str | None = None
    description: str = ""


class SchemaTable(CatalystModel):
    name: str
    description: str = ""
    columns: list[SchemaColumn]


class SchemaData(CatalystModel):
    """Database schema with rendered variants."""

    tables: list[SchemaTable]
    mermaid_chart: str = ""
    prisma_schema: str = ""
    sql_schema: str = ""


# --- Design system ---------------------------------------------------------


class ColorToken(CatalystModel):
    name: str
    hex: str
    usage: str = ""


class TypographyToken(CatalystModel):
    role: str
    font_family: str
    size: str


class ComponentSpec(CatalystModel):
    name: str
    description: str = ""
    states: list[str] = Field(default_factory=list)


class DesignSystem(CatalystModel):
    """UI/UX design system."""

    color_palette: list[ColorToken]
    typography: list[TypographyToken] = Field(default_factory=list)
    core_components: list[ComponentSpec] = Field(default_factory=list)
    layout_strategy: str
    wireframe_code: str | None = None


# --- API -------------------------------------------------------------------


class ApiEndpoint(CatalystModel):
    method: str
    path: str
    summary: str = ""
    request_body: str | None = None
    response_success: str | None = None


class ApiSpecification(CatalystModel):
    """REST API specification."""

    endpoints: list[ApiEndpoint]
    auth_mechanism: str


# --- Security --------------------------------------------------------------


class SecurityPolicy(CatalystModel):
    name: str
    description: str
    implementation_hint: str = ""


class TestRequirement(CatalystModel):
    name: str
    type: Literal["Unit", "Integration", "E2E"]
    description: str = ""


class ComplianceItem(CatalystModel):
    id: str = Field(default_factory=generate_id)
    standard: str
    requirement: str
    action: str = ""
    status: Literal["Pending", "Met", "N/A"] = "Pending"


class SecurityContext(CatalystModel):
    """Security policies, QA strategy and compliance checklist."""

    policies: list[SecurityPolicy]
    testing_strategy: list[TestRequirement] = Field(default_factory=list)
    compliance_checklist: list[ComplianceItem] = Field(default_factory=list)


# --- Conversation and history ----------------------------------------------


class ChatMessage(CatalystModel):
    """One message of the architect chat."""

    id: str = Field(default_factory=generate_id)
    role: Literal["user", "model"]
    text: str
    timestamp: int = Field(default_factory=now_ms)
    agent_id: str | None = None


class Snapshot(CatalystModel):
    """A named copy of the project's artifacts at one point in time.

    Attributes:
        id: Snapshot identifier
        name: Display name
        description: Free-text note
        timestamp: Creation time in milliseconds
        data: Artifact slots captured, keyed by Python field name
    """

    id: str = Field(default_factory=generate_id)
    name: str
    description: str = ""
    timestamp: int = Field(default_factory=now_ms)
    data: dict[str, Any] = Field(default_factory=dict)
