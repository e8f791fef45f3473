"""Shared pytest fixtures.

Provides a scripted artifact generator returning canned JSON for every
phase, plus stores and projects at various points of the workflow.
"""

from __future__ import annotations

import copy
from typing import Any

import pytest

from catalyst.models.project import ArtifactKey, Phase, Project, validate_artifact
from catalyst.workflow.store import Store, WorkspaceState

BRAINSTORMING = {
    "questions": ["Who tracks habits daily?"],
    "usps": ["Streak insurance"],
    "personas": [{"role": "Student", "description": "Busy", "painPoints": ["forgets"]}],
    "features": ["Daily check-in", "Reminders"],
}

RESEARCH = {
    "summary": "Crowded market with few social features.",
    "sources": [{"uri": "https://example.com/market", "title": "Market"}],
    "competitors": [{"name": "Streaks", "strengths": ["polish"]}],
}

ARCHITECTURE = {
    "stack": {
        "frontend": "React",
        "backend": "FastAPI",
        "database": "PostgreSQL",
        "styling": "Tailwind",
        "deployment": "Docker",
    },
    "patterns": ["REST"],
    "dependencies": [{"name": "httpx", "description": "HTTP client"}],
}

COST_ESTIMATION = {
    "monthlyInfrastructure": [{"service": "Database", "estimatedCost": "$20"}],
    "totalProjectHours": "120",
    "suggestedTeamSize": "2",
    "risks": [{"description": "Scope creep", "impact": "High"}],
}

SCHEMA = {
    "tables": [
        {
            "name": "habits",
            "columns": [{"name": "id", "type": "uuid"}, {"name": "title", "type": "text"}],
        }
    ],
    "mermaidChart": "erDiagram",
}

FILE_STRUCTURE = [
    {
        "name": "src",
        "type": "folder",
        "description": "Application code",
        "children": [
            {"name": "main.py", "type": "file", "content": "print('hi')"},
            {"name": "api", "type": "folder", "children": []},
        ],
    },
    {"name": "README.md", "type": "file", "content": "# Habits"},
]

DESIGN_SYSTEM = {
    "colorPalette": [{"name": "primary", "hex": "#336699"}],
    "typography": [{"role": "body", "fontFamily": "Inter", "size": "16px"}],
    "layoutStrategy": "Mobile first",
}

API_SPEC = {
    "endpoints": [{"method": "GET", "path": "/habits", "summary": "List habits"}],
    "authMechanism": "JWT",
}

SECURITY_CONTEXT = {
    "policies": [{"name": "Auth", "description": "Require login"}],
    "testingStrategy": [{"name": "API tests", "type": "Integration"}],
}

AGENT_RULES = "# Agent rules\n\nUse type hints everywhere."

ACTION_PLAN = [
    {
        "phase_name": "Setup",
        "tasks": [
            {
                "description": "Init repo",
                "priority": "urgent",
                "estimatedDuration": "1h",
                "role": "Dev",
            }
        ],
    },
    {
        "phase_name": "Build",
        "tasks": [
            {"description": "Habit API", "priority": "High", "estimatedDuration": "2d", "role": "Backend"},
            {"description": "Habit UI", "priority": "Low", "estimatedDuration": "3d", "role": "Frontend"},
        ],
    },
]

KICKOFF = "# Kickoff\n\nWelcome aboard."

RESEARCH_REFINEMENT = {
    "summary": "Market favours social accountability.",
    "newSources": [
        {"uri": "https://example.com/market", "title": "Market (again)"},
        {"uri": "https://example.com/social", "title": "Social habits"},
    ],
}

TASK_CODE = {"language": "python", "code": "def init():\n    pass", "filename": "init.py"}

RESPONSES: dict[str, Any] = {
    "generate_brainstorming": BRAINSTORMING,
    "generate_research": RESEARCH,
    "generate_architecture": ARCHITECTURE,
    "generate_cost_estimation": COST_ESTIMATION,
    "generate_schema": SCHEMA,
    "generate_file_structure": FILE_STRUCTURE,
    "generate_design_system": DESIGN_SYSTEM,
    "generate_api_spec": API_SPEC,
    "generate_security_context": SECURITY_CONTEXT,
    "generate_agent_rules": AGENT_RULES,
    "generate_action_plan": ACTION_PLAN,
    "generate_kickoff_assets": KICKOFF,
    "refine_research": RESEARCH_REFINEMENT,
    "generate_implementation_guide": "1. Run git init",
    "generate_checklist": ["Repo created", "CI configured"],
    "generate_task_code": TASK_CODE,
}


class FakeGenerator:
    """Scripted ArtifactGenerator.

    Attributes:
        calls: Names of the methods called, in order
        failures: Method name -> exception to raise instead of responding
        responses: Method name -> value to return
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.responses: dict[str, Any] = copy.deepcopy(RESPONSES)
        self.refine_calls: list[tuple[str, Any, str]] = []

    async def __aenter__(self) -> FakeGenerator:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        return None

    async def _respond(self, name: str) -> Any:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]
        return copy.deepcopy(self.responses.get(name))

    async def generate_brainstorming(self, project: Project) -> Any:
        return await self._respond("generate_brainstorming")

    async def generate_research(self, project: Project) -> Any:
        return await self._respond("generate_research")

    async def generate_architecture(self, project: Project) -> Any:
        return await self._respond("generate_architecture")

    async def generate_cost_estimation(self, project: Project) -> Any:
        return await self._respond("generate_cost_estimation")

    async def generate_schema(self, project: Project) -> Any:
        return await self._respond("generate_schema")

    async def generate_file_structure(self, project: Project) -> Any:
        return await self._respond("generate_file_structure")

    async def generate_design_system(self, project: Project) -> Any:
        return await self._respond("generate_design_system")

    async def generate_api_spec(self, project: Project) -> Any:
        return await self._respond("generate_api_spec")

    async def generate_security_context(self, project: Project) -> Any:
        return await self._respond("generate_security_context")

    async def generate_agent_rules(self, project: Project) -> str:
        return await self._respond("generate_agent_rules")

    async def generate_action_plan(self, project: Project) -> Any:
        return await self._respond("generate_action_plan")

    async def generate_kickoff_assets(self, project: Project) -> str:
        return await self._respond("generate_kickoff_assets")

    async def refine_section(self, section: str, current: Any, feedback: str) -> Any:
        self.refine_calls.append((section, current, feedback))
        return await self._respond("refine_section")

    async def refine_research(self, report: Any, feedback: str) -> Any:
        return await self._respond("refine_research")

    async def generate_implementation_guide(self, task: Any, project: Project) -> str:
        return await self._respond("generate_implementation_guide")

    async def generate_checklist(self, task: Any, project: Project) -> list[str]:
        return await self._respond("generate_checklist")

    async def generate_task_code(self, task: Any, project: Project) -> Any:
        return await self._respond("generate_task_code")


ARTIFACTS_THROUGH_PLAN: dict[ArtifactKey, Any] = {
    ArtifactKey.BRAINSTORMING: BRAINSTORMING,
    ArtifactKey.RESEARCH: RESEARCH,
    ArtifactKey.ARCHITECTURE: ARCHITECTURE,
    ArtifactKey.COST_ESTIMATION: COST_ESTIMATION,
    ArtifactKey.SCHEMA: SCHEMA,
    ArtifactKey.FILE_STRUCTURE: FILE_STRUCTURE,
    ArtifactKey.DESIGN_SYSTEM: DESIGN_SYSTEM,
    ArtifactKey.API_SPEC: API_SPEC,
    ArtifactKey.SECURITY: SECURITY_CONTEXT,
    ArtifactKey.AGENT_RULES: AGENT_RULES,
    ArtifactKey.ACTION_PLAN: ACTION_PLAN,
}


def build_project(**artifacts: Any) -> Project:
    """Create a project with the given artifact slots filled from raw data."""
    project = Project.from_idea("habit tracker", "Web Application")
    updates = {
        ArtifactKey(name): validate_artifact(ArtifactKey(name), value)
        for name, value in artifacts.items()
    }
    return project.with_artifacts(updates)


@pytest.fixture
def fake_generator() -> FakeGenerator:
    """Scripted generator with canned responses for every artifact."""
    return FakeGenerator()


@pytest.fixture
def idea_project() -> Project:
    """Project holding only its idea."""
    return Project.from_idea("habit tracker", "Web Application")


@pytest.fixture
def planned_project() -> Project:
    """Project with every artifact up to and including the plan."""
    return build_project(**{key.value: value for key, value in ARTIFACTS_THROUGH_PLAN.items()})


@pytest.fixture
def store(idea_project: Project) -> Store:
    """Store holding the idea project at the first phase."""
    return Store(WorkspaceState(project=idea_project))


@pytest.fixture
def planned_store(planned_project: Project) -> Store:
    """Store at the Plan phase with every artifact through the plan."""
    return Store(WorkspaceState(current_phase=Phase.PLAN, project=planned_project))
