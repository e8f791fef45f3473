"""Plan and task board models.

A plan is the declarative roadmap (phases holding tasks) produced by the
Plan phase and edited by the user. Tasks are the executable counterparts
derived from it once the plan is finalized, tracked on the board with a
status and optional generated helpers.
"""

from __future__ import annotations

import enum
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator

from catalyst.models.base import CatalystModel, generate_id

Priority = Literal["High", "Medium", "Low"]

VALID_PRIORITIES: tuple[str, ...] = ("High", "Medium", "Low")
DEFAULT_PRIORITY: Priority = "Medium"
DEFAULT_ROLE = "General"


class TaskStatus(str, enum.Enum):
    """Board column a task sits in.

    States:
        TODO: Not started (initial state of every derived task).
        IN_PROGRESS: Being worked on.
        DONE: Finished.
    """

    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


def normalize_priority(value: Any) -> Priority:
    """Coerce a raw priority to one of High/Medium/Low.

    Valid values pass through unchanged; anything else becomes Medium.
    """
    if isinstance(value, str) and value in VALID_PRIORITIES:
        return value  # type: ignore[return-value]
    return DEFAULT_PRIORITY


class PlanTask(CatalystModel):
    """A task inside a plan phase.

    Attributes:
        description: What needs doing
        estimated_duration: Free-text estimate (e.g. "2d")
        priority: High, Medium or Low
        role: Responsible role (e.g. "Backend Dev")
    """

    description: str
    estimated_duration: str = ""
    priority: Priority = DEFAULT_PRIORITY
    role: str = DEFAULT_ROLE

    @field_validator("priority", mode="before")
    @classmethod
    def coerce_priority(cls, v: Any) -> Priority:
        return normalize_priority(v)

    @field_validator("estimated_duration", mode="before")
    @classmethod
    def strip_duration(cls, v: Any) -> str:
        return str(v).strip() if v is not None else ""

    @field_validator("role", mode="before")
    @classmethod
    def default_role(cls, v: Any) -> str:
        role = str(v).strip() if v is not None else ""
        return role or DEFAULT_ROLE


class PlanPhase(CatalystModel):
    """A named group of plan tasks; stored under ``phase_name`` in JSON."""

    name: str = Field(alias="phase_name")
    tasks: list[PlanTask] = Field(default_factory=list)


class ChecklistItem(CatalystModel):
    id: str = Field(default_factory=generate_id)
    text: str
    completed: bool = False


class TaskCodeSnippet(CatalystModel):
    language: str
    code: str
    filename: str = ""
    description: str = ""


class Task(PlanTask):
    """An executable task on the board.

    Attributes:
        id: Stable identifier ("<phase>-<task>" when derived, "manual-..." otherwise)
        content: Card text, defaults to the description
        status: Board column
        phase: Name of the plan phase the task came from
        implementation_guide: Generated markdown guide
        checklist: Generated QA checklist
        code_snippet: Generated starter code
    """

    id: str
    content: str = ""
    status: TaskStatus = TaskStatus.TODO
    phase: str = ""
    implementation_guide: str | None = None
    checklist: list[ChecklistItem] | None = None
    code_snippet: TaskCodeSnippet | None = None

    @model_validator(mode="after")
    def default_content(self) -> Task:
        if not self.content:
            self.content = self.description
        return self
