"""Task derivation and board sync.

A finalized plan is flattened into board tasks exactly once. After that,
tasks are tracked independently: status moves, checklist toggles and
generated helpers all edit one task and return a new list, leaving every
other task (and the input list) untouched.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any

import structlog

from catalyst.models.plan import (
    ChecklistItem,
    PlanPhase,
    PlanTask,
    Task,
    TaskStatus,
    normalize_priority,
)

logger = structlog.get_logger(__name__)

MANUAL_TASK_PREFIX = "manual-"

# Fields update_task may attach to an existing task
UPDATABLE_FIELDS = frozenset(
    {
        "implementation_guide",
        "checklist",
        "code_snippet",
        "content",
        "description",
        "estimated_duration",
        "priority",
        "role",
    }
)


def normalize_plan(plan: Sequence[PlanPhase]) -> list[PlanPhase]:
    """Return the plan with every task priority coerced to High/Medium/Low.

    Plans built through PlanTask validation are already normalized, so this
    only matters for tasks constructed with model_construct or edited after
    validation. Idempotent.
    """
    return [
        phase.model_copy(
            update={
                "tasks": [
                    task.model_copy(update={"priority": normalize_priority(task.priority)})
                    for task in phase.tasks
                ]
            }
        )
        for phase in plan
    ]


def derive_tasks(plan: Sequence[PlanPhase]) -> list[Task]:
    """Flatten a plan into board tasks.

    Tasks come out in phase order then task order, each with id
    ``"<phase_index>-<task_index>"``, status To Do and the owning phase name.

    Args:
        plan: Ordered plan phases.

    Returns:
        One Task per PlanTask.
    """
    tasks = [
        _task_from_plan(task, phase.name, f"{phase_index}-{task_index}")
        for phase_index, phase in enumerate(plan)
        for task_index, task in enumerate(phase.tasks)
    ]
    logger.info("tasks_derived", phase_count=len(plan), task_count=len(tasks))
    return tasks


def _task_from_plan(plan_task: PlanTask, phase_name: str, task_id: str) -> Task:
    return Task(
        id=task_id,
        content=plan_task.description,
        description=plan_task.description,
        estimated_duration=plan_task.estimated_duration,
        priority=normalize_priority(plan_task.priority),
        role=plan_task.role,
        phase=phase_name,
        status=TaskStatus.TODO,
    )


def move_task(tasks: Sequence[Task], task_id: str, status: TaskStatus) -> list[Task]:
    """Set the status of one task. Unknown ids leave the list unchanged."""
    moved = False
    result = []
    for task in tasks:
        if task.id == task_id and not moved:
            task = task.model_copy(update={"status": status})
            moved = True
        result.append(task)
    if not moved:
        logger.debug("task_move_miss", task_id=task_id)
    return result


def toggle_checklist_item(
    tasks: Sequence[Task], task_id: str, item_id: str
) -> list[Task]:
    """Flip the completed flag of one checklist item of one task."""
    result = []
    for task in tasks:
        if task.id == task_id and task.checklist:
            checklist = [
                item.model_copy(update={"completed": not item.completed})
                if item.id == item_id
                else item
                for item in task.checklist
            ]
            task = task.model_copy(update={"checklist": checklist})
        result.append(task)
    return result


def create_manual_task(
    description: str,
    phase: str = "",
    priority: Any = "Medium",
    role: str = "",
    estimated_duration: str = "",
) -> Task:
    """Create a board task that did not come from the plan.

    The id carries the ``manual-`` prefix so it can never collide with a
    derived ``<phase>-<task>`` id.
    """
    return Task(
        id=f"{MANUAL_TASK_PREFIX}{uuid.uuid4().hex[:12]}",
        description=description,
        content=description,
        phase=phase,
        priority=priority,
        role=role,
        estimated_duration=estimated_duration,
    )


def update_task(tasks: Sequence[Task], task_id: str, **fields: Any) -> list[Task]:
    """Replace fields on one task (guide, checklist, code snippet, text).

    Raises:
        ValueError: If a field name is not updatable.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update task fields: {', '.join(sorted(unknown))}")

    result = []
    for task in tasks:
        if task.id == task_id:
            data = task.model_dump()
            data.update(fields)
            task = Task.model_validate(data)
        result.append(task)
    return result


def checklist_from_texts(texts: Sequence[str]) -> list[ChecklistItem]:
    """Build fresh checklist items from plain strings."""
    return [ChecklistItem(text=text) for text in texts if text.strip()]


def board_columns(tasks: Sequence[Task]) -> dict[TaskStatus, list[Task]]:
    """Group tasks into board columns, preserving list order within each."""
    columns: dict[TaskStatus, list[Task]] = {status: [] for status in TaskStatus}
    for task in tasks:
        columns[task.status].append(task)
    return columns
