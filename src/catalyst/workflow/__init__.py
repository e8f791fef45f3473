"""Workflow core for Catalyst.

This module implements the phase graph and unlock policy, the file tree
mutator, task derivation and board sync, the workspace store with its
reducer, and the generation/refinement lifecycle controller.
"""

from __future__ import annotations

from catalyst.workflow.board import (
    board_columns,
    create_manual_task,
    derive_tasks,
    move_task,
    normalize_plan,
    toggle_checklist_item,
    update_task,
)
from catalyst.workflow.file_tree import (
    FileTree,
    find_by_path,
    insert,
    parse_path,
    remove,
    set_content,
    walk,
)
from catalyst.workflow.lifecycle import (
    SECTION_ARTIFACTS,
    ArtifactBundle,
    CancellationToken,
    GenerationRequest,
    LifecycleController,
    RequestStatus,
    UnknownSectionError,
    resolve_section,
)
from catalyst.workflow.phases import (
    PHASE_ORDER,
    UNLOCK_GATES,
    advance,
    compute_unlocked,
    is_unlocked,
    navigate,
    previous,
)
from catalyst.workflow.store import Command, Store, WorkspaceState, reduce

__all__ = [
    # Phase graph
    "PHASE_ORDER",
    "UNLOCK_GATES",
    "advance",
    "compute_unlocked",
    "is_unlocked",
    "navigate",
    "previous",
    # File tree
    "FileTree",
    "find_by_path",
    "insert",
    "parse_path",
    "remove",
    "set_content",
    "walk",
    # Board
    "board_columns",
    "create_manual_task",
    "derive_tasks",
    "move_task",
    "normalize_plan",
    "toggle_checklist_item",
    "update_task",
    # Store
    "Command",
    "Store",
    "WorkspaceState",
    "reduce",
    # Lifecycle
    "SECTION_ARTIFACTS",
    "ArtifactBundle",
    "CancellationToken",
    "GenerationRequest",
    "LifecycleController",
    "RequestStatus",
    "UnknownSectionError",
    "resolve_section",
]
