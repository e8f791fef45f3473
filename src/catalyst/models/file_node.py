"""File tree node model.

A FileNode is an immutable snapshot of one file or folder in the planned
codebase layout. Identity is positional: a node is addressed by the names
on the way down from the root, never by object identity.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import ConfigDict, model_validator

from catalyst.models.base import CatalystModel

NodeKind = Literal["file", "folder"]


class FileNode(CatalystModel):
    """One entry in the planned file tree.

    Attributes:
        name: File or folder name (one path segment)
        type: "file" or "folder"
        description: What the entry is for
        content: File body, files only
        children: Ordered children, folders only
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: NodeKind
    description: str = ""
    content: str | None = None
    children: list[FileNode] | None = None

    @model_validator(mode="before")
    @classmethod
    def folder_children(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("type") == "folder":
            if data.get("children") is None:
                data = {**data, "children": []}
        return data

    @property
    def is_folder(self) -> bool:
        return self.type == "folder"
