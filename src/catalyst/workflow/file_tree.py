"""Path-addressed edits of the planned file tree.

The persisted artifact is a list of FileNode snapshots. Edits go through
FileTree, a flat arena of entries keyed by synthetic ids, with parent and
child links stored as ids and a name -> id index per folder. Path lookup is
one dict hit per segment, and an edit on a FileTree touches only the
entries on its path. No FileNode handed to a caller is ever modified.

The module-level functions (find_by_path, insert, remove, set_content) take
and return ``list[FileNode]`` and are what the rest of the code uses. Each
call loads the list into a fresh arena and rebuilds the FileNode list from
it, so its cost is linear in the size of the tree. A path that does not
resolve is not an error: the functions return the input unchanged, since
paths go stale through ordinary editing.

Example:
    >>> tree = [FileNode(name="src", type="folder")]
    >>> tree = insert(tree, ["src"], FileNode(name="main.py", type="file"))
    >>> find_by_path(tree, ["src", "main.py"]).name
    'main.py'
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, replace

import structlog

from catalyst.models.file_node import FileNode, NodeKind

logger = structlog.get_logger(__name__)

TreePath = Sequence[str]

ROOT_ID = 0


@dataclass(frozen=True)
class TreeEntry:
    """One arena slot. ``children`` is only meaningful for folders."""

    id: int
    name: str
    type: NodeKind
    description: str
    content: str | None
    parent: int | None
    children: tuple[int, ...] = ()


def _build_index(entries: dict[int, TreeEntry], folder_id: int) -> dict[str, int]:
    index: dict[str, int] = {}
    for child_id in entries[folder_id].children:
        # Duplicate names resolve to the first occurrence
        index.setdefault(entries[child_id].name, child_id)
    return index


class FileTree:
    """Immutable arena representation of a file tree.

    Every edit returns a new FileTree sharing untouched entries with the
    old one.
    """

    def __init__(
        self,
        entries: dict[int, TreeEntry],
        index: dict[int, dict[str, int]],
        next_id: int,
    ) -> None:
        self._entries = entries
        self._index = index
        self._next_id = next_id

    @classmethod
    def from_nodes(cls, nodes: Sequence[FileNode] | None) -> FileTree:
        """Build an arena from a list of top-level nodes."""
        entries: dict[int, TreeEntry] = {}
        next_id = cls._load(entries, list(nodes or []), ROOT_ID + 1, ROOT_ID)
        entries[ROOT_ID] = TreeEntry(
            id=ROOT_ID,
            name="",
            type="folder",
            description="",
            content=None,
            parent=None,
            children=tuple(
                entry.id for entry in entries.values() if entry.parent == ROOT_ID
            ),
        )
        index = {
            entry_id: _build_index(entries, entry_id)
            for entry_id, entry in entries.items()
            if entry.type == "folder"
        }
        return cls(entries, index, next_id)

    @staticmethod
    def _load(
        entries: dict[int, TreeEntry],
        nodes: list[FileNode],
        next_id: int,
        parent: int,
    ) -> int:
        """Add ``nodes`` (and descendants) under ``parent``; return the next free id."""
        for node in nodes:
            node_id = next_id
            next_id += 1
            children_start = next_id
            if node.is_folder:
                next_id = FileTree._load(entries, node.children or [], next_id, node_id)
            child_ids = tuple(
                entry_id
                for entry_id in range(children_start, next_id)
                if entries[entry_id].parent == node_id
            )
            entries[node_id] = TreeEntry(
                id=node_id,
                name=node.name,
                type=node.type,
                description=node.description,
                content=node.content,
                parent=parent,
                children=child_ids,
            )
        return next_id

    # --- queries ---------------------------------------------------------

    def resolve(self, path: TreePath) -> int | None:
        """Return the entry id addressed by ``path``, or None.

        The empty path addresses the synthetic root folder.
        """
        current = ROOT_ID
        for segment in path:
            folder_index = self._index.get(current)
            if folder_index is None:
                return None
            child = folder_index.get(segment)
            if child is None:
                return None
            current = child
        return current

    def node(self, path: TreePath) -> FileNode | None:
        """Materialize the node at ``path`` as a FileNode snapshot."""
        if not path:
            return None
        entry_id = self.resolve(path)
        if entry_id is None:
            return None
        return self._materialize(entry_id)

    def to_nodes(self) -> list[FileNode]:
        """Materialize the whole tree as a list of top-level FileNodes."""
        return [self._materialize(child) for child in self._entries[ROOT_ID].children]

    def _materialize(self, entry_id: int) -> FileNode:
        entry = self._entries[entry_id]
        children = None
        if entry.type == "folder":
            children = [self._materialize(child) for child in entry.children]
        return FileNode(
            name=entry.name,
            type=entry.type,
            description=entry.description,
            content=entry.content,
            children=children,
        )

    def __len__(self) -> int:
        return len(self._entries) - 1

    # --- edits -----------------------------------------------------------

    def with_child(self, parent_path: TreePath, node: FileNode) -> FileTree:
        """Append ``node`` to the folder at ``parent_path``.

        Returns self when the path does not resolve to a folder.
        """
        parent_id = self.resolve(parent_path)
        if parent_id is None or self._entries[parent_id].type != "folder":
            logger.debug("tree_insert_miss", path="/".join(parent_path))
            return self

        entries = dict(self._entries)
        index = dict(self._index)
        node_id = self._next_id
        next_id = self._load(entries, [node], node_id, parent_id)

        for entry_id in range(node_id, next_id):
            if entries[entry_id].type == "folder":
                index[entry_id] = _build_index(entries, entry_id)

        parent = entries[parent_id]
        entries[parent_id] = replace(parent, children=parent.children + (node_id,))
        index[parent_id] = _build_index(entries, parent_id)
        return FileTree(entries, index, next_id)

    def without(self, path: TreePath) -> FileTree:
        """Remove the node at ``path`` with its whole subtree.

        Returns self when the path does not resolve.
        """
        if not path:
            return self
        target_id = self.resolve(path)
        if target_id is None:
            logger.debug("tree_remove_miss", path="/".join(path))
            return self

        entries = dict(self._entries)
        index = dict(self._index)
        stack = [target_id]
        while stack:
            entry_id = stack.pop()
            stack.extend(entries[entry_id].children)
            del entries[entry_id]
            index.pop(entry_id, None)

        parent_id = self._entries[target_id].parent
        assert parent_id is not None
        parent = entries[parent_id]
        entries[parent_id] = replace(
            parent, children=tuple(c for c in parent.children if c != target_id)
        )
        index[parent_id] = _build_index(entries, parent_id)
        return FileTree(entries, index, self._next_id)

    def with_content(self, path: TreePath, text: str) -> FileTree:
        """Replace the content of the file at ``path``.

        Returns self for folders and paths that do not resolve.
        """
        if not path:
            return self
        entry_id = self.resolve(path)
        if entry_id is None or self._entries[entry_id].type != "file":
            logger.debug("tree_set_content_miss", path="/".join(path))
            return self
        entries = dict(self._entries)
        entries[entry_id] = replace(entries[entry_id], content=text)
        return FileTree(entries, self._index, self._next_id)


def parse_path(raw: str) -> list[str]:
    """Split a slash-separated path into segments, ignoring empty ones."""
    return [segment for segment in raw.strip().split("/") if segment]


def find_by_path(nodes: Sequence[FileNode] | None, path: TreePath) -> FileNode | None:
    """Resolve a node by walking names from the root; None on any miss."""
    return FileTree.from_nodes(nodes).node(path)


def insert(
    nodes: Sequence[FileNode] | None, parent_path: TreePath, new_node: FileNode
) -> list[FileNode]:
    """Append ``new_node`` to the folder at ``parent_path`` ([] is the top level)."""
    tree = FileTree.from_nodes(nodes)
    updated = tree.with_child(parent_path, new_node)
    if updated is tree:
        return list(nodes or [])
    return updated.to_nodes()


def remove(nodes: Sequence[FileNode] | None, path: TreePath) -> list[FileNode]:
    """Delete the node at ``path`` and its subtree; no-op on a miss."""
    tree = FileTree.from_nodes(nodes)
    updated = tree.without(path)
    if updated is tree:
        return list(nodes or [])
    return updated.to_nodes()


def set_content(
    nodes: Sequence[FileNode] | None, path: TreePath, text: str
) -> list[FileNode]:
    """Replace the content of the file at ``path``; no-op on folders and misses."""
    tree = FileTree.from_nodes(nodes)
    updated = tree.with_content(path, text)
    if updated is tree:
        return list(nodes or [])
    return updated.to_nodes()


def walk(
    nodes: Sequence[FileNode] | None, prefix: tuple[str, ...] = ()
) -> Iterator[tuple[tuple[str, ...], FileNode]]:
    """Yield ``(path, node)`` pairs depth-first in child order."""
    for node in nodes or []:
        path = prefix + (node.name,)
        yield path, node
        if node.is_folder:
            yield from walk(node.children, path)
