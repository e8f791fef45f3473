"""File tree CLI commands.

This module provides CLI commands for listing and editing the planned
file tree. Paths are slash-separated names from the tree root.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.tree import Tree

from catalyst.models.file_node import FileNode
from catalyst.workflow.file_tree import find_by_path, parse_path
from catalyst.workspace import Workspace

app = typer.Typer(help="File tree commands")
console = Console()


def _add_branch(branch: Tree, nodes: list[FileNode]) -> None:
    for node in nodes:
        if node.is_folder:
            child = branch.add(f"[bold blue]{node.name}/[/bold blue]")
            _add_branch(child, node.children or [])
        else:
            label = node.name
            if node.description:
                label += f" [dim]{node.description}[/dim]"
            branch.add(label)


@app.command(name="ls")
def list_tree() -> None:
    """Show the planned file tree."""
    from catalyst.main import run_in_workspace

    async def _list(workspace: Workspace) -> None:
        nodes = workspace.project.file_structure or []
        if not nodes:
            console.print("[yellow]No file structure yet[/yellow]")
            return
        root = Tree(f"[bold]{workspace.project.name}[/bold]")
        _add_branch(root, nodes)
        console.print(root)

    run_in_workspace(_list)


@app.command()
def add(
    parent: Annotated[str, typer.Argument(help="Parent folder path ('/' for the root)")],
    name: Annotated[str, typer.Argument(help="New file or folder name")],
    folder: Annotated[bool, typer.Option("--folder", help="Create a folder")] = False,
    description: Annotated[
        str, typer.Option("--description", "-d", help="What the entry is for")
    ] = "",
) -> None:
    """Add a file or folder under a parent folder."""
    from catalyst.main import run_in_workspace

    parent_path = parse_path(parent)
    node = FileNode(
        name=name,
        type="folder" if folder else "file",
        description=description,
        content=None if folder else "",
    )

    async def _add(workspace: Workspace) -> None:
        workspace.mutate_file_tree("insert", parent_path, node=node)
        if find_by_path(workspace.project.file_structure, [*parent_path, name]) is None:
            console.print(f"[yellow]No folder at[/yellow] {parent}; nothing added")
            return
        console.print(f"[green]Added[/green] {'/'.join([*parent_path, name])}")

    run_in_workspace(_add)


@app.command(name="rm")
def remove_node(path: Annotated[str, typer.Argument(help="Path to remove")]) -> None:
    """Remove a file or folder (with everything below it)."""
    from catalyst.main import run_in_workspace

    node_path = parse_path(path)

    async def _remove(workspace: Workspace) -> None:
        workspace.mutate_file_tree("remove", node_path)
        console.print(f"[green]Removed[/green] {'/'.join(node_path)}")

    run_in_workspace(_remove)


@app.command()
def edit(
    path: Annotated[str, typer.Argument(help="File path")],
    source: Annotated[
        Optional[Path],
        typer.Option(
            "--from",
            "-f",
            help="Read the new content from a file",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    content: Annotated[
        Optional[str], typer.Option("--content", help="New content")
    ] = None,
) -> None:
    """Replace the content of a file."""
    from catalyst.main import run_in_workspace

    if (source is None) == (content is None):
        console.print("[red]Give exactly one of --from or --content[/red]")
        raise typer.Exit(code=1)
    text = source.read_text(encoding="utf-8") if source is not None else content
    node_path = parse_path(path)

    async def _edit(workspace: Workspace) -> None:
        workspace.mutate_file_tree("set_content", node_path, content=text)
        console.print(f"[green]Updated[/green] {'/'.join(node_path)}")

    run_in_workspace(_edit)


@app.command()
def cat(path: Annotated[str, typer.Argument(help="File path")]) -> None:
    """Print the content of a file."""
    from catalyst.main import run_in_workspace

    async def _cat(workspace: Workspace) -> None:
        node = find_by_path(workspace.project.file_structure, parse_path(path))
        if node is None or node.is_folder:
            console.print(f"[red]No file at[/red] {path}")
            raise typer.Exit(code=1)
        console.print(node.content or "", markup=False)

    run_in_workspace(_cat)
