"""Task board CLI commands.

This module provides CLI commands for finalizing the plan into a board,
listing tasks by column, moving tasks and generating task helpers.
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from catalyst.models.plan import TaskStatus
from catalyst.workflow.board import board_columns
from catalyst.workspace import Workspace

app = typer.Typer(help="Task board commands")
console = Console()

STATUS_COLORS = {
    TaskStatus.TODO: "yellow",
    TaskStatus.IN_PROGRESS: "cyan",
    TaskStatus.DONE: "green",
}

PRIORITY_COLORS = {"High": "red", "Medium": "yellow", "Low": "dim"}


def parse_status(value: str) -> TaskStatus:
    """Resolve a status from its display value or member name (case-insensitive)."""
    wanted = value.strip().lower().replace("_", " ")
    for status in TaskStatus:
        if wanted in (status.value.lower(), status.name.lower().replace("_", " ")):
            return status
    valid = ", ".join(s.value for s in TaskStatus)
    console.print(f"[red]Invalid status:[/red] {value}. Valid values: {valid}")
    raise typer.Exit(code=1)


@app.command(name="list")
def list_tasks() -> None:
    """List board tasks grouped by column."""
    from catalyst.main import run_in_workspace

    async def _list(workspace: Workspace) -> None:
        tasks = workspace.project.tasks or []
        if not tasks:
            console.print("[yellow]No tasks found[/yellow]")
            return

        table = Table(title="Board")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Task", style="bold")
        table.add_column("Phase", style="dim")
        table.add_column("Priority")
        table.add_column("Role")
        table.add_column("Status")

        for status, column in board_columns(tasks).items():
            color = STATUS_COLORS[status]
            for task in column:
                priority_color = PRIORITY_COLORS.get(task.priority, "white")
                table.add_row(
                    task.id,
                    task.content,
                    task.phase,
                    f"[{priority_color}]{task.priority}[/{priority_color}]",
                    task.role,
                    f"[{color}]{status.value}[/{color}]",
                )

        console.print(table)

    run_in_workspace(_list)


@app.command()
def finalize() -> None:
    """Turn the plan into board tasks and open the board."""
    from catalyst.main import run_in_workspace

    async def _finalize(workspace: Workspace) -> None:
        if not workspace.project.action_plan:
            console.print("[red]No plan to finalize[/red]")
            raise typer.Exit(code=1)
        workspace.finalize_plan()
        console.print(
            f"[green]Board ready with {len(workspace.project.tasks or [])} tasks[/green]"
        )

    run_in_workspace(_finalize)


@app.command()
def regenerate(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Re-derive all tasks from the plan, discarding board progress."""
    from catalyst.main import run_in_workspace

    if not yes and not typer.confirm("Task progress will be lost. Continue?"):
        raise typer.Exit(code=1)

    async def _regenerate(workspace: Workspace) -> None:
        workspace.regenerate_tasks()
        console.print(f"[green]Derived {len(workspace.project.tasks or [])} tasks[/green]")

    run_in_workspace(_regenerate)


@app.command()
def move(
    task_id: Annotated[str, typer.Argument(help="Task ID")],
    status: Annotated[str, typer.Argument(help="To Do, In Progress or Done")],
) -> None:
    """Move a task to another column."""
    from catalyst.main import run_in_workspace

    target = parse_status(status)

    async def _move(workspace: Workspace) -> None:
        workspace.move_task(task_id, target)
        task = next((t for t in workspace.project.tasks or [] if t.id == task_id), None)
        if task is None:
            console.print(f"[yellow]Task not found:[/yellow] {task_id}")
            return
        console.print(f"[green]{task_id}[/green] is now {task.status.value}")

    run_in_workspace(_move)


@app.command()
def add(
    description: Annotated[str, typer.Argument(help="Task description")],
    phase: Annotated[str, typer.Option("--phase", "-p", help="Plan phase name")] = "",
    priority: Annotated[
        str, typer.Option("--priority", help="High, Medium or Low")
    ] = "Medium",
    role: Annotated[str, typer.Option("--role", "-r", help="Responsible role")] = "",
) -> None:
    """Add a task that is not part of the plan."""
    from catalyst.main import run_in_workspace

    async def _add(workspace: Workspace) -> None:
        task = workspace.add_task(description, phase=phase, priority=priority, role=role)
        console.print(f"[green]Added task[/green] {task.id}")

    run_in_workspace(_add)


@app.command()
def check(
    task_id: Annotated[str, typer.Argument(help="Task ID")],
    item_id: Annotated[str, typer.Argument(help="Checklist item ID")],
) -> None:
    """Toggle a checklist item of a task."""
    from catalyst.main import run_in_workspace

    async def _check(workspace: Workspace) -> None:
        workspace.toggle_checklist_item(task_id, item_id)
        console.print(f"[green]Toggled[/green] {item_id} on {task_id}")

    run_in_workspace(_check)


@app.command()
def assist(
    task_id: Annotated[str, typer.Argument(help="Task ID")],
    kind: Annotated[
        str, typer.Option("--kind", "-k", help="guide, checklist or code")
    ] = "guide",
) -> None:
    """Generate an implementation guide, checklist or starter code for a task."""
    from catalyst.main import run_in_workspace

    if kind not in ("guide", "checklist", "code"):
        console.print(f"[red]Invalid kind:[/red] {kind}")
        raise typer.Exit(code=1)

    async def _assist(workspace: Workspace) -> None:
        await workspace.assist_task(task_id, kind)  # type: ignore[arg-type]
        if workspace.state.error:
            console.print(f"[red]Error:[/red] {workspace.state.error}")
            raise typer.Exit(code=1)
        console.print(f"[green]Generated {kind} for[/green] {task_id}")

    run_in_workspace(_assist)


@app.command()
def show(task_id: Annotated[str, typer.Argument(help="Task ID")]) -> None:
    """Show one task with its guide, checklist and code."""
    from catalyst.main import run_in_workspace

    async def _show(workspace: Workspace) -> None:
        task = next((t for t in workspace.project.tasks or [] if t.id == task_id), None)
        if task is None:
            console.print(f"[red]Task not found:[/red] {task_id}")
            raise typer.Exit(code=1)

        console.print(
            Panel(
                f"[bold]Phase:[/bold] {task.phase or '-'}\n"
                f"[bold]Priority:[/bold] {task.priority}\n"
                f"[bold]Role:[/bold] {task.role}\n"
                f"[bold]Estimate:[/bold] {task.estimated_duration or '-'}\n"
                f"[bold]Status:[/bold] {task.status.value}",
                title=f"{task.id}: {task.content}",
                border_style=STATUS_COLORS[task.status],
            )
        )
        if task.implementation_guide:
            console.print("[bold]Implementation guide[/bold]")
            console.print(task.implementation_guide, markup=False)
        if task.checklist:
            table = Table(title="Checklist")
            table.add_column("ID", style="cyan", no_wrap=True)
            table.add_column("Item")
            table.add_column("Done")
            for item in task.checklist:
                table.add_row(item.id, item.text, "[green]yes[/green]" if item.completed else "no")
            console.print(table)
        if task.code_snippet:
            snippet = task.code_snippet
            console.print(f"[bold]{snippet.filename or 'Code'}[/bold]")
            console.print(Syntax(snippet.code, snippet.language or "text"))

    run_in_workspace(_show)
