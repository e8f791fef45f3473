"""Project workflow CLI commands.

This module provides CLI commands for starting a project from an idea,
moving through the phases, refining sections and managing snapshots.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic_core import to_jsonable_python
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from catalyst.models.project import Phase
from catalyst.workflow.lifecycle import GenerationRequest, RequestStatus, resolve_section
from catalyst.workflow.phases import PHASE_ORDER, UNLOCK_GATES, ordered
from catalyst.workspace import Workspace

app = typer.Typer(help="Project workflow commands")
console = Console()


def parse_phase(value: str) -> Phase:
    """Resolve a phase from its display value or member name (case-insensitive)."""
    wanted = value.strip().lower()
    for phase in Phase:
        if wanted in (phase.value.lower(), phase.name.lower()):
            return phase
    valid = ", ".join(p.value for p in Phase)
    console.print(f"[red]Invalid phase:[/red] {value}. Valid values: {valid}")
    raise typer.Exit(code=1)


def report(workspace: Workspace, request: GenerationRequest | None = None) -> None:
    """Print the outcome of a command and exit non-zero on error."""
    state = workspace.state
    if state.error:
        console.print(f"[red]Error:[/red] {state.error}")
        raise typer.Exit(code=1)
    if request is not None and request.status is RequestStatus.REJECTED:
        console.print("[yellow]Read-only role: nothing was changed[/yellow]")
        return
    console.print(f"[green]Current phase:[/green] {state.current_phase.value}")


@app.command()
def new(
    idea: Annotated[str, typer.Argument(help="Project idea")],
    project_type: Annotated[
        str,
        typer.Option("--type", "-t", help="Kind of software (Web Application, CLI Tool, ...)"),
    ] = "Web Application",
    constraints: Annotated[
        str,
        typer.Option("--constraints", help="Technical constraints"),
    ] = "",
) -> None:
    """Start a new project from an idea and brainstorm it."""
    from catalyst.main import run_in_workspace

    async def _submit(workspace: Workspace) -> None:
        request = await workspace.submit_idea(idea, project_type, constraints)
        report(workspace, request)
        if request.succeeded:
            project = workspace.project
            console.print(
                Panel(
                    f"[bold]ID:[/bold] {project.id}\n"
                    f"[bold]Name:[/bold] {project.name}\n"
                    f"[bold]Type:[/bold] {project.project_type}",
                    title="Project Created",
                    border_style="green",
                )
            )

    run_in_workspace(_submit)


@app.command()
def status() -> None:
    """Show the current phase and which phases are unlocked."""
    from catalyst.main import run_in_workspace

    async def _status(workspace: Workspace) -> None:
        state = workspace.state
        project = state.project
        unlocked = state.unlocked

        console.print(
            Panel(
                f"[bold]Name:[/bold] {project.name}\n"
                f"[bold]Idea:[/bold] {project.initial_idea or '-'}\n"
                f"[bold]Phase:[/bold] {state.current_phase.value}\n"
                f"[bold]Role:[/bold] {state.role.value}",
                title="Project",
                border_style="cyan",
            )
        )

        table = Table(title="Phases")
        table.add_column("#", style="dim", justify="right")
        table.add_column("Phase", style="bold")
        table.add_column("Artifact", style="cyan")
        table.add_column("State")

        for index, phase in enumerate(PHASE_ORDER, start=1):
            gate = UNLOCK_GATES.get(phase)
            if phase == state.current_phase:
                marker = "[bold green]current[/bold green]"
            elif phase in unlocked:
                marker = "[green]unlocked[/green]"
            else:
                marker = "[dim]locked[/dim]"
            table.add_row(str(index), phase.value, gate.value if gate else "-", marker)

        console.print(table)
        reachable = ", ".join(phase.value for phase in ordered(unlocked))
        console.print(f"[bold]Reachable:[/bold] {reachable}")

    run_in_workspace(_status)


@app.command(name="next")
def next_phase(
    regenerate: Annotated[
        bool,
        typer.Option("--regenerate", "-r", help="Regenerate the artifact even if present"),
    ] = False,
) -> None:
    """Advance to the next phase, generating its artifact."""
    from catalyst.main import run_in_workspace

    async def _advance(workspace: Workspace) -> None:
        request = await workspace.advance_phase(regenerate=regenerate)
        report(workspace, request)

    run_in_workspace(_advance)


@app.command()
def back() -> None:
    """Return to the previous unlocked phase."""
    from catalyst.main import run_in_workspace

    async def _back(workspace: Workspace) -> None:
        workspace.back_phase()
        report(workspace)

    run_in_workspace(_back)


@app.command()
def goto(phase: Annotated[str, typer.Argument(help="Phase to open")]) -> None:
    """Jump to an unlocked phase."""
    from catalyst.main import run_in_workspace

    target = parse_phase(phase)

    async def _goto(workspace: Workspace) -> None:
        workspace.navigate_to(target)
        report(workspace)

    run_in_workspace(_goto)


@app.command()
def refine(
    section: Annotated[str, typer.Argument(help="Section to refine (e.g. Architecture)")],
    feedback: Annotated[str, typer.Argument(help="What to change")],
) -> None:
    """Refine one section's artifact with feedback."""
    from catalyst.main import run_in_workspace

    async def _refine(workspace: Workspace) -> None:
        request = await workspace.refine(section, feedback)
        report(workspace, request)
        if request.succeeded:
            console.print(f"[green]Refined {section}[/green]")

    run_in_workspace(_refine)


@app.command()
def kickoff() -> None:
    """Generate the kickoff brief."""
    from catalyst.main import run_in_workspace

    async def _kickoff(workspace: Workspace) -> None:
        request = await workspace.generate_kickoff()
        report(workspace, request)
        if request.succeeded and workspace.project.kickoff_assets:
            console.print(Panel(Text(workspace.project.kickoff_assets), title="Kickoff"))

    run_in_workspace(_kickoff)


@app.command()
def show(
    section: Annotated[str, typer.Argument(help="Section or artifact name")],
) -> None:
    """Print one artifact as JSON."""
    from catalyst.main import run_in_workspace

    key = resolve_section(section)
    if key is None:
        console.print(f"[red]Unknown section:[/red] {section}")
        raise typer.Exit(code=1)

    async def _show(workspace: Workspace) -> None:
        value = workspace.project.artifact(key)
        if value is None:
            console.print(f"[yellow]No {section} yet[/yellow]")
            return
        if isinstance(value, str):
            console.print(value, markup=False)
        else:
            console.print_json(data=to_jsonable_python(value, by_alias=True))

    run_in_workspace(_show)


@app.command(name="add-doc")
def add_doc(
    title: Annotated[str, typer.Argument(help="Document title")],
    source: Annotated[
        Path,
        typer.Argument(help="Text file to add", exists=True, dir_okay=False, readable=True),
    ],
    doc_type: Annotated[
        str,
        typer.Option("--type", "-t", help="Document type (text, code or policy)"),
    ] = "text",
) -> None:
    """Add a reference document to the knowledge base."""
    from catalyst.main import run_in_workspace

    if doc_type not in ("text", "code", "policy"):
        console.print(f"[red]Invalid document type:[/red] {doc_type}")
        raise typer.Exit(code=1)
    content = source.read_text(encoding="utf-8")

    async def _add(workspace: Workspace) -> None:
        doc = workspace.add_knowledge_doc(title, content, type=doc_type)
        console.print(f"[green]Added document[/green] {doc.id}")

    run_in_workspace(_add)


@app.command()
def reset(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Discard the current project and start over."""
    from catalyst.main import run_in_workspace

    if not yes and not typer.confirm("All current progress will be lost. Continue?"):
        raise typer.Exit(code=1)

    async def _reset(workspace: Workspace) -> None:
        workspace.reset_project()
        report(workspace)

    run_in_workspace(_reset)


@app.command()
def snapshot(
    name: Annotated[str, typer.Argument(help="Snapshot name")],
    description: Annotated[
        Optional[str],
        typer.Option("--description", "-d", help="What the snapshot captures"),
    ] = None,
) -> None:
    """Save the current artifacts as a named snapshot."""
    from catalyst.main import run_in_workspace

    async def _snapshot(workspace: Workspace) -> None:
        snapshot_id = workspace.create_snapshot(name, description or "")
        console.print(f"[green]Snapshot created[/green] {snapshot_id}")

    run_in_workspace(_snapshot)


@app.command()
def snapshots() -> None:
    """List saved snapshots."""
    from catalyst.main import run_in_workspace

    async def _list(workspace: Workspace) -> None:
        items = workspace.project.snapshots
        if not items:
            console.print("[yellow]No snapshots found[/yellow]")
            return
        table = Table(title="Snapshots")
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Name", style="bold")
        table.add_column("Description", style="dim")
        for item in items:
            table.add_row(item.id, item.name, item.description)
        console.print(table)

    run_in_workspace(_list)


@app.command()
def restore(snapshot_id: Annotated[str, typer.Argument(help="Snapshot ID")]) -> None:
    """Restore the artifacts saved in a snapshot."""
    from catalyst.main import run_in_workspace

    async def _restore(workspace: Workspace) -> None:
        if not any(s.id == snapshot_id for s in workspace.project.snapshots):
            console.print(f"[red]Snapshot not found:[/red] {snapshot_id}")
            raise typer.Exit(code=1)
        workspace.restore_snapshot(snapshot_id)
        console.print(f"[green]Restored snapshot[/green] {snapshot_id}")

    run_in_workspace(_restore)
