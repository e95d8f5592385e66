"""Command line entry point for the essay coach."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from apps.orchestrator.conversation import ConversationOrchestrator, TurnOutcome
from apps.persistence.session_store import SQLiteSessionStore
from apps.structuring.heuristics import HeuristicContentExtractor
from apps.structuring.sanitizer import sanitize as sanitize_text
from apps.structuring.sections import Skeleton
from essaycoach import get_version
from essaycoach.core.config import CoachConfig, load_coach_config
from essaycoach.core.stages import SKELETON_FIELDS, Stage

app = typer.Typer(help="Structure an argumentative essay through a tutoring conversation.")
console = Console()

EXIT_COMMANDS = {"/quit", "/exit"}


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"essaycoach {get_version()}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_show_version, is_eager=True, help="Show the installed version and exit."
    ),
) -> None:
    """Structure an argumentative essay through a tutoring conversation."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(path: Path | None) -> CoachConfig:
    if path is not None and not path.expanduser().exists():
        typer.echo(f"Config file not found: {path}", err=True)
        raise typer.Exit(code=2)
    try:
        return load_coach_config(path)
    except ValueError as exc:
        typer.echo(f"Invalid config {path}: {exc}", err=True)
        raise typer.Exit(code=2) from exc


def _build_orchestrator(config: CoachConfig) -> ConversationOrchestrator:
    return ConversationOrchestrator.from_config(config)


def _skeleton_table(skeleton: Skeleton, percent: int) -> Table:
    table = Table(title=f"Essay skeleton ({percent}% complete)")
    table.add_column("Section", style="cyan")
    table.add_column("Content")
    for name in SKELETON_FIELDS:
        value = skeleton.get(name)
        table.add_row(name, value or "[dim]-[/dim]")
    return table


def _render_outcome(outcome: TurnOutcome, orchestrator: ConversationOrchestrator) -> None:
    if outcome.status == "rejected":
        console.print("[yellow]Nothing sent (empty message or a reply is still pending).[/yellow]")
        return
    if outcome.status == "failed" and outcome.error is not None:
        console.print(f"[red]{outcome.error.title}:[/red] {outcome.error.description}")
        return
    if outcome.assistant_message is not None:
        console.print(Markdown(outcome.assistant_message.text))
    if outcome.extraction:
        console.print(f"[dim]captured via {outcome.extraction}[/dim]")
    if outcome.advanced:
        guidance = orchestrator.guidance()
        console.print(f"[green]Next stage: {guidance.label}.[/green] {guidance.guidance}")
    if orchestrator.suggested_next_steps:
        console.print("[bold]Suggested next steps:[/bold]")
        for step in orchestrator.suggested_next_steps:
            console.print(f"  • {step}")


@app.command()
def chat(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Coach config YAML (defaults to built-in settings)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Open an interactive tutoring session. Type /help for commands."""

    _configure_logging(verbose)
    orchestrator = _build_orchestrator(_load_config(config))
    for message in orchestrator.messages:
        console.print(Markdown(message.text))
    console.print(f"[dim]session {orchestrator.session_id} · stage {orchestrator.guidance().label}[/dim]")

    while True:
        try:
            line = console.input("[bold]you ›[/bold] ")
        except (EOFError, KeyboardInterrupt):
            console.print()
            break
        command = line.strip().lower()
        if command in EXIT_COMMANDS:
            break
        if command == "/help":
            console.print("/skeleton  show the skeleton · /restart  start over · /quit  leave")
            continue
        if command == "/skeleton":
            console.print(_skeleton_table(orchestrator.skeleton, orchestrator.completion_percent()))
            continue
        if command == "/restart":
            orchestrator.restart()
            console.print(Markdown(orchestrator.messages[0].text))
            console.print(f"[dim]new session {orchestrator.session_id}[/dim]")
            continue
        _render_outcome(orchestrator.send_user_message(line), orchestrator)

    console.print(_skeleton_table(orchestrator.skeleton, orchestrator.completion_percent()))


@app.command()
def extract(
    text: str = typer.Argument(..., help="Text to mine for skeleton content."),
    stage: Stage = typer.Option(Stage.THESIS, "--stage", "-s", case_sensitive=False, help="Target stage."),
    hedge: List[str] = typer.Option([], "--hedge", help="Extra hedge marker (repeatable)."),
) -> None:
    """Run the heuristic extractor on TEXT for one stage."""

    extractor = HeuristicContentExtractor(extra_hedge_markers=hedge)
    found = extractor.match(text, stage)
    if found is None:
        typer.echo(f"Nothing extracted for {stage.value}.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"[{found.strategy}] {found.text}")


@app.command()
def sanitize(
    source: Optional[Path] = typer.Option(None, "--file", "-f", help="Read the reply from a file instead of stdin."),
) -> None:
    """Print a tutoring reply with machine-readable fragments removed."""

    if source is not None:
        if not source.exists():
            typer.echo(f"File not found: {source}", err=True)
            raise typer.Exit(code=2)
        raw = source.read_text(encoding="utf-8")
    else:
        raw = sys.stdin.read()
    typer.echo(sanitize_text(raw))


@app.command()
def sessions(
    store: Path = typer.Option(Path("outputs/sessions.sqlite"), "--store", help="SQLite session store."),
    limit: int = typer.Option(20, "--limit", min=1, help="Maximum sessions to list."),
) -> None:
    """List saved session snapshots, newest first."""

    store_path = store.expanduser().resolve()
    if not store_path.exists():
        raise typer.BadParameter(f"Session store not found at {store_path}")
    snapshots = SQLiteSessionStore(store_path).list_snapshots(limit=limit)
    if not snapshots:
        console.print("[yellow]No sessions saved yet.[/yellow]")
        return
    table = Table(title="Saved sessions")
    table.add_column("Conversation", style="cyan")
    table.add_column("Stage")
    table.add_column("Complete", justify="right")
    table.add_column("Messages", justify="right")
    table.add_column("Saved at")
    for snapshot in snapshots:
        table.add_row(
            snapshot.conversation_id,
            snapshot.stage,
            f"{snapshot.completion_percent}%",
            str(len(snapshot.messages)),
            snapshot.saved_at.isoformat(timespec="seconds"),
        )
    console.print(table)


if __name__ == "__main__":
    app()
