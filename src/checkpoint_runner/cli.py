"""
CLI module - Command line interface for Checkpoint Runner

Entry point for the `ckr` command using Typer.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .backup import Backup, BackupStore
from .config import AppConfig, load_config, validate_config
from .errors import BackupInvalidError, CheckpointRunnerError, TaskExecutionError
from .logging_config import setup_logging
from .runners import RunnerCallbacks, TaskRunner, print_failure
from .vcs import GitStager, NullStager, Stager
from .workflow import Pipeline, PipelineContext, Task, load_pipeline, resolve_tasks

console = Console()
app = typer.Typer(
    name="ckr",
    help="Checkpoint Runner - resumable, dependency-ordered task pipelines.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
backup_app = typer.Typer(name="backup", help="Inspect or remove checkpoint files")
app.add_typer(backup_app)


def version_callback(value: bool):
    if value:
        console.print(f"ckr version {__version__}")
        raise typer.Exit()


# Type aliases for common options
ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config file", exists=True, dir_okay=False),
]
PipelineArgument = Annotated[
    Path,
    typer.Argument(help="Pipeline definition (YAML)", exists=True, dir_okay=False),
]


@app.callback()
def main(
    version: Annotated[
        bool, typer.Option("--version", "-v", callback=version_callback, is_eager=True, help="Show version")
    ] = False,
):
    """Checkpoint Runner - resumable, dependency-ordered task pipelines."""
    pass


def get_config(config_path: Path | None = None) -> AppConfig:
    """Load configuration, exiting on invalid values."""
    config = load_config(config_path)
    errors = validate_config(config)
    if errors:
        for error in errors:
            console.print(f"[red]Config error:[/red] {error}")
        raise typer.Exit(1)
    return config


def _load_pipeline(path: Path) -> Pipeline:
    try:
        return load_pipeline(path)
    except CheckpointRunnerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


def format_age(seconds: float) -> str:
    """Format an age in seconds as a short human-readable string."""
    seconds = max(0, int(seconds))
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {seconds % 3600 // 60}m"


@app.command()
def plan(pipeline_file: PipelineArgument):
    """
    Show the resolved execution order of a pipeline.

    [bold]Example:[/bold]

        ckr plan release.yaml
    """
    pipeline = _load_pipeline(pipeline_file)
    try:
        resolved = resolve_tasks(pipeline.targets)
    except CheckpointRunnerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    table = Table(title=f"Pipeline: {pipeline.name}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Task", style="cyan")
    table.add_column("Required", justify="center")
    table.add_column("Backup", justify="center")
    table.add_column("Files", style="dim")
    table.add_column("Description")

    for idx, task in enumerate(resolved, start=1):
        table.add_row(
            str(idx),
            task.name,
            "✓" if task.required else "",
            "✓" if task.backupable else "",
            ", ".join(task.files_to_stage),
            task.description,
        )

    console.print(table)


def _make_callbacks() -> RunnerCallbacks:
    def on_task_start(task: Task):
        console.print(f"  [cyan]▶[/cyan] {task.name}")

    def on_task_succeeded(task: Task):
        console.print(f"  [green]✓[/green] {task.name}")

    def on_task_failed(task: Task, _error: BaseException):
        console.print(f"  [red]✗[/red] {task.name}")

    def on_task_skipped(task: Task):
        console.print(f"  [dim]- {task.name} (done before checkpoint)[/dim]")

    def on_backup_restored(backup: Backup):
        console.print(f"[yellow]Resuming after[/yellow] [cyan]{backup.last_task}[/cyan]")

    def on_backup_validation_failed(backup: Backup | None):
        if backup is None:
            console.print("[yellow]Existing backup is unreadable, starting from the beginning[/yellow]")
        else:
            console.print("[yellow]Existing backup is stale or incompatible, starting from the beginning[/yellow]")

    return RunnerCallbacks(
        on_task_start=on_task_start,
        on_task_succeeded=on_task_succeeded,
        on_task_failed=on_task_failed,
        on_task_skipped=on_task_skipped,
        on_backup_restored=on_backup_restored,
        on_backup_validation_failed=on_backup_validation_failed,
    )


@app.command()
def run(
    pipeline_file: PipelineArgument,
    backup_file: Annotated[
        Path | None, typer.Option("--backup-file", "-b", help="Checkpoint file (default: <pipeline dir>/.ckr/backup.json)")
    ] = None,
    expiration: Annotated[
        float | None, typer.Option("--expiration", "-e", help="Ignore checkpoints older than this many seconds")
    ] = None,
    fresh: Annotated[bool, typer.Option("--fresh", help="Discard any checkpoint and start from the beginning")] = False,
    no_backup: Annotated[bool, typer.Option("--no-backup", help="Do not read or write checkpoints")] = False,
    no_git: Annotated[bool, typer.Option("--no-git", help="Do not stage or discard files with git")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", help="Show debug logging")] = False,
    config: ConfigOption = None,
):
    """
    Run a pipeline, resuming from its last checkpoint when possible.

    [bold]Examples:[/bold]

        ckr run release.yaml

        ckr run release.yaml --fresh --no-git
    """
    cfg = get_config(config)
    setup_logging(cfg.logging, verbose)
    pipeline = _load_pipeline(pipeline_file)

    backup_path = None
    if not no_backup and cfg.backup.enabled:
        backup_path = backup_file or cfg.backup.file_path or pipeline.default_backup_path

    stager: Stager
    if no_git or not cfg.git.enabled:
        stager = NullStager()
    else:
        stager = GitStager(cfg.git.repo_path or pipeline.root)

    options = pipeline.runner_options(
        backup_file_path=backup_path,
        backup_expiration=expiration if expiration is not None else cfg.backup.expiration_seconds,
        callbacks=_make_callbacks(),
    )

    try:
        runner = TaskRunner(pipeline.targets, options, stager)
    except CheckpointRunnerError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    console.print(f"\n[bold]Running:[/bold] {pipeline.name} ({len(runner.resolved_tasks)} tasks)")

    try:
        if fresh:
            runner.invalidate_backup()
        asyncio.run(runner.run(PipelineContext()))
    except (CheckpointRunnerError, OSError) as e:
        print_failure(e, console)
        if isinstance(e, TaskExecutionError) and backup_path is not None and backup_path.is_file():
            console.print(f"\n[dim]Checkpoint kept at {backup_path}; re-run to resume.[/dim]")
        raise typer.Exit(1) from None

    report = runner.last_report
    console.print()
    if report.stopped_by:
        console.print(f"[yellow]Stopped by[/yellow] [cyan]{report.stopped_by}[/cyan]")
    console.print(f"[green]Done:[/green] {report.tasks_completed} completed, {report.tasks_skipped} skipped")


@backup_app.command("show")
def backup_show(
    backup_file: Annotated[Path, typer.Argument(help="Checkpoint file")],
):
    """Show the contents of a checkpoint file."""
    store = BackupStore(backup_file)
    try:
        backup = store.load()
    except BackupInvalidError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if backup is None:
        console.print(f"No backup at {backup_file}")
        raise typer.Exit(1)

    created = datetime.fromtimestamp(backup.timestamp).isoformat(timespec="seconds")
    console.print(f"[bold]Backup:[/bold] {backup_file}")
    console.print(f"  Created:    {created} ({format_age(backup.age())} ago)")
    console.print(f"  Targets:    {', '.join(backup.tasks)}")
    console.print(f"  Last task:  [cyan]{backup.last_task}[/cyan]")

    table = Table(show_header=True)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Task")
    table.add_column("State", justify="center")

    done = True
    for idx, name in enumerate(backup.resolved_tasks, start=1):
        table.add_row(str(idx), name, "[green]done[/green]" if done else "[dim]pending[/dim]")
        if name == backup.last_task:
            done = False

    console.print(table)
    if backup.data:
        console.print(f"  Data keys:  {', '.join(sorted(backup.data))}")


@backup_app.command("clear")
def backup_clear(
    backup_file: Annotated[Path, typer.Argument(help="Checkpoint file")],
):
    """Delete a checkpoint file so the next run starts from the beginning."""
    store = BackupStore(backup_file)
    if not store.exists():
        console.print(f"[dim]No backup at {backup_file}[/dim]")
        return
    store.invalidate()
    console.print(f"[green]✓[/green] Removed {backup_file}")


if __name__ == "__main__":
    app()
