"""Command line interface for inspecting and running runback workflows."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional

import typer

from runback.cli_utils.workflow import (
    _engine_class,
    _format_dependency,
    _load_actions,
    _load_definition,
)
from runback.config import load_config
from runback.errors import RunbackError
from runback.log import configure_logging
from runback.persistence import WorkflowStore
from runback.persistence.models import RunRecord, RunStatus

app = typer.Typer(help="CLI for runback workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for inspecting and running workflows")

app.add_typer(workflow_app, name="workflow")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level (none, error, warn, info, debug)"
    ),
) -> None:
    """runback CLI entry point."""
    config = load_config()
    configure_logging(log_level or config.log_level)


def _build(path: Path, v2: bool):
    if not path.exists():
        typer.secho(f"Definition file not found: {path}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    try:
        document = _load_definition(path)
        return document, _engine_class(v2)(document.steps)
    except (RunbackError, ValueError) as e:
        typer.secho(f"Invalid workflow definition: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _echo_run(record: RunRecord) -> None:
    color = typer.colors.GREEN if record.status is RunStatus.SUCCESS else typer.colors.RED
    typer.secho(f"Run {record.run_id}: {record.status.value} ({record.duration} ms)", fg=color)
    for step_id, step in record.steps.items():
        marker = " [only]" if step.only_run else ""
        typer.echo(f"- {step_id}: {step.status.value}{marker}")
    if record.error:
        typer.echo(f"Error: {record.error.message}")


@workflow_app.command("deps")
def workflow_deps(
    path: Path,
    v2: bool = typer.Option(False, "--v2", help="Use the input/ref step dialect"),
) -> None:
    """
    Print the dependencies of every step.

    Alternatives of an OR dependency are joined with ``|``.

    Example:
        runback workflow deps flow.json
        # Output: getUser: (none)
        #         greet: getUser.name
    """
    _, workflow = _build(path, v2)
    for step_id, deps in workflow.dependencies.items():
        rendered = ", ".join(_format_dependency(dep) for dep in deps) or "(none)"
        typer.echo(f"{step_id}: {rendered}")


@workflow_app.command("roots")
def workflow_roots(
    path: Path,
    step_id: str,
    v2: bool = typer.Option(False, "--v2", help="Use the input/ref step dialect"),
) -> None:
    """
    Print the root steps and path steps of a target step.

    These are the steps an exit-driven run of ``step_id`` would start from
    and be restricted to.

    Example:
        runback workflow roots flow.json final
        # Output: roots: a, b
        #         path: a, b, final, mid
    """
    _, workflow = _build(path, v2)
    try:
        roots = workflow.get_root_steps(step_id)
        path_steps = workflow.get_path_steps(step_id)
    except RunbackError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"roots: {', '.join(roots)}")
    typer.echo(f"path: {', '.join(path_steps)}")


@workflow_app.command("run")
def workflow_run(
    path: Path,
    actions: str = typer.Option(..., help="Action table as 'module:attribute'"),
    entry: Optional[str] = typer.Option(None, help="Start from this step"),
    exit_step: Optional[str] = typer.Option(None, "--exit", help="Run everything leading to this step"),
    only: Optional[List[str]] = typer.Option(None, help="Run only these steps (repeatable)"),
    resume: bool = typer.Option(False, help="Restore the context of the last run first"),
    v2: bool = typer.Option(False, "--v2", help="Use the input/ref step dialect"),
    save: bool = typer.Option(False, help="Write the definition and last run back to the file"),
) -> None:
    """
    Run a workflow definition file.

    The file holds either a list of steps or a document written by a previous
    ``--save`` run. Saved documents keep their last run, so ``--resume`` and
    ``--only`` continue from its context.

    Example:
        runback workflow run flow.json --actions my_actions:ACTIONS --entry getUser --save
        runback workflow run flow.json --actions my_actions:ACTIONS --only greet
    """
    document, workflow = _build(path, v2)
    try:
        action_table = _load_actions(actions)
    except (ImportError, AttributeError, ValueError) as e:
        typer.secho(f"Could not load actions: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    try:
        history = asyncio.run(
            workflow.run(
                actions=action_table,
                history=document.history(),
                entry=entry,
                exit=exit_step,
                only_runs=only or None,
                resume=resume,
            )
        )
    except RunbackError as e:
        typer.secho(str(e), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    record = history[-1]
    _echo_run(record)

    if save:
        document.last_run = record
        asyncio.run(WorkflowStore(path).save(document))
        typer.echo(f"Saved to {path}")

    if record.status is not RunStatus.SUCCESS:
        raise typer.Exit(code=1)


@workflow_app.command("show")
def workflow_show(path: Path) -> None:
    """
    Show the last run stored in a workflow document.

    Example:
        runback workflow show flow.json
        # Output: Run 0b6f...: success (12 ms)
        #         - getUser: success
    """
    if not path.exists():
        typer.secho(f"Definition file not found: {path}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    document = _load_definition(path)
    if document.last_run is None:
        typer.echo("No runs recorded")
        return
    _echo_run(document.last_run)
    typer.echo(f"Context: {document.last_run.context}")
