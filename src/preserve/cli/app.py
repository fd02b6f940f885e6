"""
Root Typer application for the preserve CLI.

Plugins are never discovered implicitly: every command takes a plugin
module (``package.module[:attr]``) whose ``loaders`` and ``recipes``
registries the caller populated.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import typer
from rich.markup import escape
from typer import Typer

from preserve.cli.utils import (
    console,
    err_console,
    load_plugins,
    output_event,
    output_json,
    output_rows,
    read_settings_file,
)
from preserve.core.errors import ConfigurationError
from preserve.core.logging import LogContext, configure_logging
from preserve.core.settings import clear_settings_cache, get_settings
from preserve.orchestration.planner import resolve_plan
from preserve.orchestration.request import PreserveRequest
from preserve.orchestration.run import RunStatus, preserve
from preserve.plugins.registry import ModuleRegistry

app = Typer(
    name="preserve",
    help="preserve — run a recipe dependency graph against a loaded target.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from preserve import __version__

        typer.echo(f"preserve {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Override PRESERVE_LOG_LEVEL."
    ),
) -> None:
    """preserve CLI — plan and run preservation requests."""
    clear_settings_cache()
    settings = get_settings()
    configure_logging(
        level=(log_level or settings.log_level),
        json_format=settings.json_logs,
        service="preserve",
    )


def _plugins_option() -> Any:
    return typer.Option(
        None,
        "--plugins",
        "-p",
        help="Plugin module exposing 'loaders' and 'recipes' (package.module[:attr]).",
    )


def _resolve_plugins(plugins: str | None) -> tuple[Mapping[str, Any], Mapping[str, Any]]:
    return load_plugins(plugins or get_settings().default_plugins)


def _config_error(exc: ConfigurationError) -> typer.Exit:
    err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {escape(exc.message)}")
    return typer.Exit(code=1)


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("run")
def run_request(
    loader: str = typer.Option(..., "--loader", "-l", help="Loader name"),
    recipe: str = typer.Option(..., "--recipe", "-r", help="Root recipe name"),
    plugins: str | None = _plugins_option(),
    settings_file: Path | None = typer.Option(
        None, "--settings", "-s", help="YAML/JSON file: plugin name -> settings"
    ),
    json_out: bool = typer.Option(False, "--json", help="Emit events as JSON lines."),
) -> None:
    """Run a preservation request and stream its events."""
    loaders, recipes = _resolve_plugins(plugins)
    settings = read_settings_file(settings_file)

    try:
        request = PreserveRequest(loader=loader, recipe=recipe, settings=settings)
        run = preserve(request, loaders=loaders, recipes=recipes)
    except ConfigurationError as exc:
        raise _config_error(exc) from exc

    with LogContext(loader=loader, recipe=recipe):
        try:
            for event in run:
                output_event(event, as_json=json_out)
        except Exception as exc:
            err_console.print(f"[bold red]Error[/bold red]: {escape(str(exc))}")
            raise typer.Exit(code=1) from exc

    if json_out:
        output_json({"summary": run.to_dict()})
    elif run.status is RunStatus.SUCCEEDED:
        console.print(f"[bold green]Succeeded[/bold green]: {len(run.labels)} recipe(s)")
    else:
        where = f" at '{run.failed_recipe}'" if run.failed_recipe else ""
        err_console.print(f"[bold red]{run.status.value.capitalize()}[/bold red]{escape(where)}")

    if run.status is not RunStatus.SUCCEEDED:
        raise typer.Exit(code=1)


@app.command("plan")
def plan_recipe(
    recipe: str = typer.Argument(..., help="Root recipe name"),
    plugins: str | None = _plugins_option(),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the execution order for a recipe without running anything."""
    _, recipes = _resolve_plugins(plugins)

    try:
        plan = resolve_plan(recipe, recipes)
    except ConfigurationError as exc:
        raise _config_error(exc) from exc

    if json_out:
        output_json(plan.to_dict())
        return

    rows = [
        {"#": str(i + 1), "recipe": r.name, "dependencies": list(r.dependencies)}
        for i, r in enumerate(plan)
    ]
    output_rows(rows, columns=["#", "recipe", "dependencies"], title=f"Plan: {recipe}")


@app.command("list")
def list_plugins(
    plugins: str | None = _plugins_option(),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List registered loaders and recipes."""
    loaders, recipes = _resolve_plugins(plugins)

    rows = []
    for kind, registry in (("loader", loaders), ("recipe", recipes)):
        if isinstance(registry, ModuleRegistry):
            rows.extend(registry.describe())
            continue
        for name in sorted(registry):
            row = {"name": name, "kind": kind, "type": type(registry[name]).__name__}
            dependencies = getattr(registry[name], "dependencies", None)
            if dependencies is not None:
                row["dependencies"] = list(dependencies)
            rows.append(row)

    if json_out:
        output_json(rows)
        return
    output_rows(rows, columns=["kind", "name", "type", "dependencies"], title="Plugins")
