"""
CLI utility helpers — plugin module loading and output formatting.
"""

from __future__ import annotations

import importlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from preserve.processes.events import Event, EventType, StepStatus

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)


# ── Plugin loading ───────────────────────────────────────────────────────


def load_plugins(spec: str | None) -> tuple[Mapping[str, Any], Mapping[str, Any]]:
    """Import ``package.module[:attr]`` and return its ``(loaders, recipes)``.

    The target object (the module, or ``attr`` inside it) must expose
    ``loaders`` and ``recipes`` mappings that the caller populated.
    """
    if not spec:
        err_console.print(
            "[bold red]Error[/bold red]: no plugin module given "
            "(use --plugins or set PRESERVE_DEFAULT_PLUGINS)"
        )
        raise typer.Exit(code=1)

    module_name, _, attr = spec.partition(":")
    try:
        source: Any = importlib.import_module(module_name)
    except ImportError as exc:
        err_console.print(f"[bold red]Error[/bold red]: cannot import '{escape(module_name)}': {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    if attr:
        if not hasattr(source, attr):
            err_console.print(f"[bold red]Error[/bold red]: '{escape(module_name)}' has no attribute '{escape(attr)}'")
            raise typer.Exit(code=1)
        source = getattr(source, attr)

    registries = []
    for kind in ("loaders", "recipes"):
        registry = getattr(source, kind, None)
        if not isinstance(registry, Mapping):
            err_console.print(
                f"[bold red]Error[/bold red]: '{escape(spec)}' must expose a '{kind}' mapping"
            )
            raise typer.Exit(code=1)
        registries.append(registry)
    return registries[0], registries[1]


def read_settings_file(path: Path | None) -> dict[str, Any]:
    """Parse a YAML/JSON file mapping plugin name to settings."""
    if path is None:
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        err_console.print(f"[bold red]Error[/bold red]: cannot read settings file {escape(str(path))}: {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        err_console.print(
            f"[bold red]Error[/bold red]: settings file {escape(str(path))} must contain a mapping "
            "of plugin name to settings"
        )
        raise typer.Exit(code=1)
    return data


# ── Output helpers ───────────────────────────────────────────────────────


_STEP_STYLE = {
    StepStatus.ACTIVE: "cyan",
    StepStatus.DONE: "green",
    StepStatus.FAILED: "red",
    StepStatus.PENDING: "dim",
}


def to_json(payload: Any) -> str:
    return json.dumps(payload, default=str)


def output_json(payload: Any) -> None:
    """Write one JSON line to stdout, untouched by rich markup or wrapping."""
    console.out(to_json(payload), highlight=False)


def render_event(event: Event) -> str:
    """One rich-markup line per event."""
    scope = escape("/".join(event.scope))
    kind = event.type

    if kind is EventType.BEGIN:
        return f"[bold]▶ {scope}[/bold]"
    if kind is EventType.LOG:
        return f"  [dim]{scope}[/dim] {escape(event.message)}"
    if kind is EventType.DECLARE:
        return f"  [dim]{scope}[/dim] declared [italic]{escape(event.step)}[/italic]"
    if kind is EventType.STEP:
        style = _STEP_STYLE.get(event.status, "white")
        return f"  [dim]{scope}[/dim] {escape(event.step)}: [{style}]{event.status.value}[/{style}]"
    if kind is EventType.SUCCEED:
        return f"[bold green]✔ {scope}[/bold green] {escape(repr(event.label))}"
    if kind is EventType.FAIL:
        error = event.error
        detail = f"{type(error).__name__}: {error}" if error is not None else "failed"
        return f"[bold red]✘ {scope}[/bold red] {escape(detail)}"
    return f"  {scope} {kind.value}"


def output_event(event: Event, *, as_json: bool = False) -> None:
    if as_json:
        output_json(event.to_dict())
    else:
        console.print(render_event(event))


def output_rows(rows: list[dict[str, Any]], *, columns: list[str], title: str = "") -> None:
    """Render a list of dicts as a rich table."""
    table = Table(title=title or None)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*[_cell(row.get(column)) for column in columns])
    console.print(table)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list | tuple):
        return ", ".join(str(v) for v in value)
    return str(value)
