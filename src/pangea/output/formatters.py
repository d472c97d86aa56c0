"""Render a ServiceResult for humans (Rich) or machines (--json)."""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.markup import escape
from rich.table import Table

from pangea.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from pangea.services.result import ServiceResult

# Keys rendered as tables when they hold a list of dicts.
_TABLE_KEYS = ("items", "applied", "planned", "edges")


def _compact(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return _json.dumps(value, separators=(",", ":"))
    return str(value)


def _render_table(console: Console, title: str, rows: list[dict[str, Any]]) -> None:
    columns: list[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    table = Table(title=title, title_justify="left", show_edge=False)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*(escape(_compact(row.get(c, ""))) for c in columns))
    console.print(table)


def _render_data(console: Console, data: dict[str, Any]) -> None:
    order = data.get("order")
    if isinstance(order, list):
        console.print("  [pangea.key]execution order:[/]")
        for index, name in enumerate(order, start=1):
            console.print(f"    {index}. [pangea.template]{escape(str(name))}[/]")

    for key, value in data.items():
        if key == "order":
            continue
        if key in _TABLE_KEYS and isinstance(value, list):
            if value and all(isinstance(v, dict) for v in value):
                _render_table(console, key, value)
            continue
        if key == "outputs" and isinstance(value, dict):
            console.print("  [pangea.key]outputs:[/]")
            for name, output in value.items():
                console.print(f"    [pangea.output]{escape(name)}[/] = {escape(_compact(output))}")
            continue
        console.print(f"  [pangea.key]{escape(key)}:[/] {escape(_compact(value))}")


def format_result(
    result: ServiceResult,
    *,
    json_output: bool = False,
    quiet: bool = False,
) -> str:
    """Format a ServiceResult for display.

    Failures include captured stdout/stderr from the provisioning tool
    verbatim when the error carries them.
    """
    if json_output:
        return result.model_dump_json(indent=2)

    if quiet:
        if not result.ok:
            return f"ERROR: {result.error.message if result.error else 'Unknown error'}"
        order = result.data.get("order")
        if isinstance(order, list):
            return "\n".join(str(name) for name in order)
        return ""

    console = create_console()
    if result.ok:
        console.print(f"[pangea.ok]OK[/]: [pangea.op]{escape(result.op)}[/]")
        if result.data:
            _render_data(console, result.data)
        return get_output(console).rstrip("\n")

    message = result.error.message if result.error else "Unknown error"
    console.print(
        f"[pangea.error]ERROR[/]: [pangea.op]{escape(result.op)}[/] - {escape(message)}",
        soft_wrap=True,
    )
    detail = result.error.detail if result.error else {}
    for stream in ("stdout", "stderr"):
        text = detail.get(stream)
        if text:
            console.print(f"--- {stream} ---", style="pangea.key")
            console.print(escape(text), soft_wrap=True)
    if result.data:
        _render_data(console, result.data)
    return get_output(console).rstrip("\n")
