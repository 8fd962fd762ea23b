"""Output formatting for the podstage CLI.

Commands report through an OutputContext so the same code path serves both
people (Rich markup on the console) and automation (``--json``). In JSON
mode nothing but the JSON document is written to stdout.
"""

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from rich.console import Console
from rich.table import Table


def to_jsonable(data: Any) -> Any:
    """Convert models, and lists of them, to plain JSON types."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, list | tuple):
        return [to_jsonable(item) for item in data]
    return data


@dataclass
class OutputContext:
    """Context for output formatting."""

    console: Console
    json_mode: bool = False

    def print(self, message: str, style: str | None = None) -> None:
        """Print message unless in JSON mode."""
        if not self.json_mode:
            self.console.print(message, style=style)

    def print_table(self, table: Table) -> None:
        if not self.json_mode:
            self.console.print(table)

    def print_json(self, data: Any) -> None:
        """Print a JSON document: a model, a list of models, or plain data."""
        if self.json_mode:
            print(json.dumps(to_jsonable(data), indent=2, default=str))

    def result(self, data: Any, message: str = "") -> None:
        """Print result in appropriate format."""
        if self.json_mode:
            self.print_json(data)
        elif message:
            self.console.print(message)

    def error(self, message: str, data: dict[str, Any] | None = None) -> None:
        """Print error in appropriate format."""
        if self.json_mode:
            self.print_json({"error": message, **(data or {})})
        else:
            self.console.print(f"[red]Error:[/red] {message}")

    def success(self, message: str, data: dict[str, Any] | None = None) -> None:
        if self.json_mode:
            self.print_json({"success": message, **(data or {})})
        else:
            self.console.print(f"[green]{message}[/green]")


# Set by the cli.py main callback
_ctx: OutputContext | None = None


def get_output_context() -> OutputContext:
    """Get the output context installed by the CLI, or a plain console one."""
    if _ctx is None:
        return OutputContext(Console(highlight=False))
    return _ctx


def set_output_context(ctx: OutputContext) -> None:
    global _ctx
    _ctx = ctx
