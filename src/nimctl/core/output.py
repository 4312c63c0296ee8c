"""Output formatting utilities using Rich."""

import json
import sys
from enum import Enum
from typing import Any

import yaml
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from tabulate import tabulate

console = Console()


class OutputFormat(str, Enum):
    """Supported output formats."""

    TABLE = "table"
    JSON = "json"
    YAML = "yaml"
    RAW = "raw"


class OutputFormatter:
    """Handles output formatting for CLI commands."""

    def __init__(
        self,
        format: OutputFormat = OutputFormat.TABLE,
        color: bool = True,
        quiet: bool = False,
        force_color: bool = False,
    ):
        self.format = format
        self.color = color
        self.quiet = quiet
        # force_color keeps styling when stdout is not a terminal (color: always).
        force_terminal = True if color and force_color else None
        self._console = Console(no_color=not color, highlight=False, force_terminal=force_terminal)
        self._error_console = Console(
            stderr=True, no_color=not color, highlight=False, force_terminal=force_terminal
        )

    @property
    def console(self) -> Console:
        return self._console

    def print(self, message: str, style: str | None = None) -> None:
        """Print a message to stdout."""
        if self.quiet:
            return
        self._console.print(message, style=style)

    def print_line(self, line: str) -> None:
        """Write one unadorned line to stdout.

        Used for streamed log and event lines: no markup, no wrapping, and
        never suppressed by --quiet.
        """
        sys.stdout.write(line + "\n")
        sys.stdout.flush()

    def print_error(self, message: str) -> None:
        """Print an error message to stderr."""
        self._error_console.print(f"[red]Error:[/red] {escape(message)}")

    def print_warning(self, message: str) -> None:
        """Print a warning message to stderr."""
        if self.quiet:
            return
        self._error_console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        if self.quiet:
            return
        self._console.print(f"[green]✓[/green] {escape(message)}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        if self.quiet:
            return
        self._console.print(f"[blue]ℹ[/blue] {escape(message)}")

    def print_data(
        self,
        data: list[dict[str, Any]] | dict[str, Any],
        headers: list[str] | None = None,
        title: str | None = None,
    ) -> None:
        """Print data in the configured format."""
        if self.format == OutputFormat.JSON:
            self._print_json(data)
        elif self.format == OutputFormat.YAML:
            self._print_yaml(data)
        elif self.format == OutputFormat.RAW:
            self._print_raw(data)
        else:
            self._print_table(data, headers)

    def print_paragraph(self, fields: dict[str, Any]) -> None:
        """Print a single record as ``Key: value`` lines."""
        if self.format != OutputFormat.TABLE:
            self.print_data(fields)
            return
        for key, value in fields.items():
            if isinstance(value, list):
                self._console.print(f"{key}:", markup=False)
                for item in value:
                    self._console.print(f"  {item}", markup=False)
            else:
                self._console.print(f"{key}: {value}", markup=False)

    def _print_json(self, data: Any) -> None:
        json_str = json.dumps(data, indent=2, default=str)
        if self.color:
            self._console.print(Syntax(json_str, "json", theme="monokai"))
        else:
            print(json_str)

    def _print_yaml(self, data: Any) -> None:
        yaml_str = yaml.dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False)
        if self.color:
            self._console.print(Syntax(yaml_str, "yaml", theme="monokai"))
        else:
            print(yaml_str)

    def _print_raw(self, data: Any) -> None:
        if isinstance(data, list):
            for item in data:
                print(item)
        elif isinstance(data, dict):
            for key, value in data.items():
                print(f"{key}: {value}")
        else:
            print(data)

    def _print_table(
        self,
        data: list[dict[str, Any]] | dict[str, Any],
        headers: list[str] | None = None,
    ) -> None:
        """Print data as a kubectl-style plain table."""
        if isinstance(data, dict):
            data = [data]
        if not data:
            self.print_info("No resources found")
            return

        if headers is None:
            headers = list(data[0].keys())

        rows = [[_cell(row.get(h, "")) for h in headers] for row in data]
        table = tabulate(
            rows,
            headers=[h.upper() for h in headers],
            tablefmt="plain",
            disable_numparse=True,
        )
        self._console.print(table, markup=False, soft_wrap=True)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)
