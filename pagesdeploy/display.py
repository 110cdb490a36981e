"""Rich console output for pipeline progress."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel


class Display:
    """Status-line printer honouring quiet mode.

    Errors, warnings, and prompts are always shown; informational lines are
    suppressed when *quiet* is set.
    """

    def __init__(self, console: Console | None = None, *, quiet: bool = False) -> None:
        self.console = console or Console()
        self.quiet = quiet

    def header(self, title: str, subtitle: str = "") -> None:
        if self.quiet:
            return
        body = f"[bold]{escape(title)}[/bold]"
        if subtitle:
            body += f"\n{escape(subtitle)}"
        self.console.print(Panel(body, border_style="cyan"))

    def step(self, number: int, total: int, name: str, description: str = "") -> None:
        if self.quiet:
            return
        self.console.print()
        self.console.print(f"[bold][{number}/{total}][/bold] {escape(name)}")
        if description:
            self.console.print(f"  [dim]{escape(description)}[/dim]")

    def status(self, message: str) -> None:
        if not self.quiet:
            self.console.print(f"[cyan]{escape(message)}[/cyan]")

    def info(self, message: str) -> None:
        if not self.quiet:
            self.console.print(escape(message))

    def success(self, message: str) -> None:
        if not self.quiet:
            self.console.print(f"[green]{escape(message)}[/green]")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]Error:[/red] {escape(message)}")

    def prompt(self, message: str) -> None:
        self.console.print(f"[magenta]{escape(message)}[/magenta]")
