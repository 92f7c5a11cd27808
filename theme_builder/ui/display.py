"""Terminal output helpers built on rich."""

from typing import Iterable

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

console = Console()


class Display:
    """Operator-facing rendering. Diagnostics go through logging instead."""

    def __init__(self, output: Console | None = None):
        self.console = output or console

    def banner(self) -> None:
        self.console.print(
            Panel.fit(
                "[bold]Shopify Theme Builder[/bold]\n"
                "AI-assisted theme generation with human approval at every step",
                border_style="magenta",
            )
        )

    def phase_header(self, title: str, number: int, total: int) -> None:
        self.console.print()
        self.console.print(Rule(f"[bold cyan]Phase {number}/{total}: {title}[/bold cyan]"))

    def section_header(self, title: str) -> None:
        self.console.print(f"\n[bold]{title}[/bold]")

    def text(self, message: str) -> None:
        self.console.print(message)

    def info(self, message: str) -> None:
        self.console.print(f"[blue]ℹ[/blue] {message}")

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def key_value(self, key: str, value: str) -> None:
        self.console.print(f"  [dim]{key}:[/dim] {value}")

    def bullet_list(self, items: Iterable[str]) -> None:
        for item in items:
            self.console.print(f"  • {item}")

    def numbered_list(self, items: Iterable[str]) -> None:
        for i, item in enumerate(items, 1):
            self.console.print(f"  {i}. {item}")

    def proposal(self, title: str, content: str) -> None:
        """Render an artifact for review."""
        self.console.print(Panel(content.strip(), title=f"[bold]{title}[/bold]", border_style="cyan"))

    def box(self, content: str) -> None:
        self.console.print(Panel(content.strip(), border_style="green"))

    def divider(self) -> None:
        self.console.print(Rule(style="dim"))

    def newline(self) -> None:
        self.console.print()

    def table(self, title: str, columns: list[str], rows: Iterable[Iterable[str]]) -> None:
        table = Table(title=title)
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*row)
        self.console.print(table)
