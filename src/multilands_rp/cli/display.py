"""Rich terminal rendering of command results."""
from __future__ import annotations

from rich import box
from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from multilands_rp.models.result import CommandResult

console = Console()


class ResultDisplay:
    def __init__(self, console_: Console | None = None, width: int = 80) -> None:
        self.console = console_ or console
        self.width = width

    def render(self, result: CommandResult) -> Panel:
        parts: list = []
        if result.description:
            parts.append(Markdown(result.description))

        block = [f for f in result.fields if not f.inline]
        inline = [f for f in result.fields if f.inline]
        if inline:
            row = Table(box=None, show_header=True, expand=True, padding=(0, 2))
            for f in inline:
                row.add_column(f.label, style="cyan", header_style="bold")
            row.add_row(*(Markdown(f.value) for f in inline))
            parts.append(row)
        for f in block:
            parts.append(Text(f.label, style="bold"))
            parts.append(Markdown(f.value))

        for label, ref in (("Image", result.image), ("Portrait", result.thumbnail)):
            if ref:
                parts.append(Text(f"{label}: {ref}", style="dim"))

        if result.success:
            border = "green"
        else:
            border = "red"
        return Panel(
            Group(*parts) if parts else Text(""),
            title=Text(result.headline, style="bold"),
            subtitle=result.footer,
            border_style=border,
            box=box.ROUNDED,
            width=self.width,
        )

    def show(self, result: CommandResult) -> None:
        if not result.success:
            self.console.print(f"[bold red]❌ {result.description}[/bold red]")
            return
        self.console.print(self.render(result))
