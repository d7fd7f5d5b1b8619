"""Interactive console host: the in-memory model rendered with rich."""

from __future__ import annotations

from typing import Any, Callable, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.style import Style
from rich.text import Text

from agent_orchestrator.config.schema import ColorDef
from agent_orchestrator.core import palette
from agent_orchestrator.host.channels import ChannelPool
from agent_orchestrator.host.memory import InMemoryHost
from agent_orchestrator.host.ports import ERROR, INFO, WARN

LEVEL_STYLES = {
    INFO: "green",
    WARN: "yellow",
    ERROR: "bold red",
}


def build_styles(colors: Sequence[ColorDef]) -> dict[str, Style]:
    """rich styles for every status bar group."""
    styles: dict[str, Style] = {}
    for group, spec in palette.highlight_definitions(colors).items():
        styles[group] = Style(
            color=spec.get("fg"),
            bgcolor=spec.get("bg"),
            bold=bool(spec.get("bold", False)),
        )
    return styles


class ConsoleHost(InMemoryHost):
    """Prints notifications and asks for selections on a terminal."""

    def __init__(
        self,
        console: Console | None = None,
        colors: Sequence[ColorDef] = (),
        cwd: str | None = None,
        channels: ChannelPool | None = None,
    ) -> None:
        self.console = console or Console()
        size = self.console.size
        super().__init__(cwd=cwd, columns=size.width, lines=size.height, channels=channels)
        self._styles = build_styles(colors) if colors else {}

    def notify(self, message: str, level: str = INFO) -> None:
        super().notify(message, level)
        style = LEVEL_STYLES.get(level, "")
        self.console.print(Text.assemble((level.upper(), style), " ", message))

    def select(
        self,
        items: Sequence[Any],
        prompt: str,
        format_item: Callable[[Any], str],
        on_choice: Callable[[Any | None], None],
    ) -> None:
        self.last_prompt = prompt
        self.last_labels = [format_item(item) for item in items]
        if not items:
            on_choice(None)
            return

        self.console.print(f"[bold]{prompt}[/bold]")
        for index, label in enumerate(self.last_labels, start=1):
            self.console.print(Text.assemble("  ", (str(index), "cyan"), ". ", label))

        answer = Prompt.ask("Choice (blank to cancel)", default="", console=self.console).strip()
        if not answer:
            on_choice(None)
            return
        try:
            index = int(answer)
        except ValueError:
            self.console.print(f"[yellow]Not a number: {answer}[/yellow]")
            on_choice(None)
            return
        if not 1 <= index <= len(items):
            self.console.print(f"[yellow]Out of range: {index}[/yellow]")
            on_choice(None)
            return
        on_choice(items[index - 1])

    def status_line(self, buffer: int | None) -> Text | None:
        """Styled rendering of a status bar buffer's single line."""
        if not self.buffer_is_valid(buffer):
            return None
        buf = self.buffer(buffer)
        text = Text(buf.lines[0] if buf.lines else "")
        for region in buf.regions:
            style = self._styles.get(region.group)
            if style is not None:
                text.stylize(style, region.start, region.end)
        return text

    def show_terminal(self, buffer: int, tail: int = 20) -> None:
        """Print the last ``tail`` lines of a terminal buffer."""
        lines = self.get_lines(buffer)[-tail:]
        self.console.print(Panel(Text("\n".join(lines) or " "), title=f"buffer {buffer}", expand=False))

    def show_draft(self, buffer: int, title: str = "") -> None:
        self.console.print(Panel(Text("\n".join(self.get_lines(buffer)) or " "), title=title or None, expand=False))
