from datetime import datetime
from typing import Optional, Protocol

from rich.console import Console
from rich.text import Text

from hostprobe.models.metric import Severity

HEADER_WIDTH = 60

_SEVERITY_STYLES = {
    Severity.OK: "green",
    Severity.WARN: "yellow",
    Severity.CRIT: "red",
}

_SUMMARIES = {
    Severity.OK: ("✓ All checks passed", "green"),
    Severity.WARN: ("⚠ One or more warnings", "yellow"),
    Severity.CRIT: ("✗ One or more critical alerts", "red"),
}


class Display(Protocol):
    """
    Sink for the human-readable sections the probes print while they run.

    `shows_details` tells probes whether display-only extras (such as the
    verbose process table) are worth collecting at all.
    """

    shows_details: bool

    def banner(self, version: str, now: datetime) -> None: ...

    def notice(self, text: str) -> None: ...

    def iteration(self, number: int, now: datetime) -> None: ...

    def header(self, title: str) -> None: ...

    def status(self, label: str, value: str, severity: Severity = Severity.OK) -> None: ...

    def detail(self, text: str) -> None: ...

    def summary(self, severity: Severity) -> None: ...

    def clear(self) -> None: ...


class NullDisplay:
    """
    Display used for json/csv output and the HTTP view: every call is a
    no-op so that the machine-readable renderer is the only thing written
    to stdout.
    """

    shows_details = False

    def banner(self, version: str, now: datetime) -> None:
        pass

    def notice(self, text: str) -> None:
        pass

    def iteration(self, number: int, now: datetime) -> None:
        pass

    def header(self, title: str) -> None:
        pass

    def status(self, label: str, value: str, severity: Severity = Severity.OK) -> None:
        pass

    def detail(self, text: str) -> None:
        pass

    def summary(self, severity: Severity) -> None:
        pass

    def clear(self) -> None:
        pass


class TextDisplay:
    """Human-oriented output, printed section by section while probes run."""

    shows_details = True

    def __init__(self, console: Optional[Console] = None, colorize: bool = True) -> None:
        self.console = console or Console(no_color=not colorize, highlight=False, soft_wrap=True)
        self.colorize = colorize

    def _style(self, style: str) -> str:
        return style if self.colorize else ""

    def banner(self, version: str, now: datetime) -> None:
        rule = "═" * (HEADER_WIDTH + 15)
        self.console.print(
            Text(
                f"{rule}\n"
                f"  SYSTEM HEALTH MONITOR v{version}\n"
                f"  {now:%Y-%m-%d %H:%M:%S}\n"
                f"{rule}",
                style=self._style("bold"),
            )
        )

    def notice(self, text: str) -> None:
        self.console.print(Text(text, style=self._style("cyan")))

    def iteration(self, number: int, now: datetime) -> None:
        self.console.print(
            Text(f"━━━ Iteration {number} ({now:%H:%M:%S}) ━━━", style=self._style("bold"))
        )

    def header(self, title: str) -> None:
        rule = "═" * HEADER_WIDTH
        self.console.print()
        self.console.print(Text(rule, style=self._style("bold")))
        self.console.print(Text(title.center(HEADER_WIDTH).rstrip(), style=self._style("bold")))
        self.console.print(Text(rule, style=self._style("bold")))

    def status(self, label: str, value: str, severity: Severity = Severity.OK) -> None:
        line = Text(f"  {label:<25} [")
        line.append(severity.label, style=self._style(_SEVERITY_STYLES[severity]))
        line.append(f"] {value}")
        self.console.print(line)

    def detail(self, text: str) -> None:
        self.console.print(Text(f"    {text}"))

    def summary(self, severity: Severity) -> None:
        message, style = _SUMMARIES[severity]
        self.console.print()
        self.console.print(Text(message, style=self._style(style)))

    def clear(self) -> None:
        self.console.clear()
