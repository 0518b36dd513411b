"""
ui/widgets.py
=============
Reusable Textual widgets for the Jarfix TUI.

Provides:
  - StatusBanner       – current association state / chosen runtime
  - RunLogView         – scrolling, level-coloured run log
  - ProgressIndicator  – installer download progress bar
"""

from __future__ import annotations

from textual.app import ComposeResult
from textual.reactive import reactive
from textual.widget import Widget
from textual.widgets import Label, ProgressBar, RichLog, Static
from rich.text import Text


# ──────────────────────────────────────────────
#  Status Banner
# ──────────────────────────────────────────────

class StatusBanner(Static):
    """One-line summary of the last fix attempt."""

    state: reactive[str] = reactive("idle")
    detail: reactive[str] = reactive("")

    _STYLES = {
        "idle": ("● Not run yet", "dim"),
        "working": ("● Working…", "bold cyan"),
        "fixed": ("● Fixed", "bold green"),
        "repair_failed": ("● Repair failed", "bold red"),
        "needs_install": ("● Java 17+ (64-bit) required", "bold yellow"),
        "install_failed": ("● Install failed", "bold red"),
    }

    def render(self) -> Text:
        label, style = self._STYLES.get(self.state, (self.state, ""))
        text = Text(label, style=style)
        if self.detail:
            text.append(f"  {self.detail}", style="")
        return text


# ──────────────────────────────────────────────
#  Run Log View
# ──────────────────────────────────────────────

class RunLogView(RichLog):
    """Run log viewer, coloured by level, auto-scrolling."""

    DEFAULT_CSS = """
    RunLogView {
        height: 1fr;
        border: solid $secondary;
        padding: 0 1;
    }
    """

    _LEVEL_STYLES = {"ERROR": "bold red", "WARNING": "yellow", "INFO": ""}

    def add_log_line(self, line: str, level: str = "INFO") -> None:
        self.write(Text(line, style=self._LEVEL_STYLES.get(level, "dim")))

    def load_lines(self, lines: list[str]) -> None:
        """Replace the view contents; level is recovered from the line prefix."""
        self.clear()
        for line in lines:
            level = "INFO"
            if "/ERROR]" in line[:20]:
                level = "ERROR"
            elif "/WARNING]" in line[:20]:
                level = "WARNING"
            self.add_log_line(line, level)


# ──────────────────────────────────────────────
#  Progress Indicator
# ──────────────────────────────────────────────

class ProgressIndicator(Widget):
    """Download progress with a label; hidden until a download starts."""

    DEFAULT_CSS = """
    ProgressIndicator {
        height: 3;
        padding: 0 1;
        display: none;
    }
    ProgressIndicator.-active { display: block; }
    """

    task_label: reactive[str] = reactive("Downloading Java 21…")

    def compose(self) -> ComposeResult:
        yield Label(self.task_label, id="pi-label")
        yield ProgressBar(total=100, show_eta=True, show_percentage=True, id="pi-bar")

    def start(self, label: str) -> None:
        self.task_label = label
        self.add_class("-active")
        try:
            self.query_one("#pi-label", Label).update(label)
            self.query_one("#pi-bar", ProgressBar).update(total=100, progress=0)
        except Exception:
            pass

    def set_progress(self, current: int, total: int) -> None:
        """Update progress; an unknown total shows an indeterminate bar."""
        try:
            bar = self.query_one("#pi-bar", ProgressBar)
            if total > 0:
                bar.update(total=100, progress=current / total * 100)
            else:
                bar.update(total=None)
        except Exception:
            pass

    def finish(self) -> None:
        self.remove_class("-active")
