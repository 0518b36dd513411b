"""Installed Java Runtimes tab – ranked detection results."""
from __future__ import annotations
from typing import TYPE_CHECKING

from textual.containers import Horizontal
from textual.widgets import Button, DataTable, Label, TabPane

if TYPE_CHECKING:
    from main import JarfixApp


def build_runtimes(pane: TabPane, app: "JarfixApp") -> None:
    mgr = app.manager

    pane.mount(Label("📋 Installed Java Runtimes", classes="panel-title"))
    pane.mount(Label("", id="runtimes-summary", classes="panel-help"))

    table = DataTable(id="runtimes-list", cursor_type="row", zebra_stripes=True)
    pane.mount(table)

    actions = Horizontal(id="runtimes-actions")
    pane.mount(actions)
    actions.mount(Button("🔍 Re-detect", id="runtimes-detect", classes="action-btn btn-primary"))

    def _refresh() -> None:
        t = pane.query_one("#runtimes-list", DataTable)
        t.clear()
        chosen = app.last_result.details.get("runtime") if app.last_result else None
        for rt in mgr.runtimes:
            marker = " ✓" if chosen is not None and rt.key == chosen.key else ""
            t.add_row(
                rt.vendor.value,
                f"{rt.major_version}{marker}",
                rt.architecture,
                rt.confidence.value,
                rt.executable_path,
            )
        pane.query_one("#runtimes-summary", Label).update(
            f"{len(mgr.runtimes)} runtime(s) found, best first."
            if mgr.runtimes else "[yellow]No Java runtime found.[/]"
        )

    def _init() -> None:
        pane.query_one("#runtimes-list", DataTable).add_columns(
            "Vendor", "Version", "Architecture", "Confidence", "Path",
        )
        _refresh()
        app.refreshers.append(_refresh)

    app.call_later(_init)
    app.register_buttons({"runtimes-detect": app.action_run_fix})
