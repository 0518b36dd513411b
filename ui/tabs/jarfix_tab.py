"""Jarfix tab – status of the last fix, warnings, fix / install buttons."""
from __future__ import annotations
from typing import TYPE_CHECKING

from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Label, TabPane

from ui.widgets import ProgressIndicator, StatusBanner

if TYPE_CHECKING:
    from main import JarfixApp


def build_jarfix(pane: TabPane, app: "JarfixApp") -> None:
    mgr = app.manager

    pane.mount(Label("☕  Jarfix", classes="panel-title"))
    pane.mount(Label(
        "Makes .jar files open with the newest 64-bit Java runtime installed "
        f"(Java {mgr.min_version} or higher).",
        classes="panel-help",
    ))

    # ── Status ──
    status = Vertical(id="jarfix-status")
    pane.mount(status)
    status.mount(StatusBanner(id="jarfix-banner"))
    status.mount(Label("", id="jarfix-runtime"))
    status.mount(Label("", id="jarfix-warnings", classes="warning-text"))

    pane.mount(ProgressIndicator(id="jarfix-progress"))

    # ── Actions ──
    actions = Horizontal(id="jarfix-actions")
    pane.mount(actions)
    actions.mount(Button("🔧 Fix .jar files", id="jarfix-run", classes="action-btn btn-primary"))
    actions.mount(Button("⬇ Install Java 21", id="jarfix-install", classes="action-btn"))
    actions.mount(Button("📋 Show runtimes", id="jarfix-show", classes="action-btn"))

    def _refresh() -> None:
        result = app.last_result
        runtime = result.details.get("runtime") if result else None
        runtime_label = pane.query_one("#jarfix-runtime", Label)
        if runtime is not None:
            runtime_label.update(
                f"[green]Runtime:[/] {runtime.display_name()}\n[dim]{runtime.executable_path}[/]"
            )
        else:
            runtime_label.update("")

        warnings = result.details.get("warnings", []) if result else []
        pane.query_one("#jarfix-warnings", Label).update(
            "\n".join(f"⚠ {w}" for w in warnings)
        )

    app.refreshers.append(_refresh)

    def _install() -> None:
        app.confirm(
            "Download and install the Microsoft Build of OpenJDK 21?\n"
            "Windows will ask for administrator approval.",
            lambda yes: app.action_install() if yes else None,
        )

    app.register_buttons({
        "jarfix-run": app.action_run_fix,
        "jarfix-install": _install,
        "jarfix-show": lambda: app.action_show_tab("tab-runtimes"),
    })
