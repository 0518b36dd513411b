"""Log tab – live run log with upload to mclo.gs."""
from __future__ import annotations
import queue
from typing import TYPE_CHECKING

from textual.containers import Horizontal
from textual.widgets import Button, Label, TabPane

from ui.widgets import RunLogView

if TYPE_CHECKING:
    from main import JarfixApp


def build_log(pane: TabPane, app: "JarfixApp") -> None:
    pane.mount(Label("📜 Log", classes="panel-title"))

    view = RunLogView(id="run-log", wrap=True, markup=False)
    pane.mount(view)

    actions = Horizontal(id="log-actions")
    pane.mount(actions)
    actions.mount(Button("⬆ Upload log", id="log-upload", classes="action-btn btn-primary"))
    actions.mount(Button("🧹 Clear", id="log-clear", classes="action-btn"))

    def _drain() -> None:
        while True:
            try:
                line, level = app.log_queue.get_nowait()
            except queue.Empty:
                return
            view.add_log_line(line, level)

    def _init() -> None:
        # everything queued so far is already in the handler buffer
        while True:
            try:
                app.log_queue.get_nowait()
            except queue.Empty:
                break
        view.load_lines(app.manager.run_log.display_lines())
        app.set_interval(0.25, _drain)

    def _clear() -> None:
        app.manager.run_log.clear()
        view.clear()

    app.call_later(_init)
    app.register_buttons({
        "log-upload": app.action_upload_log,
        "log-clear": _clear,
    })
