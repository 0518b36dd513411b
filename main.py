#!/usr/bin/env python3
"""
main.py – Jarfix TUI
====================
Entry point: tabbed Textual application (Jarfix / Installed Java Runtimes /
Log), confirmation dialogs for install and update, and a headless CLI mode.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import queue
import sys
import webbrowser
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import (
    Button, Footer, Header, Label,
    TabbedContent, TabPane,
)

from jarfix_manager import (
    JARFIX_VERSION,
    STATUS_NEEDS_INSTALL,
    JarfixManager,
    Result,
    load_config,
)

logger = logging.getLogger("jarfix")


# ──────────────────────────────────────────────
#  Logging
# ──────────────────────────────────────────────

def setup_logging(log_dir: str | Path, verbose: bool = False, console: bool = True) -> None:
    """File log under *log_dir*, plus stdout when *console* is set."""
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers: List[logging.Handler] = [
        logging.FileHandler(log_dir / "jarfix.log", encoding="utf-8"),
    ]
    if console:
        handlers.append(logging.StreamHandler(sys.stdout))

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


# ──────────────────────────────────────────────
#  CLI
# ──────────────────────────────────────────────

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="☕  Jarfix – repair the .jar file association",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("--config", default="config.json", help="Path to config.json")
    p.add_argument("--headless", action="store_true", help="No TUI; detect, fix and exit")
    p.add_argument(
        "--install", action="store_true",
        help="Headless only: install Java 21 when no suitable runtime is found",
    )
    p.add_argument("--no-update-check", action="store_true", help="Skip the GitHub release check")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p.parse_args(argv)


# ──────────────────────────────────────────────
#  Confirm Screen (modal)
# ──────────────────────────────────────────────

class ConfirmScreen(ModalScreen[bool]):
    """Yes / No confirmation dialog."""

    DEFAULT_CSS = """
    ConfirmScreen { align: center middle; }
    #confirm-box {
        width: 64; height: auto; max-height: 80%;
        border: double #58a6ff; padding: 2; background: #161b22;
    }
    #confirm-msg { text-align: center; margin-bottom: 1; width: 100%; }
    #confirm-btns { align-horizontal: center; height: auto; }
    """

    def __init__(self, message: str) -> None:
        super().__init__()
        self._msg = message

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-box"):
            yield Label(self._msg, id="confirm-msg")
            with Horizontal(id="confirm-btns"):
                yield Button("Yes", variant="success", id="cd-yes")
                yield Button("No", variant="error", id="cd-no")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.dismiss(event.button.id == "cd-yes")


# ──────────────────────────────────────────────
#  Main Application
# ──────────────────────────────────────────────

class JarfixApp(App):
    """Tabbed Jarfix TUI."""

    TITLE = "☕ Jarfix"
    SUB_TITLE = f"v{JARFIX_VERSION}"
    CSS_PATH = "ui/styles.css"

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", priority=True),
        Binding("f5", "run_fix", "Fix .jar", show=True),
        Binding("f1", "show_tab('tab-jarfix')", "Jarfix", show=True),
        Binding("f2", "show_tab('tab-runtimes')", "Runtimes", show=True),
        Binding("f3", "show_tab('tab-log')", "Log", show=True),
    ]

    def __init__(
        self,
        config_path: str = "config.json",
        check_updates: bool = True,
        manager: Optional[JarfixManager] = None,
        **kw: Any,
    ) -> None:
        super().__init__(**kw)
        self.manager = manager or JarfixManager(config_path)
        self.check_updates = check_updates and bool(self.manager.config["updates"].get("check", True))
        self.last_result: Optional[Result] = None
        self.refreshers: List[Callable[[], None]] = []
        self._button_handlers: Dict[str, Callable[[], None]] = {}
        # run-log lines arrive from worker and probe threads
        self.log_queue: "queue.SimpleQueue[tuple]" = queue.SimpleQueue()
        self.manager.run_log.listeners.append(lambda line, level: self.log_queue.put((line, level)))

    # ── Compose ────────────────────────────────

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with TabbedContent(id="main-tabs"):
            yield TabPane("☕ Jarfix", id="tab-jarfix")
            yield TabPane("📋 Installed Java Runtimes", id="tab-runtimes")
            yield TabPane("📜 Log", id="tab-log")

        yield Footer()

    # ── Mount ──────────────────────────────────

    def on_mount(self) -> None:
        from ui.tabs.jarfix_tab import build_jarfix
        from ui.tabs.runtimes_tab import build_runtimes
        from ui.tabs.log_tab import build_log

        build_jarfix(self.query_one("#tab-jarfix", TabPane), self)
        build_runtimes(self.query_one("#tab-runtimes", TabPane), self)
        build_log(self.query_one("#tab-log", TabPane), self)

        if self.check_updates:
            self.run_worker(self._check_updates(), group="updates")
        self.call_later(self.action_run_fix)

    def on_unmount(self) -> None:
        self.manager.close()

    # ── Tab plumbing ───────────────────────────

    def register_buttons(self, handlers: Dict[str, Callable[[], None]]) -> None:
        self._button_handlers.update(handlers)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        handler = self._button_handlers.get(event.button.id or "")
        if handler is not None:
            handler()

    def refresh_views(self) -> None:
        for refresh in self.refreshers:
            try:
                refresh()
            except Exception as exc:
                logger.debug("View refresh failed: %s", exc)

    def confirm(self, message: str, callback: Callable[[bool], None]) -> None:
        """Push a confirmation dialog; callback(bool) on dismiss."""
        def _on_dismiss(result: Optional[bool]) -> None:
            callback(bool(result))
        self.push_screen(ConfirmScreen(message), _on_dismiss)

    # ── Actions ────────────────────────────────

    def action_show_tab(self, tab_id: str) -> None:
        self.query_one("#main-tabs", TabbedContent).active = tab_id

    def action_run_fix(self) -> None:
        self.set_state("working", "Detecting installed Java runtimes…")
        self.run_worker(self._fix_worker, thread=True, exclusive=True, group="fix")

    def action_install(self) -> None:
        self.set_state("working", "Installing Java 21…")
        self.run_worker(self._install_worker(), exclusive=True, group="install")

    def action_upload_log(self) -> None:
        self.run_worker(self._upload_worker(), exclusive=True, group="upload")

    # ── Workers ────────────────────────────────

    def _fix_worker(self) -> None:
        result = self.manager.run_fix_flow()
        self.call_from_thread(self._on_result, result)

    async def _install_worker(self) -> None:
        from ui.widgets import ProgressIndicator

        progress = self.query_one("#jarfix-progress", ProgressIndicator)
        progress.start("Downloading Java 21…")

        async def _on_progress(done: int, total: int) -> None:
            progress.set_progress(done, total)

        try:
            result = await self.manager.install_runtime(progress_callback=_on_progress)
        finally:
            progress.finish()
        self._on_result(result)

    async def _upload_worker(self) -> None:
        result = await self.manager.upload_run_log()
        if result.success:
            url = result.details.get("url", "")
            try:
                self.copy_to_clipboard(url)
            except Exception:
                pass
            self.notify(f"Log uploaded: {url}", severity="information", timeout=10)
        else:
            self.notify(result.message, severity="error")

    async def _check_updates(self) -> None:
        info = await self.manager.check_for_updates()
        if not info.is_outdated:
            return
        release_url = self.manager.config["updates"]["release_url"]

        def _open(yes: bool) -> None:
            if yes:
                webbrowser.open(release_url)

        self.confirm(
            f"A new version of Jarfix is available ({info.latest}).\n"
            f"You are using v{JARFIX_VERSION}.\n\n"
            f"Open the download page?",
            _open,
        )

    # ── Result handling ────────────────────────

    def set_state(self, state: str, detail: str = "") -> None:
        from ui.widgets import StatusBanner

        try:
            banner = self.query_one("#jarfix-banner", StatusBanner)
            banner.state = state
            banner.detail = detail
        except Exception as exc:
            logger.debug("Banner update failed: %s", exc)

    def _on_result(self, result: Result) -> None:
        self.last_result = result
        status = result.details.get("status", "")
        self.set_state(status, result.message)
        self.refresh_views()

        if result.success:
            self.notify(result.message, severity="information")
        elif status == STATUS_NEEDS_INSTALL:
            def _install(yes: bool) -> None:
                if yes:
                    self.action_install()
                else:
                    self.notify("Java 17 or higher is required to run .jar files.", severity="warning")

            self.confirm(
                "No suitable Java runtime (17 or higher, 64-bit) was found.\n\n"
                "Install the Microsoft Build of OpenJDK 21 now?",
                _install,
            )
        else:
            self.notify(result.message, severity="error")


# ──────────────────────────────────────────────
#  Headless CLI
# ──────────────────────────────────────────────

def run_headless(args: argparse.Namespace) -> int:
    from rich.console import Console
    from rich.table import Table

    console = Console()
    mgr = JarfixManager(args.config)
    console.print(f"\n[bold green]☕  Jarfix[/] v{JARFIX_VERSION} (headless)\n")

    try:
        if not args.no_update_check and mgr.config["updates"].get("check", True):
            info = asyncio.run(mgr.check_for_updates())
            if info.is_outdated:
                console.print(
                    f"[yellow]Update available:[/] {info.latest} – "
                    f"{mgr.config['updates']['release_url']}\n"
                )

        result = mgr.run_fix_flow()

        t = Table(title="Installed Java Runtimes")
        t.add_column("Vendor", style="cyan")
        t.add_column("Version", style="white")
        t.add_column("Architecture", style="white")
        t.add_column("Confidence", style="dim")
        t.add_column("Path", style="white")
        for rt in result.details.get("runtimes", []):
            t.add_row(
                rt.vendor.value, str(rt.major_version), rt.architecture,
                rt.confidence.value, rt.executable_path,
            )
        console.print(t)

        for warning in result.details.get("warnings", []):
            console.print(f"[yellow]⚠ {warning}[/]")

        if result.details.get("status") == STATUS_NEEDS_INSTALL and args.install:
            console.print("\n[bold]Installing Java 21…[/]")
            result = asyncio.run(mgr.install_runtime())

        style = "green" if result.success else "red"
        console.print(f"\n[bold {style}]{result.message}[/]\n")
        return 0 if result.success else 1
    finally:
        mgr.close()


# ──────────────────────────────────────────────
#  Entry Point
# ──────────────────────────────────────────────

def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = load_config(args.config)
    setup_logging(config["logs"].get("dir", "logs"), verbose=args.verbose, console=args.headless)
    logger.info("Jarfix %s starting (%s mode)", JARFIX_VERSION, "headless" if args.headless else "tui")

    if args.headless:
        return run_headless(args)
    JarfixApp(config_path=args.config, check_updates=not args.no_update_check).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
