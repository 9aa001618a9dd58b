"""Textual TUI for jjtui."""

import logging
import subprocess
import threading

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.widget import Widget
from textual.widgets import Static

from jjtui import jj
from jjtui.commands import Cmd, CommandRunner, Refresh, RefreshBookmarks, Status
from jjtui.context import MainContext
from jjtui.dashboard import Dashboard
from jjtui.layout import DisplayContext, Rect
from jjtui.parser import StreamingLogParser

logger = logging.getLogger(__name__)


CSS = """
Screen {
    layout: vertical;
}

#command_bar {
    padding: 0 1;
    height: 1;
    color: $text-muted;
}

#status_line {
    padding: 0 1;
    height: 1;
}

#dashboard {
    height: 1fr;
}
"""


def format_help(pairs: list[tuple[str, str]]) -> str:
    return "  |  ".join(f"{key}: {description}" for key, description in pairs)


class DashboardView(Widget, can_focus=True):
    """Draws the dashboard through its own layout engine and forwards input."""

    def __init__(self, dashboard: Dashboard, **kwargs) -> None:
        super().__init__(**kwargs)
        self.dashboard = dashboard

    def render(self) -> Text:
        width, height = self.size.width, self.size.height
        dc = DisplayContext(width, height)
        self.dashboard.render(dc, Rect(0, 0, width, height))
        return dc.render()

    def on_click(self, event: events.Click) -> None:
        self.app.run_cmd(self.dashboard.revisions.click(event.x, event.y))
        self.app.after_input()

    def on_mouse_move(self, event: events.MouseMove) -> None:
        if event.button != 1:
            return
        self.app.run_cmd(self.dashboard.revisions.drag(event.x, event.y))
        self.app.after_input()

    def on_mouse_scroll_down(self, event: events.MouseScrollDown) -> None:
        self.dashboard.revisions.wheel(event.x, event.y, 1)
        self.app.after_input()

    def on_mouse_scroll_up(self, event: events.MouseScrollUp) -> None:
        self.dashboard.revisions.wheel(event.x, event.y, -1)
        self.app.after_input()


class TuiApp(App[None]):
    """Main textual application."""

    CSS = CSS

    def __init__(self, context: MainContext) -> None:
        super().__init__()
        self.context = context
        self.dashboard = Dashboard(context)
        self.runner = CommandRunner(
            run_jj=lambda args: jj.run(args, cwd=context.repo_root),
            post=lambda msg: self.call_from_thread(self.handle_message, msg),
        )
        self._parser: StreamingLogParser | None = None
        self._process: subprocess.Popen | None = None
        self._log_args: list[str] = []
        self._fetching = False

    def compose(self) -> ComposeResult:
        yield Static("", id="command_bar")
        yield Static("", id="status_line")
        yield DashboardView(self.dashboard, id="dashboard")

    def on_mount(self) -> None:
        self.query_one("#dashboard", DashboardView).focus()
        self.load_log()

    def on_unmount(self) -> None:
        if self._parser is not None:
            self._parser.close()
        self._stop_process()

    def _set_status(self, message: str | None) -> None:
        self.query_one("#status_line", Static).update(message or "")

    def after_input(self) -> None:
        self.query_one("#command_bar", Static).update(format_help(self.dashboard.short_help()))
        self.query_one("#dashboard", DashboardView).refresh()
        if self._parser is not None and self.dashboard.revisions.needs_more():
            self._request_batch(self._parser)

    def on_key(self, event: events.Key) -> None:
        if event.key in ("q", "ctrl+c") and not self.dashboard.is_editing():
            self.exit(None)
            return
        event.stop()
        event.prevent_default()
        self.run_cmd(self.dashboard.handle_key(event.key, event.character))
        self.after_input()

    def run_cmd(self, cmd: Cmd | None) -> None:
        """Execute a command off the UI thread; messages come back via handle_message."""
        if cmd is None:
            return
        threading.Thread(target=self.runner.execute, args=(cmd,), daemon=True).start()

    def handle_message(self, msg: object) -> None:
        if isinstance(msg, Refresh):
            self.load_log()
        elif isinstance(msg, RefreshBookmarks):
            self.load_bookmarks()
        elif isinstance(msg, Status):
            self._set_status(msg.text)
        else:
            self.run_cmd(self.dashboard.handle_message(msg))
        self.after_input()

    def load_log(self) -> None:
        if self._parser is not None:
            self._parser.close()
        self._stop_process()
        args = jj.log(self.dashboard.revset)
        try:
            process = jj.stream(args, cwd=self.context.repo_root)
        except OSError as exc:
            self._set_status(f"Loading log failed: {exc}")
            return
        parser = StreamingLogParser(process.stdout, batch_size=self.context.settings.batch_size)
        self._process = process
        self._log_args = args
        self._parser = parser.start()
        self._fetching = False
        self.dashboard.revisions.reset()
        self._request_batch(parser)

    def _request_batch(self, parser: StreamingLogParser) -> None:
        if self._fetching:
            return
        self._fetching = True
        parser.request_more()

        def runner() -> None:
            batch = parser.next_batch()
            self.call_from_thread(self._on_batch, parser, batch)

        threading.Thread(target=runner, daemon=True).start()

    def _on_batch(self, parser: StreamingLogParser, batch) -> None:
        if parser is not self._parser:
            return
        self._fetching = False
        revisions = self.dashboard.revisions
        if batch is None:
            revisions.finish_loading()
        else:
            revisions.append_batch(batch)
            if not batch.has_more:
                parser.close()
        if batch is None or not batch.has_more:
            self._check_process()
        self.after_input()

    def _stop_process(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return
        threading.Thread(target=jj.stop_stream, args=(process,), daemon=True).start()

    def _check_process(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return
        args = self._log_args

        def runner() -> None:
            try:
                jj.wait_stream(process, args)
            except jj.JJError as exc:
                logger.warning("jj log failed: %s", exc)
                self.call_from_thread(self._set_status, f"Loading log failed: {exc.stderr}")

        threading.Thread(target=runner, daemon=True).start()

    def load_bookmarks(self) -> None:
        def runner() -> None:
            try:
                output = jj.run(jj.bookmark_list_simple(), cwd=self.context.repo_root)
            except jj.JJError as exc:
                logger.warning("loading bookmarks failed: %s", exc)
                self.call_from_thread(self._set_status, f"Loading bookmarks failed: {exc.stderr}")
                return
            bookmarks = jj.parse_simple_bookmark_list_output(output)
            self.call_from_thread(self._on_bookmarks, bookmarks)

        threading.Thread(target=runner, daemon=True).start()

    def _on_bookmarks(self, bookmarks) -> None:
        self.dashboard.bookmarks.set_bookmarks(bookmarks)
        self.after_input()


def run_tui(context: MainContext) -> None:
    """Run the textual TUI application."""
    TuiApp(context).run()
