"""Range selection between two revisions."""

from __future__ import annotations

from rich.text import Text

from jjtui.commands import Cancel, Cmd, ToggleRange, emit, sequence
from jjtui.context import MainContext
from jjtui.layout import DisplayContext, Rect
from jjtui.models import Row
from jjtui.operations.base import Operation, RenderPosition


class BatchOperation(Operation):
    """Marks a start row, follows the selection, and toggles the range on confirm."""

    def __init__(self, context: MainContext, start: Row | None) -> None:
        super().__init__(context)
        self.start = start
        self.current = start

    @property
    def name(self) -> str:
        return "batch"

    def handle_key(self, key: str, character: str | None = None) -> Cmd | None:
        keys = self.context.settings.keys
        if key == keys.apply:
            return self.confirm()
        if key == keys.cancel:
            return self.cancel()
        if key == keys.toggle_select:
            if self.current is not None:
                self.context.toggle_checked(self.current)
            return None
        return None

    def confirm(self) -> Cmd | None:
        if self.start is None or self.current is None:
            return self.cancel()
        return sequence(
            emit(ToggleRange(self.start.get_change_id(), self.current.get_change_id())),
            self.cancel(),
        )

    def cancel(self) -> Cmd | None:
        return emit(Cancel())

    def set_selected_revision(self, row: Row | None) -> Cmd | None:
        self.current = row
        return None

    def render(self, row: Row, position: RenderPosition) -> Text:
        if position is not RenderPosition.BEFORE_CHANGE_ID or self.start is None:
            return Text()
        marker = self._style("revisions markers")
        if self._is_target(self.start, row):
            return Text("<< start >> ", style=marker)
        if self._is_target(self.current, row):
            return Text("<< end >> ", style=marker)
        return Text()

    def view_rect(self, dc: DisplayContext, rect: Rect) -> None:
        if self.start is None:
            return
        text = f"Batch select from: {self.start.get_change_id()}"
        if self.current is not None and not self._is_target(self.start, self.current):
            text += f" to: {self.current.get_change_id()}"
        text += " (Enter to confirm, Esc to cancel)"
        dc.add_draw(rect, Text(text, style=self._style("revisions markers")))

    def short_help(self) -> list[tuple[str, str]]:
        keys = self.context.settings.keys
        return [
            (keys.apply, "toggle range"),
            (keys.toggle_select, "toggle one"),
            (keys.cancel, "cancel"),
        ]
