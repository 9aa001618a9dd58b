"""The revision list: rows, selection, the active operation and its rendering."""

from __future__ import annotations

from dataclasses import dataclass

from rich.text import Text

from jjtui.commands import Cancel, Close, Cmd, Refresh, ToggleRange, emit
from jjtui.context import MainContext
from jjtui.layout import DisplayContext, InteractionKind, ListRenderer, Rect
from jjtui.models import Row, RowBatch
from jjtui.operations import BatchOperation, Operation, RenderPosition
from jjtui.screen import segments_to_text

WORKING_COPY = "@"
SCROLL_STEP = 3
PREFETCH_MARGIN = 20


@dataclass(frozen=True)
class ScrollMsg:
    pass


@dataclass(frozen=True)
class ClickMsg:
    index: int


@dataclass(frozen=True)
class DragMsg:
    index: int


class RevisionsModel:
    def __init__(self, context: MainContext) -> None:
        self.context = context
        self.rows: list[Row] = []
        self.cursor = 0
        self.operation: Operation | None = None
        self.renderer = ListRenderer(scroll_msg=ScrollMsg())
        self.has_more = False
        self.loading = False
        self.last_frame: DisplayContext | None = None
        self._pending_select: str | None = None
        self._follow_cursor = True
        self._view_height = 0
        self._list_rect = Rect(0, 0, 0, 0)

    @property
    def selected_row(self) -> Row | None:
        if 0 <= self.cursor < len(self.rows):
            return self.rows[self.cursor]
        return None

    def reset(self, select_change_id: str | None = None) -> None:
        """Drop all rows ahead of a reload."""
        if select_change_id is None and self.selected_row is not None:
            select_change_id = self.selected_row.change_id
        self.rows = []
        self.has_more = True
        self.loading = True
        self._pending_select = select_change_id

    def append_batch(self, batch: RowBatch) -> None:
        first_new = len(self.rows)
        self.rows.extend(batch.rows)
        self.has_more = batch.has_more
        self.loading = batch.has_more
        if self._pending_select is not None:
            for index in range(first_new, len(self.rows)):
                if self._matches(self.rows[index], self._pending_select):
                    self._pending_select = None
                    self.set_cursor(index)
                    return
            if not batch.has_more:
                self._pending_select = None
        self.set_cursor(min(self.cursor, max(0, len(self.rows) - 1)))

    def finish_loading(self) -> None:
        self.has_more = False
        self.loading = False
        self._pending_select = None

    def needs_more(self) -> bool:
        """True when the cursor or the viewport is close to the loaded end."""
        if not self.has_more:
            return False
        margin = max(PREFETCH_MARGIN, self._view_height)
        last_seen = max(self.cursor, self.renderer.last_row_index)
        return last_seen >= len(self.rows) - margin

    def select_change(self, change_id: str) -> None:
        for index, row in enumerate(self.rows):
            if self._matches(row, change_id):
                self.set_cursor(index)
                return
        if self.has_more:
            self._pending_select = change_id

    def _matches(self, row: Row, change_id: str) -> bool:
        if change_id == WORKING_COPY:
            return row.is_working_copy
        return row.change_id == change_id

    def set_cursor(self, index: int) -> Cmd | None:
        if not self.rows:
            self.cursor = 0
            return None
        self.cursor = min(max(index, 0), len(self.rows) - 1)
        self._follow_cursor = True
        if self.operation is not None:
            return self.operation.set_selected_revision(self.selected_row)
        return None

    def move_cursor(self, delta: int) -> Cmd | None:
        return self.set_cursor(self.cursor + delta)

    def start_operation(self, operation: Operation) -> None:
        self.operation = operation
        operation.set_selected_revision(self.selected_row)

    def close_operation(self) -> None:
        self.operation = None

    def toggle_range(self, start_change_id: str, end_change_id: str) -> None:
        indices = [
            index
            for index, row in enumerate(self.rows)
            if row.change_id in (start_change_id, end_change_id)
        ]
        if not indices:
            return
        for row in self.rows[min(indices) : max(indices) + 1]:
            self.context.toggle_checked(row)

    def handle_key(self, key: str, character: str | None = None) -> Cmd | None:
        operation = self.operation
        if operation is not None and (operation.is_focused() or operation.is_editing()):
            cmd = operation.handle_key(key, character)
            if cmd is not None or operation.is_editing():
                return cmd
            if key in (self.context.settings.keys.apply, self.context.settings.keys.cancel):
                return None
        page = max(1, self._view_height // 2)
        if key in ("down", "j"):
            return self.move_cursor(1)
        if key in ("up", "k"):
            return self.move_cursor(-1)
        if key == "pagedown":
            return self.move_cursor(page)
        if key == "pageup":
            return self.move_cursor(-page)
        if key in ("home", "g"):
            return self.set_cursor(0)
        if key in ("end", "G"):
            return self.set_cursor(len(self.rows) - 1)
        if operation is None:
            if key == self.context.settings.keys.toggle_select and self.selected_row is not None:
                self.context.toggle_checked(self.selected_row)
            elif key == "v" and self.selected_row is not None:
                self.start_operation(BatchOperation(self.context, self.selected_row))
        return None

    def handle_message(self, msg: object) -> Cmd | None:
        if isinstance(msg, ToggleRange):
            self.toggle_range(msg.start_change_id, msg.end_change_id)
            return None
        if isinstance(msg, Cancel):
            self.close_operation()
            return emit(Refresh())
        if isinstance(msg, Close):
            self.close_operation()
            return None
        return None

    def scroll(self, delta: int) -> None:
        self._follow_cursor = False
        self.renderer.scroll_by(delta)

    def click(self, x: int, y: int) -> Cmd | None:
        index = self.renderer.item_index_at(x, y)
        if index == -1:
            return None
        return self.set_cursor(index)

    def drag(self, x: int, y: int) -> Cmd | None:
        if self.last_frame is None:
            return None
        msg = self.last_frame.interaction_at(x, y, InteractionKind.DRAG)
        if isinstance(msg, DragMsg) and msg.index != self.cursor:
            return self.set_cursor(msg.index)
        return None

    def wheel(self, x: int, y: int, delta: int) -> None:
        if self.last_frame is None:
            return
        if self.last_frame.interaction_at(x, y, InteractionKind.SCROLL) is not None:
            self.scroll(delta * SCROLL_STEP)

    def measure(self, index: int) -> int:
        row = self.rows[index]
        height = row.height
        if self.operation is not None:
            height += self.operation.desired_height(row, RenderPosition.AFTER)
        return height

    def render(self, dc: DisplayContext, rect: Rect) -> None:
        list_rect = rect
        if self.operation is not None and rect.height > 1:
            list_rect = Rect(rect.x, rect.y, rect.width, rect.height - 1)
            self.operation.view_rect(dc, Rect(rect.x, list_rect.bottom, rect.width, 1))
        self._view_height = list_rect.height
        self._list_rect = list_rect
        self.renderer.render(
            dc,
            list_rect,
            len(self.rows),
            self.cursor,
            self._follow_cursor,
            self.measure,
            self.render_row,
            ClickMsg,
        )
        self.renderer.register_scroll(dc, list_rect)
        self.renderer.register_drag(dc, DragMsg)
        self.last_frame = dc

    def render_row(self, dc: DisplayContext, index: int, rect: Rect) -> None:
        row = self.rows[index]
        operation = self.operation
        settings = self.context.settings
        y = rect.y
        for line in row.lines:
            text = segments_to_text(line.segments)
            if line.is_revision:
                if operation is not None:
                    before = operation.render(row, RenderPosition.BEFORE_CHANGE_ID)
                    if before.plain:
                        text = Text.assemble(text[: row.indent], before, text[row.indent :])
                if self.context.is_checked(row):
                    text.stylize(settings.style("revisions checked"), row.indent)
            self._draw_line(dc, Rect(rect.x, y, rect.width, 1), text, index == self.cursor)
            y += 1
        if operation is None:
            return
        after = operation.render(row, RenderPosition.AFTER)
        if after.plain:
            prefix = segments_to_text(row.extend())
            self._draw_line(dc, Rect(rect.x, y, rect.width, 1), Text.assemble(prefix, after), False)

    def _draw_line(self, dc: DisplayContext, rect: Rect, text: Text, selected: bool) -> None:
        # Lines outside the list viewport are not drawn.
        if rect.intersect(self._list_rect).height <= 0:
            return
        if selected:
            text.truncate(rect.width, pad=True)
            text.stylize(self.context.settings.style("selected"))
        dc.add_draw(rect, text)
