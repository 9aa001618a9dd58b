"""Routes keys and messages between the revision list, its operation and the bookmark panel."""

from __future__ import annotations

from jjtui.bookmark_panel import BookmarkPanel
from jjtui.commands import (
    Cancel,
    Close,
    Cmd,
    EndCreateMode,
    EndMoveMode,
    Refresh,
    SelectChange,
    StartCreateMode,
    StartMoveMode,
    ToggleRange,
    UpdateRevset,
    emit,
)
from jjtui.context import MainContext
from jjtui.layout import DisplayContext, Rect
from jjtui.operations import BookmarkCreateOperation, BookmarkMoveOperation
from jjtui.revisions import RevisionsModel

PANEL_WIDTH_PERCENT = 30
MIN_PANEL_WIDTH = 20


class Dashboard:
    """The update function of the UI: (state, event) -> effects."""

    def __init__(self, context: MainContext) -> None:
        self.context = context
        self.revisions = RevisionsModel(context)
        self.bookmarks = BookmarkPanel(context)
        self.revset = context.settings.revset

    def is_editing(self) -> bool:
        operation = self.revisions.operation
        return operation is not None and operation.is_editing()

    def short_help(self) -> list[tuple[str, str]]:
        operation = self.revisions.operation
        if operation is not None:
            return operation.short_help()
        if self.bookmarks.visible and self.bookmarks.focused:
            return self.bookmarks.short_help()
        keys = self.context.settings.keys
        return [
            ("j/k", "move"),
            (keys.toggle_select, "toggle"),
            ("v", "batch select"),
            ("b", "bookmarks"),
            ("r", "refresh"),
            ("q", "quit"),
        ]

    def handle_key(self, key: str, character: str | None = None) -> Cmd | None:
        operation = self.revisions.operation
        if operation is not None and (operation.is_focused() or operation.is_editing()):
            return self.revisions.handle_key(key, character)
        if self.bookmarks.visible and self.bookmarks.focused:
            return self.bookmarks.handle_key(key, character)
        if key == "b":
            return self.bookmarks.toggle_visible()
        if key == "r":
            return emit(Refresh())
        return self.revisions.handle_key(key, character)

    def handle_message(self, msg: object) -> Cmd | None:
        if isinstance(msg, (ToggleRange, Cancel, Close)):
            return self.revisions.handle_message(msg)
        if isinstance(msg, (EndMoveMode, EndCreateMode)):
            return self.bookmarks.handle_message(msg)
        if isinstance(msg, StartMoveMode):
            self.revisions.start_operation(
                BookmarkMoveOperation(self.context, msg.bookmark.name, self.revisions.selected_row)
            )
            return None
        if isinstance(msg, StartCreateMode):
            self.revisions.start_operation(
                BookmarkCreateOperation(self.context, self.revisions.selected_row)
            )
            return None
        if isinstance(msg, UpdateRevset):
            self.revset = msg.revset
            return emit(Refresh())
        if isinstance(msg, SelectChange):
            self.revisions.select_change(msg.change_id)
            return None
        return None

    def render(self, dc: DisplayContext, rect: Rect) -> None:
        if not self.bookmarks.visible:
            self.revisions.render(dc, rect)
            return
        panel_width = max(MIN_PANEL_WIDTH, rect.width * PANEL_WIDTH_PERCENT // 100)
        panel_width = min(panel_width, rect.width)
        log_rect = Rect(rect.x, rect.y, rect.width - panel_width, rect.height)
        panel_rect = Rect(log_rect.right + 1, rect.y, max(0, panel_width - 1), rect.height)
        self.revisions.render(dc, log_rect)
        dc.add_draw(Rect(log_rect.right, rect.y, 1, rect.height), "\n".join(["│"] * rect.height))
        self.bookmarks.render(dc, panel_rect, self.revisions.selected_row)
