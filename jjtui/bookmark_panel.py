"""The bookmark side panel."""

from __future__ import annotations

from rich.text import Text

from jjtui import jj
from jjtui.commands import (
    Cmd,
    EndCreateMode,
    EndMoveMode,
    Refresh,
    RefreshBookmarks,
    SelectChange,
    StartCreateMode,
    StartMoveMode,
    UpdateRevset,
    emit,
    run_command,
)
from jjtui.context import MainContext
from jjtui.layout import DisplayContext, ListRenderer, Rect
from jjtui.models import Bookmark, Row

HEADER_HEIGHT = 2


class BookmarkPanel:
    def __init__(self, context: MainContext) -> None:
        self.context = context
        self.bookmarks: list[Bookmark] = []
        self.cursor = 0
        self.visible = False
        self.focused = False
        self.move_mode = False
        self.create_mode = False
        self.renderer = ListRenderer()

    @property
    def selected_bookmark(self) -> Bookmark | None:
        if 0 <= self.cursor < len(self.bookmarks):
            return self.bookmarks[self.cursor]
        return None

    def set_bookmarks(self, bookmarks: list[Bookmark]) -> None:
        selected = self.selected_bookmark
        self.bookmarks = bookmarks
        self.cursor = 0
        if selected is not None:
            for index, bookmark in enumerate(bookmarks):
                if bookmark.name == selected.name:
                    self.cursor = index
                    break

    def toggle_visible(self) -> Cmd | None:
        self.visible = not self.visible
        self.focused = self.visible
        if self.visible:
            return emit(RefreshBookmarks())
        return None

    def handle_key(self, key: str, character: str | None = None) -> Cmd | None:
        if not self.visible or not self.focused:
            return None
        keys = self.context.settings.keys
        bookmark = self.selected_bookmark

        if key == keys.cancel:
            self.toggle_visible()
            return None
        if key in ("down", "j"):
            self.cursor = min(self.cursor + 1, max(0, len(self.bookmarks) - 1))
            return None
        if key in ("up", "k"):
            self.cursor = max(self.cursor - 1, 0)
            return None
        if key == "c":
            self.create_mode = True
            self.focused = False
            return emit(StartCreateMode())
        if bookmark is None:
            return None
        if key == keys.apply:
            return emit(UpdateRevset(f"trunk()::{bookmark.name}"))
        if key == "m":
            self.move_mode = True
            self.focused = False
            return emit(StartMoveMode(bookmark))
        if key == "n":
            return run_command(jj.new([bookmark.name]), Refresh(), SelectChange("@"))
        if key == "d" and bookmark.is_deletable():
            return run_command(jj.bookmark_delete(bookmark.name), Refresh(), RefreshBookmarks())
        if key == "f":
            return run_command(jj.bookmark_forget(bookmark.name), Refresh(), RefreshBookmarks())
        if key == "t" and bookmark.is_trackable():
            remote = self.context.settings.default_remote
            return run_command(jj.bookmark_track(bookmark.name, remote), Refresh(), RefreshBookmarks())
        if key == "u" and bookmark.remotes:
            remote = bookmark.remotes[0].remote
            return run_command(jj.bookmark_untrack(bookmark.name, remote), Refresh(), RefreshBookmarks())
        return None

    def handle_message(self, msg: object) -> Cmd | None:
        if isinstance(msg, EndMoveMode):
            self.move_mode = False
            self.focused = self.visible
            return emit(RefreshBookmarks())
        if isinstance(msg, EndCreateMode):
            self.create_mode = False
            self.focused = self.visible
            return emit(RefreshBookmarks())
        return None

    def title(self, target: Row | None) -> str:
        if self.move_mode and target is not None:
            return f"Move bookmark to: {target.get_change_id()}"
        if self.create_mode:
            return "Create bookmark: select revision"
        return f"Bookmarks ({len(self.bookmarks)})"

    def short_help(self) -> list[tuple[str, str]]:
        keys = self.context.settings.keys
        return [
            (keys.apply, "view revset"),
            ("c", "create"),
            ("n", "new revision"),
            ("m", "move"),
            ("d", "delete"),
            ("f", "forget"),
            ("t", "track"),
            ("u", "untrack"),
            (keys.cancel, "close"),
        ]

    def render(self, dc: DisplayContext, rect: Rect, target: Row | None) -> None:
        settings = self.context.settings
        title = Text(self.title(target), style=settings.style("bookmark panel title"))
        dc.add_draw(Rect(rect.x, rect.y, rect.width, 1), title)
        list_height = max(0, rect.height - HEADER_HEIGHT)
        list_rect = Rect(rect.x, rect.y + HEADER_HEIGHT, rect.width, list_height)
        if not self.bookmarks:
            dc.add_draw(list_rect, Text("No bookmarks found", style=settings.style("bookmark panel empty")))
            return

        def render_item(dc: DisplayContext, index: int, item_rect: Rect) -> None:
            bookmark = self.bookmarks[index]
            title = bookmark.name + (" (conflict)" if bookmark.conflict else "")
            line = Text.assemble(" ", title, " ", (bookmark.commit_id, settings.style("revisions dimmed")))
            if index == self.cursor and self.focused:
                line.truncate(item_rect.width, pad=True)
                line.stylize(settings.style("selected"))
            dc.add_draw(item_rect, line)

        self.renderer.render(
            dc, list_rect, len(self.bookmarks), self.cursor, True, lambda _: 1, render_item
        )
