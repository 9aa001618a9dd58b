from __future__ import annotations

import pytest

from jjtui.commands import (
    Cancel,
    Close,
    EndMoveMode,
    Refresh,
    RefreshBookmarks,
    RunCommand,
    SelectChange,
    Sequence,
    StartCreateMode,
    StartMoveMode,
    ToggleRange,
    UpdateRevset,
    emit,
)
from jjtui.dashboard import Dashboard
from jjtui.layout import DisplayContext, Rect
from jjtui.models import Bookmark, BookmarkRemote, RowBatch
from jjtui.operations import BatchOperation, BookmarkCreateOperation, BookmarkMoveOperation
from jjtui.parser import parse_rows


def _rows(log, *change_ids: str, working_copy: str | None = None):
    """Parse one row per change id, each with a description line."""
    for change_id in change_ids:
        graph = "@  " if change_id == working_copy else "○  "
        log.row(change_id, change_id.upper(), graph=graph).write("│  description")
    return parse_rows(log.stream())


def _bookmark(name: str, remotes: list[BookmarkRemote] | None = None) -> Bookmark:
    return Bookmark(
        name=name,
        commit_id="abc",
        local=BookmarkRemote(".", "abc"),
        remotes=remotes or [],
    )


@pytest.fixture
def dashboard(context, log_factory) -> Dashboard:
    dashboard = Dashboard(context)
    dashboard.revisions.reset()
    dashboard.revisions.append_batch(
        RowBatch(
            _rows(log_factory(), "aaa", "bbb", "ccc", "ddd", working_copy="ccc"),
            has_more=False,
        )
    )
    return dashboard


def test_navigation_and_loading_state(dashboard) -> None:
    revisions = dashboard.revisions
    assert revisions.cursor == 0
    dashboard.handle_key("j")
    dashboard.handle_key("down")
    assert revisions.selected_row.change_id == "ccc"
    dashboard.handle_key("G")
    assert revisions.cursor == 3
    dashboard.handle_key("j")
    assert revisions.cursor == 3
    dashboard.handle_key("g")
    assert revisions.cursor == 0
    assert not revisions.needs_more()


def test_needs_more_while_batches_pending(context, log) -> None:
    dashboard = Dashboard(context)
    dashboard.revisions.reset()
    assert dashboard.revisions.loading
    dashboard.revisions.append_batch(RowBatch(_rows(log, "aaa"), has_more=True))
    assert dashboard.revisions.needs_more()
    dashboard.revisions.finish_loading()
    assert not dashboard.revisions.needs_more()


def test_reload_keeps_selected_change(dashboard, log_factory) -> None:
    revisions = dashboard.revisions
    revisions.set_cursor(2)
    revisions.reset()
    assert revisions.rows == []
    revisions.append_batch(RowBatch(_rows(log_factory(), "zzz"), has_more=True))
    revisions.append_batch(RowBatch(_rows(log_factory(), "ccc"), has_more=False))
    assert revisions.selected_row.change_id == "ccc"


def test_select_working_copy(dashboard) -> None:
    assert dashboard.handle_message(SelectChange("@")) is None
    assert dashboard.revisions.selected_row.change_id == "ccc"
    dashboard.handle_message(SelectChange("bbb"))
    assert dashboard.revisions.cursor == 1


def test_toggle_select_marks_row(dashboard, context) -> None:
    dashboard.handle_key("space")
    assert context.checked == {"aaa": "AAA"}
    dashboard.handle_key("space")
    assert context.checked == {}


def test_batch_select_round_trip(dashboard, context) -> None:
    dashboard.handle_key("j")
    dashboard.handle_key("v")
    assert isinstance(dashboard.revisions.operation, BatchOperation)
    dashboard.handle_key("j")
    dashboard.handle_key("j")

    cmd = dashboard.handle_key("enter")
    assert cmd == Sequence((emit(ToggleRange("bbb", "ddd")), emit(Cancel())))

    assert dashboard.handle_message(ToggleRange("bbb", "ddd")) is None
    assert context.checked_revisions() == ["bbb", "ccc", "ddd"]
    assert dashboard.handle_message(Cancel()) == emit(Refresh())
    assert dashboard.revisions.operation is None


def test_toggle_range_works_backwards(dashboard, context) -> None:
    dashboard.revisions.toggle_range("ccc", "aaa")
    assert sorted(context.checked) == ["aaa", "bbb", "ccc"]


def test_bookmark_panel_move_mode(dashboard) -> None:
    panel = dashboard.bookmarks
    assert dashboard.handle_key("b") == emit(RefreshBookmarks())
    assert panel.visible and panel.focused
    panel.set_bookmarks([_bookmark("main")])

    cmd = dashboard.handle_key("m")
    assert cmd == emit(StartMoveMode(panel.bookmarks[0]))
    assert not panel.focused
    dashboard.handle_message(StartMoveMode(panel.bookmarks[0]))
    operation = dashboard.revisions.operation
    assert isinstance(operation, BookmarkMoveOperation)

    dashboard.handle_key("j")
    assert operation.target.change_id == "bbb"
    cmd = dashboard.handle_key("enter")
    assert isinstance(cmd, Sequence)
    assert cmd.cmds[0] == RunCommand(
        ("bookmark", "move", "main", "--to", "bbb", "--allow-backwards"), (Refresh(),)
    )

    assert dashboard.handle_message(EndMoveMode()) == emit(RefreshBookmarks())
    assert panel.focused and not panel.move_mode
    assert dashboard.handle_message(Close()) is None
    assert dashboard.revisions.operation is None


def test_bookmark_panel_create_mode_takes_typed_keys(dashboard, fake_jj) -> None:
    dashboard.handle_key("b")
    dashboard.bookmarks.set_bookmarks([_bookmark("main")])
    assert dashboard.handle_key("c") == emit(StartCreateMode())
    dashboard.handle_message(StartCreateMode())
    assert isinstance(dashboard.revisions.operation, BookmarkCreateOperation)

    dashboard.handle_key("enter")
    assert dashboard.is_editing()
    dashboard.handle_key("b", "b")
    dashboard.handle_key("j", "j")
    assert dashboard.revisions.operation.input.value == "bj"
    assert dashboard.revisions.cursor == 0


def test_bookmark_panel_actions(dashboard, context) -> None:
    panel = dashboard.bookmarks
    dashboard.handle_key("b")
    origin = BookmarkRemote("origin", "abc", tracked=True)
    panel.set_bookmarks([_bookmark("main"), _bookmark("feat", [origin])])

    assert dashboard.handle_key("enter") == emit(UpdateRevset("trunk()::main"))
    assert dashboard.handle_key("n") == RunCommand(("new", "main"), (Refresh(), SelectChange("@")))
    assert dashboard.handle_key("t") == RunCommand(
        ("bookmark", "track", "main@origin"), (Refresh(), RefreshBookmarks())
    )
    assert dashboard.handle_key("u") is None
    assert dashboard.handle_key("d") == RunCommand(
        ("bookmark", "delete", "main"), (Refresh(), RefreshBookmarks())
    )

    dashboard.handle_key("j")
    assert panel.selected_bookmark.name == "feat"
    assert dashboard.handle_key("t") is None
    assert dashboard.handle_key("u") == RunCommand(
        ("bookmark", "untrack", "feat@origin"), (Refresh(), RefreshBookmarks())
    )
    assert dashboard.handle_key("f") == RunCommand(
        ("bookmark", "forget", "feat"), (Refresh(), RefreshBookmarks())
    )

    panel.set_bookmarks([_bookmark("other"), _bookmark("feat")])
    assert panel.selected_bookmark.name == "feat"

    dashboard.handle_key("escape")
    assert not panel.visible


def test_update_revset_requests_refresh(dashboard) -> None:
    assert dashboard.handle_message(UpdateRevset("trunk()::main")) == emit(Refresh())
    assert dashboard.revset == "trunk()::main"


def test_render_and_click(dashboard) -> None:
    dc = DisplayContext(60, 6)
    dashboard.render(dc, Rect(0, 0, 60, 6))
    lines = dc.render().plain.split("\n")
    assert lines[0].startswith("○  aaa me AAA")
    assert lines[1].startswith("│  description")

    dashboard.revisions.click(5, 2)
    assert dashboard.revisions.cursor == 1
    assert dashboard.revisions.click(5, 10) is None


def test_render_with_panel_and_operation(dashboard) -> None:
    dashboard.handle_key("b")
    dashboard.bookmarks.set_bookmarks([_bookmark("main")])
    dashboard.handle_key("m")
    dashboard.handle_message(StartMoveMode(dashboard.bookmarks.bookmarks[0]))

    dc = DisplayContext(60, 8)
    dashboard.render(dc, Rect(0, 0, 60, 8))
    lines = dc.render().plain.split("\n")
    assert lines[0].startswith("○  << onto >> aaa")
    assert lines[0][40] == "│"
    assert lines[0][41:].startswith("Move bookmark to:")
    assert lines[2].startswith("│  << onto >> move bookmark 'main' to aaa")


def test_cut_off_row_leaves_operation_status_line(context, log_factory) -> None:
    dashboard = Dashboard(context)
    dashboard.revisions.reset()
    dashboard.revisions.append_batch(
        RowBatch(_rows(log_factory(), "aaa", "bbb", "ccc"), has_more=False)
    )
    dashboard.handle_key("v")

    dc = DisplayContext(40, 4)
    dashboard.render(dc, Rect(0, 0, 40, 4))
    lines = dc.render().plain.split("\n")
    assert lines[0].startswith("○  << start >> aaa")
    assert lines[2].startswith("○  bbb me BBB")
    assert lines[3].startswith("Batch select from: aaa")
