"""Move a bookmark onto the selected revision."""

from __future__ import annotations

from rich.text import Text

from jjtui import jj
from jjtui.commands import Close, Cmd, EndMoveMode, Refresh, emit, run_command, sequence
from jjtui.context import MainContext
from jjtui.models import Row
from jjtui.operations.base import Operation, RenderPosition


class BookmarkMoveOperation(Operation):
    def __init__(self, context: MainContext, bookmark_name: str, target: Row | None = None) -> None:
        super().__init__(context)
        self.bookmark_name = bookmark_name
        self.target = target

    @property
    def name(self) -> str:
        return f"move bookmark '{self.bookmark_name}'"

    def handle_key(self, key: str, character: str | None = None) -> Cmd | None:
        keys = self.context.settings.keys
        if key == keys.cancel:
            return self._exit()
        if key == keys.apply:
            if self.target is None:
                return self._exit()
            return sequence(
                run_command(
                    jj.bookmark_move(self.target.get_change_id(), self.bookmark_name),
                    Refresh(),
                ),
                self._exit(),
            )
        return None

    def _exit(self) -> Cmd | None:
        # The panel must see EndMoveMode before the operation is closed.
        return sequence(emit(EndMoveMode()), emit(Close()))

    def set_selected_revision(self, row: Row | None) -> Cmd | None:
        self.target = row
        return None

    def render(self, row: Row, position: RenderPosition) -> Text:
        if not self._is_target(self.target, row):
            return Text()
        marker = self._style("revisions markers")
        if position is RenderPosition.BEFORE_CHANGE_ID:
            return Text("<< onto >> ", style=marker)
        return Text.assemble(
            ("<< onto >>", marker),
            " ",
            (
                f"move bookmark '{self.bookmark_name}' to {row.get_change_id()}",
                self._style("revisions text"),
            ),
        )

    def short_help(self) -> list[tuple[str, str]]:
        keys = self.context.settings.keys
        return [(keys.apply, "move bookmark"), (keys.cancel, "cancel move")]
