"""The contract shared by modal operations."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod

from rich.text import Text

from jjtui.commands import Cmd
from jjtui.context import MainContext
from jjtui.layout import DisplayContext, Rect
from jjtui.models import Row


class RenderPosition(enum.Enum):
    BEFORE_CHANGE_ID = enum.auto()
    AFTER = enum.auto()


class Operation(ABC):
    """A transient tool that sits on top of the revision list.

    While an operation is active it sees key events before the list does,
    follows the selected row, and may decorate rows with overlay text.
    """

    def __init__(self, context: MainContext) -> None:
        self.context = context

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def handle_key(self, key: str, character: str | None = None) -> Cmd | None: ...

    @abstractmethod
    def set_selected_revision(self, row: Row | None) -> Cmd | None: ...

    @abstractmethod
    def render(self, row: Row, position: RenderPosition) -> Text: ...

    def is_focused(self) -> bool:
        return True

    def is_editing(self) -> bool:
        return False

    def short_help(self) -> list[tuple[str, str]]:
        keys = self.context.settings.keys
        return [(keys.apply, "apply"), (keys.cancel, "cancel")]

    def desired_height(self, row: Row, position: RenderPosition) -> int:
        if position is RenderPosition.AFTER and self.render(row, position).plain:
            return 1
        return 0

    def view_rect(self, dc: DisplayContext, rect: Rect) -> None:
        """Draw a status line for the operation into `rect`."""

    def _style(self, name: str):
        return self.context.settings.style(name)

    def _is_target(self, target: Row | None, row: Row) -> bool:
        return target is not None and target.get_change_id() == row.get_change_id()
