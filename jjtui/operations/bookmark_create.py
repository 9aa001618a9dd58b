"""Create a bookmark: pick a revision, then type a name with suggestions."""

from __future__ import annotations

import enum
import logging

from prompt_toolkit.completion import CompleteEvent, WordCompleter
from prompt_toolkit.document import Document
from rich.text import Text

from jjtui import jj
from jjtui.commands import Close, Cmd, EndCreateMode, Refresh, emit, run_command, sequence
from jjtui.context import MainContext
from jjtui.models import Row
from jjtui.operations.base import Operation, RenderPosition

logger = logging.getLogger(__name__)

NAME_CHAR_LIMIT = 120
NAME_SEPARATOR = "-"


class State(enum.Enum):
    SELECTING_REVISION = enum.auto()
    ENTERING_NAME = enum.auto()


class NameInput:
    """Single-line bookmark name buffer with inline completion."""

    def __init__(self, char_limit: int = NAME_CHAR_LIMIT) -> None:
        self.value = ""
        self.char_limit = char_limit
        self._suggestions: list[str] = []
        self._completer = WordCompleter([], WORD=True)

    @property
    def suggestions(self) -> list[str]:
        return list(self._suggestions)

    def set_suggestions(self, suggestions: list[str]) -> None:
        self._suggestions = list(suggestions)
        self._completer = WordCompleter(self._suggestions, WORD=True)

    def insert(self, text: str) -> None:
        text = text.replace(" ", NAME_SEPARATOR)
        self.value = (self.value + text)[: self.char_limit]

    def backspace(self) -> None:
        self.value = self.value[:-1]

    def clear(self) -> None:
        self.value = ""

    def completion(self) -> str:
        """Text that would be appended by accepting the current suggestion."""
        if not self.value:
            return ""
        document = Document(self.value, len(self.value))
        for completion in self._completer.get_completions(document, CompleteEvent()):
            if completion.text != self.value:
                return completion.text[len(self.value) :]
        return ""

    def accept_suggestion(self) -> None:
        self.insert(self.completion())


class BookmarkCreateOperation(Operation):
    def __init__(self, context: MainContext, target: Row | None = None) -> None:
        super().__init__(context)
        self.target = target
        self.state = State.SELECTING_REVISION
        self.input = NameInput()

    @property
    def name(self) -> str:
        if self.state is State.ENTERING_NAME:
            return "create bookmark (enter name)"
        return "create bookmark"

    def is_focused(self) -> bool:
        return self.state is State.SELECTING_REVISION

    def is_editing(self) -> bool:
        return self.state is State.ENTERING_NAME

    def handle_key(self, key: str, character: str | None = None) -> Cmd | None:
        if self.state is State.SELECTING_REVISION:
            return self._handle_selecting(key)
        return self._handle_entering(key, character)

    def _handle_selecting(self, key: str) -> Cmd | None:
        keys = self.context.settings.keys
        if key == keys.cancel:
            return sequence(emit(EndCreateMode()), emit(Close()))
        if key == keys.apply and self.target is not None:
            self.state = State.ENTERING_NAME
            self.input.set_suggestions(self._load_suggestions(self.target))
        return None

    def _handle_entering(self, key: str, character: str | None) -> Cmd | None:
        keys = self.context.settings.keys
        if key == keys.cancel:
            self.state = State.SELECTING_REVISION
            self.input.clear()
            return None
        if key == keys.apply:
            name = self.input.value.strip()
            if not name or self.target is None:
                return None
            return sequence(
                run_command(jj.bookmark_create(self.target.get_change_id(), name), Refresh()),
                emit(EndCreateMode()),
                emit(Close()),
            )
        if key == keys.accept_suggestion:
            self.input.accept_suggestion()
        elif key == "backspace":
            self.input.backspace()
        elif character and character.isprintable():
            self.input.insert(character)
        return None

    def _load_suggestions(self, target: Row) -> list[str]:
        try:
            output = self.context.run_immediate(jj.bookmark_list_movable(target.get_change_id()))
        except jj.JJError as exc:
            logger.info("no bookmark suggestions for %s: %s", target.get_change_id(), exc)
            return []
        return [
            bookmark.name
            for bookmark in jj.parse_bookmark_list_output(output)
            if bookmark.name and not bookmark.backwards
        ]

    def set_selected_revision(self, row: Row | None) -> Cmd | None:
        self.target = row
        return None

    def render(self, row: Row, position: RenderPosition) -> Text:
        if not self._is_target(self.target, row):
            return Text()
        marker = self._style("revisions markers")
        text_style = self._style("revisions text")
        entering = self.state is State.ENTERING_NAME
        if position is RenderPosition.BEFORE_CHANGE_ID:
            if entering:
                return Text.assemble(
                    (self.input.value, text_style),
                    (self.input.completion(), self._style("revisions dimmed")),
                    " ",
                )
            return Text("<< on >> ", style=marker)
        label = "enter bookmark name" if entering else "create bookmark here"
        return Text.assemble(("<< on >>", marker), " ", (label, text_style))

    def short_help(self) -> list[tuple[str, str]]:
        keys = self.context.settings.keys
        if self.state is State.ENTERING_NAME:
            return [
                (keys.apply, "create"),
                (keys.accept_suggestion, "complete"),
                (keys.cancel, "back"),
            ]
        return [(keys.apply, "select revision"), (keys.cancel, "cancel create")]
