"""Data models for jjtui."""

import weakref
from dataclasses import dataclass, field

from rich.style import Style

NULL_STYLE = Style.null()
CONNECTOR_GLYPHS = "│║┃╎┆┊|"
WORKING_COPY_GLYPH = "@"
CONFLICT_GLYPH = "×"
CONFLICT_SUFFIX = "??"


@dataclass(frozen=True)
class Segment:
    """A run of text rendered in a single style."""

    text: str
    style: Style = NULL_STYLE


@dataclass
class RowLine:
    """One physical terminal line of a graph row."""

    segments: list[Segment]
    is_revision: bool = False

    @property
    def plain(self) -> str:
        return "".join(segment.text for segment in self.segments)


@dataclass(eq=False)
class Row:
    """A logical graph entry: a commit line plus its continuation lines."""

    indent: int = 0
    change_id: str | None = None
    commit_id: str = ""
    is_working_copy: bool = False
    is_conflicted: bool = False
    lines: list[RowLine] = field(default_factory=list)
    _previous: "weakref.ReferenceType[Row] | None" = field(default=None, repr=False)

    @property
    def previous(self) -> "Row | None":
        """The prior resolved row, if it is still alive."""
        if self._previous is None:
            return None
        return self._previous()

    @previous.setter
    def previous(self, row: "Row | None") -> None:
        self._previous = weakref.ref(row) if row is not None else None

    @property
    def height(self) -> int:
        return len(self.lines)

    def get_change_id(self) -> str:
        return self.change_id or ""

    def add_line(self, line: RowLine) -> None:
        self.lines.append(line)

    def extend(self) -> list[Segment]:
        """Return a graph prefix that continues this row's connectors.

        Connector glyphs inside the indent of the last line are kept, every
        other character becomes a space, so text drawn after it lines up with
        the graph.
        """
        if not self.lines:
            return [Segment(" " * self.indent)]
        extended: list[Segment] = []
        remaining = self.indent
        for segment in self.lines[-1].segments:
            if remaining <= 0:
                break
            chunk = segment.text[:remaining]
            remaining -= len(chunk)
            text = "".join(ch if ch in CONNECTOR_GLYPHS else " " for ch in chunk)
            extended.append(Segment(text, segment.style))
        if remaining > 0:
            extended.append(Segment(" " * remaining))
        return extended


@dataclass(frozen=True)
class RowBatch:
    """Rows delivered together by the streaming parser."""

    rows: list[Row]
    has_more: bool


@dataclass
class BookmarkRemote:
    """A bookmark pointer on a remote (or "." for the local one)."""

    remote: str
    commit_id: str
    tracked: bool = False


@dataclass
class Bookmark:
    """A named, movable pointer to a commit."""

    name: str
    conflict: bool = False
    backwards: bool = False
    commit_id: str = ""
    local: BookmarkRemote | None = None
    remotes: list[BookmarkRemote] = field(default_factory=list)

    def is_deletable(self) -> bool:
        return self.local is not None

    def is_trackable(self) -> bool:
        return self.local is not None and not self.remotes
