"""Virtualized list layout and a draw/interaction list for one frame."""

from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass

from rich.text import Text

MeasureItemFunc = Callable[[int], int]
RenderItemFunc = Callable[["DisplayContext", int, "Rect"], None]
MessageFunc = Callable[[int], object]


@dataclass(frozen=True)
class Rect:
    """A screen rectangle; `y + height` and `x + width` are exclusive."""

    x: int
    y: int
    width: int
    height: int

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def right(self) -> int:
        return self.x + self.width

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def intersect(self, other: Rect) -> Rect:
        x = max(self.x, other.x)
        y = max(self.y, other.y)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        return Rect(x, y, max(0, right - x), max(0, bottom - y))


@dataclass(frozen=True)
class Span:
    index: int
    rect: Rect


@dataclass(frozen=True)
class ViewportState:
    scroll_offset: int = 0
    first_visible_index: int = -1
    last_visible_index: int = -1


class InteractionKind(enum.Enum):
    CLICK = enum.auto()
    DRAG = enum.auto()
    SCROLL = enum.auto()


@dataclass(frozen=True)
class Interaction:
    rect: Rect
    msg: object
    kind: InteractionKind
    z: int = 0


@dataclass(frozen=True)
class _Draw:
    rect: Rect
    content: Text
    z: int


class DisplayContext:
    """Collects draws and interactions for one frame of a fixed-size area."""

    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self._draws: list[_Draw] = []
        self.interactions: list[Interaction] = []

    def add_draw(self, rect: Rect, content: Text | str, z: int = 0) -> None:
        if isinstance(content, str):
            content = Text(content)
        self._draws.append(_Draw(rect, content, z))

    def add_interaction(self, rect: Rect, msg: object, kind: InteractionKind, z: int = 0) -> None:
        self.interactions.append(Interaction(rect, msg, kind, z))

    def interaction_at(self, x: int, y: int, kind: InteractionKind) -> object | None:
        """Message of the top-most interaction of `kind` covering (x, y)."""
        best: Interaction | None = None
        for interaction in self.interactions:
            if interaction.kind is not kind or not interaction.rect.contains(x, y):
                continue
            if best is None or interaction.z >= best.z:
                best = interaction
        return best.msg if best is not None else None

    def render(self) -> Text:
        """Compose the draws, lowest z first, into `height` lines."""
        lines = [Text(" " * self.width) for _ in range(self.height)]
        bounds = Rect(0, 0, self.width, self.height)
        for draw in sorted(self._draws, key=lambda draw: draw.z):
            area = draw.rect.intersect(bounds)
            if area.width <= 0 or area.height <= 0:
                continue
            content_lines = draw.content.split("\n", allow_blank=True)
            skip = area.y - draw.rect.y
            for offset in range(area.height):
                source = skip + offset
                if source >= len(content_lines):
                    break
                piece = content_lines[source][area.x - draw.rect.x :]
                piece.truncate(area.width)
                line = lines[area.y + offset]
                lines[area.y + offset] = Text.assemble(
                    line[: area.x], piece, line[area.x + len(piece) :]
                )
        return Text("\n").join(lines)


def layout_items(
    scroll_offset: int,
    item_count: int,
    measure: MeasureItemFunc,
    view_rect: Rect,
    cursor: int | None = None,
) -> tuple[int, list[Span]]:
    """Place items in a viewport.

    Returns the clamped scroll offset and a span for every item that
    intersects the visible range. When `cursor` is a valid index the offset is
    moved so the cursor item is on screen. Span rectangles are in screen
    coordinates and are not clipped to the viewport.
    """
    view_height = view_rect.height
    if item_count <= 0:
        return 0, []
    if view_height <= 0:
        return max(0, scroll_offset), []

    heights = [max(0, measure(i)) for i in range(item_count)]
    total = sum(heights)
    max_start = max(0, total - view_height)
    start = min(max(scroll_offset, 0), max_start)

    if cursor is not None and 0 <= cursor < item_count:
        cursor_start = sum(heights[:cursor])
        cursor_end = cursor_start + heights[cursor]
        if cursor_start < start:
            start = cursor_start
        elif cursor_end > start + view_height:
            start = max(0, cursor_end - view_height)

    spans: list[Span] = []
    end = start + view_height
    position = 0
    for index, height in enumerate(heights):
        item_end = position + height
        if height > 0 and item_end > start and position < end:
            rect = Rect(view_rect.x, view_rect.y + position - start, view_rect.width, height)
            spans.append(Span(index, rect))
        if position >= end:
            break
        position = item_end
    return start, spans


class ListRenderer:
    """Renders a scrollable list into a DisplayContext.

    The spans of the last render are kept so clicks and drags can be mapped
    back to item indices without laying the list out again.
    """

    def __init__(self, scroll_msg: object | None = None) -> None:
        self.start_line = 0
        self.scroll_msg = scroll_msg
        self.first_row_index = -1
        self.last_row_index = -1
        self._last_spans: list[Span] = []
        self._view_rect = Rect(0, 0, 0, 0)

    @property
    def viewport(self) -> ViewportState:
        return ViewportState(self.start_line, self.first_row_index, self.last_row_index)

    @property
    def spans(self) -> list[Span]:
        return list(self._last_spans)

    def set_scroll_offset(self, offset: int) -> None:
        self.start_line = offset

    def scroll_by(self, delta: int) -> None:
        self.start_line = max(0, self.start_line + delta)

    def layout(
        self,
        view_rect: Rect,
        item_count: int,
        measure: MeasureItemFunc,
        cursor: int = -1,
        ensure_cursor_visible: bool = False,
    ) -> list[Span]:
        start, spans = layout_items(
            self.start_line,
            item_count,
            measure,
            view_rect,
            cursor if ensure_cursor_visible else None,
        )
        self.start_line = start
        self._view_rect = view_rect
        self._last_spans = spans
        self.first_row_index = spans[0].index if spans else -1
        self.last_row_index = spans[-1].index if spans else -1
        return spans

    def render(
        self,
        dc: DisplayContext,
        view_rect: Rect,
        item_count: int,
        cursor: int,
        ensure_cursor_visible: bool,
        measure: MeasureItemFunc,
        render_item: RenderItemFunc,
        click_msg: MessageFunc | None = None,
    ) -> None:
        spans = self.layout(view_rect, item_count, measure, cursor, ensure_cursor_visible)
        for span in spans:
            render_item(dc, span.index, span.rect)
        if click_msg is None:
            return
        for span in spans:
            dc.add_interaction(span.rect.intersect(view_rect), click_msg(span.index), InteractionKind.CLICK)

    def register_scroll(self, dc: DisplayContext, view_rect: Rect) -> None:
        if self.scroll_msg is None:
            return
        dc.add_interaction(view_rect, self.scroll_msg, InteractionKind.SCROLL)

    def register_drag(self, dc: DisplayContext, drag_msg: MessageFunc | None) -> None:
        if drag_msg is None:
            return
        for span in self._last_spans:
            dc.add_interaction(
                span.rect.intersect(self._view_rect), drag_msg(span.index), InteractionKind.DRAG
            )

    def item_index_at(self, x: int, y: int) -> int:
        """Index of the item drawn at (x, y) in the last render, or -1."""
        if not self._view_rect.contains(x, y):
            return -1
        for span in self._last_spans:
            if span.rect.contains(x, y):
                return span.index
        return -1
