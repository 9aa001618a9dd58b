"""Graph log parsing: rows from styled lines, and the streaming batch protocol."""

from __future__ import annotations

import enum
import logging
import queue
import re
import threading
from collections.abc import Iterable, Iterator
from typing import IO

from .models import (
    CONFLICT_GLYPH,
    CONFLICT_SUFFIX,
    NULL_STYLE,
    WORKING_COPY_GLYPH,
    Row,
    RowBatch,
    RowLine,
    Segment,
)
from .screen import iter_lines

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
_PUT_POLL_INTERVAL = 0.1

_IDENTIFIER_RE = re.compile(r"[^\W_]+\s*")
HEX_DIGITS = frozenset("0123456789abcdef")
STATUS_LABELS = frozenset({"conflict", "divergent", "hidden"})


def _is_identifier(text: str) -> bool:
    return _IDENTIFIER_RE.fullmatch(text) is not None


def _has_whitespace(text: str) -> bool:
    return any(ch.isspace() for ch in text)


def find_change_id_index(segments: list[Segment]) -> int:
    """Index of the first segment that looks like a change id, or -1."""
    for idx, segment in enumerate(segments):
        if _is_identifier(segment.text):
            return idx
    return -1


def _token_end(segments: list[Segment], start: int) -> int:
    """End index (exclusive) after absorbing the non-whitespace segments following start."""
    end = start + 1
    while end < len(segments):
        text = segments[end].text
        if not text.strip() or _has_whitespace(text):
            break
        end += 1
    return end


def _is_hex(text: str) -> bool:
    return all(ch in HEX_DIGITS for ch in text)


def find_commit_id(segments: list[Segment], after: int) -> str | None:
    """Return the commit id among the styled identifiers at or after `after`.

    Status labels such as "conflict" are skipped. The last hex token wins,
    since jj prints the commit id after author, time and bookmarks; without
    one the last styled identifier is used.
    """
    last: str | None = None
    last_hex: str | None = None
    idx = after
    while idx < len(segments):
        segment = segments[idx]
        if segment.style == NULL_STYLE or not _is_identifier(segment.text):
            idx += 1
            continue
        end = idx + 1 if _has_whitespace(segment.text) else _token_end(segments, idx)
        token = "".join(s.text for s in segments[idx:end]).strip()
        idx = end
        if token in STATUS_LABELS:
            continue
        last = token
        if _is_hex(token):
            last_hex = token
    return last_hex or last


class RowBuilder:
    """Groups styled lines into rows.

    A line starts a new row when it holds a change-id-like segment that is not
    the last segment of the line; a trailing identifier is description text.
    Every other line continues the open row. Lines seen before the first row
    has started are dropped.
    """

    def __init__(self) -> None:
        self._row: Row | None = None

    def feed(self, segments: list[Segment]) -> Row | None:
        """Consume one line; return the previous row if this line sealed it."""
        line = RowLine(segments=list(segments))
        change_id_idx = find_change_id_index(line.segments)
        sealed: Row | None = None
        if change_id_idx != -1 and change_id_idx != len(line.segments) - 1:
            line.is_revision = True
            sealed = self._row
            self._row = self._start_row(line, change_id_idx)
            self._row.previous = sealed
        if self._row is not None:
            self._row.add_line(line)
        else:
            logger.debug("dropping line outside of any row: %r", line.plain)
        return sealed

    def finish(self) -> Row | None:
        """Seal and return the open row at end of input."""
        row, self._row = self._row, None
        return row

    def _start_row(self, line: RowLine, change_id_idx: int) -> Row:
        segments = line.segments
        prefix = "".join(s.text for s in segments[:change_id_idx])
        change_id = segments[change_id_idx].text.strip()
        end = _token_end(segments, change_id_idx)
        full_change_id = change_id + "".join(s.text for s in segments[change_id_idx + 1 : end])
        if full_change_id.endswith(CONFLICT_SUFFIX):
            change_id = full_change_id

        row = Row(
            indent=len(prefix),
            change_id=change_id,
            is_working_copy=WORKING_COPY_GLYPH in prefix,
            is_conflicted=change_id.endswith(CONFLICT_SUFFIX) or CONFLICT_GLYPH in prefix,
        )
        commit_id = find_commit_id(segments, end)
        if commit_id is None:
            logger.warning("getting commit id failed for change %s: %r", change_id, line.plain)
        else:
            row.commit_id = commit_id
        return row


def build_rows(lines: Iterable[list[Segment]]) -> Iterator[Row]:
    builder = RowBuilder()
    for line in lines:
        sealed = builder.feed(line)
        if sealed is not None:
            yield sealed
    last = builder.finish()
    if last is not None:
        yield last


def parse_rows(stream: IO) -> list[Row]:
    """Parse a whole graph log stream into rows."""
    return list(build_rows(iter_lines(stream)))


class ControlMsg(enum.Enum):
    REQUEST_MORE = enum.auto()
    CLOSE = enum.auto()


class StreamingLogParser:
    """Parses a graph log on a background thread, handing rows over in batches.

    Once more than `batch_size` rows are pending, the producer blocks until it
    receives a control message: REQUEST_MORE flushes the pending rows as a
    batch, CLOSE stops parsing and closes the stream. The batch queue holds at
    most one batch. After the final batch (has_more=False) the producer waits
    for one more control message before it exits, and `close()` sends it.
    """

    def __init__(self, stream: IO, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self.stream = stream
        self.batch_size = batch_size
        self._batches: queue.Queue[RowBatch | None] = queue.Queue(maxsize=1)
        self._control: queue.Queue[ControlMsg] = queue.Queue()
        self._closed = False
        self._done = threading.Event()
        self._thread = threading.Thread(target=self._produce, name="log-parser", daemon=True)

    def start(self) -> StreamingLogParser:
        self._thread.start()
        return self

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def request_more(self) -> None:
        if not self._closed:
            self._control.put(ControlMsg.REQUEST_MORE)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._control.put(ControlMsg.CLOSE)

    def next_batch(self, timeout: float | None = None) -> RowBatch | None:
        """Block for the next batch; None once the producer has stopped."""
        if self._done.is_set() and self._batches.empty():
            return None
        return self._batches.get(timeout=timeout)

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def iter_batches(self) -> Iterator[RowBatch]:
        """Pull every batch in order, closing the parser afterwards."""
        try:
            while True:
                self.request_more()
                batch = self.next_batch()
                if batch is None:
                    return
                yield batch
                if not batch.has_more:
                    return
        finally:
            self.close()

    def _flush(self, rows: list[Row], has_more: bool) -> bool:
        msg = self._control.get()
        if msg is ControlMsg.CLOSE:
            logger.debug("log parser closed with %d rows pending", len(rows))
            return False
        logger.debug("flushing %d rows (has_more=%s)", len(rows), has_more)
        batch = RowBatch(rows=rows, has_more=has_more)
        while True:
            try:
                self._batches.put(batch, timeout=_PUT_POLL_INTERVAL)
                return True
            except queue.Full:
                if self._closed:
                    return False

    def _produce(self) -> None:
        rows: list[Row] = []
        builder = RowBuilder()
        try:
            for line in iter_lines(self.stream):
                sealed = builder.feed(line)
                if sealed is None:
                    continue
                if len(rows) > self.batch_size:
                    if not self._flush(rows, has_more=True):
                        return
                    rows = []
                rows.append(sealed)
            last = builder.finish()
            if last is not None:
                rows.append(last)
            if rows and not self._flush(rows, has_more=False):
                return
            self._control.get()
        except (OSError, ValueError):
            logger.exception("reading graph log failed")
        finally:
            self._done.set()
            self.stream.close()
            try:
                self._batches.put_nowait(None)
            except queue.Full:
                pass
