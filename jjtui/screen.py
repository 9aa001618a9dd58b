"""Decoding of ANSI-styled terminal output into styled segments."""

from __future__ import annotations

import codecs
import re
from collections.abc import Iterable, Iterator
from typing import IO

from rich.ansi import AnsiDecoder
from rich.style import Style
from rich.text import Text

from .models import NULL_STYLE, Segment

READ_SIZE = 4096
NEWLINE = Segment("\n")

_ANSI_RE = re.compile(r"\x1b(?:\[[0-?]*[ -/]*[@-~]|\][^\x07\x1b]*(?:\x07|\x1b\\))")


def strip_ansi(text: str) -> str:
    """Remove terminal escape sequences from text."""
    return _ANSI_RE.sub("", text)


def text_to_segments(text: Text) -> list[Segment]:
    """Split decoded rich text into runs of a single style."""
    plain = text.plain
    segments: list[Segment] = []
    offset = 0
    for span in sorted(text.spans, key=lambda span: span.start):
        if span.start > offset:
            segments.append(Segment(plain[offset : span.start]))
        start = max(offset, span.start)
        if span.end > start:
            style = span.style if isinstance(span.style, Style) else Style.parse(span.style)
            segments.append(Segment(plain[start : span.end], style))
        offset = max(offset, span.end)
    if offset < len(plain):
        segments.append(Segment(plain[offset:], NULL_STYLE))
    return segments


def _read_chunks(stream: IO, read_size: int) -> Iterator[str]:
    read = getattr(stream, "read1", stream.read)
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    while True:
        chunk = read(read_size)
        if not chunk:
            break
        if isinstance(chunk, bytes):
            yield decoder.decode(chunk)
        else:
            yield chunk
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail


def iter_lines(stream: IO, read_size: int = READ_SIZE) -> Iterator[list[Segment]]:
    """Yield each physical line of the stream as a list of segments.

    Text is buffered until a line feed arrives, so escape sequences and
    multi-byte characters split across reads decode correctly. The style in
    effect carries over from one line to the next. The generator is consumed
    once; it cannot be restarted.
    """
    decoder = AnsiDecoder()
    pending = ""
    for chunk in _read_chunks(stream, read_size):
        pending += chunk
        if "\n" not in pending:
            continue
        *complete, pending = pending.split("\n")
        for line in complete:
            yield text_to_segments(decoder.decode_line(line.rstrip("\r")))
    if pending:
        yield text_to_segments(decoder.decode_line(pending.rstrip("\r")))


def iter_segments(stream: IO, read_size: int = READ_SIZE) -> Iterator[Segment]:
    """Yield segments in stream order, with a NEWLINE segment after each line feed."""
    for line in iter_lines(stream, read_size):
        yield from line
        yield NEWLINE


def break_lines(segments: Iterable[Segment]) -> Iterator[list[Segment]]:
    """Group a flat segment sequence into lines on NEWLINE segments."""
    line: list[Segment] = []
    for segment in segments:
        if segment.text == "\n":
            yield line
            line = []
            continue
        line.append(segment)
    if line:
        yield line


def segments_to_text(segments: Iterable[Segment]) -> Text:
    return Text.assemble(*((segment.text, segment.style) for segment in segments))
