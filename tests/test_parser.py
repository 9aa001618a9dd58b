from __future__ import annotations

import logging

from rich.style import Style

from jjtui.models import Segment
from jjtui.parser import RowBuilder, build_rows, find_change_id_index, find_commit_id, parse_rows

ID = Style.parse("bold magenta")
CONFLICT = Style.parse("bold red")


def test_single_row_with_continuation(log) -> None:
    log.write("*   id=abcde author=x id=xyrq").write("│   doc")
    rows = parse_rows(log.stream())
    assert len(rows) == 1
    row = rows[0]
    assert row.change_id == "abcde"
    assert row.commit_id == "xyrq"
    assert row.indent == 4
    assert row.previous is None
    assert row.height == 2
    assert [line.is_revision for line in row.lines] == [True, False]
    assert row.lines[1].plain == "│   doc"


def test_rows_link_to_previous(log) -> None:
    log.write("*   id=abcde author=x id=xyrq").write("│   doc")
    log.write("*   id=fghij author=x id=klmn").write("│   doc")
    rows = parse_rows(log.stream())
    assert [row.change_id for row in rows] == ["abcde", "fghij"]
    assert rows[1].previous is rows[0]
    assert rows[0].previous is None


def test_row_count_matches_identifier_lines(log) -> None:
    for idx in range(5):
        log.row(f"chg{idx}", f"cmt{idx}")
        log.write("│  description")
    log.write("~")
    rows = parse_rows(log.stream())
    assert [row.change_id for row in rows] == [f"chg{idx}" for idx in range(5)]
    assert [row.commit_id for row in rows] == [f"cmt{idx}" for idx in range(5)]
    assert rows[-1].lines[-1].plain == "~"


def test_identifier_in_last_segment_is_description(log) -> None:
    log.row("abcde", "xyrq").write("│  id=looksliketheid")
    rows = parse_rows(log.stream())
    assert len(rows) == 1
    assert rows[0].height == 2


def test_connector_only_line_never_starts_row(log) -> None:
    log.row("abcde", "xyrq").write("│").write("├─╮").row("fghij", "klmn", graph="│ ○  ")
    rows = parse_rows(log.stream())
    assert [row.change_id for row in rows] == ["abcde", "fghij"]
    assert rows[0].height == 3
    assert rows[1].indent == 5


def test_working_copy_marker(log) -> None:
    log.row("abcde", "xyrq", graph="@  ").row("fghij", "klmn")
    rows = parse_rows(log.stream())
    assert [row.is_working_copy for row in rows] == [True, False]


def test_conflict_suffix_keeps_extended_identifier() -> None:
    builder = RowBuilder()
    builder.feed(
        [Segment("×  "), Segment("p", ID), Segment("??", CONFLICT), Segment(" "), Segment("qq", ID)]
    )
    row = builder.finish()
    assert row is not None
    assert row.change_id == "p??"
    assert row.commit_id == "qq"
    assert row.is_conflicted


def test_extended_identifier_without_suffix_collapses() -> None:
    builder = RowBuilder()
    builder.feed(
        [Segment("○  "), Segment("ab", ID), Segment("cd", CONFLICT), Segment(" "), Segment("qq", ID)]
    )
    row = builder.finish()
    assert row is not None
    assert row.change_id == "ab"
    assert row.commit_id == "qq"
    assert not row.is_conflicted


def test_missing_commit_id_is_logged(caplog) -> None:
    builder = RowBuilder()
    with caplog.at_level(logging.WARNING, logger="jjtui.parser"):
        builder.feed([Segment("○  "), Segment("abc", ID), Segment(" (elided revisions)")])
    row = builder.finish()
    assert row is not None
    assert row.change_id == "abc"
    assert row.commit_id == ""
    assert "getting commit id failed" in caplog.text


def test_lines_before_first_row_are_dropped(log) -> None:
    log.write("Warning: something").row("abcde", "xyrq")
    rows = parse_rows(log.stream())
    assert len(rows) == 1
    assert rows[0].height == 1


def test_parsing_twice_gives_equal_rows(log) -> None:
    log.row("abcde", "xyrq", graph="@  ").write("│  one").row("fghij", "klmn").write("~")
    first = parse_rows(log.stream())
    second = parse_rows(log.stream())

    def key(row):
        return (row.change_id, row.commit_id, row.indent, row.is_working_copy)

    assert [key(row) for row in first] == [key(row) for row in second]


def test_row_lines_reproduce_input(log) -> None:
    log.row("abcde", "xyrq", graph="│ ○  ").write("│ │  message")
    [row] = parse_rows(log.stream())
    assert [line.plain for line in row.lines] == ["│ ○  abcde me xyrq", "│ │  message"]


def test_build_rows_from_segment_lines() -> None:
    lines = [
        [Segment("○ "), Segment("aa", ID), Segment(" "), Segment("bb", ID)],
        [Segment("│ text")],
        [Segment("○ "), Segment("cc", ID), Segment(" "), Segment("dd", ID)],
    ]
    rows = list(build_rows(lines))
    assert [(row.change_id, row.commit_id, row.height) for row in rows] == [
        ("aa", "bb", 2),
        ("cc", "dd", 1),
    ]


def test_find_helpers() -> None:
    segments = [Segment("○ "), Segment("aa", ID), Segment(" plain "), Segment("bb", ID)]
    assert find_change_id_index(segments) == 1
    assert find_change_id_index([Segment("│ ")]) == -1
    assert find_commit_id(segments, 2) == "bb"
    assert find_commit_id([Segment("nothing styled")], 0) is None


def test_extend_keeps_connectors(log) -> None:
    log.row("abcde", "xyrq", graph="│ ○  ").write("├─╯  message")
    [row] = parse_rows(log.stream())
    prefix = "".join(segment.text for segment in row.extend())
    assert prefix == " " * 5
    [row] = parse_rows(log.write("│ │  more").stream())
    prefix = "".join(segment.text for segment in row.extend())
    assert prefix == "│ │  "


def test_commit_id_skips_trailing_status_label(log) -> None:
    log.write("×  id=kxyz author=me id=1a2b3c id=conflict")
    [row] = parse_rows(log.stream())
    assert row.change_id == "kxyz"
    assert row.commit_id == "1a2b3c"


def test_commit_id_follows_bookmarks(log) -> None:
    log.write("@  id=kxyz author=me id=main id=0f9e id=divergent")
    [row] = parse_rows(log.stream())
    assert row.commit_id == "0f9e"


def test_conflict_suffix_after_padded_identifier() -> None:
    builder = RowBuilder()
    builder.feed(
        [Segment("○  "), Segment("p ", ID), Segment("??", CONFLICT), Segment(" "), Segment("1a2b", ID)]
    )
    row = builder.finish()
    assert row is not None
    assert row.change_id == "p??"
    assert row.commit_id == "1a2b"
    assert row.is_conflicted
