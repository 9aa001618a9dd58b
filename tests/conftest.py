from __future__ import annotations

import io
import re
from pathlib import Path

import pytest

from jjtui.context import MainContext
from jjtui.jj import JJError
from jjtui.settings import Settings, resolve_styles

ID_STYLE = "\x1b[1;35m"
AUTHOR_STYLE = "\x1b[33m"
RESET = "\x1b[0m"

_TOKEN_RE = re.compile(r"\b(id|author)=(\S+)")


class LogBuilder:
    """Builds colored `jj log` output.

    `id=<value>` becomes a styled identifier and `author=<value>` styled
    author text; everything else is written verbatim.
    """

    def __init__(self) -> None:
        self._lines: list[str] = []

    def write(self, line: str) -> LogBuilder:
        self._lines.append(_TOKEN_RE.sub(self._style_token, line))
        return self

    def row(self, change_id: str, commit_id: str, graph: str = "○  ", author: str = "me") -> LogBuilder:
        return self.write(f"{graph}id={change_id} author={author} id={commit_id}")

    @staticmethod
    def _style_token(match: re.Match[str]) -> str:
        style = ID_STYLE if match.group(1) == "id" else AUTHOR_STYLE
        return f"{style}{match.group(2)}{RESET}"

    def text(self) -> str:
        return "".join(line + "\n" for line in self._lines)

    def stream(self) -> io.BytesIO:
        return io.BytesIO(self.text().encode("utf-8"))


class FakeJJ:
    """Stands in for `jj.run`: records calls and answers from a table."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.outputs: dict[str, str] = {}
        self.failing: set[str] = set()

    def __call__(self, args: list[str]) -> str:
        self.calls.append(list(args))
        key = " ".join(args[:2])
        if key in self.failing:
            raise JJError(args, "boom")
        return self.outputs.get(key, "")


@pytest.fixture
def log() -> LogBuilder:
    return LogBuilder()


@pytest.fixture
def settings() -> Settings:
    return Settings(styles=resolve_styles({}))


@pytest.fixture
def fake_jj() -> FakeJJ:
    return FakeJJ()


@pytest.fixture
def context(tmp_path: Path, settings: Settings, fake_jj: FakeJJ) -> MainContext:
    return MainContext(tmp_path, settings, runner=fake_jj)


@pytest.fixture
def log_factory() -> type[LogBuilder]:
    return LogBuilder
