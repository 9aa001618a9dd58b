"""Messages and the closed set of effects returned by update functions."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Union

from jjtui.jj import JJError
from jjtui.models import Bookmark

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Refresh:
    """Reload the revision log."""


@dataclass(frozen=True)
class RefreshBookmarks:
    """Reload the bookmark panel."""


@dataclass(frozen=True)
class Close:
    """Close the active operation."""


@dataclass(frozen=True)
class Cancel:
    """Leave the active operation without applying anything."""


@dataclass(frozen=True)
class ToggleRange:
    start_change_id: str
    end_change_id: str


@dataclass(frozen=True)
class StartMoveMode:
    bookmark: Bookmark


@dataclass(frozen=True)
class EndMoveMode:
    pass


@dataclass(frozen=True)
class StartCreateMode:
    pass


@dataclass(frozen=True)
class EndCreateMode:
    pass


@dataclass(frozen=True)
class UpdateRevset:
    revset: str


@dataclass(frozen=True)
class SelectChange:
    change_id: str


@dataclass(frozen=True)
class Status:
    text: str


@dataclass(frozen=True)
class RunCommand:
    """Run a jj command, then deliver `then` messages if it succeeded."""

    args: tuple[str, ...]
    then: tuple[object, ...] = ()


@dataclass(frozen=True)
class Emit:
    msg: object


@dataclass(frozen=True)
class Sequence:
    """Run commands one after another, in order."""

    cmds: tuple[Cmd, ...] = field(default=())


@dataclass(frozen=True)
class Batch:
    """Run independent commands whose relative order does not matter."""

    cmds: tuple[Cmd, ...] = field(default=())


Cmd = Union[RunCommand, Emit, Sequence, Batch]


def emit(msg: object) -> Emit:
    return Emit(msg)


def run_command(args: list[str], *then: object) -> RunCommand:
    return RunCommand(tuple(args), then)


def sequence(*cmds: Cmd | None) -> Cmd | None:
    kept = tuple(cmd for cmd in cmds if cmd is not None)
    if not kept:
        return None
    if len(kept) == 1:
        return kept[0]
    return Sequence(kept)


def batch(*cmds: Cmd | None) -> Cmd | None:
    kept = tuple(cmd for cmd in cmds if cmd is not None)
    if not kept:
        return None
    if len(kept) == 1:
        return kept[0]
    return Batch(kept)


class CommandRunner:
    """Executes effects.

    `run_jj` runs a command and raises on failure; `post` delivers a message
    to the UI loop. `execute` blocks while commands run, so callers invoke it
    off the UI thread.
    """

    def __init__(
        self,
        run_jj: Callable[[list[str]], object],
        post: Callable[[object], None],
    ) -> None:
        self.run_jj = run_jj
        self.post = post

    def execute(self, cmd: Cmd | None) -> bool:
        """Execute `cmd`; return False if a jj command failed."""
        if cmd is None:
            return True
        if isinstance(cmd, Emit):
            self.post(cmd.msg)
            return True
        if isinstance(cmd, RunCommand):
            try:
                self.run_jj(list(cmd.args))
            except (JJError, OSError) as exc:
                logger.warning("jj %s failed: %s", " ".join(cmd.args), exc)
                self.post(Status(f"{cmd.args[0]} failed: {exc}"))
                return False
            for msg in cmd.then:
                self.post(msg)
            return True
        if isinstance(cmd, (Sequence, Batch)):
            results = [self.execute(step) for step in cmd.cmds]
            return all(results)
        raise TypeError(f"unknown command: {cmd!r}")
