"""jj subprocess commands and output parsers."""

import subprocess
from pathlib import Path
from typing import Sequence

from jjtui.models import Bookmark, BookmarkRemote
from jjtui.screen import strip_ansi

MOVE_BOOKMARK_TEMPLATE = (
    'separate(";", name, if(remote, "remote", "."), tracked, conflict, '
    'normal_target.contained_in("%s"), normal_target.commit_id().shortest(1)) ++ "\\n"'
)
ALL_BOOKMARK_TEMPLATE = (
    'separate(";", name, if(remote, remote, "."), tracked, conflict, '
    "'false', normal_target.commit_id().shortest(1)) ++ \"\\n\""
)
SIMPLE_BOOKMARK_TEMPLATE = """
  if(conflict,
    label("bookmark", name) ++ " (conflict)",
    label("bookmark", name)
  ) ++ " " ++
  coalesce(
    normal_target.change_id().shortest(6),
    "(deleted)"
  ) ++ "\\n"
"""


class JJError(Exception):
    """jj command failed."""

    def __init__(self, cmd: Sequence[str], stderr: str) -> None:
        self.cmd = cmd
        self.stderr = stderr
        super().__init__(f"jj {' '.join(cmd)}: {stderr}")


def run(args: Sequence[str], cwd: Path | None = None) -> str:
    """Run a jj command and return stdout."""
    result = subprocess.run(
        ["jj", *args],
        cwd=cwd,
        check=False,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    if result.returncode != 0:
        raise JJError(args, result.stderr.strip() or result.stdout.strip())
    return result.stdout


def try_run(args: Sequence[str], cwd: Path | None = None) -> str | None:
    """Run a jj command, returning None on failure."""
    try:
        return run(args, cwd=cwd)
    except JJError:
        return None


def stream(args: Sequence[str], cwd: Path | None = None) -> subprocess.Popen:
    """Start a jj command whose binary stdout is read incrementally."""
    return subprocess.Popen(
        ["jj", *args],
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )


def wait_stream(process: subprocess.Popen, args: Sequence[str]) -> None:
    """Reap a process started by `stream`; raise JJError if it failed.

    Call once stdout has been read to the end.
    """
    stderr = b""
    if process.stderr is not None:
        with process.stderr:
            stderr = process.stderr.read()
    if process.wait() != 0:
        raise JJError(args, stderr.decode("utf-8", errors="replace").strip())


def stop_stream(process: subprocess.Popen) -> None:
    """Terminate a process started by `stream` and reap it."""
    if process.poll() is None:
        process.terminate()
    if process.stderr is not None:
        process.stderr.close()
    process.wait()


def get_repo_root(cwd: Path) -> Path | None:
    out = try_run(["root"], cwd=cwd)
    return Path(out.strip()) if out else None


def log(revset: str | None = None) -> list[str]:
    args = ["log", "--color", "always", "--quiet"]
    if revset:
        args += ["-r", revset]
    return args


def bookmark_list_simple() -> list[str]:
    return ["bookmark", "list", "--color", "always", "--template", SIMPLE_BOOKMARK_TEMPLATE]


def bookmark_list_all() -> list[str]:
    return ["bookmark", "list", "--all-remotes", "--color", "never", "--template", ALL_BOOKMARK_TEMPLATE]


def bookmark_list_movable(revision: str) -> list[str]:
    revset = f"::{revision} | {revision}::"
    return [
        "bookmark",
        "list",
        "-r",
        revset,
        "--color",
        "never",
        "--template",
        MOVE_BOOKMARK_TEMPLATE % f"{revision}::",
    ]


def bookmark_move(revision: str, name: str) -> list[str]:
    return ["bookmark", "move", name, "--to", revision, "--allow-backwards"]


def bookmark_create(revision: str, name: str) -> list[str]:
    return ["bookmark", "create", name, "-r", revision]


def bookmark_delete(name: str) -> list[str]:
    return ["bookmark", "delete", name]


def bookmark_forget(name: str) -> list[str]:
    return ["bookmark", "forget", name]


def bookmark_track(name: str, remote: str) -> list[str]:
    return ["bookmark", "track", f"{name}@{remote}"]


def bookmark_untrack(name: str, remote: str) -> list[str]:
    return ["bookmark", "untrack", f"{name}@{remote}"]


def new(revisions: Sequence[str]) -> list[str]:
    return ["new", *revisions]


def parse_simple_bookmark_list_output(output: str) -> list[Bookmark]:
    """Parse `name [(conflict)] change_id` lines."""
    bookmarks: list[Bookmark] = []
    for line in output.strip().splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        name = strip_ansi(parts[0])
        conflict = False
        change_id_idx = 1
        if len(parts) > 2 and strip_ansi(parts[1]) == "(conflict)":
            conflict = True
            change_id_idx = 2
        change_id = strip_ansi(parts[change_id_idx])
        bookmarks.append(
            Bookmark(
                name=name,
                conflict=conflict,
                commit_id=change_id,
                local=BookmarkRemote(remote=".", commit_id=change_id),
            )
        )
    return bookmarks


def parse_bookmark_list_output(output: str) -> list[Bookmark]:
    """Parse `name;remote;tracked;conflict;backwards;commit_id` lines.

    Entries for one name are merged into a single bookmark. The "." remote is
    the local pointer, "git" entries are skipped, and "origin" is always the
    first remote.
    """
    by_name: dict[str, Bookmark] = {}
    for line in output.split("\n"):
        parts = line.split(";")
        if len(parts) < 6:
            continue
        name = parts[0].strip('"')
        remote_name = parts[1]
        tracked = parts[2] == "true"
        conflict = parts[3] == "true"
        backwards = parts[4] == "true"
        commit_id = parts[5]

        if remote_name == "git":
            continue

        bookmark = by_name.get(name)
        if bookmark is None:
            bookmark = Bookmark(
                name=name,
                conflict=conflict,
                backwards=backwards,
                commit_id=commit_id,
            )
            by_name[name] = bookmark

        if remote_name == ".":
            bookmark.local = BookmarkRemote(remote=".", commit_id=commit_id, tracked=tracked)
            bookmark.commit_id = commit_id
            continue
        remote = BookmarkRemote(remote=remote_name, commit_id=commit_id, tracked=tracked)
        if remote_name == "origin":
            bookmark.remotes.insert(0, remote)
        else:
            bookmark.remotes.append(remote)
    return list(by_name.values())
