"""State shared by the panels and operations of one session."""

from collections.abc import Callable
from pathlib import Path

from jjtui import jj
from jjtui.models import Row
from jjtui.settings import Settings


class MainContext:
    """Repository, settings, checked revisions and the immediate command runner."""

    def __init__(
        self,
        repo_root: Path,
        settings: Settings,
        runner: Callable[[list[str]], str] | None = None,
    ) -> None:
        self.repo_root = repo_root
        self.settings = settings
        self.checked: dict[str, str] = {}
        self._runner = runner or (lambda args: jj.run(args, cwd=repo_root))

    def run_immediate(self, args: list[str]) -> str:
        """Run a jj command synchronously; raises JJError on failure."""
        return self._runner(args)

    def is_checked(self, row: Row) -> bool:
        return row.get_change_id() in self.checked

    def toggle_checked(self, row: Row) -> None:
        change_id = row.get_change_id()
        if not change_id:
            return
        if change_id in self.checked:
            del self.checked[change_id]
        else:
            self.checked[change_id] = row.commit_id

    def checked_revisions(self) -> list[str]:
        return list(self.checked)
