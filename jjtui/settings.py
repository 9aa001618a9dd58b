"""Per-repository settings."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import cast

from rich.errors import StyleSyntaxError
from rich.style import Style

from jjtui.parser import DEFAULT_BATCH_SIZE

DEFAULT_STYLES = {
    "revisions markers": "bold bright_blue",
    "revisions text": "bold",
    "revisions dimmed": "dim",
    "revisions checked": "on dark_green",
    "selected": "reverse",
    "bookmark panel title": "bold",
    "bookmark panel empty": "dim italic",
}


class SettingsError(Exception):
    """Settings file is invalid."""


@dataclass(frozen=True)
class KeyMap:
    apply: str = "enter"
    cancel: str = "escape"
    toggle_select: str = "space"
    accept_suggestion: str = "tab"


@dataclass(frozen=True)
class Settings:
    batch_size: int = DEFAULT_BATCH_SIZE
    default_remote: str = "origin"
    revset: str | None = None
    keys: KeyMap = field(default_factory=KeyMap)
    styles: dict[str, Style] = field(default_factory=dict)

    def style(self, name: str) -> Style:
        return self.styles.get(name, Style.null())


def settings_path(repo_root: Path) -> Path:
    return repo_root / ".jjtui" / "settings.json"


def _expect_object_dict(value: object, section: str, path: Path) -> dict[str, object]:
    if not isinstance(value, dict):
        raise SettingsError(f"Invalid {section} section in {path}")
    return cast(dict[str, object], value)


def _expect_str(value: object, name: str, path: Path) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SettingsError(f"Invalid {name} in {path}")
    return value


def resolve_styles(overrides: dict[str, str]) -> dict[str, Style]:
    """Parse the named style table once."""
    merged = {**DEFAULT_STYLES, **overrides}
    return {name: Style.parse(definition) for name, definition in merged.items()}


def load_settings(repo_root: Path) -> Settings:
    """Load settings for a repository, falling back to defaults."""
    path = settings_path(repo_root)
    if not path.is_file():
        return Settings(styles=resolve_styles({}))

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SettingsError(f"Invalid JSON in {path}") from exc
    settings = _expect_object_dict(raw, "settings", path)

    batch_size = settings.get("batch_size", DEFAULT_BATCH_SIZE)
    if not isinstance(batch_size, int) or isinstance(batch_size, bool) or batch_size <= 0:
        raise SettingsError(f"Invalid batch_size in {path}")

    default_remote = _expect_str(settings.get("default_remote", "origin"), "default_remote", path)

    revset = settings.get("revset")
    if revset is not None:
        revset = _expect_str(revset, "revset", path)

    keys_raw = _expect_object_dict(settings.get("keys", {}), "keys", path)
    defaults = KeyMap()
    keys = KeyMap(
        **{
            name: _expect_str(keys_raw.get(name, getattr(defaults, name)), f"keys.{name}", path)
            for name in ("apply", "cancel", "toggle_select", "accept_suggestion")
        }
    )

    styles_raw = _expect_object_dict(settings.get("styles", {}), "styles", path)
    overrides = {name: _expect_str(value, f"styles.{name}", path) for name, value in styles_raw.items()}
    try:
        styles = resolve_styles(overrides)
    except StyleSyntaxError as exc:
        raise SettingsError(f"Invalid style in {path}: {exc}") from exc

    return Settings(
        batch_size=batch_size,
        default_remote=default_remote,
        revset=revset,
        keys=keys,
        styles=styles,
    )
