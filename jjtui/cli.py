import dataclasses
import logging
from pathlib import Path

import click

from jjtui import jj
from jjtui.context import MainContext
from jjtui.parser import parse_rows
from jjtui.settings import SettingsError, load_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(log_file: Path | None, verbose: bool) -> None:
    if log_file is None:
        return
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )


@click.group(context_settings={"help_option_names": ["-h", "--help"]}, invoke_without_command=True)
@click.option("-r", "--revset", default=None, help="Revset to show instead of the jj default.")
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write diagnostics to this file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Log debug messages.")
@click.pass_context
def main(ctx: click.Context, revset: str | None, log_file: Path | None, verbose: bool) -> None:
    """jjtui: interactive jj log and bookmark dashboard."""
    _configure_logging(log_file, verbose)
    if ctx.invoked_subcommand is not None:
        return

    repo_root = jj.get_repo_root(Path.cwd())
    if repo_root is None:
        click.echo("jjtui: not inside a jj repository", err=True)
        raise SystemExit(1)
    try:
        settings = load_settings(repo_root)
    except SettingsError as exc:
        click.echo(f"jjtui: {exc}", err=True)
        raise SystemExit(1)
    if revset:
        settings = dataclasses.replace(settings, revset=revset)

    from jjtui.tui import run_tui

    run_tui(MainContext(repo_root, settings))


@main.command("log-rows")
def log_rows() -> None:
    """Parse `jj log --color always` output from stdin and print one line per row."""
    for row in parse_rows(click.get_binary_stream("stdin")):
        click.echo(f"{row.get_change_id()} {row.commit_id} {row.indent}")


if __name__ == "__main__":
    main()
