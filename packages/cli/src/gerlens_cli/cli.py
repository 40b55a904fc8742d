"""CLI entry point for gerlens.

Commands:
  review    — run the two-stage AI review on a change
  comment   — post a message or a JSON batch of inline comments
  comments  — list a change's inline comments with surrounding code
  show      — print a change's details, diff and activity
  diff      — print a change's unified diff or file list
  status    — check the connection to Gerrit
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from gerlens_cli.commands.comment import comment_cmd
from gerlens_cli.commands.comments import comments_cmd
from gerlens_cli.commands.diff import diff_cmd
from gerlens_cli.commands.review import review_cmd
from gerlens_cli.commands.show import show_cmd
from gerlens_cli.commands.status import status_cmd


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("gerlens"),
    prog_name="gerlens",
)
@click.option(
    "--config",
    "config_path",
    default=".gerlens.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="GERLENS_CONFIG",
)
@click.option("--debug", is_flag=True, help="Verbose logging and raw AI output on failures.")
@click.pass_context
def main(ctx: click.Context, config_path: str, debug: bool):
    """AI-assisted code review for Gerrit changes."""
    from gerlens_core.config import load_config

    _configure_logging(debug)
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(config_path)
    ctx.obj["debug"] = debug
    ctx.obj["client"] = None


main.add_command(review_cmd)
main.add_command(comment_cmd)
main.add_command(comments_cmd)
main.add_command(show_cmd)
main.add_command(diff_cmd)
main.add_command(status_cmd)
