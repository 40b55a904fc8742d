"""diff command — print the unified diff or file list of a change."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from gerlens_cli.client import get_client
from gerlens_core.errors import GerritApiError
from gerlens_core.models import COMMIT_MSG_PATH
from gerlens_core.utils.escaping import cdata, escape_xml

console = Console()

_LINE_STYLES = (
    ("diff --git", "bold"),
    ("+++", "bold"),
    ("---", "bold"),
    ("@@", "cyan"),
    ("+", "green"),
    ("-", "red"),
)


def print_pretty_diff(diff: str) -> None:
    for line in diff.splitlines():
        style = next((s for prefix, s in _LINE_STYLES if line.startswith(prefix)), None)
        text = escape(line)
        console.print(f"[{style}]{text}[/{style}]" if style else text, highlight=False, soft_wrap=True)


def changed_files(client, change_id: str) -> list[str]:
    """Paths touched by the current revision, without Gerrit's commit message pseudo-file."""
    return [path for path in client.get_files(change_id) if path != COMMIT_MSG_PATH]


@click.command("diff")
@click.argument("change_id")
@click.option("--files-only", is_flag=True, help="List changed files only.")
@click.option("--xml", "as_xml", is_flag=True, help="Print the result as XML.")
@click.pass_context
def diff_cmd(ctx, change_id: str, files_only: bool, as_xml: bool):
    """Show the diff of a change's current revision."""
    client = get_client(ctx)
    try:
        if files_only:
            files, diff = changed_files(client, change_id), None
        else:
            files, diff = None, client.get_diff(change_id)
    except GerritApiError as e:
        raise click.ClickException(f"Failed to get diff: {e}")

    if as_xml:
        click.echo('<?xml version="1.0" encoding="UTF-8"?>')
        click.echo("<diff_result>")
        click.echo("  <status>success</status>")
        click.echo(f"  <change_id>{escape_xml(change_id)}</change_id>")
        if files is not None:
            click.echo("  <files>")
            for path in files:
                click.echo(f"    <file>{cdata(path)}</file>")
            click.echo("  </files>")
        else:
            click.echo(f"  <content>{cdata(diff)}</content>")
        click.echo("</diff_result>")
        return

    if files is not None:
        if not files:
            console.print("[yellow]No files changed.[/yellow]")
        for path in files:
            console.print(escape(path), highlight=False)
    elif diff:
        print_pretty_diff(diff)
    else:
        console.print("[yellow]No diff content available.[/yellow]")
