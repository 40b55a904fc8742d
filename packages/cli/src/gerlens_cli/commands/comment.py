"""comment command — post a message or a batch of inline comments."""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gerlens_cli.client import get_client
from gerlens_core.comments import post_comment_input
from gerlens_core.errors import GerlensError
from gerlens_core.models import CommentDraft

console = Console()


def _print_batch_table(change_id: str, comments: list[CommentDraft]) -> None:
    table = Table(title=f"Inline comments — {change_id}", show_header=True, header_style="bold cyan")
    table.add_column("File", max_width=50)
    table.add_column("Line", justify="right", width=9)
    table.add_column("Message", max_width=60)

    for c in comments:
        line = f"{c.range.start_line}-{c.range.end_line}" if c.range is not None else str(c.line)
        unresolved = " [yellow](unresolved)[/yellow]" if c.unresolved else ""
        table.add_row(escape(c.file), line, escape(c.message.splitlines()[0]) + unresolved)

    console.print(table)


@click.command("comment")
@click.argument("change_id")
@click.option("--message", "-m", default=None, help="Comment text. Read from stdin when omitted.")
@click.option(
    "--batch",
    is_flag=True,
    help="Read a JSON array of inline comments from stdin "
    '([{"file": ..., "line": ..., "message": ...}, ...]).',
)
@click.pass_context
def comment_cmd(ctx, change_id: str, message: str | None, batch: bool):
    """Post a comment on a Gerrit change.

    \b
    Examples:
      gerlens comment 12345 -m "Looks good once CI passes"
      echo '[{"file": "src/app.py", "line": 3, "message": "typo"}]' | gerlens comment 12345 --batch
    """
    if batch and message:
        raise click.UsageError("--batch reads comments from stdin; do not combine it with --message.")

    text = message if message is not None else sys.stdin.read()
    if not text.strip():
        raise click.UsageError('Message is required. Use -m "your message" or pipe text to stdin.')

    client = get_client(ctx)
    try:
        result = post_comment_input(client, change_id, text, batch=batch)
    except GerlensError as e:
        raise click.ClickException(str(e))

    if result is None:
        console.print(f"[green]✓ Comment posted to {escape(change_id)}[/green]")
        return

    for original, corrected in result.substitutions:
        console.print(f"[dim]Corrected path {escape(original)} → {escape(corrected)}[/dim]")
    if result.dropped:
        console.print(f"[yellow]⚠ Dropped {result.dropped} invalid comment(s).[/yellow]")
    if result.comments:
        _print_batch_table(change_id, result.comments)
        console.print(f"[green]✓ Posted {len(result.comments)} inline comment(s) to {escape(change_id)}[/green]")
    else:
        console.print("[yellow]No valid comments to post.[/yellow]")
