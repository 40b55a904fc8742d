"""comments command — list inline comments with the code they refer to."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from gerlens_cli.client import get_client
from gerlens_core.errors import GerritApiError
from gerlens_core.models import LineContext, SnapshotComment
from gerlens_core.snapshot import comment_from_api, format_date
from gerlens_core.utils.diff_context import gather_comment_contexts

console = Console()


def fetch_comments(client, change_id: str) -> list[SnapshotComment]:
    """All inline comments on a change, sorted by file then line."""
    comments = [
        comment_from_api(path, raw) for path, file_comments in client.get_comments(change_id).items() for raw in file_comments
    ]
    return sorted(comments, key=lambda c: (c.path, c.line or 0))


def print_comments(comments: list[SnapshotComment], contexts: list[LineContext]) -> None:
    if not comments:
        console.print("[yellow]No comments found on this change.[/yellow]")
        return

    console.print(f"Found {len(comments)} comment(s):\n")
    current_path = None
    for comment, context in zip(comments, contexts):
        if comment.path != current_path:
            current_path = comment.path
            console.print(f"[blue]═══ {escape(current_path)} ═══[/blue]")

        status = "[yellow][UNRESOLVED][/yellow] " if comment.unresolved else ""
        console.print(f"\n{status}[dim]{escape(comment.author or 'Unknown')} • {format_date(comment.updated)}[/dim]")

        if comment.line:
            console.print(f"[dim]Line {comment.line}:[/dim]")
            if not context.is_empty:
                console.print("[dim]───────────────────[/dim]")
                for line in context.before:
                    console.print(f"[dim]  {escape(line)}[/dim]")
                if context.target is not None:
                    console.print(f"[bold]> {escape(context.target)}[/bold]")
                for line in context.after:
                    console.print(f"[dim]  {escape(line)}[/dim]")
                console.print("[dim]───────────────────[/dim]")

        console.print(escape(comment.message))


@click.command("comments")
@click.argument("change_id")
@click.option(
    "--context",
    "context_lines",
    type=int,
    default=None,
    help="Lines of code to show around each comment. Default: context_lines from config.",
)
@click.pass_context
def comments_cmd(ctx, change_id: str, context_lines: int | None):
    """Show all inline comments on a change with surrounding code."""
    window = context_lines if context_lines is not None else ctx.obj["config"].get("context_lines", 2)
    client = get_client(ctx)

    try:
        comments = fetch_comments(client, change_id)
    except GerritApiError as e:
        raise click.ClickException(f"Failed to fetch comments: {e}")

    contexts = gather_comment_contexts(client, change_id, comments, window)
    print_comments(comments, contexts)
