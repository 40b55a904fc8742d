"""review command — run the two-stage AI review on a change."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from gerlens_cli.client import get_client
from gerlens_core.errors import GerlensError, ResponseParseError, ServiceError, SubmissionError
from gerlens_core.models import ReviewOptions
from gerlens_core.providers.registry import tool_names
from gerlens_core.reviewer import run_review

console = Console(stderr=True)


def _report_failure(error: GerlensError, debug: bool) -> None:
    """Print the extra diagnostics each fatal error kind carries."""
    if isinstance(error, ServiceError) and error.stderr and debug:
        console.print(f"[dim][DEBUG] Tool stderr:\n{escape(error.stderr)}[/dim]")
    if isinstance(error, ResponseParseError) and debug:
        console.print(f"[dim][DEBUG] Raw AI output:\n{escape(error.raw_output)}[/dim]")
    if isinstance(error, SubmissionError) and error.summary:
        console.print(f"[dim]Attempted to post: {escape(error.summary)}[/dim]")


@click.command("review")
@click.argument("change_id")
@click.option("--comment", is_flag=True, help="Post the generated comments to Gerrit.")
@click.option(
    "--dry-run",
    "dry_run",
    is_flag=True,
    help="With --comment: show exactly what would be posted without posting.",
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts.")
@click.option(
    "--prompt",
    "prompt_path",
    default=None,
    help="Path to a Markdown review prompt. Overrides config file.",
)
@click.option(
    "--tool",
    type=click.Choice(tool_names()),
    default=None,
    help="AI tool to use. Default: first one found on PATH.",
)
@click.pass_context
def review_cmd(
    ctx,
    change_id: str,
    comment: bool,
    dry_run: bool,
    yes: bool,
    prompt_path: str | None,
    tool: str | None,
):
    """AI-powered review of a Gerrit change.

    Generates inline comments from a structured view of the change, then an
    overall review from a narrative view. Nothing is posted unless --comment
    is given, and each post asks for confirmation unless --yes is given.

    \b
    Environment variables:
      GERRIT_HOST, GERRIT_USERNAME, GERRIT_PASSWORD
    """
    config = dict(ctx.obj["config"])
    if tool:
        config["ai_tool"] = tool
    elif config.get("ai_tool") and config["ai_tool"] not in tool_names():
        raise click.UsageError(
            f"Unknown ai_tool {config['ai_tool']!r} in config. Choose one of: {', '.join(tool_names())}."
        )
    debug = ctx.obj.get("debug", False)

    options = ReviewOptions(
        debug=debug,
        comment=comment,
        dry_run=dry_run,
        auto_confirm=yes,
        prompt_path=prompt_path,
    )

    client = get_client(ctx)
    try:
        run_review(change_id, config, client, options)
    except GerlensError as e:
        _report_failure(e, debug)
        raise click.ClickException(str(e))
