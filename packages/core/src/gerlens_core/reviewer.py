"""Core change review orchestration.

Two sequential stages share one snapshot of the change:

  1. inline   structured (XML) view → tool → JSON drafts → reconcile → post
  2. overall  narrative view        → tool → free text              → post

Each stage either completes or raises. An error in stage 2 leaves whatever
stage 1 already posted in place.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

from gerlens_core.comments import build_comment_payload, parse_comment_json, post_inline_comments, post_message
from gerlens_core.config import load_review_prompt, load_stage_prompts
from gerlens_core.errors import ResponseParseError
from gerlens_core.models import CommentDraft, ReviewOptions
from gerlens_core.providers.registry import detect_tool
from gerlens_core.reconcile import reconcile_comments
from gerlens_core.snapshot import build_snapshot, render_narrative, render_structured

if TYPE_CHECKING:
    from gerlens_core.gerrit.client import GerritClient
    from gerlens_core.providers.base import BaseTool

console = Console()
logger = logging.getLogger(__name__)

_BANNER = "━" * 6


@dataclass
class ReviewResult:
    """What a review run produced and what it actually posted."""

    change_id: str
    tool: str
    comments: list[CommentDraft] = field(default_factory=list)
    dropped: int = 0
    overall: str = ""
    inline_posted: bool = False
    overall_posted: bool = False


def confirm(message: str) -> bool:
    """Block on a [y/N] answer from stdin. Anything but "y" is a no."""
    answer = input(f"{message} [y/N]: ").strip().lower()
    return answer == "y"


def print_inline_comments(comments: list[CommentDraft], title: str = "INLINE COMMENTS") -> None:
    console.print(f"\n[bold]{_BANNER} {title} {_BANNER}[/bold]")
    for c in comments:
        if c.range is not None:
            location = f"{c.range.start_line}-{c.range.end_line}"
        else:
            location = str(c.line)
        console.print(f"\n[bold cyan]{escape(c.file)}[/bold cyan]:[bold]{location}[/bold]")
        console.print(escape(c.message))


def print_overall_review(text: str, title: str = "OVERALL REVIEW") -> None:
    console.print(f"\n[bold]{_BANNER} {title} {_BANNER}[/bold]")
    console.print(escape(text))
    console.print(f"\n[bold]{_BANNER * 6}[/bold]")


def _generate(tool: BaseTool, prompt: str, payload: str, stage: str, debug: bool) -> str:
    """Run one generation stage, dumping the raw tool output on parse failure when debugging."""
    if debug:
        console.print(f"[dim][DEBUG] Running {tool.NAME} for {stage} review...[/dim]")
    try:
        response = tool.run(prompt, payload)
    except ResponseParseError as e:
        if debug:
            console.print(f"[dim][DEBUG] AI output:\n{escape(e.raw_output)}[/dim]")
        raise
    if debug:
        console.print(f"[dim][DEBUG] {stage.capitalize()} response:\n{escape(response)}[/dim]")
    return response


def parse_inline_response(response: str, debug: bool = False) -> list:
    try:
        return parse_comment_json(response)
    except ResponseParseError:
        console.print("[red]✗ Failed to parse inline comments JSON.[/red]")
        if not debug:
            console.print("Run with --debug to see raw AI output.")
        raise


def _post_inline_stage(
    client: GerritClient, change_id: str, comments: list[CommentDraft], options: ReviewOptions
) -> bool:
    if not comments:
        console.print("\n→ No inline comments to post")
        return False

    print_inline_comments(comments, title="INLINE COMMENTS TO POST")

    if options.dry_run:
        payload = build_comment_payload(comments)
        console.print("\n[yellow]Dry run: the following payload would be posted:[/yellow]")
        console.print_json(json.dumps({"comments": payload}))
        return False

    if not options.auto_confirm and not confirm("\nPost these inline comments to Gerrit?"):
        console.print("→ Inline comments not posted")
        return False

    post_inline_comments(client, change_id, comments)
    console.print(f"[green]✓ Inline comments posted for {change_id}[/green]")
    return True


def _post_overall_stage(client: GerritClient, change_id: str, text: str, options: ReviewOptions) -> bool:
    print_overall_review(text, title="OVERALL REVIEW TO POST")

    if options.dry_run:
        console.print("[yellow]Dry run: the overall review above would be posted as a change message.[/yellow]")
        return False

    if not options.auto_confirm and not confirm("\nPost this overall review to Gerrit?"):
        console.print("→ Overall review not posted")
        return False

    post_message(client, change_id, text)
    console.print(f"[green]✓ Overall review posted for {change_id}[/green]")
    return True


def run_review(
    change_id: str,
    config: dict,
    client: GerritClient,
    options: ReviewOptions | None = None,
    tool: BaseTool | None = None,
) -> ReviewResult:
    """Run the full two-stage review pipeline for one change.

    Raises ToolNotFoundError, ServiceError, ResponseParseError,
    SubmissionError or GerritApiError on fatal failures. A declined
    confirmation is not an error: the stage is skipped and the run continues.
    """
    options = options or ReviewOptions()

    # Detect
    console.print("→ Checking for AI tool availability...")
    if tool is None:
        tool = detect_tool(config.get("ai_tool"))
    console.print(f"[green]✓ Found AI tool: {tool.NAME}[/green]")

    review_prompt, custom = load_review_prompt(config, options.prompt_path)
    if custom:
        console.print(f"✓ Using custom review prompt from {options.prompt_path or config.get('prompt')}")
    inline_prompt, overall_prompt = load_stage_prompts(review_prompt)

    # Snapshot
    console.print(f"→ Fetching change data for {change_id}...")
    snapshot = build_snapshot(client, change_id)
    result = ReviewResult(change_id=change_id, tool=tool.NAME)

    # Generate inline
    console.print(f"→ Generating inline comments for change {change_id}...")
    inline_response = _generate(tool, inline_prompt, render_structured(snapshot), "inline", options.debug)
    raw_comments = parse_inline_response(inline_response, options.debug)

    # Reconcile
    reconciled = reconcile_comments(raw_comments, list(snapshot.files))
    result.comments = reconciled.comments
    result.dropped = reconciled.dropped
    for original, corrected in reconciled.substitutions:
        console.print(f"[dim]Corrected path {escape(original)} → {escape(corrected)}[/dim]")
    if reconciled.dropped:
        console.print(f"[yellow]⚠ Dropped {reconciled.dropped} invalid inline comment(s).[/yellow]")

    # Confirm / post inline
    if options.comment:
        result.inline_posted = _post_inline_stage(client, change_id, result.comments, options)
    elif result.comments:
        print_inline_comments(result.comments)
    else:
        console.print("\n→ No inline comments")

    # Generate overall
    console.print(f"→ Generating overall review comment for change {change_id}...")
    result.overall = _generate(tool, overall_prompt, render_narrative(snapshot), "overall", options.debug)

    # Confirm / post overall
    if options.comment:
        result.overall_posted = _post_overall_stage(client, change_id, result.overall, options)
    else:
        print_overall_review(result.overall)

    console.print(f"[green]✓ Review complete for {change_id}[/green]")
    return result
