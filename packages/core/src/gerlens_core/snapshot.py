"""Change snapshot: fetch once, render two ways.

build_snapshot() is the only function here that touches the network. The two
renderers are pure functions of the resulting ChangeSnapshot:

  render_structured()  XML for the inline-comment stage. Every text field is
                       escaped so content can never be mistaken for markup.
  render_narrative()   A readable report for the overall-review stage, with
                       build-bot noise filtered out of the activity log.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from gerlens_core.models import (
    COMMIT_MSG_LABEL,
    COMMIT_MSG_PATH,
    ActivityMessage,
    ChangeSnapshot,
    SnapshotComment,
)
from gerlens_core.utils.escaping import cdata, escape_xml

if TYPE_CHECKING:
    from gerlens_core.gerrit.client import GerritClient

logger = logging.getLogger(__name__)

_RULE_WIDTH = 80
_SECTION_RULE_WIDTH = 40

# Short automated messages ("Build Started", "Patch Set 2") add nothing to a review.
_NOISE_MAX_LENGTH = 10
_NOISE_MARKERS = ("Build", "Patch")


def build_snapshot(client: GerritClient, change_id: str) -> ChangeSnapshot:
    """Fetch everything the review stages need for ``change_id``."""
    change = client.get_change(change_id)
    diff = client.get_diff(change_id)
    comments_by_path = client.get_comments(change_id)
    messages = client.get_messages(change_id)
    files = client.get_files(change_id)

    owner = change.get("owner") or {}
    comments = [
        comment_from_api(path, raw) for path, file_comments in comments_by_path.items() for raw in file_comments
    ]
    logger.debug(
        "Snapshot of %s: %d file(s), %d comment(s), %d message(s)",
        change_id,
        len(files),
        len(comments),
        len(messages),
    )

    return ChangeSnapshot(
        change_id=change.get("change_id", change_id),
        number=change.get("_number", 0),
        subject=change.get("subject", ""),
        status=change.get("status", ""),
        project=change.get("project", ""),
        branch=change.get("branch", ""),
        owner_name=owner.get("name"),
        owner_email=owner.get("email"),
        created=change.get("created"),
        updated=change.get("updated"),
        diff=diff if isinstance(diff, str) else str(diff),
        comments=tuple(comments),
        messages=tuple(message_from_api(m) for m in messages),
        files=tuple(files),
    )


def comment_from_api(path: str, raw: dict) -> SnapshotComment:
    author = raw.get("author") or {}
    return SnapshotComment(
        id=raw.get("id", ""),
        path=COMMIT_MSG_LABEL if path == COMMIT_MSG_PATH else path,
        message=raw.get("message", ""),
        line=raw.get("line"),
        author=author.get("name"),
        updated=raw.get("updated"),
        unresolved=bool(raw.get("unresolved", False)),
    )


def message_from_api(raw: dict) -> ActivityMessage:
    author = raw.get("author") or {}
    return ActivityMessage(
        id=raw.get("id", ""),
        message=raw.get("message", ""),
        date=raw.get("date", ""),
        author=author.get("name"),
        author_id=author.get("_account_id"),
        revision=raw.get("_revision_number"),
        tag=raw.get("tag"),
    )


def format_date(value: str | None) -> str:
    """Render a Gerrit timestamp ("2024-01-15 10:00:00.000000000") as "2024-01-15 10:00 UTC"."""
    if not value:
        return "Unknown"
    try:
        parsed = datetime.strptime(value[:19], "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return value
    return parsed.strftime("%Y-%m-%d %H:%M UTC")


def is_automated_noise(message: str) -> bool:
    text = message.strip()
    return len(text) < _NOISE_MAX_LENGTH and any(marker in text for marker in _NOISE_MARKERS)


# ---------------------------------------------------------------------- #
# Structured view                                                         #
# ---------------------------------------------------------------------- #


def render_structured(snapshot: ChangeSnapshot) -> str:
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        "<show_result>",
        "  <status>success</status>",
        "  <change>",
        f"    <id>{escape_xml(snapshot.change_id)}</id>",
        f"    <number>{snapshot.number}</number>",
        f"    <subject>{cdata(snapshot.subject)}</subject>",
        f"    <status>{escape_xml(snapshot.status)}</status>",
        f"    <project>{escape_xml(snapshot.project)}</project>",
        f"    <branch>{escape_xml(snapshot.branch)}</branch>",
        "    <owner>",
    ]
    if snapshot.owner_name:
        lines.append(f"      <name>{cdata(snapshot.owner_name)}</name>")
    if snapshot.owner_email:
        lines.append(f"      <email>{escape_xml(snapshot.owner_email)}</email>")
    lines += [
        "    </owner>",
        f"    <created>{escape_xml(snapshot.created or '')}</created>",
        f"    <updated>{escape_xml(snapshot.updated or '')}</updated>",
        "  </change>",
        "  <files>",
    ]
    for path in snapshot.files:
        lines.append(f"    <file>{cdata(path)}</file>")
    lines += [
        "  </files>",
        f"  <diff>{cdata(snapshot.diff)}</diff>",
        "  <comments>",
        f"    <count>{len(snapshot.comments)}</count>",
    ]

    for comment in snapshot.comments:
        lines.append("    <comment>")
        if comment.id:
            lines.append(f"      <id>{escape_xml(comment.id)}</id>")
        if comment.path:
            lines.append(f"      <path>{cdata(comment.path)}</path>")
        if comment.line:
            lines.append(f"      <line>{comment.line}</line>")
        if comment.author:
            lines.append(f"      <author>{cdata(comment.author)}</author>")
        if comment.updated:
            lines.append(f"      <updated>{escape_xml(comment.updated)}</updated>")
        if comment.message:
            lines.append(f"      <message>{cdata(comment.message)}</message>")
        if comment.unresolved:
            lines.append("      <unresolved>true</unresolved>")
        lines.append("    </comment>")
    lines += [
        "  </comments>",
        "  <messages>",
        f"    <count>{len(snapshot.messages)}</count>",
    ]

    for message in snapshot.messages:
        lines.append("    <message>")
        lines.append(f"      <id>{escape_xml(message.id)}</id>")
        if message.author:
            lines.append(f"      <author>{cdata(message.author)}</author>")
        if message.author_id:
            lines.append(f"      <author_id>{message.author_id}</author_id>")
        lines.append(f"      <date>{escape_xml(message.date)}</date>")
        if message.revision:
            lines.append(f"      <revision>{message.revision}</revision>")
        if message.tag:
            lines.append(f"      <tag>{escape_xml(message.tag)}</tag>")
        lines.append(f"      <message>{cdata(message.message)}</message>")
        lines.append("    </message>")
    lines += [
        "  </messages>",
        "</show_result>",
    ]
    return "\n".join(lines)


# ---------------------------------------------------------------------- #
# Narrative view                                                          #
# ---------------------------------------------------------------------- #


def _diff_summary(diff: str) -> str:
    files = additions = deletions = 0
    for line in diff.splitlines():
        if line.startswith("diff --git"):
            files += 1
        elif line.startswith("+") and not line.startswith("+++"):
            additions += 1
        elif line.startswith("-") and not line.startswith("---"):
            deletions += 1

    if not (files or additions or deletions):
        return "Changes summary: No changes detected"
    parts = []
    if files:
        parts.append(f"{files} file(s) changed")
    if additions:
        parts.append(f"+{additions} addition(s)")
    if deletions:
        parts.append(f"-{deletions} deletion(s)")
    return "Changes summary: " + ", ".join(parts)


def render_narrative(snapshot: ChangeSnapshot) -> str:
    lines = [
        "━" * _RULE_WIDTH,
        f"Change {snapshot.number}: {snapshot.subject}",
        "━" * _RULE_WIDTH,
        "",
        "Details:",
        f"   Project: {snapshot.project}",
        f"   Branch: {snapshot.branch}",
        f"   Status: {snapshot.status}",
        f"   Owner: {snapshot.owner_name or snapshot.owner_email or 'Unknown'}",
        f"   Created: {format_date(snapshot.created)}",
        f"   Updated: {format_date(snapshot.updated)}",
        f"   Change-Id: {snapshot.change_id}",
        "",
        "Diff:",
        "─" * _SECTION_RULE_WIDTH,
        _diff_summary(snapshot.diff),
        "",
        snapshot.diff if snapshot.diff else "No diff content available",
        "",
    ]

    if snapshot.comments:
        lines += ["Inline Comments:", "─" * _SECTION_RULE_WIDTH]
        for comment in snapshot.comments:
            lines.append(f"{format_date(comment.updated)} - {comment.author or 'Unknown'}")
            if comment.path:
                lines.append(f"   File: {comment.path}")
            if comment.line:
                lines.append(f"   Line: {comment.line}")
            lines.append(f"   {comment.message}")
            if comment.unresolved:
                lines.append("   [UNRESOLVED]")
            lines.append("")

    activity = [m for m in snapshot.messages if not is_automated_noise(m.message)]
    if activity:
        lines += ["Review Activity:", "─" * _SECTION_RULE_WIDTH]
        for message in activity:
            lines.append(f"{format_date(message.date)} - {message.author or 'Unknown'}")
            lines.append(f"   {message.message.strip()}")
            lines.append("")

    return "\n".join(lines)
