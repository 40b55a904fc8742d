"""Comment payload construction and posting."""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING

from gerlens_core.errors import GerritApiError, ResponseParseError, SubmissionError
from gerlens_core.models import VALID_SIDES, CommentDraft
from gerlens_core.reconcile import ReconcileResult, reconcile_comments

if TYPE_CHECKING:
    from gerlens_core.gerrit.client import GerritClient

logger = logging.getLogger(__name__)


def build_comment_payload(drafts: list[CommentDraft]) -> dict[str, list[dict]]:
    """Group drafts by file into the shape Gerrit's review endpoint expects.

    Order within each file follows the input. A range always wins over a
    line; ``unresolved`` is only sent when true.
    """
    payload: dict[str, list[dict]] = {}
    for draft in drafts:
        entry: dict = {}
        if draft.range is not None:
            entry["range"] = draft.range.to_dict()
        else:
            entry["line"] = draft.line
        entry["message"] = draft.message
        if draft.side in VALID_SIDES:
            entry["side"] = draft.side
        if draft.unresolved is True:
            entry["unresolved"] = True
        payload.setdefault(draft.file, []).append(entry)
    return payload


def summarize_payload(payload: dict[str, list[dict]]) -> str:
    total = sum(len(entries) for entries in payload.values())
    return f"{total} comment(s) across {len(payload)} file(s)"


def post_inline_comments(client: GerritClient, change_id: str, drafts: list[CommentDraft]) -> dict:
    """Post all drafts in a single review request and return the payload sent."""
    payload = build_comment_payload(drafts)
    summary = summarize_payload(payload)
    try:
        client.post_review(change_id, {"comments": payload})
    except GerritApiError as e:
        raise SubmissionError(f"Failed to post inline comments: {e}", summary=summary) from e
    logger.info("Posted %s to %s", summary, change_id)
    return payload


def post_message(client: GerritClient, change_id: str, message: str) -> None:
    try:
        client.post_review(change_id, {"message": message})
    except GerritApiError as e:
        raise SubmissionError(f"Failed to post review comment: {e}", summary=f"message of {len(message)} chars") from e


def parse_comment_json(text: str) -> list:
    """Load a JSON array of raw comment objects.

    Tolerates an outer ```json fence, which models add even when told not to.
    """
    # Strip only the outer fence, not backticks inside message values.
    cleaned = re.sub(r"^```(?:json)?\s*", "", text.strip())
    cleaned = re.sub(r"\s*```$", "", cleaned.strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Invalid inline comments JSON: {e}", raw_output=text) from e
    if not isinstance(data, list):
        raise ResponseParseError("Inline comments response is not a JSON array", raw_output=text)
    return data


def post_comment_input(client: GerritClient, change_id: str, text: str, batch: bool = False) -> ReconcileResult | None:
    """Post ``text`` to a change.

    Plain mode posts ``text`` as one top-level message. Batch mode treats it
    as a JSON array of inline comment drafts, reconciles them against the
    change's files, and posts the survivors in one request.
    """
    if not batch:
        if not text.strip():
            raise ValueError("Message is required.")
        post_message(client, change_id, text)
        return None

    raw = parse_comment_json(text)
    known_files = list(client.get_files(change_id))
    result = reconcile_comments(raw, known_files)
    if result.comments:
        post_inline_comments(client, change_id, result.comments)
    return result
