"""Line context extraction from Gerrit's hunk-based file diffs.

Gerrit's diff endpoint never exposes line numbers directly. To show a comment
next to the code it refers to, we walk the hunks and rebuild the numbering of
the post-change file:

  - unchanged and added lines exist in the new file and advance the counter
  - removed lines only exist in the old file and are ignored
  - skipped runs advance the counter without materialising any lines, so a
    target inside one has no recoverable context
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from gerlens_core.errors import GerritApiError
from gerlens_core.models import COMMIT_MSG_LABEL, COMMIT_MSG_PATH, DiffHunk, LineContext, hunks_from_gerrit

if TYPE_CHECKING:
    from gerlens_core.gerrit.client import GerritClient
    from gerlens_core.models import SnapshotComment

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 2


def extract_context(hunks: list[DiffHunk], target_line: int, window: int = DEFAULT_WINDOW) -> LineContext:
    """Return up to ``window`` lines before and after ``target_line``.

    Never raises: a target that falls in a skipped run, lies outside the
    recorded lines, or cannot be located at all yields an empty LineContext.
    """
    recorded: list[tuple[int, str]] = []
    new_line = 1

    try:
        for hunk in hunks:
            if hunk.kind in ("unchanged", "added"):
                for text in hunk.lines:
                    recorded.append((new_line, text))
                    new_line += 1
            elif hunk.kind == "skipped":
                if new_line <= target_line < new_line + hunk.count:
                    return LineContext()
                new_line += hunk.count
            # "removed" lines have no post-change line number.
    except (AttributeError, TypeError) as e:
        logger.debug("Malformed diff hunks, returning empty context: %s", e)
        return LineContext()

    index = next((i for i, (num, _) in enumerate(recorded) if num == target_line), None)
    if index is None:
        return LineContext()

    window = max(window, 0)
    return LineContext(
        before=[text for _, text in recorded[max(0, index - window) : index]],
        target=recorded[index][1],
        after=[text for _, text in recorded[index + 1 : index + 1 + window]],
    )


def get_diff_context(
    client: GerritClient,
    change_id: str,
    path: str,
    line: int | None,
    window: int = DEFAULT_WINDOW,
) -> LineContext:
    """Fetch one file's diff and extract the context around ``line``.

    A failed fetch or a malformed diff degrades to an empty context for this
    comment only.
    """
    if not line or path in (COMMIT_MSG_LABEL, COMMIT_MSG_PATH):
        return LineContext()

    try:
        diff = client.get_file_diff(change_id, path)
        hunks = hunks_from_gerrit(diff.get("content"))
    except (GerritApiError, AttributeError, TypeError, ValueError) as e:
        logger.debug("Could not load diff for %s: %s", path, e)
        return LineContext()

    return extract_context(hunks, line, window)


def gather_comment_contexts(
    client: GerritClient,
    change_id: str,
    comments: list[SnapshotComment],
    window: int = DEFAULT_WINDOW,
) -> list[LineContext]:
    """Fetch context for every comment in parallel, preserving input order.

    One worker per comment; lookups share no state.
    """
    if not comments:
        return []

    with ThreadPoolExecutor(max_workers=len(comments)) as pool:
        futures = [
            pool.submit(get_diff_context, client, change_id, c.path, c.line, window) for c in comments
        ]
        return [f.result() for f in futures]
