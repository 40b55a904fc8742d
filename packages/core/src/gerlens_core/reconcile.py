"""Validation and path repair for AI-generated inline comments.

The tool's JSON is untrusted. Each element is validated on its own, and its
file path is matched against the files that actually exist in the change:
models routinely drop leading directories ("File.java" for
"src/main/java/com/acme/File.java"). A bad element is dropped with a warning;
it never aborts the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from gerlens_core.errors import CommentValidationError
from gerlens_core.models import VALID_SIDES, CommentDraft, CommentRange

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    comments: list[CommentDraft] = field(default_factory=list)
    dropped: int = 0
    # (original path, corrected path) for every repaired draft.
    substitutions: list[tuple[str, str]] = field(default_factory=list)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _optional_int(raw: dict, key: str) -> int | None:
    value = raw.get(key)
    if value is None:
        return None
    if not _is_int(value) or value < 0:
        raise CommentValidationError(f"range.{key} must be a non-negative integer")
    return value


def _parse_range(raw) -> CommentRange:
    if not isinstance(raw, dict):
        raise CommentValidationError("range must be an object")
    start, end = raw.get("start_line"), raw.get("end_line")
    if not _is_int(start) or not _is_int(end) or start < 1 or end < start:
        raise CommentValidationError("range needs integer start_line <= end_line")
    return CommentRange(
        start_line=start,
        end_line=end,
        start_character=_optional_int(raw, "start_character"),
        end_character=_optional_int(raw, "end_character"),
    )


def validate_draft(raw) -> CommentDraft:
    """Turn one raw element into a CommentDraft or raise CommentValidationError."""
    if not isinstance(raw, dict):
        raise CommentValidationError(f"expected an object, got {type(raw).__name__}")

    file = raw.get("file")
    message = raw.get("message")
    if not isinstance(file, str) or not file.strip():
        raise CommentValidationError("missing 'file'")
    if not isinstance(message, str) or not message.strip():
        raise CommentValidationError("missing 'message'")

    line = raw.get("line")
    range_ = raw.get("range")
    if line is None and range_ is None:
        raise CommentValidationError("needs 'line' or 'range'")
    if line is not None and (not _is_int(line) or line < 1):
        if range_ is None:
            raise CommentValidationError(f"invalid line {line!r}")
        # The range is what gets posted; a bad line alongside it is ignored.
        logger.debug("Ignoring invalid line %r on %s, range given", line, file)
        line = None

    side = raw.get("side")
    if side is not None and side not in VALID_SIDES:
        logger.debug("Ignoring unrecognised side %r on %s", side, file)
        side = None

    unresolved = raw.get("unresolved")
    return CommentDraft(
        file=file.strip(),
        message=message,
        line=line,
        range=_parse_range(range_) if range_ is not None else None,
        side=side,
        unresolved=unresolved if isinstance(unresolved, bool) else None,
    )


def _normalize(path: str) -> str:
    return path.replace("\\", "/")


def resolve_path(candidate: str, known_files: list[str]) -> str | None:
    """Match ``candidate`` to one of ``known_files``; None when ambiguous or absent.

    A known path matches when, after normalising separators, it equals the
    candidate or ends with "/" + candidate. Substring matches are never
    accepted ("File.java" must not match "MyFile.java"). When several paths
    match, only a path whose raw form ends with "/" + candidate (leading
    slashes removed) can win, and only if it is the single such path.
    """
    if candidate in known_files:
        return candidate

    wanted = _normalize(candidate).lstrip("/")
    if not wanted:
        return None
    matches = [
        path
        for path in known_files
        if _normalize(path) == wanted or _normalize(path).endswith("/" + wanted)
    ]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        return None

    exact = [path for path in matches if path.endswith("/" + wanted)]
    if len(exact) == 1:
        return exact[0]
    return None


def reconcile_comments(raw_comments: list, known_files: list[str]) -> ReconcileResult:
    """Validate every raw element and correct its file path against the change."""
    known = list(known_files)
    result = ReconcileResult()

    for i, raw in enumerate(raw_comments):
        try:
            draft = validate_draft(raw)
        except CommentValidationError as e:
            logger.warning("Dropping comment #%d: %s", i + 1, e)
            result.dropped += 1
            continue

        resolved = resolve_path(draft.file, known)
        if resolved is None:
            logger.warning("Dropping comment #%d: no unique file in the change matches %r", i + 1, draft.file)
            result.dropped += 1
            continue
        if resolved != draft.file:
            logger.info("Corrected comment path %r -> %r", draft.file, resolved)
            result.substitutions.append((draft.file, resolved))
            draft.file = resolved

        result.comments.append(draft)

    return result
