"""Data models shared across the review pipeline.

Everything here is created fresh per run and discarded afterwards; nothing
is cached or persisted between invocations.
"""

from __future__ import annotations

from dataclasses import dataclass, field

COMMIT_MSG_PATH = "/COMMIT_MSG"
COMMIT_MSG_LABEL = "Commit Message"

VALID_SIDES = ("PARENT", "REVISION")


@dataclass(frozen=True)
class DiffHunk:
    """One segment of a file diff.

    kind is one of "unchanged", "added", "removed" or "skipped". Only
    "skipped" uses count; the others carry their lines.
    """

    kind: str
    lines: tuple[str, ...] = ()
    count: int = 0

    @classmethod
    def unchanged(cls, lines) -> DiffHunk:
        return cls("unchanged", tuple(lines))

    @classmethod
    def added(cls, lines) -> DiffHunk:
        return cls("added", tuple(lines))

    @classmethod
    def removed(cls, lines) -> DiffHunk:
        return cls("removed", tuple(lines))

    @classmethod
    def skipped(cls, count: int) -> DiffHunk:
        return cls("skipped", count=count)


def hunks_from_gerrit(content: list[dict] | None) -> list[DiffHunk]:
    """Convert Gerrit's DiffContent sections into an ordered list of hunks.

    A single Gerrit section may carry both "a" and "b" (a replaced block);
    it is split into a removed hunk followed by an added hunk.
    """
    hunks: list[DiffHunk] = []
    for section in content or []:
        if section.get("ab"):
            hunks.append(DiffHunk.unchanged(section["ab"]))
        if section.get("a"):
            hunks.append(DiffHunk.removed(section["a"]))
        if section.get("b"):
            hunks.append(DiffHunk.added(section["b"]))
        if section.get("skip"):
            hunks.append(DiffHunk.skipped(section["skip"]))
    return hunks


@dataclass
class LineContext:
    """Lines surrounding a target line in the post-change file."""

    before: list[str] = field(default_factory=list)
    target: str | None = None
    after: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.before and self.target is None and not self.after


@dataclass(frozen=True)
class SnapshotComment:
    id: str
    path: str
    message: str
    line: int | None = None
    author: str | None = None
    updated: str | None = None
    unresolved: bool = False


@dataclass(frozen=True)
class ActivityMessage:
    id: str
    message: str
    date: str
    author: str | None = None
    author_id: int | None = None
    revision: int | None = None
    tag: str | None = None


@dataclass(frozen=True)
class ChangeSnapshot:
    """Immutable read of one change, fetched once per review run."""

    change_id: str
    number: int
    subject: str
    status: str
    project: str
    branch: str
    owner_name: str | None = None
    owner_email: str | None = None
    created: str | None = None
    updated: str | None = None
    diff: str = ""
    comments: tuple[SnapshotComment, ...] = ()
    messages: tuple[ActivityMessage, ...] = ()
    files: tuple[str, ...] = ()


@dataclass(frozen=True)
class CommentRange:
    start_line: int
    end_line: int
    start_character: int | None = None
    end_character: int | None = None

    def to_dict(self) -> dict:
        data = {"start_line": self.start_line, "end_line": self.end_line}
        if self.start_character is not None:
            data["start_character"] = self.start_character
        if self.end_character is not None:
            data["end_character"] = self.end_character
        return data


@dataclass
class CommentDraft:
    """A tool-produced inline comment. Untrusted until reconciled."""

    file: str
    message: str
    line: int | None = None
    range: CommentRange | None = None
    side: str | None = None  # "PARENT" | "REVISION"
    unresolved: bool | None = None


@dataclass
class ReviewOptions:
    debug: bool = False
    comment: bool = False
    dry_run: bool = False
    auto_confirm: bool = False
    prompt_path: str | None = None
