"""Error taxonomy for the review pipeline.

Only CommentValidationError is recovered locally (the draft is dropped and
counted). Every other error propagates to the CLI, which prints it and exits
non-zero. Nothing here ever undoes a comment that was already posted.
"""

from __future__ import annotations


class GerlensError(Exception):
    """Base class for all gerlens errors."""


class ToolNotFoundError(GerlensError):
    """No candidate AI tool is installed."""


class ServiceError(GerlensError):
    """The AI tool could not be launched or exited with a non-zero status."""

    def __init__(self, message: str, stderr: str = "", returncode: int | None = None):
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode


class ResponseParseError(GerlensError):
    """The AI output did not contain a usable <response> block."""

    def __init__(self, message: str, raw_output: str):
        super().__init__(message)
        self.raw_output = raw_output


class CommentValidationError(GerlensError):
    """A single draft comment failed validation. Never fatal."""


class GerritApiError(GerlensError):
    """A request to the Gerrit REST API failed."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (HTTP {self.status})" if self.status else base


class SubmissionError(GerlensError):
    """Posting a review to Gerrit failed."""

    def __init__(self, message: str, summary: str = ""):
        super().__init__(message)
        self.summary = summary
