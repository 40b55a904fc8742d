"""Base AI tool implementing the Template Method pattern.

Every supported tool is an external CLI driven the same way:
    run() → invoke()            ← write prompt + payload to stdin, collect stdout
          → extract_response()  ← pull the <response>...</response> block out

Subclasses declare two things only:
  - NAME: the executable looked up on PATH
  - command(): the argv used to launch it

Adding a tool means adding a subclass and listing it in the registry; the
orchestrator never switches on tool names.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
from abc import ABC, abstractmethod

from gerlens_core.errors import ResponseParseError, ServiceError

logger = logging.getLogger(__name__)

_RESPONSE_RE = re.compile(r"<response>(.*?)</response>", re.IGNORECASE | re.DOTALL)


def extract_response(raw_output: str) -> str:
    """Return the trimmed text inside the first <response> block.

    Raises ResponseParseError carrying the untouched output when no
    non-empty block is present.
    """
    match = _RESPONSE_RE.search(raw_output)
    if not match or not match.group(1):
        raise ResponseParseError("No <response> tag found in AI output", raw_output=raw_output)
    return match.group(1).strip()


class BaseTool(ABC):
    NAME: str = ""

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def is_available(self) -> bool:
        """Presence probe: is the executable on PATH?"""
        return shutil.which(self.NAME) is not None

    def run(self, prompt: str, payload: str) -> str:
        """Invoke the tool and return the extracted response text."""
        return self.extract_response(self.invoke(prompt, payload))

    def invoke(self, prompt: str, payload: str) -> str:
        """Run the tool once with prompt + payload on stdin and return stdout.

        Blocks until the process exits. No retries and no timeout: a hung
        tool hangs the caller.
        """
        argv = self.command()
        logger.debug("Invoking %s: %s (%d chars on stdin)", self.NAME, argv, len(prompt) + len(payload))
        try:
            result = subprocess.run(
                argv,
                input=f"{prompt}\n\n{payload}",
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ServiceError(f"Failed to run AI tool {self.NAME}: {e}", stderr=str(e)) from e

        if result.returncode != 0:
            raise ServiceError(
                f"AI tool {self.NAME} exited with code {result.returncode}: {result.stderr.strip()}",
                stderr=result.stderr,
                returncode=result.returncode,
            )
        return result.stdout

    def extract_response(self, raw_output: str) -> str:
        return extract_response(raw_output)

    # ------------------------------------------------------------------ #
    # Abstract — implement in each tool                                    #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def command(self) -> list[str]:
        """argv used to launch the tool; input always arrives on stdin."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.NAME!r})"
