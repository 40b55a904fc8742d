"""Ordered tool detection.

CANDIDATE_TOOLS is also the order of preference when auto-detecting.
"""

from __future__ import annotations

import logging

from gerlens_core.errors import ToolNotFoundError
from gerlens_core.providers.base import BaseTool
from gerlens_core.providers.claude import ClaudeTool
from gerlens_core.providers.gemini import GeminiTool
from gerlens_core.providers.llm import LlmTool
from gerlens_core.providers.opencode import OpencodeTool

logger = logging.getLogger(__name__)

CANDIDATE_TOOLS: list[type[BaseTool]] = [ClaudeTool, LlmTool, OpencodeTool, GeminiTool]


def tool_names() -> list[str]:
    return [cls.NAME for cls in CANDIDATE_TOOLS]


def detect_tool(preferred: str | None = None) -> BaseTool:
    """Return the first installed tool, or ``preferred`` if it is installed."""
    candidates = CANDIDATE_TOOLS
    if preferred:
        candidates = [cls for cls in CANDIDATE_TOOLS if cls.NAME == preferred]
        if not candidates:
            raise ValueError(f"Unknown AI tool: {preferred!r}. Choose one of: {', '.join(tool_names())}.")

    for cls in candidates:
        tool = cls()
        if tool.is_available():
            logger.debug("Detected AI tool: %s", tool.NAME)
            return tool
        logger.debug("AI tool not found on PATH: %s", cls.NAME)

    names = ", ".join(cls.NAME for cls in candidates)
    raise ToolNotFoundError(f"No AI tool found. Please install one of: {names}.")
