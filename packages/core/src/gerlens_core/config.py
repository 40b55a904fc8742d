import logging
import os
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "host": None,  # Gerrit base URL, e.g. https://gerrit.example.com
    "username": None,
    "ai_tool": None,  # None = auto-detect; or one of claude, llm, opencode, gemini
    "prompt": None,  # None = use built-in default; set to a path string to override
    "context_lines": 2,
}

BUILTIN_PROMPTS_DIR = Path(__file__).parent / "prompts"
_BUILTIN_DEFAULT = BUILTIN_PROMPTS_DIR / "default_review.md"
_INLINE_SYSTEM_PROMPT = BUILTIN_PROMPTS_DIR / "inline_review.md"
_OVERALL_SYSTEM_PROMPT = BUILTIN_PROMPTS_DIR / "overall_review.md"


def load_config(config_path: str = ".gerlens.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .gerlens.yml in the current directory
      3. CLI argument overrides
      4. GERRIT_* environment variables (credentials only)
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path).expanduser()
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Environment wins for credentials so CI can override a checked-in file.
    config["host"] = os.environ.get("GERRIT_HOST") or config.get("host")
    config["username"] = os.environ.get("GERRIT_USERNAME") or config.get("username")
    config["password"] = os.environ.get("GERRIT_PASSWORD")

    return config


def _read_prompt_file(path: str) -> str | None:
    p = Path(path).expanduser()
    try:
        return p.read_text(encoding="utf-8")
    except OSError as e:
        logger.debug("Could not read prompt file %s: %s", p, e)
        return None


def load_review_prompt(config: dict, prompt_path: str | None = None) -> tuple[str, bool]:
    """
    Load the reviewer instructions shared by both review stages.

    ``prompt_path`` (from --prompt) takes precedence over ``prompt`` in config.
    An unreadable custom file falls back to the built-in default with a
    warning rather than aborting the review.

    Returns (prompt text, whether the custom prompt was used).
    """
    custom_path = prompt_path or config.get("prompt")
    if custom_path:
        custom = _read_prompt_file(custom_path)
        if custom is not None:
            return custom, True
        logger.warning("Could not read custom prompt file %s; using the default review prompt.", custom_path)

    if not _BUILTIN_DEFAULT.exists():
        raise FileNotFoundError("No review prompt configured and built-in default is missing.")
    return _BUILTIN_DEFAULT.read_text(encoding="utf-8"), False


def load_stage_prompts(review_prompt: str) -> tuple[str, str]:
    """Combine the review prompt with each stage's output instructions.

    Returns (inline prompt, overall prompt).
    """
    inline = _INLINE_SYSTEM_PROMPT.read_text(encoding="utf-8")
    overall = _OVERALL_SYSTEM_PROMPT.read_text(encoding="utf-8")
    return f"{review_prompt}\n\n{inline}", f"{review_prompt}\n\n{overall}"
