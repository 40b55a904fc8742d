"""Gerrit credential resolution with git credential helper fallback.

Resolution order for each piece (stops at first success):
  host, username:  GERRIT_HOST / GERRIT_USERNAME, then .gerlens.yml
  password:        GERRIT_PASSWORD, then `git credential fill` for the host

The git fallback means anyone who already pushes to Gerrit over HTTPS with a
credential helper can review without exporting a password.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


@dataclass
class GerritCredentials:
    host: str
    username: str
    password: str


def _git_credential_fill(host: str, username: str | None) -> tuple[str | None, str | None]:
    """Ask git's credential helpers for (username, password). Never raises."""
    parsed = urlparse(host)
    request = f"protocol={parsed.scheme or 'https'}\nhost={parsed.netloc or parsed.path}\n"
    if username:
        request += f"username={username}\n"
    try:
        result = subprocess.run(
            ["git", "credential", "fill"],
            input=request + "\n",
            capture_output=True,
            text=True,
            timeout=5,
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        # git is not installed or the helper hung.
        return None, None
    if result.returncode != 0:
        return None, None

    fields = dict(line.split("=", 1) for line in result.stdout.splitlines() if "=" in line)
    return fields.get("username"), fields.get("password")


def resolve_credentials(config: dict) -> GerritCredentials | None:
    """Return Gerrit credentials or None if any piece is missing.

    Never raises. Callers check for None and emit a UsageError.
    """
    host = config.get("host")
    if not host:
        return None
    host = host.rstrip("/")
    username = config.get("username")
    password = config.get("password")

    if not password:
        helper_user, helper_password = _git_credential_fill(host, username)
        if helper_password:
            logger.debug("Resolved Gerrit password via git credential helper.")
            password = helper_password
            username = username or helper_user

    if not username or not password:
        return None
    return GerritCredentials(host=host, username=username, password=password)
