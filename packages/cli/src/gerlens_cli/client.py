"""Gerrit client construction shared by all commands.

Lives in the CLI so gerlens_core never needs to know where credentials come
from.
"""

from __future__ import annotations

import click

from gerlens_cli.auth import resolve_credentials
from gerlens_core.gerrit.client import GerritClient


def build_client(config: dict) -> GerritClient:
    credentials = resolve_credentials(config)
    if credentials is None:
        raise click.UsageError(
            "No Gerrit credentials found. Set GERRIT_HOST, GERRIT_USERNAME and GERRIT_PASSWORD, "
            "or add host/username to .gerlens.yml and store the password in a git credential helper."
        )
    return GerritClient(credentials.host, credentials.username, credentials.password)


def get_client(ctx: click.Context) -> GerritClient:
    """Build one client per invocation and close it when the CLI exits."""
    root = ctx.find_root()
    root.ensure_object(dict)
    if root.obj.get("client") is None:
        client = build_client(root.obj.get("config", {}))
        root.obj["client"] = client
        root.call_on_close(client.close)
    return root.obj["client"]
