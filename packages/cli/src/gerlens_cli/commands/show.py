"""show command — print everything gerlens knows about a change."""

from __future__ import annotations

import click

from gerlens_cli.client import get_client
from gerlens_core.errors import GerritApiError
from gerlens_core.snapshot import build_snapshot, render_narrative, render_structured


@click.command("show")
@click.argument("change_id")
@click.option("--xml", "as_xml", is_flag=True, help="Print the structured XML view the AI tool receives.")
@click.pass_context
def show_cmd(ctx, change_id: str, as_xml: bool):
    """Show a change's details, diff, inline comments and review activity."""
    client = get_client(ctx)
    try:
        snapshot = build_snapshot(client, change_id)
    except GerritApiError as e:
        raise click.ClickException(f"Failed to fetch change {change_id}: {e}")

    # Plain echo: both views contain brackets that rich would read as markup.
    click.echo(render_structured(snapshot) if as_xml else render_narrative(snapshot))
