"""status command — check that gerlens can reach and authenticate to Gerrit."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from gerlens_cli.client import get_client

console = Console()


@click.command("status")
@click.option("--xml", "as_xml", is_flag=True, help="Print the result as XML.")
@click.pass_context
def status_cmd(ctx, as_xml: bool):
    """Check the connection to the configured Gerrit server."""
    client = get_client(ctx)
    connected = client.test_connection()

    if as_xml:
        click.echo('<?xml version="1.0" encoding="UTF-8"?>')
        click.echo("<status_result>")
        click.echo(f"  <connected>{str(connected).lower()}</connected>")
        click.echo("</status_result>")
    elif connected:
        console.print(f"[green]✓ Connected to {escape(client.host)}[/green]")
    else:
        console.print(f"[red]✗ Failed to connect to {escape(client.host)}[/red]")
        console.print("Please check your credentials and network connection.")

    if not connected:
        ctx.exit(1)
