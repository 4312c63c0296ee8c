"""'status' commands: condition summaries of NIMCaches and NIMServices."""

import click

from nimctl.core.context import NimCtlContext, pass_context
from nimctl.core.exceptions import NimCtlError
from nimctl.resources import nimcache, nimservice
from nimctl.resources.fetch import fetch_resources


@click.group()
def status() -> None:
    """Show the state and latest condition of NIM resources.

    \b
    Examples:
        nimctl status nimservice
        nimctl status nimcache meta-llama3-8b-cache
    """
    pass


@status.command("nimcache")
@click.argument("name", required=False)
@click.option("-A", "--all-namespaces", is_flag=True, help="List across all namespaces")
@pass_context
def status_nimcache(ctx: NimCtlContext, name: str | None, all_namespaces: bool) -> None:
    """Show NIMCache status; a single named NIMCache includes its profiles."""
    try:
        items = fetch_resources(ctx.k8s, "nimcache", ctx.namespace, name, all_namespaces)
        if name and len(items) == 1:
            ctx.output.print_paragraph(nimcache.to_paragraph(items[0]))
            return
        rows = [nimcache.to_status_row(item) for item in items]
        ctx.output.print_data(rows, headers=nimcache.STATUS_HEADERS)
    except NimCtlError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()


@status.command("nimservice")
@click.argument("name", required=False)
@click.option("-A", "--all-namespaces", is_flag=True, help="List across all namespaces")
@pass_context
def status_nimservice(ctx: NimCtlContext, name: str | None, all_namespaces: bool) -> None:
    """Show NIMService status."""
    try:
        items = fetch_resources(ctx.k8s, "nimservice", ctx.namespace, name, all_namespaces)
        rows = [nimservice.to_status_row(item) for item in items]
        ctx.output.print_data(rows, headers=nimservice.STATUS_HEADERS)
    except NimCtlError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()
