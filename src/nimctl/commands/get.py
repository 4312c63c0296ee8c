"""'get' commands: list NIMCaches and NIMServices."""

import click

from nimctl.core.context import NimCtlContext, pass_context
from nimctl.core.exceptions import NimCtlError
from nimctl.core.output import OutputFormat
from nimctl.resources import nimcache, nimservice
from nimctl.resources.fetch import fetch_resources


@click.group()
def get() -> None:
    """Display one or many NIM resources.

    \b
    Examples:
        nimctl get nimservice
        nimctl get nimservice meta-llama3-8b -n nim-service
        nimctl get nimcache -A
    """
    pass


@get.command("nimcache")
@click.argument("name", required=False)
@click.option("-A", "--all-namespaces", is_flag=True, help="List across all namespaces")
@pass_context
def get_nimcache(ctx: NimCtlContext, name: str | None, all_namespaces: bool) -> None:
    """List NIMCaches, or a single NIMCache by name."""
    try:
        items = fetch_resources(ctx.k8s, "nimcache", ctx.namespace, name, all_namespaces)
        if ctx.output_format != OutputFormat.TABLE:
            ctx.output.print_data(items)
            return
        rows = [nimcache.to_row(item) for item in items]
        ctx.output.print_data(rows, headers=nimcache.GET_HEADERS)
    except NimCtlError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()


@get.command("nimservice")
@click.argument("name", required=False)
@click.option("-A", "--all-namespaces", is_flag=True, help="List across all namespaces")
@pass_context
def get_nimservice(ctx: NimCtlContext, name: str | None, all_namespaces: bool) -> None:
    """List NIMServices, or a single NIMService by name."""
    try:
        items = fetch_resources(ctx.k8s, "nimservice", ctx.namespace, name, all_namespaces)
        if ctx.output_format != OutputFormat.TABLE:
            ctx.output.print_data(items)
            return
        rows = [nimservice.to_row(item) for item in items]
        ctx.output.print_data(rows, headers=nimservice.GET_HEADERS)
    except NimCtlError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()
