"""Main CLI entry point for nimctl."""

import sys
from typing import Any

import click
from rich.console import Console

from nimctl import __version__
from nimctl.config import load_config
from nimctl.core.context import NimCtlContext
from nimctl.core.output import OutputFormat
from nimctl.core.exceptions import NimCtlError, ConfigError


CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
}


class OutputFormatType(click.ParamType):
    """Custom Click parameter type for output format."""

    name = "format"

    def convert(
        self,
        value: Any,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> OutputFormat:
        if isinstance(value, OutputFormat):
            return value
        try:
            return OutputFormat(value.lower())
        except ValueError:
            self.fail(
                f"Invalid format '{value}'. Choose from: table, json, yaml, raw",
                param,
                ctx,
            )


OUTPUT_FORMAT = OutputFormatType()


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    console = Console()
    console.print(f"nimctl version {__version__}")
    ctx.exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-n",
    "--namespace",
    metavar="NAMESPACE",
    help="Namespace to operate in (default from profile, then 'default')",
)
@click.option(
    "--kubeconfig",
    type=click.Path(),
    metavar="FILE",
    help="Path to the kubeconfig file",
)
@click.option(
    "--context",
    "kube_context",
    metavar="NAME",
    help="Kubeconfig context to use",
)
@click.option(
    "-p",
    "--profile",
    metavar="NAME",
    envvar="NIMCTL_PROFILE",
    help="Configuration profile to use",
)
@click.option(
    "-o",
    "--output",
    "output_format",
    type=OUTPUT_FORMAT,
    metavar="FORMAT",
    help="Output format: table, json, yaml, raw",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for info, -vv for debug)",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Suppress non-essential output",
)
@click.option(
    "--no-color",
    is_flag=True,
    help="Disable colored output",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True),
    metavar="FILE",
    envvar="NIMCTL_CONFIG",
    help="Path to config file",
)
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit",
)
@click.pass_context
def cli(
    ctx: click.Context,
    namespace: str | None,
    kubeconfig: str | None,
    kube_context: str | None,
    profile: str | None,
    output_format: OutputFormat | None,
    verbose: int,
    quiet: bool,
    no_color: bool,
    config_file: str | None,
) -> None:
    """nimctl - manage NVIDIA NIM Operator resources.

    Inspect NIMCaches and NIMServices, follow the logs and events of the
    pods behind them, and deploy new NIMServices.

    \b
    Examples:
        nimctl get nimservice -A
        nimctl status nimcache my-cache
        nimctl log nimservice my-service --events
        nimctl deploy nimservice my-service --image-repository REPO --tag TAG --pvc-storage PVC

    \b
    Configuration:
        ~/.nimctl/config.yaml    User configuration
        ./nimctl.yaml            Project configuration
        NIMCTL_*                 Environment variables
    """
    try:
        config = load_config(config_file, profile)

        ctx.obj = NimCtlContext(
            config=config,
            profile=profile,
            output_format=output_format,
            namespace=namespace,
            kubeconfig=kubeconfig,
            kube_context=kube_context,
            verbose=verbose,
            quiet=quiet,
            color=False if no_color else None,
        )

    except ConfigError as e:
        console = Console(stderr=True)
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)


def register_commands() -> None:
    """Register all command groups, with their kubectl-style aliases."""
    from nimctl.commands.get import get
    from nimctl.commands.status import status
    from nimctl.commands.log import log
    from nimctl.commands.deploy import deploy

    cli.add_command(get)
    cli.add_command(get, name="list")
    cli.add_command(status)
    cli.add_command(log)
    cli.add_command(log, name="logs")
    cli.add_command(deploy)
    cli.add_command(deploy, name="create")


register_commands()


@cli.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show current configuration."""
    nimctl_ctx: NimCtlContext = ctx.obj
    profile = nimctl_ctx.profile
    config_data: dict[str, Any] = {
        "profile": nimctl_ctx.profile_name,
        "output_format": nimctl_ctx.output_format.value,
        "verbose": nimctl_ctx.verbose,
        "namespace": nimctl_ctx.namespace,
        "k8s.kubeconfig": profile.k8s.get_kubeconfig(),
        "k8s.context": profile.k8s.get_context(),
    }
    for section in ("tail", "deploy"):
        for key, value in getattr(profile, section).model_dump().items():
            config_data[f"{section}.{key}"] = value
    nimctl_ctx.output.print_paragraph(config_data)


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except NimCtlError as e:
        console = Console(stderr=True)
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console = Console(stderr=True)
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
