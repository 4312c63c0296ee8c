"""'deploy' commands: create NIM resources from flags."""

import click

from nimctl.core.context import NimCtlContext, pass_context
from nimctl.core.exceptions import NimCtlError
from nimctl.core.output import OutputFormat, OutputFormatter
from nimctl.resources.nimservice import build_nimservice


@click.group()
def deploy() -> None:
    """Create NIM resources.

    \b
    Examples:
        nimctl deploy nimservice llama --image-repository nvcr.io/nim/meta/llama3-8b-instruct \\
            --tag 1.0.3 --nimcache-storage llama-cache
    """
    pass


@deploy.command("nimservice")
@click.argument("name")
@click.option("--image-repository", default=None, help="Repository to pull the image from")
@click.option("--tag", default=None, help="Image tag")
@click.option("--nimcache-storage", default=None, help="NIMCache to use for model storage")
@click.option("--pvc-storage", default=None, help="Existing PVC to use for model storage")
@click.option("--dry-run", is_flag=True, help="Print the manifest without creating it")
@pass_context
def deploy_nimservice(
    ctx: NimCtlContext,
    name: str,
    image_repository: str | None,
    tag: str | None,
    nimcache_storage: str | None,
    pvc_storage: str | None,
    dry_run: bool,
) -> None:
    """Create a NIMService."""
    namespace = ctx.namespace
    try:
        body = build_nimservice(
            name,
            namespace,
            image_repository,
            tag,
            nimcache_storage=nimcache_storage,
            pvc_storage=pvc_storage,
            defaults=ctx.profile.deploy,
        )

        if dry_run:
            formatter = ctx.output
            if formatter.format == OutputFormat.TABLE:
                formatter = OutputFormatter(OutputFormat.YAML, color=formatter.color)
            formatter.print_data(body)
            return

        ctx.k8s.create_nimservice(namespace, body)
        ctx.output.print_success(f'NIMService "{name}" created in namespace "{namespace}"')
    except NimCtlError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()
