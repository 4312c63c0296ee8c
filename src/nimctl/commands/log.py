"""'log' commands: stream logs or events of the pods behind a NIM resource."""

import sys

import click

from nimctl.core.async_utils import run_sync
from nimctl.core.context import NimCtlContext, pass_context
from nimctl.core.exceptions import NimCtlError, TimeoutError
from nimctl.core.utils import parse_duration
from nimctl.tail import tail_events, tail_logs


@click.group()
def log() -> None:
    """Stream logs or events from the pods of a NIM resource.

    Lines from every pod and container are interleaved as they arrive and
    prefixed with their origin.

    \b
    Examples:
        nimctl log nimservice meta-llama3-8b
        nimctl log nimservice meta-llama3-8b --events
        nimctl log nimcache meta-llama3-8b-cache --no-follow
    """
    pass


def _tail_options(func):
    options = [
        click.argument("name"),
        click.option("--events", is_flag=True, help="Stream pod events instead of logs"),
        click.option("-c", "--container", default=None, help="Only this container of each pod"),
        click.option(
            "--timestamps/--no-timestamps", default=None, help="Include log timestamps"
        ),
        click.option("--no-follow", is_flag=True, help="Print existing logs and exit"),
        click.option("-l", "--selector", default=None, help="Override the pod label selector"),
        click.option("--timeout", default=None, help="Stop after a duration (e.g. 30s, 5m)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@log.command("nimcache")
@_tail_options
@pass_context
def log_nimcache(ctx: NimCtlContext, name: str, **kwargs) -> None:
    """Stream logs of the caching job of a NIMCache."""
    _run_tail(ctx, name, ctx.profile.tail.nimcache_selector, **kwargs)


@log.command("nimservice")
@_tail_options
@pass_context
def log_nimservice(ctx: NimCtlContext, name: str, **kwargs) -> None:
    """Stream logs of the pods serving a NIMService."""
    _run_tail(ctx, name, ctx.profile.tail.nimservice_selector, **kwargs)


def _run_tail(
    ctx: NimCtlContext,
    name: str,
    selector_template: str,
    events: bool,
    container: str | None,
    timestamps: bool | None,
    no_follow: bool,
    selector: str | None,
    timeout: str | None,
) -> None:
    tail_config = ctx.profile.tail
    namespace = ctx.namespace
    label_selector = selector or selector_template.format(name=name)

    timeout_seconds = None
    if timeout:
        try:
            timeout_seconds = parse_duration(timeout).total_seconds()
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--timeout")

    try:
        if events:
            coro = tail_events(
                ctx.k8s,
                namespace,
                label_selector,
                ctx.output.print_line,
                error_sink=ctx.output.print_warning,
                buffer_size=tail_config.buffer_size,
            )
        else:
            coro = tail_logs(
                ctx.k8s,
                namespace,
                label_selector,
                ctx.output.print_line,
                container=container,
                follow=tail_config.follow and not no_follow,
                timestamps=tail_config.timestamps if timestamps is None else timestamps,
                error_sink=ctx.output.print_warning,
                buffer_size=tail_config.buffer_size,
            )

        ctx.logger.debug("Tailing", namespace=namespace, selector=label_selector, events=events)
        run_sync(coro, timeout=timeout_seconds, timeout_message=f"Stopped streaming after {timeout}")

    except TimeoutError as e:
        # A bounded tail ends normally.
        ctx.logger.info(str(e))
    except KeyboardInterrupt:
        sys.exit(130)
    except NimCtlError as e:
        ctx.output.print_error(str(e))
        raise click.Abort()
