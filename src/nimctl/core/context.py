"""Click context object for sharing state across commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from nimctl.config import NimCtlConfig, ProfileConfig, get_default_config
from nimctl.core.logging import StructuredLogger, level_for_flags, setup_logging
from nimctl.core.output import OutputFormat, OutputFormatter

if TYPE_CHECKING:
    from nimctl.clients.k8s import K8sClient


class NimCtlContext:
    """Shared context object for nimctl commands.

    This object is passed through Click's context mechanism and provides
    access to configuration, the Kubernetes client, and output.
    """

    def __init__(
        self,
        config: NimCtlConfig | None = None,
        profile: str | None = None,
        output_format: OutputFormat | None = None,
        namespace: str | None = None,
        kubeconfig: str | None = None,
        kube_context: str | None = None,
        verbose: int = 0,
        quiet: bool = False,
        color: bool | None = None,
    ):
        self._config = config or get_default_config()
        self._profile_name = profile or "default"

        # Output settings (CLI overrides config)
        self._output_format = output_format or self._config.global_settings.output_format
        self._verbose = verbose
        self._quiet = quiet
        # --no-color wins; otherwise the configured mode (auto, always, never).
        color_mode = self._config.global_settings.color
        self._color = color if color is not None else color_mode != "never"

        # Connection overrides from the command line
        self._namespace = namespace
        self._kubeconfig = kubeconfig
        self._kube_context = kube_context

        log_level = level_for_flags(verbose, quiet, self._config.global_settings.verbosity)
        setup_logging(log_level, color=self._color)
        self._logger = StructuredLogger("context")

        self._output = OutputFormatter(
            format=self._output_format,
            color=self._color,
            quiet=quiet,
            force_color=color is None and color_mode == "always",
        )

        self._k8s_client: K8sClient | None = None

    @property
    def config(self) -> NimCtlConfig:
        """Get the loaded configuration."""
        return self._config

    @property
    def profile(self) -> ProfileConfig:
        """Get the current profile configuration."""
        return self._config.get_profile(self._profile_name)

    @property
    def profile_name(self) -> str:
        return self._profile_name

    @property
    def namespace(self) -> str:
        """Namespace from --namespace, else NIMCTL_NAMESPACE or the profile."""
        return self._namespace or self.profile.k8s.get_namespace()

    @property
    def output(self) -> OutputFormatter:
        return self._output

    @property
    def output_format(self) -> OutputFormat:
        return self._output_format

    @property
    def verbose(self) -> int:
        return self._verbose

    @property
    def quiet(self) -> bool:
        return self._quiet

    @property
    def color(self) -> bool:
        return self._color

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    @property
    def k8s(self) -> "K8sClient":
        """Get or create the Kubernetes client."""
        if self._k8s_client is None:
            from nimctl.clients.k8s import K8sClient

            self._k8s_client = K8sClient(
                self.profile.k8s,
                kubeconfig=self._kubeconfig,
                context=self._kube_context,
            )
        return self._k8s_client


# Click decorator for passing context
pass_context = click.make_pass_decorator(NimCtlContext, ensure=True)
