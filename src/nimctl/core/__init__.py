"""Core utilities and shared components for nimctl."""

# Note: Import context lazily to avoid circular imports
# Use: from nimctl.core.context import NimCtlContext, pass_context
from nimctl.core.exceptions import ConfigError, K8sError, NimCtlError, TailError
from nimctl.core.output import OutputFormatter, console

__all__ = [
    "NimCtlError",
    "ConfigError",
    "K8sError",
    "TailError",
    "OutputFormatter",
    "console",
]
