"""Custom exceptions for nimctl."""

from typing import Any


class NimCtlError(Exception):
    """Base exception for all nimctl errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ConfigError(NimCtlError):
    """Configuration-related errors."""

    pass


class ValidationError(NimCtlError):
    """Input validation errors."""

    pass


class AuthenticationError(NimCtlError):
    """Authentication/authorization errors."""

    pass


class K8sError(NimCtlError):
    """Kubernetes API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code


class ResourceNotFoundError(NimCtlError):
    """A named custom resource does not exist."""

    def __init__(
        self,
        kind: str,
        name: str,
        namespace: str | None = None,
    ):
        if namespace:
            message = f"{kind} {name} not found in namespace {namespace}"
        else:
            message = f"{kind} {name} not found in any namespace"
        super().__init__(message)
        self.kind = kind
        self.name = name
        self.namespace = namespace


class TimeoutError(NimCtlError):
    """Operation timeout errors."""

    def __init__(
        self,
        message: str,
        timeout_seconds: float | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.timeout_seconds = timeout_seconds


class TailError(NimCtlError):
    """Base class for log/event tailing errors."""

    pass


class NoSourcesFound(TailError):
    """The label selector matched no pods."""

    def __init__(self, namespace: str, selector: str):
        super().__init__(f"no pods found in {namespace} (selector={selector!r})")
        self.namespace = namespace
        self.selector = selector


class EnumerationFailed(TailError):
    """Listing the pods behind a selector failed."""

    def __init__(self, namespace: str, selector: str, cause: Exception):
        super().__init__(f"failed to list pods in {namespace} (selector={selector!r}): {cause}")
        self.namespace = namespace
        self.selector = selector
        self.cause = cause


class SourceOpenFailed(TailError):
    """A single log stream, event list or event watch could not be opened."""

    def __init__(self, source: Any, cause: Exception, what: str = "stream"):
        super().__init__(f"error opening {what} for {source}: {cause}")
        self.source = source
        self.cause = cause


class SourceReadFailed(TailError):
    """A single source ended abnormally while being read."""

    def __init__(self, source: Any, cause: Exception):
        super().__init__(f"error reading {source}: {cause}")
        self.source = source
        self.cause = cause
