"""Pytest fixtures for nimctl tests."""

import json
import os
from typing import Generator
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from nimctl.config import (
    DeployConfig,
    K8sConfig,
    NimCtlConfig,
    ProfileConfig,
    TailConfig,
)
from nimctl.core.context import NimCtlContext
from nimctl.core.output import OutputFormat


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner."""
    return CliRunner()


@pytest.fixture
def mock_config() -> NimCtlConfig:
    """Create a mock configuration."""
    return NimCtlConfig(
        profiles={
            "default": ProfileConfig(
                k8s=K8sConfig(namespace="nim-service"),
                tail=TailConfig(),
                deploy=DeployConfig(),
            )
        }
    )


@pytest.fixture
def mock_context(mock_config: NimCtlConfig) -> NimCtlContext:
    """Create a mock nimctl context."""
    return NimCtlContext(
        config=mock_config,
        profile="default",
        output_format=OutputFormat.TABLE,
        verbose=0,
        quiet=False,
        color=False,
    )


@pytest.fixture
def mock_k8s_apis() -> Generator[dict[str, MagicMock], None, None]:
    """Mock the kubernetes API classes and config loading."""
    with patch("kubernetes.client.CoreV1Api") as mock_core, \
         patch("kubernetes.client.EventsV1Api") as mock_events, \
         patch("kubernetes.client.CustomObjectsApi") as mock_custom, \
         patch("kubernetes.config.load_incluster_config"), \
         patch("kubernetes.config.load_kube_config"):
        apis = {
            "core": MagicMock(),
            "events": MagicMock(),
            "custom": MagicMock(),
        }
        mock_core.return_value = apis["core"]
        mock_events.return_value = apis["events"]
        mock_custom.return_value = apis["custom"]
        yield apis


@pytest.fixture
def mock_k8s() -> Generator[MagicMock, None, None]:
    """Replace the client built by the CLI context."""
    client = MagicMock()
    with patch("nimctl.clients.k8s.K8sClient", return_value=client):
        yield client


@pytest.fixture(autouse=True)
def clean_env(tmp_path, monkeypatch) -> Generator[None, None, None]:
    """Clean environment variables and config files before each test."""
    env_vars = [
        "NIMCTL_KUBECONFIG",
        "NIMCTL_CONTEXT",
        "NIMCTL_NAMESPACE",
        "NIMCTL_PROFILE",
        "NIMCTL_CONFIG",
        "KUBECONFIG",
    ]

    original = {k: os.environ.get(k) for k in env_vars}

    # Remove vars for clean test
    for k in env_vars:
        os.environ.pop(k, None)

    # Keep ~/.nimctl and any nimctl.yaml above the repo out of the picture
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)

    yield

    # Restore original values
    for k, v in original.items():
        if v is not None:
            os.environ[k] = v
        else:
            os.environ.pop(k, None)


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary config file."""
    config_content = """
version: "1"
global:
  output_format: table
profiles:
  default:
    k8s:
      namespace: nim-service
    tail:
      buffer_size: 16
  staging:
    k8s:
      namespace: staging
    deploy:
      pull_policy: Always
      gpu_limit: "2"
"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(config_content)
    return str(config_file)


class StreamingResponse:
    """Stands in for a urllib3 response read with _preload_content=False."""

    def __init__(self, chunks):
        self.chunks = list(chunks)
        self.closed = False
        self.released = False

    def __iter__(self):
        return iter(self.chunks)

    def stream(self, amt=None, decode_content=None):
        return iter(self.chunks)

    def close(self):
        self.closed = True

    def release_conn(self):
        self.released = True


@pytest.fixture
def watch_response():
    """Build a watch response body carrying one JSON notification per line."""

    def build(*notifications) -> StreamingResponse:
        return StreamingResponse(json.dumps(n).encode() + b"\n" for n in notifications)

    return build
