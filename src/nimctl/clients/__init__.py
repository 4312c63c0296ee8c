"""API clients for the Kubernetes cluster."""

from nimctl.clients.k8s import K8sClient

__all__ = ["K8sClient"]
