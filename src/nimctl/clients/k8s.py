"""Kubernetes client using the official kubernetes Python client."""

import json
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

from nimctl.config import K8sConfig
from nimctl.core.exceptions import AuthenticationError, K8sError
from nimctl.core.logging import StructuredLogger
from nimctl.core.utils import get_path
from nimctl.tail.models import CORE_V1, EVENTS_V1, PodContainerRef

logger = StructuredLogger(__name__)

NIM_GROUP = "apps.nvidia.com"
NIM_VERSION = "v1alpha1"
NIMCACHE_PLURAL = "nimcaches"
NIMSERVICE_PLURAL = "nimservices"

# Watch notifications that carry an actual event object.
_EVENT_NOTIFICATIONS = ("ADDED", "MODIFIED", "DELETED")


def _close_response(response: Any) -> None:
    """Close a streaming response, waking any thread blocked reading it."""
    # shutdown() interrupts a pending recv. urllib3 refuses it once the
    # connection is back in the pool, which happens when the body was read.
    shutdown = getattr(response, "shutdown", None)
    if shutdown is not None:
        try:
            shutdown()
        except (OSError, RuntimeError, ValueError) as e:
            logger.debug("Response not shut down", reason=e)
    try:
        response.close()
    finally:
        release = getattr(response, "release_conn", None)
        if release is not None:
            release()


class LogStream:
    """Continuous log stream of one container, yielding lines.

    ``close()`` may be called from another thread to stop a blocked read.
    """

    def __init__(self, response: Any, source: PodContainerRef):
        self._response = response
        self._closed = False
        self.source = source

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[str]:
        for raw in self._response:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8", errors="replace")
            yield raw.rstrip("\r\n")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        _close_response(self._response)


class EventWatch:
    """Live watch on the events of one pod, yielding event dicts.

    Runs on ``kubernetes.watch.Watch``, which reopens the watch from the last
    seen resource version when the API server ends it, and raises once that
    version has expired. ``close()`` may be called from another thread.
    """

    def __init__(
        self,
        list_events: Callable[..., Any],
        namespace: str,
        api: str,
        **kwargs: Any,
    ):
        from kubernetes import watch

        self.api = api
        self._list_events = list_events
        self._namespace = namespace
        self._kwargs = kwargs
        self._watch = watch.Watch()
        self._pending: Any = None
        self._response: Any = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> None:
        """Send the first watch request, so that a refused watch fails here."""
        self._pending = self._list_events(
            self._namespace, watch=True, _preload_content=False, **self._kwargs
        )

    def _request(self, namespace: str, **kwargs: Any) -> Any:
        if self._pending is not None:
            response, self._pending = self._pending, None
        else:
            logger.debug(
                "Reopening event watch",
                namespace=namespace,
                resource_version=kwargs.get("resource_version"),
            )
            response = self._list_events(namespace, **kwargs)
        self._response = response
        if self._closed:
            self._watch.stop()
            _close_response(response)
        return response

    def __iter__(self) -> Iterator[dict[str, Any]]:
        from kubernetes.client.rest import ApiException

        if self._closed:
            return
        try:
            for notification in self._watch.stream(
                self._request, self._namespace, **self._kwargs
            ):
                if not notification:
                    continue
                obj = notification.get("raw_object")
                version = get_path(obj, "metadata.resourceVersion")
                if version:
                    # Reconnects resume here, bookmarks included.
                    self._watch.resource_version = version
                kind = notification.get("type")
                if kind not in _EVENT_NOTIFICATIONS or not isinstance(obj, dict):
                    logger.debug("Skipping watch notification", type=kind)
                    continue
                yield obj
        except ApiException as e:
            raise K8sError(f"Event watch failed: {e.reason}", status_code=e.status)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._watch.stop()
        for response in (self._pending, self._response):
            if response is not None:
                _close_response(response)


@dataclass
class EventSnapshot:
    """Events listed for a pod plus the cursor to resume watching from."""

    api: str
    events: list[dict[str, Any]] = field(default_factory=list)
    resource_version: str | None = None


def pod_event_selector(pod: str, api: str) -> str:
    """Field selector matching the events that reference one pod."""
    if api == EVENTS_V1:
        return f"regarding.kind=Pod,regarding.name={pod}"
    return f"involvedObject.kind=Pod,involvedObject.name={pod}"


class K8sClient:
    """Client for Kubernetes API operations."""

    def __init__(
        self,
        config: K8sConfig,
        kubeconfig: str | None = None,
        context: str | None = None,
    ):
        self._config = config
        # Command-line overrides take precedence over environment and files.
        self._kubeconfig = kubeconfig
        self._context = context
        self._core_v1: Any = None
        self._events_v1: Any = None
        self._custom_objects: Any = None
        self._loaded = False

    def _load_config(self) -> None:
        """Load kubernetes configuration."""
        if self._loaded:
            return

        from kubernetes import config

        kubeconfig = self._kubeconfig or self._config.get_kubeconfig()
        context = self._context or self._config.get_context()

        try:
            if kubeconfig:
                config.load_kube_config(config_file=kubeconfig, context=context)
            else:
                # Try in-cluster config first, then default kubeconfig
                try:
                    config.load_incluster_config()
                except config.ConfigException:
                    config.load_kube_config(context=context)

            self._loaded = True
            logger.debug("Loaded k8s config", context=context)
        except Exception as e:
            raise AuthenticationError(f"Failed to load k8s config: {e}")

    @property
    def core_v1(self) -> Any:
        """Get CoreV1Api client (pods, logs, core events)."""
        if self._core_v1 is None:
            self._load_config()
            from kubernetes import client

            self._core_v1 = client.CoreV1Api()
        return self._core_v1

    @property
    def events_v1(self) -> Any:
        """Get EventsV1Api client (events.k8s.io/v1)."""
        if self._events_v1 is None:
            self._load_config()
            from kubernetes import client

            self._events_v1 = client.EventsV1Api()
        return self._events_v1

    @property
    def custom_objects(self) -> Any:
        """Get CustomObjectsApi client (NIMCache, NIMService)."""
        if self._custom_objects is None:
            self._load_config()
            from kubernetes import client

            self._custom_objects = client.CustomObjectsApi()
        return self._custom_objects

    @property
    def namespace(self) -> str:
        """Get default namespace."""
        return self._config.get_namespace()

    # Pod enumeration
    def list_pods(
        self,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> list[dict[str, Any]]:
        """List pods with their container names."""
        from kubernetes.client.rest import ApiException

        ns = namespace or self.namespace
        kwargs: dict[str, Any] = {"_request_timeout": self._config.request_timeout}
        if label_selector:
            kwargs["label_selector"] = label_selector

        try:
            pods = self.core_v1.list_namespaced_pod(ns, **kwargs)
        except ApiException as e:
            raise K8sError(f"Failed to list pods: {e.reason}", status_code=e.status)
        return [self._pod_to_dict(pod) for pod in pods.items]

    # Source opening
    def open_log_stream(
        self,
        source: PodContainerRef,
        follow: bool = True,
        timestamps: bool = False,
    ) -> LogStream:
        """Open a streaming read of one container's log."""
        from kubernetes.client.rest import ApiException

        kwargs: dict[str, Any] = {
            "follow": follow,
            "timestamps": timestamps,
            "_preload_content": False,
        }
        if source.container:
            kwargs["container"] = source.container

        try:
            response = self.core_v1.read_namespaced_pod_log(
                source.pod, source.namespace, **kwargs
            )
        except ApiException as e:
            raise K8sError(f"Failed to stream logs: {e.reason}", status_code=e.status)
        return LogStream(response, source)

    def list_pod_events(self, namespace: str, pod: str) -> EventSnapshot:
        """List the events referencing a pod.

        Prefers events.k8s.io/v1 and falls back wholly to core/v1 events if
        the newer API cannot be listed.
        """
        from kubernetes.client.rest import ApiException

        try:
            return self._list_events(EVENTS_V1, namespace, pod)
        except ApiException as e:
            logger.debug(
                "events.k8s.io/v1 unavailable, falling back to core/v1",
                pod=pod,
                reason=e.reason,
            )

        try:
            return self._list_events(CORE_V1, namespace, pod)
        except ApiException as e:
            raise K8sError(f"Failed to list events: {e.reason}", status_code=e.status)

    def _list_events(self, api: str, namespace: str, pod: str) -> EventSnapshot:
        api_client = self.events_v1 if api == EVENTS_V1 else self.core_v1
        response = api_client.list_namespaced_event(
            namespace,
            field_selector=pod_event_selector(pod, api),
            _preload_content=False,
            _request_timeout=self._config.request_timeout,
        )
        body = json.loads(response.data)
        return EventSnapshot(
            api=api,
            events=body.get("items") or [],
            resource_version=(body.get("metadata") or {}).get("resourceVersion"),
        )

    def watch_pod_events(
        self,
        namespace: str,
        pod: str,
        api: str = EVENTS_V1,
        resource_version: str | None = None,
    ) -> EventWatch:
        """Open a live watch on a pod's events, resuming at resource_version."""
        from kubernetes.client.rest import ApiException

        api_client = self.events_v1 if api == EVENTS_V1 else self.core_v1
        kwargs: dict[str, Any] = {
            "field_selector": pod_event_selector(pod, api),
            "allow_watch_bookmarks": True,
        }
        if resource_version:
            kwargs["resource_version"] = resource_version

        event_watch = EventWatch(api_client.list_namespaced_event, namespace, api, **kwargs)
        try:
            event_watch.open()
        except ApiException as e:
            raise K8sError(f"Failed to watch events: {e.reason}", status_code=e.status)
        return event_watch

    # NIM custom resources
    def list_nimcaches(
        self,
        namespace: str | None = None,
        name: str | None = None,
        all_namespaces: bool = False,
    ) -> list[dict[str, Any]]:
        """List NIMCache resources."""
        return self._list_custom(NIMCACHE_PLURAL, namespace, name, all_namespaces)

    def list_nimservices(
        self,
        namespace: str | None = None,
        name: str | None = None,
        all_namespaces: bool = False,
    ) -> list[dict[str, Any]]:
        """List NIMService resources."""
        return self._list_custom(NIMSERVICE_PLURAL, namespace, name, all_namespaces)

    def _list_custom(
        self,
        plural: str,
        namespace: str | None,
        name: str | None,
        all_namespaces: bool,
    ) -> list[dict[str, Any]]:
        from kubernetes.client.rest import ApiException

        kwargs: dict[str, Any] = {"_request_timeout": self._config.request_timeout}
        if name:
            kwargs["field_selector"] = f"metadata.name={name}"

        ns = namespace or self.namespace
        try:
            if all_namespaces:
                result = self.custom_objects.list_cluster_custom_object(
                    NIM_GROUP, NIM_VERSION, plural, **kwargs
                )
            else:
                result = self.custom_objects.list_namespaced_custom_object(
                    NIM_GROUP, NIM_VERSION, ns, plural, **kwargs
                )
        except ApiException as e:
            where = "all namespaces" if all_namespaces else f"namespace {ns}"
            raise K8sError(
                f"Unable to retrieve {plural} for {where}: {e.reason}",
                status_code=e.status,
            )
        return result.get("items", [])

    def create_nimservice(self, namespace: str, body: dict[str, Any]) -> dict[str, Any]:
        """Create a NIMService resource."""
        from kubernetes.client.rest import ApiException

        name = body.get("metadata", {}).get("name")
        try:
            return self.custom_objects.create_namespaced_custom_object(
                NIM_GROUP, NIM_VERSION, namespace, NIMSERVICE_PLURAL, body,
                _request_timeout=self._config.request_timeout,
            )
        except ApiException as e:
            raise K8sError(
                f"Failed to create NIMService {namespace}/{name}: {e.reason}",
                status_code=e.status,
            )

    def _pod_to_dict(self, pod: Any) -> dict[str, Any]:
        """Convert Pod object to dictionary."""
        spec = pod.spec
        return {
            "name": pod.metadata.name,
            "namespace": pod.metadata.namespace,
            "status": pod.status.phase if pod.status else None,
            "containers": [c.name for c in (spec.containers if spec else None) or []],
        }
