"""Table views of NIMService resources and the manifest built by 'deploy'."""

from datetime import datetime
from typing import Any

from nimctl.config import DeployConfig
from nimctl.core.exceptions import ValidationError
from nimctl.core.utils import format_age, get_path
from nimctl.resources.conditions import message_condition

KIND = "NIMService"
API_VERSION = "apps.nvidia.com/v1alpha1"

GET_HEADERS = [
    "Name",
    "Namespace",
    "Image",
    "Expose Service",
    "Replicas",
    "Scale",
    "Storage",
    "Resources",
    "State",
    "Age",
]

STATUS_HEADERS = [
    "Name",
    "Namespace",
    "State",
    "Available Replicas",
    "Type/Status",
    "Last Transition Time",
    "Message",
    "Age",
]


def get_image(nimservice: dict[str, Any]) -> str:
    repository = get_path(nimservice, "spec.image.repository", "")
    tag = get_path(nimservice, "spec.image.tag", "")
    return f"{repository} {tag}".strip()


def get_expose(nimservice: dict[str, Any]) -> str:
    name = get_path(nimservice, "spec.expose.service.name", "")
    port = get_path(nimservice, "spec.expose.service.port", 0)
    if port and name:
        return f"Name: {name}, Port: {port}"
    if port:
        return f"Port: {port}"
    return ""


def get_scale(nimservice: dict[str, Any]) -> str:
    if not get_path(nimservice, "spec.scale.enabled", False):
        return "disabled"
    hpa = get_path(nimservice, "spec.scale.hpa", {})
    max_replicas = hpa.get("maxReplicas", 0)
    if hpa.get("minReplicas") is not None:
        return f"min: {hpa['minReplicas']}, max: {max_replicas}"
    return f"max: {max_replicas}"


def get_storage(nimservice: dict[str, Any]) -> str:
    """One of the NIMCache, PVC or hostPath storage sources."""
    storage = get_path(nimservice, "spec.storage", {})
    nimcache = storage.get("nimCache") or {}
    if nimcache:
        return f"NIMCache: name: {nimcache.get('name', '')}, profile: {nimcache.get('profile', '')}"

    pvc = storage.get("pvc") or {}
    if pvc:
        if pvc.get("name"):
            return f"PVC: {pvc['name']}, {pvc.get('size', '')}"
        return f"PVC: {pvc.get('size', '')}"

    if storage.get("hostPath"):
        return f"HostPath: {storage['hostPath']}"
    return ""


def resource_list_to_one_line(resources: dict[str, Any]) -> str:
    return ", ".join(f"{key}: {resources[key]}" for key in sorted(resources))


def claims_to_one_line(claims: list[dict[str, Any]]) -> str:
    return ", ".join(f"{c.get('name', '')}({c.get('request', '')})" for c in claims)


def get_resources(nimservice: dict[str, Any]) -> str:
    resources = get_path(nimservice, "spec.resources", {})
    lines = []
    if resources.get("limits"):
        lines.append(f"Limits: {resource_list_to_one_line(resources['limits'])}")
    if resources.get("requests"):
        lines.append(f"Requests: {resource_list_to_one_line(resources['requests'])}")
    if resources.get("claims"):
        lines.append(f"Claims: {claims_to_one_line(resources['claims'])}")
    return "\n".join(lines)


def to_row(nimservice: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Row for 'nimctl get nimservice'."""
    metadata = nimservice.get("metadata", {})
    return {
        "Name": metadata.get("name", ""),
        "Namespace": metadata.get("namespace", ""),
        "Image": get_image(nimservice),
        "Expose Service": get_expose(nimservice),
        "Replicas": get_path(nimservice, "spec.replicas", 0),
        "Scale": get_scale(nimservice),
        "Storage": get_storage(nimservice),
        "Resources": get_resources(nimservice),
        "State": get_path(nimservice, "status.state", ""),
        "Age": format_age(metadata.get("creationTimestamp"), now),
    }


def to_status_row(nimservice: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Row for 'nimctl status nimservice'."""
    metadata = nimservice.get("metadata", {})
    condition = message_condition(nimservice)
    return {
        "Name": metadata.get("name", ""),
        "Namespace": metadata.get("namespace", ""),
        "State": get_path(nimservice, "status.state", ""),
        "Available Replicas": get_path(nimservice, "status.availableReplicas", 0),
        "Type/Status": condition.type_status,
        "Last Transition Time": condition.last_transition_time,
        "Message": condition.message,
        "Age": format_age(metadata.get("creationTimestamp"), now),
    }


def validate_deploy_options(
    image_repository: str | None,
    tag: str | None,
    nimcache_storage: str | None,
    pvc_storage: str | None,
) -> None:
    """Check the flags 'deploy nimservice' cannot do without."""
    if not nimcache_storage and not pvc_storage:
        raise ValidationError("NIMService's storage source must be provided")
    if nimcache_storage and pvc_storage:
        raise ValidationError("Only one of --nimcache-storage and --pvc-storage may be set")
    if not tag:
        raise ValidationError("NIMService image's tag must be provided")
    if not image_repository:
        raise ValidationError("NIMService image repository must be provided")


def build_nimservice(
    name: str,
    namespace: str,
    image_repository: str,
    tag: str,
    nimcache_storage: str | None = None,
    pvc_storage: str | None = None,
    defaults: DeployConfig | None = None,
) -> dict[str, Any]:
    """Build a NIMService manifest ready for the CustomObjects API."""
    validate_deploy_options(image_repository, tag, nimcache_storage, pvc_storage)
    defaults = defaults or DeployConfig()

    if nimcache_storage:
        storage: dict[str, Any] = {"nimCache": {"name": nimcache_storage}}
    else:
        storage = {"pvc": {"name": pvc_storage, "create": False}}

    return {
        "apiVersion": API_VERSION,
        "kind": KIND,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "authSecret": defaults.auth_secret,
            "image": {
                "repository": image_repository,
                "tag": tag,
                "pullPolicy": defaults.pull_policy,
                "pullSecrets": [defaults.pull_secret],
            },
            "storage": storage,
            "expose": {
                "service": {
                    "type": defaults.service_type,
                    "port": defaults.service_port,
                },
            },
            "resources": {"limits": {"nvidia.com/gpu": defaults.gpu_limit}},
        },
    }
