"""Table and paragraph views of NIMCache resources."""

from datetime import datetime
from typing import Any

from nimctl.core.utils import format_age, get_path
from nimctl.resources.conditions import message_condition

KIND = "NIMCache"

GET_HEADERS = [
    "Name",
    "Namespace",
    "Source",
    "Model/ModelPuller",
    "CPU",
    "Memory",
    "PVC Volume",
    "State",
    "Age",
]

STATUS_HEADERS = [
    "Name",
    "Namespace",
    "State",
    "PVC",
    "Type/Status",
    "Last Transition Time",
    "Message",
    "Age",
]


def get_source(nimcache: dict[str, Any]) -> str:
    source = get_path(nimcache, "spec.source", {})
    if source.get("ngc") is not None:
        return "NGC"
    if source.get("dataStore") is not None:
        return "NVIDIA NeMo DataStore"
    return "HuggingFace Hub"


def get_model(nimcache: dict[str, Any]) -> str:
    """Model puller image for NGC sources, else the model name or endpoint."""
    source = get_path(nimcache, "spec.source", {})
    if source.get("ngc") is not None:
        return source["ngc"].get("modelPuller") or ""
    for key in ("dataStore", "hf"):
        remote = source.get(key)
        if remote is not None:
            return remote.get("modelName") or remote.get("endpoint") or ""
    return ""


def get_pvc_details(nimcache: dict[str, Any]) -> str:
    name = get_path(nimcache, "spec.storage.pvc.name", "")
    size = get_path(nimcache, "spec.storage.pvc.size", "")
    return f"{name} {size}".strip()


def to_row(nimcache: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Row for 'nimctl get nimcache'."""
    metadata = nimcache.get("metadata", {})
    return {
        "Name": metadata.get("name", ""),
        "Namespace": metadata.get("namespace", ""),
        "Source": get_source(nimcache),
        "Model/ModelPuller": get_model(nimcache),
        "CPU": get_path(nimcache, "spec.resources.cpu", ""),
        "Memory": get_path(nimcache, "spec.resources.memory", ""),
        "PVC Volume": get_pvc_details(nimcache),
        "State": get_path(nimcache, "status.state", ""),
        "Age": format_age(metadata.get("creationTimestamp"), now),
    }


def to_status_row(nimcache: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Row for 'nimctl status nimcache'."""
    metadata = nimcache.get("metadata", {})
    condition = message_condition(nimcache)
    return {
        "Name": metadata.get("name", ""),
        "Namespace": metadata.get("namespace", ""),
        "State": get_path(nimcache, "status.state", ""),
        "PVC": get_path(nimcache, "status.pvc", ""),
        "Type/Status": condition.type_status,
        "Last Transition Time": condition.last_transition_time,
        "Message": condition.message,
        "Age": format_age(metadata.get("creationTimestamp"), now),
    }


def format_profile(profile: dict[str, Any]) -> str:
    config = profile.get("config") or {}
    config_str = ", ".join(f"{k}: {v}" for k, v in sorted(config.items()))
    return (
        f"Name: {profile.get('name', '')}, Model: {profile.get('model', '')}, "
        f"Release: {profile.get('release', '')}, Config: {{{config_str}}}"
    )


def to_paragraph(nimcache: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Detailed view of a single NIMCache including its cached profiles."""
    fields = to_status_row(nimcache, now)
    profiles = get_path(nimcache, "status.profiles", []) or []
    fields["Cached NIM Profiles"] = [format_profile(p) for p in profiles]
    return fields
