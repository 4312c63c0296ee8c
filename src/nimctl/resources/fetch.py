"""Listing NIM custom resources by kind."""

from typing import Any

from nimctl.core.exceptions import ResourceNotFoundError, ValidationError
from nimctl.resources import nimcache, nimservice

RESOURCE_TYPES = ("nimcache", "nimservice")


def fetch_resources(
    client: Any,
    resource_type: str,
    namespace: str,
    name: str | None = None,
    all_namespaces: bool = False,
) -> list[dict[str, Any]]:
    """List NIMCaches or NIMServices, optionally narrowed to one name.

    Raises ResourceNotFoundError when a name was asked for and nothing
    matched.
    """
    resource_type = resource_type.lower()
    if resource_type == "nimcache":
        kind = nimcache.KIND
        items = client.list_nimcaches(namespace, name=name, all_namespaces=all_namespaces)
    elif resource_type == "nimservice":
        kind = nimservice.KIND
        items = client.list_nimservices(namespace, name=name, all_namespaces=all_namespaces)
    else:
        raise ValidationError(
            f"invalid resource type {resource_type!r}. Valid types are: nimservice, nimcache"
        )

    if name and not items:
        raise ResourceNotFoundError(kind, name, None if all_namespaces else namespace)
    return items
