"""Selection of the status condition worth showing for a NIM resource."""

from dataclasses import dataclass
from typing import Any

from nimctl.core.utils import get_path

PLACEHOLDER = "-"


@dataclass(frozen=True)
class ConditionSummary:
    """The type, status, transition time and message shown for a resource."""

    type: str = PLACEHOLDER
    status: str = PLACEHOLDER
    last_transition_time: str = PLACEHOLDER
    message: str = PLACEHOLDER

    @property
    def type_status(self) -> str:
        if self.type == PLACEHOLDER and self.status == PLACEHOLDER:
            return PLACEHOLDER
        return f"{self.type}/{self.status}"


def find_condition(conditions: list[dict[str, Any]], type_: str) -> dict[str, Any] | None:
    for condition in conditions:
        if condition.get("type") == type_:
            return condition
    return None


def message_condition(resource: dict[str, Any]) -> ConditionSummary:
    """Summarize the conditions of a NIMCache or NIMService.

    A Failed condition with a message wins. Otherwise the Ready condition is
    shown; if its message is empty, the first condition carrying a message
    lends its message and transition time. Without a Ready condition every
    field is a placeholder.
    """
    conditions = get_path(resource, "status.conditions", []) or []
    ready = find_condition(conditions, "Ready")

    failed = find_condition(conditions, "Failed")
    if failed is not None and failed.get("message"):
        return _summary(failed)

    if ready is None:
        return ConditionSummary()

    if ready.get("message"):
        return _summary(ready)

    for condition in conditions:
        if condition.get("message"):
            return ConditionSummary(
                type=ready.get("type") or PLACEHOLDER,
                status=ready.get("status") or PLACEHOLDER,
                last_transition_time=condition.get("lastTransitionTime") or PLACEHOLDER,
                message=condition["message"],
            )
    return _summary(ready)


def _summary(condition: dict[str, Any]) -> ConditionSummary:
    return ConditionSummary(
        type=condition.get("type") or PLACEHOLDER,
        status=condition.get("status") or PLACEHOLDER,
        last_transition_time=condition.get("lastTransitionTime") or PLACEHOLDER,
        message=condition.get("message") or "",
    )
