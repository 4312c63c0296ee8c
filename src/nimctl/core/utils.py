"""Common utilities for nimctl."""

import re
from datetime import datetime, timedelta, timezone
from typing import Any


def parse_duration(duration_str: str) -> timedelta:
    """Parse duration string to timedelta.

    Supports formats like: 30s, 5m, 2h, 1d, 1w
    Also supports combinations: 1h30m, 2d12h

    Args:
        duration_str: Duration string

    Returns:
        timedelta object

    Raises:
        ValueError: If format is invalid
    """
    if not duration_str:
        raise ValueError("Duration string cannot be empty")

    pattern = re.compile(r"(\d+)([smhdw])")
    matches = pattern.findall(duration_str.lower())

    if not matches or "".join(v + u for v, u in matches) != duration_str.lower():
        raise ValueError(f"Invalid duration format: {duration_str}")

    total = timedelta()
    units = {
        "s": "seconds",
        "m": "minutes",
        "h": "hours",
        "d": "days",
        "w": "weeks",
    }

    for value, unit in matches:
        total += timedelta(**{units[unit]: int(value)})

    return total


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a Kubernetes timestamp into an aware datetime.

    Accepts datetimes (as produced by the typed client models) and RFC3339
    strings (as found in custom object dicts). Returns None for empty values.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_timestamp(value: datetime | None) -> str:
    """Format a datetime as RFC3339 in UTC, or ``<unknown>``."""
    if value is None:
        return "<unknown>"
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def human_duration(delta: timedelta) -> str:
    """Render a duration the way kubectl renders ages (e.g. 5m30s, 3h, 12d)."""
    seconds = int(delta.total_seconds())
    if seconds < -1:
        return "<invalid>"
    if seconds < 0:
        return "0s"
    if seconds < 60 * 2:
        return f"{seconds}s"

    minutes = seconds // 60
    if minutes < 10:
        s = seconds % 60
        return f"{minutes}m" if s == 0 else f"{minutes}m{s}s"
    if minutes < 60 * 3:
        return f"{minutes}m"

    hours = seconds // 3600
    if hours < 8:
        m = minutes % 60
        return f"{hours}h" if m == 0 else f"{hours}h{m}m"
    if hours < 48:
        return f"{hours}h"
    if hours < 24 * 8:
        h = hours % 24
        return f"{hours // 24}d" if h == 0 else f"{hours // 24}d{h}h"
    if hours < 24 * 365 * 2:
        return f"{hours // 24}d"
    if hours < 24 * 365 * 8:
        days = (hours // 24) % 365
        years = hours // 24 // 365
        return f"{years}y" if days == 0 else f"{years}y{days}d"
    return f"{hours // 24 // 365}y"


def format_age(timestamp: Any, now: datetime | None = None) -> str:
    """Format the age of a creation timestamp, ``<unknown>`` when unset."""
    created = parse_timestamp(timestamp)
    if created is None:
        return "<unknown>"
    now = now or datetime.now(timezone.utc)
    return human_duration(now - created)


def get_path(data: dict[str, Any] | None, path: str, default: Any = None) -> Any:
    """Look up a dotted path in nested dicts, e.g. ``spec.storage.pvc.name``."""
    current: Any = data
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return default if current is None else current


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result
