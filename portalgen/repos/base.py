# portalgen/repos/base.py
import copy
from datetime import datetime, timezone
from typing import Any, Callable, Dict


class _ServerTimestamp:
    """Placeholder replaced by the backend's own clock on write."""

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_timestamps(patch: Dict[str, Any], now: Callable[[], Any]) -> Dict[str, Any]:
    """
    Returns a copy of `patch` with every SERVER_TIMESTAMP replaced by now().
    Nested maps are walked; lists are left untouched.
    """
    resolved = {}
    for key, value in patch.items():
        if value is SERVER_TIMESTAMP:
            resolved[key] = now()
        elif isinstance(value, dict):
            resolved[key] = resolve_timestamps(value, now)
        else:
            resolved[key] = copy.deepcopy(value)
    return resolved


def deep_merge(target: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """
    Field-level merge with the same semantics as Firestore `set(merge=True)`:
    nested maps merge key by key, every other value replaces.
    """
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            deep_merge(target[key], value)
        else:
            target[key] = value
    return target
