"""Validation of user and group names."""

from __future__ import annotations

_NAME_MAY_NOT_BE = (".", "..")
_NAME_MAY_NOT_CONTAIN = ("/", "%")


def validate_path_segment_name(name: str, prefix: bool) -> list[str]:
    """Return the reasons ``name`` cannot be used as a path segment (empty if valid)."""
    if not prefix:
        for illegal in _NAME_MAY_NOT_BE:
            if name == illegal:
                return [f"may not be '{illegal}'"]
    return [
        f"may not contain '{illegal}'"
        for illegal in _NAME_MAY_NOT_CONTAIN
        if illegal in name
    ]


def validate_user_name(name: str, prefix: bool) -> list[str]:
    """Return the reasons ``name`` is not a valid user name (empty if valid)."""
    reasons = validate_path_segment_name(name, False)
    if reasons:
        return reasons
    if ":" in name and not name.startswith("b64:"):
        return ['usernames that contain ":" must begin with "b64:"']
    if name == "~":
        return ['may not equal "~"']
    return []


def validate_group_name(name: str, prefix: bool) -> list[str]:
    """Return the reasons ``name`` is not a valid group name (empty if valid)."""
    reasons = validate_path_segment_name(name, False)
    if reasons:
        return reasons
    if ":" in name:
        return ['may not contain ":"']
    if name == "~":
        return ['may not equal "~"']
    return []