"""Helpers for building command-line flag maps, including audit flags."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

_log = logging.getLogger(__name__)

DEFAULT_AUDIT_POLICY_FILE_PATH = "openshift.local.audit/policy.yaml"


@dataclass
class AuditConfig:
    """Audit settings that are turned into server flags."""

    enabled: bool = False
    audit_file_path: str = ""
    maximum_file_retention_days: int = 0
    maximum_retained_files: int = 0
    maximum_file_size_megabytes: int = 0
    policy_file: str = ""
    policy_configuration: bytes = b""
    log_format: str = ""
    web_hook_kube_config: str = ""
    web_hook_mode: str = ""


def args_with_prefix(args: dict[str, list[str]], prefix: str) -> dict[str, list[str]]:
    """Return a copy of the arguments whose keys start with ``prefix``."""
    return {
        key: list(values)
        for key, values in args.items()
        if key.startswith(prefix) and values
    }


def set_if_unset(args: dict[str, list[str]], key: str, *values: str) -> None:
    """Set ``key`` to ``values`` unless it is already present."""
    if key not in args:
        args[key] = list(values)


def to_flag_slice(args: dict[str, list[str]]) -> list[str]:
    """Render the arguments as ``--key=value`` flags, sorted by key."""
    return [f"--{key}={token}" for key in sorted(args) for token in args[key]]


def _write_policy(path: str, content: bytes) -> None:
    try:
        os.makedirs(os.path.dirname(path) or ".", mode=0o755, exist_ok=True)
    except OSError as exc:
        _log.error("%s", exc)
    try:
        with open(path, "wb") as handle:
            handle.write(content)
        os.chmod(path, 0o644)
    except OSError as exc:
        _log.error("%s", exc)


def audit_flags(config: AuditConfig, args: dict[str, list[str]]) -> dict[str, list[str]]:
    """Add the audit flags described by ``config`` to ``args`` and return it."""
    if not config.enabled:
        return args

    policy_file_path = config.policy_file
    raw = config.policy_configuration or b""
    if raw and raw != b"null":
        if not policy_file_path:
            policy_file_path = DEFAULT_AUDIT_POLICY_FILE_PATH
        _write_policy(policy_file_path, raw)

    set_if_unset(args, "audit-log-maxbackup", str(int(config.maximum_retained_files)))
    set_if_unset(args, "audit-log-maxsize", str(int(config.maximum_file_size_megabytes)))
    set_if_unset(args, "audit-log-maxage", str(int(config.maximum_file_retention_days)))
    set_if_unset(args, "audit-log-path", config.audit_file_path or "-")
    if policy_file_path:
        set_if_unset(args, "audit-policy-file", policy_file_path)
    if config.log_format:
        set_if_unset(args, "audit-log-format", config.log_format)
    if config.web_hook_mode:
        set_if_unset(args, "audit-webhook-mode", config.web_hook_mode)
    set_if_unset(args, "audit-webhook-config-file", config.web_hook_kube_config)
    return args