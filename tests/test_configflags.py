import os

from apiserverlib.configflags import (
    DEFAULT_AUDIT_POLICY_FILE_PATH,
    AuditConfig,
    args_with_prefix,
    audit_flags,
    set_if_unset,
    to_flag_slice,
)


def test_args_with_prefix_filters_and_copies():
    args = {"audit-a": ["1"], "audit-b": [], "other": ["2"]}
    filtered = args_with_prefix(args, "audit-")
    assert filtered == {"audit-a": ["1"]}
    filtered["audit-a"].append("x")
    assert args["audit-a"] == ["1"]


def test_set_if_unset_keeps_existing():
    args = {"a": ["old"]}
    set_if_unset(args, "a", "new")
    set_if_unset(args, "b", "x", "y")
    assert args == {"a": ["old"], "b": ["x", "y"]}


def test_to_flag_slice_sorted():
    assert to_flag_slice({"b": ["2", "3"], "a": ["1"]}) == ["--a=1", "--b=2", "--b=3"]
    assert to_flag_slice({}) == []


def test_audit_disabled_leaves_args_alone():
    args = {"x": ["1"]}
    result = audit_flags(AuditConfig(enabled=False), args)
    assert result is args
    assert result == {"x": ["1"]}


def test_audit_enabled_defaults():
    config = AuditConfig(enabled=True, maximum_retained_files=3)
    args = audit_flags(config, {})
    assert args["audit-log-path"] == ["-"]
    assert args["audit-log-maxbackup"] == [str(config.maximum_retained_files)]
    assert args["audit-webhook-config-file"] == [""]
    assert "audit-policy-file" not in args
    assert "audit-log-format" not in args


def test_audit_does_not_override_existing():
    args = audit_flags(AuditConfig(enabled=True), {"audit-log-path": ["custom"]})
    assert args["audit-log-path"] == ["custom"]


def test_audit_writes_policy_to_given_path(tmp_path):
    policy = tmp_path / "sub" / "policy.yaml"
    content = b"kind: Policy\n"
    config = AuditConfig(
        enabled=True,
        policy_file=str(policy),
        policy_configuration=content,
        log_format="json",
        web_hook_mode="batch",
        audit_file_path="/var/log/audit.log",
    )
    args = audit_flags(config, {})
    assert policy.read_bytes() == content
    assert args["audit-policy-file"] == [str(policy)]
    assert args["audit-log-format"] == ["json"]
    assert args["audit-webhook-mode"] == ["batch"]
    assert args["audit-log-path"] == ["/var/log/audit.log"]


def test_audit_writes_policy_to_default_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    args = audit_flags(AuditConfig(enabled=True, policy_configuration=b"{}"), {})
    assert args["audit-policy-file"] == [DEFAULT_AUDIT_POLICY_FILE_PATH]
    assert (tmp_path / DEFAULT_AUDIT_POLICY_FILE_PATH).read_bytes() == b"{}"


def test_audit_null_policy_is_ignored(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    args = audit_flags(AuditConfig(enabled=True, policy_configuration=b"null"), {})
    assert "audit-policy-file" not in args
    assert not os.path.exists(tmp_path / DEFAULT_AUDIT_POLICY_FILE_PATH)