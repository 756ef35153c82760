# apiserverlib

Small, dependency-free building blocks for API servers.

## What is in it

- **Name validation** (`apiserverlib.apivalidation`): `validate_user_name`,
  `validate_group_name` and `validate_path_segment_name` return a list of
  reasons why a name is not acceptable; an empty list means it is valid.
  User names containing `:` must begin with `b64:`; group names may not
  contain `:` at all; neither may be `~`, `.` or `..`, nor contain `/` or `%`.
- **Command-line flags** (`apiserverlib.configflags`): `set_if_unset`,
  `args_with_prefix`, `to_flag_slice` (renders `--key=value` flags sorted by
  key), and `audit_flags`, which adds `--audit-*` values from an
  `AuditConfig` to a flag map. When the config carries a policy document,
  `audit_flags` writes it to `policy_file` (or to
  `openshift.local.audit/policy.yaml` if none is given).
- **Exact-match label selectors** (`apiserverlib.labelselector`): `parse`
  turns `"k1=v1, k2 = v2"` into a dict and raises `LabelSelectorError` on bad
  input; `conflicts`, `merge` and `equals` work on label dicts;
  `is_qualified_name` and `is_valid_label_value` return the reasons a key or
  value is rejected. `Lexer` exposes the tokenizer (`Lexer.lex`, or iterate
  over it) yielding `Token` kinds.
- **Token scopes** (`apiserverlib.scope`): `scopes_to_rules` and
  `scopes_to_visible_namespaces` resolve scopes such as `user:info` or
  `role:admin:my-namespace` (append `:!` to keep escalating resources) into
  `PolicyRule` lists and namespace sets. `UserEvaluator` and
  `ClusterRoleEvaluator` implement `ScopeEvaluator`; `parse_cluster_role_scope`,
  `rules_allow`, `default_supported_scopes` and `describe_scopes` are
  available on their own. Cluster roles come from any object with a
  `get(name)` method returning a `ClusterRole` and raising `NotFoundError`
  for missing roles.
- **Security context constraint strategies**: `DefaultCapabilities`
  (`apiserverlib.capabilities`, working on `Container`, `SecurityContext`
  and `Capabilities`) and `MustRunAs` / `RunAsAny` with `IDRange`
  (`apiserverlib.group`). Validation returns a list of `FieldError` values
  built with `apiserverlib.field.invalid` on a `FieldPath`.
- **Per-key locks** (`apiserverlib.lockfactory`): `LockFactory.get_lock`
  returns the same `threading.Lock` for the same key.

## Installation

```
pip install apiserverlib
```

## Examples

```python
from apiserverlib.labelselector import parse, merge

labels = parse("color=green, env = test")
assert labels == {"color": "green", "env": "test"}
assert merge(labels, {"tier": "web"})["tier"] == "web"
```

```python
from apiserverlib.apivalidation import validate_user_name

assert validate_user_name("alice", False) == []
assert validate_user_name("a:b", False) == ['usernames that contain ":" must begin with "b64:"']
```

```python
from apiserverlib.group import IDRange, MustRunAs

strategy = MustRunAs([IDRange(1000, 2000)], "supplementalGroups")
assert strategy.generate(None) == [1000]
assert strategy.validate(None, None, [1500]) == []
```

```python
from apiserverlib.scope import scopes_to_rules, ScopeError

try:
    rules = scopes_to_rules(["user:info", "user:bogus"], "my-namespace", None)
except ScopeError as exc:
    rules = exc.partial  # rules resolved despite the errors in exc.errors
assert len(rules) == 2  # the discovery rule plus the user:info rule
```

## What it does not do

This is a library only. It has no command, runs no server, and contains no
admission plugin or cluster quota handling: it does not fetch cluster roles,
namespaces or quotas from anywhere, so callers supply cluster roles
themselves through a getter object.

## Running the tests

```
pip install -e ".[test]"
pytest
```