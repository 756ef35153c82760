"""Conversion of OAuth token scopes into policy rules and visible namespaces."""

from __future__ import annotations

import abc
import copy
import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol

SCOPES_ALL_NAMESPACES = "*"

LEGACY_GROUP_NAME = ""
CORE_GROUP_NAME = ""
KUBE_AUTHORIZATION_GROUP_NAME = "authorization.k8s.io"
OPENSHIFT_AUTHORIZATION_GROUP_NAME = "authorization.openshift.io"
IMAGE_GROUP_NAME = "image.openshift.io"
NETWORK_GROUP_NAME = "network.openshift.io"
OAUTH_GROUP_NAME = "oauth.openshift.io"
PROJECT_GROUP_NAME = "project.openshift.io"
USER_GROUP_NAME = "user.openshift.io"

VERB_ALL = "*"
API_GROUP_ALL = "*"
RESOURCE_ALL = "*"
NON_RESOURCE_ALL = "*"

USER_INDICATOR = "user:"
CLUSTER_ROLE_INDICATOR = "role:"

USER_INFO = USER_INDICATOR + "info"
USER_ACCESS_CHECK = USER_INDICATOR + "check-access"
# Explicit permission to see the projects that this token can see.
USER_LIST_SCOPED_PROJECTS = USER_INDICATOR + "list-scoped-projects"
# Explicit permission to see all the projects a user can see.
USER_LIST_ALL_PROJECTS = USER_INDICATOR + "list-projects"
# All permissions of the user.
USER_FULL = USER_INDICATOR + "full"


@dataclass
class PolicyRule:
    """A set of verbs allowed on resources or non-resource URLs."""

    verbs: list[str] = field(default_factory=list)
    api_groups: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)
    resource_names: list[str] = field(default_factory=list)
    non_resource_urls: list[str] = field(default_factory=list)


@dataclass
class ClusterRole:
    """A named, cluster-wide collection of policy rules."""

    name: str = ""
    rules: list[PolicyRule] = field(default_factory=list)


class NotFoundError(LookupError):
    """Raised by a cluster role getter when the requested role does not exist."""


class ClusterRoleGetter(Protocol):
    def get(self, name: str) -> ClusterRole: ...


def _aggregate_message(errors: list[BaseException]) -> str:
    messages = [str(err) for err in errors]
    if len(messages) == 1:
        return messages[0]
    return "[" + ", ".join(messages) + "]"


class ScopeError(Exception):
    """One or more scopes could not be evaluated.

    ``partial`` holds what could still be resolved, since errors are not
    fatal to evaluation.
    """

    def __init__(self, errors: Iterable[BaseException], partial: Any = None) -> None:
        self.errors = list(errors)
        self.partial = partial
        super().__init__(_aggregate_message(self.errors))


SCOPE_DISCOVERY_RULE = PolicyRule(
    verbs=["get"],
    non_resource_urls=[
        # Server version checking
        "/version", "/version/*",
        # API discovery/negotiation
        "/api", "/api/*",
        "/apis", "/apis/*",
        "/oapi", "/oapi/*",
        "/openapi/v2",
        "/swaggerapi", "/swaggerapi/*", "/swagger.json", "/swagger-2.0.0.pb-v1",
        "/osapi", "/osapi/",
        "/.well-known", "/.well-known/*",
        "/",
    ],
)

_DEFAULT_SUPPORTED_SCOPES = {
    USER_INFO: "Read-only access to your user information (including username, identities, and group membership)",
    USER_ACCESS_CHECK: 'Read-only access to view your privileges (for example, "can I create builds?")',
    USER_LIST_SCOPED_PROJECTS: "Read-only access to list your projects viewable with this token and view their metadata (display name, description, etc.)",
    USER_LIST_ALL_PROJECTS: "Read-only access to list your projects and view their metadata (display name, description, etc.)",
    USER_FULL: "Full read/write access with all of your permissions",
}

_ESCALATING_SCOPE_RESOURCES = (
    (CORE_GROUP_NAME, "secrets"),
    (IMAGE_GROUP_NAME, "imagestreams/secrets"),
    (OAUTH_GROUP_NAME, "oauthauthorizetokens"),
    (OAUTH_GROUP_NAME, "oauthaccesstokens"),
    (OPENSHIFT_AUTHORIZATION_GROUP_NAME, "roles"),
    (OPENSHIFT_AUTHORIZATION_GROUP_NAME, "rolebindings"),
    (OPENSHIFT_AUTHORIZATION_GROUP_NAME, "clusterroles"),
    (OPENSHIFT_AUTHORIZATION_GROUP_NAME, "clusterrolebindings"),
    # creating a service with an external IP outside the allowed range
    (NETWORK_GROUP_NAME, "service/externalips"),
    (LEGACY_GROUP_NAME, "imagestreams/secrets"),
    (LEGACY_GROUP_NAME, "oauthauthorizetokens"),
    (LEGACY_GROUP_NAME, "oauthaccesstokens"),
    (LEGACY_GROUP_NAME, "roles"),
    (LEGACY_GROUP_NAME, "rolebindings"),
    (LEGACY_GROUP_NAME, "clusterroles"),
    (LEGACY_GROUP_NAME, "clusterrolebindings"),
)


def default_supported_scopes() -> list[str]:
    """Return the built-in user scopes, sorted."""
    return sorted(_DEFAULT_SUPPORTED_SCOPES)


def describe_scopes(scopes: Iterable[str]) -> dict[str, str]:
    """Map each scope to its description, or to an empty string if unknown."""
    return {scope: _DEFAULT_SUPPORTED_SCOPES.get(scope, "") for scope in scopes}


def parse_cluster_role_scope(scope: str) -> tuple[str, str, bool]:
    """Split ``role:<name>:<namespace>[:!]`` into (role name, namespace, escalating)."""
    bad_format = ValueError(f"bad format for scope {scope}")
    if not scope.startswith(CLUSTER_ROLE_INDICATOR):
        raise bad_format
    escalating = False
    if scope.endswith(":!"):
        escalating = True
        scope = scope[: scope.rindex(":")]
    _, sep, rest = scope.partition(":")
    if not sep:
        raise ValueError(f"bad format for scope {scope}")
    # namespaces cannot contain colons but role names can, so split on the last one
    last_colon = rest.rfind(":")
    if last_colon <= 0 or last_colon == len(rest) - 1:
        raise ValueError(f"bad format for scope {scope}")
    return rest[:last_colon], rest[last_colon + 1:], escalating


def _verb_matches(rule: PolicyRule, verb: str) -> bool:
    return any(v == VERB_ALL or v == verb for v in rule.verbs)


def _api_group_matches(rule: PolicyRule, group: str) -> bool:
    return any(g == API_GROUP_ALL or g == group for g in rule.api_groups)


def _resource_matches(rule: PolicyRule, resource: str) -> bool:
    return any(r == RESOURCE_ALL or r == resource for r in rule.resources)


def _resource_name_matches(rule: PolicyRule, name: str) -> bool:
    return not rule.resource_names or name in rule.resource_names


def rules_allow(api_group: str, verb: str, resource: str, rules: Iterable[PolicyRule]) -> bool:
    """Return True if any rule allows ``verb`` on ``resource`` in ``api_group``."""
    return any(
        _verb_matches(rule, verb)
        and _api_group_matches(rule, api_group)
        and _resource_matches(rule, resource)
        and _resource_name_matches(rule, "")
        for rule in rules
    )


class ScopeEvaluator(abc.ABC):
    """Turns one kind of scope into the policy rules that express it."""

    @abc.abstractmethod
    def handles(self, scope: str) -> bool:
        """Return True if this evaluator can evaluate ``scope``."""

    @abc.abstractmethod
    def validate(self, scope: str) -> None:
        """Raise ValueError if ``scope`` is malformed."""

    @abc.abstractmethod
    def describe(self, scope: str) -> tuple[str, str]:
        """Return (description, warning) for ``scope``; raise ValueError if malformed."""

    @abc.abstractmethod
    def resolve_rules(
        self, scope: str, namespace: str, cluster_role_getter: Optional[ClusterRoleGetter]
    ) -> list[PolicyRule]:
        """Return the policy rules that ``scope`` allows in ``namespace``."""

    @abc.abstractmethod
    def resolve_gettable_namespaces(
        self, scope: str, cluster_role_getter: Optional[ClusterRoleGetter]
    ) -> list[str]:
        """Return the namespaces that ``scope`` grants "get" access to."""


class UserEvaluator(ScopeEvaluator):
    """Evaluates ``user:<scope name>`` scopes."""

    def handles(self, scope: str) -> bool:
        return scope in _DEFAULT_SUPPORTED_SCOPES

    def validate(self, scope: str) -> None:
        self.describe(scope)

    def describe(self, scope: str) -> tuple[str, str]:
        if scope == USER_FULL:
            return (
                _DEFAULT_SUPPORTED_SCOPES[scope],
                "Includes any access you have to escalating resources like secrets",
            )
        if scope in _DEFAULT_SUPPORTED_SCOPES:
            return _DEFAULT_SUPPORTED_SCOPES[scope], ""
        raise ValueError(f"unrecognized scope: {scope}")

    def resolve_rules(self, scope, namespace, cluster_role_getter):
        if scope == USER_INFO:
            return [
                PolicyRule(
                    verbs=["get"],
                    api_groups=[USER_GROUP_NAME, LEGACY_GROUP_NAME],
                    resources=["users"],
                    resource_names=["~"],
                )
            ]
        if scope == USER_ACCESS_CHECK:
            return [
                PolicyRule(
                    verbs=["create"],
                    api_groups=[KUBE_AUTHORIZATION_GROUP_NAME],
                    resources=["selfsubjectaccessreviews"],
                ),
                PolicyRule(
                    verbs=["create"],
                    api_groups=[OPENSHIFT_AUTHORIZATION_GROUP_NAME, LEGACY_GROUP_NAME],
                    resources=["selfsubjectrulesreviews"],
                ),
            ]
        if scope == USER_LIST_SCOPED_PROJECTS:
            return [
                PolicyRule(
                    verbs=["list", "watch"],
                    api_groups=[PROJECT_GROUP_NAME, LEGACY_GROUP_NAME],
                    resources=["projects"],
                )
            ]
        if scope == USER_LIST_ALL_PROJECTS:
            return [
                PolicyRule(
                    verbs=["list", "watch"],
                    api_groups=[PROJECT_GROUP_NAME, LEGACY_GROUP_NAME],
                    resources=["projects"],
                ),
                PolicyRule(
                    verbs=["get"],
                    api_groups=[CORE_GROUP_NAME],
                    resources=["namespaces"],
                ),
            ]
        if scope == USER_FULL:
            return [
                PolicyRule(verbs=[VERB_ALL], api_groups=[API_GROUP_ALL], resources=[RESOURCE_ALL]),
                PolicyRule(verbs=[VERB_ALL], non_resource_urls=[NON_RESOURCE_ALL]),
            ]
        raise ValueError(f"unrecognized scope: {scope}")

    def resolve_gettable_namespaces(self, scope, cluster_role_getter):
        if scope in (USER_FULL, USER_LIST_ALL_PROJECTS):
            return ["*"]
        return []


def _remove_escalating_resources(rule: PolicyRule) -> PolicyRule:
    """Drop escalating resources from ``rule``, returning a copy if anything changed.

    The matching resource is removed regardless of verb or secondary group:
    cheaper, and errs on the side of removing too much.
    """
    result: Optional[PolicyRule] = None
    for group, resource in _ESCALATING_SCOPE_RESOURCES:
        if group not in rule.api_groups or resource not in rule.resources:
            continue
        if result is None:
            result = copy.deepcopy(rule)
        result.resources = [r for r in result.resources if r != resource]
    return result if result is not None else rule


def _is_unbounded(rule: PolicyRule) -> bool:
    return (
        VERB_ALL in rule.verbs
        or RESOURCE_ALL in rule.resources
        or API_GROUP_ALL in rule.api_groups
    )


class ClusterRoleEvaluator(ScopeEvaluator):
    """Evaluates ``role:<cluster role>:<namespace, * for all>[:!]`` scopes."""

    def handles(self, scope: str) -> bool:
        return scope.startswith(CLUSTER_ROLE_INDICATOR)

    def validate(self, scope: str) -> None:
        parse_cluster_role_scope(scope)

    def describe(self, scope: str) -> tuple[str, str]:
        role_name, scope_namespace, escalating = parse_cluster_role_scope(scope)
        if scope_namespace == SCOPES_ALL_NAMESPACES:
            scope_phrase = "server-wide"
        else:
            scope_phrase = f"in project {json.dumps(scope_namespace)}"
        if escalating:
            warning = "Includes access to escalating resources like secrets"
            escalating_phrase = ""
        else:
            warning = ""
            escalating_phrase = ", except access escalating resources like secrets"
        description = (
            f"Anything you can do {scope_phrase} that is also allowed by the "
            f"{json.dumps(role_name)} role{escalating_phrase}"
        )
        return description, warning

    def resolve_rules(self, scope, namespace, cluster_role_getter):
        _, scope_namespace, _ = parse_cluster_role_scope(scope)
        # a namespace mismatch adds no rules but is not an error
        if scope_namespace not in (SCOPES_ALL_NAMESPACES, namespace):
            return []
        return self._resolve_rules(scope, cluster_role_getter)

    def _resolve_rules(self, scope: str, cluster_role_getter) -> list[PolicyRule]:
        role_name, _, escalating = parse_cluster_role_scope(scope)
        try:
            role = cluster_role_getter.get(role_name)
        except NotFoundError:
            return []
        rules = []
        for rule in role.rules:
            if escalating:
                rules.append(rule)
            elif not _is_unbounded(rule):
                rules.append(_remove_escalating_resources(rule))
        return rules

    def resolve_gettable_namespaces(self, scope, cluster_role_getter):
        _, scope_namespace, _ = parse_cluster_role_scope(scope)
        rules = self._resolve_rules(scope, cluster_role_getter)
        if rules_allow(CORE_GROUP_NAME, "get", "namespaces", rules):
            return [scope_namespace]
        return []


SCOPE_EVALUATORS: tuple[ScopeEvaluator, ...] = (UserEvaluator(), ClusterRoleEvaluator())


def _no_evaluator(scope: str) -> ValueError:
    return ValueError(f"no scope evaluator found for {json.dumps(scope)}")


def scopes_to_rules(
    scopes: Iterable[str], namespace: str, cluster_role_getter: Optional[ClusterRoleGetter]
) -> list[PolicyRule]:
    """Return the rules the scopes allow in ``namespace``, always led by the discovery rule.

    Raises ScopeError if any scope fails; its ``partial`` holds the rules
    that could still be resolved.
    """
    rules = [copy.deepcopy(SCOPE_DISCOVERY_RULE)]
    errors: list[BaseException] = []
    for scope in scopes:
        found = False
        for evaluator in SCOPE_EVALUATORS:
            if not evaluator.handles(scope):
                continue
            found = True
            try:
                rules.extend(evaluator.resolve_rules(scope, namespace, cluster_role_getter))
            except Exception as exc:  # errors are collected, not fatal
                errors.append(exc)
        if not found:
            errors.append(_no_evaluator(scope))
    if errors:
        raise ScopeError(errors, rules)
    return rules


def scopes_to_visible_namespaces(
    scopes: Iterable[str],
    cluster_role_getter: Optional[ClusterRoleGetter],
    ignore_unhandled_scopes: bool,
) -> set[str]:
    """Return the namespaces the scopes grant "get" access to.

    Raises ScopeError if any scope fails; its ``partial`` holds the
    namespaces that could still be resolved.
    """
    scopes = list(scopes)
    if not scopes:
        return {"*"}
    visible: set[str] = set()
    errors: list[BaseException] = []
    for scope in scopes:
        evaluator = next((e for e in SCOPE_EVALUATORS if e.handles(scope)), None)
        if evaluator is None:
            if not ignore_unhandled_scopes:
                errors.append(_no_evaluator(scope))
            continue
        try:
            visible.update(evaluator.resolve_gettable_namespaces(scope, cluster_role_getter))
        except Exception as exc:  # errors are collected, not fatal
            errors.append(exc)
    if errors:
        raise ScopeError(errors, visible)
    return visible