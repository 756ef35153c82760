"""Capability constraint strategy that adds defaults, enforces drops and validates adds."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from apiserverlib.field import CapabilitiesStrategy, FieldError, FieldPath, invalid

ALLOW_ALL_CAPABILITIES = "*"


@dataclass
class Capabilities:
    """Capabilities a container adds and drops."""

    add: list[str] = field(default_factory=list)
    drop: list[str] = field(default_factory=list)


@dataclass
class SecurityContext:
    """The part of a container's security context that concerns capabilities."""

    capabilities: Optional[Capabilities] = None


@dataclass
class Container:
    """A container as far as capability strategies need to know it."""

    name: str = ""
    security_context: Optional[SecurityContext] = None


def _child(fld_path: Optional[FieldPath], name: str, *more: str) -> FieldPath:
    if fld_path is None:
        return FieldPath(name).child(*more) if more else FieldPath(name)
    return fld_path.child(name, *more)


class DefaultCapabilities(CapabilitiesStrategy):
    """Provides defaults and validation from configured default, required-drop and allowed caps."""

    def __init__(
        self,
        default_add_capabilities: Optional[Iterable[str]] = None,
        required_drop_capabilities: Optional[Iterable[str]] = None,
        allowed_capabilities: Optional[Iterable[str]] = None,
    ) -> None:
        self.default_add_capabilities = list(default_add_capabilities or [])
        self.required_drop_capabilities = list(required_drop_capabilities or [])
        self.allowed_capabilities = list(allowed_capabilities or [])

    def generate(self, pod, container: Container) -> Optional[Capabilities]:
        """Return capabilities with required adds and drops merged in.

        Default adds the container explicitly drops are left out. The
        container's own capabilities are returned unchanged when nothing
        needs to be added.
        """
        default_add = set(self.default_add_capabilities)
        required_drop = set(self.required_drop_capabilities)
        container_add: set[str] = set()
        container_drop: set[str] = set()

        container_caps: Optional[Capabilities] = None
        context = container.security_context
        if context is not None and context.capabilities is not None:
            container_caps = context.capabilities
            container_add = set(container_caps.add)
            container_drop = set(container_caps.drop)

        default_add -= container_drop
        combined_add = default_add | container_add
        combined_drop = required_drop | container_drop

        if len(combined_add) == len(container_add) and len(combined_drop) == len(container_drop):
            return container_caps

        return Capabilities(add=sorted(combined_add), drop=sorted(combined_drop))

    def validate(
        self,
        fld_path: Optional[FieldPath],
        pod,
        container,
        capabilities: Optional[Capabilities],
    ) -> list[FieldError]:
        """Return the errors for capabilities outside what the strategy allows."""
        errors: list[FieldError] = []

        if capabilities is None:
            if not self.default_add_capabilities and not self.required_drop_capabilities:
                return errors
            errors.append(
                invalid(
                    _child(fld_path, "capabilities"),
                    None,
                    "required capabilities are not set on the securityContext",
                )
            )
            return errors

        allowed_add = set(self.allowed_capabilities)
        if ALLOW_ALL_CAPABILITIES in allowed_add:
            return errors

        default_add = set(self.default_add_capabilities)
        for cap in capabilities.add:
            if cap not in default_add and cap not in allowed_add:
                errors.append(
                    invalid(
                        _child(fld_path, "capabilities", "add"),
                        cap,
                        "capability may not be added",
                    )
                )

        container_drops = set(capabilities.drop)
        for required in self.required_drop_capabilities:
            if required not in container_drops:
                errors.append(
                    invalid(
                        _child(fld_path, "capabilities", "drop"),
                        list(capabilities.drop),
                        f"{required} is required to be dropped but was not found",
                    )
                )

        return errors