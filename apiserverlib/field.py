"""Field paths, field validation errors and the strategy interfaces built on them."""

from __future__ import annotations

import abc
import enum
import json
from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class FieldPath:
    """A dotted path to a field inside an object, e.g. ``spec.capabilities.add``."""

    name: str
    parent: Optional["FieldPath"] = None

    def child(self, name: str, *args: str) -> "FieldPath":
        """Return a new path extending this one with ``name`` and any further names."""
        path = FieldPath(name, self)
        for extra in args:
            path = FieldPath(extra, path)
        return path

    def root(self) -> "FieldPath":
        """Return the outermost element of this path."""
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def __str__(self) -> str:
        names = []
        node: Optional[FieldPath] = self
        while node is not None:
            names.append(node.name)
            node = node.parent
        return ".".join(reversed(names))


class ErrorType(enum.Enum):
    """Kinds of field validation errors."""

    INVALID = "Invalid value"


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if value is None:
        return "null"
    return str(value)


class FieldError(ValueError):
    """A validation error attached to a particular field."""

    def __init__(
        self,
        field: str,
        bad_value: Any,
        detail: str,
        error_type: ErrorType = ErrorType.INVALID,
    ) -> None:
        self.field = field
        self.bad_value = bad_value
        self.detail = detail
        self.type = error_type
        super().__init__(f"{field}: {self.error_body}")

    @property
    def error_body(self) -> str:
        """The message without the field name."""
        body = f"{self.type.value}: {_format_value(self.bad_value)}"
        if self.detail:
            body += f": {self.detail}"
        return body


def invalid(path: Optional[FieldPath], value: Any, detail: str) -> FieldError:
    """Build an 'Invalid value' error for ``path``."""
    field = str(path) if path is not None else "<nil>"
    return FieldError(field, value, detail, ErrorType.INVALID)


class CapabilitiesStrategy(abc.ABC):
    """Interface for capability constraint strategies."""

    @abc.abstractmethod
    def generate(self, pod, container):
        """Create the capabilities based on policy rules."""

    @abc.abstractmethod
    def validate(self, fld_path, pod, container, capabilities) -> list[FieldError]:
        """Return the errors for capabilities outside what the strategy allows."""


class GroupStrategy(abc.ABC):
    """Interface for group constraint strategies."""

    @abc.abstractmethod
    def generate(self, pod):
        """Create the groups based on policy rules."""

    @abc.abstractmethod
    def generate_single(self, pod):
        """Create a single group value, used for the FS group."""

    @abc.abstractmethod
    def validate(self, fld_path, pod, groups) -> list[FieldError]:
        """Return the errors for groups outside the strategy's ranges."""