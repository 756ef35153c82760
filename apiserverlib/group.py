"""Group constraint strategies: MustRunAs (fixed ranges) and RunAsAny."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from apiserverlib.field import FieldError, FieldPath, GroupStrategy, invalid


@dataclass(frozen=True)
class IDRange:
    """An inclusive range of IDs."""

    min: int
    max: int

    def __contains__(self, value: int) -> bool:
        return self.min <= value <= self.max


def _child(fld_path: Optional[FieldPath], name: str) -> FieldPath:
    return FieldPath(name) if fld_path is None else fld_path.child(name)


class MustRunAs(GroupStrategy):
    """Requires groups to fall within the configured ranges."""

    def __init__(self, ranges: Iterable[IDRange], field: str) -> None:
        self.ranges = list(ranges)
        if not self.ranges:
            raise ValueError("ranges must be supplied for MustRunAs")
        self.field = field

    def generate(self, pod) -> list[int]:
        """Return the first group of the first range."""
        return [self.ranges[0].min]

    def generate_single(self, pod) -> int:
        """Return the first group of the first range, used for the FS group."""
        return self.ranges[0].min

    def validate(
        self, fld_path: Optional[FieldPath], pod, groups: Optional[Iterable[int]]
    ) -> list[FieldError]:
        """Return the errors for groups outside the configured ranges."""
        group_list = list(groups or [])
        errors: list[FieldError] = []
        if not group_list and self.ranges:
            errors.append(
                invalid(
                    _child(fld_path, self.field),
                    group_list,
                    "unable to validate empty groups against required ranges",
                )
            )
        for group in group_list:
            if not self._is_group_valid(group):
                errors.append(
                    invalid(
                        _child(fld_path, self.field),
                        group_list,
                        f"{group} is not an allowed group",
                    )
                )
        return errors

    def _is_group_valid(self, group: int) -> bool:
        return any(group in rng for rng in self.ranges)


class RunAsAny(GroupStrategy):
    """Allows any group and generates none."""

    def generate(self, pod) -> list[int]:
        """Return no groups."""
        return []

    def generate_single(self, pod) -> None:
        """Return no group."""
        return None

    def validate(self, fld_path, pod, groups) -> list[FieldError]:
        """Accept every group."""
        return []