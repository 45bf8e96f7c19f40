"""Version-system abstraction shared by every ecosystem.

A :class:`VersionSystem` knows how to parse, order and diff the version
strings of one ecosystem and how to parse that ecosystem's requirement
syntax into :class:`Constraint` objects.  Constraints from several
dependents are combined into a :class:`ConstraintSet`, which matches a
version only when every member does.
"""

from __future__ import annotations

from enum import Enum
from abc import ABC, abstractmethod
from typing import Any, Iterable, Tuple

from patchkeeper.exceptions import ConstraintError, VersionError

__all__ = ["Diff", "VersionSystem", "Constraint", "ConstraintSet"]


class Diff(Enum):
    """Most significant component that differs between two versions."""

    SAME = "same"
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    # Pre-release, post-release, dev or metadata-only changes
    OTHER = "other"


class VersionSystem(ABC):
    """Ecosystem-specific version semantics.

    Subclasses implement the four ``_native_*`` hooks; everything else is
    shared so that error wrapping and ordering rules are identical across
    ecosystems.
    """

    #: Display name, used in error details.
    name: str = "abstract"

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _native_version(self, text: str) -> Any:
        """Parse *text*; raise ``ValueError`` (or subclass) when invalid."""

    @abstractmethod
    def _native_constraint(self, text: str) -> Any:
        """Parse requirement *text*; raise ``ValueError`` when invalid."""

    @abstractmethod
    def _native_match(self, constraint: Any, version: Any) -> bool:
        """Return True if parsed *version* satisfies parsed *constraint*."""

    @abstractmethod
    def _release(self, version: Any) -> Tuple[int, int, int]:
        """Return ``(major, minor, patch)`` for a parsed version."""

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def parse_version(self, text: str) -> Any:
        """Parse a version string.

        Raises:
            VersionError: *text* is not a valid version in this system.
        """
        try:
            return self._native_version(text)
        except ValueError as exc:
            raise VersionError(
                f"Invalid {self.name} version {text!r}",
                version=text,
                system=self.name,
            ) from exc

    def compare(self, a: str, b: str) -> int:
        """Three-way comparison of two version strings."""
        left = self.parse_version(a)
        right = self.parse_version(b)
        if left < right:
            return -1
        if left > right:
            return 1
        return 0

    def sort_key(self, text: str) -> Tuple[int, Any]:
        """Sort key placing unparsable versions below every valid one."""
        try:
            return (1, self.parse_version(text))
        except VersionError:
            return (0, text)

    def difference(self, a: str, b: str) -> Diff:
        """Classify the change between two versions (order-insensitive).

        Raises:
            VersionError: Either version cannot be parsed.
        """
        left = self.parse_version(a)
        right = self.parse_version(b)
        if left == right:
            return Diff.SAME

        left_major, left_minor, left_patch = self._release(left)
        right_major, right_minor, right_patch = self._release(right)

        if left_major != right_major:
            return Diff.MAJOR
        if left_minor != right_minor:
            return Diff.MINOR
        if left_patch != right_patch:
            return Diff.PATCH
        return Diff.OTHER

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    def parse_constraint(self, text: str) -> "Constraint":
        """Parse requirement *text* into a :class:`Constraint`.

        Raises:
            ConstraintError: *text* is not a valid requirement.
        """
        try:
            native = self._native_constraint(text)
        except ValueError as exc:
            raise ConstraintError(
                f"Invalid {self.name} requirement {text!r}",
                constraint=text,
                system=self.name,
            ) from exc
        return Constraint(self, text, native)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class Constraint:
    """A single parsed requirement such as ``^1.2.0`` or ``>=2,<3``."""

    __slots__ = ("system", "text", "_native")

    def __init__(self, system: VersionSystem, text: str, native: Any) -> None:
        self.system = system
        self.text = text
        self._native = native

    def match(self, version: str) -> bool:
        """Return True if *version* satisfies this requirement.

        Raises:
            VersionError: *version* cannot be parsed.
        """
        parsed = self.system.parse_version(version)
        return bool(self.system._native_match(self._native, parsed))

    def to_set(self) -> "ConstraintSet":
        """Wrap this requirement in a one-member :class:`ConstraintSet`."""
        return ConstraintSet(self.system, (self,))

    def __repr__(self) -> str:
        return f"Constraint({self.text!r}, system={self.system.name!r})"


class ConstraintSet:
    """Intersection of requirements from a single version system."""

    __slots__ = ("system", "constraints")

    def __init__(self, system: VersionSystem, constraints: Iterable[Constraint]) -> None:
        self.system = system
        self.constraints: Tuple[Constraint, ...] = tuple(constraints)

    def intersect(self, other: "ConstraintSet") -> "ConstraintSet":
        """Return the intersection of this set and *other*.

        Raises:
            ConstraintError: The two sets belong to different version systems.
        """
        if type(other.system) is not type(self.system):
            raise ConstraintError(
                "Cannot intersect constraints from different version systems",
                constraint=", ".join(c.text for c in other.constraints),
                system=f"{self.system.name}/{other.system.name}",
            )
        return ConstraintSet(self.system, self.constraints + other.constraints)

    def match(self, version: str) -> bool:
        """Return True if *version* satisfies every member requirement.

        Raises:
            VersionError: *version* cannot be parsed.
        """
        return all(c.match(version) for c in self.constraints)

    def __str__(self) -> str:
        return " && ".join(c.text for c in self.constraints)

    def __repr__(self) -> str:
        return f"ConstraintSet({str(self)!r}, system={self.system.name!r})"
