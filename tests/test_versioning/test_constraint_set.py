"""Unit tests for patchkeeper.versioning.base constraint sets and registry."""

from __future__ import annotations

import pytest

from patchkeeper.exceptions import ConstraintError, VersionError
from patchkeeper.models.graph import Ecosystem
from patchkeeper.versioning import (
    ConstraintSet,
    NpmSystem,
    Pep440System,
    get_system,
)


@pytest.mark.unit
class TestConstraintSet:
    """Tests for ConstraintSet intersection and matching."""

    def test_single_member_set(self) -> None:
        """Test Constraint.to_set wraps one requirement."""
        system = NpmSystem()
        cset = system.parse_constraint("^1.0.0").to_set()

        assert isinstance(cset, ConstraintSet)
        assert cset.match("1.2.0")
        assert str(cset) == "^1.0.0"

    def test_intersection_requires_every_member(self) -> None:
        """Test a version must satisfy all intersected requirements."""
        system = NpmSystem()
        cset = system.parse_constraint("^1.0.0").to_set()
        cset = cset.intersect(system.parse_constraint("<1.5.0").to_set())

        assert cset.match("1.4.0")
        assert not cset.match("1.5.0")
        assert not cset.match("0.9.0")
        assert str(cset) == "^1.0.0 && <1.5.0"

    def test_intersect_returns_new_set(self) -> None:
        """Test intersect leaves the receiver untouched."""
        system = NpmSystem()
        left = system.parse_constraint("^1.0.0").to_set()

        left.intersect(system.parse_constraint("<1.1.0").to_set())

        assert left.match("1.9.0")

    def test_intersect_across_systems_raises(self) -> None:
        """Test mixing version systems is a ConstraintError."""
        npm = NpmSystem().parse_constraint("^1.0.0").to_set()
        pypi = Pep440System().parse_constraint(">=1.0").to_set()

        with pytest.raises(ConstraintError):
            npm.intersect(pypi)

    def test_match_invalid_version_raises(self) -> None:
        """Test set matching propagates VersionError."""
        cset = NpmSystem().parse_constraint("*").to_set()

        with pytest.raises(VersionError):
            cset.match("not.a.version")


@pytest.mark.unit
class TestGetSystem:
    """Tests for the ecosystem registry."""

    def test_lookup_by_enum(self) -> None:
        assert isinstance(get_system(Ecosystem.NPM), NpmSystem)
        assert isinstance(get_system(Ecosystem.PYPI), Pep440System)

    def test_lookup_by_name(self) -> None:
        assert isinstance(get_system("PyPI"), Pep440System)

    def test_shared_instances(self) -> None:
        """Test the registry hands out one instance per ecosystem."""
        assert get_system("npm") is get_system(Ecosystem.NPM)

    def test_unknown_ecosystem_raises(self) -> None:
        with pytest.raises(VersionError):
            get_system("Maven")
