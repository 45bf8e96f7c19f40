"""Unit tests for patchkeeper.versioning.pep440.

Test Coverage:
- Version parsing and error wrapping
- Ordering and sort keys that tolerate invalid versions
- Difference classification across release segments
- Specifier parsing: ranges, bare pins, wildcard
"""

from __future__ import annotations

import pytest

from patchkeeper.exceptions import ConstraintError, VersionError
from patchkeeper.versioning import Diff, Pep440System


@pytest.fixture
def system() -> Pep440System:
    return Pep440System()


@pytest.mark.unit
class TestParseVersion:
    """Tests for Pep440System.parse_version."""

    def test_valid_version(self, system: Pep440System) -> None:
        """Test a normal release parses."""
        assert str(system.parse_version("2.31.0")) == "2.31.0"

    def test_invalid_version_raises_version_error(self, system: Pep440System) -> None:
        """Test non-PEP 440 strings raise VersionError with details."""
        with pytest.raises(VersionError) as exc_info:
            system.parse_version("not-a-version")

        assert exc_info.value.details["version"] == "not-a-version"


@pytest.mark.unit
class TestOrdering:
    """Tests for compare and sort_key."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("1.0.0", "2.0.0", -1),
            ("2.0.0", "1.9.9", 1),
            ("1.0", "1.0.0", 0),
            ("1.0.0rc1", "1.0.0", -1),
        ],
    )
    def test_compare(self, system: Pep440System, a: str, b: str, expected: int) -> None:
        """Test three-way comparison follows PEP 440 ordering."""
        assert system.compare(a, b) == expected

    def test_sort_key_places_invalid_versions_first(self, system: Pep440System) -> None:
        """Test unparsable versions sort below every valid one."""
        versions = ["2.0.0", "garbage", "1.10.0", "1.9.0"]

        result = sorted(versions, key=system.sort_key)

        assert result == ["garbage", "1.9.0", "1.10.0", "2.0.0"]


@pytest.mark.unit
class TestDifference:
    """Tests for VersionSystem.difference on PEP 440 versions."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("1.2.3", "1.2.3", Diff.SAME),
            ("1.2.3", "2.0.0", Diff.MAJOR),
            ("1.2.3", "1.3.0", Diff.MINOR),
            ("1.2.3", "1.2.4", Diff.PATCH),
            ("1.2.3", "1.2.3.post1", Diff.OTHER),
        ],
    )
    def test_classification(self, system: Pep440System, a: str, b: str, expected: Diff) -> None:
        """Test the most significant differing segment is reported."""
        assert system.difference(a, b) is expected

    def test_symmetric(self, system: Pep440System) -> None:
        """Test a downgrade is classified like the matching upgrade."""
        assert system.difference("2.0.0", "1.5.0") is Diff.MAJOR

    def test_invalid_input_raises(self, system: Pep440System) -> None:
        """Test difference refuses unparsable versions."""
        with pytest.raises(VersionError):
            system.difference("1.0.0", "bogus")


@pytest.mark.unit
class TestConstraints:
    """Tests for PEP 440 requirement parsing and matching."""

    def test_range(self, system: Pep440System) -> None:
        """Test a two-sided range."""
        constraint = system.parse_constraint(">=2.0,<3")

        assert constraint.match("2.5.1")
        assert not constraint.match("3.0.0")
        assert not constraint.match("1.9")

    def test_bare_version_is_exact_pin(self, system: Pep440System) -> None:
        """Test ``1.2.3`` behaves like ``==1.2.3``."""
        constraint = system.parse_constraint("1.2.3")

        assert constraint.match("1.2.3")
        assert not constraint.match("1.2.4")

    @pytest.mark.parametrize("text", ["*", "", "  "])
    def test_wildcard_matches_anything(self, system: Pep440System, text: str) -> None:
        """Test empty and ``*`` requirements accept any release."""
        constraint = system.parse_constraint(text)

        assert constraint.match("0.0.1")
        assert constraint.match("99.0")

    def test_invalid_requirement_raises_constraint_error(self, system: Pep440System) -> None:
        """Test malformed specifiers raise ConstraintError."""
        with pytest.raises(ConstraintError) as exc_info:
            system.parse_constraint(">>=1.0")

        assert exc_info.value.details["constraint"] == ">>=1.0"

    def test_match_invalid_version_raises(self, system: Pep440System) -> None:
        """Test matching an unparsable version raises VersionError."""
        with pytest.raises(VersionError):
            system.parse_constraint(">=1.0").match("nope")
