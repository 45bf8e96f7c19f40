"""Unit tests for patchkeeper.clients.osv.

Test Coverage:
- Explicit version lists
- SEMVER and ECOSYSTEM ranges (introduced/fixed/last_affected/limit)
- GIT ranges ignored
- Graph scanning skips the root
- Malformed records surface as GraphError
"""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pytest

from patchkeeper.clients.osv import OSVDatabase
from patchkeeper.exceptions import GraphError
from patchkeeper.models import Ecosystem, Graph, PackageKey, VersionKey


def _npm(name: str, version: str) -> VersionKey:
    return VersionKey(PackageKey(Ecosystem.NPM, name), version)


def _pypi(name: str, version: str) -> VersionKey:
    return VersionKey(PackageKey(Ecosystem.PYPI, name), version)


def _record(
    vuln_id: str,
    ecosystem: str,
    name: str,
    events: List[Dict[str, str]],
    range_type: str = "SEMVER",
    versions: Sequence[str] = (),
) -> Dict[str, Any]:
    return {
        "id": vuln_id,
        "affected": [
            {
                "package": {"ecosystem": ecosystem, "name": name},
                "ranges": [{"type": range_type, "events": events}],
                "versions": list(versions),
            }
        ],
    }


@pytest.mark.unit
class TestIsAffected:
    """Tests for OSVDatabase.is_affected."""

    def test_introduced_zero_fixed(self) -> None:
        """Test the common ``introduced: 0, fixed: X`` range."""
        db = OSVDatabase.from_records(
            [_record("V-1", "npm", "a", [{"introduced": "0"}, {"fixed": "1.2.0"}])]
        )
        vuln = db._vulns[0]

        assert db.is_affected(vuln, _npm("a", "0.1.0"))
        assert db.is_affected(vuln, _npm("a", "1.1.9"))
        assert not db.is_affected(vuln, _npm("a", "1.2.0"))
        assert not db.is_affected(vuln, _npm("a", "2.0.0"))

    def test_multiple_intervals(self) -> None:
        """Test a range that re-opens after a fix."""
        db = OSVDatabase.from_records(
            [
                _record(
                    "V-1",
                    "npm",
                    "a",
                    [
                        {"introduced": "1.0.0"},
                        {"fixed": "1.0.5"},
                        {"introduced": "2.0.0"},
                        {"fixed": "2.1.0"},
                    ],
                )
            ]
        )
        vuln = db._vulns[0]

        assert not db.is_affected(vuln, _npm("a", "0.9.0"))
        assert db.is_affected(vuln, _npm("a", "1.0.3"))
        assert not db.is_affected(vuln, _npm("a", "1.5.0"))
        assert db.is_affected(vuln, _npm("a", "2.0.1"))
        assert not db.is_affected(vuln, _npm("a", "2.1.0"))

    def test_last_affected_is_inclusive(self) -> None:
        db = OSVDatabase.from_records(
            [_record("V-1", "npm", "a", [{"introduced": "0"}, {"last_affected": "1.4.0"}])]
        )
        vuln = db._vulns[0]

        assert db.is_affected(vuln, _npm("a", "1.4.0"))
        assert not db.is_affected(vuln, _npm("a", "1.4.1"))

    def test_ecosystem_range_uses_pep440(self) -> None:
        """Test PyPI ranges compare with PEP 440 ordering."""
        db = OSVDatabase.from_records(
            [
                _record(
                    "PYSEC-1",
                    "PyPI",
                    "Requests",
                    [{"introduced": "2.0"}, {"fixed": "2.31.0"}],
                    range_type="ECOSYSTEM",
                )
            ]
        )
        vuln = db._vulns[0]

        assert db.is_affected(vuln, _pypi("requests", "2.30.0"))
        assert not db.is_affected(vuln, _pypi("requests", "2.31"))

    def test_explicit_versions(self) -> None:
        db = OSVDatabase.from_records(
            [_record("V-1", "npm", "a", [], range_type="GIT", versions=["1.0.0"])]
        )
        vuln = db._vulns[0]

        assert db.is_affected(vuln, _npm("a", "1.0.0"))
        assert not db.is_affected(vuln, _npm("a", "1.0.1"))

    def test_git_ranges_ignored(self) -> None:
        db = OSVDatabase.from_records(
            [_record("V-1", "npm", "a", [{"introduced": "0"}], range_type="GIT")]
        )

        assert not db.is_affected(db._vulns[0], _npm("a", "1.0.0"))

    def test_other_package_not_affected(self) -> None:
        db = OSVDatabase.from_records(
            [_record("V-1", "npm", "a", [{"introduced": "0"}])]
        )

        assert not db.is_affected(db._vulns[0], _npm("b", "1.0.0"))

    def test_unparsable_version_not_affected(self) -> None:
        """Test a version the ecosystem cannot parse is treated as unaffected."""
        db = OSVDatabase.from_records(
            [_record("V-1", "npm", "a", [{"introduced": "0"}, {"fixed": "2.0.0"}])]
        )

        assert not db.is_affected(db._vulns[0], _npm("a", "not-semver"))


@pytest.mark.unit
class TestFindVulns:
    """Tests for OSVDatabase.find_vulns."""

    def test_reports_affected_nodes(self) -> None:
        db = OSVDatabase.from_records(
            [
                _record("V-1", "npm", "a", [{"introduced": "0"}, {"fixed": "1.1.0"}]),
                _record("V-2", "npm", "a", [{"introduced": "0"}, {"fixed": "1.0.1"}]),
                _record("V-3", "npm", "b", [{"introduced": "0"}, {"fixed": "1.0.0"}]),
            ]
        )
        graph = Graph.build(
            [_npm("root", "1.0.0"), _npm("a", "1.0.0"), _npm("b", "1.0.0")],
            [(0, 1, "^1.0.0"), (0, 2, "^1.0.0")],
        )

        found = db.find_vulns(graph)

        assert list(found) == [1]
        assert [v.id for v in found[1]] == ["V-1", "V-2"]

    def test_root_is_never_reported(self) -> None:
        db = OSVDatabase.from_records(
            [_record("V-1", "npm", "root", [{"introduced": "0"}])]
        )
        graph = Graph.build([_npm("root", "1.0.0")], [])

        assert db.find_vulns(graph) == {}

    def test_duplicate_affected_entries_counted_once(self) -> None:
        """Test a record listing the same package twice is returned once."""
        record = _record("V-1", "npm", "a", [{"introduced": "0"}])
        record["affected"].append(dict(record["affected"][0]))
        db = OSVDatabase.from_records([record])
        graph = Graph.build([_npm("root", "1.0.0"), _npm("a", "1.0.0")], [(0, 1, "*")])

        assert [v.id for v in db.find_vulns(graph)[1]] == ["V-1"]


@pytest.mark.unit
class TestFromRecords:
    """Tests for OSVDatabase.from_records."""

    def test_len(self) -> None:
        db = OSVDatabase.from_records([{"id": "A"}, {"id": "B"}])

        assert len(db) == 2

    def test_missing_id_is_graph_error(self) -> None:
        with pytest.raises(GraphError, match="Malformed OSV record"):
            OSVDatabase.from_records([{"summary": "no id"}])

    def test_non_mapping_record_is_graph_error(self) -> None:
        with pytest.raises(GraphError):
            OSVDatabase.from_records(["GHSA-1"])
