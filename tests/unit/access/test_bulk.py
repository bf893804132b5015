"""Tests for bulk record filtering."""

from recordacl.access.bulk import filter_for_operation, filter_records, unique_records_by_id
from recordacl.access.levels import AccessLevel
from recordacl.access.records import Record
from recordacl.access.roles import Operation
from recordacl.access.selector import EffectivePermission, PermissionSource

from tests.factories import make_jsonapi_record, make_record


def _effective(level, operation=Operation.LIST):
    return EffectivePermission(operation, level, PermissionSource.PERSONAL if level else None)


class TestFilterRecords:
    """Test list filtering."""

    def test_owner_filter_keeps_order(self):
        """Test that only owned records survive, in input order."""
        records = [
            make_record("r3", "u1"),
            make_record("r1", "u2"),
            make_record("r2", "u2", "u1"),
        ]
        kept = filter_records(records, _effective(AccessLevel.OWNER), "u1")
        assert [r.id for r in kept] == ["r3", "r2"]

    def test_duplicates_and_missing_ids_dropped(self):
        """Test de-duplication by id."""
        records = [
            make_record("r1", "a"),
            make_record(None, "a"),
            make_record("r1", "b"),
            make_record("", "a"),
            make_record("r2", "a"),
        ]
        kept = filter_records(records, _effective(AccessLevel.ALL), "u1")

        assert [r.id for r in kept] == ["r1", "r2"]
        assert kept[0].created_by == "a"

    def test_none_level_keeps_nothing(self):
        """Test that NONE filters everything out."""
        assert filter_records([make_record("r1", "u1")], _effective(AccessLevel.NONE), "u1") == []

    def test_unresolved_keeps_nothing(self):
        """Test that a missing list action filters everything out."""
        assert filter_records([make_record("r1", "u1")], _effective(None), "u1") == []

    def test_empty_input(self):
        """Test empty and missing inputs."""
        assert filter_records([], _effective(AccessLevel.ALL), "u1") == []
        assert filter_records(None, _effective(AccessLevel.ALL), "u1") == []

    def test_group_filter(self):
        """Test UNKNOWN filtering with resolved membership."""
        records = [
            make_jsonapi_record("r1", created_by="m1"),
            make_jsonapi_record("r2", created_by="x", securitygroups=["g1"]),
            make_jsonapi_record("r3", created_by="x"),
        ]
        ids = filter_for_operation(
            records, _effective(AccessLevel.UNKNOWN), "u1", {"m1"}, {"g1"},
        )
        assert ids == ["r1", "r2"]

    def test_unique_records_by_id(self):
        """Test the de-duplication helper directly."""
        records = [Record(id="a"), Record(id="b"), Record(id="a"), Record(id=None)]
        assert [r.id for r in unique_records_by_id(records)] == ["a", "b"]


class TestFilterProperties:
    """Test filtering invariants."""

    def test_idempotent(self):
        """Test that re-filtering the output changes nothing."""
        records = [make_record("r1", "u1"), make_record("r2", "u2"), make_record("r3", "x", "u1")]
        effective = _effective(AccessLevel.OWNER)

        once = filter_records(records, effective, "u1")
        twice = filter_records(once, effective, "u1")
        assert twice == once

    def test_no_duplicates_when_both_group_tests_match(self):
        """Test a record matching by member and by group appears once."""
        records = [
            make_record("r1", "m1", securitygroups=["g1"]),
            make_record("r1", "m1", securitygroups=["g1"]),
        ]
        ids = filter_for_operation(records, _effective(AccessLevel.UNKNOWN), "u1", {"m1"}, {"g1"})
        assert ids == ["r1"]
