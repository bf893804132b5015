"""Tests for canonical record projection."""

from recordacl.access.records import Record, project_record, project_records

from tests.factories import make_jsonapi_record, make_record


class TestProjectRecord:
    """Test projection of the CRM record shapes."""

    def test_flat_record(self):
        """Test a flat search-result payload."""
        record = project_record(make_record("r1", "u1", "u2"), "Accounts")

        assert record.id == "r1"
        assert record.created_by == "u1"
        assert record.assigned_user_id == "u2"
        assert record.module == "Accounts"

    def test_jsonapi_record(self):
        """Test that attributes are unwrapped and the outer id wins."""
        payload = make_jsonapi_record("r1", "Contacts", created_by="u1", assigned_user_id="u2")
        record = project_record(payload)

        assert record.id == "r1"
        assert record.created_by == "u1"
        assert record.assigned_user_id == "u2"
        assert record.module == "Contacts"

    def test_fallback_keys(self):
        """Test alternate field names."""
        record = project_record({"record_id": "r1", "created_by_id": "u1", "owner_id": "u2"})

        assert record.id == "r1"
        assert record.created_by == "u1"
        assert record.assigned_user_id == "u2"

    def test_security_groups(self):
        """Test direct group assignment fields."""
        record = project_record({
            "id": "r1",
            "securitygroup_id": "g1",
            "securitygroups": [{"id": "g2"}, "g3", "g2", None],
        })

        assert record.security_group_id == "g1"
        assert record.security_group_ids == ("g2", "g3")
        assert record.group_ids == ("g1", "g2", "g3")

    def test_blank_values_are_missing(self):
        """Test that empty strings become None."""
        record = project_record({"id": "r1", "created_by": "  ", "assigned_user_id": ""})

        assert record.created_by is None
        assert record.assigned_user_id is None

    def test_non_mapping_payload(self):
        """Test that junk projects to a record without an id."""
        assert project_record("nonsense").id is None
        assert project_record(None).id is None

    def test_record_passthrough(self):
        """Test that a Record is returned unchanged."""
        record = Record(id="r1")
        assert project_record(record) is record

    def test_project_records_order(self):
        """Test collection projection keeps order and tolerates None."""
        records = project_records([make_record("b"), make_record("a")])
        assert [r.id for r in records] == ["b", "a"]
        assert project_records(None) == []
