"""
Unit tests for best-effort activity writes and the activity feed query.
"""

import json
from datetime import date

from talentbridge.services import activity_service
from tests.fakes import FakeFetch, FakeSession


class TestRecordActivity:
    """Tests for record_activity."""

    def test_returns_id(self, monkeypatch):
        session = FakeSession([{"id": 9}])
        monkeypatch.setattr(activity_service, "get_db_session", session)

        activity_id = activity_service.record_activity(10, "job", 3, "created", 1, {"on": date(2025, 3, 1)})

        assert activity_id == 9
        assert json.loads(session.calls[0][1]["diff"]) == {"on": "2025-03-01"}

    def test_no_diff(self, monkeypatch):
        session = FakeSession([{"id": 9}])
        monkeypatch.setattr(activity_service, "get_db_session", session)
        activity_service.record_activity(10, "job", 3, "viewed")
        assert session.calls[0][1]["diff"] is None
        assert session.calls[0][1]["actor"] is None

    def test_failure_is_logged_not_raised(self, monkeypatch, caplog):
        def broken_session():
            raise RuntimeError("connection refused")

        monkeypatch.setattr(activity_service, "get_db_session", broken_session)

        assert activity_service.record_activity(10, "job", 3, "created") is None
        assert "activity_write_failed" in caplog.text


class TestListActivity:

    def test_filters(self, monkeypatch):
        fetch = FakeFetch([])
        monkeypatch.setattr(activity_service, "execute_raw_sql", fetch)

        activity_service.list_activity(10, entity_type="job", entity_id=3, limit=5)

        sql, params = fetch.calls[0]
        assert "a.entity_type = :entity_type" in sql
        assert "a.entity_id = :entity_id" in sql
        assert sql.endswith("ORDER BY a.created_at DESC, a.id DESC LIMIT :limit")
        assert params == {"org_id": 10, "limit": 5, "entity_type": "job", "entity_id": 3}
