"""
Unit tests for inbox mapping and message posting.
"""

from datetime import datetime, timezone

import pytest
from fastapi import HTTPException

from talentbridge.services import inbox_service
from tests.fakes import FakeSession, NOW, thread_row


class TestToMillis:

    def test_naive_is_utc(self):
        assert inbox_service.to_millis(datetime(1970, 1, 1, 0, 0, 1)) == 1000

    def test_aware(self):
        assert inbox_service.to_millis(datetime(1970, 1, 1, 0, 0, 2, tzinfo=timezone.utc)) == 2000


class TestOrgConversation:
    """Tests for the employer / university inbox list shape."""

    def test_candidate_title_and_label(self):
        convo = inbox_service.org_conversation(thread_row())
        assert convo["id"] == "5"
        assert convo["title"] == "Candidate · Sam"
        assert "candidate" in convo["labels"]
        assert convo["counterparty"] == {"name": "Sam", "type": "candidate"}
        assert convo["participants"] == ["Sam"]
        assert convo["preview"] == "See you Monday"

    def test_non_candidate_uses_subject(self):
        convo = inbox_service.org_conversation(
            thread_row(counterparty_type="partner", counterparty_name=None, subject="Fair logistics")
        )
        assert convo["title"] == "Fair logistics"
        assert convo["counterparty"] is None
        assert convo["participants"] == []

    def test_last_activity_falls_back_to_created(self):
        convo = inbox_service.org_conversation(thread_row(last_message_at=None))
        assert convo["last_activity"] == inbox_service.to_millis(NOW)


class TestStudentConversation:
    """Tests for the student inbox list shape."""

    def test_org_name_title_and_portal_label_first(self):
        convo = inbox_service.student_conversation(dict(thread_row(labels=["candidate", "org:10", "Offer"]),
                                                        org_name="Acme"))
        assert convo["title"] == "Acme"
        assert convo["labels"] == ["Employer", "Offer"]

    def test_university_portal_label(self):
        convo = inbox_service.student_conversation(dict(thread_row(portal="university"), org_name=None))
        assert convo["title"] == "Career center"
        assert convo["labels"][0] == "Career center"


class TestMessages:

    def test_mine_by_viewer_role(self):
        row = {"id": 1, "body": "Hi", "from_role": "employer", "from_name": "Riley", "created_at": NOW}
        assert inbox_service.message_view(row, "employer")["mine"] is True
        assert inbox_service.message_view(row, "candidate")["mine"] is False

    @pytest.mark.parametrize("tab,expected", [
        ("all", ["t.archived = FALSE"]),
        ("unread", ["t.unread_count > 0", "t.archived = FALSE"]),
        ("starred", ["t.starred = TRUE", "t.archived = FALSE"]),
        ("archived", ["t.archived = TRUE"]),
    ])
    def test_tab_conditions(self, tab, expected):
        assert inbox_service.tab_conditions(tab) == expected


class TestPostMessage:
    """Tests for unread bookkeeping when posting."""

    def test_org_reply_resets_unread(self, monkeypatch):
        session = FakeSession([{"id": 42, "created_at": NOW}], [])
        monkeypatch.setattr(inbox_service, "get_db_session", session)

        message = inbox_service.post_message(thread_row(), "Thanks!", "employer", 1, "Riley")

        assert message["id"] == "42"
        assert message["mine"] is True
        assert "unread_count = 0" in session.sql(1)
        assert session.calls[1][1]["snippet"] == "Thanks!"

    def test_candidate_reply_increments_unread(self, monkeypatch):
        session = FakeSession([{"id": 43, "created_at": NOW}], [])
        monkeypatch.setattr(inbox_service, "get_db_session", session)

        inbox_service.post_message(thread_row(), "x" * 400, "candidate", 3, "Sam")

        assert "unread_count = unread_count + 1" in session.sql(1)
        assert len(session.calls[1][1]["snippet"]) == 280


class TestThreadAccess:

    def test_other_org_thread_is_missing(self, monkeypatch):
        monkeypatch.setattr(inbox_service, "fetch_one", lambda sql, params=None: thread_row(org_id=99))
        with pytest.raises(HTTPException) as exc:
            inbox_service.get_org_thread(5, 10, "employer")
        assert exc.value.status_code == 404

    def test_other_student_thread_forbidden(self, monkeypatch):
        monkeypatch.setattr(inbox_service, "fetch_one", lambda sql, params=None: thread_row(counterparty_user_id=4))
        with pytest.raises(HTTPException) as exc:
            inbox_service.get_student_thread(5, 3)
        assert exc.value.status_code == 403

    def test_update_flags_requires_a_change(self):
        with pytest.raises(HTTPException) as exc:
            inbox_service.update_flags(5, None, None, False)
        assert exc.value.status_code == 400

    def test_find_existing_thread(self, monkeypatch):
        monkeypatch.setattr(inbox_service, "fetch_one", lambda sql, params=None: {"id": 8})
        assert inbox_service.find_or_create_thread(10, "employer", 3, "Sam") == {"thread_id": 8, "created": False}

    def test_create_thread_subject(self, monkeypatch):
        session = FakeSession([{"id": 9}])
        monkeypatch.setattr(inbox_service, "fetch_one", lambda sql, params=None: None)
        monkeypatch.setattr(inbox_service, "get_db_session", session)

        result = inbox_service.find_or_create_thread(10, "university", 3, None)

        assert result == {"thread_id": 9, "created": True}
        assert session.calls[0][1]["subject"] == "Candidate · Candidate"
        assert session.calls[0][1]["portal"] == "university"
