"""
Route tests for career center and employer partnership endpoints.
"""

from datetime import timedelta

from talentbridge.api.routes import employer_routes, job_routes, university_routes
from tests.fakes import (
    FakeFetch, FakeSession, member_of, job_row, NOW, RECRUITER, CAREER_STAFF, COMPANY_ORG, UNIVERSITY_ORG
)

AUTHORIZATION = {
    "id": 4, "company_org_id": 10, "university_org_id": 20, "status": "pending",
    "created_at": NOW, "updated_at": NOW,
}


class TestUniversityAccess:

    def test_company_members_rejected(self, client, login, monkeypatch):
        login(RECRUITER)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(COMPANY_ORG))
        assert client.get("/api/university/students?org_id=10").status_code == 403


class TestRequests:
    """Tests for employer access requests on the career center side."""

    def test_status_filter(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        fetch = FakeFetch([dict(AUTHORIZATION, company_name="Acme", industry="Fintech",
                                jobs_count=3, events_count=1, applications_count=2)])
        monkeypatch.setattr(university_routes, "execute_raw_sql", fetch)

        response = client.get("/api/university/requests?org_id=20&status=pending")

        assert response.json()[0]["applications_count"] == 2
        assert fetch.calls[0][1] == {"org_id": 20, "status": "pending"}

    def test_invalid_status(self, client, login):
        login(CAREER_STAFF)
        assert client.get("/api/university/requests?org_id=20&status=maybe").status_code == 422

    def test_approve(self, client, login, monkeypatch, no_activity):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        session = FakeSession([dict(AUTHORIZATION, status="approved")])
        monkeypatch.setattr(university_routes, "get_db_session", session)

        response = client.post("/api/university/requests/4/approve?org_id=20")

        assert response.json()["status"] == "approved"
        assert session.calls[0][1] == {"status": "approved", "id": 4, "org_id": 20}
        assert no_activity[0][3] == "approved"

    def test_reject_other_universitys_request(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        monkeypatch.setattr(university_routes, "get_db_session", FakeSession([]))
        assert client.post("/api/university/requests/99/reject?org_id=20").status_code == 404


class TestTargetedJobs:

    def test_mapped_jobs_of_any_visibility(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        monkeypatch.setattr(university_routes, "execute_raw_sql", FakeFetch([
            job_row(1, visibility="institutions"),
            job_row(2, visibility="public"),
        ]))
        monkeypatch.setattr(job_routes, "execute_raw_sql", FakeFetch([
            {"job_id": 1, "university_org_id": 20},
            {"job_id": 2, "university_org_id": 20},
            {"job_id": 2, "university_org_id": 21},
        ]))

        response = client.get("/api/university/jobs?org_id=20")

        assert [j["id"] for j in response.json()] == [1, 2]
        assert response.json()[1]["university_ids"] == [20, 21]

    def test_filters_and_paging_in_sql(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        fetch = FakeFetch([])
        monkeypatch.setattr(university_routes, "execute_raw_sql", fetch)

        response = client.get("/api/university/jobs?org_id=20&job_id=7&q=Austin&limit=5&offset=10")

        assert response.json() == []
        sql, params = fetch.calls[0]
        assert "j.visibility IN" not in sql and "j.visibility =" not in sql
        assert "j.id = :job_id" in sql
        assert "j.dept ILIKE :q" in sql and "j.location ILIKE :q" in sql
        assert "LIMIT :limit OFFSET :offset" in sql
        assert params == {"org_id": 20, "job_id": 7, "q": "%Austin%", "limit": 5, "offset": 10}


class TestStudentSummary:

    def test_nulls_are_zero(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        monkeypatch.setattr(university_routes, "fetch_one", FakeFetch({"total_students": 12, "hired": None}))

        body = client.get("/api/university/students/summary?org_id=20").json()

        assert body == {
            "total_students": 12, "with_resume": 0, "with_applications": 0,
            "total_applications": 0, "hired": 0, "events_attended": 0,
        }


class TestEmployerRequests:
    """Tests for the company side of access requests."""

    def test_new_request(self, client, login, monkeypatch, no_activity):
        login(RECRUITER)
        monkeypatch.setattr(employer_routes, "require_org_member", member_of(COMPANY_ORG))
        monkeypatch.setattr(employer_routes, "fetch_one", FakeFetch({"id": 20}, None))
        monkeypatch.setattr(employer_routes, "get_db_session", FakeSession([AUTHORIZATION]))

        response = client.post("/api/employer/universities/20/request", json={"company_org_id": 10})

        assert response.status_code == 201
        assert response.json()["status"] == "pending"
        assert no_activity[0][:4] == (20, "university_authorization", 4, "requested")

    def test_repeat_request(self, client, login, monkeypatch):
        login(RECRUITER)
        monkeypatch.setattr(employer_routes, "require_org_member", member_of(COMPANY_ORG))
        monkeypatch.setattr(employer_routes, "fetch_one", FakeFetch({"id": 20}, AUTHORIZATION))

        response = client.post("/api/employer/universities/20/request", json={"company_org_id": 10})

        assert response.status_code == 200
        assert response.json()["id"] == 4

    def test_unknown_university(self, client, login, monkeypatch):
        login(RECRUITER)
        monkeypatch.setattr(employer_routes, "require_org_member", member_of(COMPANY_ORG))
        monkeypatch.setattr(employer_routes, "fetch_one", FakeFetch(None))
        response = client.post("/api/employer/universities/99/request", json={"company_org_id": 10})
        assert response.status_code == 404


def student_profile(**overrides) -> dict:
    row = {
        "user_id": 3, "name": "Sam Student", "email": "sam@student.test", "university_id": 20,
        "university_name": "State University", "grad_year": 2026, "program": "CS", "headline": None,
        "about": None, "location_city": None, "location_country": None, "website_url": None,
        "linkedin_url": None, "github_url": None, "resume_url": None, "is_public": False,
        "skills": [], "experience_years": None,
    }
    row.update(overrides)
    return row


class TestStudentDetail:
    """Tests for GET /university/students/{student_user_id}."""

    def test_profile_with_stats(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        monkeypatch.setattr(university_routes, "load_profile", lambda uid: student_profile())
        monkeypatch.setattr(university_routes, "execute_raw_sql", FakeFetch(
            [
                {"id": 9, "job_id": 1, "stage": "rejected", "created_at": NOW,
                 "job_title": "Analyst", "company_name": "Acme"},
                {"id": 8, "job_id": 2, "stage": "interview", "created_at": NOW,
                 "job_title": "Engineer", "company_name": "Acme"},
            ],
            [],
        ))
        monkeypatch.setattr(university_routes, "fetch_one", FakeFetch(
            {"events_registered": 2, "events_attended": 1, "saved_jobs_count": None}
        ))

        body = client.get("/api/university/students/3?org_id=20").json()

        assert body["student"]["name"] == "Sam Student"
        assert [a["id"] for a in body["applications"]] == [9, 8]
        assert body["stats"]["total_applications"] == 2
        assert body["stats"]["active_applications"] == 1
        assert body["stats"]["events_registered"] == 2
        assert body["stats"]["saved_jobs_count"] == 0

    def test_other_universitys_student(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        monkeypatch.setattr(university_routes, "load_profile", lambda uid: student_profile(university_id=21))
        assert client.get("/api/university/students/3?org_id=20").status_code == 404

    def test_summary_route_not_shadowed(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        monkeypatch.setattr(university_routes, "fetch_one", FakeFetch({}))
        assert client.get("/api/university/students/summary?org_id=20").json()["total_students"] == 0


class TestStudentApplications:

    def test_applications_of_own_students(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        fetch = FakeFetch([{
            "id": 5, "job_id": 1, "stage": "applied", "created_at": NOW, "student_user_id": 3,
            "student_name": "Sam Student", "student_email": "sam@student.test", "program": "CS",
            "grad_year": 2026, "job_title": "Analyst", "company_name": "Acme",
        }])
        monkeypatch.setattr(university_routes, "execute_raw_sql", fetch)

        response = client.get("/api/university/applications?org_id=20&job_id=1")

        assert response.json()[0]["company_name"] == "Acme"
        sql, params = fetch.calls[0]
        assert "student_profiles WHERE university_id = :org_id" in sql
        assert params == {"org_id": 20, "job_id": 1, "limit": 100, "offset": 0}


class TestPartnerSummary:
    """Tests for GET /university/partners/{company_org_id}/summary."""

    def summary_row(self, **overrides) -> dict:
        row = {
            "company_org_id": 10, "company_name": "Acme", "industry": "Fintech", "company_url": None,
            "authorization_id": 4, "status": "approved", "requested_at": NOW - timedelta(days=30),
            "jobs_count": 3, "last_job_at": NOW - timedelta(days=5), "events_count": 0,
            "last_event_at": None, "applications_count": 2, "last_application_at": NOW,
        }
        row.update(overrides)
        return row

    def test_latest_interaction(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        fetch = FakeFetch(self.summary_row())
        monkeypatch.setattr(university_routes, "fetch_one", fetch)

        body = client.get("/api/university/partners/10/summary?org_id=20").json()

        assert body["status"] == "approved"
        assert body["applications_count"] == 2
        assert body["last_interaction_at"] == NOW.isoformat()
        assert fetch.calls[0][1] == {"company_id": 10, "org_id": 20}

    def test_no_request_yet(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        monkeypatch.setattr(university_routes, "fetch_one", FakeFetch(self.summary_row(
            authorization_id=None, status=None, requested_at=None, jobs_count=0, last_job_at=None,
            applications_count=0, last_application_at=None,
        )))

        body = client.get("/api/university/partners/10/summary?org_id=20").json()

        assert body["status"] == "unknown"
        assert body["last_interaction_at"] is None

    def test_unknown_company(self, client, login, monkeypatch):
        login(CAREER_STAFF)
        monkeypatch.setattr(university_routes, "require_org_member", member_of(UNIVERSITY_ORG))
        monkeypatch.setattr(university_routes, "fetch_one", FakeFetch())
        assert client.get("/api/university/partners/99/summary?org_id=20").status_code == 404
