"""
Route tests for the student profile and feeds.
"""

from decimal import Decimal

from talentbridge.api.routes import job_routes, student_routes
from tests.fakes import FakeFetch, FakeSession, job_row, NOW, STUDENT


def profile_row(**overrides) -> dict:
    row = {
        "user_id": 3, "name": "Sam Student", "email": "sam@student.test", "university_id": 20,
        "university_name": "State University", "grad_year": 2026, "program": "Computer Science",
        "headline": None, "about": None, "location_city": None, "location_country": None,
        "website_url": None, "linkedin_url": None, "github_url": None, "resume_url": None,
        "is_public": False, "skills": ["python"], "experience_years": Decimal("1.5"),
    }
    row.update(overrides)
    return row


class TestProfile:
    """Tests for GET/PUT /student/profile."""

    def test_get(self, client, login, monkeypatch):
        login(STUDENT)
        monkeypatch.setattr(student_routes, "fetch_one", FakeFetch(profile_row()))
        body = client.get("/api/student/profile").json()
        assert body["university_name"] == "State University"
        assert body["experience_years"] == 1.5

    def test_unknown_university(self, client, login, monkeypatch):
        login(STUDENT)
        monkeypatch.setattr(student_routes, "fetch_one", FakeFetch(None))
        response = client.put("/api/student/profile", json={"university_id": 999})
        assert response.status_code == 400

    def test_upsert_only_sent_fields(self, client, login, monkeypatch):
        login(STUDENT)
        monkeypatch.setattr(student_routes, "fetch_one", FakeFetch({"id": 20}, profile_row()))
        session = FakeSession([])
        monkeypatch.setattr(student_routes, "get_db_session", session)

        response = client.put("/api/student/profile", json={
            "university_id": 20, "skills": [" SQL ", ""], "headline": "Aspiring analyst",
        })

        assert response.status_code == 200
        sql = session.sql(0)
        assert "ON CONFLICT (user_id) DO UPDATE SET" in sql
        assert "headline = EXCLUDED.headline" in sql
        assert "grad_year" not in sql
        assert session.calls[0][1]["skills"] == ["SQL"]

    def test_empty_body_creates_row(self, client, login, monkeypatch):
        login(STUDENT)
        monkeypatch.setattr(student_routes, "fetch_one", FakeFetch(profile_row(university_id=None)))
        session = FakeSession([])
        monkeypatch.setattr(student_routes, "get_db_session", session)

        assert client.put("/api/student/profile", json={}).status_code == 200
        assert "DO NOTHING" in session.sql(0)


class TestExperiences:

    def test_update_someone_elses(self, client, login, monkeypatch):
        login(STUDENT)
        monkeypatch.setattr(student_routes, "get_db_session", FakeSession([]))
        response = client.put("/api/student/experiences/9", json={"title": "Intern"})
        assert response.status_code == 404

    def test_add(self, client, login, monkeypatch):
        login(STUDENT)
        row = {
            "id": 1, "user_id": 3, "title": "Intern", "company": "Acme", "start_date": "2024-06-01",
            "end_date": None, "is_current": True, "location": None, "description": None, "created_at": NOW,
        }
        session = FakeSession([row])
        monkeypatch.setattr(student_routes, "get_db_session", session)

        response = client.post("/api/student/experiences", json={
            "title": "Intern", "company": "Acme", "start_date": "2024-06-01", "is_current": True,
        })

        assert response.status_code == 201
        assert session.calls[0][1]["uid"] == 3

    def test_dates_out_of_order(self, client, login):
        login(STUDENT)
        response = client.post("/api/student/experiences", json={
            "title": "Intern", "start_date": "2024-06-01", "end_date": "2024-01-01",
        })
        assert response.status_code == 422


class TestSavedJobs:

    def test_unknown_job(self, client, login, monkeypatch):
        login(STUDENT)
        monkeypatch.setattr(job_routes, "fetch_one", FakeFetch(None))
        assert client.post("/api/student/saved-jobs", json={"job_id": 9}).status_code == 404

    def test_save_is_idempotent(self, client, login, monkeypatch):
        login(STUDENT)
        monkeypatch.setattr(job_routes, "fetch_one", FakeFetch(job_row(9)))
        session = FakeSession([])
        monkeypatch.setattr(student_routes, "get_db_session", session)

        assert client.post("/api/student/saved-jobs", json={"job_id": 9}).status_code == 201
        assert "ON CONFLICT (user_id, job_id) DO NOTHING" in session.sql(0)


class TestJobFeed:
    """Tests for GET /student/jobs."""

    JOBS = [
        job_row(1, visibility="public"),
        job_row(2, visibility="institutions"),
        job_row(3, visibility="institutions"),
        job_row(4, visibility="public", status="closed"),
        job_row(5, visibility="both"),
    ]
    MAPPINGS = [
        {"job_id": 2, "university_org_id": 20},
        {"job_id": 3, "university_org_id": 21},
    ]

    def feed(self, client, monkeypatch, profile, query=""):
        monkeypatch.setattr(student_routes, "execute_raw_sql", FakeFetch(list(self.JOBS)))
        monkeypatch.setattr(job_routes, "execute_raw_sql", FakeFetch(list(self.MAPPINGS)))
        monkeypatch.setattr(student_routes, "fetch_one", FakeFetch(profile))
        return [j["id"] for j in client.get(f"/api/student/jobs{query}").json()]

    def test_public_plus_own_university(self, client, login, monkeypatch):
        login(STUDENT)
        assert self.feed(client, monkeypatch, profile_row()) == [1, 2, 5]

    def test_without_university(self, client, login, monkeypatch):
        login(STUDENT)
        assert self.feed(client, monkeypatch, profile_row(university_id=None)) == [1, 5]

    def test_paginates_after_filtering(self, client, login, monkeypatch):
        login(STUDENT)
        assert self.feed(client, monkeypatch, profile_row(), "?limit=1&offset=1") == [2]
