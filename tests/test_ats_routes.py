"""
Route tests for resume ranking.
"""

from talentbridge.api.routes import ats_routes
from tests.fakes import FakeFetch, member_of, NOW, RECRUITER, COMPANY_ORG

JOB = {"id": 7, "org_id": 10, "title": "Backend Engineer", "description_md": "Python APIs",
       "skills_required": ["python", "sql"]}


def resume_row(resume_id, application_id, candidate_id):
    return {
        "id": resume_id, "application_id": application_id, "candidate_id": candidate_id,
        "created_at": NOW, "format_score": 0.8,
        "raw_mongo_id": f"raw{resume_id}", "parsed_mongo_id": f"parsed{resume_id}",
    }


class FakeParsedStore:
    def get_many(self, ids):
        return {
            "parsed3": {"skills": ["python", "sql"], "sections": {"skills": "python sql"}},
            "parsed2": {"skills": ["python"], "sections": {"skills": "python"}},
            "parsed1": {"skills": [], "sections": {}},
        }


class FakeRawStore:
    def get_texts(self, ids):
        return {}


class TestRankJob:
    """Tests for GET /ats/jobs/{job_id}/rank."""

    def setup_store(self, monkeypatch):
        monkeypatch.setattr(ats_routes, "ParsedResumeService", FakeParsedStore)
        monkeypatch.setattr(ats_routes, "RawResumeService", FakeRawStore)
        monkeypatch.setattr(ats_routes, "require_org_member", member_of(COMPANY_ORG))
        monkeypatch.setattr(ats_routes, "fetch_one", FakeFetch(JOB))
        monkeypatch.setattr(ats_routes, "execute_raw_sql", FakeFetch([
            resume_row(3, 30, 11), resume_row(2, 20, 12), resume_row(1, 20, 12),
        ]))

    def test_latest_per_candidate_best_first(self, client, login, monkeypatch):
        login(RECRUITER)
        self.setup_store(monkeypatch)

        body = client.get("/api/ats/jobs/7/rank").json()

        assert body["deduped"] is True
        assert [c["resume_id"] for c in body["ranked"]] == [3, 2]
        assert body["ranked"][0]["matched_skills"] == ["python", "sql"]

    def test_all_keeps_every_upload(self, client, login, monkeypatch):
        login(RECRUITER)
        self.setup_store(monkeypatch)

        body = client.get("/api/ats/jobs/7/rank?all=true").json()

        assert body["deduped"] is False
        assert [c["resume_id"] for c in body["ranked"]] == [3, 2, 1]

    def test_unknown_job(self, client, login, monkeypatch):
        login(RECRUITER)
        monkeypatch.setattr(ats_routes, "fetch_one", FakeFetch(None))
        assert client.get("/api/ats/jobs/7/rank").status_code == 404

    def test_other_org(self, client, login, monkeypatch):
        login(RECRUITER)
        monkeypatch.setattr(ats_routes, "fetch_one", FakeFetch(dict(JOB, org_id=11)))
        monkeypatch.setattr(ats_routes, "require_org_member", member_of(COMPANY_ORG))
        assert client.get("/api/ats/jobs/7/rank").status_code == 403

    def test_candidate_focus(self, client, login, monkeypatch):
        login(RECRUITER)
        self.setup_store(monkeypatch)
        rows = FakeFetch([resume_row(2, 20, 12), resume_row(1, 20, 12)])
        monkeypatch.setattr(ats_routes, "execute_raw_sql", rows)

        body = client.get("/api/ats/jobs/7/rank?candidate_id=12").json()

        sql, params = rows.calls[0]
        assert "a.applicant_user_id = :candidate_id" in sql
        assert params == {"job_id": 7, "candidate_id": 12}
        assert body["candidate_id"] == 12
        assert body["deduped"] is True
        assert [c["resume_id"] for c in body["ranked"]] == [2]

    def test_resume_focus_not_deduped(self, client, login, monkeypatch):
        login(RECRUITER)
        self.setup_store(monkeypatch)
        rows = FakeFetch([resume_row(1, 20, 12)])
        monkeypatch.setattr(ats_routes, "execute_raw_sql", rows)

        body = client.get("/api/ats/jobs/7/rank?resume_id=1").json()

        sql, params = rows.calls[0]
        assert "r.id = :resume_id" in sql
        assert params == {"job_id": 7, "resume_id": 1}
        assert body["deduped"] is False
        assert body["resume_id"] == 1
        assert [c["resume_id"] for c in body["ranked"]] == [1]
