"""
Route tests for AI drafts and summaries.
"""

from talentbridge.api.routes import ai_routes
from talentbridge.services import ai_service, application_service
from tests.fakes import FakeFetch, member_of, NOW, RECRUITER, COMPANY_ORG

APPLICATION = {
    "id": 5, "job_id": 7, "job_title": "Backend Engineer", "org_id": 10, "applicant_user_id": 3,
    "applicant_email": "sam@student.test", "applicant_name": "Sam", "stage": "applied",
    "source": None, "applicant_university_id": None, "created_at": NOW, "updated_at": NOW,
}
ANALYSIS = {
    "id": 1, "application_id": 5, "summary_md": "## Application Overview", "strengths": None,
    "concerns": None, "match_score": 70, "model_meta": {"model": "heuristic-v1"}, "created_at": NOW,
}


class TestSummarize:
    """Tests for POST /ai/summarize-application."""

    def setup_member(self, monkeypatch):
        monkeypatch.setattr(application_service, "fetch_one", FakeFetch(APPLICATION))
        monkeypatch.setattr(application_service, "require_org_member", member_of(COMPANY_ORG))

    def test_new_analysis_is_201(self, client, login, monkeypatch):
        login(RECRUITER)
        self.setup_member(monkeypatch)
        calls = []

        def fake_summarize(application_id, regenerate):
            calls.append((application_id, regenerate))
            return ANALYSIS, True

        monkeypatch.setattr(ai_service, "summarize_application", fake_summarize)
        response = client.post("/api/ai/summarize-application", json={"application_id": 5, "regenerate": True})

        assert response.status_code == 201
        assert response.json()["strengths"] == []
        assert calls == [(5, True)]

    def test_cached_is_200(self, client, login, monkeypatch):
        login(RECRUITER)
        self.setup_member(monkeypatch)
        monkeypatch.setattr(ai_service, "summarize_application", lambda application_id, regenerate: (ANALYSIS, False))
        response = client.post("/api/ai/summarize-application", json={"application_id": 5})
        assert response.status_code == 200
        assert response.json()["match_score"] == 70

    def test_outsider(self, client, login, monkeypatch):
        login(RECRUITER)
        monkeypatch.setattr(application_service, "fetch_one", FakeFetch(dict(APPLICATION, org_id=11)))
        monkeypatch.setattr(application_service, "require_org_member", member_of(COMPANY_ORG))
        assert client.post("/api/ai/summarize-application", json={"application_id": 5}).status_code == 403


class TestGenerateJd:
    """Tests for POST /ai/generate-jd."""

    def test_blank_prompt(self, client, login):
        login(RECRUITER)
        assert client.post("/api/ai/generate-jd", json={"job_id": 7, "prompt": " "}).status_code == 422

    def test_unknown_job(self, client, login, monkeypatch):
        login(RECRUITER)
        monkeypatch.setattr(ai_routes, "fetch_one", FakeFetch(None))
        assert client.post("/api/ai/generate-jd", json={"job_id": 7, "prompt": "remote"}).status_code == 404

    def test_creates_version(self, client, login, monkeypatch):
        login(RECRUITER)
        monkeypatch.setattr(ai_routes, "fetch_one", FakeFetch({"id": 7, "org_id": 10}))
        monkeypatch.setattr(ai_routes, "require_org_member", member_of(COMPANY_ORG))
        version = {"id": 2, "job_id": 7, "content_md": "# Overview", "created_by": 1,
                   "source": "ai", "created_at": NOW}
        monkeypatch.setattr(ai_service, "generate_jd", lambda job_id, prompt, user_id: version)

        response = client.post("/api/ai/generate-jd", json={"job_id": 7, "prompt": " senior, remote "})

        assert response.status_code == 201
        assert response.json()["content_md"] == "# Overview"
