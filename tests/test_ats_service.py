"""
Unit tests for ATS scoring and ranking.
"""

import pytest

from talentbridge.services import ats_service


def resume(resume_id, application_id, candidate_id=None, **extra) -> dict:
    row = {
        "id": resume_id, "application_id": application_id, "candidate_id": candidate_id,
        "format_score": 0.5, "parsed_mongo_id": f"p{resume_id}", "raw_mongo_id": f"r{resume_id}",
    }
    row.update(extra)
    return row


class TestTokenize:

    def test_stopwords_and_short_tokens(self):
        assert ats_service.tokenize("The Python and SQL skills, a C") == ["python", "sql"]

    def test_none(self):
        assert ats_service.tokenize(None) == []


class TestJaccard:

    def test_overlap(self):
        assert ats_service.jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)

    def test_both_empty(self):
        assert ats_service.jaccard(set(), set()) == 0.0


class TestImpactScore:

    def test_verbs_capped_and_saturates(self):
        parsed = {"impact": {"numbers": 5, "percents": 2, "currency": 1, "verbs": 30}}
        assert ats_service.impact_score(parsed) == 1.0

    def test_partial(self):
        assert ats_service.impact_score({"impact": {"numbers": 2, "verbs": 3}}) == pytest.approx(0.25)

    def test_missing(self):
        assert ats_service.impact_score({}) == 0.0


class TestMatchRequiredSkills:

    def test_parser_skills_aliases_and_raw_text(self):
        matched = ats_service.match_required_skills(
            ["Python", "Kubernetes", "", "Terraform", "Rust"], ["python"], "we use k8s and terraform"
        )
        assert matched == ["python", "kubernetes", "terraform"]


class TestScoreResume:
    """Tests for the weighted feature score."""

    def test_weighted_sum_with_presence(self):
        parsed = {
            "skills": ["python", "sql"], "sections": {"body": "x"}, "impact": {},
            "presence": {"linkedin": True, "portfolio": True},
        }
        result = ats_service.score_resume(
            {"skills_required": ["python", "sql"]}, set(), resume(1, 2, 3), parsed, ""
        )
        assert result["score"] == pytest.approx(0.55)
        assert result["breakdown"]["skill_coverage"] == 1.0
        assert result["breakdown"]["presence"] == pytest.approx(0.1)
        assert result["matched_skills"] == ["python", "sql"]
        assert result["candidate_id"] == 3

    def test_clipped_to_max(self):
        parsed = {
            "skills": ["python"], "sections": {"body": "python"},
            "impact": {"numbers": 20}, "presence": {"linkedin": True, "portfolio": True},
        }
        result = ats_service.score_resume(
            {"skills_required": ["python"]}, {"python"}, resume(1, 2, format_score=2.0), parsed, ""
        )
        assert result["score"] == ats_service.MAX_SCORE

    def test_no_required_skills(self):
        result = ats_service.score_resume({"skills_required": None}, set(), resume(1, 2), {}, "")
        assert result["breakdown"]["skill_coverage"] == 0.0
        assert result["breakdown"]["required_skills_total"] == 0.0

    def test_cert_and_tool_raise_score(self):
        job = {"skills_required": ["python", "docker"]}
        base = {"sections": {"body": "x"}, "impact": {}, "presence": {}}
        plain = ats_service.score_resume(job, set(), resume(1, 2), dict(base, skills=["python"]), "")
        certified = ats_service.score_resume(
            job, set(), resume(1, 2), dict(base, skills=["python", "docker", "aws", "pmp"]), ""
        )

        assert certified["breakdown"]["cert_bonus"] == pytest.approx(0.25)
        assert certified["breakdown"]["tool_bonus"] == pytest.approx(0.25)
        assert plain["breakdown"]["cert_bonus"] == 0.0
        # coverage 0.5 -> 1.0 plus 0.05 * (0.25 + 0.25)
        assert certified["score"] - plain["score"] == pytest.approx(0.175 + 0.025)


class TestKindBonuses:

    def test_saturates(self):
        bonuses = ats_service.kind_bonuses(["pmp", "cka", "cissp", "aws certified", "scrum master"])
        assert bonuses == {"cert": 1.0, "tool": 0.0}

    def test_duplicates_and_plain_skills_ignored(self):
        bonuses = ats_service.kind_bonuses(["Docker", "docker ", "python", "communication", ""])
        assert bonuses == {"cert": 0.0, "tool": pytest.approx(0.125)}


class TestLatestPerCandidate:

    def test_keeps_newest(self):
        rows = [resume(4, 1, 7), resume(3, 1, 7), resume(2, 9), resume(1, 9)]
        assert [r["id"] for r in ats_service.latest_per_candidate(rows)] == [4, 2]

    def test_anonymous_applications_kept_apart(self):
        rows = [resume(2, 8), resume(1, 9)]
        assert len(ats_service.latest_per_candidate(rows)) == 2


class TestRankResumes:
    """Tests for ranking order, dedupe and limit."""

    JOB = {"id": 1, "skills_required": ["python", "sql"], "description_md": "Python SQL backend"}

    def parsed(self, skills):
        return {"skills": skills, "sections": {"skills": " ".join(skills)}, "impact": {}, "presence": {}}

    def test_best_first(self):
        rows = [resume(1, 1, 11), resume(2, 2, 12)]
        parsed = {"p1": self.parsed(["python"]), "p2": self.parsed(["python", "sql"])}
        ranked = ats_service.rank_resumes(self.JOB, rows, parsed, {})
        assert [r["resume_id"] for r in ranked] == [2, 1]

    def test_dedupe_toggle(self):
        rows = [resume(2, 1, 11), resume(1, 1, 11)]
        parsed = {"p1": self.parsed(["python"]), "p2": self.parsed(["python"])}
        assert len(ats_service.rank_resumes(self.JOB, rows, parsed, {})) == 1
        assert len(ats_service.rank_resumes(self.JOB, rows, parsed, {}, dedupe=False)) == 2

    def test_limit(self):
        rows = [resume(i, i, i) for i in range(1, 6)]
        assert len(ats_service.rank_resumes(self.JOB, rows, {}, {}, limit=3)) == 3

    def test_missing_documents_use_raw_text(self):
        ranked = ats_service.rank_resumes(self.JOB, [resume(1, 1, 11)], {}, {"r1": "python and sql"})
        assert ranked[0]["matched_skills"] == ["python", "sql"]
