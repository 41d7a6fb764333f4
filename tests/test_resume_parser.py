"""
Unit tests for the rule-based resume parser.
"""

import pytest

from talentbridge.services import resume_parser

RESUME = """Jane Doe
jane@example.com | +1 555 010 2030
https://linkedin.com/in/janedoe https://janedoe.github.io

Summary
Backend developer who shipped payment APIs.

Experience
- Led migration to PostgreSQL, reduced latency by 40%
- Built FastAPI services handling $20,000 daily volume
Jan 2021 - Present

Education
BSc Computer Science, 2020

Skills
Python, Docker, Git
"""


class TestFindSkills:
    """Tests for alias based skill detection."""

    def test_aliases_map_to_canonical_names(self):
        skills = resume_parser.find_skills("Worked with ReactJS, postgres and k8s")
        assert {"react", "sql", "kubernetes"} <= set(skills)

    def test_symbolic_skills(self):
        skills = resume_parser.find_skills("C++ and C# on embedded targets")
        assert "c++" in skills
        assert "c#" in skills

    def test_word_boundaries(self):
        """Should not match 'java' inside 'javascript' or 'git' inside a domain."""
        skills = resume_parser.find_skills("javascript at janedoe.github.io")
        assert "javascript" in skills
        assert "java" not in skills
        assert "git" not in skills

    def test_extra_skills_matched_by_name(self):
        skills = resume_parser.find_skills("Provisioned with Terraform", extra_skills=["Terraform", " "])
        assert "terraform" in skills

    def test_certifications_and_kinds(self):
        skills = resume_parser.find_skills("PMP and Certified Kubernetes Administrator, Docker daily")
        assert {"pmp", "cka", "kubernetes", "docker"} <= set(skills)
        assert resume_parser.skill_kind("cka") == "cert"
        assert resume_parser.skill_kind(" Docker ") == "tool"
        assert resume_parser.skill_kind("aws") == "platform"
        assert resume_parser.skill_kind("terraform") == "skill"


class TestSplitSections:

    def test_headings_and_aliases(self):
        sections = resume_parser.split_sections("Intro line\nTechnical Skills:\nPython\nEducation\nBSc")
        assert sections == {"body": "Intro line\n", "skills": "Python\n", "education": "BSc\n"}

    def test_empty_body_dropped(self):
        sections = resume_parser.split_sections("Experience\nAcme")
        assert "body" not in sections
        assert sections["experience"] == "Acme\n"


class TestKeywordStuffing:

    def test_no_skills(self):
        assert resume_parser.keyword_stuffing_ratio("python python", []) == 0.0

    def test_ramp(self):
        assert resume_parser.keyword_stuffing_ratio("python " * 4, ["python"]) == pytest.approx(0.1)
        assert resume_parser.keyword_stuffing_ratio("python " * 20, ["python"]) == 1.0


class TestParseResume:
    """Tests for the stored parsed_data document."""

    def test_contact_and_presence(self):
        parsed = resume_parser.parse_resume(RESUME)
        assert parsed["contact"]["email"] == "jane@example.com"
        assert parsed["contact"]["phone"] == "+15550102030"
        assert len(parsed["contact"]["links"]) == 2
        assert parsed["presence"] == {"linkedin": True, "portfolio": True}

    def test_sections_and_skills(self):
        parsed = resume_parser.parse_resume(RESUME)
        assert {"summary", "experience", "education", "skills"} <= set(parsed["sections"])
        assert {"python", "sql", "fastapi", "docker", "git"} <= set(parsed["skills"])
        assert "react" not in parsed["skills"]
        assert parsed["structure"]["standard_headers"] == pytest.approx(4 / 6)

    def test_impact_signals(self):
        impact = resume_parser.parse_resume(RESUME)["impact"]
        assert impact["percents"] == 1
        assert impact["currency"] == 1
        assert impact["verbs"] == 3

    def test_format_score_range(self):
        parsed = resume_parser.parse_resume(RESUME)
        assert 0 < parsed["format_score"] <= 1
        assert parsed["version"] == resume_parser.PARSER_VERSION

    def test_empty_text(self):
        parsed = resume_parser.parse_resume("")
        assert parsed["contact"] == {"email": None, "phone": None, "links": []}
        assert parsed["skills"] == []
        assert parsed["word_count"] == 0
        assert parsed["structure"]["bullets_ratio"] == 0.0
