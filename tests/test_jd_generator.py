"""
Unit tests for template job descriptions.
"""

from talentbridge.services.jd_generator import detect_role_family, generate_template_jd


class TestRoleFamily:

    def test_developer_keywords(self):
        assert detect_role_family("Backend engineer for payments") == "developer"
        assert detect_role_family("Senior DEVELOPER") == "developer"

    def test_designer_keywords(self):
        assert detect_role_family("Product design role") == "designer"

    def test_marketing_keywords(self):
        assert detect_role_family("Content strategist") == "marketing"

    def test_general_fallback(self):
        assert detect_role_family("Operations associate") == "general"


class TestTemplate:
    """Tests for the deterministic markdown template."""

    def test_sections_in_order(self):
        md = generate_template_jd("Data Analyst", "analyst for reporting")
        positions = [md.index(h) for h in ("# Overview", "# Key Responsibilities", "# Requirements", "# Benefits")]
        assert positions == sorted(positions)

    def test_senior_remote_wording(self):
        md = generate_template_jd("Platform Engineer", "Senior engineer, remote")
        assert "experienced **Platform Engineer**" in md
        assert "remote-friendly team" in md
        assert "- 5+ years of relevant professional experience" in md
        assert "remote work options" in md

    def test_default_wording(self):
        md = generate_template_jd("Designer", "design systems")
        assert "talented **Designer**" in md
        assert "dynamic team" in md
        assert "- 2-3 years of relevant professional experience" in md
        assert "Figma" in md

    def test_deterministic(self):
        assert generate_template_jd("X", "lead marketing") == generate_template_jd("X", "lead marketing")
