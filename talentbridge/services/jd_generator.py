"""
Template job descriptions, used when no AI provider is configured.

Deterministic: the same title and prompt always produce the same markdown.
Keywords in the prompt pick the seniority, work mode and role family.
"""

from typing import Dict, List

ROLE_FAMILIES: Dict[str, Dict[str, List[str]]] = {
    "developer": {
        "responsibilities": [
            "Design, develop, and maintain scalable software applications",
            "Write clean, efficient, and well-documented code",
            "Collaborate with product managers and designers to implement features",
            "Participate in code reviews and technical discussions",
            "Troubleshoot and debug production issues",
        ],
        "requirements": [
            "Strong proficiency in modern programming languages and frameworks",
            "Experience with version control systems (Git)",
            "Understanding of software development best practices",
            "Bachelor's degree in Computer Science or related field",
        ],
    },
    "designer": {
        "responsibilities": [
            "Create engaging and user-friendly design solutions",
            "Develop wireframes, prototypes, and high-fidelity mockups",
            "Collaborate with developers to ensure design implementation",
            "Conduct user research and usability testing",
            "Maintain design systems and style guides",
        ],
        "requirements": [
            "Proficiency in design tools (Figma, Adobe Creative Suite)",
            "Strong portfolio demonstrating design expertise",
            "Understanding of UX principles",
            "Bachelor's degree in Design or related field",
        ],
    },
    "marketing": {
        "responsibilities": [
            "Develop and execute marketing campaigns across multiple channels",
            "Create compelling content for various platforms",
            "Analyze campaign performance and optimize strategies",
            "Manage social media presence and engagement",
            "Collaborate with sales and product teams",
        ],
        "requirements": [
            "Proven track record in marketing campaign management",
            "Excellent written and verbal communication skills",
            "Experience with marketing analytics tools",
            "Bachelor's degree in Marketing, Communications, or related field",
        ],
    },
    "general": {
        "responsibilities": [
            "Lead and execute key projects aligned with business objectives",
            "Collaborate with team members across departments",
            "Analyze data and provide actionable insights",
            "Maintain high standards of quality and efficiency",
            "Contribute to process improvements and innovation",
        ],
        "requirements": [
            "Strong analytical and problem-solving skills",
            "Excellent communication and collaboration abilities",
            "Proven track record of successful project delivery",
            "Bachelor's degree in relevant field",
        ],
    },
}


def detect_role_family(prompt: str) -> str:
    lower = prompt.lower()
    if "developer" in lower or "engineer" in lower:
        return "developer"
    if "designer" in lower or "design" in lower:
        return "designer"
    if "marketing" in lower or "content" in lower:
        return "marketing"
    return "general"


def generate_template_jd(job_title: str, prompt: str) -> str:
    """Build a four-section markdown description from prompt keywords."""
    lower = prompt.lower()
    is_senior = "senior" in lower or "lead" in lower
    is_remote = "remote" in lower or "hybrid" in lower
    family = ROLE_FAMILIES[detect_role_family(prompt)]

    seniority = "experienced" if is_senior else "talented"
    team = "remote-friendly" if is_remote else "dynamic"
    years = "5+" if is_senior else "2-3"
    workplace = "remote work options" if is_remote else "modern office facilities"

    lines = [
        "# Overview",
        "",
        f"We are seeking a {seniority} **{job_title}** to join our {team} team. "
        "This role offers an exciting opportunity to work on challenging projects and "
        "contribute to our company's growth. You will collaborate with cross-functional "
        "teams to deliver high-quality results.",
        "",
        "# Key Responsibilities",
        "",
    ]
    lines += [f"- {item}" for item in family["responsibilities"]]
    lines += ["", "# Requirements", "", f"- {years} years of relevant professional experience"]
    lines += [f"- {item}" for item in family["requirements"]]
    lines += [
        "",
        "# Benefits",
        "",
        "- Competitive salary package",
        "- Health insurance coverage for you and your family",
        "- Annual performance bonuses and salary reviews",
        "- Professional development opportunities and training budget",
        f"- Flexible working hours and {workplace}",
        "- Paid time off and public holidays",
        "- Career growth opportunities within the organization",
    ]
    return "\n".join(lines) + "\n"
