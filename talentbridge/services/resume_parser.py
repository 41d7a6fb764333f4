"""
Resume Parser - rule-based extraction from resume text.

Produces the parsed_data document stored in MongoDB:
- contact: email, phone, links
- presence: linkedin / portfolio links
- sections: text under recognised headings (experience, education, skills, ...)
- skills: canonical skill names found through alias matching
- impact: counts of numbers, percents, currency amounts and action verbs
- structure: bullet ratio, standard header coverage, keyword stuffing
- format_score: 0..1 ATS readability score built from the above

No AI call is involved, so parsing is cheap and repeatable.
"""

import re
from collections import Counter
from typing import Dict, Iterable, List, Optional

PARSER_VERSION = "resume-parser.2"

# canonical skill -> aliases (lowercase)
SKILL_ALIASES: Dict[str, List[str]] = {
    "python": ["python", "py"],
    "javascript": ["javascript", "js", "ecmascript"],
    "typescript": ["typescript", "ts"],
    "java": ["java"],
    "c++": ["c++", "cpp"],
    "c#": ["c#", "csharp"],
    "go": ["golang"],
    "sql": ["sql", "mysql", "postgresql", "postgres", "sqlite"],
    "react": ["react", "react.js", "reactjs"],
    "node.js": ["node.js", "nodejs", "node"],
    "django": ["django"],
    "fastapi": ["fastapi"],
    "flask": ["flask"],
    "aws": ["aws", "amazon web services"],
    "docker": ["docker"],
    "kubernetes": ["kubernetes", "k8s"],
    "git": ["git", "github", "gitlab"],
    "machine learning": ["machine learning", "ml"],
    "data analysis": ["data analysis", "data analytics", "pandas"],
    "figma": ["figma"],
    "excel": ["excel", "spreadsheets"],
    "communication": ["communication", "public speaking"],
    "project management": ["project management", "scrum", "agile"],
    "aws certified": ["aws certified", "aws certification"],
    "pmp": ["pmp", "project management professional"],
    "cka": ["cka", "certified kubernetes administrator"],
    "cissp": ["cissp"],
    "scrum master": ["scrum master", "csm", "psm"],
}

# Anything not listed is a plain "skill"
SKILL_KINDS: Dict[str, str] = {
    "aws": "platform",
    "docker": "tool",
    "kubernetes": "tool",
    "git": "tool",
    "figma": "tool",
    "excel": "tool",
    "communication": "soft",
    "project management": "soft",
    "aws certified": "cert",
    "pmp": "cert",
    "cka": "cert",
    "cissp": "cert",
    "scrum master": "cert",
}


def skill_kind(skill: str) -> str:
    return SKILL_KINDS.get(skill.strip().lower(), "skill")


HEADER_WORDS = [
    "experience", "work experience", "professional experience", "employment",
    "education", "academics", "academic background",
    "projects", "project", "personal projects",
    "skills", "skill", "technical skills", "key skills",
    "certifications", "certification", "licenses", "training",
    "summary", "profile", "objective",
    "publications", "awards", "honors", "achievements",
    "volunteering", "volunteer experience", "leadership",
    "activities", "interests", "research",
]
SECTION_ALIASES = {
    "work experience": "experience", "professional experience": "experience",
    "employment": "experience", "work": "experience",
    "academics": "education", "academic background": "education",
    "project": "projects", "personal projects": "projects",
    "skill": "skills", "technical skills": "skills", "key skills": "skills",
    "certification": "certifications", "licenses": "certifications",
    "profile": "summary", "objective": "summary",
}
STANDARD_HEADERS = ["experience", "education", "skills", "projects", "certifications", "summary"]

HEADER_RE = re.compile(
    r"^\s*(" + "|".join(re.escape(h) for h in sorted(HEADER_WORDS, key=len, reverse=True)) + r")\s*[:\-]?\s*$",
    re.IGNORECASE,
)
EMAIL_RE = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
PHONE_RE = re.compile(r"\+?\d[\d \-()]{7,}\d")
URL_RE = re.compile(r"(?:https?://|www\.)[^\s)]+", re.IGNORECASE)
LINKEDIN_RE = re.compile(r"linkedin\.com", re.IGNORECASE)
PORTFOLIO_RE = re.compile(r"behance|dribbble|portfolio|github\.io|notion\.site|about\.me", re.IGNORECASE)
BULLET_RE = re.compile(r"^\s*([•\-*●■]|\d+\.)\s")

IMPACT_VERBS = [
    "led", "managed", "owned", "improved", "increased", "reduced", "optimized", "generated",
    "designed", "created", "executed", "implemented", "launched", "delivered", "grew", "achieved",
    "automated", "refactored", "migrated", "shipped", "accelerated", "streamlined", "scaled",
]
VERB_RE = re.compile(r"\b(" + "|".join(IMPACT_VERBS) + r")\b", re.IGNORECASE)
NUMBER_RE = re.compile(r"\b\d+(?:\.\d+)?%?")
PERCENT_RE = re.compile(r"\b\d+(?:\.\d+)?%")
CURRENCY_RE = re.compile(r"(?:\$|Rs\.?|PKR|USD)\s?\d[\d,]*", re.IGNORECASE)
MONTH_RE = re.compile(r"\b(jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\b", re.IGNORECASE)
YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")


def alias_pattern(alias: str) -> re.Pattern:
    """Word-bounded pattern for word-like aliases, plain match for symbolic ones (c++, c#)."""
    escaped = re.escape(alias.strip())
    if re.fullmatch(r"[\w .]+", alias.strip()):
        return re.compile(r"(?<![\w.])" + escaped + r"(?![\w])", re.IGNORECASE)
    return re.compile(r"(?<![\w])" + escaped, re.IGNORECASE)


def find_skills(text: str, extra_skills: Optional[Iterable[str]] = None) -> List[str]:
    """
    Canonical skills mentioned in the text.

    `extra_skills` (e.g. a job's required skills) are matched by name
    when they are not in the alias table.
    """
    catalog = dict(SKILL_ALIASES)
    for skill in extra_skills or []:
        key = skill.strip().lower()
        if key and key not in catalog:
            catalog[key] = [key]

    found = []
    for skill, aliases in catalog.items():
        if any(alias_pattern(a).search(text) for a in aliases):
            found.append(skill)
    return found


def split_sections(text: str) -> Dict[str, str]:
    """Split text on heading lines; content before the first heading goes to "body"."""
    sections: Dict[str, str] = {"body": ""}
    current = "body"
    for line in text.split("\n"):
        match = HEADER_RE.match(line)
        if match:
            name = match.group(1).lower()
            current = SECTION_ALIASES.get(name, name)
            sections.setdefault(current, "")
            continue
        sections[current] += line + "\n"
    return {k: v for k, v in sections.items() if v.strip() or k != "body"}


def keyword_stuffing_ratio(text: str, skills: List[str]) -> float:
    """0 until a skill is mentioned more than 3 times, then a linear ramp to 1."""
    if not skills:
        return 0.0
    lower = text.lower()
    counts = Counter({s: len(alias_pattern(s).findall(lower)) for s in skills})
    worst = max(counts.values()) if counts else 0
    return min(1.0, max(0.0, (worst - 3) / 10))


def format_score(parsed: dict) -> float:
    """Explainable 0..1 readability score."""
    contact = 1.0 if (parsed["contact"].get("email") or parsed["contact"].get("phone")) else 0.0
    ratio = parsed["structure"]["bullets_ratio"]
    bullets = 1.0 if 0.10 <= ratio <= 0.70 else 0.5
    headers = parsed["structure"]["standard_headers"]
    stuffing = 1 - 0.5 * parsed["structure"]["keyword_stuffing"]
    spans = parsed["structure"]["date_spans"]
    timeline = 1.0 if spans > 3 else (0.8 if spans > 0 else 0.6)

    score = 0.18 * contact + 0.18 * headers + 0.18 * bullets + 0.36 * stuffing + 0.10 * timeline
    return round(max(0.0, min(1.0, score)), 3)


def parse_resume(raw_text: str, extra_skills: Optional[Iterable[str]] = None) -> dict:
    """Parse resume text into the stored parsed_data document."""
    text = (raw_text or "").replace("\r", "").replace("\u00a0", " ")
    text = re.sub(r"[ \t]+", " ", text)
    lines = text.split("\n")

    links = list(dict.fromkeys(URL_RE.findall(text)))[:30]
    email = EMAIL_RE.search(text)
    phone = PHONE_RE.search(text)

    sections = split_sections(text)
    skills = find_skills(text, extra_skills)

    non_empty = [l for l in lines if l.strip()]
    bullet_lines = sum(1 for l in non_empty if BULLET_RE.match(l))
    found_headers = sum(1 for h in STANDARD_HEADERS if h in sections)

    parsed = {
        "contact": {
            "email": email.group(0) if email else None,
            "phone": re.sub(r"[^\d+]", "", phone.group(0)) if phone else None,
            "links": links,
        },
        "presence": {
            "linkedin": any(LINKEDIN_RE.search(l) for l in links),
            "portfolio": any(PORTFOLIO_RE.search(l) for l in links),
        },
        "sections": sections,
        "skills": skills,
        "impact": {
            "numbers": len(NUMBER_RE.findall(text)),
            "percents": len(PERCENT_RE.findall(text)),
            "currency": len(CURRENCY_RE.findall(text)),
            "verbs": len(VERB_RE.findall(text)),
        },
        "structure": {
            "bullets_ratio": min(1.0, bullet_lines / len(non_empty)) if non_empty else 0.0,
            "standard_headers": found_headers / len(STANDARD_HEADERS),
            "keyword_stuffing": keyword_stuffing_ratio(text, skills),
            "date_spans": len(MONTH_RE.findall(text)) + len(YEAR_RE.findall(text)),
        },
        "word_count": len(text.split()),
        "version": PARSER_VERSION,
    }
    parsed["format_score"] = format_score(parsed)
    return parsed
