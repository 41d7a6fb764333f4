"""
ATS Ranking Service

Scores resumes submitted to a job. Each resume gets a feature vector:

    [skill_coverage, text_similarity, format, impact, cert_bonus, tool_bonus]

which is dotted with WEIGHTS, then a presence bonus (LinkedIn, portfolio)
is added and the result clipped to [0, 1.1].

- skill_coverage:  share of the job's required skills found in the resume
- text_similarity: Jaccard overlap of job description and resume tokens
- format:          resume_parser.format_score (stored on the resume row)
- impact:          numbers, percents, currency and action verbs, saturating at 20
- cert_bonus:      certifications among matched and parsed skills, saturating at 4
- tool_bonus:      tools and platforms among matched and parsed skills, saturating at 8
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Set

import numpy as np

from talentbridge.services.resume_parser import SKILL_ALIASES, alias_pattern, skill_kind

logger = logging.getLogger(__name__)

WEIGHTS = np.array([0.35, 0.20, 0.20, 0.15, 0.05, 0.05])
KIND_WEIGHTS = {"cert": 0.5, "tool": 0.25, "platform": 0.25}
PRESENCE_BONUS = 0.05
MAX_SCORE = 1.1
TOP_N = 50

STOPWORDS = {
    "the", "and", "for", "with", "that", "this", "are", "you", "our", "your", "will", "have",
    "has", "from", "into", "more", "than", "such", "about", "able", "skills", "skill",
    "experience", "preferred", "required", "to", "of", "a", "in", "on", "by", "as", "be",
    "is", "or", "an", "at", "it", "we", "they", "their", "them", "who", "what", "how",
}


def tokenize(text: str) -> List[str]:
    return [t for t in re.split(r"\W+", (text or "").lower()) if len(t) > 1 and t not in STOPWORDS]


def jaccard(a: Set[str], b: Set[str]) -> float:
    if not a and not b:
        return 0.0
    inter = len(a & b)
    union = len(a) + len(b) - inter
    return inter / (union or 1)


def section_tokens(sections: Dict[str, str]) -> Set[str]:
    tokens: Set[str] = set()
    for body in (sections or {}).values():
        tokens.update(tokenize(body))
    return tokens


def impact_score(parsed: dict) -> float:
    signals = parsed.get("impact") or {}
    total = (
        int(signals.get("numbers", 0))
        + int(signals.get("percents", 0))
        + int(signals.get("currency", 0))
        + min(int(signals.get("verbs", 0)), 12)
    )
    return min(1.0, total / 20)


def match_required_skills(required: Iterable[str], parsed_skills: Iterable[str], text: str) -> List[str]:
    """Required skills found by the parser or by alias search in the raw text."""
    found = {s.lower() for s in parsed_skills or []}
    matched = []
    for skill in required:
        key = skill.strip().lower()
        if not key:
            continue
        if key in found:
            matched.append(key)
            continue
        aliases = SKILL_ALIASES.get(key, [key])
        if any(alias_pattern(a).search(text) for a in aliases):
            matched.append(key)
    return matched


def kind_bonuses(skills: Iterable[str]) -> Dict[str, float]:
    """Saturating cert and tool bonuses over distinct skills."""
    totals = {"cert": 0.0, "tool": 0.0}
    for skill in {s.strip().lower() for s in skills if s and s.strip()}:
        kind = skill_kind(skill)
        bucket = "cert" if kind == "cert" else "tool"
        totals[bucket] += KIND_WEIGHTS.get(kind, 0.0)
    return {kind: min(1.0, total / 2) for kind, total in totals.items()}


def score_resume(job: dict, jd_tokens: Set[str], resume: dict, parsed: dict, raw_text: str) -> dict:
    required = [s for s in (job.get("skills_required") or []) if s and s.strip()]
    matched = match_required_skills(required, parsed.get("skills"), raw_text)
    coverage = len(matched) / len(required) if required else 0.0

    sections = parsed.get("sections") or {"body": raw_text}
    similarity = jaccard(jd_tokens, section_tokens(sections))
    fmt = float(resume.get("format_score") or parsed.get("format_score") or 0)
    impact = impact_score(parsed)
    bonuses = kind_bonuses(list(matched) + list(parsed.get("skills") or []))

    presence_flags = parsed.get("presence") or {}
    presence = PRESENCE_BONUS * bool(presence_flags.get("linkedin")) + \
        PRESENCE_BONUS * bool(presence_flags.get("portfolio"))

    features = np.array([coverage, similarity, fmt, impact, bonuses["cert"], bonuses["tool"]])
    score = float(np.clip(features @ WEIGHTS + presence, 0.0, MAX_SCORE))

    return {
        "resume_id": resume["id"],
        "application_id": resume["application_id"],
        "candidate_id": resume.get("candidate_id"),
        "created_at": resume.get("created_at"),
        "score": round(score, 4),
        "breakdown": {
            "skill_coverage": round(coverage, 4),
            "text_similarity": round(similarity, 4),
            "format": round(fmt, 4),
            "impact": round(impact, 4),
            "cert_bonus": round(bonuses["cert"], 4),
            "tool_bonus": round(bonuses["tool"], 4),
            "presence": round(presence, 4),
            "matched_skills_count": float(len(matched)),
            "required_skills_total": float(len(required)),
        },
        "matched_skills": matched,
    }


def latest_per_candidate(resumes: List[dict]) -> List[dict]:
    """
    Keep the newest resume per candidate.

    Input must be newest first. Resumes without a candidate user are keyed
    by their application.
    """
    seen = set()
    kept = []
    for r in resumes:
        key = r.get("candidate_id") or f"app-{r['application_id']}"
        if key in seen:
            continue
        seen.add(key)
        kept.append(r)
    return kept


def rank_resumes(
    job: dict,
    resumes: List[dict],
    parsed_by_id: Dict[str, dict],
    text_by_id: Dict[str, str],
    dedupe: bool = True,
    limit: Optional[int] = TOP_N,
) -> List[dict]:
    """Score and sort resumes (newest first on input) for a job, best first."""
    rows = latest_per_candidate(resumes) if dedupe else resumes
    jd_tokens = set(tokenize(job.get("description_md") or ""))

    ranked = []
    for r in rows:
        parsed = parsed_by_id.get(r.get("parsed_mongo_id") or "", {})
        raw_text = text_by_id.get(r.get("raw_mongo_id") or "", "")
        ranked.append(score_resume(job, jd_tokens, r, parsed, raw_text))

    ranked.sort(key=lambda item: item["score"], reverse=True)
    logger.debug("ats_ranked job_id=%s candidates=%s", job.get("id"), len(ranked))
    return ranked[:limit] if limit else ranked
