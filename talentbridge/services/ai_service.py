"""
AI Service - job description drafts and application summaries.

Both operations work without an AI provider: job descriptions fall back to
jd_generator's template and summaries to a deterministic heuristic built
from the application's answers and parsed resume skills.
"""

import json
import logging
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import text

from talentbridge.core.config import get_settings
from talentbridge.db.postgres import get_db_session, execute_raw_sql, fetch_one
from talentbridge.services.ai_client import AIClientError, get_ai_client
from talentbridge.services.jd_generator import generate_template_jd
from talentbridge.services.mongo_service import ParsedResumeService

settings = get_settings()
logger = logging.getLogger(__name__)

HEURISTIC_MODEL = "heuristic-v1"

ANALYSIS_COLUMNS = "id, application_id, summary_md, strengths, concerns, match_score, model_meta, created_at"


# ============================================================
# JOB DESCRIPTIONS
# ============================================================

def draft_job_description(job: dict, prompt: str) -> str:
    if not settings.ai_enabled:
        return generate_template_jd(job["title"], prompt)
    try:
        return get_ai_client().generate_job_description(job["title"], prompt, job.get("skills_required"))
    except AIClientError as e:
        raise HTTPException(status_code=502, detail=f"AI provider error: {e}")


def generate_jd(job_id: int, prompt: str, user_id: Optional[int]) -> dict:
    """Draft a description, store it as a jd_versions row and make it the job's current description."""
    job = fetch_one("SELECT id, org_id, title, skills_required FROM jobs WHERE id = :id", {"id": job_id})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    content = draft_job_description(job, prompt)

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO jd_versions (job_id, content_md, created_by, source)
                VALUES (:job_id, :content, :uid, 'ai')
                RETURNING id, job_id, content_md, created_by, source, created_at
            """),
            {"job_id": job_id, "content": content, "uid": user_id}
        )
        version = dict(result.fetchone()._mapping)
        db.execute(
            text("UPDATE jobs SET description_md = :content, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
            {"content": content, "id": job_id}
        )

    logger.info("jd_generated job_id=%s version_id=%s ai=%s", job_id, version["id"], settings.ai_enabled)
    return version


# ============================================================
# APPLICATION SUMMARIES
# ============================================================

def heuristic_summary(text_answers: List[str], voice_count: int,
                      required_skills: List[str], resume_skills: List[str]) -> dict:
    """
    Deterministic summary from what the candidate submitted.

    match_score starts at 40 and adds up to 55 points for skill coverage
    (or a flat 15 when the job lists no skills) and 5 for any written answers.
    """
    required = [s.lower() for s in required_skills or []]
    have = {s.lower() for s in resume_skills or []}
    matched = [s for s in required if s in have]
    missing = [s for s in required if s not in have]
    words = sum(len(a.split()) for a in text_answers)

    coverage = len(matched) / len(required) if required else None
    score = 40 + (round(55 * coverage) if coverage is not None else 15) + (5 if text_answers else 0)

    strengths = []
    if matched:
        strengths.append(f"Resume covers required skills: {', '.join(matched)}")
    if text_answers:
        strengths.append(f"Answered {len(text_answers)} written question(s) ({words} words)")
    if voice_count:
        strengths.append(f"Recorded {voice_count} voice answer(s)")

    concerns = []
    if missing:
        concerns.append(f"No resume evidence for: {', '.join(missing)}")
    if not resume_skills:
        concerns.append("No parsed resume on file")
    if not text_answers and not voice_count:
        concerns.append("No screening answers submitted")

    summary = [
        "## Application Overview",
        "",
        f"The candidate submitted {len(text_answers) + voice_count} screening answer(s) "
        f"and a resume listing {len(resume_skills or [])} recognised skill(s).",
        "",
        "### Skills",
        "",
        f"Matched {len(matched)} of {len(required)} required skill(s)." if required
        else "The job lists no required skills.",
    ]

    return {
        "summary_md": "\n".join(summary),
        "strengths": strengths,
        "concerns": concerns,
        "match_score": min(100, score),
    }


def _build_context(application: dict, answers: List[dict], resume_skills: List[str]) -> str:
    lines = [
        f"Job: {application['job_title']}",
        f"Required skills: {', '.join(application.get('skills_required') or []) or 'none listed'}",
        f"Candidate: {application.get('applicant_name') or application['applicant_email']}",
        f"Resume skills: {', '.join(resume_skills) or 'none parsed'}",
        "Screening answers:",
    ]
    for a in answers:
        if a.get("text_answer"):
            lines.append(f"- Q: {a['prompt']}\n  A: {a['text_answer']}")
        else:
            lines.append(f"- Q: {a['prompt']}\n  A: (voice answer, {a.get('duration_sec') or 0}s)")
    return "\n".join(lines)


def _latest_analysis(application_id: int) -> Optional[dict]:
    return fetch_one(
        f"SELECT {ANALYSIS_COLUMNS} FROM ai_analyses WHERE application_id = :id ORDER BY created_at DESC, id DESC LIMIT 1",
        {"id": application_id}
    )


def summarize_application(application_id: int, regenerate: bool = False) -> tuple:
    """
    Return (analysis, created). The stored analysis is reused unless `regenerate`.
    """
    application = fetch_one("""
        SELECT a.id, a.job_id, a.applicant_name, a.applicant_email,
               j.title AS job_title, j.org_id, j.skills_required
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE a.id = :id
    """, {"id": application_id})
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")

    if not regenerate:
        existing = _latest_analysis(application_id)
        if existing:
            return existing, False

    answers = execute_raw_sql("""
        SELECT q.prompt, an.text_answer, an.audio_key, an.duration_sec
        FROM answers an JOIN job_questions q ON q.id = an.question_id
        WHERE an.application_id = :id
        ORDER BY q.order_index NULLS LAST, an.id
    """, {"id": application_id})
    resume_skills = ParsedResumeService().get_skills_for_applications([application_id]).get(application_id, [])

    if settings.ai_enabled:
        try:
            result = get_ai_client().summarize_application(_build_context(application, answers, resume_skills))
        except AIClientError as e:
            raise HTTPException(status_code=502, detail=f"AI provider error: {e}")
        model_meta = {"model": settings.ai_model, "answers": len(answers)}
    else:
        result = heuristic_summary(
            [a["text_answer"] for a in answers if a.get("text_answer")],
            sum(1 for a in answers if a.get("audio_key")),
            application.get("skills_required") or [],
            resume_skills,
        )
        model_meta = {"model": HEURISTIC_MODEL, "answers": len(answers)}

    with get_db_session() as db:
        row = db.execute(
            text(f"""
                INSERT INTO ai_analyses (application_id, summary_md, strengths, concerns, match_score, model_meta)
                VALUES (:id, :summary, CAST(:strengths AS JSONB), CAST(:concerns AS JSONB), :score,
                        CAST(:meta AS JSONB))
                RETURNING {ANALYSIS_COLUMNS}
            """),
            {
                "id": application_id, "summary": result["summary_md"],
                "strengths": json.dumps(result["strengths"]), "concerns": json.dumps(result["concerns"]),
                "score": result["match_score"], "meta": json.dumps(model_meta),
            }
        ).fetchone()

    logger.info("application_summarized application_id=%s model=%s", application_id, model_meta["model"])
    return dict(row._mapping), True
