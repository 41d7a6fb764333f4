"""
ATS Routes

GET /ats/jobs/{job_id}/rank - Rank a job's resumes
                              (?all=true keeps every upload,
                               ?resume_id= / ?candidate_id= focus on one resume or candidate)
"""

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from talentbridge.db.postgres import execute_raw_sql, fetch_one
from talentbridge.core.auth import get_current_user, require_org_member
from talentbridge.services.ats_service import rank_resumes
from talentbridge.services.mongo_service import RawResumeService, ParsedResumeService
from talentbridge.schemas.schemas import RankResponse, RankedCandidate

router = APIRouter(prefix="/ats", tags=["ATS"])
logger = logging.getLogger(__name__)


@router.get("/jobs/{job_id}/rank", response_model=RankResponse)
async def rank_job(
    job_id: int,
    all: bool = Query(False, description="Rank every resume instead of the latest per candidate"),
    resume_id: Optional[int] = Query(None, description="Score only this resume"),
    candidate_id: Optional[int] = Query(None, description="Score only this applicant's resumes"),
    user: dict = Depends(get_current_user)
):
    """
    Score resumes against the job description and required skills.

    Returns the top 50, best first. A resume_id focus is never deduplicated.
    """
    job = fetch_one(
        "SELECT id, org_id, title, description_md, skills_required FROM jobs WHERE id = :id",
        {"id": job_id}
    )
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    require_org_member(job["org_id"], user)

    filters = ["a.job_id = :job_id"]
    params = {"job_id": job_id}
    if resume_id is not None:
        filters.append("r.id = :resume_id")
        params["resume_id"] = resume_id
    if candidate_id is not None:
        filters.append("a.applicant_user_id = :candidate_id")
        params["candidate_id"] = candidate_id

    resumes = execute_raw_sql(f"""
        SELECT r.id, r.application_id, a.applicant_user_id AS candidate_id, r.created_at,
               r.format_score, r.raw_mongo_id, r.parsed_mongo_id
        FROM resumes r JOIN applications a ON a.id = r.application_id
        WHERE {" AND ".join(filters)}
        ORDER BY r.created_at DESC, r.id DESC
    """, params)

    parsed_by_id = ParsedResumeService().get_many(r["parsed_mongo_id"] for r in resumes if r["parsed_mongo_id"])
    text_by_id = RawResumeService().get_texts(r["raw_mongo_id"] for r in resumes if r["raw_mongo_id"])

    dedupe = not all and resume_id is None
    ranked = rank_resumes(job, resumes, parsed_by_id, text_by_id, dedupe=dedupe)
    logger.info("ats_rank job_id=%s resumes=%s ranked=%s deduped=%s", job_id, len(resumes), len(ranked), dedupe)
    return RankResponse(
        job_id=job_id,
        deduped=dedupe,
        resume_id=resume_id,
        candidate_id=candidate_id,
        ranked=[RankedCandidate(**c) for c in ranked],
    )
