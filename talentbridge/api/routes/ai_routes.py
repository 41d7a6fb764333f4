"""
AI Routes

POST /ai/generate-jd - Draft a job description and save it as a version
POST /ai/summarize-application - Summarize an applicant (cached unless regenerate)

Without an AI API key, descriptions come from templates and summaries
from a heuristic over answers and resume skills.
"""

from fastapi import APIRouter, HTTPException, Depends, Response

from talentbridge.db.postgres import fetch_one
from talentbridge.core.auth import get_current_user, require_org_member
from talentbridge.services import ai_service, application_service
from talentbridge.schemas.schemas import (
    GenerateJDRequest, JDVersionResponse, SummarizeRequest, AnalysisResponse
)

router = APIRouter(prefix="/ai", tags=["AI"])


@router.post("/generate-jd", response_model=JDVersionResponse, status_code=201)
async def generate_jd(request: GenerateJDRequest, user: dict = Depends(get_current_user)):
    job = fetch_one("SELECT id, org_id FROM jobs WHERE id = :id", {"id": request.job_id})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    require_org_member(job["org_id"], user)
    return JDVersionResponse(**ai_service.generate_jd(job["id"], request.prompt, user["user_id"]))


@router.post("/summarize-application", response_model=AnalysisResponse, status_code=201)
async def summarize_application(
    request: SummarizeRequest,
    response: Response,
    user: dict = Depends(get_current_user)
):
    """201 when a new analysis was stored, 200 for the cached one."""
    application_service.get_application_for_member(request.application_id, user)
    analysis, created = ai_service.summarize_application(request.application_id, request.regenerate)
    if not created:
        response.status_code = 200
    return AnalysisResponse(**dict(
        analysis,
        strengths=analysis.get("strengths") or [],
        concerns=analysis.get("concerns") or [],
    ))
