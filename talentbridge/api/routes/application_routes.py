"""
Application Routes

POST   /applications - Apply to a job (signed in or by email)
GET    /applications - List an organization's applications (job, stage filters)
GET    /applications/mine - Current user's applications
GET    /applications/{application_id} - Get one application
PATCH  /applications/{application_id} - Move to another stage
DELETE /applications/{application_id} - Delete application
GET    /applications/{application_id}/actions - Timeline actions
POST   /applications/{application_id}/actions - Record an action (offer_sent, ...)
POST   /applications/{application_id}/resume - Upload and parse a resume
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, Response, UploadFile, File
from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, execute_raw_sql
from talentbridge.core.auth import get_current_user, get_optional_user, require_org_member
from talentbridge.services import application_service
from talentbridge.services.activity_service import record_activity
from talentbridge.services.mongo_service import RawResumeService, ParsedResumeService, get_resume_file_store
from talentbridge.services.resume_parser import parse_resume
from talentbridge.utils.file_upload import extract_text_from_file
from talentbridge.schemas.schemas import (
    ApplicationCreate, ApplicationCreateResponse, ApplicationResponse, StageUpdate,
    ActionCreate, ActionResponse, ResumeUploadResponse, MessageResponse
)

router = APIRouter(prefix="/applications", tags=["Applications"])
logger = logging.getLogger(__name__)


def get_viewable_application(application_id: int, user: dict) -> dict:
    """Applicants see their own application, org members see their org's."""
    application = application_service.get_application(application_id)
    if application_service.can_view_application(application, user):
        return application
    require_org_member(application["org_id"], user)
    return application


@router.post("", response_model=ApplicationCreateResponse, status_code=201)
async def create_application(
    payload: ApplicationCreate,
    response: Response,
    user: Optional[dict] = Depends(get_optional_user)
):
    """
    Apply to a job.

    Returns 201 for a new application, 200 when the user already applied
    (already_applied) or an earlier email-only application was claimed
    (upgraded_legacy).
    """
    result = application_service.create_application(payload.model_dump(), user)
    if not result.pop("created"):
        response.status_code = 200
    return ApplicationCreateResponse(**result)


@router.get("", response_model=List[ApplicationResponse])
async def list_applications(
    org_id: int = Query(...),
    job_id: Optional[int] = Query(None),
    stage: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_user)
):
    require_org_member(org_id, user)

    sql = f"""
        SELECT {application_service.APPLICATION_COLUMNS}
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id
    """
    params = {"org_id": org_id, "limit": limit, "offset": offset}
    if job_id is not None:
        sql += " AND a.job_id = :job_id"
        params["job_id"] = job_id
    if stage:
        sql += " AND a.stage = :stage"
        params["stage"] = application_service.validate_stage(stage)
    sql += " ORDER BY a.created_at DESC, a.id DESC LIMIT :limit OFFSET :offset"

    return [ApplicationResponse(**r) for r in execute_raw_sql(sql, params)]


@router.get("/mine", response_model=List[ApplicationResponse])
async def my_applications(user: dict = Depends(get_current_user)):
    """Applications by user id, plus email-only ones sent before signing up."""
    rows = execute_raw_sql(f"""
        SELECT {application_service.APPLICATION_COLUMNS}
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE a.applicant_user_id = :uid
           OR (a.applicant_user_id IS NULL AND LOWER(a.applicant_email) = :email)
        ORDER BY a.created_at DESC
    """, {"uid": user["user_id"], "email": user["email"].lower()})
    return [ApplicationResponse(**r) for r in rows]


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(application_id: int, user: dict = Depends(get_current_user)):
    return ApplicationResponse(**get_viewable_application(application_id, user))


@router.patch("/{application_id}", response_model=ApplicationResponse)
async def update_stage(application_id: int, update: StageUpdate, user: dict = Depends(get_current_user)):
    application = application_service.get_application_for_member(application_id, user)
    return ApplicationResponse(**application_service.change_stage(application, update.stage, user))


@router.delete("/{application_id}", response_model=MessageResponse)
async def delete_application(application_id: int, user: dict = Depends(get_current_user)):
    application = application_service.get_application_for_member(application_id, user)

    with get_db_session() as db:
        db.execute(text("DELETE FROM applications WHERE id = :id"), {"id": application_id})

    record_activity(application["org_id"], "application", application_id, "deleted", user["user_id"],
                    {"applicant_email": application["applicant_email"]})
    return MessageResponse(message="Application deleted")


# ============================================================
# ACTIONS
# ============================================================

@router.get("/{application_id}/actions", response_model=List[ActionResponse])
async def list_actions(application_id: int, user: dict = Depends(get_current_user)):
    application_service.get_application_for_member(application_id, user)
    rows = execute_raw_sql("""
        SELECT id, application_id, type, payload, created_by, created_at
        FROM actions WHERE application_id = :id
        ORDER BY created_at ASC, id ASC
    """, {"id": application_id})
    return [ActionResponse(**r) for r in rows]


@router.post("/{application_id}/actions", response_model=ActionResponse, status_code=201)
async def add_action(application_id: int, action: ActionCreate, user: dict = Depends(get_current_user)):
    """Record a pipeline action. Analytics read offer_sent, offer_accepted and interview_completed."""
    application = application_service.get_application_for_member(application_id, user)
    row = application_service.add_action(application_id, action.type, action.payload, user["user_id"])
    record_activity(application["org_id"], "application", application_id, action.type.strip(), user["user_id"],
                    action.payload)
    return ActionResponse(**row)


# ============================================================
# RESUME
# ============================================================

@router.post("/{application_id}/resume", response_model=ResumeUploadResponse, status_code=201)
async def upload_resume(
    application_id: int,
    file: UploadFile = File(..., description="Resume file (PDF, DOCX, or TXT)"),
    user: dict = Depends(get_current_user)
):
    """
    Upload a resume for an application.

    The original file goes to GridFS, extracted text and parse output to
    MongoDB, and a resumes row links them to the application.
    """
    application = get_viewable_application(application_id, user)
    resume_text, filename, content = await extract_text_from_file(file)

    job = execute_raw_sql("SELECT skills_required FROM jobs WHERE id = :id", {"id": application["job_id"]})
    required = (job[0]["skills_required"] or []) if job else []
    parsed = parse_resume(resume_text, extra_skills=required)

    file_key = get_resume_file_store().put(
        content, filename, file.content_type or "application/octet-stream", application_id=application_id
    )
    raw_id = RawResumeService().insert(application_id, resume_text, filename, file_key)
    parsed_id = ParsedResumeService().insert(application_id, application["job_id"], raw_id, parsed)

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO resumes (application_id, file_key, filename, raw_mongo_id, parsed_mongo_id, format_score)
                VALUES (:app_id, :file_key, :filename, :raw_id, :parsed_id, :format_score)
                RETURNING id
            """),
            {
                "app_id": application_id, "file_key": file_key, "filename": filename,
                "raw_id": raw_id, "parsed_id": parsed_id, "format_score": parsed["format_score"],
            }
        )
        resume_id = result.fetchone()[0]

    logger.info("resume_uploaded application_id=%s resume_id=%s skills=%s",
                application_id, resume_id, len(parsed["skills"]))
    return ResumeUploadResponse(
        success=True,
        message="Resume uploaded and parsed",
        resume_id=resume_id,
        filename=filename,
        skills=parsed["skills"],
        format_score=parsed["format_score"],
    )
