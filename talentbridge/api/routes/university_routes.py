"""
University (Career Center) Routes

All endpoints take ?org_id= of a university organization the caller belongs to.

GET  /university/requests - Employer access requests with activity counts
POST /university/requests/{request_id}/approve - Approve a request
POST /university/requests/{request_id}/reject - Reject a request
GET  /university/jobs - Open jobs mapped to this university (job_id, q)
GET  /university/students - Students (search, grad year, program)
GET  /university/students/summary - Student totals
GET  /university/students/{student_user_id} - Student profile, applications and engagement
GET  /university/applications - Applications from this university's students
GET  /university/partners/{company_org_id}/summary - One employer's activity with this university
GET  /university/analytics - Career center dashboard
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, execute_raw_sql, fetch_one
from talentbridge.core.auth import get_current_user, require_org_member, require_org_type
from talentbridge.services.activity_service import record_activity
from talentbridge.services.analytics_service import fetch_university_analytics, STUDENT_APPLICATIONS_FILTER
from talentbridge.api.routes.job_routes import JOB_COLUMNS, with_university_ids
from talentbridge.api.routes.student_routes import EXPERIENCE_COLUMNS, load_profile
from talentbridge.schemas.schemas import (
    AuthorizationStatus, AuthorizationResponse, PartnerRequestResponse, JobResponse,
    StudentListItem, StudentSummaryResponse, UniversityAnalyticsResponse, StudentDetailResponse,
    StudentProfileResponse, StudentApplicationItem, StudentStats, ExperienceResponse,
    UniversityApplicationItem, PartnerSummaryResponse
)

router = APIRouter(prefix="/university", tags=["University"])
logger = logging.getLogger(__name__)

AUTHORIZATION_COLUMNS = "id, company_org_id, university_org_id, status, created_at, updated_at"
CLOSED_STAGES = {"rejected"}


def require_university(org_id: int, user: dict) -> dict:
    return require_org_type(require_org_member(org_id, user), "university")


def set_request_status(request_id: int, org_id: int, status: str, user: dict) -> AuthorizationResponse:
    with get_db_session() as db:
        result = db.execute(
            text(f"""
                UPDATE university_authorizations
                SET status = :status, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id AND university_org_id = :org_id
                RETURNING {AUTHORIZATION_COLUMNS}
            """),
            {"status": status, "id": request_id, "org_id": org_id}
        )
        row = result.fetchone()
    if not row:
        raise HTTPException(status_code=404, detail="Request not found")

    row = dict(row._mapping)
    record_activity(org_id, "university_authorization", request_id, status, user["user_id"],
                    {"company_org_id": row["company_org_id"]})
    logger.info("authorization_%s request_id=%s university_org_id=%s", status, request_id, org_id)
    return AuthorizationResponse(**row)


# ============================================================
# ACCESS REQUESTS
# ============================================================

@router.get("/requests", response_model=List[PartnerRequestResponse])
async def list_requests(
    org_id: int = Query(...),
    status: Optional[AuthorizationStatus] = Query(None),
    user: dict = Depends(get_current_user)
):
    """
    Employer requests addressed to this university.

    Counts per company: all its jobs, its employer-hosted events, and
    applications from this university's students to its jobs.
    """
    require_university(org_id, user)

    sql = """
        SELECT ua.id, ua.company_org_id, o.name AS company_name, ep.industry,
               ua.status, ua.created_at,
               (SELECT COUNT(*) FROM jobs j WHERE j.org_id = ua.company_org_id) AS jobs_count,
               (SELECT COUNT(*) FROM events e
                WHERE e.org_id = ua.company_org_id AND e.is_employer_hosted) AS events_count,
               (SELECT COUNT(*) FROM applications a JOIN jobs j ON j.id = a.job_id
                WHERE j.org_id = ua.company_org_id
                  AND a.applicant_university_id = ua.university_org_id) AS applications_count
        FROM university_authorizations ua
        LEFT JOIN organizations o ON o.id = ua.company_org_id
        LEFT JOIN employer_profiles ep ON ep.org_id = ua.company_org_id
        WHERE ua.university_org_id = :org_id
    """
    params = {"org_id": org_id}
    if status:
        sql += " AND ua.status = :status"
        params["status"] = status.value
    sql += " ORDER BY ua.created_at DESC"

    return [PartnerRequestResponse(**r) for r in execute_raw_sql(sql, params)]


@router.post("/requests/{request_id}/approve", response_model=AuthorizationResponse)
async def approve_request(request_id: int, org_id: int = Query(...), user: dict = Depends(get_current_user)):
    require_university(org_id, user)
    return set_request_status(request_id, org_id, "approved", user)


@router.post("/requests/{request_id}/reject", response_model=AuthorizationResponse)
async def reject_request(request_id: int, org_id: int = Query(...), user: dict = Depends(get_current_user)):
    require_university(org_id, user)
    return set_request_status(request_id, org_id, "rejected", user)


# ============================================================
# JOBS
# ============================================================

@router.get("/jobs", response_model=List[JobResponse])
async def targeted_jobs(
    org_id: int = Query(...),
    job_id: Optional[int] = Query(None),
    q: Optional[str] = Query(None, description="Search title, dept, company, location or location mode"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_user)
):
    """Open jobs mapped to this university, whatever their visibility."""
    require_university(org_id, user)

    sql = f"""
        SELECT {JOB_COLUMNS}
        FROM jobs j JOIN organizations o ON o.id = j.org_id
        WHERE j.status IN ('open', 'published')
          AND j.id IN (SELECT job_id FROM job_universities WHERE university_org_id = :org_id)
    """
    params = {"org_id": org_id, "limit": limit, "offset": offset}
    if job_id is not None:
        sql += " AND j.id = :job_id"
        params["job_id"] = job_id
    if q:
        sql += """ AND (j.title ILIKE :q OR j.dept ILIKE :q OR o.name ILIKE :q
                        OR j.location ILIKE :q OR j.location_mode ILIKE :q)"""
        params["q"] = f"%{q}%"
    sql += " ORDER BY j.created_at DESC, j.id DESC LIMIT :limit OFFSET :offset"

    jobs = execute_raw_sql(sql, params)
    return with_university_ids(jobs)


# ============================================================
# STUDENTS
# ============================================================

@router.get("/students", response_model=List[StudentListItem])
async def list_students(
    org_id: int = Query(...),
    q: Optional[str] = Query(None, description="Search name, email or headline"),
    grad_year: Optional[int] = Query(None),
    program: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_user)
):
    require_university(org_id, user)

    sql = """
        SELECT u.id AS user_id, u.name, u.email, sp.grad_year, sp.program, sp.headline,
               (sp.resume_url IS NOT NULL OR EXISTS (
                   SELECT 1 FROM resumes r JOIN applications a ON a.id = r.application_id
                   WHERE a.applicant_user_id = u.id)) AS has_resume,
               (SELECT COUNT(*) FROM applications a WHERE a.applicant_user_id = u.id) AS applications_count
        FROM student_profiles sp
        JOIN users u ON u.id = sp.user_id
        WHERE sp.university_id = :org_id
    """
    params = {"org_id": org_id, "limit": limit, "offset": offset}
    if q:
        sql += " AND (u.name ILIKE :q OR u.email ILIKE :q OR sp.headline ILIKE :q)"
        params["q"] = f"%{q}%"
    if grad_year is not None:
        sql += " AND sp.grad_year = :grad_year"
        params["grad_year"] = grad_year
    if program:
        sql += " AND sp.program ILIKE :program"
        params["program"] = f"%{program}%"
    sql += " ORDER BY u.name ASC LIMIT :limit OFFSET :offset"

    return [StudentListItem(**r) for r in execute_raw_sql(sql, params)]


@router.get("/students/summary", response_model=StudentSummaryResponse)
async def students_summary(org_id: int = Query(...), user: dict = Depends(get_current_user)):
    require_university(org_id, user)

    row = fetch_one(f"""
        SELECT
            (SELECT COUNT(*) FROM student_profiles WHERE university_id = :org_id) AS total_students,
            (SELECT COUNT(*) FROM student_profiles sp
             WHERE sp.university_id = :org_id AND (sp.resume_url IS NOT NULL OR EXISTS (
                 SELECT 1 FROM resumes r JOIN applications a ON a.id = r.application_id
                 WHERE a.applicant_user_id = sp.user_id))) AS with_resume,
            (SELECT COUNT(DISTINCT a.applicant_user_id) FROM applications a
             JOIN student_profiles sp ON sp.user_id = a.applicant_user_id
             WHERE sp.university_id = :org_id) AS with_applications,
            (SELECT COUNT(*) FROM applications a WHERE {STUDENT_APPLICATIONS_FILTER}) AS total_applications,
            (SELECT COUNT(*) FROM applications a
             WHERE {STUDENT_APPLICATIONS_FILTER} AND a.stage = 'hired') AS hired,
            (SELECT COUNT(*) FROM event_checkins c
             JOIN users u ON LOWER(u.email) = LOWER(c.user_email)
             JOIN student_profiles sp ON sp.user_id = u.id
             WHERE sp.university_id = :org_id) AS events_attended
    """, {"org_id": org_id}) or {}

    return StudentSummaryResponse(**{k: int(row.get(k) or 0) for k in StudentSummaryResponse.model_fields})


@router.get("/students/{student_user_id}", response_model=StudentDetailResponse)
async def student_detail(student_user_id: int, org_id: int = Query(...), user: dict = Depends(get_current_user)):
    """Profile, applications, experience and engagement of one of this university's students."""
    require_university(org_id, user)

    profile = load_profile(student_user_id)
    if profile["university_id"] != org_id:
        raise HTTPException(status_code=404, detail="Student not found")

    applications = execute_raw_sql("""
        SELECT a.id, a.job_id, a.stage, a.created_at, j.title AS job_title, o.name AS company_name
        FROM applications a
        LEFT JOIN jobs j ON j.id = a.job_id
        LEFT JOIN organizations o ON o.id = j.org_id
        WHERE a.applicant_user_id = :uid
        ORDER BY a.created_at DESC
    """, {"uid": student_user_id})
    experiences = execute_raw_sql(f"""
        SELECT {EXPERIENCE_COLUMNS} FROM student_experiences
        WHERE user_id = :uid ORDER BY start_date DESC NULLS LAST, id DESC
    """, {"uid": student_user_id})
    engagement = fetch_one("""
        SELECT
            (SELECT COUNT(*) FROM event_registrations WHERE LOWER(user_email) = LOWER(:email)) AS events_registered,
            (SELECT COUNT(*) FROM event_checkins WHERE LOWER(user_email) = LOWER(:email)) AS events_attended,
            (SELECT COUNT(*) FROM saved_jobs WHERE user_id = :uid) AS saved_jobs_count
    """, {"email": profile["email"], "uid": student_user_id}) or {}

    stats = StudentStats(
        total_applications=len(applications),
        active_applications=sum(1 for a in applications if a["stage"] not in CLOSED_STAGES),
        last_application_at=applications[0]["created_at"] if applications else None,
        **{k: int(engagement.get(k) or 0) for k in ("events_registered", "events_attended", "saved_jobs_count")}
    )
    return StudentDetailResponse(
        student=StudentProfileResponse(**profile),
        applications=[StudentApplicationItem(**a) for a in applications],
        experiences=[ExperienceResponse(**e) for e in experiences],
        stats=stats,
    )


# ============================================================
# APPLICATIONS
# ============================================================

@router.get("/applications", response_model=List[UniversityApplicationItem])
async def student_applications(
    org_id: int = Query(...),
    job_id: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_user)
):
    """Applications submitted by this university's students, newest first."""
    require_university(org_id, user)

    sql = f"""
        SELECT a.id, a.job_id, a.stage, a.created_at, a.applicant_user_id AS student_user_id,
               COALESCE(u.name, a.applicant_name) AS student_name, a.applicant_email AS student_email,
               sp.program, sp.grad_year, j.title AS job_title, o.name AS company_name
        FROM applications a
        LEFT JOIN users u ON u.id = a.applicant_user_id
        LEFT JOIN student_profiles sp ON sp.user_id = a.applicant_user_id
        LEFT JOIN jobs j ON j.id = a.job_id
        LEFT JOIN organizations o ON o.id = j.org_id
        WHERE {STUDENT_APPLICATIONS_FILTER}
    """
    params = {"org_id": org_id, "limit": limit, "offset": offset}
    if job_id is not None:
        sql += " AND a.job_id = :job_id"
        params["job_id"] = job_id
    sql += " ORDER BY a.created_at DESC, a.id DESC LIMIT :limit OFFSET :offset"

    return [UniversityApplicationItem(**r) for r in execute_raw_sql(sql, params)]


# ============================================================
# PARTNERS
# ============================================================

def latest(*moments: Optional[datetime]) -> Optional[datetime]:
    present = [m for m in moments if m is not None]
    return max(present) if present else None


@router.get("/partners/{company_org_id}/summary", response_model=PartnerSummaryResponse)
async def partner_summary(company_org_id: int, org_id: int = Query(...), user: dict = Depends(get_current_user)):
    """
    One employer as seen by this university.

    Status is "unknown" until the company has requested access. Application
    counts cover this university's students only; last_interaction_at is
    the latest job, employer-hosted event, application or request date.
    """
    require_university(org_id, user)

    row = fetch_one("""
        SELECT o.id AS company_org_id, o.name AS company_name, ep.industry, ep.company_url,
               ua.id AS authorization_id, ua.status, ua.created_at AS requested_at,
               (SELECT COUNT(*) FROM jobs WHERE org_id = o.id) AS jobs_count,
               (SELECT MAX(updated_at) FROM jobs WHERE org_id = o.id) AS last_job_at,
               (SELECT COUNT(*) FROM events WHERE org_id = o.id AND is_employer_hosted) AS events_count,
               (SELECT MAX(updated_at) FROM events WHERE org_id = o.id AND is_employer_hosted) AS last_event_at,
               (SELECT COUNT(*) FROM applications a JOIN jobs j ON j.id = a.job_id
                WHERE j.org_id = o.id AND a.applicant_university_id = :org_id) AS applications_count,
               (SELECT MAX(a.created_at) FROM applications a JOIN jobs j ON j.id = a.job_id
                WHERE j.org_id = o.id AND a.applicant_university_id = :org_id) AS last_application_at
        FROM organizations o
        LEFT JOIN employer_profiles ep ON ep.org_id = o.id
        LEFT JOIN university_authorizations ua
            ON ua.company_org_id = o.id AND ua.university_org_id = :org_id
        WHERE o.id = :company_id AND o.type = 'company'
    """, {"company_id": company_org_id, "org_id": org_id})
    if not row:
        raise HTTPException(status_code=404, detail="Company not found")

    return PartnerSummaryResponse(
        company_org_id=row["company_org_id"],
        company_name=row["company_name"],
        authorization_id=row["authorization_id"],
        status=row["status"] or "unknown",
        industry=row["industry"],
        company_url=row["company_url"],
        jobs_count=int(row["jobs_count"] or 0),
        events_count=int(row["events_count"] or 0),
        applications_count=int(row["applications_count"] or 0),
        last_interaction_at=latest(
            row["last_job_at"], row["last_event_at"], row["last_application_at"], row["requested_at"]
        ),
    )


# ============================================================
# ANALYTICS
# ============================================================

@router.get("/analytics", response_model=UniversityAnalyticsResponse)
async def university_analytics(org_id: int = Query(...), user: dict = Depends(get_current_user)):
    """Twelve months of student applications plus job and student breakdowns."""
    require_university(org_id, user)
    return UniversityAnalyticsResponse(**fetch_university_analytics(org_id))
