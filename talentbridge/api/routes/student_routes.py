"""
Student Routes

GET    /student/profile - Get own profile
PUT    /student/profile - Update profile (created on first save)
GET    /student/experiences - List work experience
POST   /student/experiences - Add experience
PUT    /student/experiences/{experience_id} - Replace experience
DELETE /student/experiences/{experience_id} - Remove experience
GET    /student/saved-jobs - Saved jobs
POST   /student/saved-jobs - Save a job (idempotent)
DELETE /student/saved-jobs/{job_id} - Unsave a job
GET    /student/jobs - Job feed (visibility rules applied)
GET    /student/applications - My applications
GET    /student/events - Upcoming events for me
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, execute_raw_sql, fetch_one
from talentbridge.core.auth import get_current_applicant
from talentbridge.services import visibility, application_service
from talentbridge.api.routes.job_routes import JOB_COLUMNS, load_job, load_mappings, with_university_ids
from talentbridge.api.routes.event_routes import EVENT_COLUMNS, event_response
from talentbridge.schemas.schemas import (
    StudentProfileUpdate, StudentProfileResponse, ExperienceCreate, ExperienceResponse,
    SavedJobRequest, JobResponse, ApplicationResponse, EventResponse, MessageResponse
)

router = APIRouter(prefix="/student", tags=["Student"])

PROFILE_FIELDS = [
    "university_id", "grad_year", "program", "headline", "about", "location_city",
    "location_country", "website_url", "linkedin_url", "github_url", "is_public",
    "skills", "experience_years",
]
EXPERIENCE_COLUMNS = """
    id, user_id, title, company, start_date, end_date, is_current, location, description, created_at
"""


def load_profile(user_id: int) -> dict:
    row = fetch_one("""
        SELECT u.id AS user_id, u.name, u.email, sp.university_id, o.name AS university_name,
               sp.grad_year, sp.program, sp.headline, sp.about, sp.location_city,
               sp.location_country, sp.website_url, sp.linkedin_url, sp.github_url,
               sp.resume_url, COALESCE(sp.is_public, FALSE) AS is_public,
               COALESCE(sp.skills, '{}') AS skills, sp.experience_years
        FROM users u
        LEFT JOIN student_profiles sp ON sp.user_id = u.id
        LEFT JOIN organizations o ON o.id = sp.university_id
        WHERE u.id = :uid
    """, {"uid": user_id})
    if not row:
        raise HTTPException(status_code=404, detail="User not found")
    if row["experience_years"] is not None:
        row["experience_years"] = float(row["experience_years"])
    return row


# ============================================================
# PROFILE
# ============================================================

@router.get("/profile", response_model=StudentProfileResponse)
async def get_profile(user: dict = Depends(get_current_applicant)):
    """Profile fields are empty until the first update."""
    return StudentProfileResponse(**load_profile(user["user_id"]))


@router.put("/profile", response_model=StudentProfileResponse)
async def update_profile(update: StudentProfileUpdate, user: dict = Depends(get_current_applicant)):
    fields = {k: v for k, v in update.model_dump(exclude_unset=True).items() if k in PROFILE_FIELDS}

    if fields.get("university_id") is not None and not fetch_one(
        "SELECT id FROM organizations WHERE id = :id AND type = 'university'",
        {"id": fields["university_id"]}
    ):
        raise HTTPException(status_code=400, detail="Unknown university")
    if fields.get("skills") is not None:
        fields["skills"] = [s.strip() for s in fields["skills"] if s.strip()]

    params = dict(fields, uid=user["user_id"])
    with get_db_session() as db:
        if fields:
            columns = ", ".join(fields)
            placeholders = ", ".join(f":{k}" for k in fields)
            updates = ", ".join(f"{k} = EXCLUDED.{k}" for k in fields)
            db.execute(
                text(f"""
                    INSERT INTO student_profiles (user_id, {columns})
                    VALUES (:uid, {placeholders})
                    ON CONFLICT (user_id) DO UPDATE SET {updates}, updated_at = CURRENT_TIMESTAMP
                """),
                params
            )
        else:
            db.execute(
                text("INSERT INTO student_profiles (user_id) VALUES (:uid) ON CONFLICT (user_id) DO NOTHING"),
                params
            )

    return StudentProfileResponse(**load_profile(user["user_id"]))


# ============================================================
# EXPERIENCES
# ============================================================

@router.get("/experiences", response_model=List[ExperienceResponse])
async def list_experiences(user: dict = Depends(get_current_applicant)):
    rows = execute_raw_sql(f"""
        SELECT {EXPERIENCE_COLUMNS} FROM student_experiences
        WHERE user_id = :uid
        ORDER BY is_current DESC, start_date DESC NULLS LAST, id DESC
    """, {"uid": user["user_id"]})
    return [ExperienceResponse(**r) for r in rows]


@router.post("/experiences", response_model=ExperienceResponse, status_code=201)
async def add_experience(experience: ExperienceCreate, user: dict = Depends(get_current_applicant)):
    with get_db_session() as db:
        result = db.execute(
            text(f"""
                INSERT INTO student_experiences (user_id, title, company, start_date, end_date,
                    is_current, location, description)
                VALUES (:uid, :title, :company, :start_date, :end_date, :is_current, :location, :description)
                RETURNING {EXPERIENCE_COLUMNS}
            """),
            dict(experience.model_dump(), uid=user["user_id"])
        )
        row = dict(result.fetchone()._mapping)
    return ExperienceResponse(**row)


@router.put("/experiences/{experience_id}", response_model=ExperienceResponse)
async def update_experience(
    experience_id: int,
    experience: ExperienceCreate,
    user: dict = Depends(get_current_applicant)
):
    with get_db_session() as db:
        result = db.execute(
            text(f"""
                UPDATE student_experiences
                SET title = :title, company = :company, start_date = :start_date, end_date = :end_date,
                    is_current = :is_current, location = :location, description = :description,
                    updated_at = CURRENT_TIMESTAMP
                WHERE id = :id AND user_id = :uid
                RETURNING {EXPERIENCE_COLUMNS}
            """),
            dict(experience.model_dump(), id=experience_id, uid=user["user_id"])
        )
        row = result.fetchone()
    if not row:
        raise HTTPException(status_code=404, detail="Experience not found")
    return ExperienceResponse(**dict(row._mapping))


@router.delete("/experiences/{experience_id}", response_model=MessageResponse)
async def delete_experience(experience_id: int, user: dict = Depends(get_current_applicant)):
    with get_db_session() as db:
        result = db.execute(
            text("DELETE FROM student_experiences WHERE id = :id AND user_id = :uid RETURNING id"),
            {"id": experience_id, "uid": user["user_id"]}
        )
        deleted = result.fetchone()
    if not deleted:
        raise HTTPException(status_code=404, detail="Experience not found")
    return MessageResponse(message="Experience removed")


# ============================================================
# SAVED JOBS
# ============================================================

@router.get("/saved-jobs", response_model=List[JobResponse])
async def list_saved_jobs(user: dict = Depends(get_current_applicant)):
    jobs = execute_raw_sql(f"""
        SELECT {JOB_COLUMNS}
        FROM saved_jobs s
        JOIN jobs j ON j.id = s.job_id
        JOIN organizations o ON o.id = j.org_id
        WHERE s.user_id = :uid
        ORDER BY s.created_at DESC
    """, {"uid": user["user_id"]})
    return with_university_ids(jobs)


@router.post("/saved-jobs", response_model=MessageResponse, status_code=201)
async def save_job(request: SavedJobRequest, user: dict = Depends(get_current_applicant)):
    """Saving a job twice is a no-op."""
    load_job(request.job_id)
    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO saved_jobs (user_id, job_id) VALUES (:uid, :job_id)
                ON CONFLICT (user_id, job_id) DO NOTHING
            """),
            {"uid": user["user_id"], "job_id": request.job_id}
        )
    return MessageResponse(message="Job saved")


@router.delete("/saved-jobs/{job_id}", response_model=MessageResponse)
async def unsave_job(job_id: int, user: dict = Depends(get_current_applicant)):
    with get_db_session() as db:
        db.execute(
            text("DELETE FROM saved_jobs WHERE user_id = :uid AND job_id = :job_id"),
            {"uid": user["user_id"], "job_id": job_id}
        )
    return MessageResponse(message="Job removed from saved")


# ============================================================
# FEEDS
# ============================================================

@router.get("/jobs", response_model=List[JobResponse])
async def job_feed(
    q: Optional[str] = Query(None, description="Search in title or company"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_applicant)
):
    """
    Open jobs the student may see: public listings plus jobs targeted at
    their university. Filtering happens before pagination.
    """
    sql = f"""
        SELECT {JOB_COLUMNS}
        FROM jobs j JOIN organizations o ON o.id = j.org_id
        WHERE j.status IN ('open', 'published')
    """
    params = {}
    if q:
        sql += " AND (j.title ILIKE :q OR o.name ILIKE :q)"
        params["q"] = f"%{q}%"
    sql += " ORDER BY j.created_at DESC, j.id DESC"

    jobs = execute_raw_sql(sql, params)
    mappings = load_mappings([j["id"] for j in jobs])
    university_id = load_profile(user["user_id"])["university_id"]
    visible = visibility.filter_for_student(jobs, university_id, visibility.build_mapping_index(mappings))
    return with_university_ids(visible[offset:offset + limit], mappings)


@router.get("/applications", response_model=List[ApplicationResponse])
async def my_applications(user: dict = Depends(get_current_applicant)):
    rows = execute_raw_sql(f"""
        SELECT {application_service.APPLICATION_COLUMNS}
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE a.applicant_user_id = :uid
        ORDER BY a.created_at DESC
    """, {"uid": user["user_id"]})
    return [ApplicationResponse(**r) for r in rows]


@router.get("/events", response_model=List[EventResponse])
async def my_events(user: dict = Depends(get_current_applicant)):
    """Published upcoming events from the student's university plus employer-hosted ones."""
    university_id = load_profile(user["user_id"])["university_id"]
    rows = execute_raw_sql(f"""
        SELECT {EVENT_COLUMNS}
        FROM events e JOIN organizations o ON o.id = e.org_id
        WHERE e.status = 'published'
          AND COALESCE(e.end_at, e.start_at) >= CURRENT_TIMESTAMP
          AND (e.is_employer_hosted OR e.org_id = :uni_id)
        ORDER BY e.start_at ASC
    """, {"uni_id": university_id})
    return [event_response(r) for r in rows]
