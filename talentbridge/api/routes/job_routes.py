"""
Job Routes

POST   /jobs - Create job posting (company members)
GET    /jobs - List an organization's jobs (status, search, university filter)
GET    /jobs/{job_id} - Get job details
PATCH  /jobs/{job_id} - Update job and university targets
DELETE /jobs/{job_id} - Delete job
GET    /jobs/{job_id}/questions - Screening questions
POST   /jobs/{job_id}/questions - Add screening question
GET    /jobs/{job_id}/jd-versions - Description history
POST   /jobs/{job_id}/jd-versions - Save a manual description rewrite
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, execute_raw_sql, fetch_one
from talentbridge.core.auth import (
    get_current_user, get_optional_user, require_org_member, require_org_type
)
from talentbridge.services import visibility
from talentbridge.services.activity_service import record_activity
from talentbridge.schemas.schemas import (
    JobCreate, JobUpdate, JobResponse, QuestionCreate, QuestionResponse,
    JDVersionCreate, JDVersionResponse, MessageResponse, QuestionKind
)

router = APIRouter(prefix="/jobs", tags=["Jobs"])
logger = logging.getLogger(__name__)

JOB_COLUMNS = """
    j.id, j.org_id, o.name AS org_name, j.title, j.dept, j.location_mode, j.location,
    j.salary_range, j.description_md, j.skills_required, j.status, j.visibility,
    j.created_at, j.updated_at
"""
QUESTION_COLUMNS = "id, job_id, prompt, kind, max_sec, max_chars, required, order_index, created_at"
DEFAULT_MAX_SEC = 120


# ============================================================
# HELPERS
# ============================================================

def load_job(job_id: int) -> dict:
    job = fetch_one(f"""
        SELECT {JOB_COLUMNS}
        FROM jobs j JOIN organizations o ON o.id = j.org_id
        WHERE j.id = :id
    """, {"id": job_id})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


def load_mappings(job_ids: List[int]) -> list:
    if not job_ids:
        return []
    return execute_raw_sql(
        "SELECT job_id, university_org_id FROM job_universities WHERE job_id = ANY(:ids)",
        {"ids": list(job_ids)}
    )


def with_university_ids(jobs: List[dict], mappings: Optional[list] = None) -> List[JobResponse]:
    if mappings is None:
        mappings = load_mappings([j["id"] for j in jobs])
    index = visibility.build_mapping_index(mappings)
    return [
        JobResponse(**dict(j, skills_required=j["skills_required"] or [],
                           university_ids=sorted(index.get(j["id"], set()))))
        for j in jobs
    ]


def valid_university_ids(raw_ids) -> List[int]:
    """Parsed ids that belong to existing university organizations, submission order kept."""
    ids = visibility.parse_university_ids(raw_ids)
    if not ids:
        return []
    rows = execute_raw_sql(
        "SELECT id FROM organizations WHERE id = ANY(:ids) AND type = 'university'",
        {"ids": ids}
    )
    existing = {r["id"] for r in rows}
    return [i for i in ids if i in existing]


def replace_targets(db, job_id: int, university_ids: List[int]) -> None:
    db.execute(text("DELETE FROM job_universities WHERE job_id = :id"), {"id": job_id})
    for uni_id in university_ids:
        db.execute(
            text("""
                INSERT INTO job_universities (job_id, university_org_id)
                VALUES (:job_id, :uni_id) ON CONFLICT DO NOTHING
            """),
            {"job_id": job_id, "uni_id": uni_id}
        )


def student_university_id(user_id: int) -> Optional[int]:
    row = fetch_one("SELECT university_id FROM student_profiles WHERE user_id = :uid", {"uid": user_id})
    return row["university_id"] if row else None


def ensure_can_view(job: dict, user: Optional[dict]) -> None:
    """Org members see everything; others only what the student feed would show them."""
    if user and fetch_one(
        "SELECT 1 AS ok FROM memberships WHERE org_id = :org_id AND user_id = :uid",
        {"org_id": job["org_id"], "uid": user["user_id"]}
    ):
        return

    university_id = student_university_id(user["user_id"]) if user else None
    index = visibility.build_mapping_index(load_mappings([job["id"]]))
    if not visibility.is_visible_to_student(job, university_id, index):
        raise HTTPException(status_code=404, detail="Job not found")


def normalize_kind(kind: Optional[str]) -> str:
    value = (kind or "").strip().lower()
    return value if value in QuestionKind._value2member_map_ else QuestionKind.voice.value


# ============================================================
# JOBS
# ============================================================

@router.post("", response_model=JobResponse, status_code=201)
async def create_job(job: JobCreate, user: dict = Depends(get_current_user)):
    """Create a job posting. Only company organizations own jobs."""
    org = require_org_type(require_org_member(job.org_id, user), "company")
    university_ids = valid_university_ids(job.university_ids)

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO jobs (org_id, title, dept, location_mode, location, salary_range,
                    description_md, skills_required, status, visibility)
                VALUES (:org_id, :title, :dept, :location_mode, :location, :salary_range,
                    :description_md, :skills_required, :status, :visibility)
                RETURNING id
            """),
            {
                "org_id": job.org_id, "title": job.title, "dept": job.dept,
                "location_mode": job.location_mode, "location": job.location,
                "salary_range": job.salary_range, "description_md": job.description_md,
                "skills_required": [s.strip() for s in job.skills_required if s.strip()],
                "status": job.status.value, "visibility": job.visibility.value,
            }
        )
        job_id = result.fetchone()[0]
        replace_targets(db, job_id, university_ids)

    record_activity(org["id"], "job", job_id, "created", user["user_id"],
                    {"title": job.title, "status": job.status.value, "university_ids": university_ids})
    logger.info("job_created job_id=%s org_id=%s targets=%s", job_id, org["id"], len(university_ids))
    return with_university_ids([load_job(job_id)])[0]


@router.get("", response_model=List[JobResponse])
async def list_jobs(
    org_id: int = Query(...),
    status: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Search in title"),
    university_id: Optional[int] = Query(None, description="Only jobs targeted at this university"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_user)
):
    """List an organization's jobs, newest first."""
    require_org_member(org_id, user)

    sql = f"""
        SELECT {JOB_COLUMNS}
        FROM jobs j JOIN organizations o ON o.id = j.org_id
        WHERE j.org_id = :org_id
    """
    params = {"org_id": org_id}
    if status and status != "all":
        sql += " AND j.status = :status"
        params["status"] = status
    if q:
        sql += " AND j.title ILIKE :q"
        params["q"] = f"%{q}%"
    sql += " ORDER BY j.created_at DESC, j.id DESC"

    if university_id is None:
        sql += " LIMIT :limit OFFSET :offset"
        params.update(limit=limit, offset=offset)
        return with_university_ids(execute_raw_sql(sql, params))

    # Targeting lives in job_universities, so paginate after filtering
    jobs = execute_raw_sql(sql, params)
    mappings = load_mappings([j["id"] for j in jobs])
    index = visibility.build_mapping_index(mappings)
    page = visibility.filter_for_university(jobs, university_id, index, limit, offset)
    return with_university_ids(page, mappings)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    org_id: Optional[int] = Query(None, description="Require the job to belong to this organization"),
    user: Optional[dict] = Depends(get_optional_user)
):
    job = load_job(job_id)
    if org_id is not None and job["org_id"] != org_id:
        raise HTTPException(status_code=404, detail="Job not found")
    ensure_can_view(job, user)
    return with_university_ids([job])[0]


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(job_id: int, update: JobUpdate, user: dict = Depends(get_current_user)):
    job = load_job(job_id)
    require_org_member(job["org_id"], user)

    fields = update.model_dump(exclude_unset=True)
    raw_targets = fields.pop("university_ids", None)
    for key in ("status", "visibility"):
        if fields.get(key) is not None:
            fields[key] = fields[key].value
    if fields.get("skills_required") is not None:
        fields["skills_required"] = [s.strip() for s in fields["skills_required"] if s.strip()]
    fields = {k: v for k, v in fields.items() if v is not None}

    if not fields and raw_targets is None:
        raise HTTPException(status_code=400, detail="No fields to update")

    university_ids = valid_university_ids(raw_targets) if raw_targets is not None else None

    with get_db_session() as db:
        if fields:
            assignments = ", ".join(f"{k} = :{k}" for k in fields)
            db.execute(
                text(f"UPDATE jobs SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                dict(fields, id=job_id)
            )
        if university_ids is not None:
            replace_targets(db, job_id, university_ids)

    diff = dict(fields)
    if university_ids is not None:
        diff["university_ids"] = university_ids
    record_activity(job["org_id"], "job", job_id, "updated", user["user_id"], diff)
    return with_university_ids([load_job(job_id)])[0]


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: int, user: dict = Depends(get_current_user)):
    job = load_job(job_id)
    require_org_member(job["org_id"], user)

    with get_db_session() as db:
        db.execute(text("DELETE FROM jobs WHERE id = :id"), {"id": job_id})

    record_activity(job["org_id"], "job", job_id, "deleted", user["user_id"], {"title": job["title"]})
    return MessageResponse(message="Job deleted")


# ============================================================
# SCREENING QUESTIONS
# ============================================================

@router.get("/{job_id}/questions", response_model=List[QuestionResponse])
async def list_questions(job_id: int, user: Optional[dict] = Depends(get_optional_user)):
    ensure_can_view(load_job(job_id), user)
    rows = execute_raw_sql(
        f"SELECT {QUESTION_COLUMNS} FROM job_questions WHERE job_id = :id ORDER BY order_index NULLS LAST, id",
        {"id": job_id}
    )
    return [QuestionResponse(**r) for r in rows]


@router.post("/{job_id}/questions", response_model=QuestionResponse, status_code=201)
async def add_question(job_id: int, question: QuestionCreate, user: dict = Depends(get_current_user)):
    """Add a screening question. Unknown kinds are stored as voice."""
    job = load_job(job_id)
    require_org_member(job["org_id"], user)
    kind = normalize_kind(question.kind)

    with get_db_session() as db:
        result = db.execute(
            text(f"""
                INSERT INTO job_questions (job_id, prompt, kind, max_sec, max_chars, required, order_index)
                VALUES (:job_id, :prompt, :kind, :max_sec, :max_chars, :required, :order_index)
                RETURNING {QUESTION_COLUMNS}
            """),
            {
                "job_id": job_id, "prompt": question.prompt, "kind": kind,
                "max_sec": question.max_sec or DEFAULT_MAX_SEC,
                "max_chars": question.max_chars if kind == "text" else None,
                "required": question.required, "order_index": question.order_index,
            }
        )
        row = dict(result.fetchone()._mapping)

    record_activity(job["org_id"], "job", job_id, "question_added", user["user_id"], {"kind": kind})
    return QuestionResponse(**row)


# ============================================================
# DESCRIPTION VERSIONS
# ============================================================

@router.get("/{job_id}/jd-versions", response_model=List[JDVersionResponse])
async def list_jd_versions(job_id: int, user: dict = Depends(get_current_user)):
    job = load_job(job_id)
    require_org_member(job["org_id"], user)
    rows = execute_raw_sql("""
        SELECT id, job_id, content_md, created_by, source, created_at
        FROM jd_versions WHERE job_id = :id ORDER BY created_at DESC, id DESC
    """, {"id": job_id})
    return [JDVersionResponse(**r) for r in rows]


@router.post("/{job_id}/jd-versions", response_model=JDVersionResponse, status_code=201)
async def save_jd_version(job_id: int, version: JDVersionCreate, user: dict = Depends(get_current_user)):
    """Store a manual rewrite and make it the job's description."""
    job = load_job(job_id)
    require_org_member(job["org_id"], user)

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO jd_versions (job_id, content_md, created_by, source)
                VALUES (:job_id, :content, :uid, 'manual')
                RETURNING id, job_id, content_md, created_by, source, created_at
            """),
            {"job_id": job_id, "content": version.content_md, "uid": user["user_id"]}
        )
        row = dict(result.fetchone()._mapping)
        db.execute(
            text("UPDATE jobs SET description_md = :content, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
            {"content": version.content_md, "id": job_id}
        )

    record_activity(job["org_id"], "job", job_id, "description_updated", user["user_id"], {"source": "manual"})
    return JDVersionResponse(**row)
