"""
Application Service - candidate submissions and their pipeline stage.

Stages: applied -> interview -> offer -> hired | rejected.
`hired` is terminal. Every stage change leaves two trails:
an `actions` row (stage_changed) for the application timeline and an
`activity` row for the org dashboard.

Create is idempotent per (job, user): a signed-in user who already applied
gets the existing id back, and an anonymous row with the same job + email
is claimed by the user instead of duplicated.
"""

import json
import logging
import re
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import text

from talentbridge.core.auth import require_org_member
from talentbridge.db.postgres import get_db_session, fetch_one
from talentbridge.services.activity_service import record_activity
from talentbridge.schemas.schemas import ApplicationStage

logger = logging.getLogger(__name__)

STAGES = [s.value for s in ApplicationStage]
TERMINAL_STAGES = {ApplicationStage.hired.value}

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Optional snapshot columns copied from the request when non-empty
SNAPSHOT_FIELDS = [
    "applicant_name", "phone", "whatsapp", "location", "city", "province",
    "linkedin_url", "portfolio_url", "github_url", "work_auth", "need_sponsorship",
    "willing_relocate", "remote_pref", "earliest_start", "salary_expectation",
    "notice_period_days", "experience_years", "university", "degree", "graduation_year",
    "gpa", "gpa_scale", "source", "applicant_university_id",
]

APPLICATION_COLUMNS = """
    a.id, a.job_id, j.title AS job_title, j.org_id, a.applicant_user_id, a.applicant_email,
    a.applicant_name, a.stage, a.source, a.applicant_university_id, a.created_at, a.updated_at
"""


# ============================================================
# VALIDATION
# ============================================================

def is_valid_email(email: Optional[str]) -> bool:
    return bool(email) and bool(EMAIL_RE.match(email.strip()))


def resolve_applicant_email(body_email: Optional[str], user: Optional[dict]) -> str:
    """Body email when valid, otherwise the signed-in user's email."""
    if is_valid_email(body_email):
        return body_email.strip().lower()
    if user and user.get("email"):
        return user["email"].strip().lower()
    raise HTTPException(
        status_code=400,
        detail="applicant_email is required (or sign in so it can be inferred)"
    )


def validate_stage(stage: str) -> str:
    value = (stage or "").strip().lower()
    if value not in STAGES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid stage '{stage}'. Allowed: {', '.join(STAGES)}"
        )
    return value


def check_stage_transition(current: str, new: str) -> None:
    """Only rule enforced: nothing leaves a terminal stage."""
    if current in TERMINAL_STAGES and new != current:
        raise HTTPException(
            status_code=409,
            detail=f"Application is already {current}; stage can no longer change"
        )


def build_snapshot(payload: dict) -> dict:
    """Non-empty snapshot fields, strings trimmed."""
    snapshot = {}
    for field in SNAPSHOT_FIELDS:
        value = payload.get(field)
        if isinstance(value, str):
            value = value.strip()
        if value is None or value == "":
            continue
        snapshot[field] = value
    return snapshot


def validate_answer(question: dict, application: dict, kind: str,
                    text_answer: Optional[str] = None, duration_sec: int = 0) -> None:
    """
    Answer rules:
    - the question belongs to the application's job
    - the answer kind matches the question kind
    - text fits max_chars, voice fits max_sec
    """
    if question["job_id"] != application["job_id"]:
        raise HTTPException(status_code=400, detail="Question does not belong to this application's job")

    if question["kind"] != kind:
        raise HTTPException(status_code=400, detail=f"Question expects a {question['kind']} answer")

    if kind == "text":
        max_chars = question.get("max_chars")
        if max_chars and len(text_answer or "") > max_chars:
            raise HTTPException(status_code=400, detail=f"Answer exceeds {max_chars} characters")
    else:
        max_sec = question.get("max_sec")
        if max_sec and duration_sec > max_sec:
            raise HTTPException(status_code=400, detail=f"Recording exceeds {max_sec} seconds")


# ============================================================
# QUERIES
# ============================================================

def get_application(application_id: int) -> dict:
    row = fetch_one(f"""
        SELECT {APPLICATION_COLUMNS}
        FROM applications a
        JOIN jobs j ON j.id = a.job_id
        WHERE a.id = :id
    """, {"id": application_id})
    if not row:
        raise HTTPException(status_code=404, detail="Application not found")
    return row


def get_application_for_member(application_id: int, user: dict) -> dict:
    """Application lookup for org staff; the user must belong to the job's org."""
    application = get_application(application_id)
    require_org_member(application["org_id"], user)
    return application


def can_view_application(application: dict, user: dict) -> bool:
    """Applicants see their own rows (by user id or legacy email)."""
    if application["applicant_user_id"] == user["user_id"]:
        return True
    return application["applicant_user_id"] is None and \
        application["applicant_email"].lower() == (user.get("email") or "").lower()


# ============================================================
# WRITES
# ============================================================

def create_application(payload: dict, user: Optional[dict]) -> dict:
    """
    Create (or reuse) an application.

    Returns the response body plus `created` so the route can pick 201/200.
    """
    email = resolve_applicant_email(payload.get("applicant_email"), user)

    job = fetch_one("SELECT id, org_id, title, status FROM jobs WHERE id = :id", {"id": payload["job_id"]})
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    if job["status"] == "closed":
        raise HTTPException(status_code=400, detail="Job is closed to new applications")

    snapshot = build_snapshot(payload)
    user_id = user["user_id"] if user else None
    if user and "applicant_name" not in snapshot and user.get("name"):
        snapshot["applicant_name"] = user["name"]

    if user_id:
        existing = fetch_one(
            "SELECT id FROM applications WHERE job_id = :job_id AND applicant_user_id = :uid LIMIT 1",
            {"job_id": job["id"], "uid": user_id}
        )
        if existing:
            return {"id": existing["id"], "ok": True, "already_applied": True, "created": False}

    legacy = fetch_one("""
        SELECT id FROM applications
        WHERE job_id = :job_id AND LOWER(applicant_email) = :email AND applicant_user_id IS NULL
        LIMIT 1
    """, {"job_id": job["id"], "email": email})

    fields = dict(snapshot, applicant_email=email, applicant_user_id=user_id)

    if legacy:
        assignments = ", ".join(f"{k} = :{k}" for k in fields)
        with get_db_session() as db:
            db.execute(
                text(f"UPDATE applications SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
                dict(fields, id=legacy["id"])
            )
        record_activity(
            job["org_id"], "application", legacy["id"], "applied", user_id,
            {"applicant_email": email, "job_id": job["id"], "job_title": job["title"], "upgraded_legacy": True},
        )
        logger.info("application_claimed application_id=%s user_id=%s", legacy["id"], user_id)
        return {"id": legacy["id"], "ok": True, "upgraded_legacy": True, "created": False}

    fields["job_id"] = job["id"]
    fields["stage"] = "applied"
    columns = ", ".join(fields)
    placeholders = ", ".join(f":{k}" for k in fields)
    with get_db_session() as db:
        result = db.execute(
            text(f"INSERT INTO applications ({columns}) VALUES ({placeholders}) RETURNING id"),
            fields
        )
        application_id = result.fetchone()[0]

    record_activity(
        job["org_id"], "application", application_id, "applied", user_id,
        {"applicant_email": email, "job_id": job["id"], "job_title": job["title"]},
    )
    logger.info("application_created application_id=%s job_id=%s", application_id, job["id"])
    return {"id": application_id, "ok": True, "created": True}


def change_stage(application: dict, new_stage: str, user: dict) -> dict:
    """Validate, apply and record a stage change. Same-stage updates are a no-op."""
    stage = validate_stage(new_stage)
    current = application["stage"]
    check_stage_transition(current, stage)
    if stage == current:
        return application

    with get_db_session() as db:
        db.execute(
            text("UPDATE applications SET stage = :stage, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
            {"stage": stage, "id": application["id"]}
        )
        db.execute(
            text("""
                INSERT INTO actions (application_id, type, payload, created_by)
                VALUES (:id, 'stage_changed', CAST(:payload AS JSONB), :uid)
            """),
            {"id": application["id"], "payload": json.dumps({"from": current, "to": stage}), "uid": user["user_id"]}
        )

    record_activity(
        application["org_id"], "application", application["id"], "stage_changed",
        user["user_id"], {"from": current, "to": stage},
    )
    logger.info("application_stage_changed application_id=%s %s->%s", application["id"], current, stage)
    return get_application(application["id"])


def add_action(application_id: int, action_type: str, payload: Optional[dict], user_id: int) -> dict:
    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO actions (application_id, type, payload, created_by)
                VALUES (:id, :type, CAST(:payload AS JSONB), :uid)
                RETURNING id, application_id, type, payload, created_by, created_at
            """),
            {
                "id": application_id, "type": action_type.strip(),
                "payload": json.dumps(payload) if payload is not None else None, "uid": user_id,
            }
        )
        row = result.fetchone()
    return dict(row._mapping)
