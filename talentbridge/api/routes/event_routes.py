"""
Event Routes

GET    /events - List events (org and status filters, soonest first)
POST   /events - Create event
GET    /events/{event_id} - Get event
PATCH  /events/{event_id} - Update event
DELETE /events/{event_id} - Delete event
POST   /events/{event_id}/register - Register an attendee by email
POST   /events/{event_id}/checkin - Check an attendee in by email
GET    /events/{event_id}/attendees - Registrations with check-in status
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, execute_raw_sql, fetch_one
from talentbridge.core.auth import get_current_user, get_optional_user, require_org_member
from talentbridge.services.activity_service import record_activity
from talentbridge.schemas.schemas import (
    EventCreate, EventUpdate, EventResponse, EventAttendance, AttendeeResponse, MessageResponse, utc_naive
)

router = APIRouter(prefix="/events", tags=["Events"])
logger = logging.getLogger(__name__)

# Cleared by sending an explicit null
NULLABLE_EVENT_FIELDS = {"description", "location", "end_at", "capacity", "registration_url"}

EVENT_COLUMNS = """
    e.id, e.org_id, o.name AS org_name, e.title, e.description, e.location, e.medium,
    e.tags, e.start_at, e.end_at, e.featured, e.is_employer_hosted, e.status, e.capacity,
    e.registration_url, e.attendees_count, e.created_at,
    (SELECT COUNT(*) FROM event_registrations r WHERE r.event_id = e.id) AS registrations_count,
    (SELECT COUNT(*) FROM event_checkins c WHERE c.event_id = e.id) AS checkins_count
"""


def event_response(row: dict) -> EventResponse:
    return EventResponse(**dict(row, tags=row["tags"] or []))


def load_event(event_id: int) -> dict:
    event = fetch_one(f"""
        SELECT {EVENT_COLUMNS}
        FROM events e JOIN organizations o ON o.id = e.org_id
        WHERE e.id = :id
    """, {"id": event_id})
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event


def is_member(org_id: int, user: Optional[dict]) -> bool:
    if not user:
        return False
    return fetch_one(
        "SELECT 1 AS ok FROM memberships WHERE org_id = :org_id AND user_id = :uid",
        {"org_id": org_id, "uid": user["user_id"]}
    ) is not None


@router.get("", response_model=List[EventResponse])
async def list_events(
    org_id: Optional[int] = Query(None),
    status: str = Query("all", description="draft, published, cancelled or all"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_user)
):
    """
    Events ordered by start time.

    With org_id the caller must be a member and sees every status;
    without it only published events are listed.
    """
    sql = f"""
        SELECT {EVENT_COLUMNS}
        FROM events e JOIN organizations o ON o.id = e.org_id
        WHERE 1 = 1
    """
    params = {"limit": limit, "offset": offset}
    if org_id is not None:
        require_org_member(org_id, user)
        sql += " AND e.org_id = :org_id"
        params["org_id"] = org_id
        if status != "all":
            sql += " AND e.status = :status"
            params["status"] = status
    else:
        sql += " AND e.status = 'published'"
    sql += " ORDER BY e.start_at ASC, e.id ASC LIMIT :limit OFFSET :offset"

    return [event_response(r) for r in execute_raw_sql(sql, params)]


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(event: EventCreate, user: dict = Depends(get_current_user)):
    """Create an event. Company events count as employer-hosted unless told otherwise."""
    org = require_org_member(event.org_id, user)
    employer_hosted = event.is_employer_hosted
    if employer_hosted is None:
        employer_hosted = org["type"] == "company"

    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO events (org_id, title, description, location, medium, tags, start_at, end_at,
                    featured, is_employer_hosted, status, capacity, registration_url, attendees_count)
                VALUES (:org_id, :title, :description, :location, :medium, :tags, :start_at, :end_at,
                    :featured, :hosted, :status, :capacity, :registration_url, 0)
                RETURNING id
            """),
            {
                "org_id": event.org_id, "title": event.title.strip(),
                "description": (event.description or "").strip() or None,
                "location": (event.location or "").strip() or None,
                "medium": event.medium.value, "tags": event.tags,
                "start_at": event.start_at, "end_at": event.end_at, "featured": event.featured,
                "hosted": employer_hosted, "status": event.status.value, "capacity": event.capacity,
                "registration_url": (event.registration_url or "").strip() or None,
            }
        )
        event_id = result.fetchone()[0]

    record_activity(event.org_id, "event", event_id, "created", user["user_id"],
                    {"title": event.title, "status": event.status.value})
    logger.info("event_created event_id=%s org_id=%s", event_id, event.org_id)
    return event_response(load_event(event_id))


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event_id: int, user: Optional[dict] = Depends(get_optional_user)):
    event = load_event(event_id)
    if event["status"] != "published" and not is_member(event["org_id"], user):
        raise HTTPException(status_code=404, detail="Event not found")
    return event_response(event)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(event_id: int, update: EventUpdate, user: dict = Depends(get_current_user)):
    event = load_event(event_id)
    require_org_member(event["org_id"], user)

    fields = {
        k: v for k, v in update.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE_EVENT_FIELDS
    }
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")
    for key in ("medium", "status"):
        if key in fields:
            fields[key] = fields[key].value

    start_at = utc_naive(fields.get("start_at", event["start_at"]))
    end_at = utc_naive(fields.get("end_at", event["end_at"]))
    if end_at is not None and end_at < start_at:
        raise HTTPException(status_code=400, detail="end_at must not be before start_at")

    assignments = ", ".join(f"{k} = :{k}" for k in fields)
    with get_db_session() as db:
        db.execute(
            text(f"UPDATE events SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = :id"),
            dict(fields, id=event_id)
        )

    record_activity(event["org_id"], "event", event_id, "updated", user["user_id"], fields)
    return event_response(load_event(event_id))


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(event_id: int, user: dict = Depends(get_current_user)):
    event = load_event(event_id)
    require_org_member(event["org_id"], user)

    with get_db_session() as db:
        db.execute(text("DELETE FROM events WHERE id = :id"), {"id": event_id})

    record_activity(event["org_id"], "event", event_id, "deleted", user["user_id"], {"title": event["title"]})
    return MessageResponse(message="Event deleted")


# ============================================================
# ATTENDANCE
# ============================================================

@router.post("/{event_id}/register", response_model=MessageResponse, status_code=201)
async def register_attendee(event_id: int, attendance: EventAttendance):
    """Register by email. Duplicate registrations and full events return 409."""
    email = attendance.user_email.lower()

    with get_db_session() as db:
        event = db.execute(
            text("SELECT id, org_id, status, capacity, attendees_count FROM events WHERE id = :id FOR UPDATE"),
            {"id": event_id}
        ).fetchone()
        if not event:
            raise HTTPException(status_code=404, detail="Event not found")
        if event.status != "published":
            raise HTTPException(status_code=400, detail="Event is not open for registration")

        duplicate = db.execute(
            text("SELECT 1 FROM event_registrations WHERE event_id = :id AND LOWER(user_email) = :email"),
            {"id": event_id, "email": email}
        ).fetchone()
        if duplicate:
            raise HTTPException(status_code=409, detail="Already registered")
        if event.capacity is not None and event.attendees_count >= event.capacity:
            raise HTTPException(status_code=409, detail="Event is full")

        db.execute(
            text("INSERT INTO event_registrations (event_id, user_email) VALUES (:id, :email)"),
            {"id": event_id, "email": email}
        )
        db.execute(
            text("UPDATE events SET attendees_count = attendees_count + 1 WHERE id = :id"),
            {"id": event_id}
        )

    record_activity(event.org_id, "event", event_id, "registered", None, {"email": email})
    return MessageResponse(message="Registered")


@router.post("/{event_id}/checkin", response_model=MessageResponse, status_code=201)
async def check_in(event_id: int, attendance: EventAttendance, user: dict = Depends(get_current_user)):
    event = load_event(event_id)
    require_org_member(event["org_id"], user)
    email = attendance.user_email.lower()

    duplicate = fetch_one(
        "SELECT 1 AS ok FROM event_checkins WHERE event_id = :id AND LOWER(user_email) = :email",
        {"id": event_id, "email": email}
    )
    if duplicate:
        raise HTTPException(status_code=409, detail="Already checked in")

    with get_db_session() as db:
        db.execute(
            text("INSERT INTO event_checkins (event_id, user_email) VALUES (:id, :email)"),
            {"id": event_id, "email": email}
        )

    record_activity(event["org_id"], "event", event_id, "checked_in", user["user_id"], {"email": email})
    return MessageResponse(message="Checked in")


@router.get("/{event_id}/attendees", response_model=List[AttendeeResponse])
async def list_attendees(event_id: int, user: dict = Depends(get_current_user)):
    event = load_event(event_id)
    require_org_member(event["org_id"], user)

    rows = execute_raw_sql("""
        SELECT r.user_email AS email, u.name, r.created_at AS registered_at,
               c.id IS NOT NULL AS checked_in, c.created_at AS checked_in_at
        FROM event_registrations r
        LEFT JOIN event_checkins c ON c.event_id = r.event_id AND LOWER(c.user_email) = LOWER(r.user_email)
        LEFT JOIN users u ON LOWER(u.email) = LOWER(r.user_email)
        WHERE r.event_id = :id
        ORDER BY r.created_at ASC
    """, {"id": event_id})
    return [AttendeeResponse(**r) for r in rows]
