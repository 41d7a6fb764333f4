"""
Inbox Service - threads and messages shared by three portals.

Portals:
- employer:   company org members talking to candidates
- university: career center staff talking to students
- student:    the counterparty side of either of the above

A thread belongs to one org + portal and has at most one student
counterparty. `unread_count` counts messages the org side has not read:
org replies reset it, student replies bump it.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import HTTPException
from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, execute_raw_sql, fetch_one

logger = logging.getLogger(__name__)

CANDIDATE_LABEL = "candidate"
PORTAL_LABELS = {"employer": "Employer", "university": "Career center"}
PORTAL_FALLBACK_NAMES = {"employer": "Employer", "university": "Career center"}

THREAD_COLUMNS = """
    t.id, t.org_id, t.portal, t.subject, t.counterparty_user_id, t.counterparty_type,
    t.counterparty_name, t.labels, t.unread_count, t.starred, t.archived,
    t.last_message_at, t.last_message_snippet, t.created_at
"""


# ============================================================
# MAPPING HELPERS
# ============================================================

def to_millis(value: Optional[datetime]) -> int:
    """Epoch milliseconds; naive database timestamps are UTC."""
    if value is None:
        value = datetime.now(timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def org_conversation(row: dict) -> dict:
    """Shape a thread row for the employer / university inbox list."""
    base_name = row.get("counterparty_name") or row.get("subject") or "Conversation"
    is_candidate = row.get("counterparty_type") == CANDIDATE_LABEL
    title = f"Candidate · {base_name}" if is_candidate else base_name

    labels = list(row.get("labels") or [])
    if is_candidate and CANDIDATE_LABEL not in labels:
        labels.append(CANDIDATE_LABEL)

    counterparty = None
    if row.get("counterparty_name"):
        counterparty = {"name": row["counterparty_name"], "type": row.get("counterparty_type")}

    return {
        "id": str(row["id"]),
        "title": title,
        "preview": row.get("last_message_snippet") or "",
        "unread_count": row.get("unread_count") or 0,
        "starred": bool(row.get("starred")),
        "archived": bool(row.get("archived")),
        "labels": labels,
        "last_activity": to_millis(row.get("last_message_at") or row.get("created_at")),
        "participants": [row["counterparty_name"]] if row.get("counterparty_name") else [],
        "counterparty": counterparty,
    }


def student_conversation(row: dict) -> dict:
    """
    Shape a thread row for the student inbox.

    The title is the org name; the portal label comes first and internal
    labels ("candidate", "org:*") are hidden from the student.
    """
    portal = row.get("portal")
    name = row.get("org_name") or PORTAL_FALLBACK_NAMES.get(portal, "Contact")
    labels = [PORTAL_LABELS.get(portal, "Contact")]
    for raw in row.get("labels") or []:
        if not raw:
            continue
        lower = raw.lower()
        if lower == CANDIDATE_LABEL or lower.startswith("org:"):
            continue
        if raw not in labels:
            labels.append(raw)

    return {
        "id": str(row["id"]),
        "title": name,
        "preview": row.get("last_message_snippet") or "",
        "unread_count": row.get("unread_count") or 0,
        "starred": bool(row.get("starred")),
        "archived": bool(row.get("archived")),
        "labels": labels,
        "last_activity": to_millis(row.get("last_message_at") or row.get("created_at")),
        "participants": [name],
        "counterparty": None,
    }


def message_view(row: dict, viewer_role: str) -> dict:
    return {
        "id": str(row["id"]),
        "body": row["body"],
        "sent_at": to_millis(row.get("created_at")),
        "mine": row.get("from_role") == viewer_role,
        "from_name": row.get("from_name"),
    }


def tab_conditions(tab: str) -> List[str]:
    """SQL conditions for an inbox tab; "all" hides archived threads."""
    if tab == "unread":
        return ["t.unread_count > 0", "t.archived = FALSE"]
    if tab == "starred":
        return ["t.starred = TRUE", "t.archived = FALSE"]
    if tab == "archived":
        return ["t.archived = TRUE"]
    return ["t.archived = FALSE"]


# ============================================================
# QUERIES
# ============================================================

def list_org_threads(org_id: int, portal: str, tab: str = "all", q: str = "") -> List[dict]:
    conditions = ["t.org_id = :org_id", "t.portal = :portal"] + tab_conditions(tab)
    params = {"org_id": org_id, "portal": portal}
    if q:
        conditions.append(
            "(t.subject ILIKE :q OR t.counterparty_name ILIKE :q OR t.last_message_snippet ILIKE :q)"
        )
        params["q"] = f"%{q}%"

    rows = execute_raw_sql(f"""
        SELECT {THREAD_COLUMNS}
        FROM inbox_threads t
        WHERE {' AND '.join(conditions)}
        ORDER BY t.last_message_at DESC NULLS LAST, t.created_at DESC
    """, params)
    return [org_conversation(r) for r in rows]


def list_student_threads(user_id: int, tab: str = "all", q: str = "") -> List[dict]:
    conditions = ["t.counterparty_user_id = :uid"] + tab_conditions(tab)
    params = {"uid": user_id}
    if q:
        conditions.append("(t.subject ILIKE :q OR o.name ILIKE :q)")
        params["q"] = f"%{q}%"

    rows = execute_raw_sql(f"""
        SELECT {THREAD_COLUMNS}, o.name AS org_name
        FROM inbox_threads t
        LEFT JOIN organizations o ON o.id = t.org_id
        WHERE {' AND '.join(conditions)}
        ORDER BY t.last_message_at DESC NULLS LAST, t.created_at DESC
    """, params)
    return [student_conversation(r) for r in rows]


def get_thread(thread_id: int) -> dict:
    thread = fetch_one(
        f"SELECT {THREAD_COLUMNS} FROM inbox_threads t WHERE t.id = :id",
        {"id": thread_id}
    )
    if not thread:
        raise HTTPException(status_code=404, detail="Thread not found")
    return thread


def get_org_thread(thread_id: int, org_id: int, portal: str) -> dict:
    """Thread lookup scoped to an org inbox; other orgs' threads look missing."""
    thread = get_thread(thread_id)
    if thread["org_id"] != org_id or thread["portal"] != portal:
        raise HTTPException(status_code=404, detail="Thread not found")
    return thread


def get_student_thread(thread_id: int, user_id: int) -> dict:
    thread = get_thread(thread_id)
    if thread["counterparty_user_id"] != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return thread


def list_messages(thread_id: int, viewer_role: str) -> List[dict]:
    rows = execute_raw_sql("""
        SELECT id, body, from_role, from_name, created_at
        FROM inbox_messages
        WHERE thread_id = :tid
        ORDER BY created_at ASC, id ASC
    """, {"tid": thread_id})
    return [message_view(r, viewer_role) for r in rows]


def post_message(
    thread: dict,
    body: str,
    from_role: str,
    from_user_id: Optional[int],
    from_name: Optional[str] = None,
) -> dict:
    """
    Append a message and refresh the thread preview.

    Org-side replies mark the thread read; student replies add one unread.
    """
    from_org_side = from_role != CANDIDATE_LABEL
    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO inbox_messages (thread_id, org_id, body, from_role, from_user_id,
                    from_name, direction, is_internal_note)
                VALUES (:tid, :org_id, :body, :from_role, :from_user_id, :from_name, 'outgoing', FALSE)
                RETURNING id, created_at
            """),
            {
                "tid": thread["id"], "org_id": thread["org_id"], "body": body,
                "from_role": from_role, "from_user_id": from_user_id, "from_name": from_name,
            }
        )
        message_id, created_at = result.fetchone()

        unread_sql = "0" if from_org_side else "unread_count + 1"
        db.execute(
            text(f"""
                UPDATE inbox_threads
                SET last_message_at = :now, last_message_snippet = :snippet,
                    unread_count = {unread_sql}, updated_at = :now
                WHERE id = :tid
            """),
            {"now": created_at, "snippet": body[:280], "tid": thread["id"]}
        )

    return {
        "id": str(message_id),
        "body": body,
        "sent_at": to_millis(created_at),
        "mine": True,
        "from_name": from_name,
    }


def find_or_create_thread(
    org_id: int,
    portal: str,
    student_user_id: int,
    student_name: Optional[str] = None,
) -> dict:
    """Return the org's thread with a student, creating it on first contact."""
    existing = fetch_one("""
        SELECT id FROM inbox_threads
        WHERE org_id = :org_id AND portal = :portal AND counterparty_user_id = :uid
        ORDER BY id LIMIT 1
    """, {"org_id": org_id, "portal": portal, "uid": student_user_id})
    if existing:
        return {"thread_id": existing["id"], "created": False}

    nice_name = student_name or "Candidate"
    with get_db_session() as db:
        result = db.execute(
            text("""
                INSERT INTO inbox_threads (org_id, portal, subject, counterparty_user_id,
                    counterparty_type, counterparty_name, unread_count, labels)
                VALUES (:org_id, :portal, :subject, :uid, 'candidate', :name, 0, ARRAY['candidate'])
                RETURNING id
            """),
            {
                "org_id": org_id, "portal": portal, "subject": f"Candidate · {nice_name}",
                "uid": student_user_id, "name": student_name,
            }
        )
        thread_id = result.fetchone()[0]

    logger.info("inbox_thread_created org_id=%s portal=%s thread_id=%s", org_id, portal, thread_id)
    return {"thread_id": thread_id, "created": True}


def update_flags(thread_id: int, starred: Optional[bool], archived: Optional[bool], mark_read: bool) -> None:
    updates = []
    params = {"tid": thread_id}
    if starred is not None:
        updates.append("starred = :starred")
        params["starred"] = starred
    if archived is not None:
        updates.append("archived = :archived")
        params["archived"] = archived
    if mark_read:
        updates.append("unread_count = 0")

    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")

    with get_db_session() as db:
        db.execute(
            text(f"UPDATE inbox_threads SET {', '.join(updates)}, updated_at = CURRENT_TIMESTAMP WHERE id = :tid"),
            params
        )
