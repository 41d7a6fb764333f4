"""
Activity Service - append-only audit rows that feed dashboard timelines.

Writes are best-effort: a failed insert is logged and never breaks the
request that triggered it.
"""

import json
import logging
from typing import Optional

from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, execute_raw_sql, fetch_one

logger = logging.getLogger(__name__)

ACTIVITY_COLUMNS = """
    a.id, a.org_id, a.actor_user_id, u.name AS actor_name, a.entity_type,
    a.entity_id, a.action, a.diff_json, a.created_at
"""


def record_activity(
    org_id: int,
    entity_type: str,
    entity_id: int,
    action: str,
    actor_user_id: Optional[int] = None,
    diff: Optional[dict] = None,
) -> Optional[int]:
    """Insert one activity row in its own transaction. Returns the id, or None on failure."""
    try:
        with get_db_session() as db:
            result = db.execute(
                text("""
                    INSERT INTO activity (org_id, actor_user_id, entity_type, entity_id, action, diff_json)
                    VALUES (:org_id, :actor, :entity_type, :entity_id, :action, CAST(:diff AS JSONB))
                    RETURNING id
                """),
                {
                    "org_id": org_id, "actor": actor_user_id, "entity_type": entity_type,
                    "entity_id": entity_id, "action": action,
                    "diff": json.dumps(diff, default=str) if diff is not None else None,
                }
            )
            return result.fetchone()[0]
    except Exception:
        logger.exception(
            "activity_write_failed org_id=%s entity=%s:%s action=%s",
            org_id, entity_type, entity_id, action,
        )
        return None


def get_activity(activity_id: int) -> Optional[dict]:
    return fetch_one(f"""
        SELECT {ACTIVITY_COLUMNS}
        FROM activity a
        LEFT JOIN users u ON u.id = a.actor_user_id
        WHERE a.id = :id
    """, {"id": activity_id})


def list_activity(
    org_id: int,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    limit: int = 50,
) -> list:
    """Newest-first activity for an org, with the actor's display name."""
    sql = f"""
        SELECT {ACTIVITY_COLUMNS}
        FROM activity a
        LEFT JOIN users u ON u.id = a.actor_user_id
        WHERE a.org_id = :org_id
    """
    params = {"org_id": org_id, "limit": limit}
    if entity_type:
        sql += " AND a.entity_type = :entity_type"
        params["entity_type"] = entity_type
    if entity_id is not None:
        sql += " AND a.entity_id = :entity_id"
        params["entity_id"] = entity_id
    sql += " ORDER BY a.created_at DESC, a.id DESC LIMIT :limit"
    return execute_raw_sql(sql, params)
