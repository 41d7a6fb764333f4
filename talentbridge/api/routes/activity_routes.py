"""
Activity Routes

POST /activity - Record an activity row
GET  /activity - Organization activity feed (entity filter), newest first
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from talentbridge.core.auth import get_current_user, require_org_member
from talentbridge.services.activity_service import record_activity, get_activity, list_activity
from talentbridge.schemas.schemas import ActivityCreate, ActivityResponse

router = APIRouter(prefix="/activity", tags=["Activity"])


@router.post("", response_model=ActivityResponse, status_code=201)
async def create_activity(activity: ActivityCreate, user: dict = Depends(get_current_user)):
    require_org_member(activity.org_id, user)
    activity_id = record_activity(
        activity.org_id, activity.entity_type, activity.entity_id, activity.action,
        user["user_id"], activity.diff_json,
    )
    if activity_id is None:
        raise HTTPException(status_code=500, detail="Failed to record activity")

    return ActivityResponse(**get_activity(activity_id))


@router.get("", response_model=List[ActivityResponse])
async def list_org_activity(
    org_id: int = Query(...),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[int] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    require_org_member(org_id, user)
    return [ActivityResponse(**r) for r in list_activity(org_id, entity_type, entity_id, limit)]
