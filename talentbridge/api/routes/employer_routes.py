"""
Employer Routes

GET  /employer/universities - Universities with this company's request status
POST /employer/universities/{university_id}/request - Request access to a university
"""

import logging
from typing import List

from fastapi import APIRouter, HTTPException, Depends, Query, Response
from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, execute_raw_sql, fetch_one
from talentbridge.core.auth import get_current_user, require_org_member, require_org_type
from talentbridge.services.activity_service import record_activity
from talentbridge.schemas.schemas import AuthorizationRequest, AuthorizationResponse, UniversityListItem

router = APIRouter(prefix="/employer", tags=["Employer"])
logger = logging.getLogger(__name__)

AUTHORIZATION_COLUMNS = "id, company_org_id, university_org_id, status, created_at, updated_at"


@router.get("/universities", response_model=List[UniversityListItem])
async def list_universities(org_id: int = Query(..., description="Company organization"),
                            user: dict = Depends(get_current_user)):
    require_org_type(require_org_member(org_id, user), "company")
    rows = execute_raw_sql("""
        SELECT o.id, o.name, o.slug, ua.status AS request_status
        FROM organizations o
        LEFT JOIN university_authorizations ua
            ON ua.university_org_id = o.id AND ua.company_org_id = :org_id
        WHERE o.type = 'university'
        ORDER BY o.name ASC
    """, {"org_id": org_id})
    return [UniversityListItem(**r) for r in rows]


@router.post("/universities/{university_id}/request", response_model=AuthorizationResponse, status_code=201)
async def request_access(
    university_id: int,
    request: AuthorizationRequest,
    response: Response,
    user: dict = Depends(get_current_user)
):
    """Ask a university for access. Repeating the request returns the existing one with 200."""
    require_org_type(require_org_member(request.company_org_id, user), "company")

    university = fetch_one(
        "SELECT id FROM organizations WHERE id = :id AND type = 'university'", {"id": university_id}
    )
    if not university:
        raise HTTPException(status_code=404, detail="University not found")

    existing = fetch_one(
        f"""
        SELECT {AUTHORIZATION_COLUMNS} FROM university_authorizations
        WHERE company_org_id = :company_id AND university_org_id = :uni_id
        """,
        {"company_id": request.company_org_id, "uni_id": university_id}
    )
    if existing:
        response.status_code = 200
        return AuthorizationResponse(**existing)

    with get_db_session() as db:
        result = db.execute(
            text(f"""
                INSERT INTO university_authorizations (company_org_id, university_org_id, status)
                VALUES (:company_id, :uni_id, 'pending')
                RETURNING {AUTHORIZATION_COLUMNS}
            """),
            {"company_id": request.company_org_id, "uni_id": university_id}
        )
        row = dict(result.fetchone()._mapping)

    record_activity(university_id, "university_authorization", row["id"], "requested", user["user_id"],
                    {"company_org_id": request.company_org_id})
    logger.info("authorization_requested company_org_id=%s university_org_id=%s",
                request.company_org_id, university_id)
    return AuthorizationResponse(**row)
