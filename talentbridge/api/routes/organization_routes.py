"""
Organization Routes

POST   /organizations - Create organization (creator becomes owner)
GET    /organizations - List organizations (type filter, name search)
GET    /organizations/memberships/me - Organizations the current user belongs to
GET    /organizations/by-slug/{slug} - Get organization by slug
GET    /organizations/{org_id} - Get organization
PATCH  /organizations/{org_id} - Update organization (admin)
GET    /organizations/{org_id}/members - List members
POST   /organizations/{org_id}/members - Add existing user by email (admin)
PATCH  /organizations/{org_id}/members/{user_id} - Change member role (admin)
DELETE /organizations/{org_id}/members/{user_id} - Remove member (admin, or self)
GET    /organizations/{org_id}/employer-profile - Company profile
PUT    /organizations/{org_id}/employer-profile - Upsert company profile (admin)
"""

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import text

from talentbridge.db.postgres import get_db_session, execute_raw_sql, fetch_one
from talentbridge.core.auth import (
    APPLICANT_ACCOUNT_TYPES, get_current_user, require_org_member, require_org_admin, require_org_type
)
from talentbridge.services.activity_service import record_activity
from talentbridge.schemas.schemas import (
    OrganizationCreate, OrganizationUpdate, OrganizationResponse, MemberAdd, MemberRoleUpdate,
    MemberResponse, MembershipResponse, EmployerProfileUpdate, MessageResponse
)

router = APIRouter(prefix="/organizations", tags=["Organizations"])
logger = logging.getLogger(__name__)

ORG_COLUMNS = "id, name, slug, type, plan, seat_limit, created_at, updated_at"
MEMBER_SQL = """
    SELECT m.id, m.user_id, m.org_id, m.role, u.name, u.email, m.created_at
    FROM memberships m JOIN users u ON u.id = m.user_id
"""


def _owner_count(org_id: int) -> int:
    row = fetch_one(
        "SELECT COUNT(*) AS count FROM memberships WHERE org_id = :org_id AND role = 'owner'",
        {"org_id": org_id}
    )
    return int(row["count"]) if row else 0


def _get_member(org_id: int, user_id: int) -> dict:
    member = fetch_one(MEMBER_SQL + " WHERE m.org_id = :org_id AND m.user_id = :uid", {"org_id": org_id, "uid": user_id})
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")
    return member


@router.post("", response_model=OrganizationResponse, status_code=201)
async def create_organization(org: OrganizationCreate, user: dict = Depends(get_current_user)):
    """Create a company or university organization. The creator is added as owner."""
    if user["account_type"] in APPLICANT_ACCOUNT_TYPES:
        raise HTTPException(status_code=403, detail="Students cannot create organizations")

    if fetch_one("SELECT id FROM organizations WHERE slug = :slug", {"slug": org.slug}):
        raise HTTPException(status_code=400, detail="Slug already taken")

    with get_db_session() as db:
        result = db.execute(
            text(f"""
                INSERT INTO organizations (name, slug, type, plan, seat_limit)
                VALUES (:name, :slug, :type, :plan, :seat_limit)
                RETURNING {ORG_COLUMNS}
            """),
            {"name": org.name.strip(), "slug": org.slug, "type": org.type.value,
             "plan": org.plan, "seat_limit": org.seat_limit}
        )
        row = dict(result.fetchone()._mapping)
        db.execute(
            text("INSERT INTO memberships (user_id, org_id, role) VALUES (:uid, :org_id, 'owner')"),
            {"uid": user["user_id"], "org_id": row["id"]}
        )

    record_activity(row["id"], "organization", row["id"], "created", user["user_id"], {"name": row["name"]})
    logger.info("organization_created org_id=%s type=%s", row["id"], row["type"])
    return OrganizationResponse(**row)


@router.get("", response_model=List[OrganizationResponse])
async def list_organizations(
    type: Optional[str] = Query(None, description="company or university"),
    q: Optional[str] = Query(None, description="Search in name"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: dict = Depends(get_current_user)
):
    """List organizations, e.g. universities a student can pick."""
    sql = f"SELECT {ORG_COLUMNS} FROM organizations WHERE 1=1"
    params = {"limit": limit, "offset": offset}
    if type:
        sql += " AND type = :type"
        params["type"] = type
    if q:
        sql += " AND name ILIKE :q"
        params["q"] = f"%{q}%"
    sql += " ORDER BY name LIMIT :limit OFFSET :offset"
    return [OrganizationResponse(**r) for r in execute_raw_sql(sql, params)]


@router.get("/memberships/me", response_model=List[MembershipResponse])
async def my_memberships(user: dict = Depends(get_current_user)):
    rows = execute_raw_sql("""
        SELECT m.id, m.org_id, o.name AS org_name, o.slug AS org_slug, o.type AS org_type, m.role
        FROM memberships m JOIN organizations o ON o.id = m.org_id
        WHERE m.user_id = :uid
        ORDER BY o.name
    """, {"uid": user["user_id"]})
    return [MembershipResponse(**r) for r in rows]


@router.get("/by-slug/{slug}", response_model=OrganizationResponse)
async def get_organization_by_slug(slug: str, user: dict = Depends(get_current_user)):
    row = fetch_one(f"SELECT {ORG_COLUMNS} FROM organizations WHERE slug = :slug", {"slug": slug})
    if not row:
        raise HTTPException(status_code=404, detail="Organization not found")
    return OrganizationResponse(**row)


@router.get("/{org_id}", response_model=OrganizationResponse)
async def get_organization(org_id: int, user: dict = Depends(get_current_user)):
    row = fetch_one(f"SELECT {ORG_COLUMNS} FROM organizations WHERE id = :id", {"id": org_id})
    if not row:
        raise HTTPException(status_code=404, detail="Organization not found")
    return OrganizationResponse(**row)


@router.patch("/{org_id}", response_model=OrganizationResponse)
async def update_organization(org_id: int, update: OrganizationUpdate, user: dict = Depends(get_current_user)):
    require_org_admin(org_id, user)

    fields = update.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No fields to update")

    assignments = ", ".join(f"{k} = :{k}" for k in fields)
    with get_db_session() as db:
        result = db.execute(
            text(f"""
                UPDATE organizations SET {assignments}, updated_at = CURRENT_TIMESTAMP
                WHERE id = :id RETURNING {ORG_COLUMNS}
            """),
            dict(fields, id=org_id)
        )
        row = dict(result.fetchone()._mapping)

    record_activity(org_id, "organization", org_id, "updated", user["user_id"], fields)
    return OrganizationResponse(**row)


# ============================================================
# MEMBERS
# ============================================================

@router.get("/{org_id}/members", response_model=List[MemberResponse])
async def list_members(org_id: int, user: dict = Depends(get_current_user)):
    require_org_member(org_id, user)
    rows = execute_raw_sql(MEMBER_SQL + " WHERE m.org_id = :org_id ORDER BY m.created_at", {"org_id": org_id})
    return [MemberResponse(**r) for r in rows]


@router.post("/{org_id}/members", response_model=MemberResponse, status_code=201)
async def add_member(org_id: int, member: MemberAdd, user: dict = Depends(get_current_user)):
    """Add an existing user to the organization by email."""
    org = require_org_admin(org_id, user)

    target = fetch_one("SELECT id FROM users WHERE LOWER(email) = :email", {"email": member.email.lower()})
    if not target:
        raise HTTPException(status_code=404, detail="No user with that email")

    if fetch_one("SELECT id FROM memberships WHERE org_id = :org_id AND user_id = :uid",
                 {"org_id": org_id, "uid": target["id"]}):
        raise HTTPException(status_code=400, detail="User is already a member")

    if member.role.value == "owner" and org["role"] != "owner":
        raise HTTPException(status_code=403, detail="Only owners can add owners")

    seats = fetch_one("""
        SELECT o.seat_limit, COUNT(m.id) AS used
        FROM organizations o LEFT JOIN memberships m ON m.org_id = o.id
        WHERE o.id = :org_id GROUP BY o.seat_limit
    """, {"org_id": org_id})
    if seats and seats["seat_limit"] and seats["used"] >= seats["seat_limit"]:
        raise HTTPException(status_code=400, detail="Seat limit reached")

    with get_db_session() as db:
        db.execute(
            text("INSERT INTO memberships (user_id, org_id, role) VALUES (:uid, :org_id, :role)"),
            {"uid": target["id"], "org_id": org_id, "role": member.role.value}
        )

    record_activity(org_id, "membership", target["id"], "member_added", user["user_id"], {"role": member.role.value})
    return MemberResponse(**_get_member(org_id, target["id"]))


@router.patch("/{org_id}/members/{member_user_id}", response_model=MemberResponse)
async def change_member_role(
    org_id: int, member_user_id: int, update: MemberRoleUpdate, user: dict = Depends(get_current_user)
):
    org = require_org_admin(org_id, user)
    current = _get_member(org_id, member_user_id)
    new_role = update.role.value

    if "owner" in (new_role, current["role"]) and org["role"] != "owner":
        raise HTTPException(status_code=403, detail="Only owners can grant or revoke ownership")
    if current["role"] == "owner" and new_role != "owner" and _owner_count(org_id) <= 1:
        raise HTTPException(status_code=400, detail="Organization must keep at least one owner")

    with get_db_session() as db:
        db.execute(
            text("UPDATE memberships SET role = :role WHERE org_id = :org_id AND user_id = :uid"),
            {"role": new_role, "org_id": org_id, "uid": member_user_id}
        )

    record_activity(org_id, "membership", member_user_id, "role_changed", user["user_id"],
                    {"from": current["role"], "to": new_role})
    return MemberResponse(**dict(current, role=new_role))


@router.delete("/{org_id}/members/{member_user_id}", response_model=MessageResponse)
async def remove_member(org_id: int, member_user_id: int, user: dict = Depends(get_current_user)):
    """Admins remove anyone; members may remove themselves."""
    if member_user_id == user["user_id"]:
        require_org_member(org_id, user)
    else:
        require_org_admin(org_id, user)

    current = _get_member(org_id, member_user_id)
    if current["role"] == "owner" and _owner_count(org_id) <= 1:
        raise HTTPException(status_code=400, detail="Cannot remove the last owner")

    with get_db_session() as db:
        db.execute(
            text("DELETE FROM memberships WHERE org_id = :org_id AND user_id = :uid"),
            {"org_id": org_id, "uid": member_user_id}
        )

    record_activity(org_id, "membership", member_user_id, "member_removed", user["user_id"])
    return MessageResponse(message="Member removed")


# ============================================================
# EMPLOYER PROFILE
# ============================================================

@router.get("/{org_id}/employer-profile")
async def get_employer_profile(org_id: int, user: dict = Depends(get_current_user)):
    row = fetch_one("""
        SELECT o.id AS org_id, o.name, p.company_url, p.industry, p.locations
        FROM organizations o LEFT JOIN employer_profiles p ON p.org_id = o.id
        WHERE o.id = :org_id AND o.type = 'company'
    """, {"org_id": org_id})
    if not row:
        raise HTTPException(status_code=404, detail="Company not found")
    return row


@router.put("/{org_id}/employer-profile")
async def upsert_employer_profile(org_id: int, profile: EmployerProfileUpdate, user: dict = Depends(get_current_user)):
    org = require_org_admin(org_id, user)
    require_org_type(org, "company")

    with get_db_session() as db:
        db.execute(
            text("""
                INSERT INTO employer_profiles (org_id, company_url, industry, locations)
                VALUES (:org_id, :company_url, :industry, CAST(:locations AS JSONB))
                ON CONFLICT (org_id) DO UPDATE SET
                    company_url = EXCLUDED.company_url,
                    industry = EXCLUDED.industry,
                    locations = EXCLUDED.locations
            """),
            {
                "org_id": org_id, "company_url": profile.company_url, "industry": profile.industry,
                "locations": json.dumps(profile.locations) if profile.locations is not None else None,
            }
        )

    return {"org_id": org_id, "name": org["name"], **profile.model_dump()}
