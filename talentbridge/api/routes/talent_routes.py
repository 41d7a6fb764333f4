"""
Talent Directory Routes

GET /talent - Search students who made their profile public
              (q, city, country, program, min_exp, page, page_size)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from talentbridge.db.postgres import execute_raw_sql, fetch_one
from talentbridge.core.auth import get_current_user
from talentbridge.schemas.schemas import TalentItem, TalentPage, TalentPeriod

router = APIRouter(prefix="/talent", tags=["Talent"])

# Free-text search covers the user's name and email plus profile text and skills
SEARCH_CLAUSE = """
    (u.name ILIKE :q OR u.email ILIKE :q OR sp.program ILIKE :q OR sp.headline ILIKE :q
     OR sp.location_city ILIKE :q OR sp.location_country ILIKE :q
     OR array_to_string(sp.skills, ' ') ILIKE :q)
"""


def build_filters(q: str, city: str, country: str, program: str, min_exp: float):
    clauses = ["sp.is_public"]
    params = {}
    if q:
        clauses.append(SEARCH_CLAUSE)
        params["q"] = f"%{q}%"
    for column, value in (("location_city", city), ("location_country", country), ("program", program)):
        if value:
            clauses.append(f"sp.{column} ILIKE :{column}")
            params[column] = f"%{value}%"
    if min_exp > 0:
        clauses.append("sp.experience_years >= :min_exp")
        params["min_exp"] = min_exp
    return " AND ".join(clauses), params


@router.get("", response_model=TalentPage)
async def search_talent(
    q: str = Query(""),
    city: str = Query(""),
    country: str = Query(""),
    program: str = Query(""),
    min_exp: float = Query(0, ge=0, description="Minimum years of experience"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=50),
    user: dict = Depends(get_current_user)
):
    """
    Newest profiles first. previous_period describes the public profiles
    that already existed 30 days ago, for trend cards.
    """
    where, params = build_filters(q.strip(), city.strip(), country.strip(), program.strip(), min_exp)
    base = f"FROM student_profiles sp JOIN users u ON u.id = sp.user_id WHERE {where}"

    rows = execute_raw_sql(f"""
        SELECT sp.id, sp.user_id, u.name, u.email, sp.program, sp.headline, sp.location_city,
               sp.location_country, COALESCE(sp.skills, '{{}}') AS skills, sp.experience_years,
               COALESCE(sp.verified, FALSE) AS verified
        {base}
        ORDER BY sp.created_at DESC, sp.id DESC
        LIMIT :limit OFFSET :offset
    """, dict(params, limit=page_size, offset=(page - 1) * page_size))
    total = fetch_one(f"SELECT COUNT(*) AS total {base}", params) or {}

    previous = fetch_one("""
        SELECT COUNT(*) AS total, AVG(COALESCE(experience_years, 0)) AS avg_experience
        FROM student_profiles
        WHERE is_public AND created_at <= CURRENT_TIMESTAMP - INTERVAL '30 days'
    """) or {}

    items = []
    for r in rows:
        if r["experience_years"] is not None:
            r["experience_years"] = float(r["experience_years"])
        items.append(TalentItem(**r))

    return TalentPage(
        page=page,
        page_size=page_size,
        total=int(total.get("total") or 0),
        items=items,
        previous_period=TalentPeriod(
            total=int(previous.get("total") or 0),
            avg_experience=round(float(previous.get("avg_experience") or 0), 2),
        ),
    )
