"""
Analytics Routes (employer dashboard)

GET /analytics/overview?org_id= - Snapshot KPIs
GET /analytics/pipeline?org_id= - Stage counts, time in stage, bottlenecks
GET /analytics/sources?org_id= - Source of hire
GET /analytics/jobs?org_id= - Per-job performance
GET /analytics/over-time?org_id=&months= - Applications per day
GET /analytics/dashboard?org_id= - Totals and recent activity
"""

from typing import List

from fastapi import APIRouter, Depends, Query

from talentbridge.core.auth import get_current_user, require_org_member, require_org_type
from talentbridge.services import analytics_service
from talentbridge.schemas.schemas import (
    OverviewSnapshot, PipelineFunnel, SourceOfHire, JobPerformance,
    ApplicationsOverTime, DashboardStats
)

router = APIRouter(prefix="/analytics", tags=["Analytics"])


def require_company(org_id: int, user: dict) -> dict:
    return require_org_type(require_org_member(org_id, user), "company")


@router.get("/overview", response_model=OverviewSnapshot)
async def overview(org_id: int = Query(...), user: dict = Depends(get_current_user)):
    require_company(org_id, user)
    return OverviewSnapshot(**analytics_service.fetch_overview(org_id))


@router.get("/pipeline", response_model=PipelineFunnel)
async def pipeline(org_id: int = Query(...), user: dict = Depends(get_current_user)):
    require_company(org_id, user)
    return PipelineFunnel(**analytics_service.fetch_pipeline_funnel(org_id))


@router.get("/sources", response_model=SourceOfHire)
async def sources(org_id: int = Query(...), user: dict = Depends(get_current_user)):
    require_company(org_id, user)
    return SourceOfHire(**analytics_service.fetch_source_of_hire(org_id))


@router.get("/jobs", response_model=List[JobPerformance])
async def job_performance(org_id: int = Query(...), user: dict = Depends(get_current_user)):
    require_company(org_id, user)
    return [JobPerformance(**j) for j in analytics_service.fetch_job_performance(org_id)]


@router.get("/over-time", response_model=List[ApplicationsOverTime])
async def applications_over_time(
    org_id: int = Query(...),
    months: int = Query(6, ge=1, le=24),
    user: dict = Depends(get_current_user)
):
    require_company(org_id, user)
    return [ApplicationsOverTime(**d) for d in analytics_service.fetch_applications_over_time(org_id, months)]


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(org_id: int = Query(...), user: dict = Depends(get_current_user)):
    require_org_member(org_id, user)
    return DashboardStats(**analytics_service.fetch_dashboard_stats(org_id))
