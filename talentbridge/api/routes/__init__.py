"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from talentbridge.api.routes.auth_routes import router as auth_router
from talentbridge.api.routes.organization_routes import router as organization_router
from talentbridge.api.routes.job_routes import router as job_router
from talentbridge.api.routes.application_routes import router as application_router
from talentbridge.api.routes.answer_routes import router as answer_router
from talentbridge.api.routes.ats_routes import router as ats_router
from talentbridge.api.routes.inbox_routes import router as inbox_router
from talentbridge.api.routes.event_routes import router as event_router
from talentbridge.api.routes.employer_routes import router as employer_router
from talentbridge.api.routes.university_routes import router as university_router
from talentbridge.api.routes.student_routes import router as student_router
from talentbridge.api.routes.talent_routes import router as talent_router
from talentbridge.api.routes.activity_routes import router as activity_router
from talentbridge.api.routes.analytics_routes import router as analytics_router
from talentbridge.api.routes.ai_routes import router as ai_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(organization_router)
api_router.include_router(job_router)
api_router.include_router(application_router)
api_router.include_router(answer_router)
api_router.include_router(ats_router)
api_router.include_router(inbox_router)
api_router.include_router(event_router)
api_router.include_router(employer_router)
api_router.include_router(university_router)
api_router.include_router(student_router)
api_router.include_router(talent_router)
api_router.include_router(activity_router)
api_router.include_router(analytics_router)
api_router.include_router(ai_router)
