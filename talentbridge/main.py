"""
TalentBridge - Main Application

FastAPI backend with:
- PostgreSQL for organizations, jobs, applications, inbox, events and activity
- MongoDB for resume documents and GridFS uploads (resumes, voice answers)
- OpenAI-compatible AI (DeepSeek by default) for job descriptions and summaries
- JWT authentication

Run: uvicorn talentbridge.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from talentbridge import __version__
from talentbridge.api import api_router
from talentbridge.core.config import get_settings
from talentbridge.core.logging_config import configure_logging
from talentbridge.db.mongodb import init_mongo_indexes, test_mongo_connection
from talentbridge.db.postgres import test_postgres_connection

settings = get_settings()
configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="TalentBridge",
    description="""
    Multi-tenant recruiting platform connecting employers, university career centers and students.

    ## Features
    - **Organizations**: Company and university tenants with member roles
    - **Jobs**: Postings with public / institution-targeted visibility and screening questions
    - **Applications**: Stage pipeline, voice and text answers, resume parsing
    - **ATS**: Resume ranking against a job
    - **Inbox**: Threads between organizations and students
    - **Events**: Registration and check-in
    - **Analytics**: Employer and career center dashboards
    - **AI**: Job description drafting and applicant summaries
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
    except Exception as e:
        logger.warning("MongoDB index initialization failed: %s", e)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "TalentBridge", "version": __version__}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "postgres": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
