"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime, date, timezone
from enum import Enum


def utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC; aware values are converted."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ============================================================
# ENUMS
# ============================================================

class AccountType(str, Enum):
    applicant = "applicant"
    employer = "employer"
    university = "university"


class OrgType(str, Enum):
    company = "company"
    university = "university"


class MemberRole(str, Enum):
    owner = "owner"
    admin = "admin"
    recruiter = "recruiter"
    member = "member"


class JobStatus(str, Enum):
    draft = "draft"
    open = "open"
    published = "published"
    closed = "closed"


class JobVisibility(str, Enum):
    public = "public"
    institutions = "institutions"
    both = "both"


class QuestionKind(str, Enum):
    voice = "voice"
    text = "text"


class ApplicationStage(str, Enum):
    applied = "applied"
    interview = "interview"
    offer = "offer"
    hired = "hired"
    rejected = "rejected"


class Portal(str, Enum):
    employer = "employer"
    university = "university"


class InboxTab(str, Enum):
    all = "all"
    unread = "unread"
    starred = "starred"
    archived = "archived"


class EventMedium(str, Enum):
    in_person = "IN_PERSON"
    virtual = "VIRTUAL"
    hybrid = "HYBRID"


class EventStatus(str, Enum):
    draft = "draft"
    published = "published"
    cancelled = "cancelled"


class AuthorizationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=200)
    password: str = Field(..., min_length=8)
    account_type: AccountType = AccountType.applicant

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    account_type: str

class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    account_type: str
    is_active: bool
    created_at: datetime


# ============================================================
# ORGANIZATION SCHEMAS
# ============================================================

class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    slug: str = Field(..., min_length=2, max_length=80, pattern=r"^[a-z0-9][a-z0-9-]*$")
    type: OrgType
    plan: Optional[str] = None
    seat_limit: Optional[int] = Field(None, ge=1)

class OrganizationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    plan: Optional[str] = None
    seat_limit: Optional[int] = Field(None, ge=1)

class OrganizationResponse(BaseModel):
    id: int
    name: str
    slug: str
    type: str
    plan: Optional[str] = None
    seat_limit: Optional[int] = None
    created_at: datetime
    updated_at: datetime

class EmployerProfileUpdate(BaseModel):
    company_url: Optional[str] = None
    industry: Optional[str] = None
    locations: Optional[List[str]] = None

class MemberAdd(BaseModel):
    email: EmailStr
    role: MemberRole = MemberRole.member

class MemberRoleUpdate(BaseModel):
    role: MemberRole

class MemberResponse(BaseModel):
    id: int
    user_id: int
    org_id: int
    role: str
    name: str
    email: str
    created_at: datetime

class MembershipResponse(BaseModel):
    id: int
    org_id: int
    org_name: str
    org_slug: str
    org_type: str
    role: str


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobCreate(BaseModel):
    org_id: int
    title: str = Field(..., min_length=1, max_length=200)
    dept: Optional[str] = None
    location_mode: Optional[str] = None
    location: Optional[str] = None
    salary_range: Optional[str] = None
    description_md: Optional[str] = None
    skills_required: List[str] = []
    status: JobStatus = JobStatus.draft
    visibility: JobVisibility = JobVisibility.public
    university_ids: List[Any] = []

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Job title is required")
        return v.strip()

class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    dept: Optional[str] = None
    location_mode: Optional[str] = None
    location: Optional[str] = None
    salary_range: Optional[str] = None
    description_md: Optional[str] = None
    skills_required: Optional[List[str]] = None
    status: Optional[JobStatus] = None
    visibility: Optional[JobVisibility] = None
    university_ids: Optional[List[Any]] = None

class JobResponse(BaseModel):
    id: int
    org_id: int
    org_name: Optional[str] = None
    title: str
    dept: Optional[str] = None
    location_mode: Optional[str] = None
    location: Optional[str] = None
    salary_range: Optional[str] = None
    description_md: Optional[str] = None
    skills_required: List[str] = []
    status: str
    visibility: str
    university_ids: List[int] = []
    created_at: datetime
    updated_at: datetime

class QuestionCreate(BaseModel):
    prompt: str = Field(..., min_length=1)
    kind: Optional[str] = None
    max_sec: Optional[int] = Field(None, ge=1)
    max_chars: Optional[int] = Field(None, ge=1)
    required: bool = True
    order_index: Optional[int] = None

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Question prompt is required")
        return v.strip()

class QuestionResponse(BaseModel):
    id: int
    job_id: int
    prompt: str
    kind: str
    max_sec: Optional[int] = None
    max_chars: Optional[int] = None
    required: bool
    order_index: Optional[int] = None
    created_at: datetime


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    job_id: int
    applicant_email: Optional[str] = None
    applicant_name: Optional[str] = None
    source: Optional[str] = None
    applicant_university_id: Optional[int] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    location: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    github_url: Optional[str] = None
    work_auth: Optional[str] = None
    need_sponsorship: Optional[bool] = None
    willing_relocate: Optional[bool] = None
    remote_pref: Optional[str] = None
    earliest_start: Optional[str] = None
    salary_expectation: Optional[str] = None
    notice_period_days: Optional[int] = Field(None, ge=0)
    experience_years: Optional[str] = None
    university: Optional[str] = None
    degree: Optional[str] = None
    graduation_year: Optional[int] = Field(None, ge=1950, le=2100)
    gpa: Optional[str] = None
    gpa_scale: Optional[str] = None

class ApplicationCreateResponse(BaseModel):
    id: int
    ok: bool = True
    already_applied: bool = False
    upgraded_legacy: bool = False

class StageUpdate(BaseModel):
    stage: str

class ApplicationResponse(BaseModel):
    id: int
    job_id: int
    job_title: Optional[str] = None
    org_id: Optional[int] = None
    applicant_user_id: Optional[int] = None
    applicant_email: str
    applicant_name: Optional[str] = None
    stage: str
    source: Optional[str] = None
    applicant_university_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

class ActionCreate(BaseModel):
    type: str = Field(..., min_length=1)
    payload: Optional[Dict[str, Any]] = None

class ActionResponse(BaseModel):
    id: int
    application_id: int
    type: str
    payload: Optional[Dict[str, Any]] = None
    created_by: Optional[int] = None
    created_at: datetime

class TextAnswerCreate(BaseModel):
    application_id: int
    question_id: int
    text_answer: str = Field(..., min_length=1)
    duration_sec: int = Field(0, ge=0)

class AnswerResponse(BaseModel):
    id: int
    application_id: int
    question_id: int
    audio_key: Optional[str] = None
    duration_sec: Optional[int] = None
    text_answer: Optional[str] = None
    created_at: datetime

class ResumeUploadResponse(BaseModel):
    success: bool
    message: str
    resume_id: int
    filename: Optional[str] = None
    skills: List[str] = []
    format_score: float = 0.0


# ============================================================
# ATS SCHEMAS
# ============================================================

class RankedCandidate(BaseModel):
    resume_id: int
    application_id: int
    candidate_id: Optional[int] = None
    created_at: Optional[datetime] = None
    score: float
    breakdown: Dict[str, float]
    matched_skills: List[str] = []

class RankResponse(BaseModel):
    ok: bool = True
    job_id: int
    deduped: bool
    resume_id: Optional[int] = None
    candidate_id: Optional[int] = None
    ranked: List[RankedCandidate]


# ============================================================
# INBOX SCHEMAS
# ============================================================

class Counterparty(BaseModel):
    name: str
    type: Optional[str] = None

class Conversation(BaseModel):
    id: str
    title: str
    preview: str
    unread_count: int
    starred: bool
    archived: bool
    labels: List[str]
    last_activity: int
    participants: List[str]
    counterparty: Optional[Counterparty] = None

class ConversationListResponse(BaseModel):
    conversations: List[Conversation]

class InboxMessage(BaseModel):
    id: str
    body: str
    sent_at: int
    mine: bool
    from_name: Optional[str] = None

class MessageListResponse(BaseModel):
    messages: List[InboxMessage]

class MessageCreate(BaseModel):
    text: str = Field(..., min_length=1)
    org_id: Optional[int] = None

class FindOrCreateThread(BaseModel):
    org_id: int
    student_user_id: int
    student_name: Optional[str] = None

class ThreadIdResponse(BaseModel):
    thread_id: int
    created: bool = False

class ThreadFlagsUpdate(BaseModel):
    org_id: Optional[int] = None
    starred: Optional[bool] = None
    archived: Optional[bool] = None
    mark_read: bool = False


# ============================================================
# EVENT SCHEMAS
# ============================================================

class EventCreate(BaseModel):
    org_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = None
    medium: EventMedium = EventMedium.in_person
    tags: List[str] = []
    start_at: datetime
    end_at: Optional[datetime] = None
    featured: bool = False
    is_employer_hosted: Optional[bool] = None
    status: EventStatus = EventStatus.draft
    capacity: Optional[int] = Field(None, ge=1)
    registration_url: Optional[str] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def store_as_utc(cls, v):
        return utc_naive(v)

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_at is not None and self.end_at < self.start_at:
            raise ValueError("end_at must not be before start_at")
        return self

class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = None
    medium: Optional[EventMedium] = None
    tags: Optional[List[str]] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    featured: Optional[bool] = None
    status: Optional[EventStatus] = None
    capacity: Optional[int] = Field(None, ge=1)
    registration_url: Optional[str] = None

    @field_validator("start_at", "end_at")
    @classmethod
    def store_as_utc(cls, v):
        return utc_naive(v)

class EventResponse(BaseModel):
    id: int
    org_id: int
    org_name: Optional[str] = None
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    medium: str
    tags: List[str] = []
    start_at: datetime
    end_at: Optional[datetime] = None
    featured: bool
    is_employer_hosted: bool
    status: str
    capacity: Optional[int] = None
    registration_url: Optional[str] = None
    attendees_count: int = 0
    registrations_count: int = 0
    checkins_count: int = 0
    created_at: datetime

class EventAttendance(BaseModel):
    user_email: EmailStr

class AttendeeResponse(BaseModel):
    email: str
    name: Optional[str] = None
    registered_at: datetime
    checked_in: bool
    checked_in_at: Optional[datetime] = None


# ============================================================
# UNIVERSITY SCHEMAS
# ============================================================

class AuthorizationRequest(BaseModel):
    company_org_id: int

class AuthorizationResponse(BaseModel):
    id: int
    company_org_id: int
    university_org_id: int
    status: str
    created_at: datetime
    updated_at: datetime

class PartnerRequestResponse(BaseModel):
    id: int
    company_org_id: int
    company_name: Optional[str] = None
    industry: Optional[str] = None
    status: str
    created_at: datetime
    jobs_count: int = 0
    events_count: int = 0
    applications_count: int = 0

class UniversityListItem(BaseModel):
    id: int
    name: str
    slug: str
    request_status: Optional[str] = None

class StudentListItem(BaseModel):
    user_id: int
    name: str
    email: str
    grad_year: Optional[int] = None
    program: Optional[str] = None
    headline: Optional[str] = None
    has_resume: bool = False
    applications_count: int = 0

class StudentSummaryResponse(BaseModel):
    total_students: int
    with_resume: int
    with_applications: int
    total_applications: int
    hired: int
    events_attended: int

class UniversityApplicationItem(BaseModel):
    id: int
    job_id: int
    stage: str
    created_at: datetime
    student_user_id: Optional[int] = None
    student_name: Optional[str] = None
    student_email: str
    program: Optional[str] = None
    grad_year: Optional[int] = None
    job_title: Optional[str] = None
    company_name: Optional[str] = None

class StudentApplicationItem(BaseModel):
    id: int
    job_id: int
    stage: str
    created_at: datetime
    job_title: Optional[str] = None
    company_name: Optional[str] = None

class StudentStats(BaseModel):
    total_applications: int = 0
    active_applications: int = 0
    last_application_at: Optional[datetime] = None
    events_registered: int = 0
    events_attended: int = 0
    saved_jobs_count: int = 0

class StudentDetailResponse(BaseModel):
    student: "StudentProfileResponse"
    applications: List[StudentApplicationItem]
    experiences: List["ExperienceResponse"]
    stats: StudentStats

class PartnerSummaryResponse(BaseModel):
    company_org_id: int
    company_name: str
    authorization_id: Optional[int] = None
    status: str = "unknown"
    industry: Optional[str] = None
    company_url: Optional[str] = None
    jobs_count: int = 0
    events_count: int = 0
    applications_count: int = 0
    last_interaction_at: Optional[datetime] = None

class CountBucket(BaseModel):
    label: Optional[str] = None
    count: int

class UniversityAnalyticsResponse(BaseModel):
    total_students: int
    students_with_resume: int
    applications_last_30_days: int
    applications_by_month: List[CountBucket]
    jobs_by_status: List[CountBucket]
    students_by_grad_year: List[CountBucket]
    students_by_program: List[CountBucket]


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentProfileUpdate(BaseModel):
    university_id: Optional[int] = None
    grad_year: Optional[int] = Field(None, ge=1950, le=2100)
    program: Optional[str] = None
    headline: Optional[str] = None
    about: Optional[str] = None
    location_city: Optional[str] = None
    location_country: Optional[str] = None
    website_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    is_public: Optional[bool] = None
    skills: Optional[List[str]] = None
    experience_years: Optional[float] = Field(None, ge=0, le=80)

class StudentProfileResponse(BaseModel):
    user_id: int
    name: str
    email: str
    university_id: Optional[int] = None
    university_name: Optional[str] = None
    grad_year: Optional[int] = None
    program: Optional[str] = None
    headline: Optional[str] = None
    about: Optional[str] = None
    location_city: Optional[str] = None
    location_country: Optional[str] = None
    website_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    resume_url: Optional[str] = None
    is_public: bool = False
    skills: List[str] = []
    experience_years: Optional[float] = None

class ExperienceCreate(BaseModel):
    title: str = Field(..., min_length=1)
    company: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False
    location: Optional[str] = None
    description: Optional[str] = None

    @model_validator(mode="after")
    def dates_in_order(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

class ExperienceResponse(ExperienceCreate):
    id: int
    user_id: int
    created_at: datetime

class SavedJobRequest(BaseModel):
    job_id: int

StudentDetailResponse.model_rebuild()


# ============================================================
# TALENT DIRECTORY SCHEMAS
# ============================================================

class TalentItem(BaseModel):
    id: int
    user_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    program: Optional[str] = None
    headline: Optional[str] = None
    location_city: Optional[str] = None
    location_country: Optional[str] = None
    skills: List[str] = []
    experience_years: Optional[float] = None
    verified: bool = False

class TalentPeriod(BaseModel):
    total: int = 0
    avg_experience: float = 0.0

class TalentPage(BaseModel):
    page: int
    page_size: int
    total: int
    items: List[TalentItem]
    previous_period: TalentPeriod


# ============================================================
# ACTIVITY SCHEMAS
# ============================================================

class ActivityCreate(BaseModel):
    org_id: int
    entity_type: str = Field(..., min_length=1)
    entity_id: int
    action: str = Field(..., min_length=1)
    diff_json: Optional[Dict[str, Any]] = None

    @field_validator("entity_type", "action")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must be a non-empty string")
        return v.strip()

class ActivityResponse(BaseModel):
    id: int
    org_id: int
    actor_user_id: Optional[int] = None
    actor_name: Optional[str] = None
    entity_type: str
    entity_id: int
    action: str
    diff_json: Optional[Dict[str, Any]] = None
    created_at: datetime


# ============================================================
# ANALYTICS SCHEMAS
# ============================================================

class FunnelConversion(BaseModel):
    applicants: int
    interviewed: int
    offers: int
    hired: int
    conversion_percent: float

class SourceCount(BaseModel):
    source: str
    count: int

class SourceRate(BaseModel):
    source: str
    rate: float

class TeamActivity(BaseModel):
    user_id: int
    user_name: str
    count: int

class OverviewSnapshot(BaseModel):
    total_open_jobs: int
    total_applicants_this_month: int
    median_time_to_hire: Optional[float] = None
    offer_acceptance_rate: float
    active_candidates: int
    funnel_conversion: FunnelConversion
    source_breakdown: List[SourceCount]
    team_activity: List[TeamActivity]

class StageCount(BaseModel):
    stage: str
    count: int

class StageDuration(BaseModel):
    stage: str
    avg_days: float

class PipelineFunnel(BaseModel):
    stage_counts: List[StageCount]
    time_in_stage: List[StageDuration]
    bottlenecks: List[StageDuration]

class SourceOfHire(BaseModel):
    applicants_by_source: List[SourceCount]
    interview_rate_by_source: List[SourceRate]
    hire_rate_by_source: List[SourceRate]

class SkillMatch(BaseModel):
    skill: str
    match_percent: float

class JobPerformance(BaseModel):
    job_id: int
    job_title: str
    applicants_count: int
    qualified_applicants_percent: float
    avg_match_score: Optional[float] = None
    time_to_fill: Optional[float] = None
    offer_acceptance: float
    skills_match: List[SkillMatch] = []

class ApplicationsOverTime(BaseModel):
    date: str
    total: int
    by_job: Dict[str, int]

class DashboardStats(BaseModel):
    total_jobs: int
    open_jobs: int
    total_applications: int
    stage_counts: Dict[str, int]
    recent_activity: List[ActivityResponse] = []


# ============================================================
# AI SCHEMAS
# ============================================================

class GenerateJDRequest(BaseModel):
    job_id: int
    prompt: str

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Prompt is required and must be a non-empty string")
        return v.strip()

class JDVersionResponse(BaseModel):
    id: int
    job_id: int
    content_md: str
    created_by: Optional[int] = None
    source: str
    created_at: datetime

class JDVersionCreate(BaseModel):
    content_md: str = Field(..., min_length=1)

class SummarizeRequest(BaseModel):
    application_id: int
    regenerate: bool = False

class AnalysisResponse(BaseModel):
    id: int
    application_id: int
    summary_md: Optional[str] = None
    strengths: List[str] = []
    concerns: List[str] = []
    match_score: Optional[int] = None
    model_meta: Optional[Dict[str, Any]] = None
    created_at: datetime


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
