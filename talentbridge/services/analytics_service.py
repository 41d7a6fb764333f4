"""
Analytics Service - employer and career center dashboard aggregates.

Employer queries are scoped to one organization through jobs.org_id,
university queries through student_profiles.university_id. Counting
and grouping happen in SQL; the small post-processing steps (median,
rates, bottlenecks, per-day grouping) are plain functions so they can be
tested without a database.

Conventions:
- rates are percentages (0-100) and 0 when the denominator is 0
- a NULL application source is reported as "Unknown"
- durations are in days (float)
"""

import logging
from collections import OrderedDict
from datetime import date
from typing import Dict, Iterable, List, Optional

import numpy as np

from talentbridge.db.postgres import execute_raw_sql, fetch_one
from talentbridge.services.activity_service import list_activity
from talentbridge.services.mongo_service import ParsedResumeService

logger = logging.getLogger(__name__)

QUALIFIED_MATCH_SCORE = 60
TEAM_ACTIVITY_LIMIT = 10
BOTTLENECK_LIMIT = 5


# ============================================================
# PURE HELPERS
# ============================================================

def upper_median(values: Iterable[float]) -> Optional[float]:
    """Element at n // 2 of the sorted non-negative values; None when empty."""
    arr = np.array([v for v in values if v is not None and v >= 0], dtype=float)
    if arr.size == 0:
        return None
    return float(np.sort(arr)[arr.size // 2])


def rate(numerator: float, denominator: float) -> float:
    """Percentage, 0 when nothing to divide by."""
    if not denominator:
        return 0.0
    return numerator / denominator * 100


def top_bottlenecks(time_in_stage: List[dict], limit: int = BOTTLENECK_LIMIT) -> List[dict]:
    return sorted(time_in_stage, key=lambda s: s["avg_days"], reverse=True)[:limit]


def team_activity_rows(rows: List[dict]) -> List[dict]:
    return [
        {
            "user_id": r["user_id"],
            "user_name": r.get("user_name") or f"User {r['user_id']}",
            "count": int(r["count"]),
        }
        for r in rows
    ]


def rates_by_source(applicants_by_source: List[dict], hits: Dict[str, int]) -> List[dict]:
    return [
        {"source": r["source"], "rate": rate(hits.get(r["source"], 0), r["count"])}
        for r in applicants_by_source
    ]


def group_by_day(rows: List[dict]) -> List[dict]:
    """
    Rows of (created_at, job_title) -> one entry per day, ascending.

    Each entry: {"date": "YYYY-MM-DD", "total": n, "by_job": {title: n}}
    """
    days: Dict[str, dict] = OrderedDict()
    for r in sorted(rows, key=lambda x: x["created_at"]):
        day = r["created_at"].strftime("%Y-%m-%d")
        bucket = days.setdefault(day, {"date": day, "total": 0, "by_job": {}})
        title = r.get("job_title") or "Unknown"
        bucket["total"] += 1
        bucket["by_job"][title] = bucket["by_job"].get(title, 0) + 1
    return list(days.values())


def skills_match(required: List[str], resume_skills: List[List[str]]) -> List[dict]:
    """Percent of parsed resumes that mention each required skill."""
    skill_sets = [{s.lower() for s in skills} for skills in resume_skills]
    result = []
    for skill in required or []:
        hits = sum(1 for s in skill_sets if skill.lower() in s)
        result.append({"skill": skill, "match_percent": rate(hits, len(skill_sets))})
    return result


# ============================================================
# OVERVIEW
# ============================================================

def _count(sql: str, params: dict) -> int:
    row = fetch_one(sql, params)
    return int(row["count"]) if row and row["count"] is not None else 0


def _action_count(org_id: int, action_type: str) -> int:
    return _count("""
        SELECT COUNT(*) AS count
        FROM actions ac
        JOIN applications a ON a.id = ac.application_id
        JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id AND ac.type = :type
    """, {"org_id": org_id, "type": action_type})


def applicants_by_source(org_id: int) -> List[dict]:
    rows = execute_raw_sql("""
        SELECT COALESCE(a.source, 'Unknown') AS source, COUNT(*) AS count
        FROM applications a
        JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id
        GROUP BY COALESCE(a.source, 'Unknown')
        ORDER BY COUNT(*) DESC
    """, {"org_id": org_id})
    return [{"source": r["source"] or "Unknown", "count": int(r["count"])} for r in rows]


def fetch_overview(org_id: int) -> dict:
    params = {"org_id": org_id}

    open_jobs = _count("""
        SELECT COUNT(*) AS count FROM jobs
        WHERE org_id = :org_id AND (status IN ('open', 'published') OR visibility = 'public')
    """, params)

    applicants_this_month = _count("""
        SELECT COUNT(*) AS count
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id AND a.created_at >= date_trunc('month', CURRENT_TIMESTAMP)
    """, params)

    hire_durations = execute_raw_sql("""
        SELECT EXTRACT(EPOCH FROM (ac.created_at - a.created_at)) / 86400.0 AS days
        FROM actions ac
        JOIN applications a ON a.id = ac.application_id
        JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id AND ac.type = 'offer_accepted'
    """, params)
    offers_accepted = len(hire_durations)
    offers_sent = _action_count(org_id, "offer_sent")

    active = _count("""
        SELECT COUNT(*) AS count
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id AND a.stage NOT IN ('rejected', 'hired')
    """, params)

    total_applicants = _count("""
        SELECT COUNT(*) AS count
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id
    """, params)
    hired = _count("""
        SELECT COUNT(*) AS count
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id AND a.stage = 'hired'
    """, params)

    team = execute_raw_sql("""
        SELECT act.actor_user_id AS user_id, u.name AS user_name, COUNT(*) AS count
        FROM activity act
        LEFT JOIN users u ON u.id = act.actor_user_id
        WHERE act.org_id = :org_id AND act.actor_user_id IS NOT NULL
        GROUP BY act.actor_user_id, u.name
        ORDER BY COUNT(*) DESC
        LIMIT :limit
    """, {"org_id": org_id, "limit": TEAM_ACTIVITY_LIMIT})

    return {
        "total_open_jobs": open_jobs,
        "total_applicants_this_month": applicants_this_month,
        "median_time_to_hire": upper_median(float(r["days"]) for r in hire_durations if r["days"] is not None),
        "offer_acceptance_rate": rate(offers_accepted, offers_sent),
        "active_candidates": active,
        "funnel_conversion": {
            "applicants": total_applicants,
            "interviewed": _action_count(org_id, "interview_completed"),
            "offers": offers_sent,
            "hired": hired,
            "conversion_percent": rate(hired, total_applicants),
        },
        "source_breakdown": applicants_by_source(org_id),
        "team_activity": team_activity_rows(team),
    }


# ============================================================
# PIPELINE / SOURCES
# ============================================================

def fetch_pipeline_funnel(org_id: int) -> dict:
    stage_counts = execute_raw_sql("""
        SELECT a.stage, COUNT(*) AS count
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id
        GROUP BY a.stage
        ORDER BY COUNT(*) DESC
    """, {"org_id": org_id})

    durations = execute_raw_sql("""
        SELECT a.stage, AVG(EXTRACT(EPOCH FROM (a.updated_at - a.created_at)) / 86400.0) AS avg_days
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id AND a.stage <> 'applied'
        GROUP BY a.stage
    """, {"org_id": org_id})

    time_in_stage = [
        {"stage": r["stage"] or "unknown", "avg_days": float(r["avg_days"] or 0)}
        for r in durations
    ]
    return {
        "stage_counts": [{"stage": r["stage"] or "unknown", "count": int(r["count"])} for r in stage_counts],
        "time_in_stage": time_in_stage,
        "bottlenecks": top_bottlenecks(time_in_stage),
    }


def _action_counts_by_source(org_id: int, action_type: str) -> Dict[str, int]:
    rows = execute_raw_sql("""
        SELECT COALESCE(a.source, 'Unknown') AS source, COUNT(*) AS count
        FROM actions ac
        JOIN applications a ON a.id = ac.application_id
        JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id AND ac.type = :type
        GROUP BY COALESCE(a.source, 'Unknown')
    """, {"org_id": org_id, "type": action_type})
    return {r["source"] or "Unknown": int(r["count"]) for r in rows}


def fetch_source_of_hire(org_id: int) -> dict:
    by_source = applicants_by_source(org_id)
    return {
        "applicants_by_source": by_source,
        "interview_rate_by_source": rates_by_source(
            by_source, _action_counts_by_source(org_id, "interview_completed")
        ),
        "hire_rate_by_source": rates_by_source(
            by_source, _action_counts_by_source(org_id, "offer_accepted")
        ),
    }


# ============================================================
# JOB PERFORMANCE
# ============================================================

def fetch_job_performance(org_id: int) -> List[dict]:
    """One row per job, newest job first."""
    jobs = execute_raw_sql("""
        SELECT j.id, j.title, j.skills_required,
            (SELECT COUNT(*) FROM applications a WHERE a.job_id = j.id) AS applicants,
            (SELECT COUNT(*) FROM ai_analyses an JOIN applications a ON a.id = an.application_id
                WHERE a.job_id = j.id AND an.match_score >= :qualified) AS qualified,
            (SELECT AVG(an.match_score) FROM ai_analyses an JOIN applications a ON a.id = an.application_id
                WHERE a.job_id = j.id) AS avg_match,
            (SELECT MIN(ac.created_at) FROM actions ac JOIN applications a ON a.id = ac.application_id
                WHERE a.job_id = j.id AND ac.type = 'offer_accepted') AS first_accept,
            (SELECT COUNT(*) FROM actions ac JOIN applications a ON a.id = ac.application_id
                WHERE a.job_id = j.id AND ac.type = 'offer_sent') AS offers_sent,
            (SELECT COUNT(*) FROM actions ac JOIN applications a ON a.id = ac.application_id
                WHERE a.job_id = j.id AND ac.type = 'offer_accepted') AS offers_accepted,
            j.created_at
        FROM jobs j
        WHERE j.org_id = :org_id
        ORDER BY j.created_at DESC
    """, {"org_id": org_id, "qualified": QUALIFIED_MATCH_SCORE})
    if not jobs:
        return []

    app_rows = execute_raw_sql("""
        SELECT a.id, a.job_id FROM applications a
        JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id
    """, {"org_id": org_id})
    skills_by_app = ParsedResumeService().get_skills_for_applications([r["id"] for r in app_rows])
    skills_by_job: Dict[int, List[List[str]]] = {}
    for r in app_rows:
        if r["id"] in skills_by_app:
            skills_by_job.setdefault(r["job_id"], []).append(skills_by_app[r["id"]])

    performance = []
    for job in jobs:
        applicants = int(job["applicants"])
        time_to_fill = None
        if job["first_accept"] and job["created_at"]:
            time_to_fill = (job["first_accept"] - job["created_at"]).total_seconds() / 86400.0
        performance.append({
            "job_id": job["id"],
            "job_title": job["title"],
            "applicants_count": applicants,
            "qualified_applicants_percent": rate(int(job["qualified"]), applicants),
            "avg_match_score": float(job["avg_match"]) if job["avg_match"] is not None else None,
            "time_to_fill": time_to_fill,
            "offer_acceptance": rate(int(job["offers_accepted"]), int(job["offers_sent"])),
            "skills_match": skills_match(job["skills_required"] or [], skills_by_job.get(job["id"], [])),
        })
    return performance


# ============================================================
# TIME SERIES / DASHBOARD
# ============================================================

def fetch_applications_over_time(org_id: int, months: int = 6) -> List[dict]:
    rows = execute_raw_sql("""
        SELECT a.created_at, j.title AS job_title
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id
          AND a.created_at >= CURRENT_TIMESTAMP - make_interval(months => :months)
        ORDER BY a.created_at
    """, {"org_id": org_id, "months": months})
    return group_by_day(rows)


def fetch_dashboard_stats(org_id: int) -> dict:
    jobs = fetch_one("""
        SELECT COUNT(*) AS total,
               COUNT(*) FILTER (WHERE status IN ('open', 'published')) AS open
        FROM jobs WHERE org_id = :org_id
    """, {"org_id": org_id})
    stages = execute_raw_sql("""
        SELECT a.stage, COUNT(*) AS count
        FROM applications a JOIN jobs j ON j.id = a.job_id
        WHERE j.org_id = :org_id
        GROUP BY a.stage
    """, {"org_id": org_id})

    stage_counts = {r["stage"]: int(r["count"]) for r in stages}
    return {
        "total_jobs": int(jobs["total"] or 0) if jobs else 0,
        "open_jobs": int(jobs["open"] or 0) if jobs else 0,
        "total_applications": sum(stage_counts.values()),
        "stage_counts": stage_counts,
        "recent_activity": list_activity(org_id, limit=10),
    }


# ============================================================
# UNIVERSITY
# ============================================================

UNIVERSITY_MONTHS = 12

STUDENT_APPLICATIONS_FILTER = """
    (a.applicant_university_id = :org_id OR a.applicant_user_id IN (
        SELECT user_id FROM student_profiles WHERE university_id = :org_id
    ))
"""


def month_labels(months: int, today: date) -> List[str]:
    """The last `months` calendar months as YYYY-MM, oldest first, ending with today's month."""
    labels = []
    year, month = today.year, today.month
    for _ in range(months):
        labels.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return labels[::-1]


def fill_months(rows: List[dict], months: int, today: date) -> List[dict]:
    """Month buckets with zero counts for months that had no rows."""
    counts = {r["label"]: int(r["count"]) for r in rows}
    return [{"label": m, "count": counts.get(m, 0)} for m in month_labels(months, today)]


def _buckets(rows: List[dict]) -> List[dict]:
    return [{"label": r["label"], "count": int(r["count"])} for r in rows]


def fetch_university_analytics(org_id: int, today: Optional[date] = None) -> dict:
    """Career center dashboard: its students, their applications and the jobs targeting it."""
    today = today or date.today()
    params = {"org_id": org_id, "months": UNIVERSITY_MONTHS}

    totals = fetch_one(f"""
        SELECT
            (SELECT COUNT(*) FROM student_profiles WHERE university_id = :org_id) AS total_students,
            (SELECT COUNT(*) FROM student_profiles sp
             WHERE sp.university_id = :org_id AND (sp.resume_url IS NOT NULL OR EXISTS (
                 SELECT 1 FROM resumes r JOIN applications a ON a.id = r.application_id
                 WHERE a.applicant_user_id = sp.user_id))) AS students_with_resume,
            (SELECT COUNT(*) FROM applications a
             WHERE {STUDENT_APPLICATIONS_FILTER}
               AND a.created_at >= CURRENT_TIMESTAMP - INTERVAL '30 days') AS applications_last_30_days
    """, params) or {}

    by_month = execute_raw_sql(f"""
        SELECT to_char(date_trunc('month', a.created_at), 'YYYY-MM') AS label, COUNT(*) AS count
        FROM applications a
        WHERE {STUDENT_APPLICATIONS_FILTER}
          AND a.created_at >= date_trunc('month', CURRENT_TIMESTAMP) - make_interval(months => :months - 1)
        GROUP BY 1
        ORDER BY 1
    """, params)

    jobs_by_status = execute_raw_sql("""
        SELECT j.status AS label, COUNT(DISTINCT j.id) AS count
        FROM jobs j JOIN job_universities ju ON ju.job_id = j.id
        WHERE ju.university_org_id = :org_id AND j.visibility IN ('institutions', 'both')
        GROUP BY j.status
        ORDER BY count DESC
    """, params)

    by_grad_year = execute_raw_sql("""
        SELECT CAST(grad_year AS TEXT) AS label, COUNT(*) AS count
        FROM student_profiles WHERE university_id = :org_id
        GROUP BY grad_year
        ORDER BY grad_year NULLS LAST
    """, params)

    by_program = execute_raw_sql("""
        SELECT program AS label, COUNT(*) AS count
        FROM student_profiles WHERE university_id = :org_id
        GROUP BY program
        ORDER BY count DESC, program
    """, params)

    return {
        "total_students": int(totals.get("total_students") or 0),
        "students_with_resume": int(totals.get("students_with_resume") or 0),
        "applications_last_30_days": int(totals.get("applications_last_30_days") or 0),
        "applications_by_month": fill_months(by_month, UNIVERSITY_MONTHS, today),
        "jobs_by_status": _buckets(jobs_by_status),
        "students_by_grad_year": _buckets(by_grad_year),
        "students_by_program": _buckets(by_program),
    }
