"""
Job Visibility Service

A job's `visibility` decides who can see it:
- public:        everyone browsing open jobs
- institutions:  only students of the universities mapped in job_universities
- both:          everyone, and also featured on the mapped universities' boards

University boards only list jobs that explicitly target them
(`institutions` or `both` plus a mapping row). Pure functions here, the
routes load rows and mappings and filter in memory.
"""

from typing import Dict, Iterable, List, Optional, Set

OPEN_STATUSES = {"open", "published"}
TARGETED_VISIBILITIES = {"institutions", "both"}
PUBLIC_VISIBILITIES = {"public", "both"}


def parse_university_ids(raw_ids: Iterable) -> List[int]:
    """
    Coerce submitted university ids to ints.

    Entries that are not integers are dropped; duplicates keep first position.
    """
    seen: Set[int] = set()
    ids: List[int] = []
    for raw in raw_ids or []:
        if isinstance(raw, bool):
            continue
        try:
            value = int(str(raw).strip())
        except (TypeError, ValueError):
            continue
        if value not in seen:
            seen.add(value)
            ids.append(value)
    return ids


def build_mapping_index(mappings: Iterable[dict]) -> Dict[int, Set[int]]:
    """job_id -> set of targeted university org ids."""
    index: Dict[int, Set[int]] = {}
    for m in mappings:
        index.setdefault(m["job_id"], set()).add(m["university_org_id"])
    return index


def is_open(job: dict) -> bool:
    return (job.get("status") or "") in OPEN_STATUSES


def is_targeted_at(job: dict, university_id: int, mapping_index: Dict[int, Set[int]]) -> bool:
    """True when the job targets the university (visibility + mapping row)."""
    if job.get("visibility") not in TARGETED_VISIBILITIES:
        return False
    return university_id in mapping_index.get(job["id"], set())


def is_visible_to_student(
    job: dict,
    university_id: Optional[int],
    mapping_index: Dict[int, Set[int]],
) -> bool:
    """Student feed rule: open, and either publicly listed or targeted at the student's university."""
    if not is_open(job):
        return False
    if job.get("visibility", "public") in PUBLIC_VISIBILITIES:
        return True
    if university_id is None:
        return False
    return is_targeted_at(job, university_id, mapping_index)


def filter_for_university(
    jobs: List[dict],
    university_id: int,
    mapping_index: Dict[int, Set[int]],
    limit: int,
    offset: int = 0,
) -> List[dict]:
    """Jobs targeted at a university, paginated after filtering (input order kept)."""
    matched = [j for j in jobs if is_targeted_at(j, university_id, mapping_index)]
    return matched[offset:offset + limit]


def filter_for_student(
    jobs: List[dict],
    university_id: Optional[int],
    mapping_index: Dict[int, Set[int]],
) -> List[dict]:
    return [j for j in jobs if is_visible_to_student(j, university_id, mapping_index)]
