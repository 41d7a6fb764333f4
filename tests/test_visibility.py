"""
Unit tests for job visibility rules.
"""

import pytest

from talentbridge.services import visibility


def job(job_id: int, visibility_value: str = "public", status: str = "open") -> dict:
    return {"id": job_id, "visibility": visibility_value, "status": status}


@pytest.fixture
def mapping_index() -> dict:
    """Job 2 targets university 20, job 3 targets 20 and 21."""
    return visibility.build_mapping_index([
        {"job_id": 2, "university_org_id": 20},
        {"job_id": 3, "university_org_id": 20},
        {"job_id": 3, "university_org_id": 21},
    ])


class TestParseUniversityIds:
    """Tests for coercing submitted university ids."""

    def test_keeps_integers_in_order(self):
        """Should coerce numeric strings and keep submission order."""
        assert visibility.parse_university_ids(["21", 20, " 22 "]) == [21, 20, 22]

    def test_drops_invalid_entries(self):
        """Should drop non-numeric values, booleans and None."""
        assert visibility.parse_university_ids(["abc", None, True, 5, "7.5"]) == [5]

    def test_drops_duplicates(self):
        """Should keep the first occurrence of a repeated id."""
        assert visibility.parse_university_ids([3, "3", 4, 3]) == [3, 4]

    def test_empty_input(self):
        """Should accept None and empty lists."""
        assert visibility.parse_university_ids(None) == []
        assert visibility.parse_university_ids([]) == []


class TestStudentVisibility:
    """Tests for the student job feed rule."""

    def test_public_job_visible_without_university(self, mapping_index):
        assert visibility.is_visible_to_student(job(1, "public"), None, mapping_index)

    def test_both_counts_as_public(self, mapping_index):
        """A 'both' job is visible to students of any (or no) university."""
        assert visibility.is_visible_to_student(job(3, "both"), None, mapping_index)
        assert visibility.is_visible_to_student(job(3, "both"), 99, mapping_index)

    def test_institutions_job_needs_mapping(self, mapping_index):
        """Should only show institution jobs to students of a mapped university."""
        assert visibility.is_visible_to_student(job(2, "institutions"), 20, mapping_index)
        assert not visibility.is_visible_to_student(job(2, "institutions"), 21, mapping_index)
        assert not visibility.is_visible_to_student(job(2, "institutions"), None, mapping_index)

    def test_closed_and_draft_jobs_hidden(self, mapping_index):
        assert not visibility.is_visible_to_student(job(1, "public", "closed"), None, mapping_index)
        assert not visibility.is_visible_to_student(job(1, "public", "draft"), None, mapping_index)

    def test_published_counts_as_open(self, mapping_index):
        assert visibility.is_visible_to_student(job(1, "public", "published"), None, mapping_index)

    def test_filter_for_student(self, mapping_index):
        jobs = [job(1, "public"), job(2, "institutions"), job(3, "institutions"), job(4, "public", "closed")]
        visible = visibility.filter_for_student(jobs, 21, mapping_index)
        assert [j["id"] for j in visible] == [1, 3]


class TestUniversityBoard:
    """Tests for jobs targeted at a university."""

    def test_public_job_not_targeted(self, mapping_index):
        """A public job with a stray mapping row is not on the board."""
        index = visibility.build_mapping_index([{"job_id": 1, "university_org_id": 20}])
        assert not visibility.is_targeted_at(job(1, "public"), 20, index)

    def test_both_and_institutions_targeted(self, mapping_index):
        assert visibility.is_targeted_at(job(2, "institutions"), 20, mapping_index)
        assert visibility.is_targeted_at(job(3, "both"), 21, mapping_index)

    def test_paginates_after_filtering(self, mapping_index):
        """Offset and limit apply to matching jobs only."""
        jobs = [job(1, "public"), job(2, "institutions"), job(5, "public"), job(3, "both")]
        assert [j["id"] for j in visibility.filter_for_university(jobs, 20, mapping_index, limit=1)] == [2]
        page = visibility.filter_for_university(jobs, 20, mapping_index, limit=1, offset=1)
        assert [j["id"] for j in page] == [3]
        assert visibility.filter_for_university(jobs, 20, mapping_index, limit=5, offset=2) == []
