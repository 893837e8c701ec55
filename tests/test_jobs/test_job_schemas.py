"""Tests for analysis job schemas."""

import pytest

from interest_engine.jobs.schemas import (
    STAGE_NAMES,
    AnalysisJob,
    DocumentResult,
    JobStatus,
    Stage,
)


class TestAnalysisJob:
    def test_defaults(self):
        job = AnalysisJob(user_id=1, item_type="channel")

        assert job.job_id.startswith("job_")
        assert job.status == JobStatus.PENDING
        assert job.mode == "unread"
        assert not job.is_finished

    def test_invalid_item_type(self):
        with pytest.raises(ValueError, match="Invalid item_type"):
            AnalysisJob(user_id=1, item_type="podcast")

    def test_string_status_coerced(self):
        job = AnalysisJob(user_id=1, item_type="text", status="completed")
        assert job.status is JobStatus.COMPLETED
        assert job.is_finished

    def test_dict_round_trip_keeps_results(self):
        job = AnalysisJob(user_id=1, item_type="urls", mode="read", total_items=1)
        job.results.append(
            DocumentResult(item_id="a", themes=["python"], similar=[{"id": 3, "similarity": 0.8}])
        )

        restored = AnalysisJob.from_dict(job.to_dict())

        assert restored.to_dict() == job.to_dict()
        assert restored.created_at == job.created_at


class TestStages:
    def test_every_stage_named(self):
        assert set(STAGE_NAMES) == set(Stage)

    def test_stage_order(self):
        assert [s.name for s in sorted(Stage)] == [
            "EXTRACT_THEMES",
            "EMBED",
            "UPDATE_INTERESTS",
            "SCORE_RELEVANCE",
            "FIND_SIMILAR",
        ]
