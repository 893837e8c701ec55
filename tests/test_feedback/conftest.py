"""Shared fixtures for feedback tests."""

from datetime import datetime, timezone

import pytest

from interest_engine.feedback.repository import FeedbackRepository
from interest_engine.feedback.schemas import FeedbackSignal


@pytest.fixture
def repo(mock_database):
    """FeedbackRepository with a mock database."""
    return FeedbackRepository(mock_database)


@pytest.fixture
def sample_signal():
    """A FeedbackSignal with all fields populated."""
    return FeedbackSignal(
        feedback_id="feedback_abc123def456",
        user_id=42,
        themes=["машинное обучение", "python"],
        sentiment="positive",
        document_id="1001",
        comment="Отличная статья",
        created_at=datetime(2026, 2, 5, 10, 0, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def signal_row(sample_signal):
    """Database row matching sample_signal, themes as JSON text."""
    return {
        "feedback_id": sample_signal.feedback_id,
        "user_id": sample_signal.user_id,
        "document_id": sample_signal.document_id,
        "themes": '["машинное обучение", "python"]',
        "sentiment": sample_signal.sentiment,
        "comment": sample_signal.comment,
        "created_at": sample_signal.created_at,
    }
