"""Tests for the OpenAI-backed extraction clients with a fake SDK client."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from interest_engine.extraction.config import ExtractionConfig
from interest_engine.extraction.llm_client import (
    EmbeddingProvider,
    SentimentClassifier,
    ThemeExtractor,
    fit_dimensions,
    parse_sentiment,
)
from interest_engine.scheduler.call_scheduler import RateLimitedCallScheduler
from interest_engine.scheduler.config import SchedulerConfig
from interest_engine.scheduler.errors import MalformedResponseError

ARTICLE = (
    "Asyncio позволяет писать конкурентный код на Python с помощью "
    "корутин, задач и цикла событий."
)


async def _no_sleep(delay: float) -> None:
    return None


def chat_client(*contents):
    """Fake AsyncOpenAI whose chat completions return contents in order.

    An Exception in contents is raised instead of returned.
    """
    side_effect = []
    for content in contents:
        if isinstance(content, Exception):
            side_effect.append(content)
        else:
            message = SimpleNamespace(content=content)
            side_effect.append(SimpleNamespace(choices=[SimpleNamespace(message=message)]))
    create = AsyncMock(side_effect=side_effect)
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def embedding_client(vector):
    response = SimpleNamespace(data=[SimpleNamespace(embedding=vector)])
    return SimpleNamespace(embeddings=SimpleNamespace(create=AsyncMock(return_value=response)))


@pytest.fixture
def scheduler() -> RateLimitedCallScheduler:
    config = SchedulerConfig(inter_call_delay=0.0, max_attempts=2)
    return RateLimitedCallScheduler(config, sleep=_no_sleep)


@pytest.fixture
def config() -> ExtractionConfig:
    return ExtractionConfig(embedding_dimensions=4)


class TestThemeExtractor:
    @pytest.mark.asyncio
    async def test_extracts_and_cleans(self, scheduler, config):
        client = chat_client('```json\n["Python", "asyncio", "статья", "конкурентный код"]\n```')
        extractor = ThemeExtractor(scheduler, config, client=client)

        themes = await extractor.extract_themes(ARTICLE)

        assert themes == ["Python", "asyncio", "конкурентный код"]
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0
        assert "Russian" in kwargs["messages"][0]["content"]
        assert ARTICLE in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_short_text_makes_no_call(self, scheduler, config):
        client = chat_client()
        extractor = ThemeExtractor(scheduler, config, client=client)

        assert await extractor.extract_themes("слишком коротко") == []
        client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_long_text_truncated(self, scheduler):
        config = ExtractionConfig(max_text_length=1000)
        client = chat_client('["python"]')
        extractor = ThemeExtractor(scheduler, config, client=client)

        await extractor.extract_themes("x" * 5000)

        user_prompt = client.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "x" * 1000 + "..." in user_prompt
        assert "x" * 1001 not in user_prompt

    @pytest.mark.asyncio
    async def test_malformed_answer_yields_empty(self, scheduler, config):
        extractor = ThemeExtractor(scheduler, config, client=chat_client("no themes here"))
        assert await extractor.extract_themes(ARTICLE) == []

    @pytest.mark.asyncio
    async def test_transient_error_retried_then_succeeds(self, scheduler, config):
        client = chat_client(Exception("503 Service Unavailable"), '["python"]')
        extractor = ThemeExtractor(scheduler, config, client=client)

        assert await extractor.extract_themes(ARTICLE) == ["python"]
        assert client.chat.completions.create.call_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_yield_empty(self, scheduler, config):
        client = chat_client(Exception("503"), Exception("503"))
        extractor = ThemeExtractor(scheduler, config, client=client)

        assert await extractor.extract_themes(ARTICLE) == []

    @pytest.mark.asyncio
    async def test_quota_yields_empty_without_retry(self, scheduler, config):
        client = chat_client(Exception("insufficient_quota"), '["python"]')
        extractor = ThemeExtractor(scheduler, config, client=client)

        assert await extractor.extract_themes(ARTICLE) == []
        assert client.chat.completions.create.call_count == 1

    @pytest.mark.asyncio
    async def test_fatal_error_propagates(self, scheduler, config):
        extractor = ThemeExtractor(scheduler, config, client=chat_client(ValueError("bad key")))

        with pytest.raises(ValueError, match="bad key"):
            await extractor.extract_themes(ARTICLE)


class TestEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_embed_requests_configured_dimensions(self, scheduler, config):
        client = embedding_client([0.1, 0.2, 0.3, 0.4])
        provider = EmbeddingProvider(scheduler, config, client=client)

        vector = await provider.embed(ARTICLE)

        assert vector == [0.1, 0.2, 0.3, 0.4]
        kwargs = client.embeddings.create.call_args.kwargs
        assert kwargs["dimensions"] == 4
        assert kwargs["model"] == "text-embedding-3-small"
        assert kwargs["input"] == ARTICLE

    @pytest.mark.asyncio
    async def test_short_text_rejected(self, scheduler, config):
        provider = EmbeddingProvider(scheduler, config, client=embedding_client([1.0]))

        with pytest.raises(ValueError, match="too short"):
            await provider.embed("short")

    @pytest.mark.asyncio
    async def test_empty_vector_is_malformed(self, scheduler, config):
        provider = EmbeddingProvider(scheduler, config, client=embedding_client([]))

        with pytest.raises(MalformedResponseError):
            await provider.embed(ARTICLE)

    def test_fit_dimensions(self):
        assert fit_dimensions([1, 2, 3, 4, 5], 3) == [1.0, 2.0, 3.0]
        assert fit_dimensions([1, 2], 4) == [1.0, 2.0, 0.0, 0.0]
        assert fit_dimensions([1, 2], 2) == [1.0, 2.0]


class TestSentimentClassifier:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("answer", "expected"),
        [("positive", "positive"), ("Negative.", "negative"), ("neutral", "neutral")],
    )
    async def test_classify(self, scheduler, config, answer, expected):
        classifier = SentimentClassifier(scheduler, config, client=chat_client(answer))
        assert await classifier.classify("Очень полезная статья!") == expected

    @pytest.mark.asyncio
    async def test_blank_comment_is_neutral_without_call(self, scheduler, config):
        client = chat_client()
        classifier = SentimentClassifier(scheduler, config, client=client)

        assert await classifier.classify("   ") == "neutral"
        client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_unavailable_service_is_neutral(self, scheduler, config):
        client = chat_client(Exception("503"), Exception("503"))
        classifier = SentimentClassifier(scheduler, config, client=client)

        assert await classifier.classify("Скучно") == "neutral"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("not positive", "negative"),
            ("POSITIVE", "positive"),
            ("", "neutral"),
            (None, "neutral"),
            ("mixed", "neutral"),
        ],
    )
    def test_parse_sentiment(self, raw, expected):
        assert parse_sentiment(raw) == expected
