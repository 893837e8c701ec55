"""OpenAI-backed clients for themes, embeddings and comment sentiment.

Every request is submitted through the shared RateLimitedCallScheduler,
so concurrency, pacing and retries are enforced across all three
clients together.

SDK imports are deferred to method calls (lazy loading) to avoid
import-time failures when API keys are not configured.
"""

import logging
from typing import Any

from interest_engine.extraction.config import ExtractionConfig
from interest_engine.extraction.parsing import clean_themes, parse_theme_response
from interest_engine.extraction.prompts import (
    SENTIMENT_PROMPT,
    THEME_SYSTEM_PROMPT,
    THEME_USER_PROMPT,
)
from interest_engine.feedback.schemas import Sentiment
from interest_engine.scheduler.call_scheduler import RateLimitedCallScheduler
from interest_engine.scheduler.errors import ExternalServiceError, MalformedResponseError

logger = logging.getLogger(__name__)


class OpenAIClientMixin:
    """Lazy AsyncOpenAI construction shared by the extraction clients."""

    _config: ExtractionConfig
    _client: Any = None

    def _get_openai_client(self) -> Any:
        """Lazy-initialize OpenAI async client."""
        if self._client is None:
            import openai

            api_key = self._config.openai_api_key
            key_str = api_key.get_secret_value() if api_key else None
            # Retries belong to the scheduler
            self._client = openai.AsyncOpenAI(api_key=key_str, max_retries=0)
        return self._client

    async def close(self) -> None:
        """Clean up the SDK client."""
        if self._client is not None:
            await self._client.close()
            self._client = None


class ThemeExtractor(OpenAIClientMixin):
    """Extracts 1-3 word themes from a document with a chat model.

    Args:
        scheduler: Shared scheduler for all inference calls.
        config: Extraction configuration.
        client: Optional pre-built AsyncOpenAI-compatible client.
    """

    def __init__(
        self,
        scheduler: RateLimitedCallScheduler,
        config: ExtractionConfig | None = None,
        client: Any = None,
    ) -> None:
        self._scheduler = scheduler
        self._config = config or ExtractionConfig()
        self._client = client

    async def extract_themes(self, text: str) -> list[str]:
        """Return up to ``max_themes`` themes for ``text``.

        Short or empty text, a malformed answer and exhausted retries or
        quota all yield an empty list. Other errors propagate.
        """
        cfg = self._config
        if not text or len(text.strip()) < cfg.min_text_length:
            logger.info("Text too short for theme extraction (%d chars)", len((text or "").strip()))
            return []

        if len(text) > cfg.max_text_length:
            text = text[: cfg.max_text_length] + "..."

        messages = [
            {"role": "system", "content": THEME_SYSTEM_PROMPT.format(language=cfg.theme_language)},
            {
                "role": "user",
                "content": THEME_USER_PROMPT.format(text=text, language=cfg.theme_language),
            },
        ]

        async def _call() -> str | None:
            client = self._get_openai_client()
            response = await client.chat.completions.create(
                model=cfg.chat_model,
                messages=messages,
                temperature=0,
            )
            return response.choices[0].message.content

        try:
            raw = await self._scheduler.submit(
                _call,
                operation="theme_extraction",
                timeout=cfg.llm_timeout,
            )
            parsed = parse_theme_response(raw)
        except MalformedResponseError as e:
            logger.warning("Theme response could not be parsed: %s", e)
            return []
        except ExternalServiceError as e:
            logger.warning("Theme extraction unavailable (%s): %s", type(e).__name__, e)
            return []

        themes = clean_themes(
            parsed,
            max_words=cfg.max_theme_words,
            max_chars=cfg.max_theme_chars,
            max_themes=cfg.max_themes,
        )
        logger.info("Extracted %d themes", len(themes))
        return themes


class EmbeddingProvider(OpenAIClientMixin):
    """Produces fixed-size document embeddings.

    Vectors are truncated or zero-padded to ``embedding_dimensions`` so they
    always fit the vector column.
    """

    def __init__(
        self,
        scheduler: RateLimitedCallScheduler,
        config: ExtractionConfig | None = None,
        client: Any = None,
    ) -> None:
        self._scheduler = scheduler
        self._config = config or ExtractionConfig()
        self._client = client

    async def embed(self, text: str) -> list[float]:
        """Embed ``text``.

        Raises:
            ValueError: Text shorter than ``min_embedding_text_length``.
            MalformedResponseError: The response carried no vector.
            ExternalServiceError: Scheduler gave up on the call.
        """
        cfg = self._config
        if not text or len(text.strip()) < cfg.min_embedding_text_length:
            raise ValueError(
                f"Text is too short for embedding, minimum {cfg.min_embedding_text_length} chars"
            )

        async def _call() -> Any:
            client = self._get_openai_client()
            return await client.embeddings.create(
                model=cfg.embedding_model,
                input=text,
                dimensions=cfg.embedding_dimensions,
            )

        response = await self._scheduler.submit(
            _call,
            operation="embedding",
            timeout=cfg.embedding_timeout,
        )
        try:
            vector = list(response.data[0].embedding)
        except (AttributeError, IndexError, TypeError) as e:
            raise MalformedResponseError(f"Unexpected embedding response: {e}") from e
        if not vector:
            raise MalformedResponseError("Empty embedding")

        return fit_dimensions(vector, cfg.embedding_dimensions)


def fit_dimensions(vector: list[float], dimensions: int) -> list[float]:
    """Truncate or zero-pad ``vector`` to exactly ``dimensions`` values."""
    if len(vector) > dimensions:
        return [float(x) for x in vector[:dimensions]]
    if len(vector) < dimensions:
        logger.warning("Embedding has %d dimensions, padding to %d", len(vector), dimensions)
        return [float(x) for x in vector] + [0.0] * (dimensions - len(vector))
    return [float(x) for x in vector]


class SentimentClassifier(OpenAIClientMixin):
    """Classifies a reader comment as positive, negative or neutral."""

    def __init__(
        self,
        scheduler: RateLimitedCallScheduler,
        config: ExtractionConfig | None = None,
        client: Any = None,
    ) -> None:
        self._scheduler = scheduler
        self._config = config or ExtractionConfig()
        self._client = client

    async def classify(self, comment: str) -> Sentiment:
        """Classify ``comment``; blank comments and unavailable inference give neutral."""
        if not comment or not comment.strip():
            return "neutral"

        prompt = SENTIMENT_PROMPT.format(comment=comment.strip())

        async def _call() -> str | None:
            client = self._get_openai_client()
            response = await client.chat.completions.create(
                model=self._config.chat_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0,
                max_tokens=5,
            )
            return response.choices[0].message.content

        try:
            raw = await self._scheduler.submit(
                _call,
                operation="sentiment",
                timeout=self._config.llm_timeout,
            )
        except ExternalServiceError as e:
            logger.warning("Sentiment unavailable, treating comment as neutral: %s", e)
            return "neutral"

        return parse_sentiment(raw)


def parse_sentiment(raw: str | None) -> Sentiment:
    answer = (raw or "").strip().lower()
    # "negative" first: some models answer "not positive"
    if "negative" in answer or "not positive" in answer:
        return "negative"
    if "positive" in answer:
        return "positive"
    return "neutral"
