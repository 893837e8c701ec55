"""
Interest service - public facade of the engine.

Wires the interest cloud, relevance matcher, similarity augmentor,
feedback store and inference clients together, and runs multi-document
analyses as background jobs.

Two modes drive the pipeline:
- read:   "I liked this" - document themes are merged into the cloud
- unread: "should I read this" - document themes are scored against it

Optional enrichments (prior feedback, similar documents) degrade to
empty when their backing service fails; the core score never depends
on them.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import asyncpg
import structlog

from interest_engine.cloud.config import CloudConfig
from interest_engine.cloud.repository import InterestTagRepository
from interest_engine.cloud.schemas import InterestTag, SortBy, UpsertSummary
from interest_engine.cloud.store import InterestCloudStore
from interest_engine.config.settings import Settings, get_settings
from interest_engine.extraction.config import ExtractionConfig
from interest_engine.extraction.llm_client import (
    EmbeddingProvider,
    SentimentClassifier,
    ThemeExtractor,
)
from interest_engine.feedback.config import FeedbackConfig
from interest_engine.feedback.repository import FeedbackRepository
from interest_engine.feedback.schemas import FeedbackSignal
from interest_engine.jobs.config import JobsConfig
from interest_engine.jobs.repository import StageStatsRepository
from interest_engine.jobs.runner import AnalysisJobRunner, StageContext
from interest_engine.jobs.schemas import (
    AnalysisItem,
    AnalysisJob,
    AnalysisMode,
    DocumentResult,
    ItemType,
    Stage,
    StageTiming,
)
from interest_engine.jobs.stage_tracker import StageTracker
from interest_engine.jobs.store import InMemoryJobStore, JobStore, RedisJobStore
from interest_engine.observability.metrics import get_metrics
from interest_engine.relevance.matcher import RelevanceMatcher
from interest_engine.relevance.schemas import ComparisonResult
from interest_engine.scheduler.call_scheduler import RateLimitedCallScheduler
from interest_engine.scheduler.errors import ExternalServiceError
from interest_engine.storage.database import Database
from interest_engine.vectorstore.augmentor import SimilarDocument, SimilarityAugmentor
from interest_engine.vectorstore.base import VectorStore
from interest_engine.vectorstore.pgvector_store import PgVectorStore

logger = structlog.get_logger(__name__)

# Failures of optional enrichments that degrade to "no enrichment"
_ENRICHMENT_ERRORS = (ExternalServiceError, asyncpg.PostgresError, OSError)


@dataclass
class RelevanceReport:
    """Relevance score plus optional prior-document context."""

    comparison: ComparisonResult
    similar: list[SimilarDocument] = field(default_factory=list)
    context: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "comparison": self.comparison.to_dict(),
            "similar": [s.to_dict() for s in self.similar],
            "context": self.context,
        }


class InterestService:
    """
    Facade over the semantic interest engine.

    Only the cloud store and matcher are required. Without an augmentor,
    reports carry no similar documents; without a feedback repository,
    scores get no feedback adjustment; without an extractor, analysis
    jobs cannot be submitted.

    Usage:
        service = build_interest_service(db)
        await service.record_interest(user_id, ["python", "машинное обучение"])
        report = await service.score_relevance(user_id, ["python", "java"])
        report.comparison.match_percentage
    """

    def __init__(
        self,
        cloud: InterestCloudStore,
        matcher: RelevanceMatcher | None = None,
        *,
        augmentor: SimilarityAugmentor | None = None,
        feedback_repository: FeedbackRepository | None = None,
        sentiment: SentimentClassifier | None = None,
        extractor: ThemeExtractor | None = None,
        embedder: EmbeddingProvider | None = None,
        vector_store: VectorStore | None = None,
        stage_stats: StageStatsRepository | None = None,
        job_store: JobStore | None = None,
        jobs_config: JobsConfig | None = None,
        feedback_config: FeedbackConfig | None = None,
    ) -> None:
        self._cloud = cloud
        self._matcher = matcher or RelevanceMatcher()
        self._augmentor = augmentor
        self._feedback_repo = feedback_repository
        self._sentiment = sentiment
        self._extractor = extractor
        self._embedder = embedder
        self._vector_store = vector_store
        self._stage_stats = stage_stats
        self._feedback_config = feedback_config or FeedbackConfig()
        self._runner = AnalysisJobRunner(
            store=job_store or InMemoryJobStore(jobs_config),
            tracker=StageTracker(stage_stats),
            processor=self._process_item,
            config=jobs_config,
        )

    @property
    def cloud_config(self) -> CloudConfig:
        return self._cloud.config

    @property
    def runner(self) -> AnalysisJobRunner:
        return self._runner

    # ── Interest cloud ──────────────────────────────────────

    async def record_interest(self, user_id: int, themes: Sequence[str]) -> UpsertSummary:
        """Merge a liked document's themes into the user's cloud."""
        return await self._cloud.upsert_batch(user_id, themes)

    async def record_comment(
        self,
        user_id: int,
        document_id: int | str | None,
        themes: Sequence[str],
        comment: str,
    ) -> FeedbackSignal:
        """Store a reader comment and let it move the cloud.

        Positive and neutral comments record the themes at the comment
        weight; negative ones lower the weights of matching tags.
        """
        comment = (comment or "").strip()[: self._feedback_config.max_comment_length]
        sentiment = await self._sentiment.classify(comment) if self._sentiment else "neutral"

        signal = FeedbackSignal(
            user_id=user_id,
            themes=list(themes),
            sentiment=sentiment,
            document_id=str(document_id) if document_id is not None else None,
            comment=comment or None,
        )
        if self._feedback_repo is not None:
            signal = await self._feedback_repo.create(signal)

        cfg = self._cloud.config
        if sentiment == "negative":
            await self._cloud.adjust_weights(user_id, themes, -cfg.negative_feedback_delta)
        else:
            await self._cloud.upsert_batch(user_id, themes, initial_weight=cfg.comment_weight)

        logger.info(
            "Comment recorded",
            user_id=user_id,
            document_id=signal.document_id,
            sentiment=sentiment,
            themes=len(signal.themes),
        )
        return signal

    async def get_interest_cloud(
        self,
        user_id: int,
        limit: int | None = None,
        sort_by: SortBy = "weight",
    ) -> list[InterestTag]:
        return await self._cloud.get_tags(user_id, limit=limit, sort_by=sort_by)

    async def delete_interest_tag(self, user_id: int, tag_id: int) -> bool:
        return await self._cloud.delete_tag(user_id, tag_id)

    # ── Relevance ───────────────────────────────────────────

    async def score_relevance(
        self,
        user_id: int,
        themes: Sequence[str],
        query_vector: Sequence[float] | None = None,
        exclude_id: int | None = None,
    ) -> RelevanceReport:
        """Score themes against the user's cloud, with optional context."""
        tags = await self._cloud.get_tags(user_id)
        feedback = await self._recent_feedback(user_id)
        comparison = self._matcher.score(themes, tags, feedback)
        get_metrics().record_relevance(comparison.match_percentage)

        similar: list[SimilarDocument] = []
        if query_vector:
            similar = await self.find_similar(user_id, query_vector, exclude_id)

        context = self._augmentor.build_context(similar) if self._augmentor else ""
        return RelevanceReport(comparison=comparison, similar=similar, context=context)

    async def find_similar(
        self,
        user_id: int,
        query_vector: Sequence[float],
        exclude_id: int | None = None,
    ) -> list[SimilarDocument]:
        """Prior documents of this user close to ``query_vector``; empty on failure."""
        if self._augmentor is None or not query_vector:
            return []
        try:
            return await self._augmentor.find_similar(
                query_vector, owner_id=user_id, exclude_id=exclude_id,
            )
        except _ENRICHMENT_ERRORS as e:
            logger.warning("Similarity lookup unavailable", user_id=user_id, error=str(e))
            return []

    async def _recent_feedback(self, user_id: int) -> list[FeedbackSignal] | None:
        if self._feedback_repo is None:
            return None
        try:
            return await self._feedback_repo.list_recent(
                user_id, limit=self._feedback_config.history_limit,
            )
        except _ENRICHMENT_ERRORS as e:
            logger.warning("Feedback lookup unavailable", user_id=user_id, error=str(e))
            return None

    # ── Analysis jobs ───────────────────────────────────────

    async def submit_analysis_job(
        self,
        user_id: int,
        items: Sequence[AnalysisItem],
        mode: AnalysisMode = "unread",
        item_type: ItemType = "article",
    ) -> str:
        """Start a background analysis and return its job id immediately."""
        if self._extractor is None:
            raise RuntimeError("Analysis jobs require a theme extractor")
        return await self._runner.submit(user_id, items, mode=mode, item_type=item_type)

    async def poll_job(self, job_id: str) -> AnalysisJob | None:
        return await self._runner.poll(job_id)

    async def get_stage_stats(self, item_type: str | None = None) -> list[StageTiming]:
        if self._stage_stats is None:
            return []
        return await self._stage_stats.get_stage_stats(item_type)

    async def shutdown(self) -> None:
        await self._runner.shutdown()

    async def _process_item(self, ctx: StageContext) -> DocumentResult:
        item = ctx.item
        result = DocumentResult(item_id=item.item_id)

        result.themes = await ctx.run(
            Stage.EXTRACT_THEMES, lambda: self._extractor.extract_themes(item.text),
        )

        vector: list[float] | None = None
        if self._embedder is not None:
            vector = await ctx.run(Stage.EMBED, lambda: self._embed_and_store(item))

        if ctx.mode == "read":
            summary = await ctx.run(
                Stage.UPDATE_INTERESTS,
                lambda: self._cloud.upsert_batch(ctx.user_id, result.themes),
            )
            if summary.errors and not summary.written:
                raise RuntimeError(f"No interest tags could be saved ({summary.errors} errors)")
        else:
            report = await ctx.run(
                Stage.SCORE_RELEVANCE,
                lambda: self.score_relevance(ctx.user_id, result.themes),
            )
            result.comparison = report.comparison.to_dict()

        if vector is not None and self._augmentor is not None:
            similar = await ctx.run(
                Stage.FIND_SIMILAR,
                lambda: self.find_similar(ctx.user_id, vector, item.document_id),
            )
            result.similar = [s.to_dict() for s in similar]

        return result

    async def _embed_and_store(self, item: AnalysisItem) -> list[float] | None:
        try:
            vector = await self._embedder.embed(item.text)
        except (ExternalServiceError, ValueError) as e:
            logger.warning("Embedding skipped", item_id=item.item_id, error=str(e))
            return None
        if self._vector_store is not None and item.document_id is not None:
            try:
                await self._vector_store.upsert([item.document_id], [vector])
            except (asyncpg.PostgresError, OSError) as e:
                logger.warning("Embedding not stored", item_id=item.item_id, error=str(e))
        return vector


def build_job_store(settings: Settings, config: JobsConfig | None = None) -> JobStore:
    """Job store for the configured backend; a Redis store still needs ``connect()``."""
    if settings.job_store_backend == "redis":
        return RedisJobStore(str(settings.redis_url), config)
    return InMemoryJobStore(config)


def build_interest_service(
    database: Database,
    *,
    settings: Settings | None = None,
    scheduler: RateLimitedCallScheduler | None = None,
    extraction_config: ExtractionConfig | None = None,
    job_store: JobStore | None = None,
) -> InterestService:
    """Assemble a fully wired service over a connected Database."""
    settings = settings or get_settings()
    scheduler = scheduler or RateLimitedCallScheduler()
    extraction_config = extraction_config or ExtractionConfig()
    vector_store = PgVectorStore(database)

    return InterestService(
        cloud=InterestCloudStore(InterestTagRepository(database)),
        matcher=RelevanceMatcher(),
        augmentor=SimilarityAugmentor(vector_store),
        feedback_repository=FeedbackRepository(database),
        sentiment=SentimentClassifier(scheduler, extraction_config),
        extractor=ThemeExtractor(scheduler, extraction_config),
        embedder=EmbeddingProvider(scheduler, extraction_config),
        vector_store=vector_store,
        stage_stats=StageStatsRepository(database),
        job_store=job_store or build_job_store(settings),
    )


async def create_tables(database: Database) -> None:
    """Create every table the engine owns."""
    await InterestTagRepository(database).create_tables()
    await FeedbackRepository(database).create_tables()
    await StageStatsRepository(database).create_tables()
