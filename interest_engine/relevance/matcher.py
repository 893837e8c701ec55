"""Relevance scoring of a document's themes against a user's interest cloud.

Scoring:
    base  = round(article_ratio * 80 + weight_ratio * 20)
    floor by absolute match count (>=3 -> 30, >=5 -> 45, >=8 -> 60)
    floor at round(article_ratio * 100) when coverage is high
    + bounded adjustment from prior feedback
    clamp to [0, 100]

The weight ratio alone under-rewards users with large, diffuse clouds:
six exact hits in a cloud of twenty tags may carry only a few percent of
the total weight. The count floors correct for that.

The matcher is a pure function of its inputs. Feedback history is
fetched by the caller and passed in, so scoring stays testable without
any storage.
"""

import math
from collections.abc import Iterable, Sequence

import structlog

from interest_engine.feedback.config import FeedbackConfig
from interest_engine.feedback.schemas import FeedbackSignal
from interest_engine.labels.dedup import MatchKind, TagLike, label_similarity
from interest_engine.labels.normalizer import normalize, normalize_for_comparison
from interest_engine.labels.synonyms import SynonymTable
from interest_engine.relevance.config import MatcherConfig
from interest_engine.relevance.schemas import ComparisonResult, MatchedTheme

logger = structlog.get_logger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class RelevanceMatcher:
    """
    Scores how well an article's themes align with a user's tags.

    Usage:
        matcher = RelevanceMatcher()
        result = matcher.score(["python", "java"], [WeightedLabel("python", 5.0)])
        result.match_percentage  # > 0
    """

    def __init__(
        self,
        config: MatcherConfig | None = None,
        synonyms: SynonymTable | None = None,
        feedback_config: FeedbackConfig | None = None,
    ) -> None:
        self._config = config or MatcherConfig()
        self._synonyms = synonyms or SynonymTable()
        self._feedback_config = feedback_config or FeedbackConfig()
        self._floors = sorted(self._config.match_count_floors.items())

    @property
    def config(self) -> MatcherConfig:
        return self._config

    def score(
        self,
        article_themes: Sequence[str],
        user_tags: Sequence[TagLike],
        feedback: Iterable[FeedbackSignal] | None = None,
    ) -> ComparisonResult:
        """Compare article themes with a user's tags.

        Args:
            article_themes: Themes extracted from the document.
            user_tags: The user's cloud (anything with label and weight).
            feedback: Optional prior feedback signals for the user.

        Returns:
            ComparisonResult with score and matched/unmatched breakdown.
        """
        themes = [t for t in (article_themes or []) if isinstance(t, str) and t.strip()]
        if not themes:
            return ComparisonResult()

        if not user_tags:
            return ComparisonResult(unmatched_themes=list(themes), has_no_tags=True)

        total_weight = sum(float(tag.weight) for tag in user_tags)
        prepared = [(tag, normalize(tag.label)) for tag in user_tags]

        matched: list[MatchedTheme] = []
        unmatched: list[str] = []
        for theme in themes:
            hit = self.match_theme(theme, prepared)
            if hit is None:
                unmatched.append(theme)
                continue
            tag, kind = hit
            matched.append(
                MatchedTheme(
                    theme=theme,
                    matched_tag=tag.label,
                    tag_weight=float(tag.weight),
                    kind=kind,
                )
            )

        matched_weight = sum(m.tag_weight for m in matched)
        article_ratio = len(matched) / len(themes)
        weight_ratio = matched_weight / total_weight if total_weight > 0 else 0.0

        score = self.combine(article_ratio, weight_ratio, len(matched))

        adjustment = 0.0
        if feedback is not None:
            adjustment = self.feedback_adjustment(themes, feedback)

        final = max(0, min(100, _round_half_up(score + adjustment)))

        logger.debug(
            "Themes compared",
            themes=len(themes),
            matched=len(matched),
            score=final,
            feedback_adjustment=adjustment,
        )

        return ComparisonResult(
            match_percentage=final,
            matched_themes=matched,
            unmatched_themes=unmatched,
            has_no_tags=False,
            total_tag_weight=total_weight,
            matched_weight=matched_weight,
            feedback_adjustment=adjustment,
        )

    def combine(self, article_ratio: float, weight_ratio: float, matched_count: int) -> int:
        """Base formula plus count and coverage floors (no feedback, no clamp)."""
        cfg = self._config
        score = _round_half_up(
            article_ratio * cfg.article_ratio_weight
            + weight_ratio * cfg.weight_ratio_weight
        )

        for min_count, floor in self._floors:
            if matched_count >= min_count:
                score = max(score, floor)

        if (
            article_ratio >= cfg.high_coverage_ratio
            and matched_count >= cfg.high_coverage_min_matches
        ):
            score = max(score, _round_half_up(article_ratio * 100))

        return score

    def match_theme(
        self,
        theme: str,
        prepared: Sequence[tuple[TagLike, str]],
    ) -> tuple[TagLike, MatchKind] | None:
        """Find the tag a single theme matches.

        Rules in order, each over all tags: exact, synonym, word overlap
        or containment, edit-distance similarity.
        """
        label = normalize(theme)
        if not label:
            return None

        for tag, tag_label in prepared:
            if tag_label == label:
                return tag, MatchKind.EXACT

        for tag, tag_label in prepared:
            if self._synonyms.are_synonyms(label, tag_label):
                return tag, MatchKind.SYNONYM

        words = self._significant_words(label)
        for tag, tag_label in prepared:
            if not tag_label:
                continue
            if words & self._significant_words(tag_label):
                return tag, MatchKind.CONTAINMENT
            if tag_label in label or label in tag_label:
                return tag, MatchKind.CONTAINMENT

        for tag, tag_label in prepared:
            if tag_label and label_similarity(label, tag_label) >= self._config.similarity_threshold:
                return tag, MatchKind.SIMILARITY

        return None

    def feedback_adjustment(
        self,
        article_themes: Sequence[str],
        feedback: Iterable[FeedbackSignal],
    ) -> float:
        """Score points from prior feedback on documents sharing themes.

        Positive feedback adds a small bonus per shared theme, negative
        feedback a small penalty; every article theme found in the signal
        counts, repeats included. The total is capped in both directions.
        """
        article = [normalize_for_comparison(t) for t in article_themes]
        adjustment = 0.0
        for signal in feedback:
            if signal.sentiment == "neutral":
                continue
            seen = {normalize_for_comparison(t) for t in signal.themes}
            common = sum(1 for theme in article if theme and theme in seen)
            if not common:
                continue
            if signal.sentiment == "positive":
                adjustment += common * self._feedback_config.positive_boost
            else:
                adjustment -= common * self._feedback_config.negative_penalty

        cap = self._config.max_feedback_adjustment
        return max(-cap, min(cap, round(adjustment, 4)))

    def _significant_words(self, label: str) -> set[str]:
        min_len = self._config.min_significant_word_length
        return {w for w in label.split(" ") if len(w) >= min_len}
