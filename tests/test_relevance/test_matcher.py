"""Tests for RelevanceMatcher scoring."""

import pytest

from interest_engine.feedback.schemas import FeedbackSignal
from interest_engine.labels.dedup import MatchKind
from interest_engine.relevance.config import MatcherConfig
from interest_engine.relevance.matcher import RelevanceMatcher
from interest_engine.relevance.schemas import WeightedLabel

# Single words that neither overlap, contain each other nor come close in edit distance
LANGUAGES = [
    "python", "rust", "golang", "haskell", "kotlin", "swift", "elixir",
    "erlang", "clojure", "scala", "fortran", "cobol", "pascal", "prolog",
    "ocaml", "julia", "ruby", "perl", "lua", "dart",
]

UNRELATED = [
    "astronomy", "botany", "cooking", "dancing", "economics", "geology",
    "history", "knitting", "medicine", "painting", "sailing", "theater",
    "volcanoes", "zoology",
]


@pytest.fixture
def matcher() -> RelevanceMatcher:
    return RelevanceMatcher()


def signal(sentiment: str, themes: list[str]) -> FeedbackSignal:
    return FeedbackSignal(user_id=1, themes=themes, sentiment=sentiment)


class TestScoreEdges:
    def test_no_themes_scores_zero(self, matcher):
        result = matcher.score([], [WeightedLabel("python", 5.0)])

        assert result.match_percentage == 0
        assert result.has_no_tags is False

    def test_blank_themes_are_ignored(self, matcher):
        result = matcher.score(["", "  "], [WeightedLabel("python", 5.0)])
        assert result.match_percentage == 0

    def test_no_tags_flags_empty_cloud(self, matcher):
        result = matcher.score(["python", "java"], [])

        assert result.has_no_tags is True
        assert result.match_percentage == 0
        assert result.unmatched_themes == ["python", "java"]

    def test_one_of_two_themes(self, matcher):
        result = matcher.score(["python", "java"], [WeightedLabel("python", 5.0)])

        assert result.matched_count == 1
        assert result.matched_themes[0].matched_tag == "python"
        assert result.unmatched_themes == ["java"]
        # 0.5 * 80 + 1.0 * 20
        assert result.match_percentage == 60

    def test_full_match_of_whole_cloud(self, matcher):
        result = matcher.score(["Python"], [WeightedLabel("python", 1.0)])
        assert result.match_percentage == 100


class TestFloors:
    def test_six_verbatim_matches_in_diffuse_cloud(self, matcher):
        tags = [WeightedLabel(label, 1.0) for label in LANGUAGES[:6]]
        tags += [WeightedLabel(label, 7.0) for label in LANGUAGES[6:19]]
        tags.append(WeightedLabel(LANGUAGES[19], 3.0))
        assert sum(t.weight for t in tags) == 100

        result = matcher.score(LANGUAGES[:6], tags)

        assert result.matched_count == 6
        assert result.matched_weight == 6.0
        assert result.match_percentage >= 45

    def test_count_floor_lifts_low_coverage(self, matcher):
        tags = [WeightedLabel(label, 1.0) for label in LANGUAGES]
        themes = LANGUAGES[:6] + UNRELATED

        result = matcher.score(themes, tags)

        # base: 6/20 * 80 + 6/20 * 20 = 30
        assert result.matched_count == 6
        assert result.match_percentage == 45

    def test_three_matches_floor_at_thirty(self, matcher):
        tags = [WeightedLabel(label, 1.0) for label in LANGUAGES[:3]]
        tags.append(WeightedLabel("astronomy", 97.0))
        themes = LANGUAGES[:3] + UNRELATED[1:8]

        result = matcher.score(themes, tags)

        # base: 3/10 * 80 + 3/100 * 20 = 24.6
        assert result.match_percentage == 30

    def test_high_coverage_floor(self, matcher):
        tags = [WeightedLabel(label, 1.0) for label in LANGUAGES[:5]]
        tags.append(WeightedLabel("astronomy", 95.0))
        themes = LANGUAGES[:5] + ["cooking", "geology", "sailing"]

        result = matcher.score(themes, tags)

        # base 51, count floor 45, coverage floor round(62.5) = 63
        assert result.match_percentage == 63

    def test_floors_are_configurable(self):
        matcher = RelevanceMatcher(config=MatcherConfig(match_count_floors={1: 90}))
        result = matcher.score(["python", "java"], [WeightedLabel("python", 0.1), WeightedLabel("x" * 10, 99.9)])
        assert result.match_percentage == 90

    def test_combine_is_monotonic_in_match_count(self, matcher):
        scores = [matcher.combine(0.1, 0.01, count) for count in range(10)]
        assert scores == sorted(scores)


class TestMatchCascade:
    def test_synonym(self, matcher):
        result = matcher.score(["ML"], [WeightedLabel("машинное обучение", 1.0)])
        assert result.matched_themes[0].kind == MatchKind.SYNONYM

    def test_word_overlap(self, matcher):
        result = matcher.score(["python asyncio"], [WeightedLabel("python web", 1.0)])
        assert result.matched_themes[0].kind == MatchKind.CONTAINMENT

    def test_short_words_do_not_overlap(self, matcher):
        result = matcher.score(["ai ethics"], [WeightedLabel("ai hardware", 1.0)])
        assert result.matched_count == 0

    def test_similarity(self, matcher):
        result = matcher.score(["kubernets"], [WeightedLabel("kubernetes", 1.0)])
        assert result.matched_themes[0].kind == MatchKind.SIMILARITY

    def test_exact_preferred_over_earlier_overlap(self, matcher):
        tags = [WeightedLabel("python web", 1.0), WeightedLabel("python", 4.0)]
        result = matcher.score(["python"], tags)

        assert result.matched_themes[0].matched_tag == "python"
        assert result.matched_themes[0].kind == MatchKind.EXACT


class TestFeedbackAdjustment:
    def test_positive_overlap_adds_bonus(self, matcher):
        adjustment = matcher.feedback_adjustment(
            ["python", "java"], [signal("positive", ["Python"])],
        )
        assert adjustment == pytest.approx(0.3)

    def test_negative_overlap_subtracts(self, matcher):
        adjustment = matcher.feedback_adjustment(
            ["python", "java"], [signal("negative", ["python", "java"])],
        )
        assert adjustment == pytest.approx(-0.4)

    def test_repeated_article_themes_each_count(self, matcher):
        adjustment = matcher.feedback_adjustment(
            ["python", "Python ", "java"], [signal("positive", ["python"])],
        )
        assert adjustment == pytest.approx(0.6)

    def test_neutral_and_disjoint_ignored(self, matcher):
        adjustment = matcher.feedback_adjustment(
            ["python"], [signal("neutral", ["python"]), signal("positive", ["rust"])],
        )
        assert adjustment == 0.0

    def test_adjustment_is_capped(self, matcher):
        history = [signal("positive", ["python"]) for _ in range(100)]
        assert matcher.feedback_adjustment(["python"], history) == 10.0

        history = [signal("negative", ["python"]) for _ in range(100)]
        assert matcher.feedback_adjustment(["python"], history) == -10.0

    def test_score_without_feedback_is_pure(self, matcher):
        tags = [WeightedLabel("python", 5.0)]
        first = matcher.score(["python", "java"], tags)
        second = matcher.score(["python", "java"], tags, feedback=None)

        assert first.to_dict() == second.to_dict()
        assert first.feedback_adjustment == 0.0

    def test_feedback_moves_final_score(self, matcher):
        tags = [WeightedLabel("python", 5.0)]
        history = [signal("positive", ["python"]) for _ in range(10)]

        result = matcher.score(["python", "java"], tags, feedback=history)

        assert result.feedback_adjustment == pytest.approx(3.0)
        assert result.match_percentage == 63

    def test_final_score_clamped(self, matcher):
        history = [signal("negative", ["java"]) for _ in range(100)]

        result = matcher.score(["java"], [WeightedLabel("python", 1.0)], feedback=history)

        assert result.match_percentage == 0

        history = [signal("positive", ["python"]) for _ in range(100)]
        result = matcher.score(["python"], [WeightedLabel("python", 1.0)], feedback=history)
        assert result.match_percentage == 100
