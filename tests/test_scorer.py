"""Tests for ResonanceScorer."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest

from personalizer.models import (
    Article,
    Behavior,
    ContactAction,
    Interest,
    Product,
    ResonanceStrength,
    Store,
    TrainingProgram,
    TrainingSession,
    UserContext,
)
from personalizer.scorer import (
    ResonanceScorer,
    categorize_strength,
    distance_score,
)


# ---------------------------------------------------------------------------
# End-to-end
# ---------------------------------------------------------------------------


class TestCalculate:
    def test_nearby_open_store_for_located_visitor(self, scorer, located_context, store_nearby) -> None:
        result = scorer.calculate(located_context, store_nearby)
        assert result.components.location == 1.0
        assert result.components.temporal == 1.0
        assert result.score >= 0.55
        assert result.strength in (ResonanceStrength.MODERATE, ResonanceStrength.STRONG)
        assert "Very close to you" in result.reasons

    def test_score_breakdown(self, scorer, located_context, store_nearby) -> None:
        result = scorer.calculate(located_context, store_nearby)
        assert result.components.interest == pytest.approx(0.3)
        assert result.components.behavior == pytest.approx(0.3)
        assert result.components.journey == pytest.approx(0.7)
        assert result.score == pytest.approx(0.57)

    def test_empty_context_and_minimal_content(self, scorer, new_context) -> None:
        result = scorer.calculate(new_context, ContactAction(action="call"))
        assert 0.0 <= result.score <= 1.0
        assert result.components.interest == 0.3
        assert result.components.location == 0.5
        assert result.reasons

    def test_unknown_content_gets_neutral_journey(self, scorer, new_context) -> None:
        result = scorer.calculate(new_context, object())  # type: ignore[arg-type]
        assert result.components.journey == 0.5
        assert 0.0 <= result.score <= 1.0

    def test_deterministic(self, scorer, located_context, store_nearby) -> None:
        first = scorer.calculate(located_context, store_nearby)
        second = scorer.calculate(located_context, store_nearby)
        assert first == second

    def test_explicit_now_overrides_clock(self, scorer, located_context, store_nearby, now) -> None:
        late = now.replace(hour=23)
        result = scorer.calculate(located_context, store_nearby, now=late)
        assert result.components.temporal == 0.3

    def test_failing_component_falls_back_to_neutral(self, scorer, located_context, store_nearby) -> None:
        with patch.object(ResonanceScorer, "location_component", side_effect=RuntimeError("boom")):
            result = scorer.calculate(located_context, store_nearby)
        assert result.components.location == 0.5
        assert 0.0 <= result.score <= 1.0

    def test_saturated_signals_stay_bounded(self, scorer, store_nearby, visitor_location) -> None:
        ctx = UserContext(
            page_views=20,
            location=visitor_location,
            interests=(Interest("stores", 10, ("翠湖",)),),
            behavior=Behavior(
                total_time_spent_seconds=900,
                search_queries=("翠湖", "台球"),
                clicked_elements=("store-1", "map", "location", "store-2"),
            ),
        )
        result = scorer.calculate(ctx, store_nearby)
        assert result.score <= 1.0
        assert result.components.interest == 1.0
        assert result.components.behavior == 1.0

    def test_custom_weights(self, clock, located_context, store_nearby) -> None:
        scorer = ResonanceScorer(clock=clock, weights={"location": 1.0})
        assert scorer.calculate(located_context, store_nearby).score == 1.0


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------


class TestInterestComponent:
    def test_neutral_without_interests(self, new_context, table_product) -> None:
        assert ResonanceScorer.interest_component(new_context, table_product) == 0.3

    def test_category_match(self, franchise_fan_context, franchise_article) -> None:
        # 8 * 0.1 for the category, 8 * 0.05 for the "加盟" keyword in the title
        value = ResonanceScorer.interest_component(franchise_fan_context, franchise_article)
        assert value == 1.0

    def test_keyword_match_is_case_insensitive(self) -> None:
        ctx = UserContext(interests=(Interest("other", 4, ("PRO",)),))
        product = Product("p", "Pro Cue")
        assert ResonanceScorer.interest_component(ctx, product) == pytest.approx(0.2)

    def test_no_match_scores_zero(self, franchise_fan_context, table_product) -> None:
        assert ResonanceScorer.interest_component(franchise_fan_context, table_product) == 0.0


class TestLocationComponent:
    def test_content_without_location(self, located_context, table_product) -> None:
        assert ResonanceScorer.location_component(located_context, table_product) == 0.5

    def test_visitor_without_location(self, new_context, store_nearby) -> None:
        assert ResonanceScorer.location_component(new_context, store_nearby) == 0.3

    def test_far_store(self, located_context, store_far) -> None:
        assert ResonanceScorer.location_component(located_context, store_far) == 0.1

    def test_same_district(self, located_context) -> None:
        article = Article("a", "district news", district="五华区")
        assert ResonanceScorer.location_component(located_context, article) == 0.8

    def test_same_city(self, located_context) -> None:
        article = Article("a", "city news", district="呈贡区", city="昆明市")
        assert ResonanceScorer.location_component(located_context, article) == 0.6

    def test_other_place(self, located_context) -> None:
        article = Article("a", "elsewhere", city="玉溪市")
        assert ResonanceScorer.location_component(located_context, article) == 0.3


class TestBehaviorComponent:
    def test_neutral_without_behavior(self, new_context, table_product) -> None:
        assert ResonanceScorer.behavior_component(new_context, table_product) == 0.3

    def test_quiet_visitor_scores_zero(self, table_product) -> None:
        ctx = UserContext(behavior=Behavior())
        assert ResonanceScorer.behavior_component(ctx, table_product) == 0.0

    def test_page_views_and_time(self, table_product) -> None:
        ctx = UserContext(page_views=6, behavior=Behavior(total_time_spent_seconds=400))
        assert ResonanceScorer.behavior_component(ctx, table_product) == pytest.approx(0.4)

    def test_search_and_clicks(self, table_product) -> None:
        ctx = UserContext(
            behavior=Behavior(search_queries=("比赛台",), clicked_elements=("buy-now",))
        )
        assert ResonanceScorer.behavior_component(ctx, table_product) == pytest.approx(0.3)


class TestTemporalComponent:
    def test_store_open(self, store_nearby, now) -> None:
        assert ResonanceScorer.temporal_component(store_nearby, now) == 1.0

    def test_store_closed(self, store_nearby, now) -> None:
        assert ResonanceScorer.temporal_component(store_nearby, now.replace(hour=8)) == 0.3

    def test_store_without_hours_uses_generic_rules(self, now, saturday_evening) -> None:
        store = Store("1", "s", address="x")
        assert ResonanceScorer.temporal_component(store, now) == 0.5
        assert ResonanceScorer.temporal_component(store, saturday_evening) == 0.8

    def test_training_session_soon(self, training_program, now) -> None:
        assert ResonanceScorer.temporal_component(training_program, now) == 0.9

    def test_training_session_too_far(self, now) -> None:
        program = TrainingProgram(
            "t", "course", schedule=(TrainingSession(starts_at=now + timedelta(days=45)),)
        )
        assert ResonanceScorer.temporal_component(program, now) == 0.5

    def test_training_session_naive_datetime(self, now) -> None:
        program = TrainingProgram(
            "t", "course",
            schedule=(TrainingSession(starts_at=(now + timedelta(days=3)).replace(tzinfo=None)),),
        )
        assert ResonanceScorer.temporal_component(program, now) == 0.9

    def test_weekend(self, table_product, saturday_evening) -> None:
        assert ResonanceScorer.temporal_component(table_product, saturday_evening) == 0.8

    def test_weekday_evening(self, table_product, now) -> None:
        assert ResonanceScorer.temporal_component(table_product, now.replace(hour=19)) == 0.7


class TestJourneyComponent:
    def test_awareness_about(self, new_context, about_article) -> None:
        assert ResonanceScorer.journey_component(new_context, about_article) == 1.0

    def test_decision_franchise(self, decision_context, franchise_article) -> None:
        assert ResonanceScorer.journey_component(decision_context, franchise_article) == 1.0

    def test_type_without_row(self, new_context) -> None:
        assert ResonanceScorer.journey_component(new_context, ContactAction("call")) == 0.5


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestDistanceScore:
    @pytest.mark.parametrize(
        "distance, expected",
        [(0.0, 1.0), (0.99, 1.0), (1.0, 0.8), (2.5, 0.8), (4.9, 0.6),
         (7.0, 0.4), (19.9, 0.2), (20.0, 0.1), (500.0, 0.1)],
    )
    def test_bands(self, distance, expected) -> None:
        assert distance_score(distance) == expected

    def test_monotonic_non_increasing(self) -> None:
        distances = [i * 0.25 for i in range(120)]
        scores = [distance_score(d) for d in distances]
        assert all(a >= b for a, b in zip(scores, scores[1:]))


class TestCategorizeStrength:
    @pytest.mark.parametrize(
        "score, expected",
        [
            (0.0, ResonanceStrength.WEAK),
            (0.39, ResonanceStrength.WEAK),
            (0.4, ResonanceStrength.MODERATE),
            (0.7, ResonanceStrength.STRONG),
            (0.9, ResonanceStrength.PERFECT),
            (1.0, ResonanceStrength.PERFECT),
        ],
    )
    def test_buckets(self, score, expected) -> None:
        assert categorize_strength(score) is expected
