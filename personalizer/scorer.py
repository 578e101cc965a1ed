"""Resonance scorer: how well a content item fits a visitor snapshot."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

import config
from personalizer.clock import Clock, SystemClock
from personalizer.content import (
    classify,
    content_fields,
    content_text,
    count_relevant_clicks,
    has_location,
    is_store_like,
    matches_category,
)
from personalizer.geo import distance_km
from personalizer.inference import infer_journey_stage
from personalizer.models import (
    ContentItem,
    ContentType,
    JourneyStage,
    ResonanceComponents,
    ResonanceResult,
    ResonanceStrength,
    Store,
    TrainingProgram,
    UserContext,
)

logger = logging.getLogger(__name__)

# Neutral values used when a dimension has nothing to go on.
_NEUTRAL_INTEREST = 0.3
_NEUTRAL_LOCATION = 0.5
_NO_VISITOR_LOCATION = 0.3
_NEUTRAL_BEHAVIOR = 0.3
_NEUTRAL_TEMPORAL = 0.5
_NEUTRAL_JOURNEY = 0.5

_JOURNEY_TABLE: dict[JourneyStage, dict[ContentType, float]] = {
    JourneyStage.AWARENESS: {
        ContentType.ABOUT: 1.0,
        ContentType.STORES: 0.7,
        ContentType.PRODUCTS: 0.5,
        ContentType.FRANCHISE: 0.3,
        ContentType.TRAINING: 0.4,
    },
    JourneyStage.INTEREST: {
        ContentType.ABOUT: 0.6,
        ContentType.STORES: 0.9,
        ContentType.PRODUCTS: 0.8,
        ContentType.FRANCHISE: 0.5,
        ContentType.TRAINING: 0.7,
    },
    JourneyStage.CONSIDERATION: {
        ContentType.ABOUT: 0.4,
        ContentType.STORES: 0.7,
        ContentType.PRODUCTS: 0.7,
        ContentType.FRANCHISE: 0.9,
        ContentType.TRAINING: 0.8,
    },
    JourneyStage.DECISION: {
        ContentType.ABOUT: 0.3,
        ContentType.STORES: 0.8,
        ContentType.PRODUCTS: 0.6,
        ContentType.FRANCHISE: 1.0,
        ContentType.TRAINING: 0.7,
    },
}

_FALLBACK_REASON = "Content you might find interesting"


class ResonanceScorer:
    """Scores a content item against a visitor context.

    The score is a weighted sum of five components, each in ``[0, 1]``:

    ==========  ======  =====================================================
    Component   Weight  Driven by
    ==========  ======  =====================================================
    interest    0.35    interest categories and keywords
    location    0.20    distance bands (stores) or district / city match
    behavior    0.20    page depth, dwell time, searches, relevant clicks
    temporal    0.10    business hours, upcoming sessions, weekend / evening
    journey     0.15    journey stage x content type table
    ==========  ======  =====================================================

    The scorer holds no mutable state and never raises: a component that
    fails is logged and replaced by its neutral value.

    Args:
        clock: Source of "now" for the temporal component.
        weights: Component weights; defaults to ``config.RESONANCE_WEIGHTS``.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        weights: dict[str, float] | None = None,
    ) -> None:
        self._clock = clock or SystemClock(config.SITE_UTC_OFFSET_HOURS)
        self._weights = dict(weights or config.RESONANCE_WEIGHTS)

    def calculate(
        self,
        context: UserContext,
        content: ContentItem,
        now: datetime | None = None,
    ) -> ResonanceResult:
        """Return the :class:`~personalizer.models.ResonanceResult` for *content*.

        Args:
            context: Visitor snapshot.
            content: Item to score.
            now: Evaluation time; defaults to the scorer's clock.
        """
        moment = now or self._clock.now()
        components = ResonanceComponents(
            interest=_guarded(
                "interest", _NEUTRAL_INTEREST,
                lambda: self.interest_component(context, content),
            ),
            location=_guarded(
                "location", _NEUTRAL_LOCATION,
                lambda: self.location_component(context, content),
            ),
            behavior=_guarded(
                "behavior", _NEUTRAL_BEHAVIOR,
                lambda: self.behavior_component(context, content),
            ),
            temporal=_guarded(
                "temporal", _NEUTRAL_TEMPORAL,
                lambda: self.temporal_component(content, moment),
            ),
            journey=_guarded(
                "journey", _NEUTRAL_JOURNEY,
                lambda: self.journey_component(context, content),
            ),
        )

        total = sum(
            value * self._weights.get(name, 0.0)
            for name, value in components.as_dict().items()
        )
        score = min(1.0, max(0.0, total))
        return ResonanceResult(
            score=score,
            components=components,
            strength=categorize_strength(score),
            reasons=tuple(self._reasons(components, content)),
        )

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @staticmethod
    def interest_component(context: UserContext, content: ContentItem) -> float:
        if not context.interests:
            return _NEUTRAL_INTEREST

        fields = content_fields(content)
        resonance = 0.0
        for interest in context.interests:
            if matches_category(interest.category, content):
                resonance += interest.level * 0.1
            for keyword in interest.keywords:
                needle = keyword.lower()
                if needle and any(needle in f for f in fields):
                    resonance += interest.level * 0.05
        return _clamp(resonance)

    @staticmethod
    def location_component(context: UserContext, content: ContentItem) -> float:
        if not has_location(content):
            return _NEUTRAL_LOCATION

        visitor = context.location
        if visitor is None or visitor.coordinates is None:
            return _NO_VISITOR_LOCATION

        if is_store_like(content):
            return distance_score(distance_km(visitor.coordinates, content.coordinates))

        district = getattr(content, "district", None)
        city = getattr(content, "city", None)
        if district and district == visitor.district:
            return 0.8
        if city and city == visitor.city:
            return 0.6
        return 0.3

    @staticmethod
    def behavior_component(context: UserContext, content: ContentItem) -> float:
        behavior = context.behavior
        if behavior is None:
            return _NEUTRAL_BEHAVIOR

        resonance = 0.0

        if context.page_views > 10:
            resonance += 0.3
        elif context.page_views > 5:
            resonance += 0.2
        elif context.page_views > 2:
            resonance += 0.1

        time_spent = behavior.total_time_spent_seconds
        if time_spent > 600:
            resonance += 0.3
        elif time_spent > 300:
            resonance += 0.2
        elif time_spent > 60:
            resonance += 0.1

        if behavior.search_queries:
            text = content_text(content).lower()
            for query in behavior.search_queries:
                if query and query.lower() in text:
                    resonance += 0.2

        if behavior.clicked_elements:
            resonance += count_relevant_clicks(behavior.clicked_elements, content) * 0.1

        return _clamp(resonance)

    @staticmethod
    def temporal_component(content: ContentItem, now: datetime) -> float:
        hour = now.hour

        if isinstance(content, Store) and content.business_hours:
            if config.BUSINESS_OPEN_HOUR <= hour < config.BUSINESS_CLOSE_HOUR:
                return 1.0
            return 0.3

        if isinstance(content, TrainingProgram) and content.schedule:
            for session in content.schedule:
                days = _days_between(now, session.starts_at)
                if 0 < days < config.TRAINING_LOOKAHEAD_DAYS:
                    return 0.9

        if now.weekday() >= 5:
            return 0.8
        if config.EVENING_START_HOUR <= hour < config.BUSINESS_CLOSE_HOUR:
            return 0.7
        return _NEUTRAL_TEMPORAL

    @staticmethod
    def journey_component(context: UserContext, content: ContentItem) -> float:
        content_type = classify(content)
        row = _JOURNEY_TABLE[infer_journey_stage(context)]
        if content_type is None:
            return _NEUTRAL_JOURNEY
        return row.get(content_type, _NEUTRAL_JOURNEY)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _reasons(components: ResonanceComponents, content: ContentItem) -> list[str]:
        reasons: list[str] = []
        if components.interest > 0.7:
            reasons.append("Closely matches your interests")
        if components.location > 0.8:
            reasons.append("Very close to you")
        elif components.location > 0.5 and has_location(content):
            reasons.append("In your area")
        if components.behavior > 0.7:
            reasons.append("Based on what you have been browsing")
        if components.temporal > 0.8:
            reasons.append("A good fit for right now")
        if components.journey > 0.8:
            reasons.append("Matches what you need at this stage")
        if not reasons:
            reasons.append(_FALLBACK_REASON)
        return reasons


def distance_score(distance: float) -> float:
    """Map a distance in km to a location score; non-increasing in distance."""
    for upper_bound, score in config.DISTANCE_BANDS_KM:
        if distance < upper_bound:
            return score
    return config.FAR_DISTANCE_SCORE


def categorize_strength(score: float) -> ResonanceStrength:
    if score >= 0.9:
        return ResonanceStrength.PERFECT
    if score >= 0.7:
        return ResonanceStrength.STRONG
    if score >= 0.4:
        return ResonanceStrength.MODERATE
    return ResonanceStrength.WEAK


def _guarded(name: str, neutral: float, compute: Callable[[], float]) -> float:
    """Run one component computation, falling back to *neutral* on error."""
    try:
        return compute()
    except Exception:
        logger.exception(
            "Failed to compute %s resonance; using neutral %.1f.", name, neutral
        )
        return neutral


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def _days_between(now: datetime, then: datetime) -> float:
    """Days from *now* until *then*; tolerates mixing naive and aware values."""
    if (now.tzinfo is None) != (then.tzinfo is None):
        if then.tzinfo is None:
            then = then.replace(tzinfo=now.tzinfo)
        else:
            now = now.replace(tzinfo=then.tzinfo)
    return (then - now).total_seconds() / 86400
