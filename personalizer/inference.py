"""Derived visitor signals: journey stage, engagement level, coherence.

These are pure functions of a :class:`~personalizer.models.UserContext`
snapshot.  The aggregator, scorer and composer all call them, so they can
never disagree about where a visitor is in the funnel.
"""

from __future__ import annotations

from personalizer.models import EngagementLevel, JourneyStage, UserContext

FRANCHISE_PAGE = "/franchise"

_EPSILON_MINUTES = 1e-9


def infer_journey_stage(context: UserContext) -> JourneyStage:
    """Infer the funnel stage; rules are checked top to bottom, first match wins.

    ========================  ===============================================
    Stage                     Rule
    ========================  ===============================================
    decision                  >3 visits, >600s spent, franchise page seen
    consideration             franchise page seen, or searched and >300s spent
    interest                  >3 page views or >180s spent
    awareness                 otherwise
    ========================  ===============================================
    """
    behavior = context.behavior
    time_spent = behavior.total_time_spent_seconds if behavior else 0.0
    viewed_franchise = bool(behavior) and FRANCHISE_PAGE in behavior.pages_visited
    has_searched = bool(behavior) and len(behavior.search_queries) > 0

    if context.visit_count > 3 and time_spent > 600 and viewed_franchise:
        return JourneyStage.DECISION
    if viewed_franchise or (has_searched and time_spent > 300):
        return JourneyStage.CONSIDERATION
    if context.page_views > 3 or time_spent > 180:
        return JourneyStage.INTEREST
    return JourneyStage.AWARENESS


def engagement_for(total_time_spent_seconds: float, interaction_count: float) -> EngagementLevel:
    """Classify engagement from dwell time and interaction rate (per minute)."""
    minutes = total_time_spent_seconds / 60
    rate = interaction_count / max(minutes, _EPSILON_MINUTES)
    if minutes > 2 and rate > 3:
        return EngagementLevel.HIGH
    if minutes > 1 and rate > 1:
        return EngagementLevel.MEDIUM
    return EngagementLevel.LOW


def infer_engagement_level(context: UserContext) -> EngagementLevel:
    """Engagement over the cumulative session totals of *context*."""
    if context.behavior is None:
        return EngagementLevel.LOW
    return engagement_for(
        context.behavior.total_time_spent_seconds,
        context.behavior.interaction_count,
    )


def coherence(context: UserContext) -> float:
    """How focused the visitor's browsing looks, in ``[0, 1]``."""
    score = 0.0
    if len(context.visit_history) > 3:
        score += 0.3
    if context.interests:
        score += 0.3
    engagement = infer_engagement_level(context)
    if engagement is EngagementLevel.HIGH:
        score += 0.4
    elif engagement is EngagementLevel.MEDIUM:
        score += 0.2
    return min(score, 1.0)


def primary_interest(context: UserContext):
    """Highest-level interest (first one wins ties), or ``None``."""
    best = None
    for interest in context.interests:
        if best is None or interest.level > best.level:
            best = interest
    return best
