"""Ranking of arbitrary content lists by resonance."""

from __future__ import annotations

from datetime import datetime
from typing import Sequence

from personalizer.inference import infer_engagement_level
from personalizer.models import ContentItem, EngagementLevel, ResonanceResult, UserContext
from personalizer.scorer import ResonanceScorer

# Context resonance above which a call-to-action banner is shown.
CALL_TO_ACTION_RESONANCE = 0.5


def rank_content(
    context: UserContext,
    contents: Sequence[ContentItem],
    scorer: ResonanceScorer,
    now: datetime | None = None,
) -> list[tuple[ContentItem, ResonanceResult]]:
    """Score every item and return ``(item, result)`` pairs, best first.

    Items with equal scores keep their input order.  All items are scored at
    the same instant.
    """
    scored = [(item, scorer.calculate(context, item, now)) for item in contents]
    return sorted(scored, key=lambda pair: pair[1].score, reverse=True)


def should_show_call_to_action(context: UserContext) -> bool:
    return (
        context.resonance > CALL_TO_ACTION_RESONANCE
        and infer_engagement_level(context) is not EngagementLevel.LOW
    )
