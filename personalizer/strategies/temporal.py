"""Temporal strategy: banners driven purely by the wall clock."""

from __future__ import annotations

from datetime import datetime

import config
from personalizer.models import ContentType, RecommendationItem, UserContext
from personalizer.strategies.base import RecommendationStrategy


class TemporalStrategy(RecommendationStrategy):
    """Non-exclusive time-of-day and day-of-week picks.

    Business hours (10–22) add an open-now banner (3), Saturdays and Sundays a
    weekend special (6), evenings (18–22) an evening activity (5).  More than
    one may fire.
    """

    name = "temporal"

    async def recommend(
        self,
        context: UserContext,
        now: datetime,
    ) -> list[RecommendationItem]:
        picks: list[RecommendationItem] = []
        hour = now.hour

        if config.BUSINESS_OPEN_HOUR <= hour < config.BUSINESS_CLOSE_HOUR:
            picks.append(
                RecommendationItem(
                    content_type=ContentType.STORES,
                    payload={
                        "subtype": "business_status",
                        "title": "Stores open now",
                        "status": "open",
                        "message": "Come and play",
                    },
                    priority=3,
                    reason="We are open right now",
                )
            )

        if now.weekday() >= 5:
            picks.append(
                RecommendationItem(
                    content_type=ContentType.STORES,
                    payload={
                        "subtype": "weekend_special",
                        "title": "Weekend special",
                        "discount": "20% off all day",
                        "validity": "Weekends only",
                    },
                    priority=6,
                    reason="Weekend-only offer",
                )
            )

        if config.EVENING_START_HOUR <= hour < config.BUSINESS_CLOSE_HOUR:
            picks.append(
                RecommendationItem(
                    content_type=ContentType.STORES,
                    payload={
                        "subtype": "evening_activity",
                        "title": "Evening events",
                        "activity": "Evening tournament sign-up open",
                        "time": "19:00-22:00",
                    },
                    priority=5,
                    reason="Something to do this evening",
                )
            )

        return picks
