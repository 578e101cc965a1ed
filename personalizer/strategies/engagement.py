"""Engagement strategy: content depth matched to how active the visitor is."""

from __future__ import annotations

import logging
from datetime import datetime

from personalizer.inference import infer_engagement_level
from personalizer.models import (
    ContentType,
    DisplayPosition,
    EngagementLevel,
    RecommendationItem,
    UserContext,
)
from personalizer.repositories import ContentRepository
from personalizer.strategies.base import RecommendationStrategy, module_pick

logger = logging.getLogger(__name__)


class EngagementStrategy(RecommendationStrategy):
    """Lightweight content for quiet visitors, conversion content for active ones.

    * **low** – three-minute intro video (6)
    * **medium** – latest news (5) and FAQ (4)
    * **high** – products overview (8), live chat (7), brochure download (6)

    Args:
        content_repository: Source of the products overview for the high tier.
    """

    name = "engagement"

    def __init__(self, content_repository: ContentRepository) -> None:
        self._content = content_repository

    async def recommend(
        self,
        context: UserContext,
        now: datetime,
    ) -> list[RecommendationItem]:
        level = infer_engagement_level(context)

        if level is EngagementLevel.LOW:
            return [
                RecommendationItem(
                    content_type=ContentType.ABOUT,
                    payload={"subtype": "quick_intro", "title": "Get to know us in 3 minutes", "format": "video"},
                    priority=6,
                    reason="A quick introduction",
                )
            ]

        if level is EngagementLevel.MEDIUM:
            return [
                RecommendationItem(
                    content_type=ContentType.NEWS,
                    payload={"subtype": "news", "title": "Latest news", "limit": 3},
                    priority=5,
                    reason="Catch up on the latest news",
                ),
                RecommendationItem(
                    content_type=ContentType.FAQ,
                    payload={"subtype": "faq", "title": "Frequently asked questions", "category": "general"},
                    priority=4,
                    reason="Answers to common questions",
                ),
            ]

        picks: list[RecommendationItem] = []
        products = await self._content.get_by_type(ContentType.PRODUCTS)
        if products is not None:
            picks.append(module_pick(ContentType.PRODUCTS, products, 8, "Take a deeper look at our products"))
        picks.append(
            RecommendationItem(
                content_type=ContentType.ACTION,
                payload={
                    "action": "download_brochure",
                    "title": "Download detailed materials",
                    "files": ["Franchise handbook", "Product catalogue", "Success stories"],
                },
                priority=6,
                reason="Get the full details",
            )
        )
        picks.append(
            RecommendationItem(
                content_type=ContentType.CONTACT,
                payload={"action": "online_chat", "available": True, "wait_time": "< 1 minute"},
                priority=7,
                reason="Chat with us online",
                display_position=DisplayPosition.FOOTER,
            )
        )
        return picks
