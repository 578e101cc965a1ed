"""Interest strategy: targeted picks for strong declared or inferred interests."""

from __future__ import annotations

import logging
from datetime import datetime

import config
from personalizer.models import (
    ContentItem,
    ContentType,
    DisplayPosition,
    Interest,
    RecommendationItem,
    UserContext,
)
from personalizer.repositories import ContentRepository
from personalizer.scorer import ResonanceScorer
from personalizer.sorting import rank_content
from personalizer.strategies.base import RecommendationStrategy

logger = logging.getLogger(__name__)

_PROFESSIONAL_KEYWORDS = ("职业", "professional")
_TABLE_KEYWORDS = ("台球桌", "table")
_MAX_RANKED_ITEMS = 3


class InterestStrategy(RecommendationStrategy):
    """Emits picks for each interest whose level reaches its category threshold.

    Thresholds come from ``config.INTEREST_THRESHOLDS`` (franchise 7,
    training 5, products 6, stores 8).  Training and product picks carry the
    repository's candidates for that type, ranked by resonance with the
    visitor.

    Args:
        content_repository: Source of candidate items per type.
        scorer: Used to rank candidate items.
    """

    name = "interest"

    def __init__(
        self,
        content_repository: ContentRepository,
        scorer: ResonanceScorer,
    ) -> None:
        self._content = content_repository
        self._scorer = scorer

    async def recommend(
        self,
        context: UserContext,
        now: datetime,
    ) -> list[RecommendationItem]:
        picks: list[RecommendationItem] = []
        for interest in context.interests:
            threshold = config.INTEREST_THRESHOLDS.get(interest.category)
            if threshold is None or interest.level < threshold:
                continue

            if interest.category == "franchise":
                picks.extend(self._franchise())
            elif interest.category == "training":
                picks.extend(await self._training(context, interest, now))
            elif interest.category == "products":
                picks.extend(await self._products(context, interest, now))
            elif interest.category == "stores" and context.location is not None:
                picks.append(self._book_visit())
        return picks

    # ------------------------------------------------------------------
    # Per-category picks
    # ------------------------------------------------------------------

    @staticmethod
    def _franchise() -> list[RecommendationItem]:
        return [
            RecommendationItem(
                content_type=ContentType.FRANCHISE,
                payload={"subtype": "franchise_focus", "title": "Franchise information"},
                priority=8,
                reason="The franchise information you have been looking at",
                display_position=DisplayPosition.HERO,
            ),
            RecommendationItem(
                content_type=ContentType.FRANCHISE,
                payload={"subtype": "success_cases", "title": "Franchise success stories", "case_count": 3},
                priority=6,
                reason="Learn from other franchisees",
            ),
        ]

    async def _training(
        self, context: UserContext, interest: Interest, now: datetime
    ) -> list[RecommendationItem]:
        programs = await self._ranked(context, ContentType.TRAINING, now)
        picks = [
            RecommendationItem(
                content_type=ContentType.TRAINING,
                payload={
                    "subtype": "training_courses",
                    "title": "Training courses",
                    "items": [_item_id(p) for p in programs],
                },
                priority=7,
                reason="Training courses you may like",
                contents=tuple(programs),
            )
        ]
        if _mentions(interest, _PROFESSIONAL_KEYWORDS):
            picks.append(
                RecommendationItem(
                    content_type=ContentType.TRAINING,
                    payload={"subtype": "specific_training", "title": "Pro player camp", "level": "advanced"},
                    priority=8,
                    reason="Professional-level training",
                )
            )
        return picks

    async def _products(
        self, context: UserContext, interest: Interest, now: datetime
    ) -> list[RecommendationItem]:
        if not _mentions(interest, _TABLE_KEYWORDS):
            return []
        products = await self._ranked(context, ContentType.PRODUCTS, now)
        return [
            RecommendationItem(
                content_type=ContentType.PRODUCTS,
                payload={
                    "subtype": "featured_products",
                    "title": "Popular billiard tables",
                    "category": "table",
                    "items": [_item_id(p) for p in products],
                },
                priority=7,
                reason="Billiard tables picked for you",
                contents=tuple(products),
            )
        ]

    @staticmethod
    def _book_visit() -> RecommendationItem:
        return RecommendationItem(
            content_type=ContentType.ACTION,
            payload={
                "action": "book_visit",
                "title": "Book an in-store experience",
                "incentive": "20% off your first visit",
            },
            priority=8,
            reason="Book a visit to a store",
        )

    async def _ranked(
        self, context: UserContext, content_type: ContentType, now: datetime
    ) -> list[ContentItem]:
        candidates = await self._content.get_recommendations_for(content_type)
        ranked = rank_content(context, candidates, self._scorer, now)
        return [item for item, _ in ranked[:_MAX_RANKED_ITEMS]]


def _mentions(interest: Interest, needles: tuple[str, ...]) -> bool:
    return any(
        needle in keyword.lower()
        for keyword in interest.keywords
        for needle in needles
    )


def _item_id(item: ContentItem) -> str:
    for attr in ("program_id", "product_id", "store_id", "article_id"):
        value = getattr(item, attr, None)
        if value:
            return str(value)
    return ""
