"""Journey-stage strategy: picks that move the visitor down the funnel."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

import config
from personalizer.inference import infer_journey_stage
from personalizer.models import (
    ContentType,
    DisplayPosition,
    JourneyStage,
    RecommendationItem,
    UserContext,
)
from personalizer.repositories import ContentRepository, StoreRepository
from personalizer.strategies.base import RecommendationStrategy, module_pick

logger = logging.getLogger(__name__)

_URGENT_CONTACT_TTL = timedelta(hours=24)


class JourneyStrategy(RecommendationStrategy):
    """Emits stage-specific picks for the visitor's inferred journey stage.

    ==============  ========================================================
    Stage           Picks (priority)
    ==============  ========================================================
    awareness       company overview (10, hero), store map teaser (8)
    interest        nearby stores (9, sidebar), products overview (7)
    consideration   franchise overview (9, hero), training overview (7)
    decision        urgent call card (10, modal, 24h), franchise form (9)
    ==============  ========================================================

    Overview picks are only emitted when the content repository has a module
    for the type.

    Args:
        content_repository: Source of per-type overview modules.
        store_repository: Used for the nearby-stores pick.
    """

    name = "journey"

    def __init__(
        self,
        content_repository: ContentRepository,
        store_repository: StoreRepository,
    ) -> None:
        self._content = content_repository
        self._stores = store_repository

    async def recommend(
        self,
        context: UserContext,
        now: datetime,
    ) -> list[RecommendationItem]:
        stage = infer_journey_stage(context)
        logger.debug("Journey stage for recommendation: %s", stage.value)

        if stage is JourneyStage.AWARENESS:
            return await self._awareness()
        if stage is JourneyStage.INTEREST:
            return await self._interest(context)
        if stage is JourneyStage.CONSIDERATION:
            return await self._consideration()
        return self._decision(now)

    # ------------------------------------------------------------------
    # Per-stage picks
    # ------------------------------------------------------------------

    async def _awareness(self) -> list[RecommendationItem]:
        picks: list[RecommendationItem] = []
        about = await self._content.get_by_type(ContentType.ABOUT)
        if about is not None:
            picks.append(
                module_pick(ContentType.ABOUT, about, 10, "Get to know us", DisplayPosition.HERO)
            )
        picks.append(
            RecommendationItem(
                content_type=ContentType.STORES,
                payload={"subtype": "store_map", "title": "Our store locations", "show_map": True},
                priority=8,
                reason="See where you can find us",
            )
        )
        return picks

    async def _interest(self, context: UserContext) -> list[RecommendationItem]:
        picks: list[RecommendationItem] = []
        if context.coordinates is not None:
            nearby = await self._stores.get_nearby(context.coordinates, limit=3)
            if nearby:
                picks.append(
                    RecommendationItem(
                        content_type=ContentType.STORES,
                        payload={
                            "subtype": "nearby_stores",
                            "title": "Stores near you",
                            "stores": [
                                {"store_id": n.store.store_id, "name": n.store.name,
                                 "distance_km": round(n.distance_km, 1)}
                                for n in nearby
                            ],
                        },
                        priority=9,
                        reason="Discover stores near you",
                        display_position=DisplayPosition.SIDEBAR,
                        contents=tuple(n.store for n in nearby),
                    )
                )

        products = await self._content.get_by_type(ContentType.PRODUCTS)
        if products is not None:
            picks.append(module_pick(ContentType.PRODUCTS, products, 7, "Explore our products"))
        return picks

    async def _consideration(self) -> list[RecommendationItem]:
        picks: list[RecommendationItem] = []
        franchise = await self._content.get_by_type(ContentType.FRANCHISE)
        if franchise is not None:
            picks.append(
                module_pick(
                    ContentType.FRANCHISE, franchise, 9,
                    "Learn about franchise opportunities", DisplayPosition.HERO,
                )
            )
        training = await self._content.get_by_type(ContentType.TRAINING)
        if training is not None:
            picks.append(
                module_pick(ContentType.TRAINING, training, 7, "Professional training to help you succeed")
            )
        return picks

    @staticmethod
    def _decision(now: datetime) -> list[RecommendationItem]:
        return [
            RecommendationItem(
                content_type=ContentType.CONTACT,
                payload={
                    "action": "call",
                    "phone": config.HOTLINE,
                    "working_hours": config.CONTACT_WORKING_HOURS,
                    "urgency": "high",
                },
                priority=10,
                reason="Contact us now",
                display_position=DisplayPosition.MODAL,
                expires_at=now + _URGENT_CONTACT_TTL,
            ),
            RecommendationItem(
                content_type=ContentType.ACTION,
                payload={
                    "action": "apply_franchise",
                    "form_url": "/franchise/apply",
                    "incentive": "Limited offer: 10% off the franchise fee",
                },
                priority=9,
                reason="Apply to join now",
            ),
        ]
