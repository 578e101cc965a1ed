"""Location strategy: nearest-store and district picks."""

from __future__ import annotations

import logging
from datetime import datetime

import config
from personalizer.geo import display_distance_km
from personalizer.models import (
    ContentType,
    DisplayPosition,
    RecommendationItem,
    UserContext,
)
from personalizer.repositories import StoreRepository
from personalizer.strategies.base import RecommendationStrategy

logger = logging.getLogger(__name__)


class LocationStrategy(RecommendationStrategy):
    """Recommends the nearest store and the visitor's district network.

    Requires visitor coordinates.  The nearest store decides the picks:

    * under ``NAVIGATE_DISTANCE_KM`` (5 km): navigate action (9, modal) and a
      store promotion (7)
    * under ``NEARBY_DISTANCE_KM`` (20 km): recommended store (6)

    When the visitor's district is known and has stores, a district summary
    (5) sized by the store count is added.

    Args:
        store_repository: Store lookups by radius and district.
    """

    name = "location"

    def __init__(self, store_repository: StoreRepository) -> None:
        self._stores = store_repository

    async def recommend(
        self,
        context: UserContext,
        now: datetime,
    ) -> list[RecommendationItem]:
        location = context.location
        if location is None or location.coordinates is None:
            return []

        picks: list[RecommendationItem] = []
        nearest = await self._stores.get_nearby(
            location.coordinates, limit=1, max_distance_km=config.NEARBY_DISTANCE_KM
        )
        if nearest:
            store = nearest[0].store
            distance = nearest[0].distance_km
            shown = display_distance_km(distance)
            if distance < config.NAVIGATE_DISTANCE_KM:
                lon, lat = store.coordinates or (0.0, 0.0)
                picks.append(
                    RecommendationItem(
                        content_type=ContentType.ACTION,
                        payload={
                            "action": "navigate_to_store",
                            "store_id": store.store_id,
                            "store_name": store.name,
                            "distance_km": shown,
                            "map_url": f"https://maps.google.com/?q={lat},{lon}",
                        },
                        priority=9,
                        reason=f"Only {shown:.1f} km away",
                        display_position=DisplayPosition.MODAL,
                        contents=(store,),
                    )
                )
                picks.append(
                    RecommendationItem(
                        content_type=ContentType.STORES,
                        payload={
                            "subtype": "store_promotion",
                            "title": f"{store.short_name or store.name} special offer",
                            "store_id": store.store_id,
                            "promotion": "50% off your first session",
                        },
                        priority=7,
                        reason="An offer just for you",
                        contents=(store,),
                    )
                )
            elif distance < config.NEARBY_DISTANCE_KM:
                picks.append(
                    RecommendationItem(
                        content_type=ContentType.STORES,
                        payload={
                            "subtype": "recommended_store",
                            "title": "Recommended store",
                            "store_id": store.store_id,
                            "distance_km": shown,
                        },
                        priority=6,
                        reason="A store near you",
                        contents=(store,),
                    )
                )

        if location.district:
            district_stores = await self._stores.get_by_district(location.district)
            if district_stores:
                picks.append(
                    RecommendationItem(
                        content_type=ContentType.STORES,
                        payload={
                            "subtype": "district_info",
                            "title": f"Our services in {location.district}",
                            "district": location.district,
                            "store_count": len(district_stores),
                        },
                        priority=5,
                        reason="Stores in your district",
                        contents=tuple(district_stores),
                    )
                )
        return picks
