"""Abstract lookup collaborators consumed by the recommendation strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from personalizer.models import ContentItem, ContentType, Coordinate, Store


class LookupFailure(RuntimeError):
    """A repository call failed or timed out."""


@dataclass(frozen=True)
class NearbyStore:
    store: Store
    distance_km: float


class ContentRepository(ABC):
    """Answers content lookups by type.

    Implementations raise :class:`LookupFailure` when the backing source
    cannot be reached.
    """

    @abstractmethod
    async def get_by_type(self, content_type: ContentType) -> ContentItem | None:
        """Return the headline module for *content_type*, or ``None``."""

    @abstractmethod
    async def get_recommendations_for(self, content_type: ContentType) -> list[ContentItem]:
        """Return candidate items of *content_type* (may be empty)."""


class StoreRepository(ABC):
    """Answers store lookups by geography."""

    @abstractmethod
    async def get_nearby(
        self,
        coordinates: Coordinate,
        limit: int = 5,
        max_distance_km: float = 20.0,
    ) -> list[NearbyStore]:
        """Return up to *limit* stores within *max_distance_km*, nearest first."""

    @abstractmethod
    async def get_by_district(self, district: str) -> list[Store]:
        """Return every store in *district* (may be empty)."""
