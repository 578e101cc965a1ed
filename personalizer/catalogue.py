"""In-memory content and store catalogues backing the repository interfaces."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Iterable

import numpy as np

from personalizer.content import classify
from personalizer.geo import distances_km
from personalizer.models import (
    Article,
    ContactAction,
    ContentItem,
    ContentType,
    Coordinate,
    Product,
    Store,
    TrainingProgram,
    TrainingSession,
)
from personalizer.repositories import ContentRepository, NearbyStore, StoreRepository

logger = logging.getLogger(__name__)


class InMemoryContentRepository(ContentRepository):
    """Content catalogue held in process memory.

    Args:
        modules: Headline item per content type (the "about us" page, the
            franchise brochure, ...), returned by :meth:`get_by_type`.
        items: Candidate items per content type, returned by
            :meth:`get_recommendations_for`.  When omitted, items are
            grouped from *modules* by :func:`~personalizer.content.classify`.
    """

    def __init__(
        self,
        modules: dict[ContentType, ContentItem] | None = None,
        items: dict[ContentType, list[ContentItem]] | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._modules: dict[ContentType, ContentItem] = dict(modules or {})
        self._items: dict[ContentType, list[ContentItem]] = {
            key: list(value) for key, value in (items or {}).items()
        }

    def add(self, content: ContentItem) -> None:
        """Register *content* as a candidate under its classified type."""
        content_type = classify(content)
        if content_type is None:
            raise ValueError(f"Cannot classify content of type {type(content).__name__}")
        with self._lock:
            self._items.setdefault(content_type, []).append(content)

    async def get_by_type(self, content_type: ContentType) -> ContentItem | None:
        with self._lock:
            return self._modules.get(content_type)

    async def get_recommendations_for(self, content_type: ContentType) -> list[ContentItem]:
        with self._lock:
            return list(self._items.get(content_type, ()))


class InMemoryStoreRepository(StoreRepository):
    """Store catalogue with vectorised radius search.

    Store coordinates are packed into an ``(n, 2)`` numpy array on
    :meth:`load` so a radius query is one :func:`~personalizer.geo.distances_km`
    call.  Stores without coordinates are only reachable by district.

    All public methods are thread-safe.
    """

    def __init__(self, stores: Iterable[Store] = ()) -> None:
        self._lock = threading.RLock()
        self._stores: list[Store] = []
        self._located: list[Store] = []
        self._coords = np.zeros((0, 2), dtype=np.float64)
        self.load(stores)

    def load(self, stores: Iterable[Store]) -> None:
        """Replace the catalogue with *stores*."""
        stores = list(stores)
        located = [s for s in stores if s.coordinates is not None]
        coords = np.array([s.coordinates for s in located], dtype=np.float64).reshape(-1, 2)
        with self._lock:
            self._stores = stores
            self._located = located
            self._coords = coords
        logger.info("Store catalogue loaded: %d stores (%d located).", len(stores), len(located))

    def all_stores(self) -> list[Store]:
        with self._lock:
            return list(self._stores)

    async def get_nearby(
        self,
        coordinates: Coordinate,
        limit: int = 5,
        max_distance_km: float = 20.0,
    ) -> list[NearbyStore]:
        if limit <= 0:
            return []
        with self._lock:
            located = self._located
            coords = self._coords
        if not located:
            return []

        distances = distances_km(coordinates, coords)
        # Stable sort keeps catalogue order among equidistant stores.
        order = np.argsort(distances, kind="stable")
        nearby: list[NearbyStore] = []
        for idx in order:
            distance = float(distances[idx])
            if distance > max_distance_km:
                break
            nearby.append(NearbyStore(store=located[idx], distance_km=distance))
            if len(nearby) >= limit:
                break
        return nearby

    async def get_by_district(self, district: str) -> list[Store]:
        with self._lock:
            return [s for s in self._stores if s.district and s.district == district]


# ---------------------------------------------------------------------------
# Loading from plain data
# ---------------------------------------------------------------------------


def content_from_dict(data: dict[str, Any]) -> ContentItem:
    """Build a content item from a JSON-like mapping.

    The variant is picked from the fields present:

    ======================================  ====================
    Fields                                  Variant
    ======================================  ====================
    ``coordinates`` and ``address``         :class:`Store`
    ``duration`` and ``level``              :class:`TrainingProgram`
    ``brand`` or ``price``                  :class:`Product`
    ``action``                              :class:`ContactAction`
    anything else                           :class:`Article`
    ======================================  ====================

    Missing or malformed fields fall back to empty values so that partial
    content still scores neutrally.  Schedule entries without a parseable
    ``starts_at`` are dropped.

    Raises:
        ValueError: If *data* is not a mapping.
    """
    if not isinstance(data, dict):
        raise ValueError("content must be a mapping")

    item_id = str(data.get("id", ""))
    features = tuple(str(f) for f in data.get("features", ()) or ())
    tags = tuple(str(t) for t in data.get("tags", ()) or ())

    if data.get("coordinates") is not None and data.get("address"):
        return Store(
            store_id=item_id,
            name=_text(data, "name"),
            address=str(data["address"]),
            coordinates=_coordinate(data["coordinates"]),
            district=data.get("district") or None,
            city=data.get("city") or None,
            business_hours=_text(data, "business_hours"),
            short_name=_text(data, "short_name"),
            phone=_text(data, "phone"),
            rating=_optional_float(data.get("rating")),
            features=features,
            tags=tags,
        )

    if "duration" in data and "level" in data:
        return TrainingProgram(
            program_id=item_id,
            title=_text(data, "title"),
            description=_text(data, "description"),
            duration=str(data["duration"]),
            level=str(data["level"]),
            category=_text(data, "category"),
            price=_optional_float(data.get("price")),
            schedule=_schedule(data.get("schedule")),
            features=features,
            tags=tags,
        )

    if "brand" in data or "price" in data:
        return Product(
            product_id=item_id,
            name=_text(data, "name"),
            brand=_text(data, "brand"),
            category=_text(data, "category"),
            price=_optional_float(data.get("price")),
            description=_text(data, "description"),
            features=features,
            tags=tags,
        )

    if data.get("action"):
        return ContactAction(
            action=str(data["action"]),
            title=_text(data, "title"),
            phone=_text(data, "phone"),
            working_hours=_text(data, "working_hours"),
        )

    return Article(
        article_id=item_id,
        title=str(data.get("title") or data.get("name") or ""),
        description=_text(data, "description"),
        category=str(data.get("category") or "about"),
        district=data.get("district") or None,
        city=data.get("city") or None,
        features=features,
        tags=tags,
    )


def _schedule(entries: Any) -> tuple[TrainingSession, ...]:
    sessions: list[TrainingSession] = []
    for entry in entries or ():
        if not isinstance(entry, dict) or not entry.get("starts_at"):
            logger.debug("Skipping schedule entry without starts_at: %r", entry)
            continue
        try:
            starts_at = datetime.fromisoformat(str(entry["starts_at"]))
        except ValueError:
            logger.debug("Skipping schedule entry with bad starts_at: %r", entry)
            continue
        sessions.append(TrainingSession(starts_at, _text(entry, "location")))
    return tuple(sessions)


def _coordinate(value: Any) -> Coordinate | None:
    try:
        lon, lat = value
        return (float(lon), float(lat))
    except (TypeError, ValueError):
        logger.debug("Ignoring malformed coordinates %r", value)
        return None


def _optional_float(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)
