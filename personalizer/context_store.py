"""Context store: event reduction into immutable visitor snapshots."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from personalizer.models import (
    Behavior,
    EngagementLevel,
    Interest,
    JourneyStage,
    Location,
    PageVisit,
    UserContext,
)

logger = logging.getLogger(__name__)


class ContextEventType(str, Enum):
    """Events accepted by :meth:`ContextStore.dispatch`."""

    VISIT_STARTED = "VISIT_STARTED"
    PAGE_VIEW = "PAGE_VIEW"
    ADD_PAGE_VISIT = "ADD_PAGE_VISIT"
    ADD_CLICK = "ADD_CLICK"
    ADD_SEARCH = "ADD_SEARCH"
    ADD_INTERACTION = "ADD_INTERACTION"
    UPDATE_INTERESTS = "UPDATE_INTERESTS"
    UPDATE_LOCATION = "UPDATE_LOCATION"
    UPDATE_RESONANCE = "UPDATE_RESONANCE"
    UPDATE_ENGAGEMENT = "UPDATE_ENGAGEMENT"
    UPDATE_JOURNEY = "UPDATE_JOURNEY"


@dataclass(frozen=True)
class ContextEvent:
    """A single change request for a visitor context.

    Attributes:
        event_type: What happened.
        payload: Event fields, e.g. ``{"page": "/stores", "duration": 42.0}``
            for :attr:`ContextEventType.ADD_PAGE_VISIT`.
    """

    event_type: ContextEventType
    payload: dict[str, Any] = field(default_factory=dict)


Listener = Callable[[ContextEvent, UserContext], None]


class ContextStore:
    """Single-visitor store holding the current :class:`UserContext` snapshot.

    Every :meth:`dispatch` replaces the snapshot with a new one; readers that
    took a snapshot earlier keep a consistent view.  Writes are serialised by
    a lock so the store can sit behind a thread-pool server.

    ``UPDATE_ENGAGEMENT`` and ``UPDATE_JOURNEY`` do not change the snapshot:
    those values are always derived from it.  The store only remembers the
    last published values (see :attr:`published_engagement` and
    :attr:`published_journey`) and forwards the events to subscribers.

    Args:
        initial: Starting snapshot; defaults to an empty first-visit context.
    """

    def __init__(self, initial: UserContext | None = None) -> None:
        self._lock = threading.RLock()
        self._context = initial or UserContext()
        self._listeners: list[Listener] = []
        self.published_engagement: EngagementLevel | None = None
        self.published_journey: JourneyStage | None = None

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def read(self) -> UserContext:
        """Return the current snapshot."""
        with self._lock:
            return self._context

    def dispatch(self, event: ContextEvent) -> UserContext:
        """Apply *event* and return the resulting snapshot.

        Raises:
            ValueError: If the payload is missing required fields.
        """
        with self._lock:
            self._context = self._reduce(self._context, event)
            snapshot = self._context
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, snapshot)
            except Exception:
                logger.exception("Context listener failed for %s.", event.event_type.value)
        return snapshot

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export_state(self) -> dict[str, Any]:
        """Serialise the current snapshot to plain JSON-compatible data."""
        return context_to_dict(self.read())

    def load_state(self, data: dict[str, Any]) -> None:
        """Replace the snapshot with one rebuilt from :meth:`export_state` output."""
        context = context_from_dict(data)
        with self._lock:
            self._context = context
        logger.debug(
            "Rehydrated context: %d visits, %d page views.",
            context.visit_count,
            context.page_views,
        )

    # ------------------------------------------------------------------
    # Reduction
    # ------------------------------------------------------------------

    def _reduce(self, context: UserContext, event: ContextEvent) -> UserContext:
        payload = event.payload
        behavior = context.behavior or Behavior()
        kind = event.event_type

        if kind is ContextEventType.VISIT_STARTED:
            return replace(context, visit_count=context.visit_count + 1)

        if kind is ContextEventType.PAGE_VIEW:
            return replace(context, page_views=context.page_views + 1, behavior=behavior)

        if kind is ContextEventType.ADD_PAGE_VISIT:
            page = _require(payload, "page")
            duration = float(_require(payload, "duration"))
            visit = PageVisit(
                page=page,
                timestamp=payload.get("timestamp") or datetime.now(timezone.utc),
                duration_seconds=duration,
            )
            pages = behavior.pages_visited
            if page not in pages:
                pages = pages + (page,)
            return replace(
                context,
                visit_history=context.visit_history + (visit,),
                behavior=replace(
                    behavior,
                    total_time_spent_seconds=behavior.total_time_spent_seconds + duration,
                    pages_visited=pages,
                ),
            )

        if kind is ContextEventType.ADD_CLICK:
            target = _require(payload, "target")
            return replace(
                context,
                behavior=replace(
                    behavior,
                    clicked_elements=behavior.clicked_elements + (target,),
                    interaction_count=behavior.interaction_count + 1,
                ),
            )

        if kind is ContextEventType.ADD_SEARCH:
            query = _require(payload, "query")
            return replace(
                context,
                behavior=replace(behavior, search_queries=behavior.search_queries + (query,)),
            )

        if kind is ContextEventType.ADD_INTERACTION:
            weight = float(payload.get("weight", 1.0))
            return replace(
                context,
                behavior=replace(behavior, interaction_count=behavior.interaction_count + weight),
            )

        if kind is ContextEventType.UPDATE_INTERESTS:
            interests = tuple(_require(payload, "interests"))
            return replace(context, interests=interests)

        if kind is ContextEventType.UPDATE_LOCATION:
            return replace(context, location=_require(payload, "location"))

        if kind is ContextEventType.UPDATE_RESONANCE:
            delta = float(_require(payload, "delta"))
            return replace(context, resonance=min(1.0, max(0.0, context.resonance + delta)))

        if kind is ContextEventType.UPDATE_ENGAGEMENT:
            self.published_engagement = EngagementLevel(_require(payload, "level"))
            return context

        if kind is ContextEventType.UPDATE_JOURNEY:
            self.published_journey = JourneyStage(_require(payload, "stage"))
            return context

        raise ValueError(f"Unsupported context event: {kind!r}")


class VisitorRegistry:
    """Thread-safe map of visitor ID to that visitor's :class:`ContextStore`.

    A visitor seen for the first time gets a fresh store; a returning visitor
    whose state was loaded with :meth:`load` gets a ``VISIT_STARTED`` event
    the first time it is touched in this process.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._stores: dict[str, ContextStore] = {}
        self._started: set[str] = set()

    def get_or_create(self, visitor_id: str) -> ContextStore:
        if not visitor_id:
            raise ValueError("visitor_id must be non-empty")
        with self._lock:
            store = self._stores.get(visitor_id)
            if store is None:
                store = ContextStore()
                self._stores[visitor_id] = store
                self._started.add(visitor_id)
            elif visitor_id not in self._started:
                store.dispatch(ContextEvent(ContextEventType.VISIT_STARTED))
                self._started.add(visitor_id)
            return store

    def load(self, visitor_id: str, data: dict[str, Any]) -> None:
        """Rehydrate a returning visitor from persisted state."""
        store = ContextStore()
        store.load_state(data)
        with self._lock:
            self._stores[visitor_id] = store
            self._started.discard(visitor_id)

    def remove(self, visitor_id: str) -> dict[str, Any] | None:
        """Drop a visitor's store and return its exported state.

        Stores are otherwise kept for the life of the process, so callers
        evict idle visitors (after persisting the returned state) to bound
        memory.  Returns ``None`` for an unknown visitor.
        """
        with self._lock:
            store = self._stores.pop(visitor_id, None)
            self._started.discard(visitor_id)
        if store is None:
            return None
        return store.export_state()

    def export_all(self) -> dict[str, dict[str, Any]]:
        with self._lock:
            stores = dict(self._stores)
        return {vid: store.export_state() for vid, store in stores.items()}


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------


def context_to_dict(context: UserContext) -> dict[str, Any]:
    location = context.location
    behavior = context.behavior
    return {
        "visit_count": context.visit_count,
        "page_views": context.page_views,
        "resonance": context.resonance,
        "location": None if location is None else {
            "coordinates": list(location.coordinates) if location.coordinates else None,
            "district": location.district,
            "city": location.city,
        },
        "interests": [
            {"category": i.category, "level": i.level, "keywords": list(i.keywords)}
            for i in context.interests
        ],
        "behavior": None if behavior is None else {
            "total_time_spent_seconds": behavior.total_time_spent_seconds,
            "search_queries": list(behavior.search_queries),
            "clicked_elements": list(behavior.clicked_elements),
            "pages_visited": list(behavior.pages_visited),
            "interaction_count": behavior.interaction_count,
        },
        "visit_history": [
            {"page": v.page, "timestamp": v.timestamp.isoformat(), "duration_seconds": v.duration_seconds}
            for v in context.visit_history
        ],
    }


def context_from_dict(data: dict[str, Any]) -> UserContext:
    location_data = data.get("location")
    location = None
    if location_data:
        coords = location_data.get("coordinates")
        location = Location(
            coordinates=(float(coords[0]), float(coords[1])) if coords else None,
            district=location_data.get("district"),
            city=location_data.get("city"),
        )

    behavior_data = data.get("behavior")
    behavior = None
    if behavior_data is not None:
        behavior = Behavior(
            total_time_spent_seconds=float(behavior_data.get("total_time_spent_seconds", 0.0)),
            search_queries=tuple(behavior_data.get("search_queries", ())),
            clicked_elements=tuple(behavior_data.get("clicked_elements", ())),
            pages_visited=tuple(behavior_data.get("pages_visited", ())),
            interaction_count=float(behavior_data.get("interaction_count", 0.0)),
        )

    return UserContext(
        visit_count=int(data.get("visit_count", 1)),
        page_views=int(data.get("page_views", 0)),
        resonance=float(data.get("resonance", 0.0)),
        location=location,
        interests=tuple(
            Interest(
                category=i["category"],
                level=float(i.get("level", 0)),
                keywords=tuple(i.get("keywords", ())),
            )
            for i in data.get("interests", ())
        ),
        behavior=behavior,
        visit_history=tuple(
            PageVisit(
                page=v["page"],
                timestamp=datetime.fromisoformat(v["timestamp"]),
                duration_seconds=float(v["duration_seconds"]),
            )
            for v in data.get("visit_history", ())
        ),
    )


def _require(payload: dict[str, Any], key: str) -> Any:
    if key not in payload or payload[key] is None:
        raise ValueError(f"Event payload is missing {key!r}")
    return payload[key]
