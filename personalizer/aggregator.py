"""Behavior aggregator: turns raw page events into context-store updates."""

from __future__ import annotations

import logging
import threading
from datetime import datetime

import config
from personalizer.clock import Clock, SystemClock
from personalizer.context_store import ContextEvent, ContextEventType, ContextStore
from personalizer.inference import infer_engagement_level, infer_journey_stage
from personalizer.models import Coordinate, Interest, Location

logger = logging.getLogger(__name__)

_PAGE_CATEGORIES: dict[str, str] = {
    "/": "home",
    "/about": "about",
    "/stores": "stores",
    "/franchise": "franchise",
    "/training": "training",
    "/products": "products",
    "/contact": "contact",
}


def page_category(page: str) -> str:
    """Map a page path to its site section; unknown paths are ``other``."""
    return _PAGE_CATEGORIES.get(page, "other")


class BehaviorAggregator:
    """Event sink for one visitor, writing through a :class:`ContextStore`.

    The front end reports page enters and leaves, scroll depth, clicks,
    searches and hovers.  Each call turns into one or more store events.
    Derived signals (engagement, journey stage) are re-evaluated when a page
    is left and published only when they change.

    Args:
        store: The visitor's context store.
        clock: Source of page timestamps.
    """

    def __init__(self, store: ContextStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock(config.SITE_UTC_OFFSET_HOURS)
        self._lock = threading.Lock()
        self._page_started: dict[str, datetime] = {}
        self._current_page: str | None = None
        self._max_scroll: dict[str, float] = {}

    @property
    def store(self) -> ContextStore:
        return self._store

    @property
    def current_page(self) -> str | None:
        return self._current_page

    # ------------------------------------------------------------------
    # Page lifecycle
    # ------------------------------------------------------------------

    def on_page_enter(self, page: str) -> None:
        with self._lock:
            self._page_started[page] = self._clock.now()
            self._current_page = page
        self._store.dispatch(ContextEvent(ContextEventType.PAGE_VIEW, {"page": page}))

    def on_page_leave(self, page: str) -> None:
        """Record the visit to *page* and re-publish derived signals.

        A leave without a matching enter is ignored.
        """
        now = self._clock.now()
        with self._lock:
            started = self._page_started.pop(page, None)
            if self._current_page == page:
                self._current_page = None
        if started is None:
            logger.warning("Ignoring leave for page %r that was never entered.", page)
            return

        duration = max((now - started).total_seconds(), 0.0)
        context = self._store.dispatch(
            ContextEvent(
                ContextEventType.ADD_PAGE_VISIT,
                {"page": page, "timestamp": started, "duration": duration},
            )
        )

        engagement = infer_engagement_level(context)
        if engagement is not self._store.published_engagement:
            self._store.dispatch(
                ContextEvent(ContextEventType.UPDATE_ENGAGEMENT, {"level": engagement.value})
            )
            logger.debug("Engagement now %s.", engagement.value)

        stage = infer_journey_stage(context)
        if stage is not self._store.published_journey:
            self._store.dispatch(
                ContextEvent(ContextEventType.UPDATE_JOURNEY, {"stage": stage.value})
            )
            logger.debug("Journey stage now %s.", stage.value)

    # ------------------------------------------------------------------
    # In-page signals
    # ------------------------------------------------------------------

    def on_scroll(self, depth_percent: float) -> None:
        """Track scroll depth on the current page.

        Scrolling past ``SCROLL_INTEREST_THRESHOLD`` adds the page's section
        as an interest at ``DEFAULT_INTEREST_LEVEL`` unless already present.

        Raises:
            ValueError: If *depth_percent* is outside ``[0, 100]``.
        """
        if not 0 <= depth_percent <= 100:
            raise ValueError(f"scroll depth must be within [0, 100], got {depth_percent}")
        with self._lock:
            page = self._current_page
            if page is None:
                return
            self._max_scroll[page] = max(self._max_scroll.get(page, 0.0), depth_percent)

        if depth_percent <= config.SCROLL_INTEREST_THRESHOLD:
            return
        category = page_category(page)
        interests = self._store.read().interests
        if any(i.category == category for i in interests):
            return
        new_interest = Interest(category=category, level=config.DEFAULT_INTEREST_LEVEL)
        self._store.dispatch(
            ContextEvent(
                ContextEventType.UPDATE_INTERESTS,
                {"interests": interests + (new_interest,)},
            )
        )

    def max_scroll_depth(self, page: str) -> float:
        with self._lock:
            return self._max_scroll.get(page, 0.0)

    def on_click(self, target: str) -> None:
        self._store.dispatch(ContextEvent(ContextEventType.ADD_CLICK, {"target": target}))
        self._store.dispatch(
            ContextEvent(ContextEventType.UPDATE_RESONANCE, {"delta": config.CLICK_RESONANCE_DELTA})
        )

    def on_search(self, query: str) -> None:
        query = query.strip()
        if not query:
            return
        self._store.dispatch(ContextEvent(ContextEventType.ADD_SEARCH, {"query": query}))

    def on_hover(self, target: str, duration_ms: float) -> None:
        """Count hovers longer than ``HOVER_MIN_DURATION_MS`` as half an interaction."""
        if duration_ms <= config.HOVER_MIN_DURATION_MS:
            return
        self._store.dispatch(
            ContextEvent(
                ContextEventType.ADD_INTERACTION,
                {"target": target, "weight": config.HOVER_INTERACTION_WEIGHT},
            )
        )

    def update_location(
        self,
        coordinates: Coordinate | None = None,
        district: str | None = None,
        city: str | None = None,
    ) -> None:
        location = Location(coordinates=coordinates, district=district, city=city)
        self._store.dispatch(ContextEvent(ContextEventType.UPDATE_LOCATION, {"location": location}))
