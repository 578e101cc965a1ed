"""Recommendation composer: runs the strategies and merges their picks."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Sequence

import config
from personalizer.clock import Clock, SystemClock
from personalizer.inference import infer_journey_stage, primary_interest
from personalizer.models import (
    ContentType,
    JourneyStage,
    RecommendationItem,
    UserContext,
)
from personalizer.strategies.base import RecommendationStrategy

logger = logging.getLogger(__name__)

_DOWNLOAD_FRANCHISE_MATERIALS = "Download franchise materials"


class RecommendationComposer:
    """Fans out to every strategy and fans the results back in.

    Strategies run concurrently over the same context snapshot, each under
    its own timeout.  Their outputs are concatenated in strategy order,
    deduplicated on :attr:`~personalizer.models.RecommendationItem.dedup_key`
    (first occurrence wins) and stably sorted by descending priority.

    **Degradation**: a strategy that raises or times out is logged and
    contributes nothing.  If *every* strategy fails, the fixed default list
    (company overview, store network, contact card) is returned instead.
    :meth:`recommend` never raises into the caller.

    Args:
        strategies: Strategies in tie-break order (journey, interest,
            engagement, location, temporal).
        clock: Source of the request time shared by all strategies.
        strategy_timeout: Seconds each strategy may take.
    """

    def __init__(
        self,
        strategies: Sequence[RecommendationStrategy],
        clock: Clock | None = None,
        strategy_timeout: float | None = None,
    ) -> None:
        self._strategies = list(strategies)
        self._clock = clock or SystemClock(config.SITE_UTC_OFFSET_HOURS)
        self._timeout = (
            strategy_timeout if strategy_timeout is not None else config.STRATEGY_TIMEOUT_SECONDS
        )

    async def recommend(self, context: UserContext) -> list[RecommendationItem]:
        """Return the merged, priority-ordered picks for *context*.

        Args:
            context: Visitor snapshot; never mutated.

        Returns:
            Deduplicated picks, highest priority first.
        """
        now = self._clock.now()
        results = await asyncio.gather(
            *(self._run(strategy, context, now) for strategy in self._strategies),
            return_exceptions=True,
        )

        merged: list[RecommendationItem] = []
        failures = 0
        for strategy, result in zip(self._strategies, results):
            if isinstance(result, BaseException):
                failures += 1
                logger.warning(
                    "Strategy %r failed; dropping its picks: %r", strategy.name, result
                )
                continue
            merged.extend(result)

        if self._strategies and failures == len(self._strategies):
            logger.warning("All %d strategies failed; serving default picks.", failures)
            return default_recommendations()

        picks = sorted(deduplicate(merged), key=lambda item: item.priority, reverse=True)
        logger.debug("Composed %d picks from %d candidates.", len(picks), len(merged))
        return picks

    def next_actions(self, context: UserContext) -> list[str]:
        """Return up to ``config.NEXT_ACTIONS_LIMIT`` short suggested actions.

        Composed in order from the journey stage, the primary interest, search
        behaviour and repeat visits.  Duplicates are dropped by exact match.
        """
        actions: list[str] = []
        stage = infer_journey_stage(context)

        if stage is JourneyStage.AWARENESS:
            actions.append("Read about us to get to know the brand")
            if context.location is None:
                actions.append("Turn on location to find stores near you")
        elif stage is JourneyStage.INTEREST:
            if context.location is not None:
                actions.append("View details of nearby stores")
                actions.append("Book an in-store visit")
            actions.append("Browse the product center")
        elif stage is JourneyStage.CONSIDERATION:
            actions.append(_DOWNLOAD_FRANCHISE_MATERIALS)
            actions.append("Review franchise success stories")
            actions.append("Estimate your return on investment")
            if context.total_time_spent_seconds > 300:
                actions.append("Chat online about franchise details")
        else:
            actions.append(f"Call the hotline: {config.HOTLINE}")
            actions.append("Fill in the franchise application")
            actions.append("Book an on-site visit")

        interest = primary_interest(context)
        if interest is not None:
            if interest.category == "franchise":
                if _DOWNLOAD_FRANCHISE_MATERIALS not in actions:
                    actions.append("Learn the franchise advantages")
            elif interest.category == "training":
                actions.append("See the training schedule")
            elif interest.category == "products":
                actions.append("Get a product quote")

        if context.search_queries:
            actions.append("See more related content")

        if context.visit_count > 3:
            actions.append("Talk to a human for a tailored plan")

        unique: list[str] = []
        for action in actions:
            if action not in unique:
                unique.append(action)
        return unique[: config.NEXT_ACTIONS_LIMIT]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(
        self,
        strategy: RecommendationStrategy,
        context: UserContext,
        now: datetime,
    ) -> list[RecommendationItem]:
        return await asyncio.wait_for(strategy.recommend(context, now), timeout=self._timeout)


def deduplicate(items: Sequence[RecommendationItem]) -> list[RecommendationItem]:
    """Drop picks whose ``dedup_key`` was already seen, keeping the first."""
    seen: set[tuple[str, str]] = set()
    unique: list[RecommendationItem] = []
    for item in items:
        if item.dedup_key in seen:
            continue
        seen.add(item.dedup_key)
        unique.append(item)
    return unique


def default_recommendations() -> list[RecommendationItem]:
    """Fixed picks served when no strategy produced a usable result."""
    return [
        RecommendationItem(
            content_type=ContentType.ABOUT,
            payload={"subtype": "company_overview", "title": "About us"},
            priority=8,
            reason="Get to know us",
        ),
        RecommendationItem(
            content_type=ContentType.STORES,
            payload={"subtype": "store_network", "title": "Store network", "show_all": True},
            priority=7,
            reason="See all our stores",
        ),
        RecommendationItem(
            content_type=ContentType.CONTACT,
            payload={
                "action": "show_contact",
                "phone": config.HOTLINE,
                "working_hours": config.CONTACT_WORKING_HOURS,
            },
            priority=6,
            reason="Contact us",
        ),
    ]
