"""Abstract base class for all recommendation strategies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from personalizer.models import (
    ContentItem,
    ContentType,
    DisplayPosition,
    RecommendationItem,
    UserContext,
)


class RecommendationStrategy(ABC):
    """Abstract base class for all recommendation strategies.

    Each strategy encapsulates a single recommendation rule set (journey,
    interest, engagement, location or temporal).  The
    :class:`~personalizer.composer.RecommendationComposer` runs every strategy
    concurrently over the same context snapshot and merges their picks, so a
    strategy must treat *context* as read-only and must not depend on any
    other strategy's output.
    """

    #: Short identifier used in log messages.
    name: str = "strategy"

    @abstractmethod
    async def recommend(
        self,
        context: UserContext,
        now: datetime,
    ) -> list[RecommendationItem]:
        """Return zero or more picks for *context*.

        Args:
            context: The visitor snapshot.
            now: Request time, shared by all strategies in one composition.

        Returns:
            Picks in the strategy's preferred order.  Priorities are absolute;
            the composer does the final ordering.

        Raises:
            LookupFailure: If a repository call fails.  The composer drops the
                strategy's contribution and carries on.
        """


def module_pick(
    content_type: ContentType,
    module: ContentItem,
    priority: int,
    reason: str,
    position: DisplayPosition | None = None,
) -> RecommendationItem:
    """Wrap a repository overview module as a pick keyed by its content type."""
    return RecommendationItem(
        content_type=content_type,
        payload={
            "subtype": content_type.value,
            "title": getattr(module, "title", "") or getattr(module, "name", ""),
        },
        priority=priority,
        reason=reason,
        display_position=position,
        contents=(module,),
    )
