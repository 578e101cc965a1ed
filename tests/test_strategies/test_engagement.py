"""Tests for EngagementStrategy."""

from __future__ import annotations

import asyncio

from personalizer.models import Behavior, ContentType, DisplayPosition, UserContext
from personalizer.strategies.engagement import EngagementStrategy


def _recommend(strategy, context, clock):
    return asyncio.run(strategy.recommend(context, clock.now()))


class TestEngagementStrategy:
    def test_low_engagement_gets_quick_intro(self, content_repository, new_context, clock) -> None:
        picks = _recommend(EngagementStrategy(content_repository), new_context, clock)
        assert len(picks) == 1
        assert picks[0].content_type is ContentType.ABOUT
        assert picks[0].payload["subtype"] == "quick_intro"
        assert picks[0].priority == 6

    def test_medium_engagement_gets_news_and_faq(self, content_repository, clock) -> None:
        ctx = UserContext(behavior=Behavior(total_time_spent_seconds=90, interaction_count=2))
        picks = _recommend(EngagementStrategy(content_repository), ctx, clock)
        assert [(p.content_type, p.priority) for p in picks] == [
            (ContentType.NEWS, 5),
            (ContentType.FAQ, 4),
        ]

    def test_high_engagement_gets_conversion_content(self, content_repository, engaged_context, clock) -> None:
        picks = _recommend(EngagementStrategy(content_repository), engaged_context, clock)
        by_type = {p.content_type: p for p in picks}
        assert by_type[ContentType.PRODUCTS].priority == 8
        assert by_type[ContentType.ACTION].payload["action"] == "download_brochure"
        chat = by_type[ContentType.CONTACT]
        assert chat.priority == 7
        assert chat.display_position is DisplayPosition.FOOTER

    def test_high_engagement_without_products_module(self, content_repository, engaged_context, clock) -> None:
        content_repository.get_by_type.side_effect = lambda t: None
        picks = _recommend(EngagementStrategy(content_repository), engaged_context, clock)
        assert ContentType.PRODUCTS not in {p.content_type for p in picks}
        assert len(picks) == 2
