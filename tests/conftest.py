"""Shared pytest fixtures for all personalizer tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from personalizer.clock import FixedClock
from personalizer.models import (
    Article,
    Behavior,
    ContentType,
    Interest,
    Location,
    Product,
    Store,
    TrainingProgram,
    TrainingSession,
    UserContext,
)
from personalizer.repositories import ContentRepository, NearbyStore, StoreRepository
from personalizer.scorer import ResonanceScorer

SITE_TZ = timezone(timedelta(hours=8))

# Tuesday, late morning: inside business hours, not a weekend, not evening.
NOW = datetime(2024, 6, 4, 11, 0, 0, tzinfo=SITE_TZ)
SATURDAY_EVENING = datetime(2024, 6, 1, 19, 0, 0, tzinfo=SITE_TZ)

VISITOR_COORDS = (102.71, 25.04)

# ---------------------------------------------------------------------------
# Clock / scorer
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def saturday_evening() -> datetime:
    return SATURDAY_EVENING


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def scorer(clock) -> ResonanceScorer:
    return ResonanceScorer(clock=clock)


# ---------------------------------------------------------------------------
# Content fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store_nearby() -> Store:
    """Roughly 0.78 km north of the visitor."""
    return Store(
        store_id="7",
        name="耶氏台球(翠湖店)",
        short_name="翠湖店",
        address="云南省昆明市五华区翠湖公园附近",
        coordinates=(102.71, 25.047),
        district="五华区",
        city="昆明市",
        business_hours="09:00-22:00",
    )


@pytest.fixture
def store_far() -> Store:
    return Store(
        store_id="20",
        name="耶氏台球(澄江店)",
        address="云南省玉溪市澄江市凤麓街道",
        coordinates=(102.9084, 24.6756),
        district="澄江市",
        city="玉溪市",
        business_hours="09:00-22:00",
    )


@pytest.fixture
def table_product() -> Product:
    return Product(
        product_id="p1",
        name="耶氏专业比赛台",
        brand="耶氏",
        category="table",
        price=28800,
        description="专业比赛级别台球桌",
    )


@pytest.fixture
def training_program() -> TrainingProgram:
    return TrainingProgram(
        program_id="t3",
        title="职业台球技术中级培训",
        description="提升球技，学习职业比赛技巧",
        duration="20课时",
        level="intermediate",
        schedule=(TrainingSession(starts_at=NOW + timedelta(days=10)),),
    )


@pytest.fixture
def about_article() -> Article:
    return Article(article_id="about", title="关于我们", description="西南地区台球连锁品牌")


@pytest.fixture
def franchise_article() -> Article:
    return Article(
        article_id="franchise",
        title="加盟耶氏台球",
        description="franchise support and training",
        category="franchise",
    )


# ---------------------------------------------------------------------------
# Context fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def new_context() -> UserContext:
    """A first-time visitor with no signals at all."""
    return UserContext()


@pytest.fixture
def visitor_location() -> Location:
    return Location(coordinates=VISITOR_COORDS, district="五华区", city="昆明市")


@pytest.fixture
def located_context(visitor_location) -> UserContext:
    return UserContext(location=visitor_location)


@pytest.fixture
def decision_context() -> UserContext:
    """Returning visitor who has spent >10 minutes and seen the franchise page."""
    return UserContext(
        visit_count=5,
        page_views=8,
        behavior=Behavior(
            total_time_spent_seconds=700,
            pages_visited=("/", "/franchise"),
            interaction_count=4,
        ),
    )


@pytest.fixture
def engaged_context() -> UserContext:
    """Three minutes on site with ten interactions: high engagement."""
    return UserContext(
        page_views=4,
        behavior=Behavior(total_time_spent_seconds=180, interaction_count=10),
    )


@pytest.fixture
def franchise_fan_context() -> UserContext:
    return UserContext(
        interests=(Interest(category="franchise", level=8, keywords=("加盟",)),),
    )


# ---------------------------------------------------------------------------
# Repository doubles
# ---------------------------------------------------------------------------


@pytest.fixture
def content_repository(about_article, franchise_article, table_product, training_program) -> MagicMock:
    """Async content repository double with one module per core type."""
    modules = {
        ContentType.ABOUT: about_article,
        ContentType.FRANCHISE: franchise_article,
        ContentType.PRODUCTS: Article(article_id="products", title="产品中心", category="products"),
        ContentType.TRAINING: Article(article_id="training", title="培训中心", category="training"),
    }
    items = {
        ContentType.PRODUCTS: [table_product],
        ContentType.TRAINING: [training_program],
    }
    repo = MagicMock(spec=ContentRepository)
    repo.get_by_type = AsyncMock(side_effect=lambda t: modules.get(t))
    repo.get_recommendations_for = AsyncMock(side_effect=lambda t: list(items.get(t, [])))
    return repo


@pytest.fixture
def store_repository(store_nearby) -> MagicMock:
    repo = MagicMock(spec=StoreRepository)
    repo.get_nearby = AsyncMock(return_value=[NearbyStore(store=store_nearby, distance_km=0.78)])
    repo.get_by_district = AsyncMock(return_value=[store_nearby])
    return repo
