"""Core domain dataclasses shared across all personalizer modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

# (longitude, latitude), matching the order used by the store data.
Coordinate = tuple[float, float]


class JourneyStage(str, Enum):
    """Inferred marketing-funnel position of a visitor."""

    AWARENESS = "awareness"
    INTEREST = "interest"
    CONSIDERATION = "consideration"
    DECISION = "decision"


class EngagementLevel(str, Enum):
    """Coarse activity-intensity classification of a visitor."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResonanceStrength(str, Enum):
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    PERFECT = "perfect"


class DisplayPosition(str, Enum):
    HERO = "hero"
    SIDEBAR = "sidebar"
    FOOTER = "footer"
    MODAL = "modal"


class ContentType(str, Enum):
    """Recommendable content categories.

    The first five have rows in the journey table; the rest score the neutral
    journey value.
    """

    ABOUT = "about"
    STORES = "stores"
    PRODUCTS = "products"
    FRANCHISE = "franchise"
    TRAINING = "training"
    NEWS = "news"
    FAQ = "faq"
    CONTACT = "contact"
    ACTION = "action"


# ---------------------------------------------------------------------------
# Visitor context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Location:
    coordinates: Coordinate | None = None
    district: str | None = None
    city: str | None = None


@dataclass(frozen=True)
class Interest:
    """A declared or inferred interest.

    Attributes:
        category: One of ``franchise``, ``training``, ``products``, ``stores``
            or a page category inferred from scrolling (``about``, ``home``...).
        level: Strength on a 0–10 scale.
        keywords: Free-text keywords matched against content text.
    """

    category: str
    level: float
    keywords: tuple[str, ...] = ()


@dataclass(frozen=True)
class PageVisit:
    page: str
    timestamp: datetime
    duration_seconds: float


@dataclass(frozen=True)
class Behavior:
    """Running behavioural counters for a visitor.

    Attributes:
        total_time_spent_seconds: Cumulative dwell time across closed pages.
        search_queries: Every site search, in order.
        clicked_elements: Click target identifiers, in order.
        pages_visited: Distinct page paths, in first-visit order.
        interaction_count: Weighted interaction counter (clicks count 1,
            long hovers 0.5) used by the engagement rule.
    """

    total_time_spent_seconds: float = 0.0
    search_queries: tuple[str, ...] = ()
    clicked_elements: tuple[str, ...] = ()
    pages_visited: tuple[str, ...] = ()
    interaction_count: float = 0.0


@dataclass(frozen=True)
class UserContext:
    """Immutable snapshot of everything known about one visitor.

    Snapshots are produced by :class:`~personalizer.context_store.ContextStore`
    and only ever replaced, never mutated.  Journey stage and engagement level
    are deliberately absent: they are derived on demand by
    :mod:`personalizer.inference`.

    ``behavior`` is ``None`` until the first behavioural event arrives, which
    lets the scorer tell a brand-new visitor apart from a quiet one.
    """

    visit_count: int = 1
    page_views: int = 0
    location: Location | None = None
    interests: tuple[Interest, ...] = ()
    behavior: Behavior | None = None
    visit_history: tuple[PageVisit, ...] = ()
    resonance: float = 0.0

    @property
    def coordinates(self) -> Coordinate | None:
        return self.location.coordinates if self.location else None

    @property
    def search_queries(self) -> tuple[str, ...]:
        return self.behavior.search_queries if self.behavior else ()

    @property
    def total_time_spent_seconds(self) -> float:
        return self.behavior.total_time_spent_seconds if self.behavior else 0.0


# ---------------------------------------------------------------------------
# Content (tagged union)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Store:
    store_id: str
    name: str
    address: str = ""
    coordinates: Coordinate | None = None
    district: str | None = None
    city: str | None = None
    business_hours: str = ""
    short_name: str = ""
    phone: str = ""
    rating: float | None = None
    features: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class Product:
    product_id: str
    name: str
    brand: str = ""
    category: str = ""
    price: float | None = None
    description: str = ""
    features: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class TrainingSession:
    starts_at: datetime
    location: str = ""


@dataclass(frozen=True)
class TrainingProgram:
    program_id: str
    title: str
    description: str = ""
    duration: str = ""
    level: str = ""
    category: str = ""
    price: float | None = None
    schedule: tuple[TrainingSession, ...] = ()
    features: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class Article:
    """Editorial content: company overview, franchise brochure, news, FAQ."""

    article_id: str
    title: str
    description: str = ""
    category: str = "about"
    district: str | None = None
    city: str | None = None
    features: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class ContactAction:
    """Pseudo-content asking the visitor to get in touch."""

    action: str
    title: str = ""
    phone: str = ""
    working_hours: str = ""


ContentItem = Union[Store, Product, TrainingProgram, Article, ContactAction]


# ---------------------------------------------------------------------------
# Scoring and recommendation output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResonanceComponents:
    interest: float
    location: float
    behavior: float
    temporal: float
    journey: float

    def as_dict(self) -> dict[str, float]:
        return {
            "interest": self.interest,
            "location": self.location,
            "behavior": self.behavior,
            "temporal": self.temporal,
            "journey": self.journey,
        }


@dataclass(frozen=True)
class ResonanceResult:
    """Relevance of one content item for one visitor snapshot.

    Attributes:
        score: Weighted total in ``[0, 1]``.
        components: Per-dimension scores, each in ``[0, 1]``.
        strength: Bucketed ``score``.
        reasons: Human-readable explanations; never empty.
    """

    score: float
    components: ResonanceComponents
    strength: ResonanceStrength
    reasons: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "components": self.components.as_dict(),
            "strength": self.strength.value,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class RecommendationItem:
    """A single pick produced by a recommendation strategy.

    Attributes:
        content_type: What kind of content the pick points at.
        payload: Presentation data.  Carries a ``subtype`` or an ``action``
            key that, together with ``content_type``, identifies the pick.
        priority: Higher sorts first.
        reason: Short human-readable explanation.
        display_position: Preferred slot, if any.
        expires_at: Time after which the pick should no longer be shown.
        contents: Content items backing the pick, if it was built from
            repository lookups.
    """

    content_type: ContentType
    payload: dict[str, Any]
    priority: int
    reason: str
    display_position: DisplayPosition | None = None
    expires_at: datetime | None = None
    contents: tuple[ContentItem, ...] = field(default=())

    @property
    def dedup_key(self) -> tuple[str, str]:
        discriminator = self.payload.get("subtype") or self.payload.get("action") or ""
        return (self.content_type.value, str(discriminator))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "content_type": self.content_type.value,
            "payload": self.payload,
            "priority": self.priority,
            "reason": self.reason,
        }
        if self.display_position is not None:
            data["display_position"] = self.display_position.value
        if self.expires_at is not None:
            data["expires_at"] = self.expires_at.isoformat()
        return data
