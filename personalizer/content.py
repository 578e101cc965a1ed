"""Content classification and text helpers shared by the scorer and strategies."""

from __future__ import annotations

from personalizer.models import (
    Article,
    ContactAction,
    ContentType,
    Product,
    Store,
    TrainingProgram,
)

# Interest category -> words that identify matching content (type name or text).
CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "franchise": ("franchise", "join", "加盟"),
    "products": ("product", "equipment", "产品", "设备"),
    "training": ("training", "course", "培训", "课程"),
    "stores": ("store", "location", "门店", "俱乐部"),
}

# Content type -> click-target fragments that count as relevant prior clicks.
CLICK_KEYWORDS: dict[ContentType, tuple[str, ...]] = {
    ContentType.STORES: ("store", "map", "location"),
    ContentType.FRANCHISE: ("franchise", "join", "invest"),
    ContentType.TRAINING: ("training", "course", "learn"),
    ContentType.PRODUCTS: ("product", "buy", "price"),
}

_ARTICLE_TYPES = {
    "franchise": ContentType.FRANCHISE,
    "news": ContentType.NEWS,
    "faq": ContentType.FAQ,
}


def classify(content: object) -> ContentType | None:
    """Return the :class:`ContentType` of *content*, or ``None`` if unknown."""
    match content:
        case Store():
            return ContentType.STORES
        case TrainingProgram():
            return ContentType.TRAINING
        case Product():
            return ContentType.PRODUCTS
        case Article(category=category):
            return _ARTICLE_TYPES.get((category or "").lower(), ContentType.ABOUT)
        case ContactAction():
            return ContentType.CONTACT
        case _:
            return None


def is_store_like(content: object) -> bool:
    """True for stores whose position is known, i.e. distance can be computed."""
    return isinstance(content, Store) and content.coordinates is not None


def has_location(content: object) -> bool:
    return bool(
        getattr(content, "coordinates", None)
        or getattr(content, "district", None)
        or getattr(content, "city", None)
        or getattr(content, "address", None)
    )


def content_text(content: object) -> str:
    """Concatenated display text (name, title, description, features)."""
    parts: list[str] = []
    for attr in ("name", "title", "description"):
        value = getattr(content, attr, None)
        if value:
            parts.append(str(value))
    parts.extend(str(f) for f in getattr(content, "features", ()) or ())
    return " ".join(parts)


def content_fields(content: object) -> list[str]:
    """Lower-cased free-text fields searched for interest keywords."""
    fields: list[str] = []
    for attr in ("name", "title", "description", "category"):
        value = getattr(content, attr, None)
        if value:
            fields.append(str(value).lower())
    for attr in ("features", "tags"):
        fields.extend(str(v).lower() for v in getattr(content, attr, ()) or ())
    return fields


def matches_category(category: str, content: object) -> bool:
    """True if an interest *category* maps onto *content*.

    Matches either the content type name or the content text against the
    category's keyword list.  Unknown categories never match.
    """
    keywords = CATEGORY_KEYWORDS.get(category)
    if not keywords:
        return False
    content_type = classify(content)
    type_name = content_type.value if content_type else ""
    text = content_text(content).lower()
    return any(k in type_name or k in text for k in keywords)


def count_relevant_clicks(clicks: tuple[str, ...] | list[str], content: object) -> int:
    content_type = classify(content)
    patterns = CLICK_KEYWORDS.get(content_type, ()) if content_type else ()
    if not patterns:
        return 0
    return sum(
        1 for click in clicks
        if any(p in click.lower() for p in patterns)
    )
