"""Category Classifier Module

Normalizes free-text category and region labels into stable slugs and
resolves their display labels and sort order.

Key principles:
  - Records store category slugs (stable keys); pages display labels
  - Editorial overrides win over the built-in table; unknown slugs fall back
    to Title Case
  - Grouping is by slug, so it stays stable when labels change
  - Sorting is deterministic: by order, then by label
  - Every function is total: any input yields a valid slug/label
"""

import re
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, TypeVar

from .models import CategoryGroup, TaxonomyLabel

T = TypeVar("T")

OTHER_SLUG = "other"
UNKNOWN_ORDER = 900
OTHER_ORDER = 999

SEPARATOR_RE = re.compile(r"[\s_]+")
INVALID_CHARS_RE = re.compile(r"[^a-z0-9-]")
HYPHEN_RUN_RE = re.compile(r"-{2,}")


class CategoryConfig(NamedTuple):
    label: str
    order: int


CATEGORY_LABELS: Dict[str, CategoryConfig] = {
    # Prayer point categories
    "breakthrough": CategoryConfig("Breakthrough", 10),
    "healing": CategoryConfig("Healing", 20),
    "protection": CategoryConfig("Protection", 30),
    "peace-over-fear": CategoryConfig("Peace Over Fear", 40),
    "deliverance": CategoryConfig("Deliverance", 50),
    "provision": CategoryConfig("Provision", 60),
    "family": CategoryConfig("Family", 70),
    "encouragement": CategoryConfig("Encouragement", 80),
    "guidance": CategoryConfig("Guidance", 85),
    "faith": CategoryConfig("Faith", 90),
    "forgiveness": CategoryConfig("Forgiveness", 95),
    "gratitude": CategoryConfig("Gratitude", 100),
    "strength": CategoryConfig("Strength", 105),
    "wisdom": CategoryConfig("Wisdom", 110),
    # Situation categories
    "relationships": CategoryConfig("Relationships", 10),
    "work-career": CategoryConfig("Work & Career", 20),
    "health": CategoryConfig("Health", 30),
    "finances": CategoryConfig("Finances", 40),
    "spiritual-growth": CategoryConfig("Spiritual Growth", 50),
    "grief-loss": CategoryConfig("Grief & Loss", 60),
    "anxiety": CategoryConfig("Anxiety", 70),
    "depression": CategoryConfig("Depression", 75),
    "addiction": CategoryConfig("Addiction", 80),
    "parenting": CategoryConfig("Parenting", 85),
    "marriage": CategoryConfig("Marriage", 90),
    # Place and itinerary regions
    "israel": CategoryConfig("Israel", 200),
    "jordan": CategoryConfig("Jordan", 210),
    "egypt": CategoryConfig("Egypt", 220),
    "galilee": CategoryConfig("Galilee Region", 230),
    "judea": CategoryConfig("Judea Region", 240),
    "jerusalem": CategoryConfig("Jerusalem Area", 250),
    "negev": CategoryConfig("Negev Desert", 260),
    "samaria": CategoryConfig("Samaria", 270),
    # Fallback
    OTHER_SLUG: CategoryConfig("Other", OTHER_ORDER),
}


def normalize_slug(value: Any) -> str:
    """Normalize a category input to a slug.

    - Trims whitespace and lowercases
    - Replaces whitespace/underscore runs with a single hyphen
    - Removes characters outside [a-z0-9-]
    - Collapses repeated hyphens and trims leading/trailing hyphens
    - Returns "other" when nothing usable remains (None, "", "!!!", non-strings)

    Examples:
        >>> normalize_slug("Peace Over Fear")
        'peace-over-fear'
        >>> normalize_slug("  HEALING  ")
        'healing'
        >>> normalize_slug(None)
        'other'
    """
    if not isinstance(value, str):
        return OTHER_SLUG
    slug = SEPARATOR_RE.sub("-", value.strip().lower())
    slug = INVALID_CHARS_RE.sub("", slug)
    slug = HYPHEN_RUN_RE.sub("-", slug).strip("-")
    return slug or OTHER_SLUG


def title_case(slug: str) -> str:
    """'peace-over-fear' -> 'Peace Over Fear'"""
    return " ".join(word[:1].upper() + word[1:] for word in slug.split("-") if word)


def _sort_key(config: CategoryConfig):
    return (config.order, config.label.casefold(), config.label)


class CategoryClassifier:
    """Resolves labels and order for category slugs.

    Args:
        overrides: Editorial TaxonomyLabel rows; they take precedence over the
            built-in table. Rows without a sort order get the unknown order (900).
    """

    def __init__(self, overrides: Optional[Iterable[TaxonomyLabel]] = None):
        self._labels: Dict[str, CategoryConfig] = dict(CATEGORY_LABELS)
        for row in overrides or ():
            slug = normalize_slug(row.key)
            order = row.sort_order if row.sort_order is not None else UNKNOWN_ORDER
            self._labels[slug] = CategoryConfig(row.label, order)

    def config_for(self, value: Any) -> CategoryConfig:
        slug = normalize_slug(value)
        config = self._labels.get(slug) or CategoryConfig(title_case(slug), UNKNOWN_ORDER)
        if slug == OTHER_SLUG:
            # "other" always sorts last, whatever an override says
            return CategoryConfig(config.label, OTHER_ORDER)
        return config

    def label_for(self, value: Any) -> str:
        return self.config_for(value).label

    def order_for(self, value: Any) -> int:
        return self.config_for(value).order

    def sort_slugs(self, slugs: Iterable[Any]) -> List[str]:
        """Normalized, de-duplicated slugs sorted by (order, label)."""
        unique = {normalize_slug(s) for s in slugs}
        return sorted(unique, key=lambda s: _sort_key(self.config_for(s)))

    def group_by(self, items: Iterable[T], get_slug: Callable[[T], Any]) -> List[CategoryGroup]:
        """Bucket items by normalized slug; groups sorted by (order, label).

        Items keep their input order inside each group.
        """
        groups: Dict[str, CategoryGroup] = {}
        for item in items:
            slug = normalize_slug(get_slug(item))
            group = groups.get(slug)
            if group is None:
                config = self.config_for(slug)
                group = CategoryGroup(slug=slug, label=config.label, order=config.order, items=[])
                groups[slug] = group
            group.items.append(item)

        return sorted(groups.values(), key=lambda g: (g.order, g.label.casefold(), g.label))

    def known_options(self) -> List[Dict[str, str]]:
        """All configured categories as {slug, label} pairs, sorted for forms."""
        ordered = sorted(self._labels.items(), key=lambda kv: _sort_key(kv[1]))
        return [{"slug": slug, "label": config.label} for slug, config in ordered]


_default_classifier = CategoryClassifier()


def label_for(value: Any) -> str:
    return _default_classifier.label_for(value)


def order_for(value: Any) -> int:
    return _default_classifier.order_for(value)


def group_by(items: Iterable[T], get_slug: Callable[[T], Any]) -> List[CategoryGroup]:
    return _default_classifier.group_by(items, get_slug)
