"""Breadcrumb Builder Module

Builds fixed-depth navigation trails. Every detail page gets exactly three
items (Home -> section hub -> record), so every published record is reachable
from the home page in at most three hops by construction.
"""

from typing import Any, List, Optional
from urllib.parse import quote

from .categories import CategoryClassifier, label_for
from .models import BreadcrumbItem, EntityType, HubLink, coerce_entity_type
from .routes import HOME_PATH, HUB_LABELS, hub_for, route_for

HOME_LABEL = "Home"

HUB_DESCRIPTIONS = {
    EntityType.PLACE: "Explore sacred sites from Scripture and plan your Christian pilgrimage.",
    EntityType.ITINERARY: "Ready-to-use pilgrimage itineraries with daily readings.",
    EntityType.SITUATION: "Find comfort and guidance through Bible verses for life's moments.",
    EntityType.PROFESSION: "Discover biblical wisdom relevant to your profession and calling.",
    EntityType.PRAYER_POINT: "Scripture-anchored prayer topics with curated verses.",
    EntityType.NAME: "Explore the deep meanings behind biblical names.",
}

# Home page hub order
HUB_ORDER = (
    EntityType.PLACE,
    EntityType.ITINERARY,
    EntityType.SITUATION,
    EntityType.PROFESSION,
    EntityType.PRAYER_POINT,
    EntityType.NAME,
)

HUB_NAV_LABELS = {
    EntityType.PLACE: "Biblical Places",
    EntityType.ITINERARY: "Bible Travel",
    EntityType.SITUATION: "Verses for Situations",
    EntityType.PROFESSION: "Verses for Professions",
    EntityType.PRAYER_POINT: "Prayer Points",
    EntityType.NAME: "Biblical Names",
}

EXPLORE_MORE_LIMIT = 4

# Hub used for entity types this site has no section for
FALLBACK_HUB_LABEL = "Explore"
FALLBACK_HUB_PATH = "/search"


def _home() -> BreadcrumbItem:
    return BreadcrumbItem(label=HOME_LABEL, href=HOME_PATH, position=1)


def hub_breadcrumbs(entity_type: Any) -> List[BreadcrumbItem]:
    """Trail for a section hub (listing) page: Home -> hub.

    Accepts enum members or their string tags (including ``prayerPoint``).
    Unknown types get the generic Explore hub.
    """
    kind = coerce_entity_type(entity_type)
    if kind is None:
        hub = BreadcrumbItem(label=FALLBACK_HUB_LABEL, href=FALLBACK_HUB_PATH, position=2)
    else:
        hub = BreadcrumbItem(label=HUB_LABELS[kind], href=hub_for(kind), position=2)
    return [_home(), hub]


def _record_href(entity_type: Any, slug: str) -> str:
    kind = coerce_entity_type(entity_type)
    if kind is None:
        return f"{FALLBACK_HUB_PATH}?q={quote(slug)}"
    return route_for(kind, slug)


def breadcrumbs_for(
    entity_type: Any,
    title: Optional[str],
    slug: Optional[str],
    classifier: Optional[CategoryClassifier] = None,
) -> List[BreadcrumbItem]:
    """Trail for a detail page: Home (1) -> hub (2) -> record (3).

    A blank title falls back to the category label of the slug, so the last
    item always has readable text.
    """
    slug = (slug or "").strip()
    label = (title or "").strip()
    if not label:
        label = classifier.label_for(slug) if classifier else label_for(slug)

    trail = hub_breadcrumbs(entity_type)
    trail.append(BreadcrumbItem(label=label, href=_record_href(entity_type, slug), position=3))
    return trail


def hub_links() -> List[HubLink]:
    """Primary section links for the home page (depth 0 -> 1)."""
    return [
        HubLink(
            href=hub_for(entity_type),
            label=HUB_NAV_LABELS[entity_type],
            description=HUB_DESCRIPTIONS[entity_type],
            priority=priority,
        )
        for priority, entity_type in enumerate(HUB_ORDER, start=1)
    ]


def explore_more_links(current_section: str) -> List[HubLink]:
    """Hub links for listing pages, excluding the current section."""
    current = current_section if current_section.startswith("/") else f"/{current_section}"
    return [hub for hub in hub_links() if hub.href != current][:EXPLORE_MORE_LIMIT]
