"""Route Registry Module

Deterministic route patterns for every entity type, the hub (listing) page
of each section, and the link-graph helpers used by the click-depth check:

  - Build detail and passage URLs from slugs / passage coordinates
  - Extract internal links from markup and normalize paths
  - Compute shortest click paths from the home page (BFS)
"""

import re
from collections import deque
from typing import Dict, Iterable, List, NamedTuple, Optional, Set
from urllib.parse import urlsplit

from .markup import extract_hrefs
from .models import EntityType

HOME_PATH = "/"

ROUTE_PATTERNS: Dict[EntityType, str] = {
    EntityType.PLACE: "/bible-places/:slug",
    EntityType.SITUATION: "/bible-verses-for/:slug",
    EntityType.PROFESSION: "/bible-verses-for/:slug",
    EntityType.PRAYER_POINT: "/prayer-points/:slug",
    EntityType.NAME: "/meaning-of/:slug/in-the-bible",
    EntityType.ITINERARY: "/bible-travel/:slug",
}

# Hub (listing) page path -> entity type it lists
HUB_PAGES: Dict[str, EntityType] = {
    "/bible-places": EntityType.PLACE,
    "/situations": EntityType.SITUATION,
    "/professions": EntityType.PROFESSION,
    "/prayer-points": EntityType.PRAYER_POINT,
    "/names": EntityType.NAME,
    "/bible-travel": EntityType.ITINERARY,
}

HUB_LABELS: Dict[EntityType, str] = {
    EntityType.PLACE: "Bible Places",
    EntityType.SITUATION: "Bible Verses",
    EntityType.PROFESSION: "Professions",
    EntityType.PRAYER_POINT: "Prayer Points",
    EntityType.NAME: "Biblical Names",
    EntityType.ITINERARY: "Bible Travel",
}

for _table in (ROUTE_PATTERNS, HUB_LABELS):
    if set(_table) != set(EntityType):
        raise RuntimeError("route tables must cover every entity type")

STATIC_PUBLIC_ROUTES: List[str] = sorted([
    "/",
    "/about",
    "/editorial-process",
    "/prayer-points",
    "/prayer-points/today",
    "/bible-places",
    "/bible-travel",
    "/situations",
    "/professions",
    "/names",
    "/search",
])

EXCLUDED_PATTERNS = [
    re.compile(r"^/admin"),
    re.compile(r"^/api/"),
    re.compile(r"^/_next"),
    re.compile(r"^/sitemap"),
    re.compile(r"^/robots"),
    re.compile(r"^/favicon"),
    re.compile(r"^/login"),
    re.compile(r"^/manifest"),
    re.compile(r"^/sw\.js"),
]

SITE_HOSTS = ("thelordwill.com", "localhost")


def build_route_url(pattern: str, slug: str) -> str:
    return pattern.replace(":slug", slug)


def route_for(entity_type: EntityType, slug: str) -> str:
    """Detail page path for a record."""
    return build_route_url(ROUTE_PATTERNS[entity_type], slug)


def hub_for(entity_type: EntityType) -> str:
    for hub, hub_type in HUB_PAGES.items():
        if hub_type == entity_type:
            return hub
    raise KeyError(entity_type)


def passage_route(book_id: int, chapter: int, verse_number: int) -> str:
    return f"/verse/{book_id}/{chapter}/{verse_number}"


def is_excluded_route(path: str) -> bool:
    return any(pattern.search(path) for pattern in EXCLUDED_PATTERNS)


def normalize_path(path: str) -> str:
    """Drop query string, fragment and trailing slashes (root stays "/")."""
    path = path.split("?", 1)[0].split("#", 1)[0]
    return path.rstrip("/") or "/"


def internal_path(href: str, site_hosts: Iterable[str] = SITE_HOSTS) -> Optional[str]:
    """Return the site-relative path of ``href``, or None for external targets.

    Relative paths, hash links, ``mailto:`` and ``javascript:`` targets are
    not navigable pages and also return None.
    """
    if href.startswith("//"):
        return None
    if href.startswith("/"):
        return href
    if href.startswith(("http://", "https://")):
        parts = urlsplit(href)
        host = parts.hostname or ""
        if any(host == h or host.endswith("." + h) for h in site_hosts):
            return parts.path or "/"
    return None


def extract_internal_links(markup: Optional[str]) -> List[str]:
    """Unique, sorted, normalized internal paths linked from ``markup``."""
    links: Set[str] = set()
    for href in extract_hrefs(markup):
        path = internal_path(href)
        if path is None:
            continue
        path = normalize_path(path)
        if not is_excluded_route(path):
            links.add(path)
    return sorted(links)


class GraphNode(NamedTuple):
    depth: int
    path: List[str]


def compute_depths(graph: Dict[str, Set[str]], source: str = HOME_PATH) -> Dict[str, GraphNode]:
    """Shortest click path from ``source`` to every reachable node (BFS)."""
    depths: Dict[str, GraphNode] = {source: GraphNode(0, [source])}
    queue = deque([source])

    while queue:
        url = queue.popleft()
        current = depths[url]
        for neighbor in sorted(graph.get(url, ())):
            if neighbor in depths:
                continue
            depths[neighbor] = GraphNode(current.depth + 1, current.path + [neighbor])
            queue.append(neighbor)

    return depths
