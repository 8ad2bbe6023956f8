"""Graph links shown beside detail pages: linked verses and related entities."""

from typing import Iterable, List, Sequence, Tuple

from .models import BaseRecord, EntityType, LinkType, Passage, RelatedLink
from .related import RelatedLinksResolver
from .routes import passage_route

DEFAULT_GRAPH_LIMIT = 8
DESCRIPTION_MAX_CHARS = 100


def _truncate(text: str, max_chars: int = DESCRIPTION_MAX_CHARS) -> str:
    text = " ".join(text.split())
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 1].rstrip() + "…"


def build_passage_graph_links(
    rows: Iterable[Tuple[Passage, float]],
    limit: int = DEFAULT_GRAPH_LIMIT,
) -> List[RelatedLink]:
    """Verse links for a record, sorted by relevance desc then reference asc.

    Args:
        rows: ``(passage, relevance_score)`` pairs, e.g. from
            ``ContentStore.passage_links_for``
        limit: Maximum number of links

    Returns:
        Links whose description is the verse snippet, or ``Relevance: N``
        when the passage has no text
    """
    ordered = sorted(rows, key=lambda row: (-row[1], row[0].reference))
    links: List[RelatedLink] = []
    seen = set()
    for passage, relevance in ordered:
        href = passage_route(passage.book_id, passage.chapter, passage.verse_number)
        if href in seen:
            continue
        seen.add(href)
        text = passage.text
        links.append(
            RelatedLink(
                href=href,
                title=passage.reference,
                description=_truncate(text) if text.strip() else f"Relevance: {relevance:g}",
                link_type=LinkType.VERSE,
            )
        )
        if len(links) >= limit:
            break
    return links


def entity_graph_links(
    resolver: RelatedLinksResolver,
    entity_type: EntityType,
    record: BaseRecord,
    limit: int = DEFAULT_GRAPH_LIMIT,
) -> List[RelatedLink]:
    """Related entity links sorted by title."""
    links = resolver.related_links(entity_type, record)
    return sorted(links, key=lambda link: (link.title.casefold(), link.href))[:limit]


def graph_link_set(
    passage_links: Sequence[RelatedLink],
    entity_links: Sequence[RelatedLink],
) -> List[RelatedLink]:
    """Verse links followed by entity links, de-duplicated by href."""
    merged: List[RelatedLink] = []
    seen = set()
    for link in list(passage_links) + list(entity_links):
        if link.href not in seen:
            seen.add(link.href)
            merged.append(link)
    return merged
