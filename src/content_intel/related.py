"""Entity Relationship Resolver Module

Computes the "related content" links shown on every detail page. Each entity
type has an ordered plan of steps; results of each step are appended in plan
order (never re-sorted) until the cap of 6 links is reached.

Step kinds:
  - SameAttribute: same type, sharing a normalized attribute (category,
    region, origin...), ordered by a priority attribute then title
  - SharedPassages: records of another type referencing one of the source's
    first 10 passages, in store order
  - KeywordOverlap: records of a type whose title/category/region contains a
    keyword taken from the source

Only published candidates are returned, the source record is never linked,
and links are de-duplicated by href across steps.

Store failures surface as ``RelatedLinksError``; an empty list always means
"no relations", never "lookup failed".
"""

import logging
import re
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

from .categories import normalize_slug
from .models import BaseRecord, EntityType, LinkType, RelatedLink, coerce_entity_type
from .routes import route_for
from .store import ContentStore, StoreError, StoreUnavailableError

logger = logging.getLogger(__name__)

MAX_RELATED_LINKS = 6
SAME_ATTRIBUTE_LIMIT = 3
PASSAGE_SAMPLE_SIZE = 10
MAX_KEYWORDS = 3
DEFAULT_MAX_ATTEMPTS = 2

KEYWORD_SPLIT_RE = re.compile(r"[\s,\-_/]+")
NON_WORD_RE = re.compile(r"[^a-z0-9]")


class RelatedLinksError(RuntimeError):
    """The store failed while resolving related links."""

    def __init__(self, entity_type: EntityType, step: str, message: str):
        super().__init__(f"Related links failed for {entity_type.value} at step '{step}': {message}")
        self.entity_type = entity_type
        self.step = step


# ---------------------------------------------------------------------------
# Plan steps
# ---------------------------------------------------------------------------


class SameAttribute(NamedTuple):
    """Same-type records sharing the first present attribute in ``attributes``."""

    attributes: Tuple[str, ...]
    order_by: str
    descending: bool = True
    limit: int = SAME_ATTRIBUTE_LIMIT

    @property
    def name(self) -> str:
        return "same-" + "/".join(self.attributes)


class SharedPassages(NamedTuple):
    target: EntityType
    limit: int

    @property
    def name(self) -> str:
        return f"shared-passages:{self.target.value}"


class KeywordOverlap(NamedTuple):
    target: EntityType
    limit: int
    source_fields: Tuple[str, ...] = ("title", "category")
    target_fields: Tuple[str, ...] = ("title", "category")
    seed_words: Tuple[str, ...] = ()
    min_length: int = 4

    @property
    def name(self) -> str:
        return f"keywords:{self.target.value}"


PlanStep = Union[SameAttribute, SharedPassages, KeywordOverlap]

RELATED_PLANS: Dict[EntityType, Tuple[PlanStep, ...]] = {
    EntityType.PLACE: (
        SameAttribute(("region", "country"), "tour_priority"),
        SharedPassages(EntityType.SITUATION, 2),
        KeywordOverlap(
            EntityType.ITINERARY,
            2,
            source_fields=("region", "country"),
            target_fields=("region",),
            min_length=3,
        ),
    ),
    EntityType.SITUATION: (
        SameAttribute(("category",), "updated_at"),
        SharedPassages(EntityType.PLACE, 2),
        KeywordOverlap(EntityType.PRAYER_POINT, 2),
    ),
    EntityType.PROFESSION: (
        SameAttribute(("category",), "updated_at"),
        SharedPassages(EntityType.SITUATION, 3),
        KeywordOverlap(
            EntityType.SITUATION,
            2,
            seed_words=("work", "guidance", "stress", "wisdom"),
        ),
    ),
    EntityType.PRAYER_POINT: (
        SameAttribute(("category",), "priority"),
        SharedPassages(EntityType.PLACE, 2),
        KeywordOverlap(EntityType.SITUATION, 2),
    ),
    EntityType.NAME: (
        SameAttribute(("origin",), "title", descending=False),
        SharedPassages(EntityType.SITUATION, 2),
        SharedPassages(EntityType.PLACE, 2),
        KeywordOverlap(EntityType.PRAYER_POINT, 2, source_fields=("title", "meaning")),
    ),
    EntityType.ITINERARY: (
        SameAttribute(("region",), "days", descending=False),
        SharedPassages(EntityType.PLACE, 2),
        KeywordOverlap(
            EntityType.PLACE,
            2,
            source_fields=("region",),
            target_fields=("region", "country"),
            min_length=3,
        ),
    ),
}

_missing_plans = set(EntityType) - set(RELATED_PLANS)
if _missing_plans:
    raise RuntimeError(f"RELATED_PLANS is missing entity types: {sorted(m.value for m in _missing_plans)}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _text(record: BaseRecord, field: str) -> str:
    value = getattr(record, field, None)
    return value if isinstance(value, str) else ""


def extract_keywords(values: Sequence[str], min_length: int = 4, limit: int = MAX_KEYWORDS) -> List[str]:
    """Distinct lowercase words of at least ``min_length`` chars, in order.

    >>> extract_keywords(["Anxiety at Work", "work-career"])
    ['anxiety', 'work', 'career']
    """
    keywords: List[str] = []
    for value in values:
        for token in KEYWORD_SPLIT_RE.split(value.lower()):
            word = NON_WORD_RE.sub("", token)
            if len(word) >= min_length and word not in keywords:
                keywords.append(word)
    return keywords[:limit]


def _sort_candidates(records: List[BaseRecord], order_by: str, descending: bool) -> List[BaseRecord]:
    # Title ascending is the secondary key; apply it first (sorts are stable)
    ordered = sorted(records, key=lambda r: (r.title.casefold(), r.title))
    present = [r for r in ordered if getattr(r, order_by, None) is not None]
    absent = [r for r in ordered if getattr(r, order_by, None) is None]
    present.sort(key=lambda r: getattr(r, order_by), reverse=descending)
    return present + absent


def to_related_link(record: BaseRecord) -> RelatedLink:
    return RelatedLink(
        href=route_for(record.kind, record.slug),
        title=record.title,
        description=record.snippet(100),
        link_type=LinkType(record.kind.value),
    )


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class RelatedLinksResolver:
    """Resolves related links for a record from a ``ContentStore``.

    Args:
        store: Content store to query
        max_attempts: Attempts per step when the store reports a transient
            ``StoreUnavailableError`` (default: 2)
    """

    def __init__(self, store: ContentStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.store = store
        self.max_attempts = max(1, max_attempts)

    def related_links(self, entity_type: Any, record: BaseRecord) -> List[RelatedLink]:
        """Return up to 6 related links for ``record``.

        Raises:
            ValueError: If ``entity_type`` is not a known entity type
            RelatedLinksError: If the store fails during any step
        """
        kind = coerce_entity_type(entity_type)
        if kind is None:
            raise ValueError(f"Unknown entity type: {entity_type!r}")

        links: List[RelatedLink] = []
        seen: Set[str] = {route_for(kind, record.slug)}

        for step in RELATED_PLANS[kind]:
            if len(links) >= MAX_RELATED_LINKS:
                break
            candidates = self._run_with_retry(kind, step, record)
            added = 0
            for candidate in candidates:
                if added >= step.limit or len(links) >= MAX_RELATED_LINKS:
                    break
                if not candidate.is_published:
                    continue
                if candidate.kind == kind and candidate.id == record.id:
                    continue
                link = to_related_link(candidate)
                if link.href in seen:
                    continue
                seen.add(link.href)
                links.append(link)
                added += 1
            logger.debug("Related step %s for %s/%s added %d links", step.name, kind.value, record.slug, added)

        return links

    def _run_with_retry(self, kind: EntityType, step: PlanStep, record: BaseRecord) -> List[BaseRecord]:
        attempt = 0
        while True:
            attempt += 1
            try:
                return self._run_step(kind, step, record)
            except StoreUnavailableError as exc:
                if attempt >= self.max_attempts:
                    logger.error(
                        "Store unavailable for %s step %s after %d attempts: %s",
                        kind.value,
                        step.name,
                        attempt,
                        exc,
                    )
                    raise RelatedLinksError(kind, step.name, str(exc)) from exc
                logger.warning(
                    "Store unavailable for %s step %s (attempt %d/%d), retrying: %s",
                    kind.value,
                    step.name,
                    attempt,
                    self.max_attempts,
                    exc,
                )
            except StoreError as exc:
                raise RelatedLinksError(kind, step.name, str(exc)) from exc

    def _run_step(self, kind: EntityType, step: PlanStep, record: BaseRecord) -> List[BaseRecord]:
        if isinstance(step, SameAttribute):
            return self._same_attribute(kind, step, record)
        if isinstance(step, SharedPassages):
            return self._shared_passages(kind, step, record)
        return self._keyword_overlap(step, record)

    def _same_attribute(self, kind: EntityType, step: SameAttribute, record: BaseRecord) -> List[BaseRecord]:
        attribute: Optional[str] = next((a for a in step.attributes if _text(record, a).strip()), None)
        if attribute is None:
            logger.debug("Skipping %s for %s/%s: no attribute value", step.name, kind.value, record.slug)
            return []
        wanted = normalize_slug(_text(record, attribute))
        matches = [
            candidate
            for candidate in self.store.list_records(kind)
            if _text(candidate, attribute).strip() and normalize_slug(_text(candidate, attribute)) == wanted
        ]
        return _sort_candidates(matches, step.order_by, step.descending)

    def _shared_passages(self, kind: EntityType, step: SharedPassages, record: BaseRecord) -> List[BaseRecord]:
        passage_ids = self.store.passage_ids_for(kind, record.id, limit=PASSAGE_SAMPLE_SIZE)
        if not passage_ids:
            logger.debug("Skipping %s for %s/%s: no passages", step.name, kind.value, record.slug)
            return []
        return self.store.records_for_passages(step.target, passage_ids[:PASSAGE_SAMPLE_SIZE])

    def _keyword_overlap(self, step: KeywordOverlap, record: BaseRecord) -> List[BaseRecord]:
        keywords = extract_keywords([_text(record, f) for f in step.source_fields], step.min_length)
        keywords += [word for word in step.seed_words if word not in keywords]
        if not keywords:
            return []
        matches = []
        for candidate in self.store.list_records(step.target):
            haystack = " ".join(_text(candidate, f) for f in step.target_fields).lower()
            if any(keyword in haystack for keyword in keywords):
                matches.append(candidate)
        return matches
