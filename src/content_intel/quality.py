"""Quality Gate Module

Decides whether a content record is good enough to publish. Evaluation is a
pure function of the record's fields: no I/O, no randomness, and no
exceptions. Missing or malformed fields are read as empty strings, which
fails the gates instead of raising.

Gates (each failing gate adds one reason, in this order):
  - at least 300 words
  - an introduction paragraph of at least 50 words
  - a conclusion paragraph of at least 30 words
  - at least 3 internal links
  - at least one link to another entity section
  - an entity density score of at least 4 (type-specific weighted link rules)

The 0-100 score is advisory; ``ok`` depends on the gates alone.

Environment variables:
  SITE_DOMAIN: Domain whose absolute URLs count as internal (default: thelordwill.com)
"""

import logging
import os
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple

from .markup import extract_hrefs, paragraph_blocks, strip_markup, word_count
from .models import (
    EntityType,
    QualityMetrics,
    QualityResult,
    RECORD_TYPES,
    BaseRecord,
    coerce_entity_type,
)

logger = logging.getLogger(__name__)

SITE_DOMAIN = os.getenv("SITE_DOMAIN", "thelordwill.com")

MIN_WORDS = 300
MIN_INTRO_WORDS = 50
MIN_CONCLUSION_WORDS = 30
MIN_INTERNAL_LINKS = 3
MIN_ENTITY_DENSITY = 4
MAX_ENTITY_DENSITY = 10
INTRO_FALLBACK_CHARS = 500

# Path prefixes of every cross-entity content section
ENTITY_PATH_PREFIXES: Tuple[str, ...] = (
    "/bible-places/",
    "/bible-verses-for/",
    "/situations/",
    "/professions/",
    "/prayer-points/",
    "/meaning-of/",
    "/bible-travel/",
    "/travel-itineraries/",
    "/verse/",
)

# Markup/plain layout used when the entity type is not recognised
_GENERIC_MARKUP_FIELDS = ("content", "description")
_GENERIC_PLAIN_FIELDS = ("title",)


class DensityRule(NamedTuple):
    """One weighted cross-link expectation: a link into ``prefixes`` earns ``weight``."""

    label: str
    prefixes: Tuple[str, ...]
    weight: int


PASSAGE_RULE = ("passage", ("/verse/",))
PLACE_RULE = ("place", ("/bible-places/",))
SITUATION_RULE = ("situation", ("/bible-verses-for/", "/situations/"))
PRAYER_POINT_RULE = ("prayer point", ("/prayer-points/",))
NAME_RULE = ("name", ("/meaning-of/",))
ITINERARY_RULE = ("itinerary", ("/bible-travel/", "/travel-itineraries/"))


def _rule(entry: Tuple[str, Tuple[str, ...]], weight: int) -> DensityRule:
    return DensityRule(entry[0], entry[1], weight)


DENSITY_RULES: Dict[EntityType, Tuple[DensityRule, ...]] = {
    EntityType.PLACE: (
        _rule(PASSAGE_RULE, 3),
        _rule(PLACE_RULE, 3),
        _rule(ITINERARY_RULE, 2),
        _rule(SITUATION_RULE, 2),
    ),
    EntityType.SITUATION: (
        _rule(PASSAGE_RULE, 3),
        _rule(PRAYER_POINT_RULE, 3),
        _rule(PLACE_RULE, 2),
        _rule(SITUATION_RULE, 2),
    ),
    EntityType.PROFESSION: (
        _rule(SITUATION_RULE, 4),
        _rule(NAME_RULE, 3),
        _rule(PASSAGE_RULE, 3),
    ),
    EntityType.PRAYER_POINT: (
        _rule(PASSAGE_RULE, 4),
        _rule(SITUATION_RULE, 3),
        _rule(PRAYER_POINT_RULE, 3),
    ),
    EntityType.NAME: (
        _rule(PASSAGE_RULE, 4),
        _rule(PLACE_RULE, 3),
        _rule(SITUATION_RULE, 3),
    ),
    EntityType.ITINERARY: (
        _rule(PLACE_RULE, 4),
        _rule(PASSAGE_RULE, 3),
        _rule(ITINERARY_RULE, 3),
    ),
}

if set(DENSITY_RULES) != set(EntityType):
    raise RuntimeError("DENSITY_RULES must cover every entity type")


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _field_layout(entity_type: Optional[EntityType]) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    if entity_type is None:
        return _GENERIC_MARKUP_FIELDS, _GENERIC_PLAIN_FIELDS
    record_cls = RECORD_TYPES[entity_type]
    return record_cls.markup_fields, record_cls.plain_fields


def combine_fields(entity_type: Optional[EntityType], fields: Optional[Mapping[str, Any]]) -> Tuple[str, str]:
    """Return ``(combined_markup, combined_text)`` for a raw field mapping."""
    if not isinstance(fields, Mapping):
        fields = {}
    markup_names, plain_names = _field_layout(entity_type)

    markup_parts = [_as_text(fields.get(name)) for name in markup_names]
    combined_markup = "\n".join(part for part in markup_parts if part)

    text_parts = [strip_markup(_as_text(fields.get(name))) for name in plain_names]
    text_parts.append(strip_markup(combined_markup))
    combined_text = " ".join(part for part in text_parts if part)
    return combined_markup, " ".join(combined_text.split())


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def _site_path(href: str, site_domain: str) -> Optional[str]:
    """Site-relative path for an internal target, None for external ones."""
    if href.startswith("/") and not href.startswith("//"):
        return href
    if site_domain and site_domain in href:
        _, _, rest = href.partition(site_domain)
        return rest if rest.startswith("/") else "/"
    return None


def count_internal_links(markup: str, site_domain: str = SITE_DOMAIN) -> int:
    return sum(1 for href in extract_hrefs(markup) if _site_path(href, site_domain) is not None)


def _internal_paths(markup: str, site_domain: str) -> List[str]:
    paths = []
    for href in extract_hrefs(markup):
        path = _site_path(href, site_domain)
        if path is not None:
            paths.append(path.lower())
    return paths


def has_entity_links(markup: str, site_domain: str = SITE_DOMAIN) -> bool:
    return any(path.startswith(ENTITY_PATH_PREFIXES) for path in _internal_paths(markup, site_domain))


def has_intro(combined_markup: str, combined_text: str) -> bool:
    blocks = paragraph_blocks(combined_markup)
    if blocks:
        return word_count(strip_markup(blocks[0])) >= MIN_INTRO_WORDS
    return word_count(combined_text[:INTRO_FALLBACK_CHARS]) >= MIN_INTRO_WORDS


def has_conclusion(combined_markup: str, combined_text: str) -> bool:
    blocks = paragraph_blocks(combined_markup)
    if blocks:
        return word_count(strip_markup(blocks[-1])) >= MIN_CONCLUSION_WORDS
    # Fallback: the tail of the text must hold a full conclusion-sized block
    tail = combined_text.split()[-MIN_CONCLUSION_WORDS:]
    return len(tail) >= MIN_CONCLUSION_WORDS


def entity_density(
    entity_type: Optional[EntityType],
    markup: str,
    site_domain: str = SITE_DOMAIN,
) -> Tuple[int, List[str]]:
    """Score type-specific cross-links.

    Returns:
        Tuple of (score capped at 10, labels of the rules with no matching link)
    """
    if entity_type is None:
        return 0, []
    paths = _internal_paths(markup, site_domain)
    score = 0
    missing: List[str] = []
    for rule in DENSITY_RULES[entity_type]:
        if any(path.startswith(rule.prefixes) for path in paths):
            score += rule.weight
        else:
            missing.append(rule.label)
    return min(score, MAX_ENTITY_DENSITY), missing


def compute_score(metrics: QualityMetrics) -> int:
    score = 40 * min(1.0, metrics.word_count / MIN_WORDS)
    score += 25 * min(1.0, metrics.internal_link_count / MIN_INTERNAL_LINKS)
    score += 15 if metrics.entity_links_present else 0
    score += 10 if metrics.has_intro else 0
    score += 10 if metrics.has_conclusion else 0
    return int(round(score))


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def evaluate(
    entity_type: Any,
    fields: Optional[Mapping[str, Any]],
    site_domain: str = SITE_DOMAIN,
) -> QualityResult:
    """Evaluate raw record fields against the publish gate.

    Args:
        entity_type: EntityType (or its string value) of the record
        fields: Mapping of field name to value; absent/None values count as empty
        site_domain: Domain whose absolute URLs count as internal links

    Returns:
        QualityResult with ordered failure reasons (empty iff ``ok``)
    """
    kind = coerce_entity_type(entity_type)
    combined_markup, combined_text = combine_fields(kind, fields)

    density, missing = entity_density(kind, combined_markup, site_domain)
    metrics = QualityMetrics(
        word_count=word_count(combined_text),
        internal_link_count=count_internal_links(combined_markup, site_domain),
        entity_links_present=has_entity_links(combined_markup, site_domain),
        has_intro=has_intro(combined_markup, combined_text),
        has_conclusion=has_conclusion(combined_markup, combined_text),
        entity_density_score=density,
    )

    reasons: List[str] = []
    if metrics.word_count < MIN_WORDS:
        reasons.append(f"Too few words: {metrics.word_count} < {MIN_WORDS} required")
    if not metrics.has_intro:
        reasons.append(f"Missing introduction: first paragraph needs at least {MIN_INTRO_WORDS} words")
    if not metrics.has_conclusion:
        reasons.append(f"Missing conclusion: last paragraph needs at least {MIN_CONCLUSION_WORDS} words")
    if metrics.internal_link_count < MIN_INTERNAL_LINKS:
        reasons.append(
            f"Too few internal links: {metrics.internal_link_count} < {MIN_INTERNAL_LINKS} required"
        )
    if not metrics.entity_links_present:
        reasons.append("No entity links: link to at least one other content section")
    if density < MIN_ENTITY_DENSITY:
        missing_text = ", ".join(missing) if missing else "unknown entity type"
        reasons.append(
            f"Entity density too low: {density}/{MAX_ENTITY_DENSITY} < {MIN_ENTITY_DENSITY} "
            f"(missing links to: {missing_text})"
        )

    logger.debug(
        "Quality evaluation: type=%s words=%d links=%d density=%d reasons=%d",
        kind.value if kind else entity_type,
        metrics.word_count,
        metrics.internal_link_count,
        density,
        len(reasons),
    )

    return QualityResult(
        ok=not reasons,
        score=compute_score(metrics),
        reasons=reasons,
        metrics=metrics,
    )


def evaluate_record(record: BaseRecord, site_domain: str = SITE_DOMAIN) -> QualityResult:
    """Evaluate a typed content record."""
    return evaluate(record.kind, record.as_fields(), site_domain)
