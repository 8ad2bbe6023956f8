"""Data Models Module

Defines Pydantic models for the content catalog: the entity record variants
(a closed tagged union over entity types), passage snapshots and embeddings,
and the result types produced by the quality gate, the relationship resolver,
the breadcrumb builder and the passage intelligence service.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, Generic, List, Literal, Optional, Tuple, TypeVar, Union

from pydantic import BaseModel, Field, TypeAdapter

from .markup import strip_markup

T = TypeVar("T")


class EntityType(str, Enum):
    """Content sections that share the quality and linking machinery."""

    PLACE = "place"
    SITUATION = "situation"
    PROFESSION = "profession"
    PRAYER_POINT = "prayer-point"
    NAME = "name"
    ITINERARY = "itinerary"


class LinkType(str, Enum):
    """Kinds of link targets; every entity type plus scripture passages."""

    PLACE = "place"
    SITUATION = "situation"
    PROFESSION = "profession"
    PRAYER_POINT = "prayer-point"
    NAME = "name"
    ITINERARY = "itinerary"
    VERSE = "verse"


class Status(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


# ---------------------------------------------------------------------------
# Content records
# ---------------------------------------------------------------------------


class BaseRecord(BaseModel):
    """Fields and capabilities shared by every entity variant.

    Subclasses declare which of their fields hold markup and which hold
    plain text. ``extract_markup`` and ``extract_plain_fields`` read those
    declarations so the quality gate never needs per-type casting.
    """

    markup_fields: ClassVar[Tuple[str, ...]] = ()
    plain_fields: ClassVar[Tuple[str, ...]] = ()
    snippet_field: ClassVar[str] = ""

    id: str
    slug: str
    title: str = ""
    status: Status = Status.DRAFT
    updated_at: Optional[datetime] = None

    def extract_markup(self) -> List[str]:
        return [getattr(self, name) or "" for name in self.markup_fields]

    def extract_plain_fields(self) -> List[str]:
        return [getattr(self, name) or "" for name in self.plain_fields]

    def snippet(self, max_chars: int = 100) -> str:
        """Plain-text description of the record, cut to ``max_chars``."""
        raw = getattr(self, self.snippet_field, None) if self.snippet_field else None
        return strip_markup(raw or "")[:max_chars]

    @property
    def kind(self) -> EntityType:
        return EntityType(getattr(self, "entity_type"))

    @property
    def is_published(self) -> bool:
        return self.status == Status.PUBLISHED

    def as_fields(self) -> Dict[str, Any]:
        """Raw field mapping, the shape accepted by ``quality.evaluate``."""
        return self.model_dump(exclude={"entity_type"})


class PlaceRecord(BaseRecord):
    markup_fields: ClassVar[Tuple[str, ...]] = ("description", "historical_info", "biblical_context")
    plain_fields: ClassVar[Tuple[str, ...]] = ("title",)
    snippet_field: ClassVar[str] = "description"

    entity_type: Literal["place"] = "place"
    description: Optional[str] = None
    historical_info: Optional[str] = None
    biblical_context: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    tour_priority: int = 50


class SituationRecord(BaseRecord):
    markup_fields: ClassVar[Tuple[str, ...]] = ("content",)
    plain_fields: ClassVar[Tuple[str, ...]] = ("title", "meta_description")
    snippet_field: ClassVar[str] = "meta_description"

    entity_type: Literal["situation"] = "situation"
    meta_description: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None


class ProfessionRecord(BaseRecord):
    markup_fields: ClassVar[Tuple[str, ...]] = ("content",)
    plain_fields: ClassVar[Tuple[str, ...]] = ("title", "description")
    snippet_field: ClassVar[str] = "description"

    entity_type: Literal["profession"] = "profession"
    description: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None


class PrayerPointRecord(BaseRecord):
    markup_fields: ClassVar[Tuple[str, ...]] = ("content",)
    plain_fields: ClassVar[Tuple[str, ...]] = ("title", "description")
    snippet_field: ClassVar[str] = "description"

    entity_type: Literal["prayer-point"] = "prayer-point"
    description: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    priority: int = 0


class NameRecord(BaseRecord):
    markup_fields: ClassVar[Tuple[str, ...]] = ("content",)
    plain_fields: ClassVar[Tuple[str, ...]] = ("title", "meaning")
    snippet_field: ClassVar[str] = "meaning"

    entity_type: Literal["name"] = "name"
    meaning: Optional[str] = None
    content: Optional[str] = None
    origin: Optional[str] = None


class ItineraryRecord(BaseRecord):
    markup_fields: ClassVar[Tuple[str, ...]] = ("content",)
    plain_fields: ClassVar[Tuple[str, ...]] = ("title", "meta_description")
    snippet_field: ClassVar[str] = "meta_description"

    entity_type: Literal["itinerary"] = "itinerary"
    meta_description: Optional[str] = None
    content: Optional[str] = None
    region: Optional[str] = None
    days: int = 0


ContentRecord = Annotated[
    Union[
        PlaceRecord,
        SituationRecord,
        ProfessionRecord,
        PrayerPointRecord,
        NameRecord,
        ItineraryRecord,
    ],
    Field(discriminator="entity_type"),
]

RECORD_TYPES: Dict[EntityType, type] = {
    EntityType.PLACE: PlaceRecord,
    EntityType.SITUATION: SituationRecord,
    EntityType.PROFESSION: ProfessionRecord,
    EntityType.PRAYER_POINT: PrayerPointRecord,
    EntityType.NAME: NameRecord,
    EntityType.ITINERARY: ItineraryRecord,
}

_missing = set(EntityType) - set(RECORD_TYPES)
if _missing:
    raise RuntimeError(f"RECORD_TYPES is missing entity types: {sorted(m.value for m in _missing)}")

_RECORD_ADAPTER: TypeAdapter = TypeAdapter(ContentRecord)


def parse_record(data: Dict[str, Any]) -> BaseRecord:
    """Validate a raw mapping into the matching record variant.

    Raises:
        pydantic.ValidationError: If ``entity_type`` is unknown or fields are invalid
    """
    return _RECORD_ADAPTER.validate_python(data)


def coerce_entity_type(value: Any) -> Optional[EntityType]:
    """Return the EntityType for ``value``, or None when it is not one.

    Accepts enum members, their values, and the camelCase ``prayerPoint``
    spelling used by older exports.
    """
    if isinstance(value, EntityType):
        return value
    if not isinstance(value, str):
        return None
    key = value.strip()
    if key == "prayerPoint":
        key = EntityType.PRAYER_POINT.value
    try:
        return EntityType(key)
    except ValueError:
        return None


class TaxonomyLabel(BaseModel):
    """Editorial override for a category label and sort order."""

    key: str
    label: str
    sort_order: Optional[int] = None
    scope: Optional[str] = None


# ---------------------------------------------------------------------------
# Quality gate
# ---------------------------------------------------------------------------


class QualityMetrics(BaseModel):
    word_count: int = Field(0, ge=0)
    internal_link_count: int = Field(0, ge=0)
    entity_links_present: bool = False
    has_intro: bool = False
    has_conclusion: bool = False
    entity_density_score: int = Field(0, ge=0, le=10)


class QualityResult(BaseModel):
    """Publish-gate decision. ``ok`` is True iff ``reasons`` is empty."""

    ok: bool
    score: int = Field(ge=0, le=100)
    reasons: List[str] = []
    metrics: QualityMetrics


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------


class RelatedLink(BaseModel):
    href: str
    title: str
    description: str = Field("", max_length=100)
    link_type: LinkType


class BreadcrumbItem(BaseModel):
    label: str
    href: str
    position: int = Field(ge=1)


class HubLink(BaseModel):
    href: str
    label: str
    description: str
    priority: int


class CategoryGroup(BaseModel, Generic[T]):
    slug: str
    label: str
    order: int
    items: List[T] = []


# ---------------------------------------------------------------------------
# Passages, embeddings and semantic intelligence
# ---------------------------------------------------------------------------


class Passage(BaseModel):
    """Snapshot of a scripture passage (one verse)."""

    id: int
    book_id: int
    book_name: str = "Book"
    book_slug: str = ""
    chapter: int
    verse_number: int
    primary_text: Optional[str] = None
    secondary_text: Optional[str] = None
    updated_at: datetime

    @property
    def reference(self) -> str:
        return f"{self.book_name} {self.chapter}:{self.verse_number}"

    @property
    def text(self) -> str:
        for candidate in (self.primary_text, self.secondary_text):
            if candidate and candidate.strip():
                return candidate
        return ""


class PassageMeta(BaseModel):
    """Cheap projection used to decide whether a cached payload is fresh."""

    passage_id: int
    updated_at: datetime
    model: Optional[str] = None
    content_hash: Optional[str] = None


class MentionLink(BaseModel):
    slug: str
    title: str
    relevance_score: float = 0.0


class PassageMentions(BaseModel):
    places: List[MentionLink] = []
    situations: List[MentionLink] = []
    prayer_points: List[MentionLink] = []


class EmbeddingVector(BaseModel):
    passage_id: int
    model: str
    dims: int
    vector: List[float]
    content_hash: str
    indexed_at: Optional[datetime] = None


class SemanticMatch(BaseModel):
    reference: str
    snippet: str
    href: str
    score: float


class PassageIntelligence(BaseModel):
    passage: Passage
    mentions: PassageMentions
    embedding: Optional[EmbeddingVector] = None
    semantic_matches: List[SemanticMatch] = []
