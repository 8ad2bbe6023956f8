"""Content Store Module

Read interface over the content catalog, consumed by the relationship
resolver, the passage intelligence service and the batch jobs.

"Not found" is reported as ``None`` (or an empty list); infrastructure
failures are raised as ``StoreError`` / ``StoreUnavailableError`` so callers
can tell "no data" apart from "could not read".
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .models import (
    BaseRecord,
    EmbeddingVector,
    EntityType,
    MentionLink,
    Passage,
    PassageMentions,
    PassageMeta,
    TaxonomyLabel,
)

logger = logging.getLogger(__name__)

MAX_MENTIONS_PER_TYPE = 6


def _indexed_key(embedding: EmbeddingVector) -> float:
    return embedding.indexed_at.timestamp() if embedding.indexed_at else float("-inf")


class StoreError(RuntimeError):
    """The content store could not answer a query."""


class StoreUnavailableError(StoreError):
    """Transient store failure (timeout, dropped connection); safe to retry."""


class PassageRef(NamedTuple):
    """A record's reference to a scripture passage."""

    entity_type: EntityType
    record_id: str
    passage_id: int
    relevance_score: float = 0.0


class ContentStore(ABC):
    """Abstract read interface over records, passages and embeddings."""

    @abstractmethod
    def list_records(self, entity_type: EntityType) -> List[BaseRecord]:
        """All records of a type, in store order."""
        raise NotImplementedError

    @abstractmethod
    def get_record(self, entity_type: EntityType, slug: str) -> Optional[BaseRecord]:
        raise NotImplementedError

    @abstractmethod
    def passage_ids_for(self, entity_type: EntityType, record_id: str, limit: int = 10) -> List[int]:
        """Passage ids referenced by a record, highest relevance first."""
        raise NotImplementedError

    @abstractmethod
    def passage_links_for(self, entity_type: EntityType, record_id: str) -> List[Tuple[Passage, float]]:
        """Passages referenced by a record together with their relevance score."""
        raise NotImplementedError

    @abstractmethod
    def records_for_passages(self, entity_type: EntityType, passage_ids: Sequence[int]) -> List[BaseRecord]:
        """Distinct records of a type referencing any of ``passage_ids``, in store order."""
        raise NotImplementedError

    @abstractmethod
    def get_passage(self, passage_id: int) -> Optional[Passage]:
        raise NotImplementedError

    @abstractmethod
    def get_passage_meta(self, passage_id: int) -> Optional[PassageMeta]:
        """Freshness projection of a passage and its most recent embedding."""
        raise NotImplementedError

    @abstractmethod
    def get_passage_mentions(self, passage_id: int) -> PassageMentions:
        raise NotImplementedError

    @abstractmethod
    def get_embedding(self, passage_id: int, model: str) -> Optional[EmbeddingVector]:
        raise NotImplementedError

    @abstractmethod
    def list_embeddings(self, model: str, limit: int) -> List[EmbeddingVector]:
        """Up to ``limit`` embeddings for ``model``, most recently indexed first."""
        raise NotImplementedError

    @abstractmethod
    def list_taxonomy_labels(self, scope: Optional[str] = None) -> List[TaxonomyLabel]:
        raise NotImplementedError


class InMemoryContentStore(ContentStore):
    """Dictionary-backed store used by the batch jobs and the tests."""

    def __init__(
        self,
        records: Iterable[BaseRecord] = (),
        passages: Iterable[Passage] = (),
        passage_refs: Iterable[PassageRef] = (),
        embeddings: Iterable[EmbeddingVector] = (),
        taxonomy_labels: Iterable[TaxonomyLabel] = (),
    ):
        self._records: Dict[EntityType, List[BaseRecord]] = {entity_type: [] for entity_type in EntityType}
        for record in records:
            self._records[record.kind].append(record)
        self._passages: Dict[int, Passage] = {p.id: p for p in passages}
        self._refs: List[PassageRef] = list(passage_refs)
        self._embeddings: Dict[Tuple[int, str], EmbeddingVector] = {}
        for embedding in embeddings:
            self.upsert_embedding(embedding)
        self._labels: List[TaxonomyLabel] = list(taxonomy_labels)

    # -- writes used by the embedding job --------------------------------

    def upsert_embedding(self, embedding: EmbeddingVector) -> None:
        self._embeddings[(embedding.passage_id, embedding.model)] = embedding

    # -- ContentStore ----------------------------------------------------

    def list_records(self, entity_type: EntityType) -> List[BaseRecord]:
        return list(self._records[entity_type])

    def get_record(self, entity_type: EntityType, slug: str) -> Optional[BaseRecord]:
        for record in self._records[entity_type]:
            if record.slug == slug:
                return record
        return None

    def _refs_for(self, entity_type: EntityType, record_id: str) -> List[PassageRef]:
        refs = [r for r in self._refs if r.entity_type == entity_type and r.record_id == record_id]
        return sorted(refs, key=lambda r: -r.relevance_score)

    def passage_ids_for(self, entity_type: EntityType, record_id: str, limit: int = 10) -> List[int]:
        ids: List[int] = []
        for ref in self._refs_for(entity_type, record_id):
            if ref.passage_id not in ids:
                ids.append(ref.passage_id)
        return ids[:limit]

    def passage_links_for(self, entity_type: EntityType, record_id: str) -> List[Tuple[Passage, float]]:
        links = []
        for ref in self._refs_for(entity_type, record_id):
            passage = self._passages.get(ref.passage_id)
            if passage is not None:
                links.append((passage, ref.relevance_score))
        return links

    def records_for_passages(self, entity_type: EntityType, passage_ids: Sequence[int]) -> List[BaseRecord]:
        wanted = set(passage_ids)
        record_ids = {r.record_id for r in self._refs if r.entity_type == entity_type and r.passage_id in wanted}
        return [record for record in self._records[entity_type] if record.id in record_ids]

    def get_passage(self, passage_id: int) -> Optional[Passage]:
        return self._passages.get(passage_id)

    def get_passage_meta(self, passage_id: int) -> Optional[PassageMeta]:
        passage = self._passages.get(passage_id)
        if passage is None:
            return None
        candidates = [e for (pid, _), e in self._embeddings.items() if pid == passage_id]
        latest = max(candidates, key=_indexed_key, default=None)
        return PassageMeta(
            passage_id=passage_id,
            updated_at=passage.updated_at,
            model=latest.model if latest else None,
            content_hash=latest.content_hash if latest else None,
        )

    def get_passage_mentions(self, passage_id: int) -> PassageMentions:
        buckets: Dict[EntityType, List[MentionLink]] = {
            EntityType.PLACE: [],
            EntityType.SITUATION: [],
            EntityType.PRAYER_POINT: [],
        }
        for ref in self._refs:
            if ref.passage_id != passage_id or ref.entity_type not in buckets:
                continue
            record = next((r for r in self._records[ref.entity_type] if r.id == ref.record_id), None)
            if record is None or not record.is_published:
                continue
            buckets[ref.entity_type].append(
                MentionLink(slug=record.slug, title=record.title, relevance_score=ref.relevance_score)
            )

        def top(links: List[MentionLink]) -> List[MentionLink]:
            return sorted(links, key=lambda m: -m.relevance_score)[:MAX_MENTIONS_PER_TYPE]

        return PassageMentions(
            places=top(buckets[EntityType.PLACE]),
            situations=top(buckets[EntityType.SITUATION]),
            prayer_points=top(buckets[EntityType.PRAYER_POINT]),
        )

    def get_embedding(self, passage_id: int, model: str) -> Optional[EmbeddingVector]:
        return self._embeddings.get((passage_id, model))

    def list_embeddings(self, model: str, limit: int) -> List[EmbeddingVector]:
        matching = [e for (_, m), e in self._embeddings.items() if m == model]
        matching.sort(key=_indexed_key, reverse=True)
        return matching[:limit]

    def list_embeddings_for(self, passage_ids: Iterable[int]) -> List[EmbeddingVector]:
        wanted = set(passage_ids)
        return [e for (pid, _), e in self._embeddings.items() if pid in wanted]

    def list_passages(self) -> List[Passage]:
        return sorted(self._passages.values(), key=lambda p: p.id)

    def list_taxonomy_labels(self, scope: Optional[str] = None) -> List[TaxonomyLabel]:
        if scope is None:
            return list(self._labels)
        return [label for label in self._labels if label.scope in (None, scope)]
