"""Passage Intelligence Module

Builds the intelligence payload of a passage page: the passage itself, the
places / situations / prayer points that mention it, and its nearest
neighbours by embedding similarity.

Payloads are cached per ``(passage_id, model)`` in an injected ``CacheStore``.
A cached payload is served only while its TTL has not run out AND the
passage's ``updated_at`` and embedding ``content_hash`` still match the values
it was computed from; anything else is recomputed and upserted.

Environment variables:
  INTELLIGENCE_CACHE_TTL_SECONDS: Cache TTL in seconds (default: 300)
"""

import logging
import os
from typing import List, Optional

from .cache import CacheEntry, CacheStore
from .embeddings import EMBEDDING_MODEL
from .models import EmbeddingVector, PassageIntelligence, PassageMeta, SemanticMatch
from .routes import passage_route
from .similarity import top_k_similar
from .store import ContentStore

logger = logging.getLogger(__name__)

INTELLIGENCE_CACHE_TTL_SECONDS = int(os.getenv("INTELLIGENCE_CACHE_TTL_SECONDS", "300"))
DEFAULT_TOP_K = 5
DEFAULT_CANDIDATE_POOL = 300
SNIPPET_MAX_CHARS = 120


def make_snippet(text: str, max_chars: int = SNIPPET_MAX_CHARS) -> str:
    text = " ".join(text.split())
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "…"


def is_fresh(entry: CacheEntry, meta: PassageMeta) -> bool:
    """True when the entry was computed from the passage state in ``meta``."""
    return entry.updated_at == meta.updated_at and entry.content_hash == meta.content_hash


class PassageIntelligenceService:
    """Computes and caches ``PassageIntelligence`` payloads.

    Args:
        store: Content store to read passages, mentions and embeddings from
        cache: Cache service for computed payloads
        ttl_seconds: Lifetime of a cached payload
        top_k: Number of semantic matches to return
        candidate_pool: Most recently indexed embeddings considered as matches
    """

    def __init__(
        self,
        store: ContentStore,
        cache: CacheStore,
        ttl_seconds: float = INTELLIGENCE_CACHE_TTL_SECONDS,
        top_k: int = DEFAULT_TOP_K,
        candidate_pool: int = DEFAULT_CANDIDATE_POOL,
    ):
        self.store = store
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.top_k = top_k
        self.candidate_pool = candidate_pool

    def intelligence_for(self, passage_id: int) -> Optional[PassageIntelligence]:
        """Return the (possibly cached) payload, or None if the passage does not exist."""
        meta = self.store.get_passage_meta(passage_id)
        if meta is None:
            self.cache.invalidate(passage_id)
            logger.debug("Passage %s not found; cache invalidated", passage_id)
            return None

        model = meta.model or EMBEDDING_MODEL
        entry = self.cache.get(passage_id, model)
        if entry is not None and is_fresh(entry, meta):
            logger.debug("Intelligence cache hit: passage=%s model=%s", passage_id, model)
            return entry.payload

        logger.debug(
            "Intelligence cache %s: passage=%s model=%s",
            "stale" if entry is not None else "miss",
            passage_id,
            model,
        )
        payload = self._compute(passage_id, meta, model)
        if payload is None:
            self.cache.invalidate(passage_id)
            return None

        self.cache.upsert(
            passage_id,
            model,
            payload,
            updated_at=meta.updated_at,
            content_hash=meta.content_hash,
            ttl_seconds=self.ttl_seconds,
        )
        return payload

    def invalidate(self, passage_id: int) -> int:
        return self.cache.invalidate(passage_id)

    def _compute(self, passage_id: int, meta: PassageMeta, model: str) -> Optional[PassageIntelligence]:
        passage = self.store.get_passage(passage_id)
        if passage is None:
            return None
        mentions = self.store.get_passage_mentions(passage_id)
        embedding = self.store.get_embedding(passage_id, model) if meta.model else None

        matches: List[SemanticMatch] = []
        if embedding is not None and embedding.vector:
            matches = self._semantic_matches(embedding, model)
        else:
            logger.debug("No embedding for passage=%s model=%s; no semantic matches", passage_id, model)

        logger.info("Computed intelligence for passage=%s (%d semantic matches)", passage_id, len(matches))
        return PassageIntelligence(
            passage=passage,
            mentions=mentions,
            embedding=embedding,
            semantic_matches=matches,
        )

    def _semantic_matches(self, embedding: EmbeddingVector, model: str) -> List[SemanticMatch]:
        pool = [
            candidate
            for candidate in self.store.list_embeddings(model, self.candidate_pool + 1)
            if candidate.passage_id != embedding.passage_id
        ][: self.candidate_pool]
        if not pool:
            return []

        ranked = top_k_similar(embedding.vector, [c.vector for c in pool], len(pool))
        matches: List[SemanticMatch] = []
        for idx, score in ranked:
            if len(matches) >= self.top_k:
                break
            passage = self.store.get_passage(pool[idx].passage_id)
            if passage is None:
                continue
            matches.append(
                SemanticMatch(
                    reference=passage.reference,
                    snippet=make_snippet(passage.text),
                    href=passage_route(passage.book_id, passage.chapter, passage.verse_number),
                    score=score,
                )
            )
        return matches
