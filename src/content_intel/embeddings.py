"""Embeddings Generation Module

Generates vector embeddings for passage text using OpenAI's embedding API.
Handles text normalization, content hashing for idempotent re-indexing,
truncation, batching, rate limiting, and error handling.

Key features:
  - Deterministic text normalization and sha256 content hashes, so unchanged
    passages are never re-embedded
  - Text truncation to fit embedding model context window
  - Batch processing for API efficiency
  - Exponential backoff retry logic for rate limiting
  - Fake embeddings mode for testing without API calls
  - Detailed logging and validation

Environment variables:
  OPENAI_API_KEY: API key for OpenAI (read when the client is first needed)
  USE_FAKE_EMBEDDINGS: Set to '1' to use deterministic fake vectors for testing
  MAX_EMBEDDING_CHARS: Maximum characters per text (default: 8000)
  EMBEDDING_MODEL: Embedding model name (default: text-embedding-3-small)
"""

from typing import Dict, Iterable, List, NamedTuple, Optional
import hashlib
import os
import re
import time
import logging

import numpy as np
import openai
from openai import OpenAI

from .models import EmbeddingVector, Passage

logger = logging.getLogger(__name__)

# Created on first use so importing this module never needs an API key
client: Optional[OpenAI] = None
USE_FAKE_EMBEDDINGS = os.getenv("USE_FAKE_EMBEDDINGS", "0") == "1"

EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
FAKE_EMBEDDING_DIMS = 8

# Conservative character limit to stay well under OpenAI's 8191 token limit
# (~4 chars/token average, using 8000 chars gives ~2000 tokens = safe margin)
MAX_EMBEDDING_CHARS = int(os.getenv("MAX_EMBEDDING_CHARS", "8000"))

HORIZONTAL_SPACE_RE = re.compile(r"[ \t]+")
NEWLINE_PAD_RE = re.compile(r" ?\n ?")
NEWLINE_RUN_RE = re.compile(r"\n+")


def get_client() -> OpenAI:
    global client
    if client is None:
        client = OpenAI(api_key=os.getenv("OPENAI_API_KEY"))
    return client


# ---------------------------------------------------------------------------
# Text preparation and hashing
# ---------------------------------------------------------------------------


def passage_text(passage: Passage) -> Optional[str]:
    """First non-blank translation of the passage, or None."""
    return passage.text or None


def normalize_text(text: str) -> str:
    """Normalize passage text deterministically.

    1. Trim leading/trailing whitespace
    2. Convert CRLF (and lone CR) to LF
    3. Collapse spaces/tabs to single spaces
    4. Join lines with single spaces
    """
    text = text.strip().replace("\r\n", "\n").replace("\r", "\n")
    text = HORIZONTAL_SPACE_RE.sub(" ", text)
    text = NEWLINE_PAD_RE.sub("\n", text)
    text = NEWLINE_RUN_RE.sub(" ", text)
    return text.strip()


def compute_content_hash(model: str, normalized_text: str) -> str:
    """sha256 hex digest of ``"{model}\\n{normalized_text}"``."""
    return hashlib.sha256(f"{model}\n{normalized_text}".encode("utf-8")).hexdigest()


class EmbeddingJob(NamedTuple):
    passage_id: int
    text: str
    content_hash: str


def plan_passage_embeddings(
    passages: Iterable[Passage],
    existing: Iterable[EmbeddingVector],
    model: str = EMBEDDING_MODEL,
) -> List[EmbeddingJob]:
    """Passages that need (re-)embedding for ``model``.

    Passages without text are skipped, as are passages whose stored embedding
    already carries the current content hash.
    """
    stored: Dict[int, str] = {e.passage_id: e.content_hash for e in existing if e.model == model}
    jobs: List[EmbeddingJob] = []
    no_text = unchanged = 0

    for passage in passages:
        raw = passage_text(passage)
        if not raw:
            no_text += 1
            continue
        text = normalize_text(raw)
        content_hash = compute_content_hash(model, text)
        if stored.get(passage.id) == content_hash:
            unchanged += 1
            continue
        jobs.append(EmbeddingJob(passage.id, text, content_hash))

    logger.info(
        "Embedding plan for model=%s: %d to embed, %d unchanged, %d without text",
        model,
        len(jobs),
        unchanged,
        no_text,
    )
    return jobs


def _truncate_for_embedding(text: str, max_chars: int = MAX_EMBEDDING_CHARS) -> str:
    """
    Truncate text to fit embedding model's context window.

    Strategy:
    - If text <= max_chars: return as-is
    - If text > max_chars: truncate at max_chars, then backtrack to last space
      to avoid breaking words (if space found in last 20% of truncated text)
    """
    if not text:
        return ""

    if len(text) <= max_chars:
        return text

    original_len = len(text)
    truncated = text[:max_chars]

    # Only backtrack if space is in last 20% (avoids over-truncating)
    last_space = truncated.rfind(" ")
    if last_space > int(max_chars * 0.8):
        truncated = truncated[:last_space]

    logger.info(
        "Truncated text for embedding: %d -> %d chars (%.1f%% reduction)",
        original_len,
        len(truncated),
        100 * (original_len - len(truncated)) / original_len,
    )

    return truncated


def fake_embedding(text: str, dims: int = FAKE_EMBEDDING_DIMS) -> List[float]:
    """Deterministic unit vector derived from chained sha256 digests of ``text``."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    data = bytearray(digest)
    while len(data) < dims:
        digest = hashlib.sha256(digest).digest()
        data.extend(digest)
    vector = np.frombuffer(bytes(data[:dims]), dtype=np.uint8).astype(np.float64) / 127.5 - 1.0
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return [0.0] * dims
    return (vector / norm).tolist()


# ---------------------------------------------------------------------------
# OpenAI calls
# ---------------------------------------------------------------------------


def embed_texts(
    texts: List[str],
    model: str = EMBEDDING_MODEL,
    batch_size: int = 50,
    max_chars: int = MAX_EMBEDDING_CHARS,
) -> List[List[float]]:
    """
    Generate embeddings for texts using OpenAI's API.

    Args:
        texts: List of text strings to embed
        model: OpenAI embedding model (default: text-embedding-3-small)
        batch_size: Number of texts per API call
        max_chars: Character limit per text (default: 8000)

    Returns:
        List of embedding vectors (each a list of floats), in input order

    Raises:
        ValueError: If embedding dimensions or counts are inconsistent
        Exception: On OpenAI API errors
    """
    if not texts:
        logger.debug("embed_texts called with empty list; returning []")
        return []

    if USE_FAKE_EMBEDDINGS:
        logger.warning(
            "USE_FAKE_EMBEDDINGS=1 set; returning deterministic fake vectors instead of "
            "calling OpenAI. This is intended for local/dev use."
        )
        return [fake_embedding(text) for text in texts]

    processed_texts = [_truncate_for_embedding(text, max_chars) for text in texts]
    vectors: List[List[float]] = []

    try:
        api = get_client()
        for start in range(0, len(processed_texts), batch_size):
            batch = processed_texts[start : start + batch_size]
            end = start + len(batch) - 1

            logger.debug(
                "Calling OpenAI embeddings API: model=%s, batch=[%d:%d], size=%d",
                model, start, end, len(batch)
            )

            response = api.embeddings.create(model=model, input=batch)

            batch_vectors = [list(item.embedding) for item in response.data]
            if len(batch_vectors) != len(batch):
                raise ValueError(
                    f"Embedding count mismatch for batch [{start}:{end}]: "
                    f"sent {len(batch)}, received {len(batch_vectors)}"
                )
            vectors.extend(batch_vectors)

            logger.debug("Batch [%d:%d] completed: received %d vectors", start, end, len(batch_vectors))

        expected_dim = len(vectors[0])
        for idx, vec in enumerate(vectors):
            if len(vec) != expected_dim:
                raise ValueError(
                    f"Inconsistent embedding dimension at index {idx}: "
                    f"expected {expected_dim}, got {len(vec)}"
                )

        logger.info("Successfully generated %d embeddings (dim=%d)", len(vectors), expected_dim)
        return vectors

    except Exception:
        logger.exception("Failed to generate embeddings for %d texts", len(texts))
        raise


def embed_texts_with_retry(
    texts: List[str],
    model: str = EMBEDDING_MODEL,
    batch_size: int = 50,
    max_chars: int = MAX_EMBEDDING_CHARS,
    max_retries: int = 5,
) -> List[List[float]]:
    """
    Wraps embed_texts to handle rate limiting with retries.
    Retries up to `max_retries` times with exponential backoff.
    """
    retries = 0
    while True:
        try:
            return embed_texts(texts, model=model, batch_size=batch_size, max_chars=max_chars)
        except openai.RateLimitError as e:
            retries += 1
            # Retrying cannot fix an exhausted quota
            if getattr(e, "code", None) == "insufficient_quota" or "insufficient_quota" in str(e):
                logger.error("Insufficient quota, cannot retry. Error: %s", e)
                raise

            if retries > max_retries:
                logger.error("Max retries exceeded (%d). Last error: %s", max_retries, e)
                raise

            wait_time = 2 ** retries
            logger.warning(
                "Rate limit error from OpenAI (attempt %d/%d). "
                "Sleeping for %d seconds before retry. Error: %s",
                retries,
                max_retries,
                wait_time,
                e,
            )
            time.sleep(wait_time)
