"""Catalog Loader Module

Loads a content catalog export from a JSON file into an
``InMemoryContentStore``.

Expected shape:
    {
      "records": [{"entity_type": "place", "id": ..., "slug": ..., ...}],
      "passages": [{"id": 1, "book_id": 1, "chapter": 1, "verse_number": 1, ...}],
      "passage_refs": [{"entity_type", "record_id", "passage_id", "relevance_score"}],
      "embeddings": [{"passage_id", "model", "dims", "vector", "content_hash", "indexed_at"}],
      "taxonomy_labels": [{"key", "label", "sort_order", "scope"}]
    }

A bare JSON array is read as a list of records. Invalid rows are logged and
skipped; a file that is not a JSON object/array raises ``CatalogFormatError``.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from .models import EmbeddingVector, Passage, TaxonomyLabel, coerce_entity_type, parse_record
from .store import InMemoryContentStore, PassageRef

logger = logging.getLogger(__name__)


class CatalogFormatError(ValueError):
    """The catalog file does not have the expected top-level shape."""


def load_raw_catalog(path: Union[str, Path]) -> Dict[str, List[Dict[str, Any]]]:
    """Load the raw catalog sections from a JSON file.

    Raises:
        FileNotFoundError: If file does not exist
        json.JSONDecodeError: If file is not valid JSON
        CatalogFormatError: If the top level is neither an object nor an array
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"records": data}
    if not isinstance(data, dict):
        raise CatalogFormatError(f"Catalog must be a JSON object or array, got {type(data).__name__}")
    sections = ("records", "passages", "passage_refs", "embeddings", "taxonomy_labels")
    return {name: data.get(name) or [] for name in sections}


def _normalize_record_row(row: Dict[str, Any]) -> Dict[str, Any]:
    kind = coerce_entity_type(row.get("entity_type"))
    if kind is None:
        return row
    return {**row, "entity_type": kind.value}


def load_catalog(path: Union[str, Path]) -> InMemoryContentStore:
    """Load a catalog file into an in-memory content store."""
    raw = load_raw_catalog(path)

    records = []
    for idx, row in enumerate(raw["records"]):
        if not isinstance(row, dict):
            logger.warning("Skipping record idx=%d: not an object", idx)
            continue
        try:
            records.append(parse_record(_normalize_record_row(row)))
        except ValidationError as exc:
            logger.warning("Skipping record idx=%d id=%s: %s", idx, row.get("id"), exc)

    passages = []
    for idx, row in enumerate(raw["passages"]):
        try:
            passages.append(Passage.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping passage idx=%d: %s", idx, exc)

    refs = []
    for idx, row in enumerate(raw["passage_refs"]):
        kind = coerce_entity_type(row.get("entity_type")) if isinstance(row, dict) else None
        if kind is None or row.get("record_id") is None or row.get("passage_id") is None:
            logger.warning("Skipping passage reference idx=%d: incomplete row", idx)
            continue
        refs.append(
            PassageRef(
                entity_type=kind,
                record_id=str(row["record_id"]),
                passage_id=int(row["passage_id"]),
                relevance_score=float(row.get("relevance_score") or 0.0),
            )
        )

    embeddings = []
    for idx, row in enumerate(raw["embeddings"]):
        if isinstance(row, dict) and "dims" not in row and isinstance(row.get("vector"), list):
            row = {**row, "dims": len(row["vector"])}
        try:
            embeddings.append(EmbeddingVector.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping embedding idx=%d: %s", idx, exc)

    labels = []
    for idx, row in enumerate(raw["taxonomy_labels"]):
        try:
            labels.append(TaxonomyLabel.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping taxonomy label idx=%d: %s", idx, exc)

    logger.info(
        "Loaded catalog %s: %d records, %d passages, %d references, %d embeddings, %d labels",
        Path(path).name,
        len(records),
        len(passages),
        len(refs),
        len(embeddings),
        len(labels),
    )
    return InMemoryContentStore(
        records=records,
        passages=passages,
        passage_refs=refs,
        embeddings=embeddings,
        taxonomy_labels=labels,
    )
