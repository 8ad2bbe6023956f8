"""
Batch Jobs for the Content Intelligence Engine

This module provides the batch jobs run over a catalog export:

- Quality audit: evaluate every record against the publish gate
- Embedding index: (re-)embed passages whose content hash changed
- Click-depth check: verify every published detail page is reachable from
  the home page within a fixed number of clicks

Features:
- Timestamped versioning of outputs (or overwrite with keep_history=False)
- Dry-run mode that writes nothing
- Step-by-step structured logging and run metadata
"""

from pathlib import Path
import json
from typing import List, Dict, Any, Optional, Set, Tuple, Union
import logging
import time
from datetime import datetime, timezone

from .breadcrumbs import hub_links
from .embeddings import EMBEDDING_MODEL, embed_texts_with_retry as embed_texts, plan_passage_embeddings
from .graph import build_passage_graph_links
from .loaders import load_catalog
from .models import EmbeddingVector, EntityType
from .quality import evaluate_record
from .related import RelatedLinksResolver
from .routes import HOME_PATH, STATIC_PUBLIC_ROUTES, compute_depths, extract_internal_links, hub_for, route_for
from .store import InMemoryContentStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 3


def _timestamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def _output_path(output_dir: Path, stem: str, run_timestamp: str, keep_history: bool) -> Path:
    if keep_history:
        return output_dir / f"{stem}_{run_timestamp}.json"
    return output_dir / f"{stem}.json"


def _load(catalog_path: Path) -> InMemoryContentStore:
    try:
        return load_catalog(catalog_path)
    except FileNotFoundError:
        logger.exception("Catalog file not found: %s", catalog_path)
        raise
    except json.JSONDecodeError:
        logger.exception("Invalid JSON in catalog file: %s", catalog_path)
        raise
    except Exception:
        logger.exception("Failed to load catalog from %s", catalog_path)
        raise


# ---------------------------------------------------------------------------
# Quality audit
# ---------------------------------------------------------------------------


def run_quality_audit(
    catalog_path: Union[Path, str],
    output_dir: Union[Path, str] = "output",
    keep_history: bool = True,
    dry_run: bool = False,
) -> Tuple[int, int, Dict[str, Path]]:
    """
    Evaluate every record of a catalog against the publish gate.

    Pipeline Steps:
    1. Load the catalog
    2. Evaluate each record
    3. Save the audit report (unless dry_run)

    Args:
        catalog_path: Catalog JSON file
        output_dir: Directory for the audit report
        keep_history: If True, write quality_audit_<timestamp>.json; else overwrite quality_audit.json
        dry_run: If True, evaluate but write nothing

    Returns:
        Tuple of (records_evaluated, published_records_failing, output_paths_dict)
    """
    catalog_path = Path(catalog_path)
    output_dir = Path(output_dir)
    run_timestamp = _timestamp()
    job_start = time.time()

    # ========== STEP 1: LOAD CATALOG ==========
    t0 = time.time()
    logger.info("STEP 1/3: Loading catalog")
    store = _load(catalog_path)
    logger.info("✓ Loaded catalog in %.2fs", time.time() - t0)

    # ========== STEP 2: EVALUATE RECORDS ==========
    t1 = time.time()
    logger.info("STEP 2/3: Evaluating records")
    report: List[Dict[str, Any]] = []
    published_failures = 0

    for entity_type in EntityType:
        for record in store.list_records(entity_type):
            result = evaluate_record(record)
            if record.is_published and not result.ok:
                published_failures += 1
                logger.warning(
                    "Published record fails quality gate: %s/%s (%s)",
                    entity_type.value,
                    record.slug,
                    "; ".join(result.reasons),
                )
            report.append({
                "entity_type": entity_type.value,
                "id": record.id,
                "slug": record.slug,
                "status": record.status.value,
                **result.model_dump(mode="json"),
            })

    passed = sum(1 for row in report if row["ok"])
    logger.info(
        "✓ Evaluated %d records in %.2fs (passed=%d, failed=%d, published failing=%d)",
        len(report),
        time.time() - t1,
        passed,
        len(report) - passed,
        published_failures,
    )

    # ========== STEP 3: SAVE REPORT ==========
    output_paths: Dict[str, Path] = {}
    if dry_run:
        logger.info("DRY RUN: skipping write of audit report")
        return len(report), published_failures, output_paths

    logger.info("STEP 3/3: Saving audit report")
    output_dir.mkdir(parents=True, exist_ok=True)
    report_path = _output_path(output_dir, "quality_audit", run_timestamp, keep_history)
    try:
        with report_path.open("w", encoding="utf-8") as f:
            json.dump(report, f, ensure_ascii=False, indent=2)
        output_paths["audit"] = report_path
        logger.info("✓ Wrote %d audit rows to %s", len(report), report_path.name)
    except Exception:
        logger.exception("Failed to save audit report")
        raise

    _save_metadata(output_dir, run_timestamp, keep_history, {
        "job": "audit",
        "catalog": str(catalog_path),
        "records": len(report),
        "passed": passed,
        "published_failures": published_failures,
        "outputs": {k: str(v) for k, v in output_paths.items()},
        "duration_seconds": time.time() - job_start,
    })
    return len(report), published_failures, output_paths


# ---------------------------------------------------------------------------
# Embedding index
# ---------------------------------------------------------------------------


def run_embedding_index(
    catalog_path: Union[Path, str],
    output_dir: Union[Path, str] = "output",
    model: str = EMBEDDING_MODEL,
    limit: Optional[int] = None,
    batch_size: int = 50,
    keep_history: bool = True,
    dry_run: bool = False,
) -> Tuple[int, int, Dict[str, Path]]:
    """
    Embed passages whose text changed since they were last indexed.

    Pipeline Steps:
    1. Load the catalog
    2. Plan: skip passages without text or with an unchanged content hash
    3. Generate embeddings in batches
    4. Save embedding rows

    Returns:
        Tuple of (passages_in_catalog, passages_embedded, output_paths_dict)
    """
    catalog_path = Path(catalog_path)
    output_dir = Path(output_dir)
    run_timestamp = _timestamp()
    job_start = time.time()

    # ========== STEP 1: LOAD CATALOG ==========
    logger.info("STEP 1/4: Loading catalog")
    store = _load(catalog_path)
    passages = store.list_passages()

    # ========== STEP 2: PLAN ==========
    logger.info("STEP 2/4: Planning embeddings for %d passages (model=%s)", len(passages), model)
    existing = store.list_embeddings_for(p.id for p in passages)
    jobs = plan_passage_embeddings(passages, existing, model)
    if limit is not None:
        logger.info("Applying limit: %d passages", limit)
        jobs = jobs[:limit]

    output_paths: Dict[str, Path] = {}
    if dry_run:
        logger.info("DRY RUN: %d passages would be embedded; nothing written", len(jobs))
        return len(passages), 0, output_paths

    # ========== STEP 3: EMBED ==========
    t2 = time.time()
    logger.info("STEP 3/4: Generating embeddings for %d passages", len(jobs))
    rows: List[EmbeddingVector] = []
    for start in range(0, len(jobs), batch_size):
        batch = jobs[start:start + batch_size]
        try:
            vectors = embed_texts([job.text for job in batch], model=model, batch_size=batch_size)
        except Exception:
            logger.exception("Failed to embed batch starting at %d", start)
            raise
        indexed_at = datetime.now(timezone.utc)
        for job, vector in zip(batch, vectors):
            row = EmbeddingVector(
                passage_id=job.passage_id,
                model=model,
                dims=len(vector),
                vector=vector,
                content_hash=job.content_hash,
                indexed_at=indexed_at,
            )
            store.upsert_embedding(row)
            rows.append(row)
    logger.info("✓ Generated %d embeddings in %.2fs", len(rows), time.time() - t2)

    # ========== STEP 4: SAVE ==========
    logger.info("STEP 4/4: Saving embeddings")
    output_dir.mkdir(parents=True, exist_ok=True)
    embeddings_path = _output_path(output_dir, "passage_embeddings", run_timestamp, keep_history)
    try:
        with embeddings_path.open("w", encoding="utf-8") as f:
            json.dump([row.model_dump(mode="json") for row in rows], f, ensure_ascii=False, indent=2)
        output_paths["embeddings"] = embeddings_path
        logger.info("✓ Wrote %d embeddings to %s", len(rows), embeddings_path.name)
    except Exception:
        logger.exception("Failed to save embeddings")
        raise

    _save_metadata(output_dir, run_timestamp, keep_history, {
        "job": "embed",
        "catalog": str(catalog_path),
        "model": model,
        "passages": len(passages),
        "embedded": len(rows),
        "outputs": {k: str(v) for k, v in output_paths.items()},
        "duration_seconds": time.time() - job_start,
    })
    return len(passages), len(rows), output_paths


# ---------------------------------------------------------------------------
# Click depth
# ---------------------------------------------------------------------------


def build_site_graph(store: InMemoryContentStore) -> Dict[str, Set[str]]:
    """Internal link graph of the public site.

    Edges: home -> hubs and static pages, hub -> its published detail pages,
    detail page -> links in its markup, related links and verse links.
    """
    graph: Dict[str, Set[str]] = {HOME_PATH: set()}
    graph[HOME_PATH].update(hub.href for hub in hub_links())
    graph[HOME_PATH].update(route for route in STATIC_PUBLIC_ROUTES if route != HOME_PATH)

    resolver = RelatedLinksResolver(store)
    for entity_type in EntityType:
        hub = hub_for(entity_type)
        hub_edges = graph.setdefault(hub, set())
        for record in store.list_records(entity_type):
            if not record.is_published:
                continue
            path = route_for(entity_type, record.slug)
            hub_edges.add(path)
            edges = graph.setdefault(path, set())
            for markup in record.extract_markup():
                edges.update(extract_internal_links(markup))
            edges.update(link.href for link in resolver.related_links(entity_type, record))
            edges.update(
                link.href for link in build_passage_graph_links(store.passage_links_for(entity_type, record.id))
            )
    return graph


def check_click_depth(
    store: InMemoryContentStore,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[Tuple[str, Optional[int]]]:
    """Published detail pages deeper than ``max_depth`` (depth None = unreachable)."""
    depths = compute_depths(build_site_graph(store), HOME_PATH)
    violations: List[Tuple[str, Optional[int]]] = []
    for entity_type in EntityType:
        for record in store.list_records(entity_type):
            if not record.is_published:
                continue
            path = route_for(entity_type, record.slug)
            node = depths.get(path)
            if node is None or node.depth > max_depth:
                violations.append((path, node.depth if node else None))

    logger.info("Click-depth check: %d pages analyzed, %d violations", len(depths), len(violations))
    return violations


def run_click_depth(catalog_path: Union[Path, str], max_depth: int = DEFAULT_MAX_DEPTH) -> List[Tuple[str, Optional[int]]]:
    store = _load(Path(catalog_path))
    return check_click_depth(store, max_depth)


def _save_metadata(
    output_dir: Path,
    run_timestamp: str,
    keep_history: bool,
    metadata: Dict[str, Any]
) -> None:
    """Save job run metadata."""
    if keep_history:
        meta_filename = f"run_metadata_{run_timestamp}.json"
    else:
        meta_filename = "run_metadata.json"

    meta_path = output_dir / meta_filename
    metadata["timestamp"] = run_timestamp

    try:
        with meta_path.open("w", encoding="utf-8") as f:
            json.dump(metadata, f, ensure_ascii=False, indent=2)
        logger.info("✓ Saved: %s", meta_filename)
    except Exception:
        logger.warning("Failed to save metadata (non-fatal)", exc_info=True)
