# tests/test_pipeline.py

"""
CLI and batch-job tests. The CLI entrypoint (run_pipeline.main) is called
directly so the jobs are exercised the way they run in production.
"""

import json
from pathlib import Path

import pytest

import run_pipeline
from content_intel import pipeline as pipeline_mod
from content_intel.models import EntityType
from content_intel.routes import compute_depths
from content_intel.scripts import validate_output as validate_script


@pytest.fixture(autouse=True)
def run_in_tmp(tmp_path: Path, monkeypatch):
    """configure_logging writes logs/pipeline.log relative to the cwd."""
    monkeypatch.chdir(tmp_path)


def fake_embed_texts(texts, model=None, **kwargs):
    return [[1.0, 0.0, float(len(text) % 7)] for text in texts]


# -------------------------------------------------------------------
# audit
# -------------------------------------------------------------------


def test_audit_missing_catalog_exits_nonzero(tmp_path: Path):
    output_dir = tmp_path / "output"

    exit_code = run_pipeline.main(
        ["audit", "--catalog", str(tmp_path / "missing.json"), "--output-dir", str(output_dir)]
    )

    assert exit_code != 0
    if output_dir.exists():
        assert len(list(output_dir.iterdir())) == 0


def test_audit_writes_report(tmp_path: Path, catalog_file: Path, capsys):
    output_dir = tmp_path / "output"

    exit_code = run_pipeline.main(["audit", "--catalog", str(catalog_file), "--output-dir", str(output_dir)])

    assert exit_code == 0
    reports = list(output_dir.glob("quality_audit_*.json"))
    assert len(reports) == 1
    rows = json.loads(reports[0].read_text(encoding="utf-8"))
    assert len(rows) == 11
    by_slug = {row["slug"]: row for row in rows}
    assert by_slug["jerusalem"]["ok"] is True
    assert by_slug["hebron"]["ok"] is False
    assert by_slug["hebron"]["status"] == "draft"
    assert by_slug["hebron"]["reasons"][0].startswith("Too few words")

    messages = capsys.readouterr().err
    assert "=== Starting content intelligence job: audit ===" in messages
    assert "STEP 1/3: Loading catalog" in messages
    assert "STEP 2/3: Evaluating records" in messages


def test_audit_fails_when_published_record_fails_gate(tmp_path: Path, catalog_data):
    for row in catalog_data["records"]:
        if row["slug"] == "hebron":
            row["status"] = "published"
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog_data), encoding="utf-8")

    exit_code = run_pipeline.main(
        ["audit", "--catalog", str(path), "--output-dir", str(tmp_path / "out"), "--no-history"]
    )

    assert exit_code == 1
    # The report is still written for triage
    assert (tmp_path / "out" / "quality_audit.json").exists()


def test_audit_dry_run_writes_nothing(tmp_path: Path, catalog_file: Path):
    output_dir = tmp_path / "output"

    total, failures, paths = pipeline_mod.run_quality_audit(catalog_file, output_dir, dry_run=True)

    assert total == 11
    assert failures == 0
    assert paths == {}
    assert not output_dir.exists() or not any(output_dir.iterdir())


# -------------------------------------------------------------------
# embed
# -------------------------------------------------------------------


def test_embed_then_validate(tmp_path: Path, catalog_file: Path, monkeypatch, capsys):
    """
    Full integration: embed passages through the CLI, then validate the
    produced file with the validation script.
    """
    monkeypatch.setattr(pipeline_mod, "embed_texts", fake_embed_texts)
    output_dir = tmp_path / "output"

    exit_code = run_pipeline.main(
        ["embed", "--catalog", str(catalog_file), "--output-dir", str(output_dir), "--no-history"]
    )

    assert exit_code == 0
    embeddings_file = output_dir / "passage_embeddings.json"
    rows = json.loads(embeddings_file.read_text(encoding="utf-8"))
    # Passage 4 has no text; the other three have stale hashes
    assert sorted(row["passage_id"] for row in rows) == [1, 2, 3]
    assert all(row["dims"] == 3 for row in rows)

    with pytest.raises(SystemExit) as excinfo:
        validate_script.main(argv=["--path", str(embeddings_file), "--expected-dim", "3"])
    assert excinfo.value.code == 0
    assert "VALIDATION PASSED" in capsys.readouterr().out


def test_embed_skips_unchanged_passages(tmp_path: Path, catalog_data, monkeypatch):
    monkeypatch.setattr(pipeline_mod, "embed_texts", fake_embed_texts)
    first_path = tmp_path / "catalog.json"
    first_path.write_text(json.dumps(catalog_data), encoding="utf-8")

    _, embedded, paths = pipeline_mod.run_embedding_index(first_path, tmp_path / "out1", keep_history=False)
    assert embedded == 3

    catalog_data["embeddings"] = json.loads(paths["embeddings"].read_text(encoding="utf-8"))
    second_path = tmp_path / "catalog2.json"
    second_path.write_text(json.dumps(catalog_data), encoding="utf-8")

    _, embedded, _ = pipeline_mod.run_embedding_index(second_path, tmp_path / "out2", keep_history=False)
    assert embedded == 0


def test_embed_limit_and_batches(tmp_path: Path, catalog_file: Path, monkeypatch):
    batches = []

    def recording_embed(texts, model=None, **kwargs):
        batches.append(len(texts))
        return fake_embed_texts(texts)

    monkeypatch.setattr(pipeline_mod, "embed_texts", recording_embed)

    _, embedded, _ = pipeline_mod.run_embedding_index(
        catalog_file, tmp_path / "out", limit=2, batch_size=1, keep_history=False
    )

    assert embedded == 2
    assert batches == [1, 1]


def test_embed_api_error_fails_fast(tmp_path: Path, catalog_file: Path, monkeypatch):
    def failing_embed(*args, **kwargs):
        raise RuntimeError("Simulated OpenAI API error")

    monkeypatch.setattr(pipeline_mod, "embed_texts", failing_embed)
    output_dir = tmp_path / "output"

    exit_code = run_pipeline.main(["embed", "--catalog", str(catalog_file), "--output-dir", str(output_dir)])

    assert exit_code != 0
    if output_dir.exists():
        assert list(output_dir.glob("passage_embeddings*.json")) == []


def test_embed_dry_run(tmp_path: Path, catalog_file: Path, monkeypatch):
    monkeypatch.setattr(pipeline_mod, "embed_texts", lambda *a, **k: pytest.fail("should not embed"))

    exit_code = run_pipeline.main(
        ["embed", "--catalog", str(catalog_file), "--output-dir", str(tmp_path / "out"), "--dry-run"]
    )

    assert exit_code == 0
    assert not (tmp_path / "out").exists()


# -------------------------------------------------------------------
# click-depth
# -------------------------------------------------------------------


def test_click_depth_passes_for_fixture(catalog_file: Path):
    assert run_pipeline.main(["click-depth", "--catalog", str(catalog_file)]) == 0


def test_click_depth_fails_when_limit_too_low(catalog_file: Path):
    assert run_pipeline.main(["click-depth", "--catalog", str(catalog_file), "--max-depth", "1"]) == 1


def test_site_graph_depths(store):
    depths = compute_depths(pipeline_mod.build_site_graph(store))

    assert depths["/bible-places"].depth == 1
    assert depths["/bible-places/jerusalem"].depth == 2
    assert depths["/bible-verses-for/teachers"].depth == 2
    # Verse pages are reachable through detail pages
    assert depths["/verse/1/1/1"].depth == 3
    # Drafts are not listed on hubs
    assert "/bible-places/hebron" not in depths


def test_click_depth_reports_unreachable_pages(store):
    violations = pipeline_mod.check_click_depth(store, max_depth=1)

    paths = [path for path, _ in violations]
    assert "/bible-places/jerusalem" in paths
    assert all(depth == 2 for _, depth in violations)
    published = sum(
        1 for entity_type in EntityType for record in store.list_records(entity_type) if record.is_published
    )
    assert len(violations) == published
