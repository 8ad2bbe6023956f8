"""Embedding Output Validation Script

Validates that a generated passage embeddings JSON file conforms to the
expected row schema:
  - Required fields present and correctly typed (passage_id, model, vector,
    content_hash)
  - Declared dims matches the vector length (and --expected-dim if given)
  - Vector values are finite numbers
  - content_hash looks like a sha256 hex digest

Usage:
    python -m content_intel.scripts.validate_output \\
        --path output/passage_embeddings.json \\
        --expected-dim 1536

Exits with code 0 on success, 1 on validation failure, 2 on argument error.
"""

import argparse
import json
import math
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

SHA256_HEX_RE = re.compile(r"^[0-9a-f]{64}$")


def load_rows(path: Path) -> List[Dict[str, Any]]:
    """Load embedding rows from a JSON file.

    Supports:
      - a JSON array of objects
      - newline-delimited JSON (JSONL)
    """
    with path.open("r", encoding="utf-8") as f:
        content = f.read().strip()

    try:
        data = json.loads(content)
        if isinstance(data, list):
            return data
        raise ValueError("Top-level JSON is not a list of rows.")
    except json.JSONDecodeError:
        pass  # fall through to JSONL

    rows: List[Dict[str, Any]] = []
    for line_no, line in enumerate(content.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse JSON on line {line_no}: {e}") from e
        if not isinstance(obj, dict):
            raise ValueError(f"Line {line_no} JSON is not an object (got {type(obj)})")
        rows.append(obj)

    if not rows:
        raise ValueError("No rows found in file.")

    return rows


def is_finite_number(x: Any) -> bool:
    """True for int/float values that are finite (bools excluded)."""
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)


def validate_row(
    row: Any,
    idx: int,
    expected_dim: Optional[int],
) -> Tuple[List[str], List[str]]:
    """Validate a single embedding row.

    Returns:
        (errors, warnings)
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(row, dict):
        errors.append(f"[idx={idx}] row should be an object, got {type(row).__name__}")
        return errors, warnings

    # --- passage_id ---
    passage_id = row.get("passage_id")
    if passage_id is None:
        errors.append(f"[idx={idx}] missing 'passage_id'")
    elif not isinstance(passage_id, int) or isinstance(passage_id, bool):
        errors.append(f"[idx={idx}] 'passage_id' should be int, got {type(passage_id).__name__}")

    # --- model ---
    model = row.get("model")
    if not isinstance(model, str) or not model.strip():
        errors.append(f"[idx={idx}] 'model' should be a non-empty string")

    # --- vector ---
    vector = row.get("vector")
    if vector is None:
        errors.append(f"[idx={idx}] missing 'vector'")
    elif not isinstance(vector, list):
        errors.append(f"[idx={idx}] 'vector' should be a list, got {type(vector).__name__}")
    else:
        if not vector:
            errors.append(f"[idx={idx}] 'vector' is empty")
        if expected_dim is not None and len(vector) != expected_dim:
            errors.append(f"[idx={idx}] vector length {len(vector)} != expected_dim {expected_dim}")
        dims = row.get("dims")
        if dims is None:
            warnings.append(f"[idx={idx}] missing 'dims'")
        elif dims != len(vector):
            errors.append(f"[idx={idx}] dims {dims} != vector length {len(vector)}")
        for j, v in enumerate(vector):
            if not is_finite_number(v):
                errors.append(f"[idx={idx}] vector[{j}] is not a finite number (got {v!r})")
                break

    # --- content_hash ---
    content_hash = row.get("content_hash")
    if content_hash is None:
        errors.append(f"[idx={idx}] missing 'content_hash'")
    elif not isinstance(content_hash, str) or not SHA256_HEX_RE.match(content_hash):
        errors.append(f"[idx={idx}] 'content_hash' is not a sha256 hex digest")

    if row.get("indexed_at") is None:
        warnings.append(f"[idx={idx}] missing 'indexed_at'")

    return errors, warnings


def main(argv: Optional[List[str]] = None) -> None:
    """Validate a passage embeddings output file.

    Raises:
        SystemExit: With code 0 on success, 1 on validation failure
    """
    parser = argparse.ArgumentParser(description="Validate passage embeddings JSON output.")
    parser.add_argument(
        "--path",
        type=str,
        required=True,
        help="Path to passage_embeddings.json",
    )
    parser.add_argument(
        "--expected-dim",
        type=int,
        default=None,
        help="Expected vector dimensionality (e.g. 1536). "
             "If not provided, dimensionality is not enforced.",
    )
    args = parser.parse_args(argv)

    try:
        rows = load_rows(Path(args.path))
    except Exception as e:
        print(f"FAILED TO LOAD FILE: {e}")
        raise SystemExit(1)

    all_errors: List[str] = []
    all_warnings: List[str] = []
    seen = set()

    for idx, row in enumerate(rows):
        errors, warnings = validate_row(row, idx, args.expected_dim)
        all_errors.extend(errors)
        all_warnings.extend(warnings)
        if isinstance(row, dict):
            key = (row.get("passage_id"), row.get("model"))
            if key in seen:
                warnings_msg = f"[idx={idx}] duplicate row for passage_id={key[0]} model={key[1]}"
                all_warnings.append(warnings_msg)
            seen.add(key)

    if all_errors:
        print("VALIDATION FAILED:\n")
        for err in all_errors:
            print(err)
        print(f"\nTotal errors: {len(all_errors)}")
        if all_warnings:
            print(f"Total warnings: {len(all_warnings)}")
        raise SystemExit(1)

    print("VALIDATION PASSED")
    print(f"Total rows: {len(rows)}")
    if all_warnings:
        print("\nWarnings (non-fatal):")
        for w in all_warnings:
            print(w)
        print(f"\nTotal warnings: {len(all_warnings)}")

    raise SystemExit(0)


if __name__ == "__main__":
    main()
