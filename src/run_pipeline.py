"""Content Intelligence CLI Entry Point

Provides the command-line interface for the batch jobs of the content
intelligence engine. Handles argument parsing, logging configuration, and
dispatch to the quality audit, embedding index and click-depth jobs.

Usage:
    python src/run_pipeline.py audit --catalog data/catalog.json --output-dir output
    python src/run_pipeline.py embed --catalog data/catalog.json --output-dir output --limit 100
    python src/run_pipeline.py click-depth --catalog data/catalog.json --max-depth 3
"""

import argparse
import logging
import time
from pathlib import Path

from content_intel.embeddings import EMBEDDING_MODEL
from content_intel.pipeline import DEFAULT_MAX_DEPTH, run_click_depth, run_embedding_index, run_quality_audit


def configure_logging() -> None:
    """Configure logging with both console and file output.

    Sets up:
      - Root logger at DEBUG level
      - Console handler at INFO level for user-facing messages
      - File handler at DEBUG level for detailed troubleshooting
      - Reduced verbosity for httpx and openai loggers
    """
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)
    log_file = log_dir / "pipeline.log"

    # Root logger
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )

    # Console handler: high-level INFO+
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)

    # File handler: detailed DEBUG+
    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    # Clear existing handlers to avoid duplicates if run multiple times
    logger.handlers.clear()
    logger.addHandler(console_handler)
    logger.addHandler(file_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Content intelligence batch jobs")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_catalog(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--catalog",
            type=Path,
            default=Path("data/catalog.json"),
            help="Path to the catalog JSON export.",
        )

    def add_output(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "--output-dir",
            type=Path,
            default=Path("output"),
            help="Directory where output files will be written.",
        )
        sub.add_argument(
            "--no-history",
            action="store_true",
            help="Overwrite output files instead of creating timestamped versions",
        )
        sub.add_argument(
            "--dry-run",
            action="store_true",
            help="Process data but don't write any output files",
        )

    audit = subparsers.add_parser("audit", help="Evaluate every record against the publish gate")
    add_catalog(audit)
    add_output(audit)

    embed = subparsers.add_parser("embed", help="Embed passages whose text changed")
    add_catalog(embed)
    add_output(embed)
    embed.add_argument("--model", default=EMBEDDING_MODEL, help="Embedding model name.")
    embed.add_argument("--limit", type=int, default=None, help="Optional limit on passages to embed.")
    embed.add_argument(
        "--batch-size",
        type=int,
        default=50,
        help="Number of passages per embedding request (default: 50)",
    )

    depth = subparsers.add_parser("click-depth", help="Check click depth of published pages")
    add_catalog(depth)
    depth.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help=f"Maximum allowed clicks from the home page (default: {DEFAULT_MAX_DEPTH})",
    )
    return parser


def main(argv=None) -> int:
    """
    CLI entrypoint for the content intelligence batch jobs.

    Returns a Unix-style exit code: 0 on success, 1 when the job fails or
    finds violations (failing published records, pages too deep).
    """
    configure_logging()
    logger = logging.getLogger(__name__)

    args = build_parser().parse_args(argv)

    logger.info("=== Starting content intelligence job: %s ===", args.command)
    logger.info("Catalog: %s", args.catalog)
    start_time = time.time()

    try:
        if args.command == "audit":
            total, failures, output_paths = run_quality_audit(
                catalog_path=args.catalog,
                output_dir=args.output_dir,
                keep_history=not args.no_history,
                dry_run=args.dry_run,
            )
            exit_code = 1 if failures else 0
            summary = [f"Records evaluated: {total}", f"Published records failing: {failures}"]

        elif args.command == "embed":
            total, embedded, output_paths = run_embedding_index(
                catalog_path=args.catalog,
                output_dir=args.output_dir,
                model=args.model,
                limit=args.limit,
                batch_size=args.batch_size,
                keep_history=not args.no_history,
                dry_run=args.dry_run,
            )
            exit_code = 0
            summary = [f"Passages: {total}", f"Embedded: {embedded}", f"Model: {args.model}"]

        else:
            violations = run_click_depth(args.catalog, max_depth=args.max_depth)
            output_paths = {}
            for path, depth in violations:
                if depth is None:
                    logger.error("  %s (unreachable)", path)
                else:
                    logger.error("  %s (depth %d > %d)", path, depth, args.max_depth)
            exit_code = 1 if violations else 0
            summary = [f"Violations: {len(violations)}"]

    except Exception as e:
        logger.exception("Job failed with an unhandled exception: %s", e)
        return 1

    logger.info("=" * 70)
    logger.info("Job %s finished in %.2fs", args.command, time.time() - start_time)
    for line in summary:
        logger.info("  %s", line)
    for name, path in output_paths.items():
        logger.info("  %-12s %s", f"{name}:", path)
    logger.info("=" * 70)

    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
