#!/usr/bin/env python3
"""
Ask a question about a CSV file.

Usage:
    python scripts/ask_csv.py data.csv "Which city is the capital of France?"
    python scripts/ask_csv.py --check
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from csv_rag.config import RagSettings, configure_logging
from csv_rag.errors import ConfigurationError
from csv_rag.pipeline import CsvRagPipeline
from csv_rag.similarity_client import check_similarity_service
from csv_rag.tables import parse_table_input


def read_csv_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return path.read_text(encoding="latin-1")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Answer a question from CSV rows")
    parser.add_argument("csv_path", nargs="?", help="CSV or TSV file (first row = headers)")
    parser.add_argument("question", nargs="?", help="Natural-language question")
    parser.add_argument("--top-k", type=int, default=None)
    parser.add_argument("--check", action="store_true", help="Only probe the similarity service")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args(argv)

    try:
        overrides = {"top_k": args.top_k} if args.top_k is not None else {}
        settings = RagSettings.from_env(**overrides)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    configure_logging("DEBUG" if args.verbose else settings.log_level)

    if args.check:
        check = check_similarity_service(settings)
        status = "OK" if check.ok else "FAILED"
        print(f"{status}: {check.detail} ({check.endpoint})")
        if check.scores:
            print(f"Scores: {check.scores}")
        return 0 if check.ok else 1

    if not args.csv_path or not args.question:
        parser.error("csv_path and question are required unless --check is given")

    records = parse_table_input(read_csv_text(Path(args.csv_path)))
    if not records:
        print("File has no data rows or could not be parsed.", file=sys.stderr)
        return 1

    try:
        pipeline = CsvRagPipeline.from_settings(settings)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    with pipeline:
        corpus = pipeline.build_index(records)
        result = pipeline.ask(corpus, args.question)

    print(f"Question: {args.question}")
    print("=" * 60)
    print(result.answer)
    print()
    print("Context:")
    print("-" * 60)
    for i, entry in enumerate(result.context, start=1):
        print(f"  {i}. {entry}")
    if corpus.degraded:
        print("\n(warning: some embeddings used fallback vectors)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
