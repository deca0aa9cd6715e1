"""
Write an enriched copy of a laundromat CSV (SEO tags, summaries, premium score).

Usage:
  python scripts/enrich_csv.py PATH [--output OUT]
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from laundrylocator.core.exceptions import CSVImportError
from laundrylocator.services.enricher import enrich_csv_file


def main() -> int:
    parser = argparse.ArgumentParser(description="Enrich and dedupe a laundromat CSV.")
    parser.add_argument("path", type=Path)
    parser.add_argument("--output", type=Path, default=None)
    args = parser.parse_args()

    try:
        result = enrich_csv_file(args.path, args.output)
    except CSVImportError as exc:
        print(f"Enrichment failed: {exc}", file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
