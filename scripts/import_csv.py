"""
Import a CSV of laundromats into the configured database.

Usage:
  python scripts/import_csv.py PATH [--chunk-size N]
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from laundrylocator.core.logger import get_logger
from laundrylocator.database import SessionLocal, init_db
from laundrylocator.services.csv_importer import import_csv_file

logger = get_logger("scripts.import_csv")


def main() -> int:
    parser = argparse.ArgumentParser(description="Import a laundromat CSV into the database.")
    parser.add_argument("path", type=Path)
    parser.add_argument("--chunk-size", type=int, default=None)
    args = parser.parse_args()

    init_db()
    db = SessionLocal()
    try:
        logger.info("Importing %s", args.path)
        result = import_csv_file(db, args.path, chunk_size=args.chunk_size)
    finally:
        db.close()

    print(json.dumps(result, indent=2))
    return 0 if result["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
