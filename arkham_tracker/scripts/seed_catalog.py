#!/usr/bin/env python3
"""
Refresh the investigator catalog from ArkhamDB (or a saved card dump).
Usage (from repo root):
  python -m arkham_tracker.scripts.seed_catalog            # fetch ARKHAMDB_CARDS_URL
  python -m arkham_tracker.scripts.seed_catalog cards.json # use a local dump
Rows are upserted by code; games keep their own copy of investigator stats.
"""
import json
import logging
import sys

from arkham_tracker.api.catalog import fetch_catalog_cards, seed_catalog
from arkham_tracker.api.database import SessionLocal, get_db_file_path, init_db
from arkham_tracker.config import LOG_LEVEL
from arkham_tracker.engine.catalog import CatalogCard, select_investigators


def load_cards_file(path: str) -> list[CatalogCard]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of cards")
    return select_investigators(data)


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    if argv:
        try:
            cards = load_cards_file(argv[0])
        except (OSError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        cards = fetch_catalog_cards()
    if not cards:
        print("No investigators found; catalog left unchanged.", file=sys.stderr)
        return 2

    init_db()
    db = SessionLocal()
    try:
        written = seed_catalog(db, cards)
    finally:
        db.close()
    print(f"Seeded {written} investigators.")
    db_path = get_db_file_path()
    if db_path:
        print(f"DB file: {db_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
