"""
Seed script for FieldWatch's Firestore collections.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to Firestore: python scripts/seed_db.py --apply
  - Custom seed file:   python scripts/seed_db.py --seed ./my_seed.json --apply

Behavior:
  - Loads a {collection: {doc_id: data}} JSON file (default `db_seed.example.json`).
  - Only `reports`, `sos_alerts` and `users` are written.
  - `created_at` is set to the server timestamp when a document has none.

NOTE: With USE_MOCK_DB=true nothing is written; point MOCK_DB_PATH at the
seed file instead and the in-memory store loads it at startup.
"""

import argparse
import json
import os

from firebase_admin import firestore

from fieldwatch.config.firebase import get_db
from fieldwatch.core.settings import settings

SEEDABLE_COLLECTIONS = ("reports", "sos_alerts", "users")


def load_seed(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_to_db(db, seed: dict, apply: bool = False) -> int:
    written = 0
    for collection, docs in seed.items():
        if collection not in SEEDABLE_COLLECTIONS:
            print(f"Skipping unknown collection: {collection}")
            continue
        for doc_id, data in docs.items():
            print(f"Preparing: {collection}/{doc_id}")
            if not apply:
                continue
            payload = dict(data)
            if collection != "users":
                payload.setdefault("created_at", firestore.SERVER_TIMESTAMP)
            try:
                db.collection(collection).document(doc_id).set(payload)
                written += 1
                print(f"Wrote: {collection}/{doc_id}")
            except Exception as e:
                print(f"Failed to write {collection}/{doc_id}: {e}")
    return written


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to Firestore instead of dry-run")
    parser.add_argument("--seed", default=os.path.join(os.getcwd(), "db_seed.example.json"), help="Seed JSON file")
    args = parser.parse_args()

    if not os.path.exists(args.seed):
        print(f"Seed file not found: {args.seed}")
        return

    seed = load_seed(args.seed)

    if settings.USE_MOCK_DB:
        print("USE_MOCK_DB is set: set MOCK_DB_PATH to this seed file instead of writing it.")
        write_to_db(None, seed, apply=False)
        return

    db = get_db() if args.apply else None
    written = write_to_db(db, seed, apply=args.apply)

    if args.apply:
        print(f"Seeding completed ({written} documents).")
    else:
        print("Dry run complete. Re-run with --apply to write to Firestore.")


if __name__ == "__main__":
    main()
