"""
Seed user profiles (roles, locations, contact details) into the configured store.

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Custom seed file: python scripts/seed_db.py --apply --seed ./my_users.json

Seed file format:
  {"users": {"<uid>": {"first_name": "...", "role": "admin", "location": "Marikina", ...}}}

The uid must match the Firebase Auth uid of the account so that tokens
resolve to the seeded role and location.
"""

import argparse
import json
import os

from app.models.user import UserProfile
from app.services.report_store import get_report_store


def load_seed(path: str) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--seed", default=os.path.join(os.getcwd(), "db_seed.json"), help="Seed file path")
    args = parser.parse_args()

    if not os.path.exists(args.seed):
        print(f"Seed file not found: {args.seed}")
        return

    users = load_seed(args.seed).get("users", {})
    store = get_report_store() if args.apply else None

    for user_id, data in users.items():
        profile = UserProfile(**{**data, "id": user_id})
        print(f"Preparing: users/{user_id} role={profile.role.value} location={profile.location}")
        if store is not None:
            store.save_user(profile)
            print(f"Wrote: users/{user_id}")

    if args.apply:
        print("Seeding completed.")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
