"""
Migration: remove PII from Resolved reports.

Reports resolved before PII was stripped at the confirmation step may still
hold names, contacts and descriptions. This clears them.

Usage:
  - Dry run (default): python scripts/remove_pii_from_resolved.py
  - Apply: python scripts/remove_pii_from_resolved.py --apply
"""

import argparse
import logging
import sys

from app.models.user import Actor, Role
from app.services.pii_migration import remove_pii_from_resolved_reports
from app.services.report_store import get_report_store

MIGRATION_ACTOR = Actor(id="migration-script", role=Role.SUPERADMIN)


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write changes instead of dry-run")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    result = remove_pii_from_resolved_reports(get_report_store(), MIGRATION_ACTOR, apply=args.apply)

    print("\n📊 Migration Summary:")
    print(f"   Total resolved reports: {result.total}")
    print(f"   {'Updated' if args.apply else 'Would update'}: {result.updated}")
    print(f"   Skipped (already clean): {result.skipped}")
    print(f"   Failed: {result.failed}")
    if not args.apply:
        print("\nDry run complete. Re-run with --apply to write to DB.")

    sys.exit(1 if result.failed else 0)


if __name__ == "__main__":
    main()
