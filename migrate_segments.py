#!/usr/bin/env python3
"""Convert legacy single-price routes into segment-enabled routes.

Usage:
    python migrate_segments.py [--force] [--dry-run] [--route-id ID ...] [--include-inactive]
"""

import argparse
import sys

from busnet.database import SessionLocal, init_db
from busnet.logger import setup_logging
from busnet.segments.migration import LegacyRouteMigrator
from busnet.segments.schemas import MigrationRequest


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Migrate legacy routes to route segments")
    parser.add_argument("--force", action="store_true",
                        help="Rebuild segments for routes that already have them")
    parser.add_argument("--dry-run", action="store_true",
                        help="Report what would be migrated without writing")
    parser.add_argument("--route-id", type=int, action="append", dest="route_ids",
                        help="Only migrate this route (repeatable)")
    parser.add_argument("--include-inactive", action="store_true",
                        help="Also migrate inactive routes")
    return parser.parse_args(argv)


def run_migration(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()
    init_db()

    request = MigrationRequest(
        force=args.force,
        route_ids=args.route_ids,
        include_inactive=args.include_inactive,
        dry_run=args.dry_run,
    )

    db = SessionLocal()
    try:
        print("🚌 Migrating legacy routes to segments...")
        report = LegacyRouteMigrator(db).migrate(request)
    finally:
        db.close()

    for detail in report.per_route_detail:
        line = f"  - route {detail.route_id}: {detail.status}"
        if detail.source:
            line += f" from {detail.source} ({detail.segments_created} segment(s))"
        if detail.reason:
            line += f" - {detail.reason}"
        print(line)

    prefix = "[dry run] " if report.dry_run else ""
    print(f"{prefix}Processed {report.total_routes_processed} route(s): "
          f"{report.migrated} migrated, {report.skipped} skipped, {report.failed} failed")
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(run_migration())
