#!/usr/bin/env python3
"""
Migration script to normalize stored plot points to list form.

Older projects store an act's plot points either wrapped in an object
(``{"plotPoints": [...], ...}``) or as a sparse map with numeric-string keys
(``{"0": "...", "1": "..."}``). Reads already normalize these shapes; this
script rewrites the stored documents so the legacy shapes disappear.

Run with: python scripts/normalize_plot_points.py [--apply] [project_id ...]
"""

import argparse
import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from storyframe.services.project_store import SqlProjectStore


async def migrate_project(store: SqlProjectStore, project_id: str, dry_run: bool = True) -> list[str]:
    """Normalize a single project. Returns list of report lines."""
    lines = [f"\n=== Project: {project_id} ==="]
    changes = await store.normalize_plot_points(project_id, dry_run=dry_run)
    if not changes:
        lines.append("  No changes needed")
        return lines

    lines.extend(changes)
    lines.append("  [DRY RUN - No changes made]" if dry_run else "  [COMMITTED]")
    return lines


async def migrate_all(project_ids: list[str], dry_run: bool = True):
    print(f"\n{'='*60}")
    print(f"Plot Point Normalization {'(DRY RUN)' if dry_run else '(LIVE)'}")
    print(f"{'='*60}\n")

    store = SqlProjectStore()
    if not project_ids:
        project_ids = await store.list_project_ids()

    print(f"Found {len(project_ids)} projects to process.\n")

    changed = 0
    for project_id in project_ids:
        lines = await migrate_project(store, project_id, dry_run)
        if len(lines) > 2:
            changed += 1
        print("\n".join(lines))

    print(f"\n{changed} of {len(project_ids)} projects had legacy plot points.")
    if dry_run and changed:
        print("Re-run with --apply to write the changes.")


def main():
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("project_ids", nargs="*", help="Projects to normalize (default: all)")
    parser.add_argument("--apply", action="store_true", help="Write changes instead of a dry run")
    args = parser.parse_args()
    asyncio.run(migrate_all(args.project_ids, dry_run=not args.apply))


if __name__ == "__main__":
    main()
