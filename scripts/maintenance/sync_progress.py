#!/usr/bin/env python3
"""
Reconcile catalog ordering and progress records.

  - Compacts skill/task positions so every course reads back in a stable order.
  - Backfills a completed task-progress entry for every task in a record's
    completed set.
  - Recomputes the cached totals of every progress record.

Safe to re-run.

USAGE:
  # Show what would change, write nothing:
  python scripts/maintenance/sync_progress.py --dry-run

  # Apply:
  python scripts/maintenance/sync_progress.py
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(PROJECT_ROOT))

from libs.common.logging import configure_logging, get_logger  # noqa: E402
from libs.db.config import AsyncSessionLocal, engine  # noqa: E402
from services.learning_service.models import Course  # noqa: E402
from services.learning_service.services.consistency import (  # noqa: E402
    backfill_task_progress,
    recalculate_course_progress,
    renumber_positions,
)
from sqlalchemy import select  # noqa: E402

logger = get_logger(__name__)


async def sync_progress(dry_run: bool = False) -> dict[str, int]:
    async with AsyncSessionLocal() as session:
        moved = await renumber_positions(session)
        backfilled = await backfill_task_progress(session)
        await session.flush()

        course_ids = (await session.execute(select(Course.id))).scalars().all()
        recalculated = 0
        for course_id in course_ids:
            recalculated += await recalculate_course_progress(session, course_id)

        if dry_run:
            await session.rollback()
            print("\n[DRY RUN] No changes made to database.")
        else:
            await session.commit()
            print("\nChanges committed to database.")

    summary = {
        "positions_moved": moved,
        "records_backfilled": backfilled,
        "records_recalculated": recalculated,
    }
    print(f"\n{'=' * 60}")
    for key, value in summary.items():
        print(f"  {key}: {value}")
    print(f"{'=' * 60}")
    return summary


async def main(dry_run: bool) -> None:
    configure_logging()
    try:
        await sync_progress(dry_run=dry_run)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Reconcile catalog ordering and progress records"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without writing",
    )
    args = parser.parse_args()
    asyncio.run(main(dry_run=args.dry_run))
