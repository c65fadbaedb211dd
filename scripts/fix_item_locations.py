#!/usr/bin/env python3
"""
Repair item custody flags so current_location_type matches assigned_to_person_id.

Each item is repaired in its own transaction; failures are listed at the end
and do not stop the run. With --release-untracked, items held by a person
without an active custody record are also returned to their warehouse.

Usage:
    python scripts/fix_item_locations.py --dry-run
    python scripts/fix_item_locations.py --confirm
    python scripts/fix_item_locations.py --confirm --release-untracked
"""

import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.database.session import async_session
from src.core.logging_config import configure_logging
from src.modules.custody.enforcer import LocationEnforcer
from src.modules.custody.models import AdjustmentStatus, TransferStockAdjustment
from src.modules.items.models import Item, LocationType


async def preview(session: AsyncSession) -> None:
    """Print the items a real run would touch."""
    mismatched = await session.execute(
        select(Item.id, Item.title, Item.current_location_type, Item.assigned_to_person_id)
        .where(
            or_(
                and_(
                    Item.assigned_to_person_id.is_not(None),
                    Item.current_location_type != LocationType.PERSON.value,
                ),
                and_(
                    Item.assigned_to_person_id.is_(None),
                    Item.current_location_type != LocationType.WAREHOUSE.value,
                ),
            )
        )
        .order_by(Item.id)
    )
    rows = mismatched.all()
    print(f"\n📋 Items with a wrong location flag: {len(rows)}")
    for item_id, title, location_type, person_id in rows:
        print(f"   #{item_id} {title}: flag={location_type}, person={person_id}")

    tracked = select(TransferStockAdjustment.item_id).where(
        TransferStockAdjustment.status == AdjustmentStatus.ACTIVE.value
    )
    untracked = await session.execute(
        select(Item.id, Item.title, Item.assigned_to_person_id)
        .where(Item.assigned_to_person_id.is_not(None))
        .where(Item.id.not_in(tracked))
        .order_by(Item.id)
    )
    rows = untracked.all()
    print(f"\n📋 Items with a person but no active custody record: {len(rows)}")
    for item_id, title, person_id in rows:
        print(f"   #{item_id} {title}: person={person_id}")


async def apply(session: AsyncSession, release_untracked: bool) -> int:
    enforcer = LocationEnforcer(session)
    report = await enforcer.reconcile_all()
    print(
        f"\n✅ Reconciled {report.total} item(s): {report.repaired} repaired, "
        f"{report.already_correct} already correct, {report.failed} failed"
    )
    for failure in report.failures:
        print(f"   ❌ #{failure.item_id} {failure.error}: {failure.message}")
    failed = report.failed

    if release_untracked:
        release = await enforcer.release_untracked_assignments()
        print(
            f"\n✅ Released {release.released} of {release.total} untracked assignment(s), "
            f"{release.failed} failed"
        )
        for failure in release.failures:
            print(f"   ❌ #{failure.item_id} {failure.error}: {failure.message}")
        failed += release.failed

    return failed


async def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="Repair item location flags")
    parser.add_argument("--dry-run", action="store_true", help="Only list what would change")
    parser.add_argument("--confirm", action="store_true", help="Apply repairs (COMMIT per item)")
    parser.add_argument(
        "--release-untracked",
        action="store_true",
        help="Also return items held without an active custody record",
    )
    args = parser.parse_args()

    if args.dry_run == args.confirm:
        print("❌ ERROR: specify exactly one of --dry-run / --confirm")
        sys.exit(1)

    configure_logging(settings.log_level)

    print("\n" + "=" * 70)
    print("FIX ITEM LOCATIONS")
    print("=" * 70)
    print(f"\n🌍 Environment: {settings.app_env}")
    print(f"🗄️  DB: {settings.database_host}")
    print(f"🔧 Mode: {'DRY-RUN' if args.dry_run else 'APPLY (COMMIT)'}")

    async with async_session() as session:
        if args.dry_run:
            await preview(session)
            return
        failed = await apply(session, release_untracked=args.release_untracked)

    if failed:
        sys.exit(2)


if __name__ == "__main__":
    asyncio.run(main())
