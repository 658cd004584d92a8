"""
Migration: Add parent_access_enabled_at to report_cards and move legacy markers into it.

Parent access used to be flagged by appending "[PARENT_ACCESS_ENABLED_<epoch ms>]" to
headteacher_comment. This adds the column (if missing), copies the marker timestamp
into it and strips the marker from the comment.

Idempotent. Run once:
  python -m app.db.migrations.002_parent_access_field
"""
import asyncio

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.api.v1.report_cards.access import parse_legacy_marker, strip_legacy_marker
# Load every model so ORM relationships resolve (Student -> User)
from app.auth.models import User  # noqa: F401
from app.core.models import ReportCard
from app.db.session import engine


ADD_COLUMN = """
ALTER TABLE report_cards ADD COLUMN IF NOT EXISTS parent_access_enabled_at TIMESTAMPTZ
"""


async def migrate_legacy_markers(session: AsyncSession) -> int:
    """Move marker timestamps into parent_access_enabled_at. Returns the number of cards changed."""
    result = await session.execute(
        select(ReportCard).where(ReportCard.headteacher_comment.like("%[PARENT_ACCESS_ENABLED_%"))
    )
    cards = result.unique().scalars().all()
    migrated = 0
    for card in cards:
        enabled_at = parse_legacy_marker(card.headteacher_comment)
        if enabled_at is None:
            continue
        if card.parent_access_enabled_at is None:
            card.parent_access_enabled_at = enabled_at
        card.headteacher_comment = strip_legacy_marker(card.headteacher_comment)
        migrated += 1
    await session.commit()
    return migrated


async def run_migration(db_engine: AsyncEngine) -> None:
    async with db_engine.begin() as conn:
        await conn.execute(text(ADD_COLUMN))

    session_factory = async_sessionmaker(bind=db_engine, expire_on_commit=False)
    async with session_factory() as session:
        migrated = await migrate_legacy_markers(session)

    print(f"Migration 002_parent_access_field done. Migrated {migrated} report card(s).")


if __name__ == "__main__":
    asyncio.run(run_migration(engine))
