from datetime import datetime, timezone
from importlib import import_module
from typing import Dict

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.report_cards.access import parse_legacy_marker, strip_legacy_marker
from app.core.models import ReportCard

migration = import_module("app.db.migrations.002_parent_access_field")


def test_parse_marker_timestamp() -> None:
    enabled_at = parse_legacy_marker("Good progress [PARENT_ACCESS_ENABLED_1714000000000]")
    assert enabled_at == datetime(2024, 4, 24, 23, 6, 40, tzinfo=timezone.utc)


def test_parse_without_marker() -> None:
    assert parse_legacy_marker("Good progress") is None
    assert parse_legacy_marker(None) is None
    assert parse_legacy_marker("[PARENT_ACCESS_ENABLED_]") is None


def test_strip_marker() -> None:
    assert strip_legacy_marker("Good progress [PARENT_ACCESS_ENABLED_1714000000000]") == "Good progress"
    assert strip_legacy_marker("[PARENT_ACCESS_ENABLED_1]") is None
    assert strip_legacy_marker("A [PARENT_ACCESS_ENABLED_1] [PARENT_ACCESS_ENABLED_2]") == "A"
    assert strip_legacy_marker("No marker") == "No marker"
    assert strip_legacy_marker(None) is None


@pytest.mark.asyncio
async def test_migration_moves_marker_into_field(db_session: AsyncSession, school: Dict) -> None:
    db_session.add_all(
        [
            ReportCard(
                student_id=school["student_ids"][0],
                term_id=school["term_id"],
                academic_year_id=school["academic_year_id"],
                is_approved=True,
                headteacher_comment="Well done [PARENT_ACCESS_ENABLED_1714000000000]",
            ),
            ReportCard(
                student_id=school["student_ids"][1],
                term_id=school["term_id"],
                academic_year_id=school["academic_year_id"],
                headteacher_comment="Needs effort",
            ),
        ]
    )
    await db_session.commit()

    assert await migration.migrate_legacy_markers(db_session) == 1
    assert await migration.migrate_legacy_markers(db_session) == 0

    rows = (
        await db_session.execute(
            select(ReportCard.headteacher_comment, ReportCard.parent_access_enabled_at).order_by(
                ReportCard.headteacher_comment
            )
        )
    ).all()
    assert rows[0][0] == "Needs effort"
    assert rows[0][1] is None
    assert rows[1][0] == "Well done"
    assert rows[1][1] is not None
