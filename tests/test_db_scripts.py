import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from app.auth.models import User
from app.auth.security import hash_password
from app.core.enums import Role
from app.db.schema_check import ensure_tables
from app.db.seed_admin import seed_admin

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.mark.asyncio
async def test_ensure_tables_creates_only_missing() -> None:
    engine = create_async_engine(
        TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    created = await ensure_tables(engine)
    assert {"users", "report_cards", "marks", "grading_thresholds"} <= set(created)
    assert created.index("students") < created.index("report_cards")

    assert await ensure_tables(engine) == []
    await engine.dispose()


@pytest.mark.asyncio
async def test_seed_admin_creates_login(client: AsyncClient, db_session: AsyncSession) -> None:
    admin = await seed_admin(db_session, " Head.Office@Greenhill.ac.ug ", "S3cure!pass")
    assert admin is not None
    assert admin.email == "head.office@greenhill.ac.ug"
    assert admin.role == Role.ADMIN.value

    res = await client.post(
        "/api/v1/auth/login",
        json={"email": "head.office@greenhill.ac.ug", "password": "S3cure!pass"},
    )
    assert res.status_code == 200


@pytest.mark.asyncio
async def test_seed_admin_promotes_existing_user(db_session: AsyncSession) -> None:
    user = User(
        full_name="Office",
        email="office@greenhill.ac.ug",
        password_hash=hash_password("Passw0rd!"),
        role=Role.SECRETARY.value,
        status="ACTIVE",
    )
    db_session.add(user)
    await db_session.commit()

    await seed_admin(db_session, "office@greenhill.ac.ug", "N3w!pass")

    role = (await db_session.execute(select(User.role).where(User.id == user.id))).scalar_one()
    count = len((await db_session.execute(select(User.id))).all())
    assert role == Role.ADMIN.value
    assert count == 1


@pytest.mark.asyncio
async def test_seed_admin_skips_without_credentials(db_session: AsyncSession) -> None:
    assert await seed_admin(db_session, None, None) is None
    assert (await db_session.execute(select(User.id))).first() is None
