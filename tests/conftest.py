import os
from datetime import date
from typing import AsyncGenerator, Dict

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.auth.models import User
from app.auth.security import create_access_token, hash_password
from app.core.enums import Role
from app.core.models import AcademicYear, GradingThreshold, SchoolClass, Student, Subject, Term
from app.db.session import Base, get_db


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test; every session shares the single connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield factory
    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging and checking test data (requests use their own sessions)."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def auth_headers(user: User) -> Dict[str, str]:
    token = create_access_token(user_id=user.id, role=user.role)
    return {"Authorization": f"Bearer {token}"}


async def create_user(db: AsyncSession, role: Role, email: str, full_name: str = "") -> User:
    user = User(
        full_name=full_name or email.split("@")[0].title(),
        email=email,
        password_hash=hash_password("Passw0rd!"),
        role=role.value,
        status="ACTIVE",
    )
    db.add(user)
    await db.commit()
    return user


@pytest.fixture()
async def school(db_session: AsyncSession) -> Dict:
    """
    One active academic year with a term, a class with four GENERAL subjects and one
    SUBSIDIARY subject, two students (the first with a parent) and a user per role.
    Values are plain ids and header dicts so tests never touch detached ORM state.
    """
    users = {}
    for role in Role:
        users[role] = await create_user(db_session, role, f"{role.value.lower()}@greenhill.ac.ug")
    other_parent = await create_user(db_session, Role.PARENT, "other.parent@greenhill.ac.ug")

    year = AcademicYear(year="2024", start_date=date(2024, 1, 15), end_date=date(2024, 12, 6), is_active=True)
    db_session.add(year)
    await db_session.flush()
    term = Term(name="Term 1", start_date=date(2024, 1, 15), end_date=date(2024, 4, 26), academic_year_id=year.id)
    db_session.add(term)
    await db_session.flush()
    school_class = SchoolClass(name="P7", academic_year_id=year.id)
    db_session.add(school_class)
    await db_session.flush()

    subjects = []
    for name, code, category in (
        ("Mathematics", "MTC", "GENERAL"),
        ("English", "ENG", "GENERAL"),
        ("Science", "SCI", "GENERAL"),
        ("Social Studies", "SST", "GENERAL"),
        ("Religious Education", "RE", "SUBSIDIARY"),
    ):
        subject = Subject(name=name, code=code, class_id=school_class.id, category=category)
        db_session.add(subject)
        subjects.append(subject)

    amina = Student(
        full_name="Amina Nakato",
        gender="F",
        class_id=school_class.id,
        term_id=term.id,
        academic_year_id=year.id,
        parent_id=users[Role.PARENT].id,
    )
    brian = Student(
        full_name="Brian Okello",
        gender="M",
        class_id=school_class.id,
        term_id=term.id,
        academic_year_id=year.id,
    )
    db_session.add_all([amina, brian])
    await db_session.commit()

    return {
        "academic_year_id": year.id,
        "term_id": term.id,
        "class_id": school_class.id,
        "subject_ids": [s.id for s in subjects],
        "student_ids": [amina.id, brian.id],
        "parent_id": users[Role.PARENT].id,
        "other_parent_id": other_parent.id,
        "user_ids": {role: u.id for role, u in users.items()},
        "headers": {role: auth_headers(u) for role, u in users.items()},
        "other_parent_headers": auth_headers(other_parent),
    }


UGANDA_BANDS = (
    ("D1", 80, 100, "Excellent"),
    ("D2", 70, 79, "Very good"),
    ("C3", 65, 69, "Good"),
    ("C4", 60, 64, "Good"),
    ("C5", 55, 59, "Fair"),
    ("C6", 50, 54, "Fair"),
    ("P7", 45, 49, "Pass"),
    ("P8", 40, 44, "Pass"),
    ("F9", 0, 39, "Fail"),
)


@pytest.fixture()
async def grading(db_session: AsyncSession) -> None:
    """Nine-band grading scale (D1 best, F9 worst); points follow rank."""
    for grade, low, high, comment in UGANDA_BANDS:
        db_session.add(GradingThreshold(grade=grade, min_mark=low, max_mark=high, comment=comment))
    await db_session.commit()
