from typing import Dict

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import Role
from app.core.models import SchoolClass, Student


async def create_class(client: AsyncClient, school: Dict, name: str) -> str:
    response = await client.post(
        "/api/v1/classes",
        json={"name": name, "academic_year_id": str(school["academic_year_id"])},
        headers=school["headers"][Role.ADMIN],
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


@pytest.mark.asyncio
async def test_assigning_teacher_evicts_previous_class(
    client: AsyncClient, db_session: AsyncSession, school: Dict
) -> None:
    headers = school["headers"][Role.ADMIN]
    teacher_id = str(school["user_ids"][Role.CLASS_TEACHER])
    p6 = await create_class(client, school, "P6")

    first = await client.post(
        f"/api/v1/classes/{school['class_id']}/assign-teacher", json={"teacher_id": teacher_id}, headers=headers
    )
    assert first.status_code == 200
    assert first.json()["class_teacher_id"] == teacher_id

    second = await client.post(f"/api/v1/classes/{p6}/assign-teacher", json={"teacher_id": teacher_id}, headers=headers)
    assert second.status_code == 200
    assert second.json()["class_teacher_id"] == teacher_id

    rows = (
        await db_session.execute(
            select(SchoolClass.name).where(SchoolClass.class_teacher_id == school["user_ids"][Role.CLASS_TEACHER])
        )
    ).scalars().all()
    assert rows == ["P6"]


@pytest.mark.asyncio
async def test_only_class_teachers_can_lead_a_class(client: AsyncClient, school: Dict) -> None:
    response = await client.post(
        f"/api/v1/classes/{school['class_id']}/assign-teacher",
        json={"teacher_id": str(school["user_ids"][Role.SECRETARY])},
        headers=school["headers"][Role.ADMIN],
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_class_name_in_year(client: AsyncClient, school: Dict) -> None:
    response = await client.post(
        "/api/v1/classes",
        json={"name": "P7", "academic_year_id": str(school["academic_year_id"])},
        headers=school["headers"][Role.ADMIN],
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_subjects_listed_per_class(client: AsyncClient, school: Dict) -> None:
    headers = school["headers"][Role.ADMIN]
    created = await client.post(
        "/api/v1/subjects",
        json={"name": "Kiswahili", "code": "kis", "class_id": str(school["class_id"]), "category": "SUBSIDIARY"},
        headers=headers,
    )
    assert created.status_code == 201, created.text
    assert created.json()["code"] == "KIS"

    listed = await client.get("/api/v1/subjects", params={"class_id": str(school["class_id"])}, headers=headers)
    assert len(listed.json()) == 6


@pytest.mark.asyncio
async def test_register_student(client: AsyncClient, school: Dict) -> None:
    response = await client.post(
        "/api/v1/students",
        json={
            "full_name": "Carol Achieng",
            "gender": "F",
            "class_id": str(school["class_id"]),
            "term_id": str(school["term_id"]),
            "academic_year_id": str(school["academic_year_id"]),
        },
        headers=school["headers"][Role.SECRETARY],
    )
    assert response.status_code == 201, response.text
    assert response.json()["class_name"] == "P7"

    listed = await client.get(
        "/api/v1/students", params={"class_id": str(school["class_id"])}, headers=school["headers"][Role.ADMIN]
    )
    assert [s["full_name"] for s in listed.json()] == ["Amina Nakato", "Brian Okello", "Carol Achieng"]


@pytest.mark.asyncio
async def test_parent_must_be_parent_account(client: AsyncClient, school: Dict) -> None:
    response = await client.post(
        "/api/v1/students",
        json={
            "full_name": "Dan Mugisha",
            "class_id": str(school["class_id"]),
            "term_id": str(school["term_id"]),
            "academic_year_id": str(school["academic_year_id"]),
            "parent_id": str(school["user_ids"][Role.CLASS_TEACHER]),
        },
        headers=school["headers"][Role.ADMIN],
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_parent_with_children(client: AsyncClient, db_session: AsyncSession, school: Dict) -> None:
    brian_id = str(school["student_ids"][1])
    response = await client.post(
        "/api/v1/users",
        json={
            "full_name": "Grace Okello",
            "email": "Grace.Okello@greenhill.ac.ug",
            "password": "Sup3rSecret",
            "role": "PARENT",
            "children_ids": [brian_id],
        },
        headers=school["headers"][Role.ADMIN],
    )
    assert response.status_code == 201, response.text
    data = response.json()
    assert data["email"] == "grace.okello@greenhill.ac.ug"
    assert data["children_ids"] == [brian_id]


@pytest.mark.asyncio
async def test_parent_children_become_exactly_given_set(
    client: AsyncClient, db_session: AsyncSession, school: Dict
) -> None:
    amina_id, brian_id = school["student_ids"]
    parent_id = school["parent_id"]
    headers = school["headers"][Role.ADMIN]

    response = await client.put(
        f"/api/v1/users/parents/{parent_id}/children", json={"children_ids": [str(brian_id)]}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["children_ids"] == [str(brian_id)]

    linked = (await db_session.execute(select(Student.id).where(Student.parent_id == parent_id))).scalars().all()
    assert linked == [brian_id]

    # Moving Brian to another parent takes him away from the first
    other = await client.put(
        f"/api/v1/users/parents/{school['other_parent_id']}/children",
        json={"children_ids": [str(amina_id), str(brian_id)]},
        headers=headers,
    )
    assert sorted(other.json()["children_ids"]) == sorted([str(amina_id), str(brian_id)])
    linked = (await db_session.execute(select(Student.id).where(Student.parent_id == parent_id))).scalars().all()
    assert linked == []


@pytest.mark.asyncio
async def test_unknown_child_leaves_links_untouched(client: AsyncClient, db_session: AsyncSession, school: Dict) -> None:
    response = await client.put(
        f"/api/v1/users/parents/{school['parent_id']}/children",
        json={"children_ids": ["00000000-0000-0000-0000-000000000004"]},
        headers=school["headers"][Role.ADMIN],
    )
    assert response.status_code == 404
    linked = (
        await db_session.execute(select(Student.id).where(Student.parent_id == school["parent_id"]))
    ).scalars().all()
    assert linked == [school["student_ids"][0]]


@pytest.mark.asyncio
async def test_only_admin_manages_users(client: AsyncClient, school: Dict) -> None:
    response = await client.get("/api/v1/users", headers=school["headers"][Role.HEADTEACHER])
    assert response.status_code == 403
