from typing import Dict

import pytest
from httpx import AsyncClient

from app.core.enums import Role


async def enter(client: AsyncClient, school: Dict, student_index: int, subject_index: int, exam: str, mark: float):
    response = await client.post(
        "/api/v1/marks/bulk",
        json={
            "marks": [
                {
                    "student_id": str(school["student_ids"][student_index]),
                    "subject_id": str(school["subject_ids"][subject_index]),
                    "term_id": str(school["term_id"]),
                    "exam_type": exam,
                    "mark": mark,
                }
            ]
        },
        headers=school["headers"][Role.CLASS_TEACHER],
    )
    assert response.json()["successful"] == 1


@pytest.mark.asyncio
async def test_class_divisions_per_sitting(client: AsyncClient, school: Dict, grading) -> None:
    # Amina: four GENERAL subjects at END -> 1+1+2+3 = 7 points
    for subject_index, mark in enumerate((85, 90, 72, 66)):
        await enter(client, school, 0, subject_index, "END", mark)
    # Brian: three GENERAL and one SUBSIDIARY subject -> no division
    for subject_index, mark in ((0, 90), (1, 90), (2, 90), (4, 90)):
        await enter(client, school, 1, subject_index, "END", mark)

    response = await client.get(
        "/api/v1/divisions",
        params={"class_id": str(school["class_id"]), "term_id": str(school["term_id"])},
        headers=school["headers"][Role.CLASS_TEACHER],
    )
    assert response.status_code == 200, response.text
    data = response.json()
    students = {s["full_name"]: s for s in data["students"]}
    assert students["Amina Nakato"]["end"]["division"] == "DIVISION_1"
    assert students["Amina Nakato"]["end"]["aggregate"] == 7
    assert students["Amina Nakato"]["bot"] is None
    assert students["Brian Okello"]["end"] is None

    end_stats = data["statistics"]["END"]
    assert end_stats["total_students"] == 1
    assert end_stats["excluded"] == 1
    assert end_stats["divisions"]["DIVISION_1"] == 1
    assert end_stats["pass_rate"] == 100.0
    assert data["statistics"]["BOT"]["total_students"] == 0


@pytest.mark.asyncio
async def test_statistics_endpoint(client: AsyncClient, school: Dict, grading) -> None:
    for subject_index in range(4):
        await enter(client, school, 0, subject_index, "MID", 20)
    response = await client.get(
        "/api/v1/divisions/statistics",
        params={"class_id": str(school["class_id"]), "term_id": str(school["term_id"]), "exam_type": "MID"},
        headers=school["headers"][Role.HEADTEACHER],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["divisions"]["UNGRADED"] == 1
    assert data["passed"] == 1


@pytest.mark.asyncio
async def test_unknown_class_gives_empty_result(client: AsyncClient, school: Dict, grading) -> None:
    response = await client.get(
        "/api/v1/divisions",
        params={"class_id": "00000000-0000-0000-0000-000000000006", "term_id": str(school["term_id"])},
        headers=school["headers"][Role.ADMIN],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["students"] == []
    assert data["statistics"]["END"]["total_students"] == 0


@pytest.mark.asyncio
async def test_parents_cannot_see_divisions(client: AsyncClient, school: Dict) -> None:
    response = await client.get(
        "/api/v1/divisions",
        params={"class_id": str(school["class_id"]), "term_id": str(school["term_id"])},
        headers=school["headers"][Role.PARENT],
    )
    assert response.status_code == 403
