from typing import Dict

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.report_cards import service as report_card_service
from app.core.enums import Role
from app.core.models import ReportCard


def submission(school: Dict, student_index: int = 0, **grades) -> Dict:
    payload = {
        "student_id": str(school["student_ids"][student_index]),
        "term_id": str(school["term_id"]),
        "academic_year_id": str(school["academic_year_id"]),
        "discipline": "A",
        "cleanliness": "B",
        "class_teacher_comment": "Works hard",
    }
    payload.update(grades)
    return payload


async def count_cards(db: AsyncSession) -> int:
    return (await db.execute(select(func.count()).select_from(ReportCard))).scalar_one()


@pytest.mark.asyncio
async def test_upsert_same_key_twice_keeps_one_row(client: AsyncClient, db_session: AsyncSession, school: Dict) -> None:
    headers = school["headers"][Role.CLASS_TEACHER]

    first = await client.post("/api/v1/report-cards/upsert", json=submission(school), headers=headers)
    assert first.status_code == 200
    assert first.json()["is_approved"] is False
    assert first.json()["approved_at"] is None

    second = await client.post(
        "/api/v1/report-cards/upsert",
        json=submission(school, discipline="C", class_teacher_comment="Improving"),
        headers=headers,
    )
    assert second.status_code == 200
    data = second.json()
    assert data["id"] == first.json()["id"]
    assert data["discipline"] == "C"
    assert data["class_teacher_comment"] == "Improving"
    assert await count_cards(db_session) == 1


@pytest.mark.asyncio
async def test_update_leaves_approval_untouched(client: AsyncClient, school: Dict) -> None:
    created = await client.post(
        "/api/v1/report-cards/upsert", json=submission(school), headers=school["headers"][Role.HEADTEACHER]
    )
    assert created.json()["is_approved"] is True
    assert created.json()["approved_at"] is not None

    updated = await client.post(
        "/api/v1/report-cards/upsert",
        json=submission(school, cleanliness="D"),
        headers=school["headers"][Role.CLASS_TEACHER],
    )
    assert updated.json()["is_approved"] is True
    assert updated.json()["cleanliness"] == "D"


@pytest.mark.asyncio
async def test_upsert_unknown_student(client: AsyncClient, school: Dict) -> None:
    payload = submission(school)
    payload["student_id"] = "00000000-0000-0000-0000-000000000001"
    response = await client.post(
        "/api/v1/report-cards/upsert", json=payload, headers=school["headers"][Role.ADMIN]
    )
    assert response.status_code == 404
    assert response.json()["detail"]["error"] == "NotFound"


@pytest.mark.asyncio
async def test_secretary_cannot_write_report_cards(client: AsyncClient, db_session: AsyncSession, school: Dict) -> None:
    response = await client.post(
        "/api/v1/report-cards/upsert", json=submission(school), headers=school["headers"][Role.SECRETARY]
    )
    assert response.status_code == 403
    assert response.json()["detail"] == {"error": "Unauthorized", "message": "Insufficient permissions"}
    assert await count_cards(db_session) == 0


@pytest.mark.asyncio
async def test_bulk_upsert_reports_missing_student_id(client: AsyncClient, db_session: AsyncSession, school: Dict) -> None:
    payload = {
        "term_id": str(school["term_id"]),
        "academic_year_id": str(school["academic_year_id"]),
        "report_cards": [
            {"student_id": str(school["student_ids"][0]), "discipline": "A"},
            {"discipline": "B"},
            {"student_id": str(school["student_ids"][1]), "discipline": "C"},
        ],
    }
    response = await client.post(
        "/api/v1/report-cards/bulk-upsert", json=payload, headers=school["headers"][Role.CLASS_TEACHER]
    )
    assert response.status_code == 200
    data = response.json()
    assert data["processed"] == 3
    assert data["successful"] == 2
    assert data["failed"] == 1
    failed = [r for r in data["results"] if not r["success"]]
    assert failed[0]["index"] == 1
    assert "student_id" in failed[0]["error"]
    assert await count_cards(db_session) == 2


@pytest.mark.asyncio
async def test_bulk_upsert_unknown_student_does_not_abort_batch(
    client: AsyncClient, db_session: AsyncSession, school: Dict
) -> None:
    payload = {
        "term_id": str(school["term_id"]),
        "academic_year_id": str(school["academic_year_id"]),
        "report_cards": [
            {"student_id": "00000000-0000-0000-0000-000000000002", "discipline": "A"},
            {"student_id": str(school["student_ids"][1]), "discipline": "B"},
        ],
    }
    response = await client.post(
        "/api/v1/report-cards/bulk-upsert", json=payload, headers=school["headers"][Role.ADMIN]
    )
    data = response.json()
    assert data["successful"] == 1
    assert data["results"][0]["error"] == "Student not found"
    assert await count_cards(db_session) == 1


@pytest.mark.asyncio
async def test_bulk_create_is_all_or_nothing(client: AsyncClient, db_session: AsyncSession, school: Dict) -> None:
    bad = submission(school, 1)
    bad["student_id"] = "00000000-0000-0000-0000-000000000003"
    response = await client.post(
        "/api/v1/report-cards/bulk",
        json={"report_cards": [submission(school, 0), bad]},
        headers=school["headers"][Role.ADMIN],
    )
    assert response.status_code == 404
    assert await count_cards(db_session) == 0

    response = await client.post(
        "/api/v1/report-cards/bulk",
        json={"report_cards": [submission(school, 0), submission(school, 1)]},
        headers=school["headers"][Role.ADMIN],
    )
    assert response.status_code == 201
    assert len(response.json()) == 2
    assert await count_cards(db_session) == 2


@pytest.mark.asyncio
async def test_bulk_create_conflicts_with_existing_card(client: AsyncClient, db_session: AsyncSession, school: Dict) -> None:
    headers = school["headers"][Role.ADMIN]
    await client.post("/api/v1/report-cards/upsert", json=submission(school, 0), headers=headers)

    response = await client.post(
        "/api/v1/report-cards/bulk",
        json={"report_cards": [submission(school, 1), submission(school, 0)]},
        headers=headers,
    )
    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "Conflict"
    assert await count_cards(db_session) == 1


@pytest.mark.asyncio
async def test_review_unapprove_clears_timestamps(client: AsyncClient, school: Dict) -> None:
    created = await client.post(
        "/api/v1/report-cards/upsert", json=submission(school), headers=school["headers"][Role.CLASS_TEACHER]
    )
    card_id = created.json()["id"]
    headers = school["headers"][Role.HEADTEACHER]

    approved = await client.put(
        f"/api/v1/report-cards/{card_id}/review",
        json={"headteacher_comment": "Keep it up", "is_approved": True},
        headers=headers,
    )
    assert approved.status_code == 200
    assert approved.json()["is_approved"] is True
    assert approved.json()["approved_at"] is not None
    assert approved.json()["headteacher_comment"] == "Keep it up"

    revoked = await client.put(
        f"/api/v1/report-cards/{card_id}/review", json={"is_approved": False}, headers=headers
    )
    assert revoked.json()["is_approved"] is False
    assert revoked.json()["approved_at"] is None
    assert revoked.json()["parent_access_enabled_at"] is None


@pytest.mark.asyncio
async def test_class_teacher_cannot_review(client: AsyncClient, school: Dict) -> None:
    created = await client.post(
        "/api/v1/report-cards/upsert", json=submission(school), headers=school["headers"][Role.CLASS_TEACHER]
    )
    response = await client.post(
        f"/api/v1/report-cards/{created.json()['id']}/approve", headers=school["headers"][Role.CLASS_TEACHER]
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_by_term_lists_every_student(client: AsyncClient, school: Dict) -> None:
    await client.post(
        "/api/v1/report-cards/upsert", json=submission(school, 0), headers=school["headers"][Role.CLASS_TEACHER]
    )
    response = await client.get(
        "/api/v1/report-cards/by-term",
        params={"class_id": str(school["class_id"]), "term_id": str(school["term_id"])},
        headers=school["headers"][Role.CLASS_TEACHER],
    )
    assert response.status_code == 200
    rows = {r["full_name"]: r for r in response.json()}
    assert rows["Amina Nakato"]["report_card"]["discipline"] == "A"
    assert rows["Brian Okello"]["report_card"] is None


@pytest.mark.asyncio
async def test_report_stats(client: AsyncClient, school: Dict) -> None:
    await client.post(
        "/api/v1/report-cards/upsert",
        json=submission(school, 0, discipline="A", cleanliness="A", speaking_english="B"),
        headers=school["headers"][Role.HEADTEACHER],
    )
    await client.post(
        "/api/v1/report-cards/upsert",
        json=submission(school, 1, discipline="D", cleanliness=None),
        headers=school["headers"][Role.CLASS_TEACHER],
    )

    response = await client.get(
        "/api/v1/report-cards/stats",
        params={"academic_year_id": str(school["academic_year_id"])},
        headers=school["headers"][Role.ADMIN],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_reports"] == 2
    assert data["approved_reports"] == 1
    assert data["pending_reports"] == 1
    assert data["grade_distribution"] == {"A": 2, "B": 1, "C": 0, "D": 1}
    assert data["class_distribution"] == [{"class_name": "P7", "report_count": 2}]


@pytest.mark.asyncio
async def test_report_stats_requires_academic_year(client: AsyncClient, school: Dict) -> None:
    response = await client.get("/api/v1/report-cards/stats", headers=school["headers"][Role.ADMIN])
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_report_card(client: AsyncClient, db_session: AsyncSession, school: Dict) -> None:
    created = await client.post(
        "/api/v1/report-cards/upsert", json=submission(school), headers=school["headers"][Role.CLASS_TEACHER]
    )
    response = await client.delete(
        f"/api/v1/report-cards/{created.json()['id']}", headers=school["headers"][Role.HEADTEACHER]
    )
    assert response.status_code == 204
    assert await count_cards(db_session) == 0


@pytest.mark.asyncio
async def test_report_document_aggregate(client: AsyncClient, school: Dict, grading) -> None:
    term = str(school["term_id"])
    amina = str(school["student_ids"][0])
    marks = [
        {"student_id": amina, "subject_id": str(subject_id), "term_id": term, "exam_type": "END", "mark": mark}
        for subject_id, mark in zip(school["subject_ids"], (85, 90, 72, 66, 30))
    ]
    marks.append(
        {"student_id": amina, "subject_id": str(school["subject_ids"][0]), "term_id": term, "exam_type": "BOT", "mark": 61}
    )
    bulk = await client.post("/api/v1/marks/bulk", json={"marks": marks}, headers=school["headers"][Role.CLASS_TEACHER])
    assert bulk.json()["successful"] == 6

    created = await client.post(
        "/api/v1/report-cards/upsert", json=submission(school), headers=school["headers"][Role.CLASS_TEACHER]
    )
    response = await client.get(
        f"/api/v1/report-cards/{created.json()['id']}/document", headers=school["headers"][Role.HEADTEACHER]
    )
    assert response.status_code == 200, response.text
    doc = response.json()

    assert doc["student"]["full_name"] == "Amina Nakato"
    assert doc["student"]["class_name"] == "P7"
    assert doc["term_name"] == "Term 1"
    assert doc["academic_year"] == "2024"
    assert len(doc["grading_system"]) == 9
    assert doc["grading_system"][0]["grade"] == "D1"
    assert len(doc["subjects"]) == 5
    assert len(doc["general_subjects"]) == 4

    maths = next(r for r in doc["subjects"] if r["code"] == "MTC")
    assert maths["bot"] == 61
    assert maths["bot_grade"] == "C4"
    assert maths["eot_grade"] == "D1"
    assert maths["total"] == 73
    assert maths["grade"] == "D2"
    assert maths["remarks"] == "Very good"

    assert doc["division"] == "Division I"
    assert doc["aggregate"] == 7
    assert doc["points_totals"] == {"BOT": 4, "MID": None, "END": 7}


@pytest.mark.asyncio
async def test_bulk_upsert_bad_grade_letter_fails_only_that_item(
    client: AsyncClient, db_session: AsyncSession, school: Dict
) -> None:
    payload = {
        "term_id": str(school["term_id"]),
        "academic_year_id": str(school["academic_year_id"]),
        "report_cards": [
            {"student_id": str(school["student_ids"][0]), "discipline": "A"},
            {"student_id": str(school["student_ids"][1]), "discipline": "Z"},
        ],
    }
    response = await client.post(
        "/api/v1/report-cards/bulk-upsert", json=payload, headers=school["headers"][Role.CLASS_TEACHER]
    )
    assert response.status_code == 200
    data = response.json()
    assert data["successful"] == 1
    assert data["failed"] == 1
    assert data["results"][1]["success"] is False
    assert data["results"][1]["error"].startswith("discipline must be one of")
    assert await count_cards(db_session) == 1


@pytest.mark.asyncio
@pytest.mark.filterwarnings("error::sqlalchemy.exc.SAWarning")
async def test_upsert_lost_insert_race_updates_existing_row(
    client: AsyncClient, db_session: AsyncSession, school: Dict, monkeypatch: pytest.MonkeyPatch
) -> None:
    headers = school["headers"][Role.CLASS_TEACHER]
    first = await client.post("/api/v1/report-cards/upsert", json=submission(school), headers=headers)
    assert first.status_code == 200

    # Another request inserted the row between our lookup and our insert
    real_find_card = report_card_service._find_card
    lookups = []

    async def find_card_missing_once(*args, **kwargs):
        lookups.append(args)
        if len(lookups) == 1:
            return None
        return await real_find_card(*args, **kwargs)

    monkeypatch.setattr(report_card_service, "_find_card", find_card_missing_once)

    second = await client.post(
        "/api/v1/report-cards/upsert", json=submission(school, discipline="B"), headers=headers
    )
    assert second.status_code == 200, second.text
    assert second.json()["id"] == first.json()["id"]
    assert len(lookups) == 2

    stored = (await db_session.execute(select(ReportCard.discipline))).scalars().all()
    assert stored == ["B"]


def test_initials() -> None:
    assert report_card_service.initials("Grace Atim Okot") == "GAO"
    assert report_card_service.initials("  peter  ") == "P"
    assert report_card_service.initials(None) is None
    assert report_card_service.initials("   ") is None


@pytest.mark.asyncio
async def test_report_document_teacher_initials_and_next_term(client: AsyncClient, school: Dict, grading) -> None:
    term = str(school["term_id"])
    year = str(school["academic_year_id"])
    amina = str(school["student_ids"][0])
    maths, english = (str(s) for s in school["subject_ids"][:2])
    management = school["headers"][Role.HEADTEACHER]

    marks = [
        {"student_id": amina, "subject_id": subject_id, "term_id": term, "exam_type": "END", "mark": 75}
        for subject_id in (maths, english)
    ]
    await client.post("/api/v1/marks/bulk", json={"marks": marks}, headers=school["headers"][Role.CLASS_TEACHER])

    assigned = await client.post(
        "/api/v1/subject-teachers",
        json={
            "teacher_id": str(school["user_ids"][Role.HEADTEACHER]),
            "subject_id": english,
            "class_id": str(school["class_id"]),
            "term_id": term,
            "academic_year_id": year,
        },
        headers=management,
    )
    assert assigned.status_code == 201, assigned.text
    scheduled = await client.post(
        "/api/v1/next-term-schedules",
        json={
            "academic_year_id": year,
            "term_id": term,
            "next_term_start_date": "2024-05-20",
            "next_term_end_date": "2024-08-16",
        },
        headers=management,
    )
    assert scheduled.status_code == 201, scheduled.text

    created = await client.post(
        "/api/v1/report-cards/upsert", json=submission(school), headers=school["headers"][Role.CLASS_TEACHER]
    )
    response = await client.get(f"/api/v1/report-cards/{created.json()['id']}/document", headers=management)
    assert response.status_code == 200, response.text
    doc = response.json()

    rows = {r["code"]: r for r in doc["subjects"]}
    # English has an assigned teacher; Mathematics falls back to whoever entered the mark.
    assert rows["ENG"]["teacher_initials"] == "H"
    assert rows["MTC"]["teacher_initials"] == "C"
    assert rows["SCI"]["teacher_initials"] is None
    assert doc["next_term_start_date"] == "2024-05-20"
    assert doc["next_term_end_date"] == "2024-08-16"
