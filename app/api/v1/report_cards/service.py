import logging
from collections import Counter
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.academic_years.service import require_academic_year
from app.api.v1.divisions.calculator import DivisionScheme, SubjectScore, calculate_student_division
from app.api.v1.grading_system.lookup import GradingTable
from app.api.v1.grading_system.schemas import GradingThresholdResponse
from app.api.v1.next_term_schedules.service import find_schedule
from app.api.v1.subject_teachers.service import teacher_names_by_subject
from app.auth.models import User
from app.auth.schemas import CurrentUser
from app.core.enums import AssessmentGrade, ExamType, Role, SubjectCategory
from app.core.exceptions import (
    ConflictError,
    NoParentError,
    NotApprovedError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from app.core.models import (
    PERSONAL_ASSESSMENT_FIELDS,
    AcademicYear,
    GradingThreshold,
    Mark,
    ReportCard,
    Student,
    Subject,
    Term,
)

from .access import is_visible_to_parent, strip_legacy_marker
from .schemas import (
    BulkItemResult,
    BulkReportCardItem,
    BulkUpsertRequest,
    BulkUpsertResponse,
    ClassReportCardRow,
    ClassReportCount,
    ParentAccessResponse,
    PersonalAssessment,
    ReportCardResponse,
    ReportCardReview,
    ReportCardSubmission,
    ReportDocument,
    ReportDocumentStudent,
    ReportStatsResponse,
    SubjectReportRow,
)

logger = logging.getLogger(__name__)

SUBMISSION_FIELDS = PERSONAL_ASSESSMENT_FIELDS + ("class_teacher_comment",)
GRADE_LETTERS = tuple(g.value for g in AssessmentGrade)


def _to_response(card: ReportCard, for_parent: bool = False, student: Optional[Student] = None) -> ReportCardResponse:
    student = student or card.student
    comment = card.headteacher_comment
    return ReportCardResponse(
        id=card.id,
        student_id=card.student_id,
        student_name=student.full_name if student else None,
        class_name=student.school_class.name if student and student.school_class else None,
        term_id=card.term_id,
        academic_year_id=card.academic_year_id,
        class_teacher_comment=card.class_teacher_comment,
        headteacher_comment=strip_legacy_marker(comment) if for_parent else comment,
        is_approved=card.is_approved,
        approved_at=card.approved_at,
        parent_access_enabled_at=card.parent_access_enabled_at,
        created_at=card.created_at,
        updated_at=card.updated_at,
        **{f: getattr(card, f) for f in PERSONAL_ASSESSMENT_FIELDS},
    )


def _submission_values(payload: Union[PersonalAssessment, BulkReportCardItem]) -> Dict[str, Any]:
    values = payload.model_dump(include=set(SUBMISSION_FIELDS))
    values = {k: (v.value if isinstance(v, AssessmentGrade) else v) for k, v in values.items()}
    for field in PERSONAL_ASSESSMENT_FIELDS:
        if values[field] is not None and values[field] not in GRADE_LETTERS:
            raise ValidationError(f"{field} must be one of {', '.join(GRADE_LETTERS)}")
    return values


async def _find_card(db: AsyncSession, student_id: UUID, term_id: UUID, academic_year_id: UUID) -> Optional[ReportCard]:
    result = await db.execute(
        select(ReportCard).where(
            ReportCard.student_id == student_id,
            ReportCard.term_id == term_id,
            ReportCard.academic_year_id == academic_year_id,
        )
    )
    return result.scalars().first()


async def _get_card(db: AsyncSession, report_card_id: UUID) -> ReportCard:
    card = await db.get(ReportCard, report_card_id)
    if not card:
        raise NotFoundError("Report card not found")
    return card


async def _require_student(db: AsyncSession, student_id: UUID) -> Student:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    return student


async def _require_scope(db: AsyncSession, term_id: UUID, academic_year_id: UUID) -> None:
    if not await db.get(Term, term_id):
        raise NotFoundError("Term not found")
    if not await db.get(AcademicYear, academic_year_id):
        raise NotFoundError("Academic year not found")


def _apply(card: ReportCard, values: Dict[str, Any]) -> None:
    for field, value in values.items():
        setattr(card, field, value)
    card.updated_at = datetime.utcnow()


async def _write_card(
    db: AsyncSession,
    student: Student,
    term_id: UUID,
    academic_year_id: UUID,
    values: Dict[str, Any],
    role: Role,
) -> Tuple[ReportCard, bool]:
    """
    Upsert by (student, term, academic year). Updates leave approval and the headteacher
    comment alone. A headteacher's new card starts approved. Returns (card, created).
    """
    card = await _find_card(db, student.id, term_id, academic_year_id)
    if card is None:
        self_approved = role == Role.HEADTEACHER
        card = ReportCard(
            student_id=student.id,
            term_id=term_id,
            academic_year_id=academic_year_id,
            is_approved=self_approved,
            approved_at=datetime.utcnow() if self_approved else None,
            **values,
        )
        try:
            async with db.begin_nested():
                db.add(card)
        except IntegrityError:
            # Concurrent insert for the same key won; update that row instead
            card = await _find_card(db, student.id, term_id, academic_year_id)
            if card is None:
                raise
        else:
            return card, True

    _apply(card, values)
    await db.flush()
    return card, False


async def upsert_report_card(
    db: AsyncSession,
    payload: ReportCardSubmission,
    current_user: CurrentUser,
) -> ReportCardResponse:
    student = await _require_student(db, payload.student_id)
    await _require_scope(db, payload.term_id, payload.academic_year_id)
    card, _ = await _write_card(
        db, student, payload.term_id, payload.academic_year_id, _submission_values(payload), current_user.role
    )
    await db.commit()
    return _to_response(card, student=student)


async def bulk_upsert_report_cards(
    db: AsyncSession,
    payload: BulkUpsertRequest,
    current_user: CurrentUser,
) -> BulkUpsertResponse:
    """
    Upsert each item independently for the given term and academic year.
    A failing item is rolled back to its savepoint and reported; the others are committed.
    """
    await _require_scope(db, payload.term_id, payload.academic_year_id)
    results: List[BulkItemResult] = []

    for index, item in enumerate(payload.report_cards):
        try:
            if item.student_id is None:
                raise ValidationError("student_id is required")
            student = await _require_student(db, item.student_id)
            values = _submission_values(item)
            async with db.begin_nested():
                card, _ = await _write_card(
                    db, student, payload.term_id, payload.academic_year_id, values, current_user.role
                )
            results.append(BulkItemResult(index=index, student_id=student.id, success=True, id=card.id))
        except (ServiceError, IntegrityError) as e:
            reason = e.message if isinstance(e, ServiceError) else "Failed to store report card"
            logger.warning("Bulk report card item %d failed: %s", index, reason)
            results.append(BulkItemResult(index=index, student_id=item.student_id, success=False, error=reason))

    await db.commit()
    successful = sum(1 for r in results if r.success)
    return BulkUpsertResponse(
        processed=len(results),
        successful=successful,
        failed=len(results) - successful,
        results=results,
    )


async def bulk_create_report_cards(
    db: AsyncSession,
    items: Iterable[ReportCardSubmission],
    current_user: CurrentUser,
) -> List[ReportCardResponse]:
    """Create all report cards in one transaction. Any failure rolls the whole batch back."""
    self_approved = current_user.role == Role.HEADTEACHER
    created: List[Tuple[ReportCard, Student]] = []
    try:
        for item in items:
            student = await _require_student(db, item.student_id)
            await _require_scope(db, item.term_id, item.academic_year_id)
            if await _find_card(db, item.student_id, item.term_id, item.academic_year_id):
                raise ConflictError(f"Report card already exists for student {item.student_id}")
            card = ReportCard(
                student_id=student.id,
                term_id=item.term_id,
                academic_year_id=item.academic_year_id,
                is_approved=self_approved,
                approved_at=datetime.utcnow() if self_approved else None,
                **_submission_values(item),
            )
            db.add(card)
            await db.flush()
            created.append((card, student))
        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Duplicate report card in batch")
    return [_to_response(card, student=student) for card, student in created]


async def review_report_card(
    db: AsyncSession,
    report_card_id: UUID,
    payload: ReportCardReview,
) -> ReportCardResponse:
    """
    Headteacher review. is_approved=true stamps approved_at (now unless given);
    is_approved=false clears approved_at and revokes parent access.
    """
    card = await _get_card(db, report_card_id)
    if payload.headteacher_comment is not None:
        card.headteacher_comment = payload.headteacher_comment
    if payload.is_approved is True:
        card.is_approved = True
        card.approved_at = payload.approved_at or card.approved_at or datetime.utcnow()
    elif payload.is_approved is False:
        card.is_approved = False
        card.approved_at = None
        card.parent_access_enabled_at = None
    elif payload.approved_at is not None and card.is_approved:
        card.approved_at = payload.approved_at
    card.updated_at = datetime.utcnow()
    await db.commit()
    return _to_response(card)


async def approve_report_card(db: AsyncSession, report_card_id: UUID, current_user: CurrentUser) -> ReportCardResponse:
    card = await _get_card(db, report_card_id)
    if not card.is_approved:
        card.is_approved = True
        card.approved_at = datetime.utcnow()
        card.updated_at = card.approved_at
        await db.commit()
        logger.info("Report card %s approved by %s", card.id, current_user.id)
    return _to_response(card)


async def enable_parent_access(db: AsyncSession, report_card_id: UUID, current_user: CurrentUser) -> ParentAccessResponse:
    """
    Make an approved report card visible to the student's parent.
    Preconditions are checked in order (exists, approved, has parent) before any write.
    Enabling twice keeps the first timestamp.
    """
    card = await _get_card(db, report_card_id)
    if not card.is_approved:
        raise NotApprovedError()
    if card.student is None or card.student.parent_id is None:
        raise NoParentError()

    if card.parent_access_enabled_at is not None:
        return ParentAccessResponse(
            report_card_id=card.id,
            parent_access_enabled_at=card.parent_access_enabled_at,
            already_enabled=True,
        )

    card.parent_access_enabled_at = datetime.utcnow()
    await db.commit()
    logger.info("Parent access enabled for report card %s by %s", card.id, current_user.id)
    return ParentAccessResponse(
        report_card_id=card.id,
        parent_access_enabled_at=card.parent_access_enabled_at,
        already_enabled=False,
    )


async def list_report_cards(
    db: AsyncSession,
    current_user: CurrentUser,
    student_id: Optional[UUID] = None,
    term_id: Optional[UUID] = None,
    academic_year_id: Optional[UUID] = None,
) -> List[ReportCardResponse]:
    """Staff see every card; a parent sees only their children's approved, access-enabled cards."""
    stmt = select(ReportCard).join(Student, Student.id == ReportCard.student_id)
    if student_id is not None:
        stmt = stmt.where(ReportCard.student_id == student_id)
    if term_id is not None:
        stmt = stmt.where(ReportCard.term_id == term_id)
    if academic_year_id is not None:
        stmt = stmt.where(ReportCard.academic_year_id == academic_year_id)

    for_parent = current_user.role == Role.PARENT
    if for_parent:
        stmt = stmt.where(
            Student.parent_id == current_user.id,
            ReportCard.is_approved.is_(True),
            ReportCard.parent_access_enabled_at.is_not(None),
        )
    result = await db.execute(stmt.order_by(ReportCard.created_at.desc()))
    return [_to_response(c, for_parent=for_parent) for c in result.unique().scalars().all()]


async def get_report_card(db: AsyncSession, report_card_id: UUID, current_user: CurrentUser) -> ReportCardResponse:
    card = await _get_card(db, report_card_id)
    if current_user.role == Role.PARENT:
        if card.student is None or card.student.parent_id != current_user.id or not is_visible_to_parent(card):
            raise NotFoundError("Report card not found")
        return _to_response(card, for_parent=True)
    return _to_response(card)


async def list_class_report_cards(
    db: AsyncSession,
    class_id: UUID,
    term_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> List[ClassReportCardRow]:
    """Students of the class, each with their report card for the term (None when not written yet)."""
    academic_year = await require_academic_year(db, academic_year_id)
    students = (
        await db.execute(select(Student).where(Student.class_id == class_id).order_by(Student.full_name))
    ).scalars().all()
    if not students:
        return []

    cards = (
        await db.execute(
            select(ReportCard).where(
                ReportCard.student_id.in_([s.id for s in students]),
                ReportCard.term_id == term_id,
                ReportCard.academic_year_id == academic_year.id,
            )
        )
    ).unique().scalars().all()
    by_student = {c.student_id: c for c in cards}
    return [
        ClassReportCardRow(
            student_id=s.id,
            full_name=s.full_name,
            report_card=_to_response(by_student[s.id]) if s.id in by_student else None,
        )
        for s in students
    ]


async def delete_report_card(db: AsyncSession, report_card_id: UUID) -> None:
    card = await _get_card(db, report_card_id)
    await db.delete(card)
    await db.commit()


def grade_distribution(cards: Iterable[Any]) -> Dict[str, Any]:
    """
    Tally A/B/C/D across the seven personal-assessment fields of all cards combined.
    Null or unrecognised values are skipped, not counted as a category.
    """
    counts = Counter({letter: 0 for letter in GRADE_LETTERS})
    skipped = 0
    for card in cards:
        for field in PERSONAL_ASSESSMENT_FIELDS:
            value = getattr(card, field, None)
            if value in counts:
                counts[value] += 1
            elif value is not None:
                skipped += 1
    return {
        "distribution": {letter: counts[letter] for letter in GRADE_LETTERS},
        "total_graded": sum(counts.values()),
        "skipped": skipped,
    }


async def report_stats(
    db: AsyncSession,
    academic_year_id: UUID,
    term_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
) -> ReportStatsResponse:
    stmt = (
        select(ReportCard)
        .join(Student, Student.id == ReportCard.student_id)
        .where(ReportCard.academic_year_id == academic_year_id)
    )
    if term_id is not None:
        stmt = stmt.where(ReportCard.term_id == term_id)
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    cards = (await db.execute(stmt)).unique().scalars().all()

    approved = sum(1 for c in cards if c.is_approved)
    per_class = Counter(
        c.student.school_class.name for c in cards if c.student is not None and c.student.school_class is not None
    )
    return ReportStatsResponse(
        total_reports=len(cards),
        approved_reports=approved,
        pending_reports=len(cards) - approved,
        grade_distribution=grade_distribution(cards)["distribution"],
        class_distribution=[
            ClassReportCount(class_name=name, report_count=count) for name, count in sorted(per_class.items())
        ],
    )


def _component_grade(table: GradingTable, value: Optional[float]) -> Optional[str]:
    if value is None or not table.is_configured:
        return None
    return table.grade_for(value)


def initials(full_name: Optional[str]) -> Optional[str]:
    """Initials of a name, e.g. Grace Atim Okot -> GAO."""
    if not full_name:
        return None
    return "".join(part[0].upper() for part in full_name.split()) or None


def _points_total(table: GradingTable, rows: List[SubjectReportRow], field: str) -> Optional[int]:
    """Grade points summed over the subjects sat in one exam (bot, midterm or eot)."""
    if not table.is_configured:
        return None
    grades = [getattr(r, f"{field}_grade") for r in rows if getattr(r, field) is not None]
    if not grades:
        return None
    return sum(table.points_for(g) for g in grades)


async def build_report_document(
    db: AsyncSession,
    report_card_id: UUID,
    academic_year_id: Optional[UUID] = None,
) -> ReportDocument:
    """Assemble the report card, marks, grading bands and END division for rendering."""
    card = await _get_card(db, report_card_id)
    academic_year = await require_academic_year(db, academic_year_id or card.academic_year_id)
    student = card.student
    if student is None:
        raise NotFoundError("Student not found")
    term = await db.get(Term, card.term_id)
    if not term:
        raise NotFoundError("Term not found")

    thresholds = (
        await db.execute(select(GradingThreshold).order_by(GradingThreshold.min_mark.desc()))
    ).scalars().all()
    table = GradingTable(thresholds)

    subjects = (
        await db.execute(select(Subject).where(Subject.class_id == student.class_id).order_by(Subject.name))
    ).scalars().all()
    marks = (
        await db.execute(
            select(Mark).where(
                Mark.student_id == student.id,
                Mark.term_id == card.term_id,
                Mark.academic_year_id == academic_year.id,
            )
        )
    ).unique().scalars().all()
    marks_by_subject = {m.subject_id: m for m in marks}
    teachers = await teacher_names_by_subject(db, student.class_id, card.term_id, academic_year.id)
    creator_ids = {m.created_by_id for m in marks if m.created_by_id is not None}
    creators = {}
    if creator_ids:
        creators = dict(
            (await db.execute(select(User.id, User.full_name).where(User.id.in_(creator_ids)))).all()
        )

    rows: List[SubjectReportRow] = []
    for subject in subjects:
        mark = marks_by_subject.get(subject.id)
        grade = mark.grade if mark else None
        rows.append(
            SubjectReportRow(
                subject_id=subject.id,
                subject_name=subject.name,
                code=subject.code,
                category=subject.category,
                bot=mark.bot if mark else None,
                bot_grade=_component_grade(table, mark.bot) if mark else None,
                midterm=mark.midterm if mark else None,
                midterm_grade=_component_grade(table, mark.midterm) if mark else None,
                eot=mark.eot if mark else None,
                eot_grade=_component_grade(table, mark.eot) if mark else None,
                total=mark.total if mark else None,
                grade=grade,
                remarks=table.comment_for(grade) if grade else None,
                teacher_initials=initials(
                    teachers.get(subject.id) or (creators.get(mark.created_by_id) if mark else None)
                ),
            )
        )
    general_rows = [r for r in rows if r.category == SubjectCategory.GENERAL.value]

    division = None
    aggregate = None
    if table.is_configured:
        result = calculate_student_division(
            [SubjectScore(r.subject_id, r.eot) for r in general_rows if r.eot is not None],
            table,
            DivisionScheme.from_settings(),
        )
        if result is not None:
            division = result.label
            aggregate = result.aggregate

    schedule = await find_schedule(db, academic_year.id, card.term_id)

    return ReportDocument(
        student=ReportDocumentStudent(
            id=student.id,
            full_name=student.full_name,
            gender=student.gender,
            class_name=student.school_class.name if student.school_class else None,
            parent_id=student.parent_id,
        ),
        term_name=term.name,
        academic_year=academic_year.year,
        report_card=_to_response(card),
        grading_system=[GradingThresholdResponse.model_validate(t) for t in thresholds],
        subjects=rows,
        general_subjects=general_rows,
        division=division,
        aggregate=aggregate,
        points_totals={
            ExamType.BOT.value: _points_total(table, general_rows, "bot"),
            ExamType.MID.value: _points_total(table, general_rows, "midterm"),
            ExamType.END.value: _points_total(table, general_rows, "eot"),
        },
        next_term_start_date=schedule.next_term_start_date if schedule else None,
        next_term_end_date=schedule.next_term_end_date if schedule else None,
    )
