from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.rbac import check_permission
from app.auth.schemas import CurrentUser
from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    BulkCreateRequest,
    BulkUpsertRequest,
    BulkUpsertResponse,
    ClassReportCardRow,
    ParentAccessResponse,
    ReportCardResponse,
    ReportCardReview,
    ReportCardSubmission,
    ReportDocument,
    ReportStatsResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/report-cards", tags=["report-cards"])


@router.post(
    "/upsert",
    response_model=ReportCardResponse,
    dependencies=[Depends(check_permission("report_cards", "write"))],
)
async def upsert_report_card(
    payload: ReportCardSubmission,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ReportCardResponse:
    """Create or update the report card of a student for (term, academic year)."""
    try:
        return await service.upsert_report_card(db, payload, current_user)
    except ServiceError as e:
        raise e.to_http()


@router.post(
    "/bulk-upsert",
    response_model=BulkUpsertResponse,
    dependencies=[Depends(check_permission("report_cards", "write"))],
)
async def bulk_upsert_report_cards(
    payload: BulkUpsertRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> BulkUpsertResponse:
    """Upsert many report cards. Each item succeeds or fails on its own; see `results`."""
    try:
        return await service.bulk_upsert_report_cards(db, payload, current_user)
    except ServiceError as e:
        raise e.to_http()


@router.post(
    "/bulk",
    response_model=List[ReportCardResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("report_cards", "write"))],
)
async def bulk_create_report_cards(
    payload: BulkCreateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ReportCardResponse]:
    """Create report cards all-or-nothing: one failure creates none."""
    try:
        return await service.bulk_create_report_cards(db, payload.report_cards, current_user)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "",
    response_model=List[ReportCardResponse],
    dependencies=[Depends(check_permission("report_cards", "read"))],
)
async def list_report_cards(
    student_id: Optional[UUID] = Query(None),
    term_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ReportCardResponse]:
    return await service.list_report_cards(db, current_user, student_id, term_id, academic_year_id)


@router.get(
    "/by-term",
    response_model=List[ClassReportCardRow],
    dependencies=[Depends(check_permission("report_cards", "by_term"))],
)
async def list_class_report_cards(
    class_id: UUID = Query(...),
    term_id: UUID = Query(...),
    academic_year_id: Optional[UUID] = Query(None, description="Defaults to the active academic year"),
    db: AsyncSession = Depends(get_db),
) -> List[ClassReportCardRow]:
    try:
        return await service.list_class_report_cards(db, class_id, term_id, academic_year_id)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "/stats",
    response_model=ReportStatsResponse,
    dependencies=[Depends(check_permission("report_cards", "stats"))],
)
async def report_stats(
    academic_year_id: UUID = Query(...),
    term_id: Optional[UUID] = Query(None),
    class_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> ReportStatsResponse:
    """Report counts, approval status, personal-assessment grade distribution and cards per class."""
    return await service.report_stats(db, academic_year_id, term_id, class_id)


@router.get(
    "/{report_card_id}",
    response_model=ReportCardResponse,
    dependencies=[Depends(check_permission("report_cards", "read"))],
)
async def get_report_card(
    report_card_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ReportCardResponse:
    try:
        return await service.get_report_card(db, report_card_id, current_user)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "/{report_card_id}/document",
    response_model=ReportDocument,
    dependencies=[Depends(check_permission("report_cards", "document"))],
)
async def build_report_document(
    report_card_id: UUID,
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> ReportDocument:
    """Report card with marks, grading bands and division, ready for rendering."""
    try:
        return await service.build_report_document(db, report_card_id, academic_year_id)
    except ServiceError as e:
        raise e.to_http()


@router.put(
    "/{report_card_id}/review",
    response_model=ReportCardResponse,
    dependencies=[Depends(check_permission("report_cards", "review"))],
)
async def review_report_card(
    report_card_id: UUID,
    payload: ReportCardReview,
    db: AsyncSession = Depends(get_db),
) -> ReportCardResponse:
    try:
        return await service.review_report_card(db, report_card_id, payload)
    except ServiceError as e:
        raise e.to_http()


@router.post(
    "/{report_card_id}/approve",
    response_model=ReportCardResponse,
    dependencies=[Depends(check_permission("report_cards", "approve"))],
)
async def approve_report_card(
    report_card_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ReportCardResponse:
    try:
        return await service.approve_report_card(db, report_card_id, current_user)
    except ServiceError as e:
        raise e.to_http()


@router.post(
    "/{report_card_id}/parent-access",
    response_model=ParentAccessResponse,
    dependencies=[Depends(check_permission("report_cards", "parent_access"))],
)
async def enable_parent_access(
    report_card_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ParentAccessResponse:
    """Let the student's parent see this approved report card. Safe to call again."""
    try:
        return await service.enable_parent_access(db, report_card_id, current_user)
    except ServiceError as e:
        raise e.to_http()


@router.delete(
    "/{report_card_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission("report_cards", "delete"))],
)
async def delete_report_card(
    report_card_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_report_card(db, report_card_id)
    except ServiceError as e:
        raise e.to_http()
