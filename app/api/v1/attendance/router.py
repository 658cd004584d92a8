from datetime import date
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
    AttendanceBulkMark,
    AttendanceMarkResult,
    AttendanceRecord,
    AttendanceStats,
    ChildAttendance,
    ClassDaySummary,
)
from . import service

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post(
    "",
    response_model=AttendanceMarkResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("attendance", "mark"))],
)
async def mark_attendance(
    payload: AttendanceBulkMark,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> AttendanceMarkResult:
    """Mark a class for one date. A class teacher may only mark the class they lead."""
    try:
        return await service.mark_attendance(db, payload, current_user)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "/class",
    response_model=ClassDaySummary,
    dependencies=[Depends(check_permission("attendance", "read"))],
)
async def class_day(
    class_id: Optional[UUID] = Query(None),
    att_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ClassDaySummary:
    try:
        return await service.class_day(db, current_user, class_id, att_date)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "/stats",
    response_model=AttendanceStats,
    dependencies=[Depends(check_permission("attendance", "stats"))],
)
async def attendance_stats(
    class_id: Optional[UUID] = Query(None),
    att_date: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> AttendanceStats:
    try:
        return await service.attendance_stats(db, class_id, att_date, academic_year_id)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "/children",
    response_model=List[ChildAttendance],
    dependencies=[Depends(check_permission("attendance", "children"))],
)
async def children_attendance(
    student_id: Optional[UUID] = Query(None),
    year: Optional[int] = Query(None),
    month: Optional[int] = Query(None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[ChildAttendance]:
    try:
        return await service.children_attendance(db, current_user, student_id, year, month)
    except ServiceError as e:
        raise e.to_http()


@router.get(
    "",
    response_model=List[AttendanceRecord],
    dependencies=[Depends(check_permission("attendance", "read"))],
)
async def list_attendance(
    class_id: Optional[UUID] = Query(None),
    student_id: Optional[UUID] = Query(None),
    att_date: Optional[date] = Query(None, alias="date"),
    search: Optional[str] = Query(None, description="Case-insensitive match on student name"),
    academic_year_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[AttendanceRecord]:
    try:
        return await service.list_attendance(db, current_user, class_id, student_id, att_date, search, academic_year_id)
    except ServiceError as e:
        raise e.to_http()
