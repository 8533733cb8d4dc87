"""Student (apprenant) routes."""

from enum import Enum
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.config import settings
from backoffice.core.database import get_db
from backoffice.core.deps import Reader, require_permission
from backoffice.models.user import User
from backoffice.schemas.common import Page, PaginationMeta, SortDirection
from backoffice.schemas.enrollment import EnrollmentResponse
from backoffice.schemas.student import (
    ImportResult,
    StudentCreate,
    StudentDetailResponse,
    StudentResponse,
    StudentUpdate,
)
from backoffice.services import interchange
from backoffice.services import student as student_service

router = APIRouter(prefix="/apprenants", tags=["Students"])


class ExportFormat(str, Enum):
    CSV = "csv"
    EXCEL = "excel"


class ExportScope(str, Enum):
    ALL = "all"
    PAGE = "page"


def _build_detail_response(student) -> StudentDetailResponse:
    """Build student response with enrollments and their payments."""
    enrollments = []
    for enrollment in student.enrollments:
        response = EnrollmentResponse.model_validate(enrollment)
        response.student_name = student.full_name
        response.course_name = enrollment.course.name if enrollment.course else None
        enrollments.append(response)

    response = StudentDetailResponse.model_validate(student)
    response.enrollments = enrollments
    return response


@router.get("", response_model=Page[StudentResponse])
async def list_students(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
    page: int = Query(0, ge=0, description="Page number, 0-based"),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query(student_service.DEFAULT_SORT, alias="sortBy"),
    sort_direction: SortDirection = Query(SortDirection.ASC, alias="sortDirection"),
    search: str | None = Query(None, description="Search by name, email, CIN or phone"),
) -> Page[StudentResponse]:
    """List students one page at a time."""
    students, total = await student_service.get_students(
        db,
        search=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
        page=page,
        size=size,
    )

    return Page[StudentResponse](
        data=[StudentResponse.model_validate(s) for s in students],
        pagination=PaginationMeta.build(page, size, total),
    )


@router.get("/count")
async def count_students(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
) -> int:
    """Total number of students."""
    return await student_service.count_students(db)


@router.get("/export/{fmt}/{scope}")
async def export_students(
    fmt: ExportFormat,
    scope: ExportScope,
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
    page: int = Query(0, ge=0),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sort_by: str = Query(student_service.DEFAULT_SORT, alias="sortBy"),
    sort_direction: SortDirection = Query(SortDirection.ASC, alias="sortDirection"),
    search: str | None = Query(None),
) -> Response:
    """
    Download students as CSV or Excel.

    The ``page`` scope exports exactly the rows of the list view for the
    same parameters; ``all`` exports every matching student.
    """
    if scope == ExportScope.PAGE:
        students, _ = await student_service.get_students(
            db,
            search=search,
            sort_by=sort_by,
            sort_direction=sort_direction,
            page=page,
            size=size,
        )
    else:
        students = await student_service.get_all_students(
            db,
            search=search,
            sort_by=sort_by,
            sort_direction=sort_direction,
        )

    if fmt == ExportFormat.CSV:
        content = interchange.export_csv(students)
        media_type = interchange.CSV_MEDIA_TYPE
        filename = f"apprenants_{scope.value}.csv"
    else:
        content = interchange.export_excel(students)
        media_type = interchange.EXCEL_MEDIA_TYPE
        filename = f"apprenants_{scope.value}.xlsx"

    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", response_model=ImportResult)
async def import_students(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("students:import"))],
    file: UploadFile = File(...),
) -> ImportResult:
    """Bulk import from a CSV or XLSX file; invalid and duplicate rows are reported."""
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size: {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB",
        )

    return await interchange.import_students(db, file.filename or "", content)


@router.get("/{student_id}", response_model=StudentDetailResponse)
async def get_student(
    student_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
) -> StudentDetailResponse:
    """Get a student with enrollments and payment histories."""
    student = await student_service.get_student_by_id(db, student_id, with_enrollments=True)

    if not student:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )

    return _build_detail_response(student)


@router.post("", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    student_data: StudentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("students:write"))],
) -> StudentResponse:
    """Create a new student. Email and CIN must be unused."""
    student = await student_service.create_student(db, student_data)
    return StudentResponse.model_validate(student)


@router.put("/{student_id}", response_model=StudentResponse)
async def update_student(
    student_id: int,
    student_data: StudentUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("students:write"))],
) -> StudentResponse:
    """Update a student."""
    student = await student_service.get_student_by_id(db, student_id)

    if not student:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )

    updated_student = await student_service.update_student(db, student, student_data)
    return StudentResponse.model_validate(updated_student)


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(
    student_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("students:delete"))],
) -> None:
    """Delete a student together with enrollments and payments."""
    student = await student_service.get_student_by_id(db, student_id)

    if not student:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Student not found",
        )

    await student_service.delete_student(db, student)
