"""Enrollment (inscription) routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.core.deps import Reader, require_permission
from backoffice.models.enrollment import Enrollment, EnrollmentStatus
from backoffice.models.user import User
from backoffice.schemas.enrollment import EnrollmentCreate, EnrollmentResponse, EnrollmentUpdate
from backoffice.services import enrollment as enrollment_service

router = APIRouter(prefix="/inscriptions", tags=["Enrollments"])

Writer = Annotated[User, Depends(require_permission("enrollments:write"))]


def build_enrollment_response(enrollment: Enrollment) -> EnrollmentResponse:
    """Build enrollment response with student and course names."""
    response = EnrollmentResponse.model_validate(enrollment)
    response.student_name = enrollment.student.full_name if enrollment.student else None
    response.course_name = enrollment.course.name if enrollment.course else None
    return response


async def _get_or_404(db: AsyncSession, enrollment_id: int) -> Enrollment:
    enrollment = await enrollment_service.get_enrollment_by_id(db, enrollment_id)

    if not enrollment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Enrollment not found",
        )

    return enrollment


@router.get("", response_model=list[EnrollmentResponse])
async def list_enrollments(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
    status_filter: EnrollmentStatus | None = Query(None, alias="statut"),
    student_id: int | None = Query(None, alias="apprenantId"),
    course_id: int | None = Query(None, alias="formationId"),
) -> list[EnrollmentResponse]:
    """List enrollments, newest first."""
    enrollments = await enrollment_service.get_enrollments(
        db,
        status=status_filter,
        student_id=student_id,
        course_id=course_id,
    )
    return [build_enrollment_response(e) for e in enrollments]


@router.get("/{enrollment_id}", response_model=EnrollmentResponse)
async def get_enrollment(
    enrollment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
) -> EnrollmentResponse:
    """Get an enrollment with its balance and payment history."""
    enrollment = await _get_or_404(db, enrollment_id)
    return build_enrollment_response(enrollment)


@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
@router.post(
    "/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
)
async def create_enrollment(
    data: EnrollmentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Writer,
) -> EnrollmentResponse:
    """Enroll a student in a course. The enrollment starts pending."""
    enrollment = await enrollment_service.create_enrollment(db, data)
    return build_enrollment_response(enrollment)


@router.put("/{enrollment_id}", response_model=EnrollmentResponse)
async def update_enrollment(
    enrollment_id: int,
    data: EnrollmentUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Writer,
) -> EnrollmentResponse:
    """Update the registration fee and/or status."""
    enrollment = await _get_or_404(db, enrollment_id)
    updated = await enrollment_service.update_enrollment(db, enrollment, data)
    return build_enrollment_response(updated)


@router.put("/{enrollment_id}/confirm", response_model=EnrollmentResponse)
async def confirm_enrollment(
    enrollment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Writer,
) -> EnrollmentResponse:
    """Confirm a pending enrollment."""
    enrollment = await _get_or_404(db, enrollment_id)
    updated = await enrollment_service.confirm_enrollment(db, enrollment)
    return build_enrollment_response(updated)


@router.put("/{enrollment_id}/cancel", response_model=EnrollmentResponse)
async def cancel_enrollment(
    enrollment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Writer,
) -> EnrollmentResponse:
    """Cancel a pending enrollment. Cancelled enrollments stay cancelled."""
    enrollment = await _get_or_404(db, enrollment_id)
    updated = await enrollment_service.cancel_enrollment(db, enrollment)
    return build_enrollment_response(updated)


@router.put("/{enrollment_id}/pending", response_model=EnrollmentResponse)
async def set_pending(
    enrollment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Writer,
) -> EnrollmentResponse:
    """Move a confirmed enrollment back to pending."""
    enrollment = await _get_or_404(db, enrollment_id)
    updated = await enrollment_service.set_pending(db, enrollment)
    return build_enrollment_response(updated)


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_enrollment(
    enrollment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("enrollments:delete"))],
) -> None:
    """Delete an enrollment and its payments."""
    enrollment = await _get_or_404(db, enrollment_id)
    await enrollment_service.delete_enrollment(db, enrollment)
