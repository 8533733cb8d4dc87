"""Enrollment service - lifecycle transitions and ledger-derived balances."""

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.core.exceptions import ValidationError
from backoffice.models.course import Course
from backoffice.models.enrollment import Enrollment, EnrollmentStatus, check_transition
from backoffice.models.payment import Payment
from backoffice.models.student import Student
from backoffice.schemas.enrollment import EnrollmentCreate, EnrollmentUpdate

logger = structlog.get_logger(__name__)


def _with_relations(query):
    return query.options(
        selectinload(Enrollment.student),
        selectinload(Enrollment.course),
        selectinload(Enrollment.payments),
    ).execution_options(populate_existing=True)


async def get_enrollment_by_id(db: AsyncSession, enrollment_id: int) -> Enrollment | None:
    """Get enrollment by ID with its student, course and payments loaded."""
    result = await db.execute(_with_relations(select(Enrollment).where(Enrollment.id == enrollment_id)))
    return result.scalar_one_or_none()


async def get_enrollments(
    db: AsyncSession,
    *,
    status: EnrollmentStatus | None = None,
    student_id: int | None = None,
    course_id: int | None = None,
) -> list[Enrollment]:
    """Get enrollments with optional filters, newest first."""
    query = select(Enrollment)

    if status is not None:
        query = query.where(Enrollment.status == EnrollmentStatus(status).value)
    if student_id is not None:
        query = query.where(Enrollment.student_id == student_id)
    if course_id is not None:
        query = query.where(Enrollment.course_id == course_id)

    query = _with_relations(query).order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_enrollment(db: AsyncSession, data: EnrollmentCreate) -> Enrollment:
    """
    Enroll a student in a course.

    The enrollment starts Pending with nothing paid. Without an explicit
    registration fee the course's fee is charged.
    """
    field_errors = {}
    student = await db.get(Student, data.student_id)
    if student is None:
        field_errors["apprenantId"] = f"Student {data.student_id} not found"
    course = await db.get(Course, data.course_id)
    if course is None:
        field_errors["formationId"] = f"Course {data.course_id} not found"
    if field_errors:
        raise ValidationError(
            "; ".join(field_errors.values()),
            field_errors=field_errors,
        )

    fee = data.registration_fee if data.registration_fee is not None else course.fee
    enrollment = Enrollment(
        student_id=student.id,
        course_id=course.id,
        registration_fee=fee,
        status=EnrollmentStatus.PENDING.value,
    )
    enrollment.apply_balances([])

    db.add(enrollment)
    await db.commit()

    logger.info(
        "enrollment_created",
        enrollment_id=enrollment.id,
        student_id=student.id,
        course_id=course.id,
        registration_fee=str(fee),
    )
    return await get_enrollment_by_id(db, enrollment.id)


async def recompute_balances(db: AsyncSession, enrollment_id: int) -> Enrollment | None:
    """
    Re-sum the whole ledger of an enrollment and overwrite its derived fields.

    Never incremental, so edits and deletions of any past payment are
    reflected. Calling it again without a ledger change yields the same values.
    """
    result = await db.execute(select(Enrollment).where(Enrollment.id == enrollment_id))
    enrollment = result.scalar_one_or_none()
    if enrollment is None:
        return None

    amounts_result = await db.execute(
        select(Payment.amount).where(Payment.enrollment_id == enrollment_id)
    )
    enrollment.apply_balances(amounts_result.scalars().all())
    await db.commit()

    logger.debug(
        "enrollment_balances_recomputed",
        enrollment_id=enrollment_id,
        total_paid=str(enrollment.total_paid),
        remaining_balance=str(enrollment.remaining_balance),
    )
    return await get_enrollment_by_id(db, enrollment_id)


async def change_status(
    db: AsyncSession,
    enrollment: Enrollment,
    target: EnrollmentStatus,
) -> Enrollment:
    """Move an enrollment to ``target``; repeating the current status is a no-op."""
    check_transition(enrollment.status, target)

    previous = EnrollmentStatus(enrollment.status)
    if previous != target:
        enrollment.status = target.value
        await db.commit()
        logger.info(
            "enrollment_status_changed",
            enrollment_id=enrollment.id,
            previous=previous.value,
            status=target.value,
        )

    return await get_enrollment_by_id(db, enrollment.id)


async def confirm_enrollment(db: AsyncSession, enrollment: Enrollment) -> Enrollment:
    """Pending -> Confirmed."""
    return await change_status(db, enrollment, EnrollmentStatus.CONFIRMED)


async def cancel_enrollment(db: AsyncSession, enrollment: Enrollment) -> Enrollment:
    """Pending -> Cancelled."""
    return await change_status(db, enrollment, EnrollmentStatus.CANCELLED)


async def set_pending(db: AsyncSession, enrollment: Enrollment) -> Enrollment:
    """Confirmed -> Pending."""
    return await change_status(db, enrollment, EnrollmentStatus.PENDING)


async def update_enrollment(
    db: AsyncSession,
    enrollment: Enrollment,
    data: EnrollmentUpdate,
) -> Enrollment:
    """Update the registration fee and/or status of an enrollment."""
    update_data = data.model_dump(exclude_unset=True)
    target = update_data.get("status")
    fee = update_data.get("registration_fee")

    # Reject an illegal status before touching anything else
    if target is not None:
        check_transition(enrollment.status, target)

    if fee is not None and fee != enrollment.registration_fee:
        enrollment.registration_fee = fee
        await db.commit()
        await recompute_balances(db, enrollment.id)

    if target is not None:
        return await change_status(db, enrollment, target)

    return await get_enrollment_by_id(db, enrollment.id)


async def delete_enrollment(db: AsyncSession, enrollment: Enrollment) -> None:
    """Delete an enrollment; its payments go with it."""
    enrollment_id = enrollment.id
    await db.execute(delete(Payment).where(Payment.enrollment_id == enrollment_id))
    await db.execute(delete(Enrollment).where(Enrollment.id == enrollment_id))
    await db.commit()

    logger.info("enrollment_deleted", enrollment_id=enrollment_id)
