"""Statistics service - aggregates for the dashboard and reports views."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.models.course import Course
from backoffice.models.enrollment import Enrollment, EnrollmentStatus
from backoffice.models.payment import Payment
from backoffice.models.student import Student
from backoffice.schemas.stats import ActivityType
from backoffice.services import course as course_service


def month_keys(today: date, months: int) -> list[str]:
    """The ``months`` most recent months as ``YYYY-MM``, oldest first."""
    keys = []
    year, month = today.year, today.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def local_date(value: date | datetime) -> date:
    """Calendar day of ``value`` in the server's local time zone."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def _month_key(value: date | datetime) -> str:
    value = local_date(value)
    return f"{value.year:04d}-{value.month:02d}"


async def _count(db: AsyncSession, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar() or 0


async def get_dashboard_stats(
    db: AsyncSession,
    *,
    months: int = 6,
    popular_limit: int = 3,
    today: date | None = None,
) -> dict:
    """Headline counts, revenue, monthly trends and the most popular courses."""
    today = today or date.today()

    total_courses = await _count(db, Course)
    total_students = await _count(db, Student)
    total_enrollments = await _count(db, Enrollment)

    revenue_result = await db.execute(select(func.coalesce(func.sum(Payment.amount), 0)))
    total_revenue = Decimal(revenue_result.scalar() or 0)

    average_result = await db.execute(select(func.avg(Course.fee)))
    average_fee = Decimal(average_result.scalar() or 0).quantize(Decimal("0.01"))

    confirmed_result = await db.execute(
        select(func.count())
        .select_from(Enrollment)
        .where(Enrollment.status == EnrollmentStatus.CONFIRMED.value)
    )
    confirmed = confirmed_result.scalar() or 0
    confirmation_rate = round(confirmed / total_enrollments * 100, 2) if total_enrollments else 0.0

    # Monthly trends are bucketed in Python to stay database-agnostic
    keys = month_keys(today, months)
    enrollments_by_month = {key: 0 for key in keys}
    dates_result = await db.execute(select(Enrollment.enrolled_at))
    for enrolled_at in dates_result.scalars():
        key = _month_key(enrolled_at)
        if key in enrollments_by_month:
            enrollments_by_month[key] += 1

    revenue_by_month = {key: Decimal("0") for key in keys}
    payments_result = await db.execute(select(Payment.paid_at, Payment.amount))
    for paid_at, amount in payments_result.all():
        key = _month_key(paid_at)
        if key in revenue_by_month:
            revenue_by_month[key] += amount

    popular = await course_service.get_popular_courses(db, limit=popular_limit)

    return {
        "total_courses": total_courses,
        "total_students": total_students,
        "total_enrollments": total_enrollments,
        "total_revenue": total_revenue,
        "average_fee": average_fee,
        "confirmation_rate": confirmation_rate,
        "enrollments_by_month": [
            {"month": key, "count": count} for key, count in enrollments_by_month.items()
        ],
        "revenue_by_month": [
            {"month": key, "amount": amount} for key, amount in revenue_by_month.items()
        ],
        "popular_courses": [
            {"id": course.id, "name": course.name, "enrollment_count": count}
            for course, count in popular
        ],
    }


async def get_recent_activities(db: AsyncSession, limit: int = 10) -> list[dict]:
    """Latest student, enrollment and payment records merged by creation time."""
    students = await db.execute(
        select(Student).order_by(Student.created_at.desc(), Student.id.desc()).limit(limit)
    )
    enrollments = await db.execute(
        select(Enrollment)
        .options(selectinload(Enrollment.student), selectinload(Enrollment.course))
        .order_by(Enrollment.created_at.desc(), Enrollment.id.desc())
        .limit(limit)
    )
    payments = await db.execute(
        select(Payment).order_by(Payment.created_at.desc(), Payment.id.desc()).limit(limit)
    )

    activities = []
    for student in students.scalars():
        activities.append({
            "type": ActivityType.STUDENT,
            "reference_id": student.id,
            "description": f"New student: {student.full_name}",
            "occurred_at": student.created_at,
        })
    for enrollment in enrollments.scalars():
        activities.append({
            "type": ActivityType.ENROLLMENT,
            "reference_id": enrollment.id,
            "description": (
                f"{enrollment.student.full_name} enrolled in {enrollment.course.name}"
            ),
            "occurred_at": enrollment.created_at,
        })
    for payment in payments.scalars():
        activities.append({
            "type": ActivityType.PAYMENT,
            "reference_id": payment.id,
            "description": (
                f"Payment of {payment.amount} ({payment.method}) "
                f"for enrollment #{payment.enrollment_id}"
            ),
            "occurred_at": payment.created_at,
        })

    activities.sort(key=lambda a: (a["occurred_at"], a["reference_id"]), reverse=True)
    return activities[:limit]


async def get_enrollment_stats(db: AsyncSession) -> dict:
    """Enrollment counts per status and the amount collected on confirmed ones."""
    status_result = await db.execute(
        select(Enrollment.status, func.count(Enrollment.id)).group_by(Enrollment.status)
    )
    counts = {status: 0 for status in EnrollmentStatus}
    for status, count in status_result.all():
        counts[EnrollmentStatus(status)] = count

    revenue_result = await db.execute(
        select(func.coalesce(func.sum(Enrollment.total_paid), 0)).where(
            Enrollment.status == EnrollmentStatus.CONFIRMED.value
        )
    )

    return {
        "total": sum(counts.values()),
        "pending": counts[EnrollmentStatus.PENDING],
        "confirmed": counts[EnrollmentStatus.CONFIRMED],
        "cancelled": counts[EnrollmentStatus.CANCELLED],
        "confirmed_revenue": Decimal(revenue_result.scalar() or 0),
    }


async def get_payment_stats(db: AsyncSession, today: date | None = None) -> dict:
    """Payment count, overall total, today's total and totals per method."""
    today = today or date.today()
    result = await db.execute(select(Payment.paid_at, Payment.amount, Payment.method))

    count = 0
    total_amount = Decimal("0")
    today_amount = Decimal("0")
    by_method: dict[str, Decimal] = {}

    for paid_at, amount, method in result.all():
        count += 1
        total_amount += amount
        if local_date(paid_at) == today:
            today_amount += amount
        by_method[method] = by_method.get(method, Decimal("0")) + amount

    return {
        "count": count,
        "total_amount": total_amount,
        "today_amount": today_amount,
        "by_method": by_method,
    }


async def get_course_stats(db: AsyncSession) -> list[dict]:
    """
    Per-course enrollment counts, collected revenue and outstanding balances.

    Every course appears, ordered by name, even without enrollments.
    Outstanding balances leave cancelled enrollments out since nothing
    more will be collected on them.
    """
    courses_result = await db.execute(select(Course).order_by(Course.name, Course.id))
    stats = {
        course.id: {
            "id": course.id,
            "name": course.name,
            "fee": course.fee,
            "enrollment_count": 0,
            "confirmed_count": 0,
            "revenue": Decimal("0"),
            "outstanding": Decimal("0"),
        }
        for course in courses_result.scalars()
    }

    enrollments_result = await db.execute(
        select(
            Enrollment.course_id,
            Enrollment.status,
            Enrollment.total_paid,
            Enrollment.remaining_balance,
        )
    )
    for course_id, status, total_paid, remaining_balance in enrollments_result.all():
        entry = stats[course_id]
        status = EnrollmentStatus(status)
        entry["enrollment_count"] += 1
        entry["revenue"] += total_paid
        if status == EnrollmentStatus.CONFIRMED:
            entry["confirmed_count"] += 1
        if status != EnrollmentStatus.CANCELLED:
            entry["outstanding"] += remaining_balance

    return list(stats.values())
