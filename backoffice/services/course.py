"""Course service."""

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import ConflictError
from backoffice.models.course import Course
from backoffice.models.enrollment import Enrollment
from backoffice.schemas.course import CourseCreate, CourseUpdate

logger = structlog.get_logger(__name__)


async def get_course_by_id(db: AsyncSession, course_id: int) -> Course | None:
    """Get course by ID."""
    result = await db.execute(select(Course).where(Course.id == course_id))
    return result.scalar_one_or_none()


async def get_courses(db: AsyncSession, *, search: str | None = None) -> list[Course]:
    """Get the catalog ordered by name."""
    query = select(Course)
    if search:
        query = query.where(Course.name.icontains(search, autoescape=True))
    result = await db.execute(query.order_by(Course.name, Course.id))
    return list(result.scalars().all())


async def create_course(db: AsyncSession, course_data: CourseCreate) -> Course:
    """Create a new course."""
    course = Course(
        name=course_data.name,
        description=course_data.description,
        fee=course_data.fee,
        duration_days=course_data.duration_days,
    )

    db.add(course)
    await db.commit()
    await db.refresh(course)

    logger.info("course_created", course_id=course.id)
    return course


async def update_course(
    db: AsyncSession,
    course: Course,
    course_data: CourseUpdate,
) -> Course:
    """Update a course. Existing enrollments keep the fee they were created with."""
    update_data = course_data.model_dump(exclude_unset=True)

    for field, value in update_data.items():
        setattr(course, field, value)

    await db.commit()
    await db.refresh(course)

    return course


async def delete_course(db: AsyncSession, course: Course) -> None:
    """Delete a course that no enrollment references."""
    result = await db.execute(
        select(func.count()).select_from(Enrollment).where(Enrollment.course_id == course.id)
    )
    referenced = result.scalar() or 0
    if referenced:
        raise ConflictError(
            f"Course '{course.name}' has {referenced} enrollment(s) and cannot be deleted"
        )

    await db.delete(course)
    await db.commit()

    logger.info("course_deleted", course_id=course.id)


async def get_popular_courses(db: AsyncSession, limit: int = 3) -> list[tuple[Course, int]]:
    """Courses ranked by number of enrollments, most popular first."""
    enrollment_count = func.count(Enrollment.id).label("enrollment_count")
    query = (
        select(Course, enrollment_count)
        .outerjoin(Enrollment, Enrollment.course_id == Course.id)
        .group_by(Course.id)
        .order_by(enrollment_count.desc(), Course.name)
        .limit(limit)
    )
    result = await db.execute(query)
    return [(row[0], row[1]) for row in result.all()]
