"""Student service."""

import structlog
from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backoffice.core.exceptions import ConflictError, ValidationError
from backoffice.models.enrollment import Enrollment
from backoffice.models.payment import Payment
from backoffice.models.student import Student
from backoffice.schemas.common import SortDirection
from backoffice.schemas.student import StudentCreate, StudentUpdate

logger = structlog.get_logger(__name__)

# Wire names accepted by the sortBy parameter
SORT_COLUMNS = {
    "idApprenant": Student.id,
    "nom": Student.last_name,
    "prenom": Student.first_name,
    "email": Student.email,
    "cin": Student.cin,
    "telephone": Student.phone,
    "dateNaissance": Student.birth_date,
}
DEFAULT_SORT = "idApprenant"


async def get_student_by_id(
    db: AsyncSession,
    student_id: int,
    *,
    with_enrollments: bool = False,
) -> Student | None:
    """Get student by ID, optionally with enrollments and their payments."""
    query = select(Student).where(Student.id == student_id)
    if with_enrollments:
        query = query.options(
            selectinload(Student.enrollments).selectinload(Enrollment.payments),
            selectinload(Student.enrollments).selectinload(Enrollment.course),
        ).execution_options(populate_existing=True)
    result = await db.execute(query)
    return result.scalar_one_or_none()


def _search_filter(search: str):
    # autoescape: % and _ typed by the user match themselves
    return or_(
        Student.last_name.icontains(search, autoescape=True),
        Student.first_name.icontains(search, autoescape=True),
        Student.email.icontains(search, autoescape=True),
        Student.cin.icontains(search, autoescape=True),
        Student.phone.icontains(search, autoescape=True),
    )


def _ordering(sort_by: str | None, sort_direction: SortDirection):
    column = SORT_COLUMNS.get(sort_by or DEFAULT_SORT)
    if column is None:
        raise ValidationError(
            f"Unknown sort field '{sort_by}'. Allowed: {', '.join(SORT_COLUMNS)}"
        )
    if sort_direction == SortDirection.DESC:
        return column.desc(), Student.id.desc()
    return column.asc(), Student.id.asc()


async def get_students(
    db: AsyncSession,
    *,
    search: str | None = None,
    sort_by: str | None = None,
    sort_direction: SortDirection = SortDirection.ASC,
    page: int = 0,
    size: int = 10,
) -> tuple[list[Student], int]:
    """Get one page of students matching the search term."""
    query = select(Student)
    count_query = select(func.count()).select_from(Student)

    if search:
        search_filter = _search_filter(search)
        query = query.where(search_filter)
        count_query = count_query.where(search_filter)

    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(*_ordering(sort_by, sort_direction)).offset(page * size).limit(size)
    result = await db.execute(query)
    students = list(result.scalars().all())

    return students, total


async def get_all_students(
    db: AsyncSession,
    *,
    search: str | None = None,
    sort_by: str | None = None,
    sort_direction: SortDirection = SortDirection.ASC,
) -> list[Student]:
    """Get every student matching the search term (for exports)."""
    query = select(Student)
    if search:
        query = query.where(_search_filter(search))
    result = await db.execute(query.order_by(*_ordering(sort_by, sort_direction)))
    return list(result.scalars().all())


async def count_students(db: AsyncSession) -> int:
    """Total number of students."""
    result = await db.execute(select(func.count()).select_from(Student))
    return result.scalar() or 0


async def ensure_unique(
    db: AsyncSession,
    *,
    email: str | None,
    cin: str | None,
    exclude_id: int | None = None,
) -> None:
    """Raise ConflictError if the email or CIN already belongs to another student."""
    checks = (("email", Student.email, email), ("CIN", Student.cin, cin))
    for label, column, value in checks:
        if value is None:
            continue
        query = select(Student.id).where(column == value)
        if exclude_id is not None:
            query = query.where(Student.id != exclude_id)
        result = await db.execute(query)
        if result.first() is not None:
            raise ConflictError(f"A student with this {label} already exists: {value}")


async def create_student(db: AsyncSession, student_data: StudentCreate) -> Student:
    """Create a new student."""
    await ensure_unique(db, email=student_data.email, cin=student_data.cin)

    student = Student(
        last_name=student_data.last_name,
        first_name=student_data.first_name,
        email=student_data.email,
        cin=student_data.cin,
        phone=student_data.phone,
        address=student_data.address,
        birth_date=student_data.birth_date,
    )

    db.add(student)
    await db.commit()
    await db.refresh(student)

    logger.info("student_created", student_id=student.id)
    return student


async def update_student(
    db: AsyncSession,
    student: Student,
    student_data: StudentUpdate,
) -> Student:
    """Update a student."""
    update_data = student_data.model_dump(exclude_unset=True)
    await ensure_unique(
        db,
        email=update_data.get("email"),
        cin=update_data.get("cin"),
        exclude_id=student.id,
    )

    for field, value in update_data.items():
        setattr(student, field, value)

    await db.commit()
    await db.refresh(student)

    return student


async def delete_student(db: AsyncSession, student: Student) -> None:
    """Delete a student together with its enrollments and their payments."""
    student_id = student.id
    enrollment_ids = select(Enrollment.id).where(Enrollment.student_id == student_id)
    await db.execute(
        delete(Payment)
        .where(Payment.enrollment_id.in_(enrollment_ids))
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(Enrollment).where(Enrollment.student_id == student_id))
    await db.execute(delete(Student).where(Student.id == student_id))
    await db.commit()

    logger.info("student_deleted", student_id=student_id)
