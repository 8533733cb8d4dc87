"""Course (formation) routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.core.deps import Reader, require_permission
from backoffice.models.user import User
from backoffice.schemas.course import CourseCreate, CourseResponse, CourseUpdate, PopularCourse
from backoffice.services import course as course_service

router = APIRouter(prefix="/formations", tags=["Courses"])


@router.get("", response_model=list[CourseResponse])
async def list_courses(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
    search: str | None = Query(None, description="Search by name"),
) -> list[CourseResponse]:
    """List the course catalog."""
    courses = await course_service.get_courses(db, search=search)
    return [CourseResponse.model_validate(c) for c in courses]


@router.get("/populaires", response_model=list[PopularCourse])
async def popular_courses(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
    limit: int = Query(3, ge=1, le=50),
) -> list[PopularCourse]:
    """Courses with the most enrollments."""
    ranked = await course_service.get_popular_courses(db, limit=limit)
    return [
        PopularCourse(id=course.id, name=course.name, enrollment_count=count)
        for course, count in ranked
    ]


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
) -> CourseResponse:
    """Get a specific course by ID."""
    course = await course_service.get_course_by_id(db, course_id)

    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found",
        )

    return CourseResponse.model_validate(course)


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    course_data: CourseCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("courses:write"))],
) -> CourseResponse:
    """Create a new course."""
    course = await course_service.create_course(db, course_data)
    return CourseResponse.model_validate(course)


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: int,
    course_data: CourseUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("courses:write"))],
) -> CourseResponse:
    """Update a course."""
    course = await course_service.get_course_by_id(db, course_id)

    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found",
        )

    updated_course = await course_service.update_course(db, course, course_data)
    return CourseResponse.model_validate(updated_course)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("courses:write"))],
) -> None:
    """Delete a course. Rejected while enrollments reference it."""
    course = await course_service.get_course_by_id(db, course_id)

    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found",
        )

    await course_service.delete_course(db, course)
