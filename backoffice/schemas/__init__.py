"""Pydantic schemas."""

from backoffice.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserResponse,
)
from backoffice.schemas.common import Page, PaginationMeta
from backoffice.schemas.course import CourseCreate, CourseResponse, CourseUpdate, PopularCourse
from backoffice.schemas.enrollment import EnrollmentCreate, EnrollmentResponse, EnrollmentUpdate
from backoffice.schemas.payment import PaymentCreate, PaymentResponse, PaymentUpdate
from backoffice.schemas.student import (
    ImportResult,
    ImportRowError,
    StudentCreate,
    StudentDetailResponse,
    StudentResponse,
    StudentUpdate,
)

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "UserResponse",
    # Pagination
    "Page",
    "PaginationMeta",
    # Course
    "CourseCreate",
    "CourseUpdate",
    "CourseResponse",
    "PopularCourse",
    # Enrollment
    "EnrollmentCreate",
    "EnrollmentUpdate",
    "EnrollmentResponse",
    # Payment
    "PaymentCreate",
    "PaymentUpdate",
    "PaymentResponse",
    # Student
    "StudentCreate",
    "StudentUpdate",
    "StudentResponse",
    "StudentDetailResponse",
    "ImportResult",
    "ImportRowError",
]
