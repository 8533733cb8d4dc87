"""API router aggregating all route modules."""

from fastapi import APIRouter

from backoffice.api.v1.routes import (
    auth,
    courses,
    enrollments,
    payments,
    stats,
    students,
)

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(students.router)
api_router.include_router(courses.router)
api_router.include_router(enrollments.router)
api_router.include_router(payments.router)
api_router.include_router(stats.router)
