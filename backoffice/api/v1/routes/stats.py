"""Statistics routes for the dashboard and reports."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.core.deps import Reader
from backoffice.schemas.stats import (
    Activity,
    CourseStats,
    DashboardStats,
    EnrollmentStats,
    PaymentStats,
)
from backoffice.services import stats as stats_service

router = APIRouter(prefix="/stats", tags=["Statistics"])


@router.get("/dashboard", response_model=DashboardStats)
async def dashboard(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
    months: int = Query(6, ge=1, le=24, description="Months covered by the trends"),
) -> DashboardStats:
    """Headline figures, monthly trends and popular courses."""
    stats = await stats_service.get_dashboard_stats(db, months=months)
    return DashboardStats.model_validate(stats)


@router.get("/activities", response_model=list[Activity])
async def recent_activities(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
    limit: int = Query(10, ge=1, le=100),
) -> list[Activity]:
    """Most recent students, enrollments and payments."""
    activities = await stats_service.get_recent_activities(db, limit=limit)
    return [Activity.model_validate(a) for a in activities]


@router.get("/inscriptions", response_model=EnrollmentStats)
async def enrollment_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
) -> EnrollmentStats:
    """Enrollment counts per status."""
    stats = await stats_service.get_enrollment_stats(db)
    return EnrollmentStats.model_validate(stats)


@router.get("/paiements", response_model=PaymentStats)
async def payment_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
) -> PaymentStats:
    """Payment totals, today's takings and totals per method."""
    stats = await stats_service.get_payment_stats(db)
    return PaymentStats.model_validate(stats)


@router.get("/formations", response_model=list[CourseStats])
async def course_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
) -> list[CourseStats]:
    """Enrollments, revenue and outstanding balances per course."""
    stats = await stats_service.get_course_stats(db)
    return [CourseStats.model_validate(s) for s in stats]
