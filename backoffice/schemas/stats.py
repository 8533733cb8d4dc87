"""Statistics schemas for the dashboard and reports views."""

from datetime import datetime
from enum import Enum

from pydantic import Field

from backoffice.schemas.common import WireModel
from backoffice.schemas.course import PopularCourse
from backoffice.schemas.validators import Money


class MonthlyCount(WireModel):
    """Enrollments opened in a month (``YYYY-MM``)."""

    month: str = Field(..., alias="mois")
    count: int = Field(..., alias="nombre")


class MonthlyAmount(WireModel):
    """Payments collected in a month (``YYYY-MM``)."""

    month: str = Field(..., alias="mois")
    amount: Money = Field(..., alias="montant")


class DashboardStats(WireModel):
    """Headline figures of the dashboard."""

    total_courses: int = Field(..., alias="totalFormations")
    total_students: int = Field(..., alias="totalApprenants")
    total_enrollments: int = Field(..., alias="totalInscriptions")
    total_revenue: Money = Field(..., alias="totalRevenue")
    average_fee: Money = Field(..., alias="moyennePrix")
    confirmation_rate: float = Field(..., alias="tauxReussite")  # Percent of enrollments confirmed
    enrollments_by_month: list[MonthlyCount] = Field(..., alias="inscriptionsParMois")
    revenue_by_month: list[MonthlyAmount] = Field(..., alias="revenusParMois")
    popular_courses: list[PopularCourse] = Field(..., alias="formationsPopulaires")


class ActivityType(str, Enum):
    """Kind of record behind a recent activity."""

    STUDENT = "apprenant"
    ENROLLMENT = "inscription"
    PAYMENT = "paiement"


class Activity(WireModel):
    """Recent activity entry."""

    type: ActivityType
    reference_id: int = Field(..., alias="referenceId")
    description: str
    occurred_at: datetime = Field(..., alias="date")


class EnrollmentStats(WireModel):
    """Enrollment counts per status."""

    total: int
    pending: int = Field(..., alias="enAttente")
    confirmed: int = Field(..., alias="confirmees")
    cancelled: int = Field(..., alias="annulees")
    confirmed_revenue: Money = Field(..., alias="revenusConfirmes")


class PaymentStats(WireModel):
    """Payment totals."""

    count: int = Field(..., alias="nombre")
    total_amount: Money = Field(..., alias="montantTotal")
    today_amount: Money = Field(..., alias="montantAujourdhui")
    by_method: dict[str, Money] = Field(..., alias="parMode")


class CourseStats(WireModel):
    """Enrollment and money figures of one course."""

    id: int = Field(..., alias="idFormation")
    name: str = Field(..., alias="nom")
    fee: Money = Field(..., alias="prix")
    enrollment_count: int = Field(..., alias="nombreInscrits")
    confirmed_count: int = Field(..., alias="confirmees")
    revenue: Money = Field(..., alias="revenus")
    outstanding: Money = Field(..., alias="montantRestant")
