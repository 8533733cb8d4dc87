"""Enrollment (inscription) schemas."""

from datetime import date

from pydantic import Field

from backoffice.models.enrollment import EnrollmentStatus
from backoffice.schemas.common import WireModel
from backoffice.schemas.payment import PaymentResponse
from backoffice.schemas.validators import Money


class EnrollmentCreate(WireModel):
    """Schema for enrolling a student; the fee defaults to the course fee."""

    student_id: int = Field(..., alias="apprenantId", gt=0)
    course_id: int = Field(..., alias="formationId", gt=0)
    registration_fee: Money | None = Field(
        None, alias="droitInscription", ge=0, decimal_places=2
    )


class EnrollmentUpdate(WireModel):
    """Schema for updating an enrollment's fee and/or status."""

    registration_fee: Money | None = Field(
        None, alias="droitInscription", ge=0, decimal_places=2
    )
    status: EnrollmentStatus | None = Field(None, alias="statut")


class EnrollmentResponse(WireModel):
    """Enrollment with its derived balance and payment history."""

    id: int = Field(..., alias="idInscription")
    student_id: int = Field(..., alias="apprenantId")
    course_id: int = Field(..., alias="formationId")
    student_name: str | None = Field(None, alias="nomApprenant")
    course_name: str | None = Field(None, alias="nomFormation")
    enrolled_at: date = Field(..., alias="dateInscription")
    status: EnrollmentStatus = Field(..., alias="statut")
    registration_fee: Money = Field(..., alias="droitInscription")
    total_paid: Money = Field(..., alias="montantTotalPaye")
    remaining_balance: Money = Field(..., alias="montantRestant")
    payments: list[PaymentResponse] = Field(default_factory=list, alias="paiements")
