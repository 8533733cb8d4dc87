"""Enrollment (inscription) model and its lifecycle rules."""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import BaseModel
from backoffice.core.exceptions import InvalidStateError


class EnrollmentStatus(str, Enum):
    """Enrollment status, valued with the wire labels."""

    PENDING = "En attente"
    CONFIRMED = "Confirmé"
    CANCELLED = "Annulé"


# Target statuses reachable from each status. Repeating the current status is
# accepted as a no-op; Cancelled is terminal.
TRANSITIONS: dict[EnrollmentStatus, frozenset[EnrollmentStatus]] = {
    EnrollmentStatus.PENDING: frozenset({EnrollmentStatus.CONFIRMED, EnrollmentStatus.CANCELLED}),
    EnrollmentStatus.CONFIRMED: frozenset({EnrollmentStatus.PENDING}),
    EnrollmentStatus.CANCELLED: frozenset(),
}


def can_transition(current: EnrollmentStatus, target: EnrollmentStatus) -> bool:
    """Whether ``target`` may be applied to an enrollment in ``current``."""
    current = EnrollmentStatus(current)
    target = EnrollmentStatus(target)
    return current == target or target in TRANSITIONS[current]


def check_transition(current: EnrollmentStatus, target: EnrollmentStatus) -> None:
    """Raise InvalidStateError when the transition is not allowed."""
    if not can_transition(current, target):
        raise InvalidStateError(
            f"Cannot move enrollment from '{EnrollmentStatus(current).value}' "
            f"to '{EnrollmentStatus(target).value}'"
        )


def compute_balances(
    registration_fee: Decimal,
    amounts: Iterable[Decimal],
) -> tuple[Decimal, Decimal]:
    """
    Derive (total_paid, remaining_balance) from the full ledger.

    Overpayment is allowed but never shows up as negative debt.
    """
    total_paid = sum((Decimal(a) for a in amounts), Decimal("0"))
    remaining = max(Decimal("0"), Decimal(registration_fee) - total_paid)
    return total_paid, remaining


class Enrollment(BaseModel):
    """Registration of one student in one course."""

    __tablename__ = "enrollments"

    student_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    course_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("courses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    enrolled_at: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    registration_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    status: Mapped[EnrollmentStatus] = mapped_column(
        String(20),
        nullable=False,
        default=EnrollmentStatus.PENDING.value,
    )

    # Derived from the payment ledger, see recompute_balances
    total_paid: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )
    remaining_balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        default=Decimal("0"),
    )

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="enrollments")
    course: Mapped["Course"] = relationship("Course", back_populates="enrollments")
    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="enrollment",
        order_by="Payment.paid_at",
        passive_deletes=True,
    )

    def apply_balances(self, amounts: Iterable[Decimal]) -> None:
        """Overwrite the derived fields from the given ledger amounts."""
        self.total_paid, self.remaining_balance = compute_balances(
            self.registration_fee, amounts
        )

    def __repr__(self) -> str:
        return f"<Enrollment(id={self.id}, student={self.student_id}, status={self.status})>"
