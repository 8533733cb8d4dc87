"""Payment (paiement) model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import BaseModel


class Payment(BaseModel):
    """Ledger entry paid against an enrollment."""

    __tablename__ = "payments"

    enrollment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("enrollments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    method: Mapped[str] = mapped_column(String(50), nullable=False)  # cash, transfer, mobile-money...
    module: Mapped[str] = mapped_column(String(100), nullable=False)  # Course segment covered
    paid_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    enrollment: Mapped["Enrollment"] = relationship("Enrollment", back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount})>"
