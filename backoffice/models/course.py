"""Course (formation) model."""

from decimal import Decimal

from sqlalchemy import Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.database import BaseModel


class Course(BaseModel):
    """Catalog entry students enroll in."""

    __tablename__ = "courses"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    enrollments: Mapped[list["Enrollment"]] = relationship(
        "Enrollment",
        back_populates="course",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, name={self.name})>"
