"""Payment service - the ledger of payments made against enrollments."""

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import ValidationError
from backoffice.models.enrollment import Enrollment
from backoffice.models.payment import Payment
from backoffice.schemas.payment import PaymentCreate, PaymentUpdate
from backoffice.services.enrollment import recompute_balances

logger = structlog.get_logger(__name__)


async def get_payment_by_id(db: AsyncSession, payment_id: int) -> Payment | None:
    """Get payment by ID."""
    result = await db.execute(
        select(Payment)
        .where(Payment.id == payment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_payments(
    db: AsyncSession,
    *,
    method: str | None = None,
) -> list[Payment]:
    """Get all payments, newest first."""
    query = select(Payment)

    if method:
        query = query.where(Payment.method == method)

    query = query.order_by(Payment.paid_at.desc(), Payment.id.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_by_enrollment(db: AsyncSession, enrollment_id: int) -> list[Payment]:
    """Payment history of one enrollment, oldest first."""
    query = (
        select(Payment)
        .where(Payment.enrollment_id == enrollment_id)
        .order_by(Payment.paid_at.asc(), Payment.id.asc())
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def add_payment(db: AsyncSession, payment_data: PaymentCreate) -> Payment:
    """Record a payment and recompute the owning enrollment's balances."""
    enrollment = await db.get(Enrollment, payment_data.enrollment_id)
    if enrollment is None:
        raise ValidationError(
            f"Enrollment {payment_data.enrollment_id} not found",
            field_errors={"inscriptionId": "Unknown enrollment"},
        )

    payment = Payment(
        enrollment_id=enrollment.id,
        amount=payment_data.amount,
        method=payment_data.method,
        module=payment_data.module,
    )
    if payment_data.paid_at is not None:
        payment.paid_at = payment_data.paid_at

    db.add(payment)
    await db.commit()
    await db.refresh(payment)

    await recompute_balances(db, enrollment.id)

    logger.info(
        "payment_recorded",
        payment_id=payment.id,
        enrollment_id=enrollment.id,
        amount=str(payment.amount),
        method=payment.method,
    )
    return payment


async def update_payment(
    db: AsyncSession,
    payment: Payment,
    payment_data: PaymentUpdate,
) -> Payment:
    """Update a payment; the owning enrollment is recomputed."""
    update_data = payment_data.model_dump(exclude_unset=True, exclude_none=True)

    for field, value in update_data.items():
        setattr(payment, field, value)

    await db.commit()
    await db.refresh(payment)

    await recompute_balances(db, payment.enrollment_id)

    logger.info("payment_updated", payment_id=payment.id, fields=sorted(update_data))
    return payment


async def delete_payment(db: AsyncSession, payment: Payment) -> None:
    """Delete a payment and recompute the owning enrollment."""
    enrollment_id = payment.enrollment_id
    payment_id = payment.id
    await db.delete(payment)
    await db.commit()

    await recompute_balances(db, enrollment_id)

    logger.info("payment_deleted", payment_id=payment_id, enrollment_id=enrollment_id)
