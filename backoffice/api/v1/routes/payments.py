"""Payment (paiement) routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.database import get_db
from backoffice.core.deps import Reader, require_permission
from backoffice.models.user import User
from backoffice.schemas.payment import PaymentCreate, PaymentResponse, PaymentUpdate
from backoffice.services import enrollment as enrollment_service
from backoffice.services import payment as payment_service

router = APIRouter(prefix="/paiements", tags=["Payments"])


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
    method: str | None = Query(None, alias="modePaiement", description="Filter by payment method"),
) -> list[PaymentResponse]:
    """List all payments, newest first."""
    payments = await payment_service.get_payments(db, method=method)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get("/inscription/{enrollment_id}", response_model=list[PaymentResponse])
async def list_enrollment_payments(
    enrollment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
) -> list[PaymentResponse]:
    """Payment history of an enrollment, oldest first."""
    enrollment = await enrollment_service.get_enrollment_by_id(db, enrollment_id)

    if not enrollment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Enrollment not found",
        )

    payments = await payment_service.list_by_enrollment(db, enrollment_id)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    reader: Reader,
) -> PaymentResponse:
    """Get a specific payment by ID."""
    payment = await payment_service.get_payment_by_id(db, payment_id)

    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payment not found",
        )

    return PaymentResponse.model_validate(payment)


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payment_data: PaymentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("payments:write"))],
) -> PaymentResponse:
    """Record a payment. The enrollment balance is recomputed before responding."""
    payment = await payment_service.add_payment(db, payment_data)
    return PaymentResponse.model_validate(payment)


@router.put("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: int,
    payment_data: PaymentUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("payments:write"))],
) -> PaymentResponse:
    """Update a payment."""
    payment = await payment_service.get_payment_by_id(db, payment_id)

    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payment not found",
        )

    updated_payment = await payment_service.update_payment(db, payment, payment_data)
    return PaymentResponse.model_validate(updated_payment)


@router.delete("/{payment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_payment(
    payment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_permission("payments:delete"))],
) -> None:
    """Delete a payment. Only administrators may remove ledger entries."""
    payment = await payment_service.get_payment_by_id(db, payment_id)

    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Payment not found",
        )

    await payment_service.delete_payment(db, payment)
