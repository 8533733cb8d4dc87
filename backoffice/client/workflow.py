"""Enrollment and payment workflows of the console."""

from typing import Any

import structlog

from backoffice.client.gateway import GatewayClient, validate_input
from backoffice.core.exceptions import InvalidStateError
from backoffice.models.enrollment import EnrollmentStatus, check_transition, compute_balances
from backoffice.schemas.enrollment import EnrollmentCreate, EnrollmentResponse, EnrollmentUpdate
from backoffice.schemas.payment import PaymentCreate, PaymentResponse, PaymentUpdate

logger = structlog.get_logger(__name__)


class EnrollmentWorkflow:
    """
    Client half of the enrollment lifecycle and payment ledger.

    Keeps a cache of enrollments and their ledgers. Every successful
    mutation is followed by a re-fetch of the affected enrollment; the only
    local patching is the balance recompute from a freshly read ledger.
    Transitions are checked against the cached status before any request
    is sent.
    """

    def __init__(self, gateway: GatewayClient) -> None:
        self.gateway = gateway
        self.enrollments: dict[int, EnrollmentResponse] = {}
        self.ledgers: dict[int, list[PaymentResponse]] = {}

    # ============== Cache ==============

    async def load(self, **filters: Any) -> list[EnrollmentResponse]:
        """Fetch the enrollment list and replace the cache with it."""
        enrollments = await self.gateway.list_enrollments(**filters)
        if not filters:
            self.enrollments.clear()
            self.ledgers.clear()
        for enrollment in enrollments:
            self._store(enrollment)
        return enrollments

    async def refresh(self, enrollment_id: int) -> EnrollmentResponse:
        """Re-read one enrollment from the gateway."""
        return self._store(await self.gateway.get_enrollment(enrollment_id))

    def _store(self, enrollment: EnrollmentResponse) -> EnrollmentResponse:
        self.enrollments[enrollment.id] = enrollment
        self.ledgers[enrollment.id] = list(enrollment.payments)
        return enrollment

    async def _cached(self, enrollment_id: int) -> EnrollmentResponse:
        cached = self.enrollments.get(enrollment_id)
        if cached is None:
            cached = await self.refresh(enrollment_id)
        return cached

    # ============== Lifecycle ==============

    async def enroll(self, data: EnrollmentCreate | dict[str, Any]) -> EnrollmentResponse:
        enrollment_data = validate_input(EnrollmentCreate, data)
        created = await self.gateway.create_enrollment(enrollment_data)
        logger.info("enrollment_created", enrollment_id=created.id)
        return await self.refresh(created.id)

    async def _transition(self, enrollment_id: int, target: EnrollmentStatus, call) -> EnrollmentResponse:
        cached = await self._cached(enrollment_id)
        check_transition(cached.status, target)
        try:
            await call(enrollment_id)
        except InvalidStateError:
            await self._resync(enrollment_id)
            raise
        return await self.refresh(enrollment_id)

    async def _resync(self, enrollment_id: int) -> None:
        """The server holds another status than the cache; re-read it."""
        logger.info("enrollment_cache_stale", enrollment_id=enrollment_id)
        await self.refresh(enrollment_id)

    async def confirm(self, enrollment_id: int) -> EnrollmentResponse:
        return await self._transition(
            enrollment_id, EnrollmentStatus.CONFIRMED, self.gateway.confirm_enrollment
        )

    async def cancel(self, enrollment_id: int) -> EnrollmentResponse:
        return await self._transition(
            enrollment_id, EnrollmentStatus.CANCELLED, self.gateway.cancel_enrollment
        )

    async def set_pending(self, enrollment_id: int) -> EnrollmentResponse:
        return await self._transition(
            enrollment_id, EnrollmentStatus.PENDING, self.gateway.set_enrollment_pending
        )

    async def update(
        self,
        enrollment_id: int,
        data: EnrollmentUpdate | dict[str, Any],
    ) -> EnrollmentResponse:
        changes = validate_input(EnrollmentUpdate, data)
        if changes.status is not None:
            cached = await self._cached(enrollment_id)
            check_transition(cached.status, changes.status)
        try:
            await self.gateway.update_enrollment(enrollment_id, changes)
        except InvalidStateError:
            await self._resync(enrollment_id)
            raise
        return await self.refresh(enrollment_id)

    async def delete(self, enrollment_id: int) -> None:
        await self.gateway.delete_enrollment(enrollment_id)
        self.enrollments.pop(enrollment_id, None)
        self.ledgers.pop(enrollment_id, None)
        logger.info("enrollment_dropped_from_cache", enrollment_id=enrollment_id)

    # ============== Ledger ==============

    async def add_payment(self, data: PaymentCreate | dict[str, Any]) -> PaymentResponse:
        payment_data = validate_input(PaymentCreate, data)
        payment = await self.gateway.add_payment(payment_data)
        await self.refresh(payment.enrollment_id)
        return payment

    async def update_payment(
        self,
        payment_id: int,
        data: PaymentUpdate | dict[str, Any],
    ) -> PaymentResponse:
        changes = validate_input(PaymentUpdate, data)
        payment = await self.gateway.update_payment(payment_id, changes)
        await self.refresh(payment.enrollment_id)
        return payment

    async def delete_payment(self, payment_id: int) -> EnrollmentResponse:
        """Delete a payment and return the owning enrollment, re-read."""
        enrollment_id = self._owner_of(payment_id)
        if enrollment_id is None:
            enrollment_id = (await self.gateway.get_payment(payment_id)).enrollment_id
        await self.gateway.delete_payment(payment_id)
        return await self.refresh(enrollment_id)

    def _owner_of(self, payment_id: int) -> int | None:
        for enrollment_id, ledger in self.ledgers.items():
            if any(payment.id == payment_id for payment in ledger):
                return enrollment_id
        return None

    async def recompute_balances(self, enrollment_id: int) -> EnrollmentResponse:
        """
        Re-read the ledger and overwrite the cached derived fields.

        Same rule as the gateway: total paid is the sum of the ledger and
        the remaining balance never goes below zero.
        """
        ledger = await self.gateway.list_payments_by_enrollment(enrollment_id)
        cached = await self._cached(enrollment_id)
        total_paid, remaining = compute_balances(
            cached.registration_fee, [payment.amount for payment in ledger]
        )
        updated = cached.model_copy(update={
            "total_paid": total_paid,
            "remaining_balance": remaining,
            "payments": ledger,
        })
        self.enrollments[enrollment_id] = updated
        self.ledgers[enrollment_id] = list(ledger)
        return updated
