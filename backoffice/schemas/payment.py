"""Payment (paiement) schemas."""

from datetime import datetime

from pydantic import Field

from backoffice.schemas.common import WireModel
from backoffice.schemas.validators import Money


class PaymentCreate(WireModel):
    """Schema for recording a payment against an enrollment."""

    enrollment_id: int = Field(..., alias="inscriptionId")
    amount: Money = Field(..., alias="montant", gt=0, decimal_places=2)
    method: str = Field(..., alias="modePaiement", min_length=1, max_length=50)
    module: str = Field(..., min_length=1, max_length=100)
    paid_at: datetime | None = Field(None, alias="datePaiement")


class PaymentUpdate(WireModel):
    """Schema for updating a payment."""

    amount: Money | None = Field(None, alias="montant", gt=0, decimal_places=2)
    method: str | None = Field(None, alias="modePaiement", min_length=1, max_length=50)
    module: str | None = Field(None, min_length=1, max_length=100)
    paid_at: datetime | None = Field(None, alias="datePaiement")


class PaymentResponse(WireModel):
    """Schema for payment response."""

    id: int = Field(..., alias="idPaiement")
    enrollment_id: int = Field(..., alias="inscriptionId")
    paid_at: datetime = Field(..., alias="datePaiement")
    amount: Money = Field(..., alias="montant")
    method: str = Field(..., alias="modePaiement")
    module: str
