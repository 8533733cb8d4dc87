"""Authentication schemas."""

from pydantic import AliasChoices, BaseModel, Field

from backoffice.core.permissions import Role
from backoffice.schemas.common import WireModel
from backoffice.schemas.validators import Email


class LoginRequest(BaseModel):
    """Login request schema."""

    email: Email
    password: str = Field(
        ...,
        min_length=6,
        validation_alias=AliasChoices("password", "motDePasse"),
    )


class LoginResponse(WireModel):
    """Token issued on login."""

    token: str
    role: Role
    full_name: str = Field(..., alias="fullName")


class RegisterRequest(WireModel):
    """Account creation request (administrators only)."""

    email: Email
    password: str = Field(
        ...,
        min_length=6,
        validation_alias=AliasChoices("password", "motDePasse"),
    )
    first_name: str = Field("", alias="prenom", max_length=100)
    last_name: str = Field("", alias="nom", max_length=100)
    role: Role = Role.USER


class UserResponse(WireModel):
    """Account response schema."""

    id: int
    email: str
    first_name: str = Field(..., alias="prenom")
    last_name: str = Field(..., alias="nom")
    role: Role
    full_name: str = Field(..., alias="fullName")
    is_active: bool = Field(..., alias="actif")
