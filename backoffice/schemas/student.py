"""Student (apprenant) schemas."""

from datetime import date

from pydantic import BaseModel, Field, computed_field

from backoffice.schemas.common import WireModel
from backoffice.schemas.enrollment import EnrollmentResponse
from backoffice.schemas.validators import Cin, Email, PhoneNumber


class StudentCreate(WireModel):
    """Schema for creating a new student."""

    last_name: str = Field(..., alias="nom", min_length=1, max_length=100)
    first_name: str = Field(..., alias="prenom", min_length=1, max_length=100)
    email: Email
    cin: Cin
    phone: PhoneNumber | None = Field(None, alias="telephone")
    address: str | None = Field(None, alias="adresse", max_length=500)
    birth_date: date | None = Field(None, alias="dateNaissance")


class StudentUpdate(WireModel):
    """Schema for updating a student; only the fields sent are changed."""

    last_name: str | None = Field(None, alias="nom", min_length=1, max_length=100)
    first_name: str | None = Field(None, alias="prenom", min_length=1, max_length=100)
    email: Email | None = None
    cin: Cin | None = None
    phone: PhoneNumber | None = Field(None, alias="telephone")
    address: str | None = Field(None, alias="adresse", max_length=500)
    birth_date: date | None = Field(None, alias="dateNaissance")


class StudentResponse(WireModel):
    """Student response schema."""

    id: int = Field(..., alias="idApprenant")
    last_name: str = Field(..., alias="nom")
    first_name: str = Field(..., alias="prenom")
    email: str
    cin: str
    phone: str | None = Field(None, alias="telephone")
    address: str | None = Field(None, alias="adresse")
    birth_date: date | None = Field(None, alias="dateNaissance")

    @computed_field(alias="nomComplet")
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class StudentDetailResponse(StudentResponse):
    """Student with enrollments and their payment histories."""

    enrollments: list[EnrollmentResponse] = Field(default_factory=list, alias="inscriptions")


class ImportRowError(WireModel):
    """A rejected row of a bulk import (rows count from 1, header excluded)."""

    row_number: int = Field(..., alias="rowNumber")
    message: str


class ImportResult(BaseModel):
    """Outcome of a bulk student import."""

    total: int = 0
    inserted: int = 0
    skipped: int = 0
    errors: list[ImportRowError] = Field(default_factory=list)
