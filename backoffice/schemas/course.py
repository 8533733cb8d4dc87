"""Course (formation) schemas."""

from pydantic import Field

from backoffice.schemas.common import WireModel
from backoffice.schemas.validators import Money


class CourseCreate(WireModel):
    """Schema for creating a course."""

    name: str = Field(..., alias="nom", min_length=1, max_length=200)
    description: str | None = None
    fee: Money = Field(..., alias="prix", ge=0, decimal_places=2)
    duration_days: int = Field(..., alias="duree", gt=0)


class CourseUpdate(WireModel):
    """Schema for updating a course."""

    name: str | None = Field(None, alias="nom", min_length=1, max_length=200)
    description: str | None = None
    fee: Money | None = Field(None, alias="prix", ge=0, decimal_places=2)
    duration_days: int | None = Field(None, alias="duree", gt=0)


class CourseResponse(WireModel):
    """Course response schema."""

    id: int = Field(..., alias="idFormation")
    name: str = Field(..., alias="nom")
    description: str | None = None
    fee: Money = Field(..., alias="prix")
    duration_days: int = Field(..., alias="duree")


class PopularCourse(WireModel):
    """Course ranked by number of enrollments."""

    id: int = Field(..., alias="idFormation")
    name: str = Field(..., alias="nom")
    enrollment_count: int = Field(..., alias="nombreInscrits")
