from __future__ import annotations

from typing import Annotated, List, Optional
from pydantic import BaseModel, Field, StringConstraints, UUID4, field_validator
from datetime import datetime

SeatNumber = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^[A-Z][0-9]{1,2}$")]


# Reservation: Create (POST /reservations); the user is the caller
class ReservationCreate(BaseModel):
    movie: UUID4
    function_id: UUID4 = Field(alias="functionId")
    seats: Annotated[List[SeatNumber], Field(min_length=1)]

    model_config = {"populate_by_name": True}

    @field_validator("seats")
    @classmethod
    def reject_duplicates(cls, v):
        if len(set(v)) != len(v):
            raise ValueError("seats must not contain duplicates")
        return v


# Reservation: Full response
class Reservation(BaseModel):
    id: UUID4
    user: UUID4
    movie: UUID4
    function_id: UUID4 = Field(serialization_alias="functionId")
    seats: List[str]
    created_at: datetime = Field(serialization_alias="createdAt")


# Reservation: admin view, includes user info
class AdminReservation(Reservation):
    user_info: Optional[UserSummary] = None


class ReservationCancelResponse(BaseModel):
    id: UUID4
    released_seats: List[str]
    message: str


# Import at the bottom to avoid circular imports
from movieseat.schemas.user import UserSummary  # noqa: E402

AdminReservation.model_rebuild()
