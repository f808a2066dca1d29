from typing import List
from pydantic import BaseModel, AwareDatetime, Field, UUID4


# Function: create (each item in the array)
class ShowtimeCreate(BaseModel):
    datetime: AwareDatetime


# Function: reschedule, matched by its current datetime
class ShowtimeReschedule(BaseModel):
    datetime: AwareDatetime
    new_datetime: AwareDatetime = Field(alias="newDatetime")

    model_config = {"populate_by_name": True}


class Seat(BaseModel):
    seat_number: str = Field(serialization_alias="seatNumber")
    is_available: bool = Field(serialization_alias="isAvailable")

    class Config:
        from_attributes = True


# Function in movie responses: no seat list, only a count
class ShowtimeSummary(BaseModel):
    id: UUID4
    datetime: AwareDatetime
    available_seats: int


# Function detail (GET /movies/{id}/functions/{function_id})
class Showtime(ShowtimeSummary):
    seats: List[Seat]
