from typing import List, Literal, Optional
from pydantic import BaseModel, Field, HttpUrl, UUID4
from datetime import datetime

from movieseat.schemas.showtime import ShowtimeCreate, ShowtimeReschedule, ShowtimeSummary

Genre = Literal[
    "Action",
    "Adventure",
    "Comedy",
    "Drama",
    "Fantasy",
    "Horror",
    "Thriller",
    "Sci-Fi",
]


class MovieBase(BaseModel):
    title: str = Field(min_length=1)
    year: int
    director: str
    duration: int = Field(gt=0)
    poster: HttpUrl
    genre: List[Genre]
    rate: int = Field(ge=0, le=10)


# Movie: Create (POST /admin/movies)
class MovieCreate(MovieBase):
    functions: List[ShowtimeCreate] = []


# Movie: Update (PATCH /admin/movies/{id}); `updates` reschedules functions
class MovieUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    year: Optional[int] = None
    director: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0)
    poster: Optional[HttpUrl] = None
    genre: Optional[List[Genre]] = None
    rate: Optional[int] = Field(default=None, ge=0, le=10)
    updates: List[ShowtimeReschedule] = []


class Movie(BaseModel):
    id: UUID4
    title: str
    year: int
    director: str
    duration: int
    poster: str
    genre: List[str]
    rate: int
    created_at: Optional[datetime] = None
    functions: List[ShowtimeSummary] = []


class FunctionsAdd(BaseModel):
    functions: List[ShowtimeCreate] = Field(min_length=1)
