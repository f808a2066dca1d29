from uuid import UUID
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from movieseat.db.session import get_db
from movieseat.api.deps import get_current_user, get_registry
from movieseat.api.v1.serializers import serialize_movie, serialize_showtime, serialize_showtime_summary
from movieseat.models.movie import Movie
from movieseat.models.user import User
from movieseat.schemas.movie import Movie as MovieSchema
from movieseat.schemas.showtime import Seat, Showtime as ShowtimeSchema, ShowtimeSummary
from movieseat.services.showtimes import ShowtimeRegistry

router = APIRouter(prefix="/movies", tags=["Movies"])


# ---------------------------------------------------------------------------
# Movies
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[MovieSchema])
def list_movies(
    genre: Optional[str] = Query(None, description="Case-insensitive genre filter"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    movies = db.query(Movie).order_by(Movie.created_at.desc(), Movie.title).all()
    if genre:
        # genre is a JSON list; match in Python so SQLite and PostgreSQL behave alike
        wanted = genre.lower()
        movies = [m for m in movies if any(wanted in g.lower() for g in (m.genre or []))]
    return [serialize_movie(m) for m in movies]


@router.get("/{movie_id}", response_model=MovieSchema)
def get_movie(
    movie_id: UUID,
    registry: ShowtimeRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_user),
):
    return serialize_movie(registry.get_movie(movie_id))


# ---------------------------------------------------------------------------
# Functions & seats
# ---------------------------------------------------------------------------


@router.get("/{movie_id}/functions", response_model=List[ShowtimeSummary])
def list_functions(
    movie_id: UUID,
    registry: ShowtimeRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_user),
):
    return [serialize_showtime_summary(f) for f in registry.list_functions(movie_id)]


@router.get("/{movie_id}/functions/{function_id}", response_model=ShowtimeSchema)
def get_function(
    movie_id: UUID,
    function_id: UUID,
    registry: ShowtimeRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_user),
):
    """Full seat map of a function, available and taken seats alike."""
    return serialize_showtime(registry.get(movie_id, function_id))


@router.get("/{movie_id}/functions/{function_id}/seats", response_model=List[Seat])
def list_available_seats(
    movie_id: UUID,
    function_id: UUID,
    registry: ShowtimeRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_user),
):
    """Seats still free for this function, in layout order."""
    return registry.available_seats(movie_id, function_id)
