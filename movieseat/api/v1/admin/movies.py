import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from movieseat.db.session import get_db
from movieseat.api.deps import get_coordinator, get_current_admin_user, get_registry
from movieseat.api.v1.serializers import serialize_movie
from movieseat.models.movie import Movie
from movieseat.models.user import User
from movieseat.schemas.common import MessageResponse
from movieseat.schemas.movie import (
    FunctionsAdd,
    Movie as MovieSchema,
    MovieCreate,
    MovieUpdate,
)
from movieseat.services.coordinator import ReservationCoordinator
from movieseat.services.showtimes import ShowtimeRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/movies", tags=["Admin - Movies"])


# ---------------------------------------------------------------------------
# Movie CRUD
# ---------------------------------------------------------------------------


@router.post("/", response_model=MovieSchema, status_code=status.HTTP_201_CREATED)
def create_movie(
    data: MovieCreate,
    db: Session = Depends(get_db),
    registry: ShowtimeRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_admin_user),
):
    """Create a movie, optionally with its first functions in the same transaction."""
    fields = data.model_dump(exclude={"functions"})
    fields["poster"] = str(data.poster)
    movie = Movie(**fields)
    db.add(movie)
    db.flush()

    registry.add(movie.id, [f.datetime for f in data.functions], commit=False)
    db.commit()
    db.refresh(movie)
    logger.info("Movie %s created with %d function(s)", movie.id, len(data.functions))
    return serialize_movie(movie)


@router.patch("/{movie_id}", response_model=MovieSchema)
def update_movie(
    movie_id: UUID,
    data: MovieUpdate,
    db: Session = Depends(get_db),
    registry: ShowtimeRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_admin_user),
):
    """
    Update movie fields. `updates` reschedules functions: each entry moves the
    function currently at `datetime` to `newDatetime`; entries that match no
    function are ignored.
    """
    movie = registry.get_movie(movie_id)

    changes = data.model_dump(exclude_unset=True, exclude={"updates"})
    if "poster" in changes and changes["poster"] is not None:
        changes["poster"] = str(data.poster)
    for field, value in changes.items():
        if value is not None:
            setattr(movie, field, value)

    registry.update(
        movie_id,
        [(u.datetime, u.new_datetime) for u in data.updates],
        commit=False,
    )
    db.commit()
    db.refresh(movie)
    return serialize_movie(movie)


@router.delete("/{movie_id}", response_model=MessageResponse)
def delete_movie(
    movie_id: UUID,
    db: Session = Depends(get_db),
    registry: ShowtimeRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_admin_user),
):
    """Delete a movie together with its functions and their reservations."""
    movie = registry.get_movie(movie_id)
    db.delete(movie)
    db.commit()
    logger.info("Movie %s deleted", movie_id)
    return MessageResponse(message="Movie deleted successfully")


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------


@router.post("/{movie_id}/functions", response_model=MovieSchema)
def add_functions(
    movie_id: UUID,
    data: FunctionsAdd,
    registry: ShowtimeRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_admin_user),
):
    movie = registry.add(movie_id, [f.datetime for f in data.functions])
    return serialize_movie(movie)


@router.delete("/{movie_id}/functions/{function_id}", response_model=MovieSchema)
def remove_function(
    movie_id: UUID,
    function_id: UUID,
    registry: ShowtimeRegistry = Depends(get_registry),
    current_user: User = Depends(get_current_admin_user),
):
    """Remove a function. Removing an unknown function returns the movie unchanged."""
    movie = registry.remove(movie_id, function_id)
    return serialize_movie(movie)


@router.get("/{movie_id}/functions/{function_id}/audit")
def audit_function(
    movie_id: UUID,
    function_id: UUID,
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_admin_user),
):
    """Compare the function's seat map with its reservations."""
    coordinator.registry.get(movie_id, function_id)
    findings = coordinator.audit(function_id)
    return {
        "function_id": str(function_id),
        "consistent": not findings["orphaned"] and not findings["unheld"],
        **findings,
    }
