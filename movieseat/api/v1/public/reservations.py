from uuid import UUID
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from movieseat.api.deps import get_coordinator, get_current_user
from movieseat.api.v1.serializers import serialize_reservation
from movieseat.models.user import User
from movieseat.schemas.reservation import (
    ReservationCreate,
    Reservation as ReservationSchema,
    ReservationCancelResponse,
)
from movieseat.services.coordinator import ReservationCoordinator

router = APIRouter(prefix="/reservations", tags=["Reservations"])


# ---------------------------------------------------------------------------
# POST /reservations: reserve seats for the caller
# ---------------------------------------------------------------------------


@router.post("/", response_model=ReservationSchema, status_code=status.HTTP_201_CREATED)
def create_reservation(
    data: ReservationCreate,
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_user),
):
    """
    Reserve `seats` of one function for the authenticated user.

    All seats are reserved or none is: if any seat is missing or already
    taken the request fails with 409 and lists the offending seats.
    A 504 means the outcome is unknown; re-read the available seats.
    """
    reservation = coordinator.reserve(
        movie_id=data.movie,
        showtime_id=data.function_id,
        user_id=current_user.id,
        seat_numbers=data.seats,
    )
    return serialize_reservation(reservation)


# ---------------------------------------------------------------------------
# GET /reservations/user/{user_id}: one user's reservations
# ---------------------------------------------------------------------------


@router.get("/user/{user_id}", response_model=List[ReservationSchema])
def list_user_reservations(
    user_id: UUID,
    date: Optional[date] = Query(None, description="Only reservations created on this day (YYYY-MM-DD)"),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_user),
):
    """Users may list their own reservations; admins anybody's."""
    if user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    reservations = coordinator.list_reservations(user_id=user_id, created_at=date)
    return [serialize_reservation(r) for r in reservations]


# ---------------------------------------------------------------------------
# GET /reservations/{id}
# ---------------------------------------------------------------------------


@router.get("/{reservation_id}", response_model=ReservationSchema)
def get_reservation(
    reservation_id: UUID,
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_user),
):
    reservation = coordinator.get_reservation(reservation_id)
    if reservation.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return serialize_reservation(reservation)


# ---------------------------------------------------------------------------
# DELETE /reservations/{id}/{function_id}: cancel
# ---------------------------------------------------------------------------


@router.delete("/{reservation_id}/{function_id}", response_model=ReservationCancelResponse)
def cancel_reservation(
    reservation_id: UUID,
    function_id: UUID,
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_user),
):
    """
    Cancel a reservation and release its seats.
    Only the owner may cancel; admins may cancel any reservation.
    """
    removed = coordinator.cancel(
        reservation_id=reservation_id,
        showtime_id=function_id,
        requesting_user_id=None if current_user.is_admin else current_user.id,
    )
    return ReservationCancelResponse(
        id=removed.id,
        released_seats=removed.seat_numbers,
        message="Reservation deleted successfully",
    )
