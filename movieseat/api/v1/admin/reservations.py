from uuid import UUID
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from movieseat.api.deps import get_coordinator, get_current_admin_user
from movieseat.api.v1.serializers import serialize_admin_reservation
from movieseat.models.user import User
from movieseat.schemas.common import PaginatedResponse
from movieseat.schemas.reservation import AdminReservation
from movieseat.services.coordinator import ReservationCoordinator

router = APIRouter(prefix="/admin/reservations", tags=["Admin - Reservations"])


@router.get("/", response_model=PaginatedResponse[AdminReservation])
def list_all_reservations(
    # --- Filters ---
    user_id: Optional[UUID] = Query(None, description="Filter by owner"),
    date: Optional[date] = Query(None, description="Filter by creation day (YYYY-MM-DD, UTC)"),
    # --- Pagination ---
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_admin_user),
):
    """
    Return all reservations across every movie and function, newest first.
    """
    total, reservations = coordinator.ledger.find_page(
        offset=(page - 1) * limit,
        limit=limit,
        user_id=user_id,
        created_at=date,
    )
    return PaginatedResponse(
        data=[serialize_admin_reservation(r) for r in reservations],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )
