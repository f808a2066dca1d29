import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from movieseat.db.session import get_db
from movieseat.api.deps import get_coordinator, get_current_user
from movieseat.api.v1.serializers import serialize_reservation
from movieseat.core.security import get_password_hash
from movieseat.models.user import User
from movieseat.schemas.common import MessageResponse
from movieseat.schemas.reservation import Reservation as ReservationSchema
from movieseat.schemas.user import User as UserSchema, UserUpdate
from movieseat.services.coordinator import ReservationCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/me", tags=["Me"])


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("/", response_model=UserSchema)
def get_me(current_user: User = Depends(get_current_user)):
    """Return the authenticated user's profile."""
    return current_user


@router.patch("/", response_model=UserSchema)
def update_me(
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update the authenticated user's email, name or password."""
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes and changes["email"] != current_user.email:
        taken = db.query(User).filter(User.email == changes["email"]).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered",
            )
    password = changes.pop("password", None)
    if password:
        current_user.password_hash = get_password_hash(password)
    for field, value in changes.items():
        setattr(current_user, field, value)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.delete("/", response_model=MessageResponse)
def delete_me(
    db: Session = Depends(get_db),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_user),
):
    """
    Cancel the caller's reservations (releasing the seats), then delete the
    account. If a cancellation fails the account is kept; retrying resumes.
    """
    coordinator.cancel_all_for_user(current_user.id)
    email = current_user.email
    db.delete(current_user)
    db.commit()
    logger.info("Account %s deleted", email)
    return MessageResponse(message="User deleted successfully")


# ---------------------------------------------------------------------------
# Reservations
# ---------------------------------------------------------------------------


@router.get("/reservations", response_model=List[ReservationSchema])
def list_my_reservations(
    date: Optional[date] = Query(None, description="Only reservations created on this day (YYYY-MM-DD)"),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_user),
):
    """Return the authenticated user's reservations, newest first."""
    reservations = coordinator.list_reservations(user_id=current_user.id, created_at=date)
    return [serialize_reservation(r) for r in reservations]
