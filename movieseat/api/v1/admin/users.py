import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from movieseat.db.session import get_db
from movieseat.api.deps import get_coordinator, get_current_admin_user
from movieseat.models.user import User
from movieseat.schemas.common import MessageResponse, PaginatedResponse
from movieseat.schemas.user import User as UserSchema
from movieseat.services.coordinator import ReservationCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/users", tags=["Admin - Users"])


def _get_user_or_404(db: Session, user_id: UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/", response_model=PaginatedResponse[UserSchema])
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    query = db.query(User)
    total = query.count()
    users = (
        query.order_by(User.created_at.desc(), User.email)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return PaginatedResponse(
        data=[UserSchema.model_validate(u) for u in users],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


@router.patch("/{user_id}/promote", response_model=UserSchema)
def promote_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Grant the admin role. Promoting an admin is a no-op."""
    user = _get_user_or_404(db, user_id)
    if user.role != "admin":
        user.role = "admin"
        db.commit()
        db.refresh(user)
        logger.info("User %s promoted to admin by %s", user.email, current_user.email)
    return user


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    coordinator: ReservationCoordinator = Depends(get_coordinator),
    current_user: User = Depends(get_current_admin_user),
):
    """Delete a user; their reservations are cancelled and the seats released."""
    user = _get_user_or_404(db, user_id)
    coordinator.cancel_all_for_user(user.id)
    email, actor = user.email, current_user.email
    db.delete(user)
    db.commit()
    logger.info("Account %s deleted by %s", email, actor)
    return MessageResponse(message="User deleted successfully")
