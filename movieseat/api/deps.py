from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from movieseat.core.config import Settings
from movieseat.core.security import decode_token
from movieseat.db.session import get_db
from movieseat.models.user import User
from movieseat.services.coordinator import ReservationCoordinator
from movieseat.services.showtimes import ShowtimeRegistry

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    subject = decode_token(token, settings.SECRET_KEY)
    if not subject:
        raise credentials_exception
    try:
        user_id = UUID(subject)
    except ValueError:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")
    return user


def get_current_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


def get_registry(db: Session = Depends(get_db)) -> ShowtimeRegistry:
    return ShowtimeRegistry(db)


def get_coordinator(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ReservationCoordinator:
    return ReservationCoordinator(db, timeout_ms=settings.RESERVATION_TIMEOUT_MS)
