from movieseat.schemas.common import PaginatedResponse, ErrorResponse, SeatsUnavailableError, MessageResponse, HealthResponse
from movieseat.schemas.user import User, UserCreate, AdminCreate, UserUpdate, UserSummary, Token
from movieseat.schemas.showtime import (
    Showtime, ShowtimeCreate, ShowtimeReschedule, ShowtimeSummary, Seat,
)
from movieseat.schemas.movie import Movie, MovieCreate, MovieUpdate, FunctionsAdd
from movieseat.schemas.reservation import (
    Reservation, ReservationCreate, AdminReservation, ReservationCancelResponse,
)
