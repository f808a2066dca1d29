"""ORM -> schema conversion shared by the public and admin routers."""

from movieseat.models.movie import Movie
from movieseat.models.reservation import Reservation
from movieseat.models.showtime import Showtime
from movieseat.schemas.movie import Movie as MovieSchema
from movieseat.schemas.reservation import AdminReservation, Reservation as ReservationSchema
from movieseat.schemas.showtime import Seat, Showtime as ShowtimeSchema, ShowtimeSummary
from movieseat.schemas.user import UserSummary
from movieseat.services.showtimes import as_utc


def serialize_showtime_summary(showtime: Showtime) -> ShowtimeSummary:
    return ShowtimeSummary(
        id=showtime.id,
        datetime=as_utc(showtime.starts_at),
        available_seats=sum(1 for s in showtime.seats if s.is_available),
    )


def serialize_showtime(showtime: Showtime) -> ShowtimeSchema:
    seats = [Seat.model_validate(s) for s in showtime.seats]
    return ShowtimeSchema(
        id=showtime.id,
        datetime=as_utc(showtime.starts_at),
        available_seats=sum(1 for s in seats if s.is_available),
        seats=seats,
    )


def serialize_movie(movie: Movie) -> MovieSchema:
    return MovieSchema(
        id=movie.id,
        title=movie.title,
        year=movie.year,
        director=movie.director,
        duration=movie.duration,
        poster=movie.poster,
        genre=list(movie.genre or []),
        rate=movie.rate,
        created_at=movie.created_at,
        functions=[serialize_showtime_summary(f) for f in movie.functions],
    )


def serialize_reservation(reservation: Reservation) -> ReservationSchema:
    return ReservationSchema(
        id=reservation.id,
        user=reservation.user_id,
        movie=reservation.movie_id,
        function_id=reservation.showtime_id,
        seats=reservation.seat_numbers,
        created_at=as_utc(reservation.created_at),
    )


def serialize_admin_reservation(reservation: Reservation) -> AdminReservation:
    user_summary = None
    if reservation.user:
        user_summary = UserSummary.model_validate(reservation.user)
    return AdminReservation(
        **serialize_reservation(reservation).model_dump(),
        user_info=user_summary,
    )
