from movieseat.db.session import Base
from movieseat.models.user import User
from movieseat.models.movie import Movie
from movieseat.models.showtime import Showtime, ShowtimeSeat
from movieseat.models.reservation import Reservation, ReservationSeat
