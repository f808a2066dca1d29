"""Error taxonomy of the reservation core.

Every error carries the HTTP status the API layer answers with, but the core
itself never builds responses; `movieseat.api.exception_handlers` does.
"""

from typing import Iterable, List


class ReservationError(Exception):
    kind = "reservation_error"
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(ReservationError):
    """Referenced movie, showtime or reservation does not exist."""

    kind = "not_found"
    status_code = 404


class SeatUnavailableError(ReservationError):
    """Requested seats are not free (reserve) or not held (release)."""

    kind = "seats_unavailable"
    status_code = 409

    def __init__(self, message: str, unavailable_seats: Iterable[str] = ()):
        super().__init__(message)
        self.unavailable_seats: List[str] = list(unavailable_seats)


class ForbiddenError(ReservationError):
    kind = "forbidden"
    status_code = 403


class InconsistentStateError(ReservationError):
    """A post-condition did not hold after a partial operation. Needs an operator."""

    kind = "inconsistent"
    status_code = 500


class ReservationTimeoutError(ReservationError):
    """The store gave up on the operation; the caller must re-query seat availability."""

    kind = "timeout"
    status_code = 504
