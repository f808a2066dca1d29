"""Seat availability for a single showtime.

The seat rows in the database are the only authority on availability. Every
mutation here is a single conditional bulk UPDATE whose WHERE clause carries
the precondition, and whose rowcount tells whether the precondition held for
every named seat. Nothing is read into memory and checked in Python first.

`SeatMap` never commits. When `set_availability` raises, the statement may
have touched some rows and the caller must roll the transaction back; the
coordinator does so before any error leaves it.
"""

import uuid
from typing import List, Sequence

from sqlalchemy.orm import Session

from movieseat.core.exceptions import SeatUnavailableError
from movieseat.models.showtime import ShowtimeSeat

ROW_LABELS = "ABCDEF"
SEATS_PER_ROW = 24


def generate_seat_numbers() -> List[str]:
    """Fixed theater layout: rows A-F, 24 seats each, A1 first."""
    return [f"{row}{number}" for row in ROW_LABELS for number in range(1, SEATS_PER_ROW + 1)]


class SeatMap:
    def __init__(self, db: Session, showtime_id: uuid.UUID):
        self.db = db
        self.showtime_id = showtime_id

    @staticmethod
    def generate() -> List[ShowtimeSeat]:
        """Fresh, unattached seats for a new showtime, all available."""
        return [
            ShowtimeSeat(seat_number=seat_number, position=position, is_available=True)
            for position, seat_number in enumerate(generate_seat_numbers())
        ]

    def _seats(self):
        return self.db.query(ShowtimeSeat).filter(ShowtimeSeat.showtime_id == self.showtime_id)

    def list_seats(self) -> List[ShowtimeSeat]:
        return self._seats().order_by(ShowtimeSeat.position).all()

    def list_available(self) -> List[ShowtimeSeat]:
        return (
            self._seats()
            .filter(ShowtimeSeat.is_available == True)  # noqa: E712
            .order_by(ShowtimeSeat.position)
            .all()
        )

    def set_availability(
        self,
        seat_numbers: Sequence[str],
        value: bool,
        holder: uuid.UUID,
    ) -> int:
        """
        Flip every named seat to `value`, or fail with SeatUnavailableError.

        Reserving (value=False) requires each seat to exist and be available and
        records `holder` on it. Releasing (value=True) requires each seat to be
        unavailable *and held by* `holder`, so a late release can never free a
        seat someone else has reserved since.
        """
        requested = list(dict.fromkeys(seat_numbers))
        if not requested:
            return 0

        query = self._seats().filter(ShowtimeSeat.seat_number.in_(requested))
        if value:
            query = query.filter(
                ShowtimeSeat.is_available == False,  # noqa: E712
                ShowtimeSeat.reservation_id == holder,
            )
            changes = {"is_available": True, "reservation_id": None}
        else:
            query = query.filter(ShowtimeSeat.is_available == True)  # noqa: E712
            changes = {"is_available": False, "reservation_id": holder}

        updated = query.update(changes, synchronize_session=False)
        if updated != len(requested):
            action = "released" if value else "reserved"
            raise SeatUnavailableError(
                f"{len(requested) - updated} of {len(requested)} seat(s) could not be {action}"
            )
        return updated

    def blocking_seats(self, seat_numbers: Sequence[str], value: bool) -> List[str]:
        """
        Seats among `seat_numbers` that would stop a flip to `value`.

        Read-only and informational: used to build error messages once the
        failed transaction has been rolled back, never to decide anything.
        """
        rows = {
            seat.seat_number: seat
            for seat in self._seats().filter(ShowtimeSeat.seat_number.in_(list(seat_numbers))).all()
        }
        blocking = []
        for seat_number in dict.fromkeys(seat_numbers):
            seat = rows.get(seat_number)
            if seat is None:
                blocking.append(seat_number)
            elif value and seat.is_available:
                blocking.append(seat_number)
            elif not value and not seat.is_available:
                blocking.append(seat_number)
        return blocking
