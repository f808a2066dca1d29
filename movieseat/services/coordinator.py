"""
The reservation coordinator: the only code that changes seat availability.

Each operation is one database transaction on the session it was given.
Reserve flips the seats with a conditional UPDATE, then writes the ledger
record; cancel deletes the record, then releases the seats held by it.
Any failure rolls the whole transaction back, which is the compensating
action for whatever part already ran. A rollback that itself fails is
reported as InconsistentStateError.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional, Sequence, Union

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from movieseat.core.exceptions import (
    ForbiddenError,
    InconsistentStateError,
    NotFoundError,
    ReservationTimeoutError,
    SeatUnavailableError,
)
from movieseat.models.reservation import Reservation, ReservationSeat
from movieseat.models.showtime import Showtime, ShowtimeSeat
from movieseat.services.ledger import ReservationLedger
from movieseat.services.seat_map import SeatMap
from movieseat.services.showtimes import ShowtimeRegistry

logger = logging.getLogger(__name__)


def _is_reserved_seat_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return "uq_reserved_seat" in message or "reservation_seats.showtime_id" in message


class ReservationCoordinator:
    def __init__(self, db: Session, timeout_ms: int = 0):
        self.db = db
        self.timeout_ms = timeout_ms
        self.registry = ShowtimeRegistry(db)
        self.ledger = ReservationLedger(db)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _apply_timeout(self):
        """Bound the current transaction on PostgreSQL; other backends rely on their busy timeout."""
        if not self.timeout_ms or self.db.get_bind().dialect.name != "postgresql":
            return
        value = f"{int(self.timeout_ms)}ms"
        self.db.execute(
            text("SELECT set_config('statement_timeout', :value, true), set_config('lock_timeout', :value, true)"),
            {"value": value},
        )

    def _rollback(self, reason: str):
        try:
            self.db.rollback()
        except SQLAlchemyError as exc:
            logger.error("Rollback failed after %s: %s", reason, exc)
            raise InconsistentStateError(
                f"Rollback failed after {reason}; seat state needs operator attention"
            ) from exc
        logger.info("Transaction rolled back after %s", reason)

    def _timed_out(self, exc: OperationalError, operation: str) -> ReservationTimeoutError:
        self._rollback(f"{operation} timeout")
        logger.warning("%s aborted by the database: %s", operation, exc.orig)
        return ReservationTimeoutError(
            f"{operation} did not complete in time; re-check seat availability before retrying"
        )

    # ------------------------------------------------------------------
    # Reserve
    # ------------------------------------------------------------------

    def reserve(
        self,
        movie_id: uuid.UUID,
        showtime_id: uuid.UUID,
        user_id: uuid.UUID,
        seat_numbers: Sequence[str],
    ) -> Reservation:
        seat_numbers = list(dict.fromkeys(seat_numbers))
        if not seat_numbers:
            raise ValueError("At least one seat is required")

        try:
            self._apply_timeout()
            self.registry.get(movie_id, showtime_id)
        except NotFoundError:
            self._rollback("lookup miss")
            raise
        except OperationalError as exc:
            raise self._timed_out(exc, "Reservation") from exc

        seat_map = SeatMap(self.db, showtime_id)
        reservation_id = self.ledger.next_id()

        # One conditional write: all seats or none
        try:
            seat_map.set_availability(seat_numbers, False, holder=reservation_id)
        except SeatUnavailableError as exc:
            self._rollback("seat conflict")
            exc.unavailable_seats = seat_map.blocking_seats(seat_numbers, False)
            logger.info(
                "Reservation on function %s rejected, unavailable: %s",
                showtime_id, ", ".join(exc.unavailable_seats),
            )
            raise
        except OperationalError as exc:
            raise self._timed_out(exc, "Reservation") from exc

        # Ledger record; any failure undoes the flip above
        try:
            reservation = self.ledger.create(
                user_id=user_id,
                movie_id=movie_id,
                showtime_id=showtime_id,
                seat_numbers=seat_numbers,
                reservation_id=reservation_id,
            )
            self.db.commit()
        except IntegrityError as exc:
            self._rollback("ledger conflict")
            if not _is_reserved_seat_conflict(exc):
                raise
            raise SeatUnavailableError(
                "Seats are already part of another reservation",
                unavailable_seats=seat_map.blocking_seats(seat_numbers, False),
            ) from exc
        except OperationalError as exc:
            raise self._timed_out(exc, "Reservation") from exc
        except SQLAlchemyError:
            self._rollback("ledger failure")
            raise

        logger.info(
            "Reservation %s committed: function %s, %d seat(s)",
            reservation.id, showtime_id, len(seat_numbers),
        )
        self.db.refresh(reservation)
        return reservation

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel(
        self,
        reservation_id: uuid.UUID,
        showtime_id: uuid.UUID,
        requesting_user_id: Optional[uuid.UUID] = None,
    ) -> Reservation:
        """
        Delete a reservation and make its seats available again.
        Returns the removed record, detached from the session.
        """
        try:
            self._apply_timeout()
            reservation = self.ledger.find_by_id(reservation_id)
            if reservation is None or reservation.showtime_id != showtime_id:
                raise NotFoundError("Reservation not found")
            if requesting_user_id is not None and reservation.user_id != requesting_user_id:
                raise ForbiddenError("Reservation belongs to another user")

            removed = self.ledger.delete_by_id(reservation_id)
        except (NotFoundError, ForbiddenError):
            self._rollback("cancel rejected")
            raise
        except OperationalError as exc:
            raise self._timed_out(exc, "Cancellation") from exc

        seat_numbers = removed.seat_numbers
        try:
            SeatMap(self.db, showtime_id).set_availability(seat_numbers, True, holder=reservation_id)
            self.db.commit()
        except SeatUnavailableError as exc:
            self._rollback("release mismatch")
            logger.error(
                "Reservation %s could not release its seats on function %s: %s",
                reservation_id, showtime_id, exc.message,
            )
            raise InconsistentStateError(
                f"Seats of reservation {reservation_id} are not held by it; reservation kept"
            ) from exc
        except OperationalError as exc:
            raise self._timed_out(exc, "Cancellation") from exc

        logger.info(
            "Reservation %s cancelled: %d seat(s) released on function %s",
            reservation_id, len(seat_numbers), showtime_id,
        )
        return removed

    def cancel_all_for_user(self, user_id: uuid.UUID) -> List[Reservation]:
        """
        Cancel every reservation of `user_id`, newest first, releasing the seats.

        Each cancellation is its own transaction. If one fails, the ones
        before it stay cancelled and the error propagates; calling again
        resumes with the reservations that are left.
        """
        removed = []
        for reservation_id, showtime_id in [
            (r.id, r.showtime_id) for r in self.list_reservations(user_id=user_id)
        ]:
            removed.append(self.cancel(reservation_id, showtime_id))
        logger.info("Cancelled %d reservation(s) of user %s", len(removed), user_id)
        return removed

    # ------------------------------------------------------------------
    # Read-only passthroughs
    # ------------------------------------------------------------------

    def available_seats(self, movie_id: uuid.UUID, showtime_id: uuid.UUID) -> List[ShowtimeSeat]:
        return self.registry.available_seats(movie_id, showtime_id)

    def list_reservations(
        self,
        user_id: Optional[uuid.UUID] = None,
        created_at: Optional[Union[date, datetime]] = None,
    ) -> List[Reservation]:
        return self.ledger.find(user_id=user_id, created_at=created_at, multiple=True)

    def get_reservation(self, reservation_id: uuid.UUID) -> Reservation:
        reservation = self.ledger.find_by_id(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation not found")
        return reservation

    # ------------------------------------------------------------------
    # Consistency audit
    # ------------------------------------------------------------------

    def audit(self, showtime_id: uuid.UUID) -> Dict[str, List[str]]:
        """
        Compare a showtime's seat map with the ledger.

        `orphaned`: unavailable seats whose holder has no reservation naming them.
        `unheld`: reserved seats that the seat map shows as available.
        """
        held = {
            (row.seat_number, row.reservation_id)
            for row in self.db.query(ReservationSeat.seat_number, ReservationSeat.reservation_id)
            .filter(ReservationSeat.showtime_id == showtime_id)
            .all()
        }
        seats = SeatMap(self.db, showtime_id).list_seats()

        orphaned = [
            s.seat_number for s in seats
            if not s.is_available and (s.seat_number, s.reservation_id) not in held
        ]
        unheld_numbers = {number for number, _ in held}
        unheld = [s.seat_number for s in seats if s.is_available and s.seat_number in unheld_numbers]
        return {"orphaned": orphaned, "unheld": unheld}

    def audit_all(self) -> Dict[uuid.UUID, Dict[str, List[str]]]:
        """Audit every showtime; only showtimes with findings are returned."""
        findings = {}
        for (showtime_id,) in self.db.query(Showtime.id).all():
            result = self.audit(showtime_id)
            if result["orphaned"] or result["unheld"]:
                findings[showtime_id] = result
        return findings
