import uuid
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session, selectinload

from movieseat.core.exceptions import NotFoundError
from movieseat.models.reservation import Reservation, ReservationSeat


class ReservationLedger:
    """
    Durable record of committed reservations. Knows nothing about seat
    availability; keeping the two in step is the coordinator's job.
    Flushes but never commits.
    """

    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def next_id() -> uuid.UUID:
        return uuid.uuid4()

    def create(
        self,
        user_id: uuid.UUID,
        movie_id: uuid.UUID,
        showtime_id: uuid.UUID,
        seat_numbers: Sequence[str],
        reservation_id: Optional[uuid.UUID] = None,
    ) -> Reservation:
        reservation = Reservation(
            id=reservation_id or self.next_id(),
            user_id=user_id,
            movie_id=movie_id,
            showtime_id=showtime_id,
            created_at=datetime.now(timezone.utc),
            seats=[
                ReservationSeat(showtime_id=showtime_id, seat_number=seat_number, position=position)
                for position, seat_number in enumerate(seat_numbers)
            ],
        )
        self.db.add(reservation)
        self.db.flush()
        return reservation

    def _filtered(
        self,
        user_id: Optional[uuid.UUID] = None,
        created_at: Optional[Union[date, datetime]] = None,
    ):
        query = self.db.query(Reservation).options(selectinload(Reservation.seats))
        if user_id is not None:
            query = query.filter(Reservation.user_id == user_id)
        if created_at is not None:
            if isinstance(created_at, datetime):
                query = query.filter(Reservation.created_at == created_at)
            else:
                start = datetime.combine(created_at, time.min, tzinfo=timezone.utc)
                query = query.filter(
                    Reservation.created_at >= start,
                    Reservation.created_at < start + timedelta(days=1),
                )
        return query.order_by(Reservation.created_at.desc())

    def find(
        self,
        user_id: Optional[uuid.UUID] = None,
        created_at: Optional[Union[date, datetime]] = None,
        multiple: bool = False,
    ) -> Union[List[Reservation], Optional[Reservation]]:
        """
        Look reservations up by user and/or creation time, newest first.
        A plain `date` matches the whole (UTC) day, a `datetime` matches exactly.
        """
        query = self._filtered(user_id, created_at)
        return query.all() if multiple else query.first()

    def find_page(
        self,
        offset: int,
        limit: int,
        user_id: Optional[uuid.UUID] = None,
        created_at: Optional[Union[date, datetime]] = None,
    ) -> Tuple[int, List[Reservation]]:
        """Same filters as `find`, returning (total, one page of rows)."""
        query = self._filtered(user_id, created_at)
        total = query.order_by(None).count()
        return total, query.offset(offset).limit(limit).all()

    def find_by_id(self, reservation_id: uuid.UUID) -> Optional[Reservation]:
        return (
            self.db.query(Reservation)
            .options(selectinload(Reservation.seats))
            .filter(Reservation.id == reservation_id)
            .first()
        )

    def delete_by_id(self, reservation_id: uuid.UUID) -> Reservation:
        """
        Remove a reservation and return the removed record, detached from the
        session with its seats loaded. The DELETE is conditional on the row
        still existing, so of two concurrent deletes only one succeeds.
        """
        reservation = self.find_by_id(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation not found")

        self.db.expunge(reservation)
        self.db.query(ReservationSeat).filter(
            ReservationSeat.reservation_id == reservation_id
        ).delete(synchronize_session=False)
        deleted = self.db.query(Reservation).filter(
            Reservation.id == reservation_id
        ).delete(synchronize_session=False)
        if deleted != 1:
            raise NotFoundError("Reservation not found")
        return reservation
