import uuid
from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from movieseat.db.session import Base

class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    movie_id = Column(Uuid(as_uuid=True), ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    showtime_id = Column(Uuid(as_uuid=True), ForeignKey("showtimes.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # Relationships
    user = relationship("User")
    showtime = relationship("Showtime", back_populates="reservations")
    seats = relationship(
        "ReservationSeat",
        back_populates="reservation",
        cascade="all, delete-orphan",
        order_by="ReservationSeat.position",
    )

    @property
    def seat_numbers(self):
        return [rs.seat_number for rs in self.seats]

class ReservationSeat(Base):
    __tablename__ = "reservation_seats"
    __table_args__ = (
        # A seat belongs to at most one live reservation per showtime
        UniqueConstraint("showtime_id", "seat_number", name="uq_reserved_seat"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reservation_id = Column(Uuid(as_uuid=True), ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True)
    showtime_id = Column(Uuid(as_uuid=True), nullable=False)
    seat_number = Column(String(5), nullable=False)
    position = Column(Integer, nullable=False) # order within the request

    reservation = relationship("Reservation", back_populates="seats")
