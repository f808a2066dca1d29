import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from movieseat.db.session import Base

class Showtime(Base):
    __tablename__ = "showtimes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    movie_id = Column(Uuid(as_uuid=True), ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    starts_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    movie = relationship("Movie", back_populates="functions")
    seats = relationship(
        "ShowtimeSeat",
        back_populates="showtime",
        cascade="all, delete-orphan",
        order_by="ShowtimeSeat.position",
    )
    reservations = relationship("Reservation", back_populates="showtime", cascade="all, delete-orphan")

class ShowtimeSeat(Base):
    __tablename__ = "showtime_seats"
    __table_args__ = (
        UniqueConstraint("showtime_id", "seat_number", name="uq_showtime_seat_number"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    showtime_id = Column(Uuid(as_uuid=True), ForeignKey("showtimes.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_number = Column(String(5), nullable=False)
    position = Column(Integer, nullable=False) # layout order, A1 first
    is_available = Column(Boolean, nullable=False, default=True, index=True)
    # Reservation currently holding the seat; NULL while available
    reservation_id = Column(Uuid(as_uuid=True), nullable=True, index=True)

    showtime = relationship("Showtime", back_populates="seats")
