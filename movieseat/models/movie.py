import uuid
from sqlalchemy import Column, String, DateTime, func, Text, Integer, JSON, Uuid
from sqlalchemy.orm import relationship
from movieseat.db.session import Base

class Movie(Base):
    __tablename__ = "movies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    director = Column(String(255), nullable=False)
    duration = Column(Integer, nullable=False) # minutes
    poster = Column(Text, nullable=False)
    genre = Column(JSON, nullable=False, default=list) # ["Action", "Drama", ...]
    rate = Column(Integer, nullable=False, default=0) # 0-10
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # A movie owns its showtimes; they never outlive it
    functions = relationship(
        "Showtime",
        back_populates="movie",
        cascade="all, delete-orphan",
        order_by="Showtime.starts_at",
    )
