import logging
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Tuple

from sqlalchemy.orm import Session

from movieseat.core.exceptions import NotFoundError
from movieseat.models.movie import Movie
from movieseat.models.showtime import Showtime, ShowtimeSeat
from movieseat.services.seat_map import SeatMap

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """Normalise to an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ShowtimeRegistry:
    """The showtimes ("functions") of a movie and their seat maps."""

    def __init__(self, db: Session):
        self.db = db

    def get_movie(self, movie_id: uuid.UUID) -> Movie:
        movie = self.db.query(Movie).filter(Movie.id == movie_id).first()
        if not movie:
            raise NotFoundError("Movie not found")
        return movie

    def list_functions(self, movie_id: uuid.UUID) -> List[Showtime]:
        return list(self.get_movie(movie_id).functions)

    def get(self, movie_id: uuid.UUID, showtime_id: uuid.UUID) -> Showtime:
        showtime = (
            self.db.query(Showtime)
            .filter(Showtime.id == showtime_id, Showtime.movie_id == movie_id)
            .first()
        )
        if not showtime:
            # Tell the two cases apart for the caller
            self.get_movie(movie_id)
            raise NotFoundError("Function not found")
        return showtime

    def add(self, movie_id: uuid.UUID, datetimes: Iterable[datetime], commit: bool = True) -> Movie:
        """Append one showtime per datetime, each with a freshly generated seat map."""
        movie = self.get_movie(movie_id)
        for starts_at in datetimes:
            showtime = Showtime(starts_at=as_utc(starts_at), seats=SeatMap.generate())
            movie.functions.append(showtime)
            logger.info("Function scheduled for movie %s at %s", movie.id, showtime.starts_at.isoformat())
        if commit:
            self.db.commit()
            self.db.refresh(movie)
        return movie

    def update(
        self,
        movie_id: uuid.UUID,
        reschedules: Iterable[Tuple[datetime, datetime]],
        commit: bool = True,
    ) -> Movie:
        """
        Reschedule showtimes matched by their exact current datetime.
        Pairs whose match datetime fits no showtime are skipped.
        """
        movie = self.get_movie(movie_id)
        for match_datetime, new_datetime in reschedules:
            wanted = as_utc(match_datetime)
            target = next(
                (f for f in movie.functions if as_utc(f.starts_at) == wanted),
                None,
            )
            if target is None:
                logger.info("No function of movie %s at %s, reschedule skipped", movie.id, wanted.isoformat())
                continue
            target.starts_at = as_utc(new_datetime)
        if commit:
            self.db.commit()
            self.db.refresh(movie)
        return movie

    def remove(self, movie_id: uuid.UUID, showtime_id: uuid.UUID) -> Movie:
        """Delete a showtime (and its reservations). Unknown ids leave the movie unchanged."""
        movie = self.get_movie(movie_id)
        target = next((f for f in movie.functions if f.id == showtime_id), None)
        if target is None:
            return movie

        movie.functions.remove(target)
        self.db.commit()
        self.db.refresh(movie)
        logger.info("Function %s removed from movie %s", showtime_id, movie.id)
        return movie

    def available_seats(self, movie_id: uuid.UUID, showtime_id: uuid.UUID) -> List[ShowtimeSeat]:
        showtime = self.get(movie_id, showtime_id)
        return SeatMap(self.db, showtime.id).list_available()
