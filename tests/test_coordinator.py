import uuid

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from movieseat.core.exceptions import (
    ForbiddenError,
    InconsistentStateError,
    NotFoundError,
    ReservationTimeoutError,
    SeatUnavailableError,
)
from movieseat.models.reservation import Reservation
from movieseat.models.showtime import ShowtimeSeat
from movieseat.services.coordinator import ReservationCoordinator
from movieseat.services.seat_map import SeatMap


@pytest.fixture
def coordinator(db):
    return ReservationCoordinator(db)


@pytest.fixture
def function(make_movie):
    return make_movie().functions[0]


def available(coordinator, function):
    return [s.seat_number for s in coordinator.available_seats(function.movie_id, function.id)]


def assert_consistent(db, coordinator, function):
    """Unavailable seats are exactly the seats named by live reservations."""
    taken = {
        s.seat_number
        for s in db.query(ShowtimeSeat).filter(
            ShowtimeSeat.showtime_id == function.id,
            ShowtimeSeat.is_available == False,  # noqa: E712
        )
    }
    reserved = [
        seat
        for r in db.query(Reservation).filter(Reservation.showtime_id == function.id)
        for seat in r.seat_numbers
    ]
    assert len(reserved) == len(set(reserved))
    assert taken == set(reserved)
    assert coordinator.audit(function.id) == {"orphaned": [], "unheld": []}


# ============================================================================
# Reserve
# ============================================================================


class TestReserve:
    def test_reserve_flips_seats_and_records_reservation(self, db, coordinator, make_user, function):
        user = make_user()

        reservation = coordinator.reserve(function.movie_id, function.id, user.id, ["A1", "A2"])

        assert reservation.user_id == user.id
        assert reservation.showtime_id == function.id
        assert reservation.seat_numbers == ["A1", "A2"]
        seats = available(coordinator, function)
        assert len(seats) == 142
        assert "A1" not in seats and "A2" not in seats
        assert_consistent(db, coordinator, function)

    def test_all_or_nothing(self, db, coordinator, make_user, function):
        coordinator.reserve(function.movie_id, function.id, make_user().id, ["A2"])

        with pytest.raises(SeatUnavailableError) as exc_info:
            coordinator.reserve(function.movie_id, function.id, make_user().id, ["A1", "A2"])

        assert exc_info.value.unavailable_seats == ["A2"]
        assert "A1" in available(coordinator, function)
        assert_consistent(db, coordinator, function)

    def test_unknown_seat_is_unavailable(self, db, coordinator, make_user, function):
        with pytest.raises(SeatUnavailableError) as exc_info:
            coordinator.reserve(function.movie_id, function.id, make_user().id, ["A1", "G1"])

        assert exc_info.value.unavailable_seats == ["G1"]
        assert len(available(coordinator, function)) == 144

    def test_missing_movie_or_function(self, coordinator, make_user, function):
        user = make_user()
        with pytest.raises(NotFoundError):
            coordinator.reserve(uuid.uuid4(), function.id, user.id, ["A1"])
        with pytest.raises(NotFoundError):
            coordinator.reserve(function.movie_id, uuid.uuid4(), user.id, ["A1"])

    def test_duplicate_seats_are_collapsed(self, coordinator, make_user, function):
        reservation = coordinator.reserve(function.movie_id, function.id, make_user().id, ["B1", "B1", "B2"])

        assert reservation.seat_numbers == ["B1", "B2"]

    def test_empty_seat_list(self, coordinator, make_user, function):
        with pytest.raises(ValueError):
            coordinator.reserve(function.movie_id, function.id, make_user().id, [])

    def test_ledger_failure_rolls_seats_back(self, db, coordinator, make_user, function, monkeypatch):
        def broken_create(**kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(coordinator.ledger, "create", broken_create)

        with pytest.raises(SQLAlchemyError):
            coordinator.reserve(function.movie_id, function.id, make_user().id, ["A1", "A2"])

        assert len(available(coordinator, function)) == 144
        assert db.query(Reservation).count() == 0

    def test_ledger_seat_conflict_is_seat_unavailable(self, db, coordinator, make_user, function, monkeypatch):
        def conflicting_create(**kwargs):
            raise IntegrityError(
                "INSERT INTO reservation_seats ...",
                {},
                Exception("UNIQUE constraint failed: reservation_seats.showtime_id, reservation_seats.seat_number"),
            )

        showtime_id = function.id
        real_rollback = db.rollback

        def rollback_while_rival_takes_a1():
            real_rollback()
            # The reservation that won the race owns A1 once ours is undone
            db.query(ShowtimeSeat).filter(
                ShowtimeSeat.showtime_id == showtime_id,
                ShowtimeSeat.seat_number == "A1",
            ).update({"is_available": False, "reservation_id": uuid.uuid4()}, synchronize_session=False)
            db.commit()

        user_id = make_user().id
        monkeypatch.setattr(coordinator.ledger, "create", conflicting_create)
        monkeypatch.setattr(db, "rollback", rollback_while_rival_takes_a1)

        with pytest.raises(SeatUnavailableError) as exc_info:
            coordinator.reserve(function.movie_id, function.id, user_id, ["A1", "A3"])

        assert exc_info.value.unavailable_seats == ["A1"]
        assert "A3" in available(coordinator, function)

    def test_failed_rollback_is_inconsistent(self, db, coordinator, make_user, function, monkeypatch):
        user_id = make_user().id

        def broken_create(**kwargs):
            raise SQLAlchemyError("disk full")

        def broken_rollback():
            raise SQLAlchemyError("connection lost")

        monkeypatch.setattr(coordinator.ledger, "create", broken_create)
        monkeypatch.setattr(db, "rollback", broken_rollback)

        with pytest.raises(InconsistentStateError):
            coordinator.reserve(function.movie_id, function.id, user_id, ["A1"])

    def test_database_timeout(self, coordinator, make_user, function, monkeypatch):
        user_id = make_user().id

        def locked(self, seat_numbers, value, holder):
            raise OperationalError("UPDATE showtime_seats ...", {}, Exception("database is locked"))

        monkeypatch.setattr(SeatMap, "set_availability", locked)

        with pytest.raises(ReservationTimeoutError):
            coordinator.reserve(function.movie_id, function.id, user_id, ["A1"])


# ============================================================================
# Cancel
# ============================================================================


class TestCancel:
    def test_cancel_is_inverse_of_reserve(self, db, coordinator, make_user, function):
        reservation = coordinator.reserve(function.movie_id, function.id, make_user().id, ["A1", "A2"])
        reservation_id = reservation.id

        removed = coordinator.cancel(reservation_id, function.id)

        assert removed.id == reservation_id
        assert removed.seat_numbers == ["A1", "A2"]
        assert len(available(coordinator, function)) == 144
        with pytest.raises(NotFoundError):
            coordinator.get_reservation(reservation_id)
        assert_consistent(db, coordinator, function)

    def test_cancel_missing_reservation(self, coordinator, function):
        with pytest.raises(NotFoundError):
            coordinator.cancel(uuid.uuid4(), function.id)

    def test_cancel_with_wrong_function(self, db, coordinator, make_user, make_movie, function):
        reservation = coordinator.reserve(function.movie_id, function.id, make_user().id, ["A1"])
        other = make_movie(title="Dune").functions[0]

        with pytest.raises(NotFoundError):
            coordinator.cancel(reservation.id, other.id)

        assert coordinator.get_reservation(reservation.id).id == reservation.id

    def test_ownership_is_enforced(self, db, coordinator, make_user, function):
        owner, stranger = make_user(), make_user()
        reservation = coordinator.reserve(function.movie_id, function.id, owner.id, ["A1"])

        with pytest.raises(ForbiddenError):
            coordinator.cancel(reservation.id, function.id, requesting_user_id=stranger.id)

        assert "A1" not in available(coordinator, function)
        coordinator.cancel(reservation.id, function.id, requesting_user_id=owner.id)
        assert "A1" in available(coordinator, function)

    def test_cancel_twice(self, coordinator, make_user, function):
        reservation = coordinator.reserve(function.movie_id, function.id, make_user().id, ["A1"])
        coordinator.cancel(reservation.id, function.id)

        with pytest.raises(NotFoundError):
            coordinator.cancel(reservation.id, function.id)

    def test_release_mismatch_keeps_reservation(self, db, coordinator, make_user, function):
        reservation = coordinator.reserve(function.movie_id, function.id, make_user().id, ["A1", "A2"])
        reservation_id = reservation.id
        # Someone tampered with the seat map behind the coordinator's back
        db.query(ShowtimeSeat).filter(
            ShowtimeSeat.showtime_id == function.id,
            ShowtimeSeat.seat_number == "A2",
        ).update({"reservation_id": uuid.uuid4()}, synchronize_session=False)
        db.commit()

        with pytest.raises(InconsistentStateError):
            coordinator.cancel(reservation_id, function.id)

        assert coordinator.get_reservation(reservation_id).seat_numbers == ["A1", "A2"]
        assert "A1" not in available(coordinator, function)


    def test_cancel_all_for_user_releases_every_seat(self, db, coordinator, make_user, function):
        owner, other = make_user(), make_user()
        coordinator.reserve(function.movie_id, function.id, owner.id, ["A1"])
        coordinator.reserve(function.movie_id, function.id, owner.id, ["A2", "A3"])
        coordinator.reserve(function.movie_id, function.id, other.id, ["A4"])

        removed = coordinator.cancel_all_for_user(owner.id)

        assert sorted(seat for r in removed for seat in r.seat_numbers) == ["A1", "A2", "A3"]
        assert coordinator.list_reservations(user_id=owner.id) == []
        assert "A4" not in available(coordinator, function)
        assert len(available(coordinator, function)) == 143
        assert_consistent(db, coordinator, function)

    def test_cancel_all_for_user_keeps_progress_on_failure(self, db, coordinator, make_user, function):
        owner = make_user()
        older = coordinator.reserve(function.movie_id, function.id, owner.id, ["B1"])
        older_id = older.id
        newer = coordinator.reserve(function.movie_id, function.id, owner.id, ["B2"])
        newer_id = newer.id
        # Break the older reservation's hold so its release cannot match
        db.query(ShowtimeSeat).filter(
            ShowtimeSeat.showtime_id == function.id,
            ShowtimeSeat.seat_number == "B1",
        ).update({"reservation_id": uuid.uuid4()}, synchronize_session=False)
        db.commit()

        with pytest.raises(InconsistentStateError):
            coordinator.cancel_all_for_user(owner.id)

        # Newest first: B2 was already cancelled and stays cancelled
        with pytest.raises(NotFoundError):
            coordinator.get_reservation(newer_id)
        assert "B2" in available(coordinator, function)
        assert coordinator.get_reservation(older_id).seat_numbers == ["B1"]

# ============================================================================
# Scenario, listing and audit
# ============================================================================


def test_reserve_conflict_cancel_scenario(db, coordinator, make_user, function):
    user1, user2 = make_user(), make_user()
    assert len(available(coordinator, function)) == 144

    reservation = coordinator.reserve(function.movie_id, function.id, user1.id, ["A1", "A2"])
    assert reservation.seat_numbers == ["A1", "A2"]

    seats = available(coordinator, function)
    assert len(seats) == 142
    assert "A1" not in seats and "A2" not in seats

    with pytest.raises(SeatUnavailableError):
        coordinator.reserve(function.movie_id, function.id, user2.id, ["A1"])

    coordinator.cancel(reservation.id, function.id)
    assert len(available(coordinator, function)) == 144
    assert_consistent(db, coordinator, function)


def test_list_reservations_by_user(coordinator, make_user, function):
    alice, bob = make_user(), make_user()
    coordinator.reserve(function.movie_id, function.id, alice.id, ["A1"])
    coordinator.reserve(function.movie_id, function.id, bob.id, ["A2"])

    mine = coordinator.list_reservations(user_id=alice.id)

    assert [r.seat_numbers for r in mine] == [["A1"]]
    assert len(coordinator.list_reservations()) == 2


def test_removing_function_removes_its_reservations(db, coordinator, make_user, function):
    reservation = coordinator.reserve(function.movie_id, function.id, make_user().id, ["A1"])
    reservation_id = reservation.id

    coordinator.registry.remove(function.movie_id, function.id)

    assert db.query(Reservation).filter(Reservation.id == reservation_id).count() == 0


def test_audit_reports_orphaned_and_unheld_seats(db, coordinator, make_user, function):
    coordinator.reserve(function.movie_id, function.id, make_user().id, ["A1"])
    seats = db.query(ShowtimeSeat).filter(ShowtimeSeat.showtime_id == function.id)
    seats.filter(ShowtimeSeat.seat_number == "B1").update(
        {"is_available": False, "reservation_id": uuid.uuid4()}, synchronize_session=False
    )
    seats.filter(ShowtimeSeat.seat_number == "A1").update(
        {"is_available": True, "reservation_id": None}, synchronize_session=False
    )
    db.commit()

    assert coordinator.audit(function.id) == {"orphaned": ["B1"], "unheld": ["A1"]}
    assert coordinator.audit_all() == {function.id: {"orphaned": ["B1"], "unheld": ["A1"]}}
