from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from fastapi.testclient import TestClient

from movieseat.core.config import Settings
from movieseat.db.init_db import create_tables
from movieseat.db.session import build_engine, build_session_factory
from movieseat.main import create_app
from movieseat.models.movie import Movie
from movieseat.models.user import User
from movieseat.services.showtimes import ShowtimeRegistry

ADMIN_SECRET = "test-admin-secret"
SHOWTIME = datetime(2030, 5, 1, 20, 0, tzinfo=timezone.utc)

_sequence = count(1)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'movieseat.db'}",
        SECRET_KEY="test-secret",
        ADMIN_SECRET_KEY=ADMIN_SECRET,
        RESERVATION_TIMEOUT_MS=0,
        CONSISTENCY_AUDIT_INTERVAL_SECONDS=0,
        LOG_LEVEL="DEBUG",
    )


# ============================================================================
# Persistence
# ============================================================================


@pytest.fixture
def engine(settings):
    engine = build_engine(settings.DATABASE_URL, timeout_ms=settings.RESERVATION_TIMEOUT_MS)
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make_user(role="user"):
        n = next(_sequence)
        user = User(
            email=f"user{n}@example.com",
            full_name=f"Test User {n}",
            password_hash="not-a-real-hash",
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_movie(db):
    def _make_movie(functions=1, title="Arrival"):
        movie = Movie(
            title=title,
            year=2016,
            director="Denis Villeneuve",
            duration=116,
            poster="https://example.com/arrival.jpg",
            genre=["Drama", "Sci-Fi"],
            rate=8,
        )
        db.add(movie)
        db.commit()
        starts = [SHOWTIME + timedelta(hours=3 * i) for i in range(functions)]
        return ShowtimeRegistry(db).add(movie.id, starts)

    return _make_movie


# ============================================================================
# HTTP
# ============================================================================


@pytest.fixture
def client(settings):
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client


def register(client, email, role="user", password="password123", full_name="Test User"):
    """Register through the API and return (user json, auth headers)."""
    body = {"email": email, "password": password, "full_name": full_name}
    path = "/api/v1/auth/register"
    if role == "admin":
        body["admin_secret"] = ADMIN_SECRET
        path = "/api/v1/auth/admin/register"
    response = client.post(path, json=body)
    assert response.status_code == 201, response.text
    data = response.json()
    return data["user"], {"Authorization": f"Bearer {data['access_token']}"}


@pytest.fixture
def user_auth(client):
    return register(client, "viewer@example.com")


@pytest.fixture
def admin_auth(client):
    return register(client, "admin@example.com", role="admin")


@pytest.fixture
def movie_json(client, admin_auth):
    _, headers = admin_auth
    response = client.post(
        "/api/v1/admin/movies/",
        json={
            "title": "Arrival",
            "year": 2016,
            "director": "Denis Villeneuve",
            "duration": 116,
            "poster": "https://example.com/arrival.jpg",
            "genre": ["Drama", "Sci-Fi"],
            "rate": 8,
            "functions": [{"datetime": SHOWTIME.isoformat()}],
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.fixture
def register_user(client):
    def _register(email, role="user"):
        return register(client, email, role=role)

    return _register
