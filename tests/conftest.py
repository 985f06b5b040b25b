from datetime import date, datetime
from http.cookies import SimpleCookie

import pytest

from app import create_app
from config import TestConfig
from models import db
from security.csrf import CSRF_COOKIE, CSRF_HEADER
from services.changes import ChangeFeed
from services.identity import Player
from services.store import ReservationStore

# Monday 2 March 2026, 09:30 at the pitch
NOW = datetime(2026, 3, 2, 9, 30)
TODAY = NOW.date()
TOMORROW = date(2026, 3, 3)

# far enough ahead that the live clock never makes it "past"
FUTURE_DAY = "2099-06-01"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def feed():
    return ChangeFeed()


@pytest.fixture
def store(app, feed):
    return ReservationStore(feed=feed, now=lambda: NOW)


@pytest.fixture
def host():
    return Player("Ana", "300")


@pytest.fixture
def guest():
    return Player("Ben", "200")


def make_draft(creator, day=TOMORROW, start="10:00", duration=1, session_type="open", max_players=10):
    return {
        "created_by": creator,
        "date": day.isoformat() if isinstance(day, date) else day,
        "start_time": start,
        "duration": duration,
        "session_type": session_type,
        "max_players": max_players,
    }


def login(client, name="Ana", level="300"):
    """Log in through the API and return headers carrying the CSRF token."""
    resp = client.post("/auth/login", json={"name": name, "level": level})
    assert resp.status_code == 200, resp.get_json()

    jar = SimpleCookie()
    for header in resp.headers.getlist("Set-Cookie"):
        jar.load(header)
    return {CSRF_HEADER: jar[CSRF_COOKIE].value}
