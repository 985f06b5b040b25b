import threading

import pytest

from app import create_app
from config import TestConfig
from models import Participant, db
from services.changes import ChangeFeed
from services.errors import CapacityExceeded
from services.identity import Player
from services.store import ReservationStore
from tests.conftest import NOW, make_draft


@pytest.fixture
def file_app(tmp_path):
    class RaceConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'race.db'}"
        SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30, "check_same_thread": False}}

    app = create_app(RaceConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


def _store():
    return ReservationStore(feed=ChangeFeed(), now=lambda: NOW)


@pytest.mark.parametrize("max_players,attempts", [(4, 8), (2, 5)])
def test_concurrent_joins_never_overfill(file_app, max_players, attempts):
    with file_app.app_context():
        res_id = _store().create_reservation(make_draft(Player("Host", "500"), max_players=max_players)).id

    spots = max_players - 1
    barrier = threading.Barrier(attempts)
    outcomes = []
    lock = threading.Lock()

    def attempt(i):
        with file_app.app_context():
            barrier.wait()
            try:
                _store().join_reservation(res_id, Player(f"Player {i}", "100"))
                result = "joined"
            except CapacityExceeded:
                result = "full"
            except Exception as exc:  # surfaced by the assertion below
                result = repr(exc)
            finally:
                db.session.remove()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == sorted(["joined"] * spots + ["full"] * (attempts - spots))
    with file_app.app_context():
        assert Participant.query.filter_by(reservation_id=res_id).count() == spots


def test_concurrent_bookings_of_one_slot(file_app):
    attempts = 6
    barrier = threading.Barrier(attempts)
    outcomes = []
    lock = threading.Lock()

    def attempt(i):
        with file_app.app_context():
            barrier.wait()
            try:
                _store().create_reservation(
                    make_draft(Player(f"Player {i}", "100"), start="10:00", duration=1 + i % 2)
                )
                result = "booked"
            except Exception as exc:
                result = type(exc).__name__
            finally:
                db.session.remove()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("booked") == 1
    assert outcomes.count("SlotUnavailable") == attempts - 1
