from datetime import date

import pytest

from models import Participant, Reservation
from services.dialogue import ConversationState, DialogueManager, find_time, is_affirmative, resolve_day
from services.identity import Player
from tests.conftest import TODAY, TOMORROW, make_draft


class FakeResponder:
    configured = True

    def __init__(self, answer="What time suits you best?"):
        self.answer = answer
        self.calls = []

    def complete(self, conversation_tail, grounding_context):
        self.calls.append((conversation_tail, grounding_context))
        return self.answer


@pytest.fixture
def talk(store, host):
    def _talk(player=host, responder=None):
        manager = DialogueManager(store, player, responder=responder)
        state = ConversationState()
        manager.start(state)
        return manager, state
    return _talk


def test_greeting_moves_to_ask_when(talk):
    _, state = talk()
    assert state.step == "ask_when"
    assert state.transcript[0]["role"] == "assistant"
    assert state.transcript[0]["content"].startswith("Good morning Ana!")


def test_closed_booking_walkthrough(talk, store):
    manager, state = talk()

    reply = manager.handle(state, "Tomorrow")
    assert reply.step == "ask_action"
    assert state.draft == {"date": TOMORROW.isoformat()}
    assert reply.quick_replies == ["Book 08:00", "Book 14:00"]

    assert manager.handle(state, "Book 14:00").step == "ask_session_type"
    assert manager.handle(state, "Closed").step == "ask_duration"

    reply = manager.handle(state, "1 hour")
    assert reply.step == "confirm_booking"
    assert state.draft == {
        "date": TOMORROW.isoformat(),
        "time": "14:00",
        "session_type": "closed",
        "max_players": None,
        "duration": 1,
    }

    reply = manager.handle(state, "Yes, book it!")
    assert reply.step == "done"
    assert reply.wrote is True
    assert state.draft == {}

    rows = store.list_reservations(day=TOMORROW)
    assert [(r.start_hour, r.duration, r.session_type, r.created_by_name) for r in rows] == [
        (14, 1, "closed", "Ana")
    ]


def test_open_booking_asks_for_max_players(talk, store):
    manager, state = talk()
    manager.handle(state, "tomorrow")
    manager.handle(state, "Book 10:00")

    assert manager.handle(state, "Open session").step == "ask_max_players"
    assert manager.handle(state, "lots").step == "ask_max_players"
    assert manager.handle(state, "40").step == "ask_max_players"

    reply = manager.handle(state, "10 players")
    assert reply.step == "ask_duration"
    assert state.draft["max_players"] == 10

    assert manager.handle(state, "2 hours").step == "confirm_booking"
    assert manager.handle(state, "yes").step == "done"

    res = store.list_reservations(day=TOMORROW)[0]
    assert (res.session_type, res.max_players, res.duration) == ("open", 10, 2)


def test_two_hours_blocked_offers_one(talk, store, guest):
    store.create_reservation(make_draft(guest, start="11:00"))
    manager, state = talk()
    manager.handle(state, "tomorrow")
    manager.handle(state, "Book 10:00")
    manager.handle(state, "closed")

    reply = manager.handle(state, "2 hours")
    assert reply.step == "ask_duration"
    assert reply.quick_replies == ["1 hour", "Start over"]
    assert manager.handle(state, "1 hour").step == "confirm_booking"


def test_join_walkthrough(talk, store, host, guest):
    res = store.create_reservation(make_draft(host, start="16:00", max_players=4))
    manager, state = talk(player=guest)

    reply = manager.handle(state, "Tomorrow")
    assert "Join 16:00" in reply.quick_replies
    assert "Ana's match (3 spots)" in reply.messages[0]

    reply = manager.handle(state, "Join 16:00")
    assert reply.step == "confirm_join"
    assert state.draft["reservation_id"] == res.id

    reply = manager.handle(state, "Yes, count me in!")
    assert reply.step == "done"
    assert reply.wrote is True
    assert Participant.query.filter_by(reservation_id=res.id, player_name="Ben").count() == 1


def test_failed_join_keeps_step_and_draft(talk, store, host, guest):
    res = store.create_reservation(make_draft(host, start="16:00", max_players=2))
    manager, state = talk(player=guest)
    manager.handle(state, "tomorrow")
    manager.handle(state, "Join 16:00")
    draft_before = dict(state.draft)

    # someone else takes the last spot first
    store.join_reservation(res.id, Player("Cleo", "100"))

    reply = manager.handle(state, "yes")
    assert reply.step == "confirm_join"
    assert reply.wrote is False
    assert state.draft == draft_before
    assert reply.messages[0].startswith("Couldn't join: Session is full")
    assert reply.quick_replies == ["Try again", "Show other options"]


def test_failed_booking_keeps_step(talk, store, guest):
    manager, state = talk()
    manager.handle(state, "tomorrow")
    manager.handle(state, "Book 14:00")
    manager.handle(state, "closed")
    manager.handle(state, "1")

    store.create_reservation(make_draft(guest, start="14:00"))

    reply = manager.handle(state, "yes")
    assert reply.step == "confirm_booking"
    assert reply.messages[0].startswith("Something went wrong:")
    assert state.draft["time"] == "14:00"
    assert Reservation.query.count() == 1


@pytest.mark.parametrize("answer", ["no", "No, don't book it", "not sure"])
def test_declined_booking_writes_nothing(talk, store, answer):
    manager, state = talk()
    manager.handle(state, "tomorrow")
    manager.handle(state, "Book 14:00")
    manager.handle(state, "closed")
    assert manager.handle(state, "1").step == "confirm_booking"

    reply = manager.handle(state, answer)
    assert reply.wrote is False
    assert reply.step == "ask_when"
    assert state.draft == {}
    assert Reservation.query.count() == 0


@pytest.mark.parametrize("answer", ["no", "No, don't book it", "not sure"])
def test_declined_join_writes_nothing(talk, store, host, guest, answer):
    store.create_reservation(make_draft(host, start="16:00", max_players=4))
    manager, state = talk(player=guest)
    manager.handle(state, "tomorrow")
    assert manager.handle(state, "Join 16:00").step == "confirm_join"

    reply = manager.handle(state, answer)
    assert reply.wrote is False
    assert reply.step == "ask_when"
    assert state.draft == {}
    assert Participant.query.count() == 0


def test_show_other_options_relists_day(talk, store, host, guest):
    store.create_reservation(make_draft(host, start="16:00", max_players=4))
    manager, state = talk(player=guest)
    manager.handle(state, "tomorrow")
    manager.handle(state, "Join 16:00")

    reply = manager.handle(state, "Show other options")
    assert reply.step == "ask_action"
    assert "Join 16:00" in reply.quick_replies
    assert state.draft == {"date": TOMORROW.isoformat()}
    assert Participant.query.count() == 0


def test_taken_slot_is_refused_before_questions(talk, store, guest):
    store.create_reservation(make_draft(guest, start="14:00", session_type="closed", max_players=None))
    manager, state = talk()
    manager.handle(state, "tomorrow")

    reply = manager.handle(state, "Book 14:00")
    assert reply.step == "ask_action"
    assert reply.messages[0] == "That slot's taken! Try another time."


def test_off_grid_time(talk):
    manager, state = talk()
    manager.handle(state, "tomorrow")
    reply = manager.handle(state, "book 10:30")
    assert reply.step == "ask_action"
    assert reply.messages[0].startswith("We're open 08:00 - 20:00")


@pytest.mark.parametrize("phrase", ["start over", "Cancel", "reset please"])
def test_reset_phrases_clear_draft(talk, phrase):
    manager, state = talk()
    manager.handle(state, "tomorrow")
    manager.handle(state, "Book 14:00")

    reply = manager.handle(state, phrase)
    assert reply.step == "ask_when"
    assert state.draft == {}


def test_other_day_phrase(talk):
    manager, state = talk()
    manager.handle(state, "tomorrow")
    reply = manager.handle(state, "Pick another day")
    assert reply.step == "ask_when"
    assert reply.messages == ["Sure! When?"]


def test_fully_booked_day(talk, store, guest):
    for start in ("08:00", "10:00", "12:00", "14:00", "16:00", "18:00"):
        store.create_reservation(make_draft(guest, start=start, duration=2, session_type="closed", max_players=None))
    manager, state = talk()
    reply = manager.handle(state, "tomorrow")
    assert reply.step == "ask_when"
    assert "fully booked" in reply.messages[0]


def test_availability_question_gets_summary(talk):
    manager, state = talk()
    reply = manager.handle(state, "what's available?")
    assert reply.step == "ask_when"
    assert reply.messages[0].startswith("Here's what I found for today and tomorrow:")


def test_unrecognised_text_without_responder_reprompts(talk):
    manager, state = talk()
    reply = manager.handle(state, "blah")
    assert reply.step == "ask_when"
    assert reply.messages == ["I didn't quite catch that. Which day works for you?"]


def test_fallback_uses_responder_with_grounding(talk, store, guest):
    store.create_reservation(make_draft(guest, start="18:00"))
    responder = FakeResponder()
    manager, state = talk(responder=responder)
    for _ in range(4):
        manager.handle(state, "blah blah")

    reply = manager.handle(state, "I want to play with my friends")
    assert reply.step == "ask_when"
    assert reply.messages == ["What time suits you best?"]
    assert reply.quick_replies == ["Morning (8-12)", "Afternoon (12-5)", "Evening (5-8)"]

    tail, grounding = responder.calls[-1]
    assert len(tail) == 6
    assert tail[-1] == {"role": "user", "content": "I want to play with my friends"}
    assert grounding["player_name"] == "Ana"
    assert grounding["bookings"][0]["time"] == "18:00"
    assert grounding["bookings"][0]["spotsLeft"] == 9


def test_done_step_routes(talk):
    manager, state = talk()
    state.step = "done"
    assert manager.handle(state, "Join another").messages == ["When?"]
    assert state.step == "ask_when"

    state.step = "done"
    reply = manager.handle(state, "Done!")
    assert reply.messages == ["See you on the pitch! ⚽👋"]

    state.step = "done"
    assert manager.handle(state, "Book another").step == "ask_when"


def test_transcript_records_both_sides(talk):
    manager, state = talk()
    manager.handle(state, "tomorrow")
    roles = [m["role"] for m in state.transcript]
    assert roles == ["assistant", "user", "assistant"]
    assert state.transcript[1]["content"] == "tomorrow"


def test_resolve_day_grammar():
    # TODAY is a Monday
    assert resolve_day("today", TODAY) == ([TODAY], True)
    assert resolve_day("right now", TODAY) == ([TODAY], True)
    assert resolve_day("Tomorrow please", TODAY) == ([TOMORROW], True)
    assert resolve_day("this weekend", TODAY) == ([date(2026, 3, 7)], True)
    assert resolve_day("next week", TODAY) == ([date(2026, 3, 9)], True)
    assert resolve_day("friday", TODAY) == ([date(2026, 3, 6)], True)
    assert resolve_day("monday", TODAY) == ([date(2026, 3, 9)], True)
    assert resolve_day("sometime", TODAY) == ([TODAY, TOMORROW], False)


def test_resolve_day_weekend_on_saturday():
    saturday = date(2026, 3, 7)
    assert resolve_day("weekend", saturday) == ([saturday], True)


def test_find_time():
    assert find_time("Book 2pm") == ("14:00", True)
    assert find_time("join 16:00") == ("16:00", True)
    assert find_time("join 10:30") == (None, True)
    assert find_time("hello") == (None, False)


def test_find_time_prefers_clock_token():
    assert find_time("Join the 10 player game at 16:00") == ("16:00", True)
    assert find_time("2 of us, book 3pm") == ("15:00", True)


def test_is_affirmative_whole_words():
    assert is_affirmative("Yes, book it!")
    assert is_affirmative("Sure")
    assert is_affirmative("Try again")
    assert not is_affirmative("No, don't book it")
    assert not is_affirmative("Not sure")
    assert not is_affirmative("nope")
    assert not is_affirmative("yesterday")
    assert not is_affirmative("booking")
