from datetime import date, datetime
from types import SimpleNamespace

from services import availability
from services.identity import Player

DAY = date(2025, 6, 1)


def res(start, duration=1, kind="open", max_players=10, participants=(), by=("Host", "300"), day=DAY):
    return SimpleNamespace(
        id=f"r-{day}-{start}",
        date=day,
        start_hour=start,
        duration=duration,
        session_type=kind,
        max_players=max_players if kind == "open" else None,
        participants=[SimpleNamespace(player_name=n, player_level=l) for n, l in participants],
        created_by_name=by[0],
        created_by_level=by[1],
    )


def test_closed_session_blocks_its_hour_only():
    rows = [res(10, kind="closed")]
    assert availability.is_slot_bookable(DAY, "10:00", 1, rows) is False
    assert availability.is_slot_bookable(DAY, "11:00", 1, rows) is True


def test_open_session_is_never_double_booked():
    rows = [res(10, kind="open")]
    assert availability.is_slot_bookable(DAY, "10:00", 1, rows) is False


def test_two_hour_booking_blocks_both_hours():
    rows = [res(10, duration=2)]
    assert availability.is_slot_bookable(DAY, "11:00", 1, rows) is False
    assert availability.is_slot_bookable(DAY, "09:00", 2, rows) is False
    assert availability.is_slot_bookable(DAY, "09:00", 1, rows) is True
    assert availability.is_slot_bookable(DAY, "12:00", 1, rows) is True


def test_other_dates_do_not_interfere():
    rows = [res(10, day=date(2025, 6, 2))]
    assert availability.is_slot_bookable(DAY, "10:00", 2, rows) is True


def test_bad_input_is_not_bookable():
    assert availability.is_slot_bookable(DAY, "10:30", 1, []) is False
    assert availability.is_slot_bookable(DAY, "07:00", 1, []) is False
    assert availability.is_slot_bookable(DAY, "10:00", 3, []) is False
    assert availability.is_slot_bookable(DAY, "19:00", 2, []) is False
    assert availability.is_slot_bookable("not-a-date", "10:00", 1, []) is False
    assert availability.is_slot_bookable(DAY, "19:00", 1, []) is True


def test_joinable_reports_spots_left():
    rows = [res(10, max_players=3, participants=[("Ben", "200")])]
    check = availability.is_slot_joinable(DAY, "10:00", rows, Player("Cleo", "100"))
    assert check.joinable is True
    assert check.spots_left == 1


def test_full_session_is_not_joinable():
    rows = [res(10, max_players=3, participants=[("Ben", "200"), ("Cleo", "100")])]
    check = availability.is_slot_joinable(DAY, "10:00", rows, Player("Dev", "400"))
    assert check.joinable is False
    assert check.reason == "full"
    assert check.spots_left == 0


def test_join_reasons():
    rows = [res(10, kind="closed"), res(12, participants=[("Ben", "200")])]
    assert availability.is_slot_joinable(DAY, "10:00", rows).reason == "closed"
    assert availability.is_slot_joinable(DAY, "11:00", rows).reason == "no_session"
    assert availability.is_slot_joinable(DAY, "12:00", rows, Player("Ben", "200")).reason == "already_member"
    assert availability.is_slot_joinable(DAY, "12:00", rows, Player("Host", "300")).reason == "already_member"
    # same name, other level is someone else
    assert availability.is_slot_joinable(DAY, "12:00", rows, Player("Ben", "300")).joinable is True


def test_enumerate_marks_free_and_joinable_slots():
    rows = [res(10, max_players=4), res(13, duration=2, kind="closed")]
    now = datetime(2025, 5, 30, 12, 0)
    slots = list(availability.enumerate_available_slots(DAY, rows, now))

    times = [s.time for s in slots]
    assert times == sorted(times)
    assert "10:00" in times and "13:00" not in times and "14:00" not in times
    kinds = {s.time: s.kind for s in slots}
    assert kinds["10:00"] == "joinable"
    assert kinds["08:00"] == "free"
    assert kinds["19:00"] == "free"


def test_enumerate_skips_hours_already_started_today():
    now = datetime(2025, 6, 1, 14, 5)
    times = [s.time for s in availability.enumerate_available_slots(DAY, [], now)]
    assert times[0] == "15:00"
    assert "14:00" not in times


def test_enumerate_past_day_is_empty():
    now = datetime(2025, 6, 2, 8, 0)
    assert list(availability.enumerate_available_slots(DAY, [], now)) == []


def test_enumerate_is_repeatable():
    rows = [res(10, max_players=4), res(15, kind="closed")]
    now = datetime(2025, 5, 30, 12, 0)
    first = list(availability.enumerate_available_slots(DAY, rows, now))
    second = list(availability.enumerate_available_slots(DAY, rows, now))
    assert first == second


def test_parse_slot_formats():
    assert availability.parse_slot("14:00") == 14
    assert availability.parse_slot("14") == 14
    assert availability.parse_slot("2pm") == 14
    assert availability.parse_slot("2:00 PM") == 14
    assert availability.parse_slot("8am") == 8
    assert availability.parse_slot(9) == 9
    assert availability.parse_slot("14:30") is None
    assert availability.parse_slot("20:00") is None
    assert availability.parse_slot(True) is None
    assert availability.parse_slot(None) is None


def test_dashboard_helpers():
    me = Player("Ben", "200")
    rows = [
        res(9, max_players=2, participants=[("Ben", "200")]),
        res(10, max_players=6),
        res(12, kind="closed"),
        res(16, max_players=6, day=date(2025, 6, 2)),
        res(10, max_players=6, day=date(2025, 6, 3), participants=[("Ben", "200")]),
    ]
    games = availability.open_games_to_join(rows, me)
    assert [(g.date, g.start_hour) for g in games] == [(DAY, 10), (date(2025, 6, 2), 16)]
    assert availability.popular_times(rows)[0] == "10:00"

    stats = availability.summarize(rows)
    assert stats == {"total_bookings": 5, "open_sessions": 4, "closed_sessions": 1, "total_players": 7}
