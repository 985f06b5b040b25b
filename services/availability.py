"""Slot availability over a set of reservations.

Everything here is a pure function of its arguments: callers pass the
reservations they just read from the store and get a projection back.
Reservations can be ``models.Reservation`` rows or anything with the same
attributes (``date``, ``start_hour``, ``duration``, ``session_type``,
``max_players``, ``participants``, ``created_by_name``, ``created_by_level``).

Bad input (off-grid times, unknown durations, unparsable dates) means
"not available" rather than an error, since this only feeds a display.
"""
import re
from collections import Counter
from datetime import date, datetime
from typing import Iterable, Iterator, List, NamedTuple, Optional

OPEN_HOUR = 8
CLOSE_HOUR = 20
DURATIONS = (1, 2)
SESSION_TYPES = ("open", "closed")

SLOT_HOURS = tuple(range(OPEN_HOUR, CLOSE_HOUR))
SLOT_TIMES = tuple(f"{h:02d}:00" for h in SLOT_HOURS)

_SLOT_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?(?::00)?\s*(am|pm)?\s*$", re.IGNORECASE)


class SlotOption(NamedTuple):
    time: str
    kind: str  # "free" or "joinable"
    session: Optional[object] = None


class Joinability(NamedTuple):
    joinable: bool
    session: Optional[object] = None
    spots_left: Optional[int] = None
    reason: Optional[str] = None  # no_session, closed, full, already_member


def parse_slot(value) -> Optional[int]:
    """Return the grid hour for ``value`` ("14:00", "14", "2pm", 14) or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        hour = value
    else:
        m = _SLOT_RE.match(str(value or ""))
        if not m:
            return None
        hour = int(m.group(1))
        minutes = m.group(2)
        if minutes is not None and minutes != "00":
            return None
        meridiem = (m.group(3) or "").lower()
        if meridiem:
            if hour < 1 or hour > 12:
                return None
            hour = hour % 12 + (12 if meridiem == "pm" else 0)
    return hour if hour in SLOT_HOURS else None


def slot_label(hour: int) -> str:
    return f"{hour:02d}:00"


def parse_day(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (TypeError, ValueError):
        return None


# ---------- derived per-reservation values ----------

def occupancy(reservation) -> int:
    return 1 + len(reservation.participants or [])


def spots_left(reservation) -> int:
    if reservation.session_type != "open" or not reservation.max_players:
        return 0
    return max(0, reservation.max_players - occupancy(reservation))


def is_full(reservation) -> bool:
    # closed sessions never take joiners
    if reservation.session_type == "closed":
        return True
    return occupancy(reservation) >= (reservation.max_players or 0)


def is_creator(reservation, player) -> bool:
    if player is None:
        return False
    return (reservation.created_by_name == player.name
            and reservation.created_by_level == player.level)


def is_participant(reservation, player) -> bool:
    if player is None:
        return False
    return any(
        p.player_name == player.name and p.player_level == player.level
        for p in (reservation.participants or [])
    )


def is_member(reservation, player) -> bool:
    return is_creator(reservation, player) or is_participant(reservation, player)


def _interval(reservation):
    return reservation.start_hour, reservation.start_hour + reservation.duration


def _on_day(reservations: Iterable, day: date) -> List:
    return [r for r in reservations or [] if r.date == day]


def overlapping(day, start_hour: int, duration: int, reservations: Iterable) -> List:
    """Reservations on ``day`` whose [start, end) intersects the candidate span."""
    end_hour = start_hour + duration
    hits = []
    for r in _on_day(reservations, day):
        r_start, r_end = _interval(r)
        if start_hour < r_end and end_hour > r_start:
            hits.append(r)
    return hits


# ---------- engine operations ----------

def is_slot_bookable(day, start, duration, reservations) -> bool:
    """Can a *new* reservation take [start, start+duration) on ``day``?

    Any overlap with any reservation blocks, open or closed. Open sessions
    can be joined, never double-booked.
    """
    day = parse_day(day)
    hour = parse_slot(start)
    if day is None or hour is None:
        return False
    try:
        duration = int(duration)
    except (TypeError, ValueError):
        return False
    if duration not in DURATIONS or hour + duration > CLOSE_HOUR:
        return False
    return not overlapping(day, hour, duration, reservations)


def find_session(day, start, reservations):
    day = parse_day(day)
    hour = parse_slot(start)
    if day is None or hour is None:
        return None
    for r in _on_day(reservations, day):
        if r.start_hour == hour:
            return r
    return None


def is_slot_joinable(day, start, reservations, player=None) -> Joinability:
    session = find_session(day, start, reservations)
    if session is None:
        return Joinability(False, reason="no_session")
    if session.session_type != "open":
        return Joinability(False, session=session, spots_left=0, reason="closed")
    left = spots_left(session)
    if is_member(session, player):
        return Joinability(False, session=session, spots_left=left, reason="already_member")
    if left <= 0:
        return Joinability(False, session=session, spots_left=0, reason="full")
    return Joinability(True, session=session, spots_left=left)


def enumerate_available_slots(day, reservations, now: datetime) -> Iterator[SlotOption]:
    """Yield the grid hours of ``day`` that can still be booked or joined.

    Hours at or before ``now.hour`` are dropped when ``day`` is today, and past
    days yield nothing. Call again to restart; nothing is cached.
    """
    day = parse_day(day)
    if day is None or now is None or day < now.date():
        return
    todays = _on_day(reservations, day)
    for hour in SLOT_HOURS:
        if day == now.date() and hour <= now.hour:
            continue
        starting = next((r for r in todays if r.start_hour == hour), None)
        if starting is not None:
            if starting.session_type == "open" and spots_left(starting) > 0:
                yield SlotOption(slot_label(hour), "joinable", starting)
            continue
        if not overlapping(day, hour, 1, todays):
            yield SlotOption(slot_label(hour), "free")


# ---------- dashboard helpers ----------

def open_games_to_join(reservations, player=None, limit: int = 3) -> List:
    games = [
        r for r in reservations or []
        if r.session_type == "open" and spots_left(r) > 0 and not is_member(r, player)
    ]
    return games[:limit]


def popular_times(reservations, limit: int = 3) -> List[str]:
    counts = Counter(slot_label(r.start_hour) for r in reservations or [])
    return [t for t, _ in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))[:limit]]


def summarize(reservations) -> dict:
    rows = list(reservations or [])
    return {
        "total_bookings": len(rows),
        "open_sessions": sum(1 for r in rows if r.session_type == "open"),
        "closed_sessions": sum(1 for r in rows if r.session_type == "closed"),
        "total_players": sum(occupancy(r) for r in rows),
    }
