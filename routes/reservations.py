from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g

from services import availability
from services.store import ReservationStore
from utils.auth_context import login_required
from utils.serializers import participant_to_dict, reservation_to_dict

reservations_bp = Blueprint("reservations", __name__)


def _parse_date_arg(required: bool = False):
    date_str = request.args.get("date")
    if not date_str:
        return None, (jsonify(error="date is required. Use YYYY-MM-DD"), 400) if required else None
    day = availability.parse_day(date_str)
    if day is None:
        return None, (jsonify(error="Invalid date. Use YYYY-MM-DD"), 400)
    return day, None


# ---------- list bookings (optionally for one day) ----------
@reservations_bp.get("/reservations")
@login_required
def list_reservations():
    day, failure = _parse_date_arg()
    if failure:
        return failure

    rows = ReservationStore().list_reservations(day=day)
    return jsonify([reservation_to_dict(r, g.player) for r in rows]), 200


@reservations_bp.get("/reservations/<reservation_id>")
@login_required
def get_reservation(reservation_id: str):
    res = ReservationStore().get_reservation(reservation_id)
    return jsonify(reservation_to_dict(res, g.player)), 200


# ---------- grid view for the booking form ----------
@reservations_bp.get("/availability")
@login_required
def day_availability():
    day, failure = _parse_date_arg(required=True)
    if failure:
        return failure
    duration = request.args.get("duration", default=1, type=int)

    store = ReservationStore()
    rows = store.list_reservations(day=day)
    now = store.now()
    options = {s.time: s for s in availability.enumerate_available_slots(day, rows, now)}

    grid = []
    for time in availability.SLOT_TIMES:
        option = options.get(time)
        joinable = availability.is_slot_joinable(day, time, rows, g.player)
        grid.append({
            "time": time,
            "kind": option.kind if option else None,
            "bookable": option is not None and availability.is_slot_bookable(day, time, duration, rows),
            "joinable": option is not None and joinable.joinable,
            "reservation_id": joinable.session.id if joinable.session is not None else None,
            "spots_left": joinable.spots_left,
        })

    return jsonify(date=day.isoformat(), duration=duration, slots=grid), 200


# ---------- direct booking form ----------
@reservations_bp.post("/reservations")
@login_required
def create_reservation():
    data = request.get_json(silent=True) or {}
    draft = {
        "created_by": g.player,
        "date": data.get("date"),
        "start_time": data.get("start_time"),
        "duration": data.get("duration"),
        "session_type": data.get("session_type"),
        "max_players": data.get("max_players"),
    }
    if str(draft["session_type"] or "").strip().lower() == "open" and draft["max_players"] in (None, ""):
        draft["max_players"] = current_app.config.get("DEFAULT_MAX_PLAYERS", 14)
    res = ReservationStore().create_reservation(draft)
    return jsonify(reservation_to_dict(res, g.player)), 201


# ---------- join / leave / delete ----------
@reservations_bp.post("/reservations/<reservation_id>/join")
@login_required
def join_reservation(reservation_id: str):
    participant = ReservationStore().join_reservation(reservation_id, g.player)
    return jsonify(participant_to_dict(participant)), 201


@reservations_bp.post("/reservations/<reservation_id>/leave")
@login_required
def leave_reservation(reservation_id: str):
    ReservationStore().leave_reservation(reservation_id, g.player)
    return jsonify(message="Left session"), 200


@reservations_bp.delete("/reservations/<reservation_id>")
@login_required
def delete_reservation(reservation_id: str):
    ReservationStore().delete_reservation(reservation_id, player=g.player)
    return jsonify(message="Booking deleted"), 200


# ---------- dashboard highlights ----------
@reservations_bp.get("/reservations/highlights")
@login_required
def highlights():
    store = ReservationStore()
    now = store.now()
    upcoming = [
        r for r in store.list_reservations(since=now.date())
        if datetime(r.date.year, r.date.month, r.date.day, r.start_hour) > now
    ]
    today_open = [r for r in upcoming if r.date == now.date() and r.session_type == "open"]

    return jsonify(
        open_games=[reservation_to_dict(r, g.player) for r in availability.open_games_to_join(upcoming, g.player)],
        popular_times=availability.popular_times(upcoming),
        today_games=[reservation_to_dict(r, g.player) for r in today_open],
    ), 200
