"""Reservation store: the only place reservations and participants are written.

Both invariants are enforced inside a single SQL statement per write so that
concurrent requests cannot slip past each other:

* a new reservation is inserted only if nothing on that date overlaps it
  (``INSERT ... SELECT ... WHERE NOT EXISTS``);
* a participant is inserted only while ``participants + 2 <= max_players``
  (creator + newcomer), after the reservation row is locked.

PostgreSQL additionally carries an exclusion constraint and a BEFORE INSERT
trigger (see migrations); their errors are mapped to the same exceptions.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Tuple

from flask import current_app, has_app_context
from sqlalchemy import func, insert, literal, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.participant import Participant
from models.reservation import Reservation, _new_id
from services import availability
from services.changes import change_feed
from services.errors import (
    CapacityExceeded,
    ClosedSession,
    DuplicateParticipant,
    NotFound,
    NotOwner,
    SlotUnavailable,
    StoreFailure,
    ValidationError,
)
from services.identity import Player
from utils.audit import log_event
from utils.clock import local_now

logger = logging.getLogger(__name__)

_DEFAULT_LEVELS = ["100", "200", "300", "400", "500"]


def _cfg(name, default):
    if not has_app_context():
        return default
    return current_app.config.get(name, default)


def validate_draft(draft: dict, now: datetime = None) -> Tuple[dict, List[str]]:
    """Check a reservation draft. Returns (clean_values, errors)."""
    errors: List[str] = []
    draft = draft or {}

    creator = draft.get("created_by")
    if creator is None:
        creator = Player.from_input(draft.get("created_by_name"), draft.get("created_by_level"))
    if not creator.name:
        errors.append("Creator name is required")
    elif len(creator.name) > 80:
        errors.append("Creator name must be at most 80 characters")
    if creator.level not in _cfg("LEVELS", _DEFAULT_LEVELS):
        errors.append("Unknown player level")

    day = availability.parse_day(draft.get("date"))
    if day is None:
        errors.append("date must be YYYY-MM-DD")

    start_hour = availability.parse_slot(draft.get("start_time"))
    if start_hour is None:
        errors.append(
            f"start_time must be on the hour between {availability.SLOT_TIMES[0]} and {availability.SLOT_TIMES[-1]}"
        )

    try:
        duration = int(draft.get("duration"))
    except (TypeError, ValueError):
        duration = None
    if duration not in availability.DURATIONS:
        errors.append("duration must be 1 or 2 hours")
        duration = None

    if start_hour is not None and duration is not None and start_hour + duration > availability.CLOSE_HOUR:
        errors.append(f"Booking must end by {availability.CLOSE_HOUR:02d}:00")

    session_type = (draft.get("session_type") or "").strip().lower()
    max_players = draft.get("max_players")
    if session_type not in availability.SESSION_TYPES:
        errors.append("session_type must be 'open' or 'closed'")
    elif session_type == "closed":
        if max_players not in (None, ""):
            errors.append("Closed sessions cannot set max_players")
        max_players = None
    else:
        try:
            max_players = int(max_players)
        except (TypeError, ValueError):
            max_players = None
        limit = _cfg("MAX_PLAYERS_LIMIT", 30)
        if max_players is None or max_players < 2 or max_players > limit:
            errors.append(f"Open sessions need max_players between 2 and {limit}")

    if not errors and now is not None:
        starts_at = datetime(day.year, day.month, day.day, start_hour)
        if starts_at <= now:
            errors.append("Cannot book past/started slots")

    clean = {
        "created_by_name": creator.name,
        "created_by_level": creator.level,
        "date": day,
        "start_hour": start_hour,
        "duration": duration,
        "session_type": session_type,
        "max_players": max_players,
    }
    return clean, errors


class ReservationStore:
    def __init__(self, feed=None, now=None):
        self.feed = feed or change_feed
        self._now = now or local_now

    def now(self) -> datetime:
        return self._now()

    # ---------- reads ----------

    def list_reservations(self, day=None, since=None) -> List[Reservation]:
        q = Reservation.query
        if day is not None:
            q = q.filter(Reservation.date == day)
        if since is not None:
            q = q.filter(Reservation.date >= since)
        try:
            return q.order_by(Reservation.date.asc(), Reservation.start_hour.asc()).all()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error("Listing reservations failed: %s", exc)
            raise StoreFailure() from exc

    def list_participants(self, reservation_ids: Iterable[str]) -> List[Participant]:
        ids = list(reservation_ids or [])
        if not ids:
            return []
        return (
            Participant.query
            .filter(Participant.reservation_id.in_(ids))
            .order_by(Participant.joined_at.asc())
            .all()
        )

    def get_reservation(self, reservation_id) -> Reservation:
        res = db.session.get(Reservation, str(reservation_id)) if reservation_id else None
        if res is None:
            raise NotFound()
        return res

    # ---------- writes ----------

    def create_reservation(self, draft: dict) -> Reservation:
        clean, errors = validate_draft(draft, now=self.now())
        creator = Player(clean["created_by_name"], clean["created_by_level"])
        if errors:
            raise ValidationError("Invalid booking details", errors=errors)

        day = clean["date"]
        start = clean["start_hour"]
        end = start + clean["duration"]
        new_id = _new_id()

        clash = select(Reservation.id).where(
            Reservation.date == day,
            Reservation.start_hour < end,
            (Reservation.start_hour + Reservation.duration) > start,
        )
        row = select(
            literal(new_id, db.String),
            literal(clean["created_by_name"], db.String),
            literal(clean["created_by_level"], db.String),
            literal(day, db.Date),
            literal(start, db.Integer),
            literal(clean["duration"], db.Integer),
            literal(clean["session_type"], db.String),
            literal(clean["max_players"], db.Integer),
            literal(datetime.utcnow(), db.DateTime),
        ).where(~clash.exists())
        stmt = insert(Reservation.__table__).from_select(
            ["id", "created_by_name", "created_by_level", "date", "start_hour",
             "duration", "session_type", "max_players", "created_at"],
            row,
        )

        inserted = self._execute_write(stmt)
        meta = {"date": day.isoformat(), "start_time": availability.slot_label(start),
                "duration": clean["duration"], "session_type": clean["session_type"]}
        if inserted == 0:
            log_event("RESERVATION_CREATE_FAIL_OVERLAP", player=creator, entity="reservation", metadata=meta)
            raise SlotUnavailable()

        res = db.session.get(Reservation, new_id)
        log_event("RESERVATION_CREATE", player=creator, entity="reservation", entity_id=new_id, metadata=meta)
        self.feed.publish("reservations", "insert", new_id)
        return res

    def join_reservation(self, reservation_id, player: Player) -> Participant:
        reservation_id = str(reservation_id or "")
        try:
            res = (
                Reservation.query
                .filter_by(id=reservation_id)
                .with_for_update()
                .first()
            )
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreFailure() from exc

        if res is None:
            db.session.rollback()
            raise NotFound()
        if res.session_type != "open":
            db.session.rollback()
            raise ClosedSession()
        if availability.is_member(res, player):
            db.session.rollback()
            raise DuplicateParticipant()

        max_players = res.max_players
        taken = (
            select(func.count(Participant.id))
            .where(Participant.reservation_id == reservation_id)
            .correlate(None)
            .scalar_subquery()
        )
        room = select(Reservation.id).where(
            Reservation.id == reservation_id,
            Reservation.session_type == "open",
            taken + 2 <= Reservation.max_players,
        )
        participant_id = _new_id()
        row = select(
            literal(participant_id, db.String),
            literal(reservation_id, db.String),
            literal(player.name, db.String),
            literal(player.level, db.String),
            literal(datetime.utcnow(), db.DateTime),
        ).where(room.exists())
        stmt = insert(Participant.__table__).from_select(
            ["id", "reservation_id", "player_name", "player_level", "joined_at"], row
        )

        try:
            inserted = self._execute_write(stmt)
        except (CapacityExceeded, DuplicateParticipant, NotFound, ClosedSession) as exc:
            log_event("PARTICIPANT_JOIN_FAIL", player=player, entity="reservation",
                      entity_id=reservation_id, metadata={"code": exc.code})
            raise

        if inserted == 0:
            if Reservation.query.filter_by(id=reservation_id).count() == 0:
                raise NotFound()
            log_event("PARTICIPANT_JOIN_FAIL_CAPACITY", player=player, entity="reservation",
                      entity_id=reservation_id, metadata={"max_players": max_players})
            raise CapacityExceeded(f"Session is full. Maximum {max_players} players allowed.")

        db.session.expire_all()
        participant = db.session.get(Participant, participant_id)
        log_event("PARTICIPANT_JOIN", player=player, entity="reservation", entity_id=reservation_id)
        self.feed.publish("participants", "insert", participant_id)
        return participant

    def leave_reservation(self, reservation_id, player: Player) -> None:
        res = self.get_reservation(reservation_id)
        row = (
            Participant.query
            .filter_by(reservation_id=res.id, player_name=player.name, player_level=player.level)
            .first()
        )
        if row is None:
            if availability.is_creator(res, player):
                raise ValidationError("The creator can't leave their own booking. Delete it instead.")
            raise NotFound("You are not in this session")

        participant_id = row.id
        db.session.delete(row)
        self._commit()
        log_event("PARTICIPANT_LEAVE", player=player, entity="reservation", entity_id=res.id)
        self.feed.publish("participants", "delete", participant_id)

    def delete_reservation(self, reservation_id, player: Player = None, force: bool = False) -> None:
        res = self.get_reservation(reservation_id)
        if not force and not availability.is_creator(res, player):
            raise NotOwner()

        res_id = res.id
        had_participants = bool(res.participants)
        db.session.delete(res)
        self._commit()
        log_event("ADMIN_RESERVATION_DELETE" if force else "RESERVATION_DELETE",
                  player=player, entity="reservation", entity_id=res_id)
        self.feed.publish("reservations", "delete", res_id)
        if had_participants:
            self.feed.publish("participants", "delete", None)

    # ---------- plumbing ----------

    def _commit(self) -> None:
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise _map_db_error(exc) from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error("Store write failed: %s", exc)
            raise StoreFailure() from exc

    def _execute_write(self, stmt) -> int:
        try:
            result = db.session.execute(stmt)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            mapped = _map_db_error(exc)
            if isinstance(mapped, StoreFailure):
                logger.error("Store write failed: %s", exc)
            raise mapped from exc
        return result.rowcount


def _map_db_error(exc: SQLAlchemyError):
    text = str(getattr(exc, "orig", exc)).lower()
    if "uq_participant_once" in text or "unique constraint failed: reservation_participants" in text:
        return DuplicateParticipant()
    if "no_reservation_overlap" in text or "exclusion constraint" in text:
        return SlotUnavailable()
    if "session is full" in text:
        return CapacityExceeded()
    if "closed session" in text:
        return ClosedSession()
    if "foreign key" in text or "booking not found" in text:
        return NotFound()
    if "check constraint" in text:
        return ValidationError()
    return StoreFailure()


def purge_expired(now: datetime = None, keep_days: int = 0) -> int:
    """Delete reservations older than ``keep_days`` before today. Used by the CLI."""
    cutoff = (now or local_now()).date() - timedelta(days=keep_days)
    rows = Reservation.query.filter(Reservation.date < cutoff).all()
    for r in rows:
        db.session.delete(r)
    db.session.commit()
    return len(rows)
