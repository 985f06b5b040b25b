"""Rule-based booking assistant.

A conversation walks ``greeting -> ask_when -> ask_action`` and then either
``ask_session_type -> [ask_max_players] -> ask_duration -> confirm_booking``
or ``confirm_join``, ending in ``done``. Only the two confirm steps write to
the store; every other transition just edits the draft and the transcript.

The manager holds no conversation state itself. Callers load a
``ConversationState``, pass it to ``handle`` with one user message, and
persist the result before accepting the next message.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from services import availability
from services.dialogue_copy import DEFAULT_COPY, Prompt
from services.errors import BookingError
from services.identity import Player

logger = logging.getLogger(__name__)

STEPS = (
    "greeting",
    "ask_when",
    "ask_action",
    "ask_session_type",
    "ask_max_players",
    "ask_duration",
    "confirm_booking",
    "confirm_join",
    "done",
)

RESET_PHRASES = ("start over", "cancel", "reset")
OTHER_DAY_PHRASES = ("another day", "different day", "pick another")
NEGATIVE = ("no", "nope", "nah", "not", "don't", "dont", "cancel")
AFFIRMATIVE = ("yes", "yep", "yeah", "sure", "ok", "okay", "confirm", "lock it in", "count me in",
               "book it", "try again", "retry")
AVAILABILITY_WORDS = ("available", "slot", "show", "free", "when")

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_TIME_RE = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(am|pm)?\b", re.IGNORECASE)
_NUMBER_RE = re.compile(r"\b(\d{1,3})\b")
_WORD_DURATIONS = {"one": 1, "an hour": 1, "two": 2}

TRANSCRIPT_TAIL = 6
GROUNDING_LIMIT = 15


def _has_word(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text) is not None


def is_affirmative(text: str) -> bool:
    """Explicit yes. Any negative word wins, so "not sure" is a no."""
    lower = (text or "").lower()
    if any(_has_word(lower, w) for w in NEGATIVE):
        return False
    return any(_has_word(lower, w) for w in AFFIRMATIVE)


def resolve_day(text: str, today: date) -> Tuple[List[date], bool]:
    """Map a free-text day reference to dates.

    Returns ``(dates, matched)``. When nothing is recognised the fallback is
    ``[today, tomorrow]`` with ``matched=False``.
    """
    lower = (text or "").lower()
    if _has_word(lower, "today") or _has_word(lower, "now") or _has_word(lower, "tonight"):
        return [today], True
    if _has_word(lower, "tomorrow"):
        return [today + timedelta(days=1)], True
    if "weekend" in lower:
        for i in range(0, 8):
            d = today + timedelta(days=i)
            if d.weekday() >= 5:
                return [d], True
    if "next week" in lower:
        return [today + timedelta(days=7)], True
    for num, name in enumerate(WEEKDAYS):
        if name in lower or _has_word(lower, name[:3]):
            days_until = num - today.weekday()
            if days_until <= 0:
                days_until += 7
            return [today + timedelta(days=days_until)], True
    return [today, today + timedelta(days=1)], False


def find_time(text: str) -> Tuple[Optional[str], bool]:
    """Pull an hour out of free text. Returns (grid time or None, token_present)."""
    matches = list(_TIME_RE.finditer(text or ""))
    if not matches:
        return None, False
    # "the 10 player game at 16:00": an explicit clock token beats a bare number
    m = next((x for x in matches if x.group(2) or x.group(3)), matches[0])
    token = m.group(1) + (":" + m.group(2) if m.group(2) else "") + (m.group(3) or "")
    hour = availability.parse_slot(token)
    if hour is None:
        return None, True
    return availability.slot_label(hour), True


def day_name(d: date) -> str:
    return f"{d:%A, %B} {d.day}"


def time_greeting(now: datetime) -> str:
    if now.hour < 12:
        return "Good morning"
    if now.hour < 17:
        return "Good afternoon"
    return "Good evening"


@dataclass
class ConversationState:
    step: str = "greeting"
    draft: dict = field(default_factory=dict)
    transcript: List[dict] = field(default_factory=list)

    @classmethod
    def from_row(cls, row) -> "ConversationState":
        return cls(step=row.step or "greeting", draft=dict(row.draft or {}), transcript=list(row.transcript or []))


@dataclass
class Reply:
    step: str
    messages: List[str]
    quick_replies: List[str]
    draft: dict
    wrote: bool = False

    def to_dict(self) -> dict:
        return {
            "step": self.step,
            "messages": self.messages,
            "quick_replies": self.quick_replies,
            "draft": self.draft,
        }


class DialogueManager:
    def __init__(self, store, player: Player, responder=None, copy=None, now=None,
                 max_players_limit: int = 30):
        self.store = store
        self.player = player
        self.responder = responder
        self.copy = dict(DEFAULT_COPY, **(copy or {}))
        self._now = now
        self.max_players_limit = max_players_limit

    # ---------- public API ----------

    def start(self, state: ConversationState) -> Reply:
        return self._run(state, None)

    def handle(self, state: ConversationState, text: str) -> Reply:
        return self._run(state, (text or "").strip())

    # ---------- plumbing ----------

    def now(self) -> datetime:
        return self._now() if self._now else self.store.now()

    def _run(self, state: ConversationState, text: Optional[str]) -> Reply:
        self._state = state
        self._out: List[str] = []
        self._quick: List[str] = []
        self._wrote = False

        if state.step not in STEPS:
            state.step = "greeting"

        if state.step == "greeting":
            self._say("greeting", greeting=time_greeting(self.now()), name=self.player.name or "there")
            state.step = "ask_when"

        if text:
            state.transcript.append({"role": "user", "content": text})
            self._dispatch(text)

        return Reply(step=state.step, messages=list(self._out), quick_replies=list(self._quick),
                     draft=dict(state.draft), wrote=self._wrote)

    def _say(self, key: str, quick_replies=None, **values) -> None:
        prompt: Prompt = self.copy[key]
        self._emit(prompt.text.format(**values),
                   quick_replies if quick_replies is not None else [q.format(**values) for q in prompt.quick_replies])

    def _emit(self, text: str, quick_replies) -> None:
        quick = list(quick_replies or [])
        self._out.append(text)
        self._quick = quick
        self._state.transcript.append({"role": "assistant", "content": text, "quick_replies": quick})

    def _line(self, key: str, **values) -> str:
        return self.copy[key].text.format(**values)

    def _goto(self, step: str) -> None:
        self._state.step = step

    def _draft_day(self) -> Optional[date]:
        return availability.parse_day(self._state.draft.get("date"))

    def _fresh(self, day: date):
        # always re-read: the snapshot shown to the user may be stale
        return self.store.list_reservations(day=day)

    # ---------- dispatch ----------

    def _dispatch(self, text: str) -> None:
        lower = text.lower()
        if any(p in lower for p in RESET_PHRASES):
            self._restart()
            return
        if any(p in lower for p in OTHER_DAY_PHRASES):
            self._say("ask_when_short")
            self._goto("ask_when")
            return

        handler = getattr(self, f"_on_{self._state.step}", None)
        if handler is None:
            self._restart()
            return
        handler(text, lower)

    def _restart(self) -> None:
        self._state.draft = {}
        self._say("ask_when")
        self._goto("ask_when")

    # ---------- ask_when ----------

    def _on_ask_when(self, text: str, lower: str) -> None:
        days, matched = resolve_day(lower, self.now().date())
        if matched:
            self._offer_day(days[0])
            return
        if any(w in lower for w in AVAILABILITY_WORDS):
            self._summarize(days, "today and tomorrow")
            return
        self._fallback(text, "ask_when_retry")

    def _offer_day(self, day: date) -> None:
        now = self.now()
        if day < now.date():
            self._say("day_past", day_name=day_name(day))
            self._goto("ask_when")
            return

        slots = list(availability.enumerate_available_slots(day, self._fresh(day), now))
        if not slots:
            self._say("day_full", day_name=day_name(day))
            self._goto("ask_when")
            return

        joinable = [s for s in slots if s.kind == "joinable"]
        free = [s for s in slots if s.kind == "free"]
        self._state.draft = {"date": day.isoformat()}

        lines = [self._line("options_header", day_name=day_name(day))]
        quick = []
        if joinable:
            lines.append(self._line("options_join_header"))
            for s in joinable[:3]:
                lines.append(self._line("options_join_line", time=s.time, host=s.session.created_by_name,
                                        spots=availability.spots_left(s.session)))
                quick.append(f"Join {s.time}")
        if free:
            lines.append(self._line("options_free_header"))
            lines.append(", ".join(s.time for s in free[:5]))
            quick.append(f"Book {free[0].time}")
            if len(free) > 1:
                quick.append(f"Book {free[len(free) // 2].time}")
        lines.append(self._line("options_footer"))

        self._emit("\n".join(lines), quick)
        self._goto("ask_action")

    def _summarize(self, days: List[date], label: str) -> None:
        now = self.now()
        lines = []
        joinable = []
        for d in days:
            slots = list(availability.enumerate_available_slots(d, self._fresh(d), now))
            free_times = [s.time for s in slots if s.kind == "free"]
            joinable.extend((d, s) for s in slots if s.kind == "joinable")
            if free_times:
                shown = ", ".join(free_times[:4]) + ("..." if len(free_times) > 4 else "")
                lines.append(self._line("summary_day_line", day_name=day_name(d), times=shown))
        if not lines and not joinable:
            self._say("summary_empty", label=label)
            return

        out = [self._line("summary_header", label=label)]
        if joinable:
            out.append(self._line("options_join_header"))
            for d, s in joinable[:3]:
                out.append(self._line("options_join_line", time=f"{d:%A} {s.time}",
                                      host=s.session.created_by_name,
                                      spots=availability.spots_left(s.session)))
        if lines:
            out.append(self._line("options_free_header"))
            out.extend(lines)
        footer = self.copy["summary_footer"]
        out.append(footer.text)
        self._emit("\n".join(out), footer.quick_replies)

    # ---------- ask_action ----------

    def _on_ask_action(self, text: str, lower: str) -> None:
        day = self._draft_day()
        if day is None:
            self._restart()
            return

        time, token = find_time(text)
        wants_join = "join" in lower
        wants_book = "book" in lower

        if lower.startswith("show") or "other options" in lower:
            self._offer_day(day)
            return

        if (wants_join or wants_book) and token and time is None:
            self._say("off_grid", open_time=availability.SLOT_TIMES[0],
                      close_time=f"{availability.CLOSE_HOUR:02d}:00",
                      quick_replies=self._free_quick(day))
            return

        if wants_join and time:
            self._try_join(day, time)
            return
        if wants_book and time:
            self._try_book(day, time)
            return
        if wants_join:
            games = [
                s for s in availability.enumerate_available_slots(day, self._fresh(day), self.now())
                if s.kind == "joinable" and not availability.is_member(s.session, self.player)
            ]
            if games:
                self._say("pick_game", quick_replies=[f"Join {s.time}" for s in games[:4]])
            else:
                self._say("no_open_games")
            return
        if wants_book:
            quick = self._free_quick(day)
            if quick:
                self._say("pick_time", quick_replies=quick)
            else:
                self._say("no_free_slots")
                self._goto("ask_when")
            return

        days, matched = resolve_day(lower, self.now().date())
        if matched:
            self._offer_day(days[0])
            return
        self._fallback(text, "ask_action_retry")

    def _free_quick(self, day: date) -> List[str]:
        return [
            f"Book {s.time}"
            for s in availability.enumerate_available_slots(day, self._fresh(day), self.now())
            if s.kind == "free"
        ][:4]

    def _try_join(self, day: date, time: str) -> None:
        check = availability.is_slot_joinable(day, time, self._fresh(day), self.player)
        if check.joinable:
            session = check.session
            self._state.draft.update({"time": time, "reservation_id": session.id,
                                      "host": session.created_by_name})
            self._say("confirm_join", host=session.created_by_name, time=time, spots=check.spots_left)
            self._goto("confirm_join")
        elif check.reason == "full":
            self._say("session_full", host=check.session.created_by_name, time=time)
        elif check.reason == "already_member":
            self._say("already_member", time=time)
        elif check.reason == "closed":
            self._say("slot_taken")
        else:
            self._say("no_open_session_at", time=time)

    def _try_book(self, day: date, time: str) -> None:
        free = {
            s.time for s in availability.enumerate_available_slots(day, self._fresh(day), self.now())
            if s.kind == "free"
        }
        if time not in free:
            self._say("slot_taken")
            return
        self._state.draft.update({"time": time})
        self._say("ask_session_type", time=time, weekday=f"{day:%A}")
        self._goto("ask_session_type")

    # ---------- building the booking ----------

    def _on_ask_session_type(self, text: str, lower: str) -> None:
        if "open" in lower:
            self._state.draft.update({"session_type": "open"})
            self._say("ask_max_players")
            self._goto("ask_max_players")
        elif "closed" in lower or "private" in lower:
            self._state.draft.update({"session_type": "closed", "max_players": None})
            self._say("ask_duration_closed")
            self._goto("ask_duration")
        else:
            self._say("session_type_retry")

    def _on_ask_max_players(self, text: str, lower: str) -> None:
        m = _NUMBER_RE.search(lower)
        count = int(m.group(1)) if m else None
        if count is None or count < 2 or count > self.max_players_limit:
            self._say("max_players_retry", limit=self.max_players_limit)
            return
        self._state.draft.update({"max_players": count})
        self._say("ask_duration_open", max_players=count)
        self._goto("ask_duration")

    def _on_ask_duration(self, text: str, lower: str) -> None:
        duration = None
        m = re.search(r"\b([12])\b", lower)
        if m:
            duration = int(m.group(1))
        else:
            for word, value in _WORD_DURATIONS.items():
                if word in lower:
                    duration = value
                    break
        if duration is None:
            self._say("duration_retry")
            return

        day = self._draft_day()
        time = self._state.draft.get("time")
        if day is None or not time:
            self._restart()
            return
        if not availability.is_slot_bookable(day, time, duration, self._fresh(day)):
            if duration == 2 and availability.is_slot_bookable(day, time, 1, self._fresh(day)):
                self._say("duration_blocked", time=time)
            else:
                self._say("slot_taken")
                self._goto("ask_action")
            return

        draft = self._state.draft
        draft["duration"] = duration
        if draft.get("session_type") == "open":
            type_text = f"Open (max {draft.get('max_players')})"
        else:
            type_text = "Private"
        self._say("confirm_booking", day_name=day_name(day), time=time,
                  duration_text=f"{duration} hour{'s' if duration > 1 else ''}", type_text=type_text)
        self._goto("confirm_booking")

    # ---------- the two writes ----------

    def _on_confirm_booking(self, text: str, lower: str) -> None:
        if not is_affirmative(lower):
            self._restart()
            return

        draft = self._state.draft
        try:
            self.store.create_reservation({
                "created_by": self.player,
                "date": draft.get("date"),
                "start_time": draft.get("time"),
                "duration": draft.get("duration") or 1,
                "session_type": draft.get("session_type"),
                "max_players": draft.get("max_players"),
            })
        except BookingError as exc:
            logger.info("Assistant booking failed for %s: %s", self.player.name, exc.code)
            self._say("booking_failed", error=exc.message)
            return

        self._wrote = True
        note = "booked_open_note" if draft.get("session_type") == "open" else "booked_closed_note"
        self._state.draft = {}
        self._say("booked", type_note=self._line(note))
        self._goto("done")

    def _on_confirm_join(self, text: str, lower: str) -> None:
        day = self._draft_day()
        if "other options" in lower and day is not None:
            self._offer_day(day)
            return
        if not is_affirmative(lower):
            self._restart()
            return

        draft = self._state.draft
        try:
            self.store.join_reservation(draft.get("reservation_id"), self.player)
        except BookingError as exc:
            logger.info("Assistant join failed for %s: %s", self.player.name, exc.code)
            self._say("join_failed", error=exc.message)
            return

        self._wrote = True
        self._state.draft = {}
        self._say("joined", host=draft.get("host") or "the", weekday=f"{day:%A}" if day else "",
                  time=draft.get("time"))
        self._goto("done")

    # ---------- done ----------

    def _on_done(self, text: str, lower: str) -> None:
        if "join" in lower:
            self._say("ask_when_join")
            self._goto("ask_when")
        elif "book" in lower or "another" in lower:
            self._restart()
        elif any(w in lower for w in ("done", "bye", "thanks", "thank you")):
            self._say("farewell")
        else:
            self._restart()

    # ---------- generative fallback ----------

    def _fallback(self, text: str, retry_key: str) -> None:
        if self.responder is None or not getattr(self.responder, "configured", True):
            self._say(retry_key)
            return
        tail = [
            {"role": m["role"], "content": m["content"]}
            for m in self._state.transcript[-TRANSCRIPT_TAIL:]
        ]
        answer = self.responder.complete(tail, self._grounding())
        self._emit(answer, self._contextual_quick(answer))

    def _contextual_quick(self, answer: str) -> List[str]:
        lower = answer.lower()
        if "when" in lower or "time" in lower:
            return list(self.copy["fallback_when"].quick_replies)
        if "book" in lower or "session" in lower:
            return list(self.copy["fallback_booking"].quick_replies)
        return list(self.copy["fallback_default"].quick_replies)

    def _grounding(self) -> dict:
        now = self.now()
        try:
            upcoming = self.store.list_reservations(since=now.date())[:GROUNDING_LIMIT]
        except BookingError:
            upcoming = []
        return {
            "player_name": self.player.name,
            "player_level": self.player.level,
            "now": f"{now:%Y-%m-%d %H:%M (%A)}",
            "open_time": availability.SLOT_TIMES[0],
            "close_time": f"{availability.CLOSE_HOUR:02d}:00",
            "bookings": [
                {
                    "date": f"{r.date:%Y-%m-%d (%A)}",
                    "time": r.start_time,
                    "duration": f"{r.duration}h",
                    "type": r.session_type,
                    "createdBy": r.created_by_name,
                    "spotsLeft": availability.spots_left(r),
                }
                for r in upcoming
            ],
        }
