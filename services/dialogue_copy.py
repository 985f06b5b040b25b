"""Everything the booking assistant says, in one table.

Each entry is a ``Prompt``: a ``str.format`` template plus the quick replies
shown under it. Swap the table (``DialogueManager(copy=...)``) to change tone
without touching the flow.
"""
from typing import NamedTuple, Tuple


class Prompt(NamedTuple):
    text: str
    quick_replies: Tuple[str, ...] = ()


DAYS = ("Today", "Tomorrow", "This weekend", "Next week")
LATER_DAYS = ("Tomorrow", "This weekend", "Next week")
DURATIONS = ("1 hour", "2 hours")
SESSION_TYPES = ("Open session", "Closed session")
PLAYER_COUNTS = ("10 players", "14 players", "20 players")

DEFAULT_COPY = {
    "greeting": Prompt(
        "{greeting} {name}! ⚽\n\nReady to hit the pitch? Tell me when you'd like to play!", DAYS
    ),
    "ask_when": Prompt("When would you like to play?", DAYS),
    "ask_when_short": Prompt("Sure! When?", DAYS),
    "ask_when_join": Prompt("When?", ("Today", "Tomorrow", "This weekend")),
    "ask_when_retry": Prompt("I didn't quite catch that. Which day works for you?", DAYS),
    "day_full": Prompt("Looks like {day_name} is fully booked! 😅 Try another day?", LATER_DAYS),
    "day_past": Prompt("{day_name} has already gone. Pick a day from today on?", DAYS),

    # day overview, assembled line by line
    "options_header": Prompt("Here's what's available on **{day_name}**:\n"),
    "options_join_header": Prompt("\n🎮 **Games to join:**"),
    "options_join_line": Prompt("• {time} - {host}'s match ({spots} spots)"),
    "options_free_header": Prompt("\n🏟️ **Available slots:**"),
    "options_footer": Prompt("\nWant to **join** a game or **book** your own slot?"),
    "summary_header": Prompt("Here's what I found for {label}:"),
    "summary_day_line": Prompt("• {day_name}: {times}"),
    "summary_empty": Prompt("Hmm, looks like {label} is pretty packed! 😅 Want me to check other days?", LATER_DAYS),
    "summary_footer": Prompt("\nWhich day suits you?", ("Today", "Tomorrow")),

    # ask_action
    "confirm_join": Prompt(
        "Joining **{host}'s game** at **{time}**!\n\n{spots} spots left. Ready to play?",
        ("Yes, count me in!", "Show other options"),
    ),
    "no_open_session_at": Prompt(
        "No open session at {time}. Want to book that slot instead?", ("Book {time}", "Show available slots")
    ),
    "session_full": Prompt(
        "{host}'s game at {time} just filled up. Pick another?", ("Show available slots", "Pick another day")
    ),
    "already_member": Prompt(
        "You're already in the {time} game! 🙌", ("Show available slots", "Pick another day")
    ),
    "slot_taken": Prompt("That slot's taken! Try another time.", ("Show available slots", "Pick another day")),
    "off_grid": Prompt("We're open {open_time} - {close_time}, on the hour. What time?"),
    "pick_game": Prompt("Which game?"),
    "no_open_games": Prompt("No open games that day. Book a new slot instead?", ("Yes, book a slot", "Pick another day")),
    "pick_time": Prompt("What time?"),
    "no_free_slots": Prompt("No empty slots. Try another day?", LATER_DAYS),
    "ask_action_retry": Prompt("Join an existing game or book your own?", ("Join a game", "Book a slot", "Pick another day")),

    # building a booking
    "ask_session_type": Prompt(
        "Booking **{time}** on **{weekday}**!\n\nWhat type of session?\n\n"
        "• **Open** - Others can join\n• **Closed** - Just you",
        SESSION_TYPES,
    ),
    "session_type_retry": Prompt("Choose a session type:", SESSION_TYPES),
    "ask_max_players": Prompt("How many players max?", PLAYER_COUNTS),
    "max_players_retry": Prompt("Pick a number of players between 2 and {limit}.", PLAYER_COUNTS),
    "ask_duration_closed": Prompt("Private match! 🔒 How long do you need?", DURATIONS),
    "ask_duration_open": Prompt("{max_players} players max. Duration?", DURATIONS),
    "duration_retry": Prompt("1 or 2 hours?", DURATIONS),
    "duration_blocked": Prompt("Only 1 hour fits at {time}. Go with 1 hour?", ("1 hour", "Start over")),
    "confirm_booking": Prompt(
        "📋 **Your booking:**\n\n📅 {day_name} at {time}\n⏱️ {duration_text}\n🎮 {type_text}\n\nLock it in?",
        ("Yes, book it!", "Start over"),
    ),

    # results
    "booked": Prompt("✅ **You're all set!**\n\n{type_note}\n\nSee you on the field! ⚽", ("Book another", "Done!")),
    "booked_open_note": Prompt("👥 Players can now join your game!"),
    "booked_closed_note": Prompt("🔒 The pitch is yours!"),
    "booking_failed": Prompt("Something went wrong: {error} Try again?", ("Try again", "Start over")),
    "joined": Prompt(
        "🎉 **You're in!**\n\nJoined {host}'s match on {weekday} at {time}.\n\nLet's gooo! ⚽",
        ("Book my own", "Join another", "Done!"),
    ),
    "join_failed": Prompt("Couldn't join: {error} Try again?", ("Try again", "Show other options")),
    "farewell": Prompt("See you on the pitch! ⚽👋", ("Start new booking",)),

    # quick replies offered after a generative answer
    "fallback_when": Prompt("", ("Morning (8-12)", "Afternoon (12-5)", "Evening (5-8)")),
    "fallback_booking": Prompt("", ("Open session", "Private booking", "Show available times")),
    "fallback_default": Prompt("", ("Today", "Tomorrow", "This weekend")),
}
