import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as pitchslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "pitchslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie name for the player token
    AUTH_COOKIE_NAME = "pitchslot_session"

    # 30 days: the name+level login is meant to stick around
    SESSION_LIFETIME_SECONDS = int(os.getenv("SESSION_LIFETIME_SECONDS", str(30 * 24 * 60 * 60)))

    # Idle timeout: 7 days
    IDLE_TIMEOUT_SECONDS = int(os.getenv("IDLE_TIMEOUT_SECONDS", str(7 * 24 * 60 * 60)))

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Simple IP rate limit for login endpoint
    LOGIN_RATE_WINDOW_SECONDS = 60      # window size
    LOGIN_RATE_MAX_REQUESTS = 15        # max login requests per IP per window

    # Player levels offered at login
    LEVELS = ["100", "200", "300", "400", "500"]

    # Open sessions
    DEFAULT_MAX_PLAYERS = 14
    MAX_PLAYERS_LIMIT = 30

    # Wall clock used for "today" and the past-hours cutoff
    PITCH_TIMEZONE = os.getenv("PITCH_TIMEZONE", "UTC")

    # Admin view. When unset, any logged-in player can open it.
    ADMIN_ACCESS_CODE = os.getenv("ADMIN_ACCESS_CODE")

    # Generative fallback for the assistant (optional)
    CHAT_FUNCTION_URL = os.getenv("CHAT_FUNCTION_URL")
    CHAT_API_KEY = os.getenv("CHAT_API_KEY")
    CHAT_TIMEOUT_SECONDS = float(os.getenv("CHAT_TIMEOUT_SECONDS", "15"))

    # A message stuck "in flight" longer than this is considered abandoned
    ASSISTANT_INFLIGHT_TIMEOUT_SECONDS = 60

    # Change stream
    CHANGE_STREAM_HEARTBEAT_SECONDS = 30

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SLOW_REQUEST_MS = 500

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOGIN_RATE_MAX_REQUESTS = 1000
    CHAT_FUNCTION_URL = None
    CHAT_API_KEY = None
    ADMIN_ACCESS_CODE = None
    CHANGE_STREAM_HEARTBEAT_SECONDS = 1
