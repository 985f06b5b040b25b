from datetime import datetime
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context


def local_now() -> datetime:
    """Naive wall-clock time at the pitch (PITCH_TIMEZONE)."""
    tz_name = "UTC"
    if has_app_context():
        tz_name = current_app.config.get("PITCH_TIMEZONE") or "UTC"
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)
