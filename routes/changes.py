import json
import logging

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from models import db
from services.changes import TABLES, change_feed
from utils.auth_context import login_required

changes_bp = Blueprint("changes", __name__, url_prefix="/changes")
logger = logging.getLogger(__name__)


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@changes_bp.get("/stream")
@login_required
def stream():
    raw = (request.args.get("tables") or ",".join(TABLES)).split(",")
    tables = [t.strip() for t in raw if t.strip()]
    unknown = sorted(set(tables) - set(TABLES))
    if not tables or unknown:
        return jsonify(error="tables must be any of: " + ", ".join(TABLES)), 400

    heartbeat = current_app.config.get("CHANGE_STREAM_HEARTBEAT_SECONDS", 30)
    # bounded stream for tests; clients reconnect
    max_events = request.args.get("max_events", type=int)
    sub = change_feed.subscribe(tables)
    # the stream never reads the database
    db.session.close()

    def generate():
        sent = 0
        try:
            yield _sse("ready", {"tables": tables})
            while max_events is None or sent < max_events:
                event = sub.get(timeout=heartbeat)
                if event is None:
                    yield ": heartbeat\n\n"
                    continue
                yield _sse("change", event)
                sent += 1
        finally:
            change_feed.unsubscribe(sub)
            logger.debug("change stream closed after %d event(s)", sent)

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Accel-Buffering": "no",
        },
    )
