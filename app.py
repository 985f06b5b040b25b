import logging
import time
from datetime import timedelta

import click
from flask import Flask, request, g, jsonify
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from routes import health_bp, auth_bp, reservations_bp, assistant_bp, admin_bp, changes_bp
from security.csrf import require_csrf
from security.session import purge_expired_sessions
from services.errors import BookingError
from services.identity import Player
from services.store import ReservationStore, purge_expired
from utils.auth_context import load_current_player
from utils.clock import local_now

logger = logging.getLogger(__name__)

CSRF_EXEMPT_PATHS = {
    "/auth/login",
    "/health",
}


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    logging.basicConfig(
        level=getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(reservations_bp)
    app.register_blueprint(assistant_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(changes_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.before_request
    def _load_player():
        request.start_time = time.time()
        load_current_player()

    @app.before_request
    def _csrf_protect():
        # Only protect state-changing requests
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if request.path in CSRF_EXEMPT_PATHS:
                return None

            # Only enforce CSRF if the player is already logged in (cookie session)
            if getattr(g, "player", None) is not None:
                failure = require_csrf()
                if failure:
                    return failure

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"

        started = getattr(request, "start_time", None)
        if started is not None:
            elapsed = (time.time() - started) * 1000
            if elapsed > app.config.get("SLOW_REQUEST_MS", 500):
                logger.warning("Slow request %s %s took %.0fms", request.method, request.path, elapsed)
        return resp

    @app.errorhandler(BookingError)
    def _booking_error(exc):
        if exc.status >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.path, exc.message)
        return jsonify(exc.to_dict()), exc.status

    @app.errorhandler(HTTPException)
    def _http_error(exc):
        return jsonify(error=exc.description), exc.code

    @app.errorhandler(Exception)
    def _unhandled(exc):
        db.session.rollback()
        logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=exc)
        return jsonify(error="Internal server error"), 500

    register_cli(app)

    return app


#-------------------------

def register_cli(app):
    @app.cli.command("seed-demo")
    @click.option("--days", default=2, show_default=True, help="How many days ahead to fill.")
    def seed_demo(days):
        """Create a few demo sessions from tomorrow on (idempotent per slot)."""
        store = ReservationStore()
        host = Player("Demo Host", "300")
        guest = Player("Demo Guest", "200")
        start = local_now().date() + timedelta(days=1)

        created = 0
        for offset in range(days):
            day = (start + timedelta(days=offset)).isoformat()
            for time_, kind, max_players in (("10:00", "open", 10), ("17:00", "closed", None)):
                try:
                    res = store.create_reservation({
                        "created_by": host,
                        "date": day,
                        "start_time": time_,
                        "duration": 1,
                        "session_type": kind,
                        "max_players": max_players,
                    })
                except BookingError as exc:
                    click.echo(f"skip {day} {time_}: {exc.message}")
                    continue
                created += 1
                if kind == "open":
                    store.join_reservation(res.id, guest)

        click.echo(f"Created {created} demo session(s)")

    @app.cli.command("purge-sessions")
    def purge_sessions():
        """Delete expired and revoked login sessions."""
        click.echo(f"Removed {purge_expired_sessions()} session(s)")

    @app.cli.command("purge-reservations")
    @click.option("--keep-days", default=30, show_default=True, help="Keep this many past days.")
    def purge_reservations(keep_days):
        """Delete reservations older than the given number of days."""
        click.echo(f"Removed {purge_expired(keep_days=keep_days)} reservation(s)")


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
