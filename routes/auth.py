from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.conversation import Conversation
from security.session import create_session, revoke_session
from security.rate_limit import check_and_increment_login_rate
from security.csrf import issue_csrf_token, clear_csrf_token
from services.identity import Player
from utils.audit import log_event
from utils.auth_context import login_required


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _set_auth_cookie(resp, raw_token: str):
    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "pitchslot_session"),
        raw_token,
        httponly=current_app.config.get("SESSION_COOKIE_HTTPONLY", True),
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS"),
        path="/",
    )
    return resp


@auth_bp.get("/levels")
def levels():
    return jsonify(levels=current_app.config.get("LEVELS", [])), 200


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    player = Player.from_input(data.get("name"), data.get("level"))

    allowed, retry_after = check_and_increment_login_rate()
    if not allowed:
        log_event("LOGIN_RATE_LIMIT", metadata={"name": player.name, "retry_after": retry_after})
        return jsonify(error="Too many login requests. Slow down.", retry_after_seconds=retry_after), 429

    if not player.name:
        return jsonify(error="Name is required"), 400
    if len(player.name) > 80:
        return jsonify(error="Name must be at most 80 characters"), 400
    if player.level not in current_app.config.get("LEVELS", []):
        return jsonify(error="Unknown level", levels=current_app.config.get("LEVELS", [])), 400

    raw_token = create_session(player)
    log_event("LOGIN", player=player)

    resp = jsonify(message="Logged in", player=player.to_dict())
    _set_auth_cookie(resp, raw_token)
    issue_csrf_token(resp)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(player=g.player.to_dict()), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "pitchslot_session")
    raw_token = request.cookies.get(cookie_name)

    # the assistant chat goes with the session
    Conversation.query.filter_by(session_id=g.session.id).delete()
    db.session.commit()
    revoke_session(raw_token)
    log_event("LOGOUT", player=g.player)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    clear_csrf_token(resp)
    return resp, 200
