import logging
from datetime import datetime, timedelta

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.conversation import Conversation
from services.dialogue import ConversationState, DialogueManager
from services.responder import ChatResponder
from services.store import ReservationStore
from utils.auth_context import login_required

assistant_bp = Blueprint("assistant", __name__, url_prefix="/assistant")
logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500


def _conversation_for_session() -> Conversation:
    convo = Conversation.query.filter_by(session_id=g.session.id).first()
    if convo is None:
        convo = Conversation(session_id=g.session.id, step="greeting", draft={}, transcript=[])
        db.session.add(convo)
        db.session.commit()
    return convo


def _claim(convo_id: int) -> bool:
    """Mark the conversation busy. False if another message is still being handled."""
    stale_before = datetime.utcnow() - timedelta(
        seconds=current_app.config.get("ASSISTANT_INFLIGHT_TIMEOUT_SECONDS", 60)
    )
    claimed = (
        Conversation.query
        .filter(Conversation.id == convo_id)
        .filter((Conversation.in_flight.is_(False)) | (Conversation.updated_at < stale_before))
        .update({"in_flight": True, "updated_at": datetime.utcnow()}, synchronize_session=False)
    )
    db.session.commit()
    return claimed == 1


def _manager() -> DialogueManager:
    return DialogueManager(
        store=ReservationStore(),
        player=g.player,
        responder=ChatResponder.from_config(current_app.config),
        max_players_limit=current_app.config.get("MAX_PLAYERS_LIMIT", 30),
    )


def _save(convo: Conversation, state: ConversationState) -> None:
    convo.step = state.step
    convo.draft = dict(state.draft)
    convo.transcript = list(state.transcript)
    convo.in_flight = False
    db.session.commit()


@assistant_bp.get("")
@login_required
def show():
    convo = _conversation_for_session()
    if convo.step == "greeting":
        state = ConversationState.from_row(convo)
        _manager().start(state)
        _save(convo, state)
    return jsonify(step=convo.step, draft=convo.draft, transcript=convo.transcript), 200


@assistant_bp.post("/messages")
@login_required
def send_message():
    data = request.get_json(silent=True) or {}
    message = (data.get("message") or "").strip()
    if not message:
        return jsonify(error="message is required"), 400
    if len(message) > MAX_MESSAGE_LENGTH:
        return jsonify(error=f"message must be at most {MAX_MESSAGE_LENGTH} characters"), 400

    convo = _conversation_for_session()
    if not _claim(convo.id):
        return jsonify(error="Still working on your last message"), 409

    db.session.refresh(convo)
    state = ConversationState.from_row(convo)
    try:
        reply = _manager().handle(state, message)
    except Exception:
        db.session.rollback()
        Conversation.query.filter_by(id=convo.id).update({"in_flight": False}, synchronize_session=False)
        db.session.commit()
        raise

    _save(convo, state)
    return jsonify(reply.to_dict()), 200


@assistant_bp.delete("")
@login_required
def discard():
    Conversation.query.filter_by(session_id=g.session.id).delete()
    db.session.commit()
    return jsonify(message="Conversation cleared"), 200
