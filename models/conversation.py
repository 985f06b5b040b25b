from datetime import datetime
from models.db import db


class Conversation(db.Model):
    """Assistant state for one player session. Dropping the row drops the chat."""

    __tablename__ = "assistant_conversations"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(
        db.Integer,
        db.ForeignKey("player_sessions.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    step = db.Column(db.String(32), nullable=False, default="greeting")
    draft = db.Column(db.JSON, nullable=False, default=dict)
    transcript = db.Column(db.JSON, nullable=False, default=list)

    # set while a message is being processed; a second message is refused
    in_flight = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
