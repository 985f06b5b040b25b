from datetime import datetime
from models.db import db

class PlayerSession(db.Model):
    __tablename__ = "player_sessions"

    id = db.Column(db.Integer, primary_key=True)

    player_name = db.Column(db.String(80), nullable=False)
    player_level = db.Column(db.String(10), nullable=False)

    # store only hashed token in DB (never store raw token)
    token_hash = db.Column(db.String(128), unique=True, nullable=False, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_seen_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=False)

    revoked = db.Column(db.Boolean, default=False, nullable=False)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
